from __future__ import annotations

import pytest

from cleanup_history import DEFAULT_RULES, Classifier, RuleCompilationFailure, RuleSet, Verdict

SENSITIVE = r"(api|token|key|secret|pass)"


@pytest.fixture(scope="module")
def classifier() -> Classifier:
    return Classifier(DEFAULT_RULES)


@pytest.mark.parametrize("command", ["cd", "ls", "vim", "x"])
def test_short_commands_are_dropped(classifier: Classifier, command: str) -> None:
    assert classifier.classify(command) == Verdict(False, r"^.{1,3}$")


@pytest.mark.parametrize("command", ["cd foo", "cd ./baz", "cd ..", "ls foo", "ls -la"])
def test_relative_cd_and_ls_are_dropped(classifier: Classifier, command: str) -> None:
    assert not classifier.is_retained(command)


@pytest.mark.parametrize("command", ["cd ~/projects", "cd /tmp", "ls /etc", "ls ~"])
def test_absolute_cd_and_ls_are_kept(classifier: Classifier, command: str) -> None:
    assert classifier.classify(command) == Verdict(True)


@pytest.mark.parametrize("command", ["reboot", "sudo reboot", "sudo shutdown -h now", "halt", "SHUTDOWN now"])
def test_power_commands_are_dropped(classifier: Classifier, command: str) -> None:
    assert classifier.classify(command) == Verdict(False, r"^(sudo\s+)?(reboot|shutdown|halt)\b")


def test_power_rule_needs_a_whole_word(classifier: Classifier) -> None:
    assert classifier.is_retained("rebootstrap")


def test_mouse_escape_artifacts_are_dropped(classifier: Classifier) -> None:
    assert classifier.classify("0;35;12M") == Verdict(False, r"^0")


def test_leading_space_hides_a_command(classifier: Classifier) -> None:
    assert classifier.classify(" git status") == Verdict(False, r"^ ")


@pytest.mark.parametrize(
    "command",
    ["export API_KEY=abc123", "curl -H 'Token: x' example.com", "aws secretsmanager list-secrets", "passwd"],
)
def test_sensitive_looking_commands_are_dropped(classifier: Classifier, command: str) -> None:
    assert classifier.classify(command) == Verdict(False, SENSITIVE)


@pytest.mark.parametrize("command", ["pass -c email/work", "PASS -C bank"])
def test_clipboard_password_retrieval_overrides_ignores(classifier: Classifier, command: str) -> None:
    assert classifier.classify(command) == Verdict(True, r"^pass -c")


def test_other_pass_invocations_stay_dropped(classifier: Classifier) -> None:
    assert classifier.classify("pass show email/work") == Verdict(False, SENSITIVE)


def test_ordinary_commands_are_kept_by_default(classifier: Classifier) -> None:
    assert classifier.classify("git status") == Verdict(True, None)
    assert classifier.is_retained("echo foo")


def test_rules_can_be_injected() -> None:
    custom = Classifier(RuleSet(ignores=(r"^git\b",), exceptions=(r"^git log",)))
    assert not custom.is_retained("git status")
    assert custom.is_retained("GIT LOG --oneline")
    assert custom.is_retained("cd foo")


def test_bad_pattern_fails_on_construction() -> None:
    with pytest.raises(RuleCompilationFailure) as excinfo:
        Classifier(RuleSet(ignores=(r"^ok", r"(unclosed"), exceptions=()))
    assert excinfo.value.pattern == r"(unclosed"
    assert excinfo.value.reason


def test_default_rules_are_immutable() -> None:
    with pytest.raises(AttributeError):
        DEFAULT_RULES.ignores = ()  # type: ignore[misc]
