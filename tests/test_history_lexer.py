from __future__ import annotations

from pygments.token import Comment, Name, Number, Operator, Punctuation, String

from history_lexer import HistoryLexer, MonokaiProTheme


def tokens(text: str) -> list[tuple[object, str]]:
    return list(HistoryLexer().get_tokens(text))


def test_timestamp_markers_and_commands() -> None:
    result = tokens("#1700000000\necho foo; ls -la ~\n")
    assert (Comment.Timestamp, "#1700000000") in result
    assert (Name.Builtin, "echo") in result
    assert (Name.Argument, "foo") in result
    assert (Punctuation, ";") in result
    assert (Name.Function, "ls") in result
    assert (Name.Attribute, "-la") in result
    assert (Name.Argument, "~") in result


def test_hash_inside_a_command_is_not_a_marker() -> None:
    result = tokens("#1\necho #123\n")
    assert (Name.Argument, "#123") in result
    assert [value for kind, value in result if kind is Comment.Timestamp] == ["#1"]


def test_pipes_strings_and_numbers() -> None:
    result = tokens("#1\ngrep -c 'x y' notes.txt | head -n 5\n")
    assert (String.Single, "'x y'") in result
    assert (Operator, "|") in result
    assert (Name.Function, "head") in result
    assert (Number.Integer, "5") in result


def test_theme_falls_back_to_parent_token_styles() -> None:
    theme = MonokaiProTheme()
    assert theme.get_style_for_token(Name.Builtin.Pseudo) == MonokaiProTheme.styles[Name.Builtin]
    assert theme.get_style_for_token(Comment.Timestamp) == MonokaiProTheme.styles[Comment.Timestamp]


def test_unbalanced_double_quote_stops_at_end_of_line() -> None:
    result = tokens('#1\necho "oops\n#2\nls /tmp\n')
    assert [value for kind, value in result if kind is Comment.Timestamp] == ["#1", "#2"]
    assert (String.Double, "oops") in result
    assert (Name.Function, "ls") in result
