#!/usr/bin/env python3
"""
cleanup_history.py - Bash history deduplication utility

Rewrites a bash history file (``HISTTIMEFORMAT`` style, a ``#<epoch>`` marker
line before each command) in place: noise and sensitive-looking commands are
dropped, duplicates are collapsed onto their most recent timestamp, and the
result is sorted by time.

**How a run flows**

1.  **Parse:** `HistoryParser` is fed one line at a time and closes a record
    whenever a new marker arrives after command text, or when input ends.
    Multi-line commands are joined with ``"; "``.
2.  **Classify:** `Classifier` checks the exception rules first, then the
    ignore rules. Anything unmatched is kept.
3.  **Merge:** `Aggregator` keeps one entry per command text, with the largest
    timestamp seen for it.
4.  **Order & write:** records are sorted by (timestamp, command), serialized
    back into the same two-line format and atomically swapped into place.

Malformed units never abort a run; they are reported on stderr and skipped.
Fatal problems (a bad rule pattern, an unreadable file, nothing left to keep)
are `HistCleanError` subclasses and leave the history file untouched.
"""

from __future__ import annotations

import argparse
import os
import re
import shutil
import sys
import tempfile
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
from rich.theme import Theme

from history_lexer import HistoryLexer, MonokaiProTheme

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "context": "#5C6370",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(stderr=True, theme=CUSTOM_THEME)

TIMESTAMP_MARKER_RE = re.compile(r"#\d+")
MAX_TIMESTAMP = 2**32 - 1
COMMAND_SEPARATOR = "; "

# Dropped unless an exception also matches
IGNORES: tuple[str, ...] = (
    # short things
    r"^.{1,3}$",
    # cd / ls with relative directories
    r"^cd [^~/]",
    r"^ls [^~/]",
    # annoying if accidentally re-executed at a later date
    r"^(sudo\s+)?(reboot|shutdown|halt)\b",
    # mouse esc codes
    r"^0",
    # commands explicitly hidden by user
    r"^ ",
    # sensitive looking lines
    r"(api|token|key|secret|pass)",
)

# Kept even if they also match IGNORES
EXCEPTIONS: tuple[str, ...] = (
    # password retrieval to clipboard
    r"^pass -c",
)


@dataclass(frozen=True)
class RuleSet:
    """Immutable classification rules; hand a different one to `Classifier` to swap policy."""

    ignores: tuple[str, ...] = IGNORES
    exceptions: tuple[str, ...] = EXCEPTIONS


DEFAULT_RULES = RuleSet()

# ============================================================================
# ERRORS
# ============================================================================


class HistCleanError(Exception):
    """Base class for everything this tool raises or reports."""


class ParseError(HistCleanError):
    """A single history unit that could not become a `Record`. Never fatal."""


class MalformedTimestamp(ParseError):
    def __init__(self, timestamp_text: str, command: str):
        self.timestamp_text = timestamp_text
        self.command = command
        super().__init__(f"invalid timestamp {timestamp_text!r} for command: {command}")


class EmptyCommand(ParseError):
    def __init__(self, timestamp: int):
        self.timestamp = timestamp
        super().__init__(f"command was empty for timestamp {timestamp}")


class OrphanCommand(ParseError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"missing timestamp for command: {command}")


class MarkerLikeCommand(ParseError):
    """A command that would read back as a timestamp marker once written out."""

    def __init__(self, timestamp: int, command: str):
        self.timestamp = timestamp
        self.command = command
        super().__init__(f"command looks like a timestamp marker for timestamp {timestamp}: {command}")


class RuleCompilationFailure(HistCleanError):
    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"bad classification pattern {pattern!r}: {reason}")


class IOFailure(HistCleanError):
    def __init__(self, path: Path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {cause}")


class NoValidCommands(HistCleanError):
    """Raised when a run would leave an empty history behind."""

    def __init__(self, errors: list[ParseError], dropped: list[tuple[Record, str]]):
        self.errors = errors
        self.dropped = dropped
        super().__init__("no valid commands")


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True, order=True)
class Record:
    """One history entry. Field order is the sort order: timestamp, then command."""

    timestamp: int
    command: str


@dataclass(frozen=True)
class Verdict:
    retained: bool
    rule: str | None = None


@dataclass
class CleanResult:
    """→ Everything a pipeline run produced, for writing and for reporting"""

    records: list[Record]
    errors: list[ParseError] = field(default_factory=list)
    dropped: list[tuple[Record, str]] = field(default_factory=list)
    duplicates: int = 0
    parsed: int = 0

    @property
    def text(self) -> str:
        return serialize_history(self.records)

    def dropped_by_rule(self) -> Counter[str]:
        return Counter(rule for _, rule in self.dropped)


# ============================================================================
# PARSING
# ============================================================================


def normalize_command(buffer: str) -> str:
    """→ Collapses whitespace runs and strips the separator left after the last line"""
    command = " ".join(buffer.split())
    return command.removesuffix(COMMAND_SEPARATOR.strip())


def parse_timestamp(timestamp_text: str) -> int | None:
    digits = timestamp_text.strip().lstrip("#")
    if not digits.isascii() or not digits.isdigit():
        return None
    value = int(digits)
    if value > MAX_TIMESTAMP:
        return None
    return value


class HistoryParser:
    """
    Line-at-a-time state machine over the history format.

    Holds the pending marker and the command text collected since. Both ways a
    unit gets closed, a marker arriving after command text (`feed`) and the
    end of input (`finish`), go through `_close`.
    """

    def __init__(self) -> None:
        self.pending_timestamp: str | None = None
        self.buffer = ""

    def feed(self, line: str) -> Record | ParseError | None:
        line = line.removesuffix("\r")
        if TIMESTAMP_MARKER_RE.fullmatch(line):
            if not self.buffer:
                # Consecutive markers: the last one before any command text wins
                self.pending_timestamp = line
                return None
            outcome = self._close()
            self.pending_timestamp = line
            return outcome
        trimmed = line.strip()
        if trimmed:
            self.buffer += trimmed + COMMAND_SEPARATOR
        return None

    def finish(self) -> Record | ParseError | None:
        if self.pending_timestamp is None and not self.buffer:
            return None
        return self._close()

    def _close(self) -> Record | ParseError:
        timestamp_text, self.pending_timestamp = self.pending_timestamp, None
        command, self.buffer = normalize_command(self.buffer), ""

        if timestamp_text is None:
            # Only reachable with buffered text, an empty unit is never closed
            return OrphanCommand(command)
        timestamp = parse_timestamp(timestamp_text)
        if timestamp is None:
            return MalformedTimestamp(timestamp_text, command)
        if not command:
            return EmptyCommand(timestamp)
        if TIMESTAMP_MARKER_RE.fullmatch(command):
            return MarkerLikeCommand(timestamp, command)
        return Record(timestamp, command)


def parse_history(text: str) -> Iterator[Record | ParseError]:
    """→ Parsing: Lazily yields a Record or a ParseError per history unit"""
    parser = HistoryParser()
    for line in text.split("\n"):
        if (outcome := parser.feed(line)) is not None:
            yield outcome
    if (outcome := parser.finish()) is not None:
        yield outcome


# ============================================================================
# CLASSIFICATION
# ============================================================================


def _compile_rules(patterns: Iterable[str]) -> list[tuple[str, re.Pattern[str]]]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append((pattern, re.compile(pattern, re.IGNORECASE)))
        except re.error as e:
            raise RuleCompilationFailure(pattern, str(e)) from e
    return compiled


class Classifier:
    """Exceptions are checked before ignores; a command neither matches is kept."""

    def __init__(self, rules: RuleSet = DEFAULT_RULES):
        self.rules = rules
        self._exceptions = _compile_rules(rules.exceptions)
        self._ignores = _compile_rules(rules.ignores)

    def classify(self, command: str) -> Verdict:
        for pattern, regex in self._exceptions:
            if regex.search(command):
                return Verdict(True, pattern)
        for pattern, regex in self._ignores:
            if regex.search(command):
                return Verdict(False, pattern)
        return Verdict(True)

    def is_retained(self, command: str) -> bool:
        return self.classify(command).retained


# ============================================================================
# AGGREGATION & SERIALIZATION
# ============================================================================


class Aggregator:
    """Deduplicates by command text; the newest timestamp wins regardless of file position."""

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._latest)

    def add(self, record: Record) -> bool:
        """→ Folds a record in; returns True when its command was already known"""
        seen = self._latest.get(record.command)
        if seen is None:
            self._latest[record.command] = record.timestamp
            return False
        if record.timestamp > seen:
            self._latest[record.command] = record.timestamp
        return True

    def records(self) -> list[Record]:
        return sorted(Record(timestamp, command) for command, timestamp in self._latest.items())


def serialize_history(records: Iterable[Record]) -> str:
    return "".join(f"#{record.timestamp}\n{record.command}\n" for record in records)


def clean_history(text: str, classifier: Classifier | None = None) -> CleanResult:
    """→ Pipeline: parse, classify, merge and sort in a single pass over `text`"""
    classifier = classifier or Classifier(DEFAULT_RULES)
    aggregator = Aggregator()
    result = CleanResult(records=[])

    for outcome in parse_history(text):
        if isinstance(outcome, ParseError):
            result.errors.append(outcome)
            continue
        result.parsed += 1
        verdict = classifier.classify(outcome.command)
        if not verdict.retained:
            result.dropped.append((outcome, verdict.rule))
            continue
        if aggregator.add(outcome):
            result.duplicates += 1

    if not len(aggregator):
        raise NoValidCommands(result.errors, result.dropped)
    result.records = aggregator.records()
    return result


# ============================================================================
# FILE I/O
# ============================================================================


def read_history_file(file_path: Path) -> str:
    """→ File I/O: Reads the whole history file as strict UTF-8"""
    try:
        return file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IOFailure(file_path, e) from e


def backup_history(history_path: Path) -> Path:
    """→ File I/O: Copies the current history next to itself, timestamped"""
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    backup_path = history_path.with_name(f"{history_path.name}.clean.{timestamp}")
    try:
        shutil.copy2(history_path, backup_path)
    except OSError as e:
        raise IOFailure(backup_path, e) from e
    return backup_path


def write_history(history_path: Path, text: str) -> None:
    """→ File I/O: Writes a sibling temp file, then atomically replaces the history with it"""
    directory = history_path.parent
    try:
        tmp = tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=directory, prefix=f".{history_path.name}.", delete=False
        )
    except OSError as e:
        raise IOFailure(directory, e) from e

    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        if history_path.exists():
            shutil.copymode(history_path, tmp_path)
        os.replace(tmp_path, history_path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise IOFailure(history_path, e) from e


# ============================================================================
# REPORTING
# ============================================================================


def _console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        # rich-only kwargs (style, highlight, ...) mean nothing to print()
        print(string, *args, file=sys.stderr)


def report_parse_errors(errors: Iterable[ParseError]) -> None:
    for error in errors:
        _console_print(f"[warning]Skipped:[/warning] {escape(str(error))}", highlight=False)


def render_summary(result: CleanResult) -> Table:
    table = Table(title="History cleanup", title_style="bold #C678DD", show_header=False, box=None)
    table.add_column(style="bold #98C379")
    table.add_column(justify="right")
    table.add_row("Records parsed", str(result.parsed))
    table.add_row("Parse errors", str(len(result.errors)))
    for rule, count in sorted(result.dropped_by_rule().items()):
        table.add_row(f"Dropped by [#5C6370]{escape(rule)}[/]", str(count))
    table.add_row("Duplicates merged", str(result.duplicates))
    table.add_row("Records kept", str(len(result.records)))
    return table


def print_preview(result: CleanResult) -> None:
    """→ Dry run: Writes the cleaned history to stdout, highlighted when it is a terminal"""
    if sys.stdout.isatty():
        Console(highlight=False).print(Syntax(result.text, HistoryLexer(), theme=MonokaiProTheme(), line_numbers=True))
    else:
        sys.stdout.write(result.text)
        sys.stdout.flush()


# ============================================================================
# COMMAND LINE
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="cleanup-history",
        description="Deduplicate a bash history file in place: drop noise and secrets, keep the latest timestamp per command.",
    )
    ap.add_argument("history_file", type=Path, help="Path to the bash_history file")
    ap.add_argument("--dry-run", action="store_true", help="Print the cleaned history instead of writing it")
    ap.add_argument("--review", action="store_true", help="Review the changes interactively before writing")
    ap.add_argument("--backup", action="store_true", help="Save a timestamped copy before rewriting")
    ap.add_argument("-q", "--quiet", action="store_true", help="Only report fatal errors")
    return ap


def run(args: argparse.Namespace) -> int:
    """→ Main: Reads, cleans and (unless told otherwise) rewrites the history file"""
    history_path: Path = args.history_file
    if not history_path.exists():
        raise IOFailure(history_path, FileNotFoundError("history file not found"))
    if not history_path.is_file():
        raise IOFailure(history_path, OSError("not a regular file"))

    text = read_history_file(history_path)
    try:
        result = clean_history(text)
    except NoValidCommands as e:
        if not args.quiet:
            report_parse_errors(e.errors)
        raise

    if not args.quiet:
        report_parse_errors(result.errors)

    if args.dry_run:
        print_preview(result)
        if not args.quiet:
            _console_print(render_summary(result))
        return 0

    if args.review:
        from history_review import ReviewApp

        if not ReviewApp(result).run():
            _console_print("[warning]No changes applied. History file unchanged.[/warning]")
            return 0

    if args.backup:
        backup_path = backup_history(history_path)
        if not args.quiet:
            _console_print(f"Backup saved to [info]{escape(str(backup_path))}[/info]")

    write_history(history_path, result.text)
    if not args.quiet:
        _console_print(render_summary(result))
        _console_print(f"Cleaned history saved to [success]{escape(str(history_path))}[/success]")
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        return run(args)
    except HistCleanError as e:
        _console_print(f"[error]Error: {escape(str(e))}[/error]", highlight=False)
        _console_print(escape(ap.format_usage().rstrip()), style="context", highlight=False)
        return 1


def cli() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
