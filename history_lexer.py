# ============================================================================
# BASH HISTORY LEXER
# ============================================================================

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, include
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
)
from rich.style import Style
from rich.syntax import SyntaxTheme

# Custom token types so Rich and Pygments know about them
Comment.Timestamp = Token.Comment.Timestamp
Name.Argument = Token.Name.Argument

BUILTINS = (
    "alias", "bg", "cd", "echo", "eval", "exec", "exit", "export", "fg", "history",
    "printf", "pwd", "read", "return", "source", "type", "unalias", "unset",
)


class HistoryLexer(RegexLexer):
    """
    Pygments lexer for cleaned bash history: ``#<epoch>`` marker lines, each
    followed by a command whose original lines were joined with ``"; "``.

    Use like so:
    ```python
    console = Console()
    syntax = Syntax(history_text, HistoryLexer(), theme=MonokaiProTheme(), line_numbers=True)
    console.print(syntax)
    ```
    """

    name = "Bash history"
    aliases = ["bash-history"]
    filenames = [".bash_history", "*.bash_history"]

    flags = re.MULTILINE

    tokens = {
        # '_base' holds what can appear anywhere inside a command
        "_base": [
            (r"\\.", String.Escape),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"\$\{[^}\n]*\}", Name.Variable),
            (r"\$[a-zA-Z0-9_@*#?$!-]+", Name.Variable),
            (r"'[^'\n]*'", String.Single),
            (r'"', String.Double, "string_double"),
        ],
        "root": [
            # IMPORTANT: markers are only markers at the start of a line
            (r"^#\d+$", Comment.Timestamp),
            (r"\s+", Text),
            (r"\|\|?|&&|&", Operator),
            (r"[;()]", Punctuation),
            (
                r"\b(if|fi|else|elif|then|for|in|while|do|done|case|esac|function)\b",
                Keyword.Reserved,
            ),
            (r"\b(sudo|time|nohup|env)\b", Keyword),
            (r"\b(%s)\b" % "|".join(BUILTINS), Name.Builtin, "cmdtail"),
            include("_base"),
            (r"[a-zA-Z0-9_./~+-]+", Name.Function, "cmdtail"),
        ],
        "cmdtail": [
            (r"\n", Text, "#pop"),
            (r"\|\|?|&&", Operator, "#pop"),
            (r"[;&]", Punctuation, "#pop"),
            (r"\)", Punctuation, "#pop"),
            (r"[ \t]+", Text),
            (r"[0-9]*(>>?|<<?|>&|<&)[0-9]*", Operator),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (r"[^=\s;&|()<>$'\"\\]+", Name.Argument),
        ],
        "string_double": [
            (r'"', String.Double, "#pop"),
            # An unbalanced quote ends with its command line
            (r"\n", Text, "#pop:2"),
            (r'\\(["$`\\])', String.Escape),
            include("_base"),
            (r'[^"\\$\n]+', String.Double),
        ],
        "command_substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
    }


class MonokaiProTheme(SyntaxTheme):
    """Rich syntax-highlighting theme that matches Monokai Pro, with dimmed timestamps."""

    _BLACK = "#2d2a2e"
    _RED = "#ff6188"
    _GREEN = "#a9dc76"
    _YELLOW = "#ffd866"
    _ORANGE = "#fc9867"
    _PURPLE = "#ab9df2"
    _CYAN = "#78dce8"
    _WHITE = "#fcfcfa"
    _COMMENT_GRAY = "#727072"

    background_color = _BLACK
    default_style = Style(color=_WHITE)

    styles = {
        Comment.Timestamp: Style(color=_COMMENT_GRAY, dim=True),  # #1700000000
        Name.Function: Style(color=_GREEN, bold=True),  # git, curl
        Name.Builtin: Style(color=_CYAN, italic=True),  # cd, echo
        Name.Attribute: Style(color=_ORANGE),  # --long, -l
        Name.Argument: Style(color=_PURPLE),  # a filename
        Name.Variable: Style(color=_WHITE),
        Number: Style(color=_CYAN),
        Number.Integer: Style(color=_CYAN),
        Text: Style(color=_WHITE),
        Keyword: Style(color=_RED, bold=True),
        Keyword.Reserved: Style(color=_RED, bold=True),
        Operator: Style(color=_RED),
        Punctuation: Style(color=_WHITE),
        String.Single: Style(color=_YELLOW),
        String.Double: Style(color=_YELLOW),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_PURPLE, bold=True),
        Error: Style(color=_RED, bold=True),
    }

    @classmethod
    def get_style_for_token(cls, t):
        # Walk up the token hierarchy so e.g. Name.Builtin.Pseudo still gets a style
        while t not in cls.styles and t.parent is not None:
            t = t.parent
        return cls.styles.get(t, cls.default_style)

    @classmethod
    def get_background_style(cls):
        return Style(bgcolor=cls._BLACK)
