"""Shell tokenizing and segment splitting for the no-sandbox injector."""

import re
from dataclasses import dataclass

CONTROL_OPERATORS = frozenset({"||", "&&", ";;", "|&", ";", "|", "&"})
GROUPING = frozenset({"(", ")"})

# A word absorbs quoted spans and backslash escapes whole, and keeps
# redirections like `2>&1` and `&>file` in one piece.
_WORD = r"""(?:\\[\s\S]|"(?:[^"\\]|\\[\s\S])*"|'[^']*'|[<>]&|&>|[^\s|&;()])+"""

_COMMENT = r"#[^\n]*"
_OPERATOR = r"\|\||&&|;;|\|&|&(?!>)|[;|()]"
# Inside a double-quoted command string, `\"...\"` is the inner shell's
# double quoting and may span whitespace.
_ESCAPED_SPAN = r"\\\"[^\"]*?\\\"(?=[\s|&;()]|$)"

_TOKEN_RE = re.compile("|".join((_COMMENT, _OPERATOR, _WORD)))
_ESCAPED_TOKEN_RE = re.compile("|".join((_COMMENT, _ESCAPED_SPAN, _OPERATOR, _WORD)))

_ASSIGNMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\+?=")

ESCAPED_DQUOTE = '\\"'


@dataclass(frozen=True)
class Token:
    """A raw slice of a command string and where it starts."""

    text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


def tokenize(source: str, *, escaped_quotes: bool = False) -> list[Token]:
    """Split a command string into position-tagged tokens.

    Whitespace is never a token, but the offsets keep it recoverable: the gaps
    between tokens plus their texts rebuild `source` exactly.

    `escaped_quotes` is for the body of a double-quoted command string, where
    `\\"a b\\"` is one quoted word. Anywhere else a backslash-quote is a
    literal character and does not group words.
    """
    if not isinstance(source, str):
        return []
    pattern = _ESCAPED_TOKEN_RE if escaped_quotes else _TOKEN_RE
    return [Token(m.group(0), m.start()) for m in pattern.finditer(source)]


def split_quotes(text: str, *, escaped: bool = False) -> tuple[str | None, str]:
    """Return `(quote style, inner text)` for one layer of outer quoting.

    The style is the opening quote as written (`"` or `'`, and `\\"` when
    `escaped` is set), or None when the text is not wrapped in matching
    quotes. Escapes inside the inner text are left as they are.
    """
    if (
        escaped
        and len(text) >= 4
        and text.startswith(ESCAPED_DQUOTE)
        and text.endswith(ESCAPED_DQUOTE)
    ):
        return ESCAPED_DQUOTE, text[2:-2]
    if len(text) >= 2 and text[0] in "\"'" and text[-1] == text[0]:
        return text[0], text[1:-1]
    return None, text


def unquote(text: str, *, escaped: bool = False) -> str:
    if not isinstance(text, str):
        return text
    return split_quotes(text, escaped=escaped)[1]


def quote(inner: str, style: str) -> str:
    return f"{style}{inner}{style}"


def is_assignment(word: str) -> bool:
    return bool(_ASSIGNMENT_RE.match(word))


def short_flag_letters(word: str) -> str:
    """Return the letters of a short option cluster like `-lc`, else "".

    Only all-letter clusters count, so `-5`, `-n10` and `-` are not clusters.
    """
    if len(word) < 2 or word[0] != "-" or word[1] == "-":
        return ""
    letters = word[1:]
    if not letters.isascii() or not letters.isalpha():
        return ""
    return letters


def split_segments(
    tokens: list[Token], source: str | None = None
) -> list[tuple[int, int]]:
    """Partition tokens into `(start, end)` ranges between control operators.

    Operator tokens belong to neither neighbour. When `source` is given, a
    newline in the gap between two tokens also ends a segment. Empty ranges
    are kept only between two adjacent operators.
    """
    bounds: list[tuple[int, int]] = []
    start = 0
    for i, tok in enumerate(tokens):
        if tok.text in CONTROL_OPERATORS:
            bounds.append((start, i))
            start = i + 1
            continue
        if source is not None and i > start:
            if "\n" in source[tokens[i - 1].end : tok.offset]:
                bounds.append((start, i))
                start = i
    bounds.append((start, len(tokens)))

    return [
        (start, end)
        for start, end in bounds
        if start < end or (0 < start and end < len(tokens))
    ]
