"""Tokenizer for user-typed free text.

Free text is compiled either into a weighted multi-field match or, when the
user wrote explicit query syntax, passed through untouched as a query-string
clause so the user's own precedence holds. Detection works on tokens rather
than substrings: ``brandon`` or ``portland`` never look like operators, and
neither does anything inside a quoted phrase.

Recognized syntax:

- ``AND``, ``OR``, ``NOT``, ``&&``, ``||`` as standalone uppercase tokens
- ``field:value`` where ``field`` is a searchable name; a value starting with
  ``/`` is a URL and ``::`` is a scope separator, neither is a field query
- ``+term`` / ``-term`` required and prohibited prefixes
- balanced parentheses
"""

from __future__ import annotations

from collections.abc import Collection, Iterator
from dataclasses import dataclass
from enum import Enum
import re


class TokenKind(str, Enum):
    WORD = "word"
    PHRASE = "phrase"
    OPERATOR = "operator"
    FIELD = "field"
    REQUIRED = "required"
    PROHIBITED = "prohibited"
    GROUP_OPEN = "group_open"
    GROUP_CLOSE = "group_close"


@dataclass(frozen=True)
class QueryToken:
    """Represents a token of user-typed query text."""

    text: str
    kind: TokenKind
    position: int
    start_char: int
    end_char: int

    @property
    def field(self) -> str | None:
        if self.kind != TokenKind.FIELD:
            return None
        return self.text.partition(":")[0]


OPERATORS = frozenset({"AND", "OR", "NOT", "&&", "||"})

_FIELD_PATTERN = re.compile(r"^[A-Za-z_][\w.]*:[^/\s:]")
_PREFIX_PATTERN = re.compile(r"^[+-][^\d\s+-]")


class QueryTokenizer:
    """Split free text into phrases, parentheses and whitespace-delimited chunks."""

    def __init__(self, pattern: str = r'"[^"]*"?|[()]|[^\s()"]+') -> None:
        self.pattern = re.compile(pattern, re.UNICODE)

    def __call__(self, text: str) -> Iterator[QueryToken]:
        for position, match in enumerate(self.pattern.finditer(text)):
            chunk = match.group(0)
            yield QueryToken(
                text=chunk,
                kind=self._classify(chunk),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )

    @staticmethod
    def _classify(chunk: str) -> TokenKind:
        if chunk.startswith('"'):
            return TokenKind.PHRASE
        if chunk == "(":
            return TokenKind.GROUP_OPEN
        if chunk == ")":
            return TokenKind.GROUP_CLOSE
        if chunk in OPERATORS:
            return TokenKind.OPERATOR
        if _FIELD_PATTERN.match(chunk):
            return TokenKind.FIELD
        if _PREFIX_PATTERN.match(chunk):
            return TokenKind.REQUIRED if chunk[0] == "+" else TokenKind.PROHIBITED
        return TokenKind.WORD


_SYNTAX_KINDS = frozenset({TokenKind.OPERATOR, TokenKind.FIELD, TokenKind.REQUIRED, TokenKind.PROHIBITED})


def has_boolean_syntax(
    text: str,
    tokenizer: QueryTokenizer | None = None,
    *,
    fields: Collection[str] | None = None,
) -> bool:
    """Return True when ``text`` uses explicit query syntax.

    When ``fields`` is given, ``name:value`` only counts as a field query for
    those names, so ``re:Invent`` stays plain text.
    """
    tokens = list((tokenizer or QueryTokenizer())(text))
    for token in tokens:
        if token.kind == TokenKind.FIELD and fields is not None and token.field not in fields:
            continue
        if token.kind in _SYNTAX_KINDS:
            return True

    depth = 0
    grouped = False
    for token in tokens:
        if token.kind == TokenKind.GROUP_OPEN:
            depth += 1
        elif token.kind == TokenKind.GROUP_CLOSE:
            if depth == 0:
                return False
            depth -= 1
            grouped = True
    return grouped and depth == 0


def split_fuzzy_marker(text: str) -> tuple[str, bool]:
    """Strip a trailing ``~`` and report whether fuzzy matching was requested."""
    stripped = text.rstrip()
    if stripped.endswith("~"):
        return stripped.rstrip("~").rstrip(), True
    return stripped, False
