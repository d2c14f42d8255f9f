"""Tool directives embedded in model text.

A directive is a self-closing tag::

    <tool name="Read" file_path="src/app.py" />

Attribute values are quoted with ``"`` or ``'`` and may contain anything
except their own delimiter (there is no escaping). The tag is lexed into
SPACE / KEY / EQUALS / STRING / CLOSE tokens and the parser walks that
stream; anything it cannot accept is dropped without producing an
invocation.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping

MARKER = "<tool"
CLOSE = "/>"

_KEY_RE = re.compile(r"\w+", re.ASCII)
_FRAGMENT_RE = re.compile(r"<tool(?:[^<>\n]*>)?")


class DirectiveSyntaxError(ValueError):
    """A tag started with the marker but does not follow the grammar."""


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    args: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))

    def describe(self) -> str:
        """One-line rendering used in logs and context views."""
        parts = [self.name]
        parts.extend(f"{k}={_short(v)!r}" for k, v in self.args.items())
        return " ".join(parts)


def _short(value: str, limit: int = 80) -> str:
    value = value.replace("\n", "\\n")
    return value if len(value) <= limit else value[:limit] + "..."


# -- Lexer -------------------------------------------------------------------


class TokenKind(Enum):
    SPACE = "space"
    KEY = "key"
    EQUALS = "equals"
    STRING = "string"
    CLOSE = "close"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    start: int
    end: int


def _lex_tag(text: str, pos: int) -> Iterator[Token]:
    """Yield tokens from ``pos`` (just past the marker) up to and including CLOSE."""
    n = len(text)
    i = pos
    while i < n:
        ch = text[i]
        if ch.isspace():
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            yield Token(TokenKind.SPACE, text[i:j], i, j)
            i = j
        elif text.startswith(CLOSE, i):
            yield Token(TokenKind.CLOSE, CLOSE, i, i + len(CLOSE))
            return
        elif ch == "=":
            yield Token(TokenKind.EQUALS, ch, i, i + 1)
            i += 1
        elif ch in "\"'":
            end = text.find(ch, i + 1)
            if end == -1:
                raise DirectiveSyntaxError(f"unterminated {ch} string at offset {i}")
            yield Token(TokenKind.STRING, text[i + 1 : end], i, end + 1)
            i = end + 1
        else:
            m = _KEY_RE.match(text, i)
            if m is None:
                raise DirectiveSyntaxError(f"unexpected {ch!r} at offset {i}")
            yield Token(TokenKind.KEY, m.group(), i, m.end())
            i = m.end()
    raise DirectiveSyntaxError("directive is missing its closing '/>'")


# -- Parser ------------------------------------------------------------------


def _expect(tokens: Iterator[Token], *kinds: TokenKind) -> Token:
    tok = next(tokens)
    if tok.kind not in kinds:
        wanted = " or ".join(k.value for k in kinds)
        raise DirectiveSyntaxError(
            f"expected {wanted}, got {tok.kind.value} at offset {tok.start}"
        )
    return tok


def _parse_tag(text: str, start: int) -> tuple[dict[str, str], int]:
    """Parse one tag whose marker begins at ``start``. Returns (attrs, end)."""
    tokens = _lex_tag(text, start + len(MARKER))
    attrs: dict[str, str] = {}
    _expect(tokens, TokenKind.SPACE)
    while True:
        tok = _expect(tokens, TokenKind.KEY, TokenKind.CLOSE)
        if tok.kind is TokenKind.CLOSE:
            return attrs, tok.end
        _expect(tokens, TokenKind.EQUALS)
        value = _expect(tokens, TokenKind.STRING)
        attrs[tok.value] = value.value
        tok = _expect(tokens, TokenKind.SPACE, TokenKind.CLOSE)
        if tok.kind is TokenKind.CLOSE:
            return attrs, tok.end


def _scan(text: str) -> list[tuple[int, int, dict[str, str]]]:
    """Find every well-formed tag as (start, end, attrs), left to right."""
    found = []
    pos = text.find(MARKER)
    while pos != -1:
        try:
            attrs, end = _parse_tag(text, pos)
        except DirectiveSyntaxError:
            pos = text.find(MARKER, pos + len(MARKER))
            continue
        found.append((pos, end, attrs))
        pos = text.find(MARKER, end)
    return found


def parse(text: str | None) -> list[ToolInvocation]:
    """Extract tool invocations from model text, in order of appearance."""
    if not text:
        return []
    invocations = []
    for _, _, attrs in _scan(text):
        name = attrs.pop("name", "")
        if not name:
            continue
        invocations.append(ToolInvocation(name, attrs))
    return invocations


def has_directives(text: str | None) -> bool:
    return bool(parse(text))


def strip(text: str | None) -> str:
    """Remove directives and leftover marker fragments, leaving the prose."""
    if not text:
        return ""
    while True:
        pieces = []
        last = 0
        for start, end, _ in _scan(text):
            pieces.append(text[last:start])
            last = end
        pieces.append(text[last:])
        cleaned = _FRAGMENT_RE.sub("", "".join(pieces))
        if cleaned == text:
            break
        text = cleaned
    return text.strip()


def _quote(key: str, value: str) -> str:
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    raise ValueError(f"value of {key!r} contains both quote characters")


def render(invocations) -> str:
    """Serialize invocations to directive text, one per line."""
    lines = []
    for inv in invocations:
        if not inv.name:
            raise ValueError("tool name must not be empty")
        attrs = [f"name={_quote('name', inv.name)}"]
        for key, value in inv.args.items():
            if key == "name":
                raise ValueError("'name' is reserved for the tool name")
            if not _KEY_RE.fullmatch(key):
                raise ValueError(f"invalid attribute name {key!r}")
            attrs.append(f"{key}={_quote(key, value)}")
        lines.append(f"{MARKER} {' '.join(attrs)} {CLOSE}")
    return "\n".join(lines)
