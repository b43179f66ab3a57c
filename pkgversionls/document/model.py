"""
Document model for package.json buffers.

A Document wraps the raw text the editor sent and exposes a flat list of
structural spans (object keys and values) computed on first access. The
editor shows documents while they are being edited, so the scan never
fails: a strict pass runs first and, if the text is not valid JSON, a
tolerant pass over the same tokens recovers whatever key/value pairs it can
by tracking brace and bracket depth.
"""

from __future__ import annotations

import bisect
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property

from pkgversionls.errors import MalformedDocumentError

logger = logging.getLogger(__name__)


class SpanKind(Enum):
    KEY = "key"
    VALUE = "value"


class ValueType(Enum):
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"
    LITERAL = "literal"


@dataclass(eq=False)
class Span:
    """
    A key or value located in the document.

    Offsets index into the document text; ``end`` is exclusive and string
    spans include their quotes. ``depth`` is the number of containers
    enclosing the span. ``parent`` is the key whose value is the container
    holding this span (None at the root and for containers inside arrays).

    Spans are filled in while scanning and must not be modified afterwards.
    """

    kind: SpanKind
    start: int
    end: int
    depth: int
    text: str
    value_type: ValueType = ValueType.STRING
    parent: Span | None = field(default=None, repr=False)
    value: Span | None = field(default=None, repr=False)

    @property
    def parent_key(self) -> str | None:
        return self.parent.text if self.parent is not None else None

    def contains(self, offset: int) -> bool:
        """Inclusive on both ends, so a cursor just after the closing quote still hits."""
        return self.start <= offset <= self.end


# Token types
_PUNCTUATION = frozenset("{}[]:,")
_LITERAL_RE = re.compile(r'[^\s{}\[\]:,"]+')
_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?\Z")
_JSON_LITERALS = frozenset({"true", "false", "null"})


@dataclass
class _Token:
    type: str  # one of "{}[]:," or "string" / "literal"
    start: int
    end: int
    text: str = ""
    terminated: bool = True


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    length = len(text)

    while pos < length:
        char = text[pos]

        if char in " \t\r\n":
            pos += 1
        elif char in _PUNCTUATION:
            tokens.append(_Token(char, pos, pos + 1))
            pos += 1
        elif char == '"':
            tokens.append(_read_string(text, pos))
            pos = tokens[-1].end
        else:
            match = _LITERAL_RE.match(text, pos)
            end = match.end() if match else pos + 1
            tokens.append(_Token("literal", pos, end, text[pos:end]))
            pos = end

    return tokens


def _read_string(text: str, start: int) -> _Token:
    """Read a string token; an unterminated string stops at the end of its line."""
    pos = start + 1
    length = len(text)

    while pos < length:
        char = text[pos]
        if char == "\\":
            pos += 2
            continue
        if char == '"':
            raw = text[start:pos + 1]
            try:
                decoded = json.loads(raw)
            except ValueError:
                return _Token("string", start, pos + 1, raw[1:-1], terminated=False)
            return _Token("string", start, pos + 1, decoded)
        if char in "\r\n":
            break
        pos += 1

    pos = min(pos, length)
    return _Token("string", start, pos, text[start + 1:pos], terminated=False)


@dataclass
class _Frame:
    """An open object or array while scanning."""

    container: Span
    owner: Span | None
    is_object: bool
    expect: str  # "key", "colon", "value" or "comma"
    pending_key: Span | None = None
    after_comma: bool = False


class _Scanner:
    def __init__(self, text: str, strict: bool) -> None:
        self.text = text
        self.strict = strict
        self.tokens = _tokenize(text)
        self.spans: list[Span] = []
        self.stack: list[_Frame] = []
        self.root_seen = False

    def fail(self, message: str, token: _Token | None = None) -> None:
        if self.strict:
            offset = token.start if token else len(self.text)
            raise MalformedDocumentError(message, offset)

    def run(self) -> list[Span]:
        for index, token in enumerate(self.tokens):
            if token.type in "{[":
                self._open(token)
            elif token.type in "}]":
                self._close(token)
            elif token.type == ":":
                self._colon(token)
            elif token.type == ",":
                self._comma(token)
            elif token.type == "string":
                if not token.terminated:
                    self.fail("Unterminated or invalid string", token)
                self._string(token, self._next_type(index))
            else:
                self._literal(token)

        if self.stack:
            self.fail("Unexpected end of document")
            end = len(self.text)
            for frame in self.stack:
                frame.container.end = end
            self.stack.clear()
        elif not self.root_seen:
            self.fail("Empty document")

        return self.spans

    def _next_type(self, index: int) -> str | None:
        if index + 1 < len(self.tokens):
            return self.tokens[index + 1].type
        return None

    def _enter_value(self, token: _Token) -> tuple[Span | None, Span | None]:
        """
        Check that a value may start here and return (parent, owning key).

        Advances the enclosing frame past the value.
        """
        if not self.stack:
            if self.root_seen:
                self.fail("Unexpected data after root value", token)
            self.root_seen = True
            return None, None

        frame = self.stack[-1]
        frame.after_comma = False
        if frame.is_object:
            if frame.expect != "value":
                self.fail("Expected a property name", token)
            key = frame.pending_key
            if key is not None and key.value is not None:
                key = None
            frame.expect = "comma"
            return frame.owner, key

        if frame.expect != "value":
            self.fail("Expected ',' between array items", token)
        frame.expect = "comma"
        return frame.owner, None

    def _open(self, token: _Token) -> None:
        parent, key = self._enter_value(token)
        is_object = token.type == "{"
        span = Span(
            kind=SpanKind.VALUE,
            start=token.start,
            end=token.end,
            depth=len(self.stack),
            text="",
            value_type=ValueType.OBJECT if is_object else ValueType.ARRAY,
            parent=parent,
        )
        if key is not None:
            key.value = span
        self.spans.append(span)
        owner = key if is_object else (key or parent)
        self.stack.append(
            _Frame(
                container=span,
                owner=owner,
                is_object=is_object,
                expect="key" if is_object else "value",
            )
        )

    def _close(self, token: _Token) -> None:
        want_object = token.type == "}"
        if not self.stack:
            self.fail("Unbalanced closing bracket", token)
            return

        frame = self.stack[-1]
        if frame.is_object != want_object:
            self.fail("Mismatched closing bracket", token)
            # Close up to the nearest matching container, if any.
            if not any(f.is_object == want_object for f in self.stack):
                return
            while self.stack[-1].is_object != want_object:
                self.stack.pop().container.end = token.start
            frame = self.stack[-1]
        elif frame.is_object and frame.expect in ("colon", "value"):
            self.fail("Missing value before '}'", token)
        elif frame.after_comma:
            self.fail("Trailing comma", token)

        frame.container.end = token.end
        self.stack.pop()

    def _colon(self, token: _Token) -> None:
        frame = self.stack[-1] if self.stack else None
        if frame is None or not frame.is_object or frame.expect != "colon":
            self.fail("Unexpected ':'", token)
            return
        frame.expect = "value"

    def _comma(self, token: _Token) -> None:
        frame = self.stack[-1] if self.stack else None
        if frame is None:
            self.fail("Unexpected ','", token)
            return
        if frame.expect != "comma":
            self.fail("Unexpected ','", token)
        frame.expect = "key" if frame.is_object else "value"
        frame.after_comma = True

    def _string(self, token: _Token, next_type: str | None) -> None:
        frame = self.stack[-1] if self.stack else None

        if frame is not None and frame.is_object:
            is_key = frame.expect == "key"
            if not is_key and not self.strict:
                # A quoted string followed by ':' starts a new pair.
                is_key = next_type == ":"
                if not is_key and frame.expect in ("colon", "comma"):
                    # "key" "value" with the colon missing.
                    frame.expect = "value"
            if is_key:
                if frame.expect != "key":
                    self.fail("Expected ',' between properties", token)
                key = Span(
                    kind=SpanKind.KEY,
                    start=token.start,
                    end=token.end,
                    depth=len(self.stack),
                    text=token.text,
                    parent=frame.owner,
                )
                self.spans.append(key)
                frame.pending_key = key
                frame.expect = "colon"
                frame.after_comma = False
                return

        parent, key = self._enter_value(token)
        span = Span(
            kind=SpanKind.VALUE,
            start=token.start,
            end=token.end,
            depth=len(self.stack),
            text=token.text,
            parent=parent,
        )
        if key is not None:
            key.value = span
        self.spans.append(span)

    def _literal(self, token: _Token) -> None:
        if token.text not in _JSON_LITERALS and not _NUMBER_RE.match(token.text):
            self.fail(f"Unexpected token {token.text!r}", token)
            return
        frame = self.stack[-1] if self.stack else None
        if frame is not None and frame.is_object and frame.expect != "value":
            self.fail(f"Unexpected token {token.text!r}", token)
            return
        parent, key = self._enter_value(token)
        span = Span(
            kind=SpanKind.VALUE,
            start=token.start,
            end=token.end,
            depth=len(self.stack),
            text=token.text,
            value_type=ValueType.LITERAL,
            parent=parent,
        )
        if key is not None:
            key.value = span
        self.spans.append(span)


def scan(text: str) -> tuple[Span, ...]:
    """
    Scan text into key and value spans in document order.

    Never raises: invalid JSON falls back to the tolerant scanner.
    """
    try:
        return tuple(_Scanner(text, strict=True).run())
    except MalformedDocumentError as e:
        logger.debug("Falling back to tolerant scan: %s", e)
    return tuple(_Scanner(text, strict=False).run())


def scan_strict(text: str) -> tuple[Span, ...]:
    """Scan text, raising MalformedDocumentError on invalid JSON."""
    return tuple(_Scanner(text, strict=True).run())


@dataclass(frozen=True)
class Document:
    """Immutable snapshot of a document's text."""

    text: str
    uri: str | None = None
    version: int | None = None

    @cached_property
    def spans(self) -> tuple[Span, ...]:
        return scan(self.text)

    @cached_property
    def line_starts(self) -> tuple[int, ...]:
        starts = [0]
        for match in re.finditer("\n", self.text):
            starts.append(match.end())
        return tuple(starts)

    def offset_at(self, line: int, column: int) -> int:
        """Convert a zero-based line/column to an offset, clamped to the text."""
        if line < 0:
            return 0
        if line >= len(self.line_starts):
            return len(self.text)
        start = self.line_starts[line]
        if line + 1 < len(self.line_starts):
            line_end = self.line_starts[line + 1] - 1
        else:
            line_end = len(self.text)
        return min(start + max(column, 0), line_end)

    def position_at(self, offset: int) -> tuple[int, int]:
        """Convert an offset to a zero-based (line, column) pair."""
        offset = max(0, min(offset, len(self.text)))
        line = bisect.bisect_right(self.line_starts, offset) - 1
        return line, offset - self.line_starts[line]
