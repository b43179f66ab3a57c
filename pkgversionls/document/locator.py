"""
Locate the dependency key under the cursor.

Given the spans of a package.json document and an offset, find the object
key at that offset and decide whether it names a package inside one of the
dependency blocks.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from pkgversionls.document.model import Span, SpanKind, ValueType


class DependencyBlock(Enum):
    """Objects in package.json whose keys are package names."""

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_DEPENDENCIES = "optionalDependencies"

    @classmethod
    def from_key(cls, key: str | None) -> DependencyBlock | None:
        if key is None:
            return None
        try:
            return cls(key)
        except ValueError:
            return None


@dataclass(frozen=True)
class KeyMatch:
    """A package name found in a dependency block."""

    name: str
    block: DependencyBlock
    declared_range: str | None
    span: Span


def find_key_at(spans: Sequence[Span], offset: int) -> Span | None:
    """
    Return the key span at offset.

    Keys containing the offset win, innermost (largest start) first. If the
    offset sits between a key and the start of its value, the preceding key
    is used.
    """
    best: Span | None = None
    for span in spans:
        if span.kind is SpanKind.KEY and span.contains(offset):
            if best is None or span.start > best.start:
                best = span
    if best is not None:
        return best

    preceding: Span | None = None
    following: Span | None = None
    for span in spans:
        if span.start > offset:
            following = span
            break
        if span.kind is SpanKind.KEY:
            preceding = span
        elif preceding is not None and span is not preceding.value:
            preceding = None

    if preceding is None:
        return None

    if preceding.value is not None:
        gap_end = preceding.value.start
    elif following is not None:
        # Value not typed yet; the gap runs up to whatever comes next.
        gap_end = following.start
    else:
        return None

    if preceding.end < offset < gap_end:
        return preceding
    return None


def locate(spans: Sequence[Span], offset: int) -> KeyMatch | None:
    """
    Return the package named at offset, or None.

    Only keys directly inside a dependency block match. The block names
    themselves, keys nested deeper (e.g. inside an object value) and keys
    whose value is an object or array do not.
    """
    key = find_key_at(spans, offset)
    if key is None:
        return None

    parent = key.parent
    if parent is None or parent.depth != key.depth - 1:
        return None

    block = DependencyBlock.from_key(parent.text)
    if block is None:
        return None

    value = key.value
    if value is not None and value.value_type in (ValueType.OBJECT, ValueType.ARRAY):
        return None

    declared_range = None
    if value is not None and value.value_type is ValueType.STRING:
        declared_range = value.text

    if not key.text:
        return None

    return KeyMatch(
        name=key.text,
        block=block,
        declared_range=declared_range,
        span=key,
    )
