"""
Hover resolution for package.json dependencies.

Ties together the key locator and the version cache: finds the package at
the cursor, looks up its latest version and compares it with the range
declared in the document.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

import semantic_version

from pkgversionls.document.locator import DependencyBlock, KeyMatch, locate
from pkgversionls.document.model import Document, Span
from pkgversionls.errors import (
    InvalidPackageNameError,
    PackageNotFoundError,
    RegistryError,
    ServiceClosedError,
)
from pkgversionls.registry.client import PackageMetadata
from pkgversionls.workspace.version_cache import VersionCache

logger = logging.getLogger(__name__)

# Specifiers that don't refer to registry versions.
_NON_REGISTRY_PREFIXES = (
    "file:",
    "link:",
    "portal:",
    "workspace:",
    "npm:",
    "git:",
    "git+",
    "github:",
    "gitlab:",
    "bitbucket:",
    "gist:",
    "http:",
    "https:",
)

# major[.minor[.patch]] inside a range; prerelease and build parts are skipped.
_RANGE_VERSION_RE = re.compile(
    r"(?<![\w.-])v?(\d+)(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?"
)


class Relation(Enum):
    """How the declared range relates to the latest version."""

    SATISFIED = "satisfied"
    NEWER_AVAILABLE = "newer-available"
    UNKNOWN = "unknown"


class LookupFailure(Enum):
    NOT_FOUND = "not-found"
    UNAVAILABLE = "unavailable"
    INVALID_NAME = "invalid-name"


@dataclass(frozen=True)
class HoverResult:
    name: str
    block: DependencyBlock
    declared_range: str | None
    latest_version: str | None
    relation: Relation
    span: Span
    metadata: PackageMetadata | None = None
    error: LookupFailure | None = None
    stale: bool = False


def _range_bounds(declared: str) -> list[semantic_version.Version]:
    """Every version mentioned in a range, with x/* parts read as 0."""
    bounds = []
    for match in _RANGE_VERSION_RE.finditer(declared):
        major, minor, patch = (
            int(part) if part and part.isdigit() else 0 for part in match.groups()
        )
        bounds.append(semantic_version.Version(major=major, minor=minor, patch=patch))
    return bounds


def compare(declared_range: str | None, latest_version: str | None) -> Relation:
    """
    Compare a declared npm range with the latest version.

    NEWER_AVAILABLE needs the latest version to sit above the range, i.e.
    at or past every version the range mentions. A latest version below or
    between the range's parts (``^3.0.0`` against ``2.0.0``) is UNKNOWN, as
    is anything that can't be read as an npm range or a semantic version
    (dist-tags, git/file specifiers, garbage).
    """
    if declared_range is None or latest_version is None:
        return Relation.UNKNOWN

    declared = declared_range.strip()
    if declared.startswith(_NON_REGISTRY_PREFIXES) or "/" in declared:
        return Relation.UNKNOWN
    if declared == "":
        declared = "*"

    try:
        spec = semantic_version.NpmSpec(declared)
        version = semantic_version.Version(latest_version.strip().lstrip("v="))
    except ValueError:
        return Relation.UNKNOWN

    if spec.match(version):
        return Relation.SATISFIED

    bounds = _range_bounds(declared)
    if bounds and all(version >= bound for bound in bounds):
        return Relation.NEWER_AVAILABLE
    return Relation.UNKNOWN


class HoverResolver:
    """Produces HoverResults for positions in package.json documents."""

    def __init__(self, cache: VersionCache) -> None:
        self.cache = cache

    async def resolve_hover(self, document: Document, offset: int) -> HoverResult | None:
        """
        Resolve the hover at offset.

        Returns None when the offset is not on a dependency name, which is
        the normal case for most of the document. Registry failures still
        produce a result, with relation UNKNOWN and the error set.
        """
        match = locate(document.spans, offset)
        if match is None:
            return None
        return await self.resolve_match(match)

    async def resolve_match(self, match: KeyMatch) -> HoverResult | None:
        error: LookupFailure | None = None
        try:
            entry = await self.cache.lookup(match.name)
        except ServiceClosedError:
            return None
        except InvalidPackageNameError as e:
            logger.debug("Not looking up %r: %s", match.name, e)
            error = LookupFailure.INVALID_NAME
        except PackageNotFoundError:
            error = LookupFailure.NOT_FOUND
        except RegistryError as e:
            logger.warning("Lookup failed for %s: %s", match.name, e)
            error = LookupFailure.UNAVAILABLE

        if error is not None:
            return HoverResult(
                name=match.name,
                block=match.block,
                declared_range=match.declared_range,
                latest_version=None,
                relation=Relation.UNKNOWN,
                span=match.span,
                error=error,
            )

        return HoverResult(
            name=match.name,
            block=match.block,
            declared_range=match.declared_range,
            latest_version=entry.version,
            relation=compare(match.declared_range, entry.version),
            span=match.span,
            metadata=entry.metadata,
            stale=not entry.is_fresh(self.cache.clock()),
        )
