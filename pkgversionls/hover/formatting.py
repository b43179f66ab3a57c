"""Markdown rendering of hover results."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import humanize

from pkgversionls.hover.resolver import HoverResult, LookupFailure, Relation


def published_ago(published: datetime, now: datetime | None = None) -> str:
    """Rough past-tense age of a publish time, e.g. "3 days ago"."""
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    # Registry clocks can run ahead of ours.
    age = max(now - published, timedelta(0))
    return humanize.naturaltime(age)


def format_hover(result: HoverResult, now: datetime | None = None) -> str:
    """Render a HoverResult as Markdown for the editor tooltip."""
    nl = "\n\n"
    parts = [f"**{result.name}** ({result.block.value})"]

    metadata = result.metadata
    if metadata and metadata.description:
        parts.append(metadata.description)

    if result.declared_range is not None:
        parts.append(f"Declared: `{result.declared_range or '*'}`")

    if result.error is LookupFailure.NOT_FOUND:
        parts.append(f"Package `{result.name}` was not found in the registry.")
    elif result.error is LookupFailure.INVALID_NAME:
        parts.append(f"`{result.name}` is not a valid package name.")
    elif result.error is LookupFailure.UNAVAILABLE:
        parts.append("Registry unavailable; latest version unknown.")
    else:
        latest = f"Latest version: `{result.latest_version}`"
        if metadata and metadata.published:
            latest += f" (published {published_ago(metadata.published, now)})"
        parts.append(latest)

        if result.relation is Relation.SATISFIED:
            parts.append("Declared range includes the latest version.")
        elif result.relation is Relation.NEWER_AVAILABLE:
            parts.append("A newer version is available outside the declared range.")

        if result.stale:
            parts.append("_Registry unreachable; showing cached data._")

    if metadata and metadata.homepage:
        parts.append(f"[{metadata.homepage}]({metadata.homepage})")

    return nl.join(parts)
