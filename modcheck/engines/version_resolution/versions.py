"""Go module version strings <-> ``semver.Version``."""

from __future__ import annotations

from collections.abc import Iterable

import semver

from modcheck.engines.version_resolution.errors import InvalidVersionError

Version = semver.Version


def parse_version(text: object) -> Version:
    """Parse a Go version such as ``v1.2.3`` or ``v0.0.0-2020...-abcdef``.

    The leading ``v`` is optional. Build metadata (``+incompatible``) is kept
    but does not take part in ordering.
    """
    if not isinstance(text, str):
        raise InvalidVersionError(repr(text))
    raw = text.strip()
    if raw.startswith("v"):
        raw = raw[1:]
    try:
        return Version.parse(raw)
    except (ValueError, TypeError) as exc:
        raise InvalidVersionError(text) from exc


def format_version(version: Version) -> str:
    """Render a version the way go.mod spells it."""
    return f"v{version}"


def unique_versions(versions: Iterable[Version]) -> tuple[Version, ...]:
    """Drop duplicates (by precedence) while keeping first-seen order."""
    seen: set[Version] = set()
    out: list[Version] = []
    for v in versions:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return tuple(out)
