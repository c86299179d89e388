"""Version source interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from modcheck.engines.version_resolution.versions import Version


@runtime_checkable
class VersionSource(Protocol):
    """Anything that can report published versions of a Go module.

    Both calls may be slow and may fail. Implementations raise
    :class:`VersionSourceUnavailableError` once their own retry policy is
    exhausted, and report an unknown module as an empty list / ``None``.
    """

    async def list_versions(self, module_path: str) -> list[Version]: ...

    async def current_version(self, module_path: str) -> Version | None: ...
