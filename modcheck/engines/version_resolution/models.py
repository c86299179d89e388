"""Data models for the version resolution engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from modcheck.engines.version_resolution.errors import ModuleIgnoredError, ResolutionError
from modcheck.engines.version_resolution.versions import Version


@dataclass(frozen=True)
class Requirement:
    """A single ``require`` entry as written in go.mod."""

    path: str
    version: Version
    line_no: int
    indirect: bool = False


@dataclass(frozen=True)
class GoModFile:
    """Parsed go.mod contents (only the parts the engine needs)."""

    module: str
    go_version: str | None
    requires: tuple[Requirement, ...]
    excludes: dict[str, frozenset[Version]] = field(default_factory=dict)


@dataclass(frozen=True)
class DependencyRecord:
    """One declared dependency plus the versions published for it.

    ``error`` carries a version-source failure that happened while building
    the record; the checker turns it into the dependency's result.
    """

    path: str
    local_version: Version
    available_versions: tuple[Version, ...] = ()
    indirect: bool = False
    error: ResolutionError | None = None


@dataclass(frozen=True)
class CheckResult:
    """Terminal outcome of resolving one dependency.

    ``latest_version`` is set whenever the strategy selected something, even
    if it equals ``local_version``. Compare the two to decide "up to date".
    """

    local_version: Version
    latest_version: Version | None = None
    error: ResolutionError | None = None

    def __post_init__(self) -> None:
        if self.latest_version is not None and self.error is not None:
            raise ValueError("CheckResult cannot carry both latest_version and error")

    @property
    def is_ignored(self) -> bool:
        return isinstance(self.error, ModuleIgnoredError)

    @property
    def has_update(self) -> bool:
        return self.latest_version is not None and self.latest_version > self.local_version


ResolutionMap = dict[str, CheckResult]


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of rewriting one dependency's pin."""

    previous: Version
    updated: Version | None = None
    error: ResolutionError | None = None
