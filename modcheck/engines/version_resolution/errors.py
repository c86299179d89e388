"""Exceptions for the version resolution engine.

Manifest-level and cancellation errors are raised from ``Checker.check``.
Subclasses of :class:`ResolutionError` are per-dependency: they are stored on
results as data and never raised out of a run.
"""

from __future__ import annotations


class ModcheckError(Exception):
    """Base exception for all modcheck errors."""


class ConfigError(ModcheckError):
    """Raised when an explicitly requested config file is missing or invalid."""


# ── fatal ────────────────────────────────────────────────────────────────


class ManifestError(ModcheckError):
    """Base for errors that make the whole manifest unusable."""


class ManifestNotFoundError(ManifestError):
    """Raised when no go.mod exists at the requested location."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"manifest not found: {path}")


class ManifestMalformedError(ManifestError):
    """Raised when go.mod cannot be parsed."""

    def __init__(self, path: str, line_no: int | None, reason: str) -> None:
        self.path = path
        self.line_no = line_no
        self.reason = reason
        where = f"{path}:{line_no}" if line_no is not None else path
        super().__init__(f"malformed manifest {where}: {reason}")


class CheckCancelledError(ModcheckError):
    """Raised when a run is cancelled before it completes."""

    def __init__(self) -> None:
        super().__init__("check cancelled")


# ── per-dependency ───────────────────────────────────────────────────────


class ResolutionError(ModcheckError):
    """A failure scoped to a single dependency.

    Compared by value so results from two runs can be compared.
    """

    kind = "resolution_error"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolutionError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class NoVersionAvailableError(ResolutionError):
    kind = "no_version_available"

    def __init__(self, message: str = "no version available") -> None:
        super().__init__(message)


class ModuleIgnoredError(ResolutionError):
    kind = "module_ignored"

    def __init__(self) -> None:
        super().__init__("module ignored")


class VersionSourceUnavailableError(ResolutionError):
    """Raised by a version source when a lookup fails after its own retries."""

    kind = "version_source_unavailable"

    def __init__(self, module_path: str, reason: str) -> None:
        self.module_path = module_path
        self.reason = reason
        super().__init__(f"version lookup failed for {module_path}: {reason}")


class WriteFailedError(ResolutionError):
    kind = "write_failed"

    def __init__(self, module_path: str, reason: str) -> None:
        self.module_path = module_path
        self.reason = reason
        super().__init__(f"could not update {module_path}: {reason}")


# ── input validation ─────────────────────────────────────────────────────


class InvalidVersionError(ModcheckError, ValueError):
    """Raised when a string is not a valid semantic version."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"invalid version: {text!r}")


class UnknownStrategyError(ModcheckError, ValueError):
    def __init__(self, name: str, known: list[str]) -> None:
        self.name = name
        super().__init__(f"unknown strategy {name!r} (choose from: {', '.join(known)})")
