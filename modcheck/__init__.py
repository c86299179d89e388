"""modcheck: find and apply newer versions of Go module dependencies."""

__version__ = "0.1.0"

from modcheck.engines.version_resolution import (
    Checker,
    CheckResult,
    DependencyRecord,
    GoProxyClient,
    IgnorePolicy,
    ManifestParser,
    ResolutionMap,
    SelectionStrategy,
    UpdateOutcome,
    Updater,
)

__all__ = [
    "CheckResult",
    "Checker",
    "DependencyRecord",
    "GoProxyClient",
    "IgnorePolicy",
    "ManifestParser",
    "ResolutionMap",
    "SelectionStrategy",
    "UpdateOutcome",
    "Updater",
]
