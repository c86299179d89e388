"""Version resolution engine — find newer versions of go.mod dependencies."""

from modcheck.engines.version_resolution.checker import Checker
from modcheck.engines.version_resolution.ignore import IgnorePolicy
from modcheck.engines.version_resolution.manifest import ManifestParser, locate_manifest
from modcheck.engines.version_resolution.models import (
    CheckResult,
    DependencyRecord,
    ResolutionMap,
    UpdateOutcome,
)
from modcheck.engines.version_resolution.proxy_client import GoProxyClient
from modcheck.engines.version_resolution.strategies import (
    STRATEGY_REGISTRY,
    SelectionStrategy,
    get_strategy,
)
from modcheck.engines.version_resolution.updater import Updater

__all__ = [
    "STRATEGY_REGISTRY",
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
    "get_strategy",
    "locate_manifest",
]
