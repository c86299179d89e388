"""Selection strategies — which available version counts as "the update"."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from modcheck.engines.version_resolution.errors import (
    NoVersionAvailableError,
    UnknownStrategyError,
)
from modcheck.engines.version_resolution.versions import Version


@runtime_checkable
class SelectionStrategy(Protocol):
    """Interface that every selection strategy must satisfy.

    ``select`` must be pure: it may not mutate ``available``. It receives
    ``current`` so constraint-aware strategies can use it.
    """

    name: str

    def select(self, current: Version, available: Sequence[Version]) -> Version: ...


def _greatest(candidates: Sequence[Version]) -> Version:
    if not candidates:
        raise NoVersionAvailableError()
    return sorted(candidates)[-1]


class LatestOverall:
    """Greatest available version, pre-releases and new majors included."""

    name = "latest"

    def select(self, current: Version, available: Sequence[Version]) -> Version:
        return _greatest(available)


class LatestWithinMajor:
    """Greatest available version sharing ``current``'s major number."""

    name = "latest-major"

    def select(self, current: Version, available: Sequence[Version]) -> Version:
        if not available:
            raise NoVersionAvailableError()
        same_major = [v for v in available if v.major == current.major]
        if not same_major:
            raise NoVersionAvailableError(f"no version available within v{current.major}")
        return _greatest(same_major)


class LatestStableOnly:
    """Greatest available version without a pre-release tag.

    Pseudo-versions count as pre-releases and are never selected.
    """

    name = "latest-stable"

    def select(self, current: Version, available: Sequence[Version]) -> Version:
        if not available:
            raise NoVersionAvailableError()
        stable = [v for v in available if not v.prerelease]
        if not stable:
            raise NoVersionAvailableError("no stable version available")
        return _greatest(stable)


STRATEGY_REGISTRY: dict[str, SelectionStrategy] = {}

DEFAULT_STRATEGY = LatestOverall.name


def register_strategy(strategy: SelectionStrategy) -> None:
    """Register a strategy instance by its name."""
    STRATEGY_REGISTRY[strategy.name] = strategy


def get_strategy(name: str | None = None) -> SelectionStrategy:
    key = name or DEFAULT_STRATEGY
    try:
        return STRATEGY_REGISTRY[key]
    except KeyError:
        raise UnknownStrategyError(key, sorted(STRATEGY_REGISTRY)) from None


register_strategy(LatestOverall())
register_strategy(LatestWithinMajor())
register_strategy(LatestStableOnly())
