"""Checker — manifest parser -> ignore policy -> selection strategy."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import structlog

from modcheck.engines.version_resolution.errors import (
    CheckCancelledError,
    ModuleIgnoredError,
    ResolutionError,
)
from modcheck.engines.version_resolution.ignore import IgnorePolicy
from modcheck.engines.version_resolution.manifest import ManifestParser
from modcheck.engines.version_resolution.models import (
    CheckResult,
    DependencyRecord,
    ResolutionMap,
)
from modcheck.engines.version_resolution.source import VersionSource
from modcheck.engines.version_resolution.strategies import SelectionStrategy, get_strategy

log = structlog.get_logger("modcheck.engine")

T = TypeVar("T")

DEFAULT_CONCURRENCY = 10


class Checker:
    """Resolve the latest version of every dependency in a go.mod.

    The checker holds configuration only; each :meth:`check` call builds its
    records and results from scratch.
    """

    def __init__(
        self,
        source: VersionSource,
        ignore_policy: IgnorePolicy | None = None,
        strategy: SelectionStrategy | None = None,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._parser = ManifestParser(source, concurrency=concurrency)
        self._ignore = ignore_policy or IgnorePolicy()
        self._strategy = strategy or get_strategy()
        self._cancel_event = cancel_event

    async def check(self, location: str | Path | None = None) -> ResolutionMap:
        """Return one :class:`CheckResult` per dependency.

        Raises ``ManifestError`` when go.mod is missing or malformed and
        :class:`CheckCancelledError` when the cancel event fires first.
        Per-dependency failures are stored on the results.
        """
        records = await self._cancellable(
            self._parser.parse(location, skip=self._ignore.modules)
        )

        results: ResolutionMap = {}
        for record in records:
            results[record.path] = self._resolve(record)

        log.info(
            "checker.done",
            strategy=self._strategy.name,
            dependencies=len(results),
            updates=sum(1 for r in results.values() if r.has_update),
            ignored=sum(1 for r in results.values() if r.is_ignored),
            errors=sum(1 for r in results.values() if r.error and not r.is_ignored),
        )
        return results

    def _resolve(self, record: DependencyRecord) -> CheckResult:
        if self._ignore.is_ignored(record.path):
            return CheckResult(local_version=record.local_version, error=ModuleIgnoredError())

        if record.error is not None:
            return CheckResult(local_version=record.local_version, error=record.error)

        try:
            latest = self._strategy.select(record.local_version, record.available_versions)
        except ResolutionError as exc:
            log.debug("checker.no_selection", path=record.path, error=exc.kind)
            return CheckResult(local_version=record.local_version, error=exc)

        return CheckResult(local_version=record.local_version, latest_version=latest)

    async def _cancellable(self, coro: Coroutine[Any, Any, T]) -> T:
        """Await ``coro`` unless the cancel event fires first."""
        if self._cancel_event is None:
            return await coro

        if self._cancel_event.is_set():
            coro.close()
            raise CheckCancelledError()

        work = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            await asyncio.gather(work, return_exceptions=True)
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        log.info("checker.cancelled")
        raise CheckCancelledError()
