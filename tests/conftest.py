"""Shared pytest fixtures for modcheck tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from modcheck.engines.version_resolution.errors import VersionSourceUnavailableError
from modcheck.engines.version_resolution.versions import Version, parse_version

SAMPLE_GO_MOD = """module example.com/app

go 1.21

require (
\texample.com/a v1.0.0
\texample.com/b v2.1.0
)
"""


class FakeVersionSource:
    """In-memory VersionSource that records calls and peak concurrency."""

    def __init__(
        self,
        versions: dict[str, list[str]],
        *,
        latest: dict[str, str] | None = None,
        failing: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.versions = versions
        self.latest = latest or {}
        self.failing = failing or set()
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def list_versions(self, module_path: str) -> list[Version]:
        self.calls.append(module_path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if module_path in self.failing:
                raise VersionSourceUnavailableError(module_path, "connection refused")
            return [parse_version(v) for v in self.versions.get(module_path, [])]
        finally:
            self.in_flight -= 1

    async def current_version(self, module_path: str) -> Version | None:
        raw = self.latest.get(module_path)
        return parse_version(raw) if raw is not None else None


@pytest.fixture
def make_source():
    """Factory for FakeVersionSource instances."""

    def _make(versions: dict[str, list[str]] | None = None, **kwargs) -> FakeVersionSource:
        return FakeVersionSource(versions or {}, **kwargs)

    return _make


@pytest.fixture
def write_go_mod(tmp_path):
    """Write go.mod content into tmp_path and return the file path."""

    def _write(content: str = SAMPLE_GO_MOD) -> Path:
        f = tmp_path / "go.mod"
        f.write_text(content)
        return f

    return _write
