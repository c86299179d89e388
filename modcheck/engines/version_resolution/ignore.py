"""Ignore policy — modules excluded from version selection."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modcheck.core.config import Settings


class IgnorePolicy:
    """Immutable set of ignored module paths."""

    __slots__ = ("_modules",)

    def __init__(self, modules: Iterable[str] = ()) -> None:
        self._modules = frozenset(m.strip() for m in modules if m and m.strip())

    @classmethod
    def from_settings(cls, settings: Settings) -> IgnorePolicy:
        return cls(settings.ignored_modules)

    @property
    def modules(self) -> frozenset[str]:
        return self._modules

    def is_ignored(self, path: str) -> bool:
        return path in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def __repr__(self) -> str:
        return f"IgnorePolicy({sorted(self._modules)!r})"
