"""Settings loading — YAML config file, .env and environment variables.

Lookup order for the config file (first hit wins):
    1. explicit path (``--config``)
    2. <manifest dir>/modcheck.yml
    3. ./modcheck.yml
    4. ~/modcheck.yml

Environment variables override file values:
    MODCHECK_IGNORED_MODULES  — comma-separated module paths
    MODCHECK_PROXY            — module proxy URL
    MODCHECK_STRATEGY         — selection strategy name
    MODCHECK_CONCURRENCY      — max simultaneous lookups
    MODCHECK_TIMEOUT          — per-request timeout in seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv

from modcheck.engines.version_resolution.errors import ConfigError
from modcheck.engines.version_resolution.proxy_client import default_proxy_url
from modcheck.engines.version_resolution.strategies import DEFAULT_STRATEGY

log = structlog.get_logger("modcheck.config")

CONFIG_NAME = "modcheck.yml"


@dataclass(frozen=True)
class Settings:
    ignored_modules: tuple[str, ...] = ()
    proxy: str = field(default_factory=default_proxy_url)
    strategy: str = DEFAULT_STRATEGY
    concurrency: int = 10
    timeout: float = 15.0
    config_file: Path | None = None


def _candidate_files(manifest_dir: Path | None) -> list[Path]:
    candidates = []
    if manifest_dir is not None:
        candidates.append(manifest_dir / CONFIG_NAME)
    candidates.append(Path.cwd() / CONFIG_NAME)
    candidates.append(Path.home() / CONFIG_NAME)
    return candidates


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _as_modules(value: Any, origin: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ConfigError(f"{origin}: ignored_modules must be a list of module paths")
    return tuple(str(m).strip() for m in value if str(m).strip())


def _as_number(value: Any, kind: type, key: str, origin: str) -> Any:
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{origin}: {key} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{origin}: {key} must be positive")
    return number


def load_settings(
    config_path: str | Path | None = None,
    manifest_dir: str | Path | None = None,
) -> Settings:
    """Build :class:`Settings` once per process invocation.

    A missing default config file is not an error; a missing explicit one is.
    """
    # Existing environment wins over .env
    load_dotenv(Path.cwd() / ".env", override=False)

    raw: dict[str, Any] = {}
    used: Path | None = None
    if config_path is not None:
        used = Path(config_path)
        if not used.is_file():
            raise ConfigError(f"config file not found: {used}")
        raw = _read_yaml(used)
    else:
        for candidate in _candidate_files(Path(manifest_dir) if manifest_dir else None):
            if candidate.is_file():
                used = candidate
                raw = _read_yaml(candidate)
                break

    if used is not None:
        log.info("config.loaded", path=str(used))

    origin = str(used) if used is not None else "config"
    values: dict[str, Any] = {
        "ignored_modules": _as_modules(raw.get("ignored_modules"), origin),
        "proxy": raw.get("proxy") or default_proxy_url(),
        "strategy": raw.get("strategy") or DEFAULT_STRATEGY,
        "concurrency": _as_number(raw.get("concurrency", 10), int, "concurrency", origin),
        "timeout": _as_number(raw.get("timeout", 15.0), float, "timeout", origin),
    }

    env = os.environ
    if "MODCHECK_IGNORED_MODULES" in env:
        values["ignored_modules"] = _as_modules(
            env["MODCHECK_IGNORED_MODULES"], "MODCHECK_IGNORED_MODULES"
        )
    if env.get("MODCHECK_PROXY"):
        values["proxy"] = env["MODCHECK_PROXY"]
    if env.get("MODCHECK_STRATEGY"):
        values["strategy"] = env["MODCHECK_STRATEGY"]
    if env.get("MODCHECK_CONCURRENCY"):
        values["concurrency"] = _as_number(
            env["MODCHECK_CONCURRENCY"], int, "concurrency", "MODCHECK_CONCURRENCY"
        )
    if env.get("MODCHECK_TIMEOUT"):
        values["timeout"] = _as_number(
            env["MODCHECK_TIMEOUT"], float, "timeout", "MODCHECK_TIMEOUT"
        )

    return Settings(config_file=used, **values)
