"""Updater — rewrite go.mod pins to the versions a check selected."""

from __future__ import annotations

import os
import re
import stat
import tempfile
from pathlib import Path

import structlog

from modcheck.engines.version_resolution.errors import (
    InvalidVersionError,
    ManifestError,
    WriteFailedError,
)
from modcheck.engines.version_resolution.manifest import locate_manifest, parse_go_mod
from modcheck.engines.version_resolution.models import CheckResult, ResolutionMap, UpdateOutcome
from modcheck.engines.version_resolution.versions import Version, format_version, parse_version

log = structlog.get_logger("modcheck.engine")


def _pin_pattern(module_path: str) -> re.Pattern[str]:
    # Optional "require", optional quotes around the path, then the version
    return re.compile(
        r"^(\s*(?:require\s+)?[\"`]?" + re.escape(module_path) + r"[\"`]?\s+)(\S+)"
    )


def _atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file + rename in the same directory."""
    mode = stat.S_IMODE(path.stat().st_mode)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class Updater:
    """Apply a :data:`ResolutionMap` to a go.mod, one dependency at a time.

    Each rewrite is atomic on disk. A failure is recorded against its
    dependency and the remaining dependencies are still attempted.
    """

    def __init__(self, location: str | Path | None = None) -> None:
        self._location = location

    def apply(self, results: ResolutionMap) -> dict[str, UpdateOutcome]:
        manifest_path = locate_manifest(self._location)
        outcomes: dict[str, UpdateOutcome] = {}

        for path, result in results.items():
            target = self._update_target(result)
            if target is None:
                continue
            try:
                self._rewrite(manifest_path, path, result.local_version, target)
            except WriteFailedError as exc:
                log.warning("updater.failed", path=path, error=exc.reason)
                outcomes[path] = UpdateOutcome(previous=result.local_version, error=exc)
                continue
            log.info(
                "updater.updated",
                path=path,
                previous=format_version(result.local_version),
                updated=format_version(target),
            )
            outcomes[path] = UpdateOutcome(previous=result.local_version, updated=target)

        return outcomes

    @staticmethod
    def _update_target(result: CheckResult) -> Version | None:
        """Version to write, or ``None`` when the pin should stay."""
        if result.error is not None or result.latest_version is None:
            return None
        if result.latest_version == result.local_version:
            return None
        return result.latest_version

    @staticmethod
    def _rewrite(manifest_path: Path, module_path: str, current: Version, target: Version) -> None:
        """Replace one pin. Every other byte of the file is kept as-is."""
        try:
            # Bytes, so CRLF line endings survive the round trip
            content = manifest_path.read_bytes().decode("utf-8")
            gomod = parse_go_mod(content, source=str(manifest_path))
        except (OSError, UnicodeDecodeError, ManifestError) as exc:
            raise WriteFailedError(module_path, str(exc)) from exc

        req = next((r for r in gomod.requires if r.path == module_path), None)
        if req is None:
            raise WriteFailedError(module_path, "requirement not found in manifest")
        if req.version != current:
            raise WriteFailedError(
                module_path,
                f"pin changed since check ({format_version(req.version)} "
                f"!= {format_version(current)})",
            )

        lines = content.splitlines(keepends=True)
        line = lines[req.line_no - 1]
        m = _pin_pattern(module_path).match(line)
        if m is None:
            raise WriteFailedError(module_path, f"cannot locate pin on line {req.line_no}")
        try:
            parse_version(m.group(2))
        except InvalidVersionError as exc:
            raise WriteFailedError(module_path, str(exc)) from exc

        lines[req.line_no - 1] = line[: m.start(2)] + format_version(target) + line[m.end(2) :]

        try:
            _atomic_write(manifest_path, "".join(lines))
        except OSError as exc:
            raise WriteFailedError(module_path, str(exc)) from exc
