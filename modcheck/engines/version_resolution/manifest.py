"""go.mod parsing and dependency record assembly."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Collection
from pathlib import Path

import structlog

from modcheck.engines.version_resolution.errors import (
    InvalidVersionError,
    ManifestMalformedError,
    ManifestNotFoundError,
    VersionSourceUnavailableError,
)
from modcheck.engines.version_resolution.models import DependencyRecord, GoModFile, Requirement
from modcheck.engines.version_resolution.source import VersionSource
from modcheck.engines.version_resolution.versions import Version, parse_version, unique_versions

log = structlog.get_logger("modcheck.engine")

MANIFEST_NAME = "go.mod"

# Block opener: require (
_BLOCK_OPEN_RE = re.compile(r"^([a-z]+)\s*\($")
_EMPTY_BLOCK_RE = re.compile(r"^[a-z]+\s*\(\s*\)$")

# Directives go.mod allows that carry nothing the engine needs
_SKIPPED_DIRECTIVES = frozenset({"replace", "retract", "toolchain", "godebug", "tool", "ignore"})
_KNOWN_DIRECTIVES = frozenset({"module", "go", "require", "exclude"}) | _SKIPPED_DIRECTIVES


def locate_manifest(location: str | Path | None = None) -> Path:
    """Resolve a directory or file path to the go.mod it refers to.

    ``None`` means the current working directory.
    """
    path = Path(location) if location is not None else Path.cwd()
    if path.is_dir():
        path = path / MANIFEST_NAME
    if not path.is_file():
        raise ManifestNotFoundError(str(path))
    return path


def _split_comment(line: str) -> tuple[str, str]:
    """Split ``line`` into (code, comment) at the first ``//``."""
    idx = line.find("//")
    if idx == -1:
        return line.strip(), ""
    return line[:idx].strip(), line[idx + 2 :].strip()


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "\"`":
        return token[1:-1]
    return token


def _is_indirect(comment: str) -> bool:
    return comment == "indirect" or comment.startswith("indirect;")


def parse_go_mod(content: str, source: str = MANIFEST_NAME) -> GoModFile:
    """Parse go.mod text.

    Raises :class:`ManifestMalformedError` on a missing ``module`` directive,
    an unterminated block, an unknown directive or an invalid version.
    """
    module: str | None = None
    go_version: str | None = None
    requires: list[Requirement] = []
    seen_paths: set[str] = set()
    excludes: dict[str, set[Version]] = {}

    block: str | None = None
    block_start = 0

    def _version(token: str, line_no: int) -> Version:
        try:
            return parse_version(token)
        except InvalidVersionError:
            raise ManifestMalformedError(source, line_no, f"invalid version {token!r}") from None

    def _entry(directive: str, args: list[str], comment: str, line_no: int) -> None:
        nonlocal module, go_version
        if directive == "module":
            if len(args) != 1:
                raise ManifestMalformedError(source, line_no, "module directive needs one path")
            module = _unquote(args[0])
        elif directive == "go":
            if len(args) != 1:
                raise ManifestMalformedError(source, line_no, "go directive needs one version")
            go_version = args[0]
        elif directive in ("require", "exclude"):
            if len(args) != 2:
                raise ManifestMalformedError(
                    source, line_no, f"{directive} entry needs a path and a version"
                )
            path = _unquote(args[0])
            version = _version(args[1], line_no)
            if directive == "exclude":
                excludes.setdefault(path, set()).add(version)
                return
            if path in seen_paths:
                log.warning("manifest.duplicate_require", path=path, line=line_no)
                return
            seen_paths.add(path)
            requires.append(
                Requirement(
                    path=path,
                    version=version,
                    line_no=line_no,
                    indirect=_is_indirect(comment),
                )
            )
        # Everything else is a skipped directive

    for line_no, raw_line in enumerate(content.splitlines(), start=1):
        code, comment = _split_comment(raw_line)
        if not code:
            continue

        if block is not None:
            if code == ")":
                block = None
                continue
            _entry(block, code.split(), comment, line_no)
            continue

        if _EMPTY_BLOCK_RE.match(code):
            continue

        m = _BLOCK_OPEN_RE.match(code)
        if m:
            if m.group(1) not in _KNOWN_DIRECTIVES:
                raise ManifestMalformedError(source, line_no, f"unknown directive {m.group(1)!r}")
            block = m.group(1)
            block_start = line_no
            continue

        directive, *args = code.split()
        if directive not in _KNOWN_DIRECTIVES:
            raise ManifestMalformedError(source, line_no, f"unknown directive {directive!r}")
        _entry(directive, args, comment, line_no)

    if block is not None:
        raise ManifestMalformedError(source, block_start, f"unterminated {block} block")
    if not module:
        raise ManifestMalformedError(source, None, "missing module directive")

    return GoModFile(
        module=module,
        go_version=go_version,
        requires=tuple(requires),
        excludes={path: frozenset(vs) for path, vs in excludes.items()},
    )


class ManifestParser:
    """Read go.mod and resolve the published versions of every requirement.

    Lookups run concurrently, at most ``concurrency`` at a time.
    """

    def __init__(self, source: VersionSource, *, concurrency: int = 10) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._source = source
        self._concurrency = concurrency

    async def parse(
        self,
        location: str | Path | None = None,
        *,
        skip: Collection[str] = (),
    ) -> list[DependencyRecord]:
        """Return one record per requirement, in manifest order.

        Paths in ``skip`` are not looked up; their records have no available
        versions. A failed lookup is attached to its record instead of being
        raised.
        """
        manifest_path = locate_manifest(location)
        try:
            content = manifest_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestMalformedError(str(manifest_path), None, "not valid UTF-8") from exc
        except FileNotFoundError as exc:
            raise ManifestNotFoundError(str(manifest_path)) from exc
        except OSError as exc:
            raise ManifestMalformedError(
                str(manifest_path), None, f"cannot read: {exc.strerror or exc}"
            ) from exc
        gomod = parse_go_mod(content, source=str(manifest_path))

        sem = asyncio.Semaphore(self._concurrency)

        def _failed(req: Requirement, exc: VersionSourceUnavailableError) -> DependencyRecord:
            log.warning("manifest.lookup_failed", path=req.path, error=str(exc))
            return DependencyRecord(
                path=req.path,
                local_version=req.version,
                indirect=req.indirect,
                error=exc,
            )

        async def _resolve(req: Requirement) -> DependencyRecord:
            if req.path in skip:
                return DependencyRecord(
                    path=req.path, local_version=req.version, indirect=req.indirect
                )
            async with sem:
                try:
                    available = await self._lookup(req.path)
                except VersionSourceUnavailableError as exc:
                    return _failed(req, exc)
                except Exception as exc:
                    # Any other source failure still only costs this dependency
                    wrapped = VersionSourceUnavailableError(
                        req.path, f"{type(exc).__name__}: {exc}"
                    )
                    wrapped.__cause__ = exc
                    return _failed(req, wrapped)
            excluded = gomod.excludes.get(req.path, frozenset())
            return DependencyRecord(
                path=req.path,
                local_version=req.version,
                available_versions=tuple(v for v in available if v not in excluded),
                indirect=req.indirect,
            )

        records = await asyncio.gather(*(_resolve(req) for req in gomod.requires))
        log.debug("manifest.parsed", path=str(manifest_path), dependencies=len(records))
        return list(records)

    async def _lookup(self, module_path: str) -> tuple[Version, ...]:
        """Published versions, falling back to the source's current version.

        Modules with no tagged release only expose a pseudo-version through
        ``current_version``.
        """
        versions = await self._source.list_versions(module_path)
        if versions:
            return unique_versions(versions)
        current = await self._source.current_version(module_path)
        return (current,) if current is not None else ()
