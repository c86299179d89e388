"""Async Go module proxy client with retries."""

from __future__ import annotations

import asyncio
import os

import httpx
import structlog

from modcheck.engines.version_resolution.errors import (
    InvalidVersionError,
    VersionSourceUnavailableError,
)
from modcheck.engines.version_resolution.versions import Version, parse_version

log = structlog.get_logger("modcheck.engine")

DEFAULT_PROXY = "https://proxy.golang.org"

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 0.5  # seconds

# Proxy answers for modules it does not know
_NOT_FOUND = (404, 410)


def default_proxy_url() -> str:
    """First usable entry of ``$GOPROXY``, or the public proxy.

    ``direct`` and ``off`` are not HTTP endpoints and are skipped.
    """
    raw = os.environ.get("GOPROXY", "")
    for entry in raw.replace("|", ",").split(","):
        entry = entry.strip()
        if entry.startswith(("http://", "https://")):
            return entry.rstrip("/")
    return DEFAULT_PROXY


def escape_module_path(module_path: str) -> str:
    """Apply the proxy protocol's case encoding: ``Azure`` -> ``!azure``."""
    return "".join(f"!{c.lower()}" if c.isupper() else c for c in module_path)


class GoProxyClient:
    """Thin async wrapper around the GOPROXY protocol.

    Implements the :class:`VersionSource` protocol.
    """

    def __init__(self, base_url: str | None = None, *, timeout: float = 15.0) -> None:
        self.base_url = (base_url or default_proxy_url()).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "text/plain, application/json"},
            timeout=timeout,
            follow_redirects=True,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GoProxyClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── VersionSource ──────────────────────────────────────────────────────

    async def list_versions(self, module_path: str) -> list[Version]:
        """Tagged versions published for ``module_path`` (``@v/list``).

        Lines that are not valid semantic versions are skipped.
        """
        resp = await self._get(module_path, f"/{escape_module_path(module_path)}/@v/list")
        if resp is None:
            return []

        versions: list[Version] = []
        for line in resp.text.splitlines():
            token = line.strip()
            if not token:
                continue
            try:
                versions.append(parse_version(token))
            except InvalidVersionError:
                log.debug("proxy.skip_version", module=module_path, version=token)
        return versions

    async def current_version(self, module_path: str) -> Version | None:
        """Version the proxy resolves ``@latest`` to (may be a pseudo-version)."""
        resp = await self._get(module_path, f"/{escape_module_path(module_path)}/@latest")
        if resp is None:
            return None
        try:
            return parse_version(resp.json()["Version"])
        except (ValueError, KeyError, TypeError) as exc:
            raise VersionSourceUnavailableError(
                module_path, f"unexpected @latest payload: {exc}"
            ) from exc

    # ── internal ───────────────────────────────────────────────────────────

    async def _get(self, module_path: str, url: str) -> httpx.Response | None:
        """GET ``url``; ``None`` for unknown modules.

        Retries 5xx responses, timeouts and transport errors with exponential
        backoff, then raises :class:`VersionSourceUnavailableError`.
        """
        try:
            resp = await self._request_with_retry(url)
        except httpx.HTTPError as exc:
            raise VersionSourceUnavailableError(module_path, str(exc) or type(exc).__name__) from exc
        if resp.status_code in _NOT_FOUND:
            log.debug("proxy.not_found", module=module_path, status=resp.status_code)
            return None
        return resp

    async def _request_with_retry(self, url: str) -> httpx.Response:
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._client.get(url)

                if resp.status_code in _NOT_FOUND:
                    return resp

                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp

                log.warning(
                    "proxy.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                log.warning(
                    "proxy.transport_error",
                    url=url,
                    error=type(exc).__name__,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = exc

            if attempt < _MAX_RETRIES - 1:
                delay = _RETRY_BASE_DELAY * (2**attempt)
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]
