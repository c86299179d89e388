"""CLI entry point: modcheck.

Subcommands:
    modcheck check                      # report newer versions for ./go.mod
    modcheck --path ../svc check --json # machine-readable report
    modcheck update --strategy latest-major
"""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, NoReturn

import click
import structlog

from modcheck.core.config import Settings, load_settings
from modcheck.core.logging import setup_logging
from modcheck.engines.version_resolution import (
    STRATEGY_REGISTRY,
    Checker,
    GoProxyClient,
    IgnorePolicy,
    ResolutionMap,
    UpdateOutcome,
    Updater,
    get_strategy,
)
from modcheck.engines.version_resolution.errors import ModcheckError
from modcheck.engines.version_resolution.models import CheckResult
from modcheck.engines.version_resolution.versions import format_version

log = structlog.get_logger("modcheck.cli")


@contextmanager
def _cancel_on_signals(cancel_event: asyncio.Event) -> Iterator[None]:
    """Set ``cancel_event`` on SIGINT/SIGTERM for the duration of the block."""
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not supported on this platform or not in the main thread
            pass
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def _run_check(
    settings: Settings, path: str | None, strategy: str, concurrency: int
) -> ResolutionMap:
    cancel_event = asyncio.Event()
    with _cancel_on_signals(cancel_event):
        async with GoProxyClient(settings.proxy, timeout=settings.timeout) as client:
            checker = Checker(
                client,
                IgnorePolicy.from_settings(settings),
                get_strategy(strategy),
                concurrency=concurrency,
                cancel_event=cancel_event,
            )
            return await checker.check(path)


# ── rendering ────────────────────────────────────────────────────────────


def _status(result: CheckResult) -> str:
    if result.error is not None:
        return "ignored" if result.is_ignored else f"error: {result.error}"
    if result.has_update:
        return "update available"
    return "up to date"


def _result_row(result: CheckResult) -> dict[str, Any]:
    return {
        "local_version": format_version(result.local_version),
        "latest_version": (
            format_version(result.latest_version) if result.latest_version is not None else None
        ),
        "error": result.error.kind if result.error else None,
        "message": str(result.error) if result.error else None,
    }


def _print_results(results: ResolutionMap, as_json: bool) -> None:
    if as_json:
        rows = {path: _result_row(r) for path, r in sorted(results.items())}
        click.echo(json.dumps(rows, indent=2))
        return

    if not results:
        click.echo("No dependencies found.")
        return

    updates = sum(1 for r in results.values() if r.has_update)
    click.echo(f"Checked {len(results)} dependencies, {updates} update(s) available\n")

    width = max(len(p) for p in results)
    for path, r in sorted(results.items()):
        latest = format_version(r.latest_version) if r.latest_version is not None else "-"
        click.echo(
            f"  {path:<{width}}  {format_version(r.local_version):<12} "
            f"{latest:<12} {_status(r)}"
        )


def _print_outcomes(outcomes: dict[str, UpdateOutcome], as_json: bool) -> None:
    if as_json:
        rows = {
            path: {
                "previous": format_version(o.previous),
                "updated": format_version(o.updated) if o.updated is not None else None,
                "error": o.error.kind if o.error else None,
                "message": str(o.error) if o.error else None,
            }
            for path, o in sorted(outcomes.items())
        }
        click.echo(json.dumps(rows, indent=2))
        return

    if not outcomes:
        click.echo("Nothing to update.")
        return

    for path, o in sorted(outcomes.items()):
        if o.updated is not None:
            click.echo(f"  {path} {format_version(o.previous)} -> {format_version(o.updated)}")
        else:
            click.echo(f"  {path} {format_version(o.previous)}: failed ({o.error})")


# ── commands ─────────────────────────────────────────────────────────────


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def _strategy_option(f):
    return click.option(
        "--strategy",
        type=click.Choice(sorted(STRATEGY_REGISTRY)),
        default=None,
        help="Version selection strategy (default from config, else 'latest')",
    )(f)


def _concurrency_option(f):
    return click.option(
        "--concurrency",
        type=click.IntRange(min=1),
        default=None,
        help="Max simultaneous version lookups",
    )(f)


@click.group()
@click.option("--config", "config_path", default=None, help="Config file (default: modcheck.yml)")
@click.option("--path", default=None, help="go.mod file or its parent directory")
@click.option("--json", "as_json", is_flag=True, help="Print JSON result")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, path: str | None, as_json: bool, verbose: bool) -> None:
    """Check and update Go module dependencies."""
    setup_logging("DEBUG" if verbose else None)
    manifest_dir = None
    if path is not None:
        p = Path(path)
        manifest_dir = p if p.is_dir() else p.parent
    try:
        settings = load_settings(config_path, manifest_dir)
    except ModcheckError as exc:
        _fail(exc)
    ctx.obj = {"settings": settings, "path": path, "as_json": as_json}


@main.command("check")
@_strategy_option
@_concurrency_option
@click.pass_obj
def check(obj: dict[str, Any], strategy: str | None, concurrency: int | None) -> None:
    """Report the latest available version of every dependency."""
    settings: Settings = obj["settings"]
    try:
        results = asyncio.run(
            _run_check(
                settings,
                obj["path"],
                strategy or settings.strategy,
                concurrency or settings.concurrency,
            )
        )
    except ModcheckError as exc:
        _fail(exc)
    _print_results(results, obj["as_json"])


@main.command("update")
@_strategy_option
@_concurrency_option
@click.pass_obj
def update(obj: dict[str, Any], strategy: str | None, concurrency: int | None) -> None:
    """Rewrite go.mod pins to the latest selected versions."""
    settings: Settings = obj["settings"]
    try:
        results = asyncio.run(
            _run_check(
                settings,
                obj["path"],
                strategy or settings.strategy,
                concurrency or settings.concurrency,
            )
        )
        outcomes = Updater(obj["path"]).apply(results)
    except ModcheckError as exc:
        _fail(exc)
    log.info("cli.update_done", attempted=len(outcomes))
    _print_outcomes(outcomes, obj["as_json"])


if __name__ == "__main__":
    main()
