"""Shared CLI helpers for configuration, storage, and output formatting."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, TypeVar

import typer

from cellengine.storage.sqlite_store import SQLiteStorage
from cellengine.unified_config import UnifiedConfig
from cellengine.unified_config import get_config as _get_unified_config

if TYPE_CHECKING:
    from cellengine.core.workflow import Workflow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Storages opened during a CLI command, closed before the event loop
# shuts down so aiosqlite's worker thread exits cleanly.
_active_storages: list[SQLiteStorage] = []


def get_config() -> UnifiedConfig:
    """Get CLI configuration."""
    return _get_unified_config()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async CLI command with storage cleanup.

    Replaces bare ``asyncio.run()`` so aiosqlite connections are closed
    *before* the event loop is torn down.
    """

    async def _with_cleanup() -> T:
        try:
            return await coro
        finally:
            for storage in _active_storages:
                try:
                    await storage.close()
                except Exception:
                    logger.debug("Failed to close storage during cleanup", exc_info=True)
            _active_storages.clear()
            await asyncio.sleep(0)

    return asyncio.run(_with_cleanup())


async def get_storage(config: UnifiedConfig, *, namespace: str | None = None) -> SQLiteStorage:
    """Open the SQLite store for *namespace* (default: the configured one)."""
    name = namespace or config.current_namespace
    storage = SQLiteStorage(config.get_db_path(name), namespace=name)
    await storage.initialize()
    _active_storages.append(storage)
    return storage


def workflow_summary(workflow: Workflow) -> dict[str, Any]:
    return {
        "id": workflow.id,
        "name": workflow.name,
        "description": workflow.description,
        "steps": len(workflow.actions),
        "frequency": workflow.frequency,
        "last_executed": workflow.last_executed,
    }


def output_result(data: dict[str, Any], as_json: bool = False) -> None:
    """Output result in appropriate format."""
    if as_json:
        typer.echo(json.dumps(data, indent=2, default=str))
    elif "error" in data:
        typer.secho(f"Error: {data['error']}", fg=typer.colors.RED)
    elif "message" in data:
        typer.secho(data["message"], fg=typer.colors.GREEN)
    else:
        for key, value in data.items():
            typer.echo(f"{key}: {value}")
