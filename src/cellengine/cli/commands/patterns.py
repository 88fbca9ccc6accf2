"""Pattern analysis commands."""

from __future__ import annotations

from typing import Annotated

import typer

from cellengine.cli._helpers import get_config, get_storage, output_result, run_async
from cellengine.engine.pattern_store import PatternStore
from cellengine.engine.repetition_watcher import RepetitionWatcher

patterns_app = typer.Typer(help="N-gram pattern analysis")


@patterns_app.command("rebuild")
def patterns_rebuild(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Analyze the stored event log and add its n-gram counts.

    Counts are additive: every rebuild adds the log's occurrences on top
    of what is already stored.

    Examples:
        cell-engine patterns rebuild
    """

    async def _rebuild() -> None:
        config = get_config()
        storage = await get_storage(config)
        store = PatternStore(storage, config.kernel.max_pattern_length)
        report = await store.rebuild()
        output_result(
            {
                "events_analyzed": report.events_analyzed,
                "patterns_found": report.patterns_found,
                "occurrences_added": report.occurrences_added,
            },
            json_output or config.json_output,
        )

    run_async(_rebuild())


@patterns_app.command("top")
def patterns_top(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Patterns to show")] = 10,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the most frequent patterns.

    Examples:
        cell-engine patterns top
        cell-engine patterns top -n 20 --json
    """

    async def _top() -> None:
        config = get_config()
        storage = await get_storage(config)
        store = PatternStore(storage, config.kernel.max_pattern_length)
        ranked = await store.top(limit)

        if json_output or config.json_output:
            output_result(
                {
                    "patterns": [{"ids": list(key), "count": count} for key, count in ranked],
                    "count": len(ranked),
                },
                True,
            )
            return

        if not ranked:
            typer.echo("No patterns yet. Replay some events, then run 'patterns rebuild'.")
            return
        typer.echo(f"Top patterns ({len(ranked)}):")
        for key, count in ranked:
            typer.echo(f"  {count:>5}  {' → '.join(key)}")

    run_async(_top())


@patterns_app.command("suggest")
def patterns_suggest(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List transitions in the stored event log repeated often enough to automate.

    Examples:
        cell-engine patterns suggest
        cell-engine patterns suggest --json
    """

    async def _suggest() -> None:
        config = get_config()
        storage = await get_storage(config)
        watcher = RepetitionWatcher(
            threshold=config.kernel.repetition_threshold,
            cooldown_ms=config.kernel.suggestion_cooldown_ms,
        )
        suggestions = watcher.scan(await storage.read_event_log())

        if json_output or config.json_output:
            output_result(
                {
                    "suggestions": [
                        {
                            "current": s.current.signature,
                            "next": s.next.signature,
                            "count": s.count,
                        }
                        for s in suggestions
                    ],
                    "count": len(suggestions),
                },
                True,
            )
            return

        if not suggestions:
            typer.echo("No repeated transitions found.")
            return
        for s in suggestions:
            typer.echo(f"  {s.count:>3}x  {s.current.signature} → {s.next.signature}")

    run_async(_suggest())
