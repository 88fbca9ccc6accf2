"""cell-engine CLI main entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer

from cellengine.cli._helpers import (
    configure_logging,
    get_config,
    get_storage,
    output_result,
    run_async,
)
from cellengine.cli.commands.patterns import patterns_app
from cellengine.cli.commands.workflows import workflows_app
from cellengine.core.prediction import AutomationSuggestion, Prediction
from cellengine.engine.action_catalog import ActionCatalog
from cellengine.engine.predictor import Predictor
from cellengine.kernel import PredictionKernel
from cellengine.sources.jsonl import JsonLinesEventSource

# Main app
app = typer.Typer(
    name="cell-engine",
    help="cell-engine - learn action sequences, predict the next step, automate workflows",
    no_args_is_help=True,
)

app.add_typer(patterns_app, name="patterns")
app.add_typer(workflows_app, name="workflows")

config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")


@app.callback()
def _root(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    configure_logging(verbose or get_config().verbose)


def _prediction_dict(prediction: Prediction) -> dict[str, Any]:
    return {
        "confidence": round(prediction.confidence, 4),
        "action_id": prediction.action.id,
        "description": prediction.action.description,
        "context": prediction.context,
    }


@app.command()
def replay(
    path: Annotated[Path, typer.Argument(help="JSON-lines event file", exists=True)],
    accept: Annotated[
        bool,
        typer.Option("--accept", "-a", help="Save automation suggestions as workflows"),
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Feed a captured event file through the kernel.

    Each line is an object with ``id``, ``timestamp`` and either a
    ``signature`` or ``method`` + ``url``. Predictions and automation
    suggestions are printed as they occur.

    Examples:
        cell-engine replay session.jsonl
        cell-engine replay session.jsonl --accept --json
    """

    async def _replay() -> None:
        config = get_config()
        as_json = json_output or config.json_output
        storage = await get_storage(config)
        kernel = PredictionKernel(storage, config=config.kernel)
        source = JsonLinesEventSource(path)
        kernel.attach_source(source)

        predictions: list[dict[str, Any]] = []
        suggestions: list[dict[str, Any]] = []

        def _on_prediction(prediction: Prediction) -> None:
            predictions.append(_prediction_dict(prediction))
            if not as_json:
                typer.echo(
                    f"  predict {prediction.action.description} "
                    f"({prediction.confidence:.2f}) {prediction.context}"
                )

        async def _on_suggestion(suggestion: AutomationSuggestion) -> None:
            entry: dict[str, Any] = {
                "current": suggestion.current.signature,
                "next": suggestion.next.signature,
                "count": suggestion.count,
            }
            if accept:
                workflow = await kernel.accept_suggestion(suggestion)
                entry["workflow_id"] = workflow.id if workflow else None
            suggestions.append(entry)
            if not as_json:
                typer.secho(
                    f"  repeated {suggestion.current.signature} → "
                    f"{suggestion.next.signature} ({suggestion.count}x)",
                    fg=typer.colors.YELLOW,
                )

        kernel.on_prediction(_on_prediction, min_confidence=config.kernel.suggestion_threshold)
        kernel.on_automation_suggestion(_on_suggestion)

        await kernel.start()
        try:
            emitted = await source.replay()
            report = await kernel.rebuild_patterns()
        finally:
            await kernel.stop()

        output_result(
            {
                "events": emitted,
                "predictions": predictions if as_json else len(predictions),
                "suggestions": suggestions if as_json else len(suggestions),
                "patterns_found": report.patterns_found,
            },
            as_json,
        )

    run_async(_replay())


@app.command()
def predict(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Predict the next action from the tail of the stored event log.

    Examples:
        cell-engine predict
    """

    async def _predict() -> None:
        config = get_config()
        as_json = json_output or config.json_output
        storage = await get_storage(config)
        catalog = ActionCatalog(storage)
        await catalog.load()
        event_log = await storage.read_event_log()
        window = event_log[-config.kernel.max_sequence_length :]

        prediction = await Predictor(storage, catalog, config.kernel).predict(window)
        if prediction is None:
            output_result(
                {"prediction": None} if as_json else {"message": "No prediction."},
                as_json,
            )
            return

        if as_json:
            output_result({"prediction": _prediction_dict(prediction)}, True)
            return
        typer.echo(f"{prediction.action.description} ({prediction.confidence:.2f})")
        typer.secho(prediction.context, fg=typer.colors.BRIGHT_BLACK)

    run_async(_predict())


@app.command()
def clear(
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation")] = False,
) -> None:
    """Delete the current namespace's events, patterns, actions and workflows.

    Examples:
        cell-engine clear --force
    """
    config = get_config()
    if not force:
        typer.confirm(f"Clear all data in namespace '{config.current_namespace}'?", abort=True)

    async def _clear() -> None:
        storage = await get_storage(config)
        await storage.clear()
        output_result({"message": f"Cleared namespace '{config.current_namespace}'"})

    run_async(_clear())


@config_app.command("show")
def config_show(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the effective configuration.

    Examples:
        cell-engine config show --json
    """
    config = get_config()
    data = {
        "config_path": str(config.config_path),
        "database": str(config.get_db_path()),
        **config.kernel.to_dict(),
    }
    output_result(data, json_output or config.json_output)


@config_app.command("use")
def config_use(
    namespace: Annotated[str, typer.Argument(help="Namespace to switch to")],
) -> None:
    """Switch the current namespace. Each namespace has its own database.

    Examples:
        cell-engine config use crm
    """
    config = get_config()
    try:
        config.switch_namespace(namespace)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1) from e
    typer.secho(f"Switched to namespace: {namespace}", fg=typer.colors.GREEN)


@app.command()
def version() -> None:
    """Show version information."""
    from cellengine import __version__

    typer.echo(f"cell-engine v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
