"""Recorded workflow commands."""

from __future__ import annotations

from typing import Annotated, Optional

import typer

from cellengine.cli._helpers import (
    get_config,
    get_storage,
    output_result,
    run_async,
    workflow_summary,
)
from cellengine.engine.action_dispatch import DispatchingActionExecutor
from cellengine.engine.workflow_executor import WorkflowExecutor
from cellengine.utils.timeutils import format_ms

workflows_app = typer.Typer(help="Recorded workflow commands")


@workflows_app.command("list")
def workflows_list(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """List recorded workflows.

    Examples:
        cell-engine workflows list
        cell-engine workflows list --json
    """

    async def _list() -> None:
        config = get_config()
        storage = await get_storage(config)
        workflows = list((await storage.get_workflows()).values())

        if json_output or config.json_output:
            output_result(
                {
                    "workflows": [workflow_summary(wf) for wf in workflows],
                    "count": len(workflows),
                },
                True,
            )
            return

        if not workflows:
            typer.echo("No workflows recorded yet.")
            return
        typer.echo(f"Workflows ({len(workflows)}):")
        for wf in workflows:
            typer.echo(f"  {wf.name}  [{wf.id}]")
            typer.echo(f"    {wf.description}")
            typer.echo(
                f"    Steps: {len(wf.actions)}, Frequency: {wf.frequency}, "
                f"Last run: {format_ms(wf.last_executed)}"
            )

    run_async(_list())


@workflows_app.command("show")
def workflows_show(
    workflow_id: Annotated[str, typer.Argument(help="Workflow ID")],
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the steps of a workflow.

    Examples:
        cell-engine workflows show 3f2a...
    """

    async def _show() -> None:
        config = get_config()
        storage = await get_storage(config)
        workflow = await storage.get_workflow(workflow_id)
        if workflow is None:
            typer.echo(f"No workflow found with ID: {workflow_id}")
            raise typer.Exit(code=1)

        if json_output or config.json_output:
            output_result(workflow.to_dict(), True)
            return

        typer.echo(f"{workflow.name}: {workflow.description}")
        typer.echo(f"  Frequency: {workflow.frequency}")
        typer.echo(f"  Last run: {format_ms(workflow.last_executed)}")
        for i, action in enumerate(workflow.actions, 1):
            typer.echo(f"  {i}. [{action.type}] {action.description}")

    run_async(_show())


@workflows_app.command("run")
def workflows_run(
    workflow_id: Annotated[str, typer.Argument(help="Workflow ID")],
    base_url: Annotated[
        Optional[str],
        typer.Option("--base-url", "-b", help="Base URL for relative request URLs"),
    ] = None,
) -> None:
    """Execute a workflow's steps in order.

    API steps are sent as HTTP requests. A failing step is reported and
    the remaining steps still run.

    Examples:
        cell-engine workflows run 3f2a... --base-url https://app.example
    """

    async def _run() -> None:
        config = get_config()
        storage = await get_storage(config)
        async with DispatchingActionExecutor(base_url=base_url) as dispatch:
            executor = WorkflowExecutor(
                storage,
                dispatch,
                step_delay_seconds=config.kernel.step_delay_seconds,
            )
            workflow = await executor.execute_workflow(workflow_id)
            if workflow is None:
                typer.echo(f"No workflow found with ID: {workflow_id}")
                raise typer.Exit(code=1)
            await executor.wait_idle()
            await executor.close()

        output_result(
            {"message": f"Ran {workflow.name} ({len(workflow.actions)} steps)"},
        )

    run_async(_run())
