"""Plan command - decompose a request into tasks, optionally executing them."""

import asyncio
from typing import Optional

import typer

from codeloop.api.cli.output_formatter import CodeloopConsole
from codeloop.application.executor import AgentExecutor
from codeloop.application.factory import AgentFactory


def plan_request(
    ctx: typer.Context,
    request: str = typer.Argument(..., help="Request to plan"),
    execute: bool = typer.Option(False, "--execute", "-x", help="Execute the planned tasks"),
    work_dir: Optional[str] = typer.Option(None, "--work-dir", "-w", help="Workspace directory"),
):
    """Plan a request into prioritized tasks.

    Examples:
        codeloop plan "Refactor utils.py and add tests"

        codeloop plan "Fix the failing build" --execute
    """
    opts = ctx.obj or {}
    profile = opts.get("profile", "dev")
    out = CodeloopConsole(verbose=opts.get("verbose", False))
    executor = AgentExecutor(AgentFactory(config_dir=opts.get("config_dir", "configs")))

    async def _plan_and_maybe_execute():
        tasks = await executor.plan_request(request, profile=profile)
        results = None
        if execute:
            results = await executor.execute_plan(
                request, profile=profile, work_dir=work_dir, tasks=tasks
            )
        return tasks, results

    try:
        tasks, results = asyncio.run(_plan_and_maybe_execute())
    except (FileNotFoundError, ValueError) as e:
        out.print_error(str(e))
        raise typer.Exit(code=2)

    out.print_tasks(tasks)
    if results is not None:
        out.print_task_results(tasks, results)
        if not all(result.success for result in results):
            raise typer.Exit(code=1)
