"""Run command - execute a request through the ReAct loop."""

import asyncio
from typing import Optional

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from codeloop.api.cli.output_formatter import CodeloopConsole
from codeloop.application.executor import AgentExecutor
from codeloop.application.factory import AgentFactory


def run_request(
    ctx: typer.Context,
    request: str = typer.Argument(..., help="What the agent should do"),
    work_dir: Optional[str] = typer.Option(None, "--work-dir", "-w", help="Workspace directory"),
    history: bool = typer.Option(False, "--history", help="Print the full step history"),
):
    """Execute a request.

    Examples:
        codeloop run "Add a Stack class in stack.py with push and pop"

        codeloop -v run "Fix the syntax errors" --work-dir ./my-project --history
    """
    opts = ctx.obj or {}
    verbose = opts.get("verbose", False)
    out = CodeloopConsole(verbose=verbose)
    executor = AgentExecutor(AgentFactory(config_dir=opts.get("config_dir", "configs")))

    out.print_info(f"Request: {request}")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=out.console,
    ) as progress:
        spinner = progress.add_task("[>] Working...", total=None)

        def progress_callback(update):
            if verbose:
                progress.update(spinner, description=f"[>] {update.event_type}: {update.message[:80]}")

        try:
            result = asyncio.run(
                executor.execute_request(
                    request,
                    profile=opts.get("profile", "dev"),
                    work_dir=work_dir,
                    progress_callback=progress_callback,
                )
            )
        except (FileNotFoundError, ValueError) as e:
            out.print_error(str(e))
            raise typer.Exit(code=2)

    out.print_result(result, show_history=history)
    if not result.success:
        raise typer.Exit(code=1)
