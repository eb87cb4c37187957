"""codeloop CLI entry point."""

import logging

import structlog
import typer
from rich.console import Console

from codeloop.api.cli.commands import plan, run

app = typer.Typer(
    name="codeloop",
    help="codeloop - ReAct coding agent for Python projects",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command("run", help="Execute a request through the ReAct loop")(run.run_request)
app.command("plan", help="Plan a request into tasks")(plan.plan_request)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


@app.callback()
def main(
    ctx: typer.Context,
    profile: str = typer.Option("dev", "--profile", "-p", help="Configuration profile"),
    config_dir: str = typer.Option("configs", "--config-dir", help="Directory holding profile YAML files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """codeloop agent CLI."""
    configure_logging(verbose)
    ctx.obj = {"profile": profile, "config_dir": config_dir, "verbose": verbose}


@app.command()
def version():
    """Show codeloop version."""
    from codeloop import __version__

    console.print(f"[bold blue]codeloop[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
