"""Rich console output for the codeloop CLI."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from codeloop.core.domain.react_result import ReActResult, ReActStatus
from codeloop.core.domain.task import Task
from codeloop.core.domain.task_result import TaskResult

STATUS_STYLES = {
    ReActStatus.COMPLETED: "green",
    ReActStatus.ERROR: "red",
    ReActStatus.MAX_ITERATIONS: "yellow",
    ReActStatus.CANCELLED: "magenta",
}

PRIORITY_STYLES = {
    "LOW": "dim",
    "NORMAL": "white",
    "HIGH": "yellow",
    "CRITICAL": "bold red",
}


class CodeloopConsole:
    """Formats planner and loop results for the terminal."""

    def __init__(self, verbose: bool = False, console: Console | None = None):
        self.verbose = verbose
        self.console = console or Console()

    def print_info(self, message: str) -> None:
        self.console.print(f"[cyan]{message}[/cyan]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def print_result(self, result: ReActResult, show_history: bool = False) -> None:
        style = STATUS_STYLES[result.status]
        self.console.print(
            Panel(
                result.get_user_message(),
                title=f"[{style}]{result.status.value}[/{style}]",
                subtitle=f"{result.iterations} iteration(s)",
                border_style=style,
            )
        )
        if self.verbose:
            self.console.print(result.get_summary(), markup=False)
        if show_history:
            self.console.print(result.context.get_full_history(), markup=False)

    def print_tasks(self, tasks: list[Task]) -> None:
        table = Table(title="Planned Tasks")
        table.add_column("#", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Priority")
        table.add_column("Description", style="white")

        for index, task in enumerate(tasks, start=1):
            priority_style = PRIORITY_STYLES.get(task.priority.name, "white")
            table.add_row(
                str(index),
                task.type.value,
                f"[{priority_style}]{task.priority.name}[/{priority_style}]",
                task.description,
            )
        self.console.print(table)

    def print_task_results(self, tasks: list[Task], results: list[TaskResult]) -> None:
        descriptions = {task.id: task.description for task in tasks}
        table = Table(title="Task Results")
        table.add_column("Task", style="white")
        table.add_column("Result")
        table.add_column("Duration", style="dim")

        for result in results:
            marker = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
            duration = (
                f"{result.execution_time.total_seconds():.1f}s" if result.execution_time else "-"
            )
            table.add_row(
                descriptions.get(result.task_id, result.task_id or "?"),
                f"{marker} {result.display_message}",
                duration,
            )
        self.console.print(table)
