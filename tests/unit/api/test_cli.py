"""
Tests for the codeloop CLI.

The executor is patched, so commands run without profiles or a model.
"""

from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from codeloop import __version__
from codeloop.api.cli.main import app
from codeloop.core.domain.react_context import ReActContext
from codeloop.core.domain.react_result import ReActResult
from codeloop.core.domain.task import Task, TaskPriority, TaskType
from codeloop.core.domain.task_result import TaskResult


def completed_result(message="Created stack.py"):
    context = ReActContext("Create stack.py")
    context.increment_iteration()
    return ReActResult.completed(context, message)


def mock_executor_class(**methods):
    executor = MagicMock()
    for name, value in methods.items():
        setattr(executor, name, value)
    return MagicMock(return_value=executor), executor


class TestMainCLI:
    def setup_method(self):
        self.runner = CliRunner()

    def test_cli_help(self):
        result = self.runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.stdout
        assert "plan" in result.stdout

    def test_version(self):
        result = self.runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"codeloop version {__version__}" in result.stdout


class TestRunCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def test_run_success(self):
        executor_class, executor = mock_executor_class(
            execute_request=AsyncMock(return_value=completed_result())
        )

        with patch("codeloop.api.cli.commands.run.AgentExecutor", executor_class):
            result = self.runner.invoke(
                app, ["--profile", "test", "run", "Create stack.py", "--work-dir", "/tmp/ws"]
            )

        assert result.exit_code == 0
        assert "Created stack.py" in result.stdout
        kwargs = executor.execute_request.await_args.kwargs
        assert kwargs["profile"] == "test"
        assert kwargs["work_dir"] == "/tmp/ws"

    def test_run_failure_exit_code(self):
        context = ReActContext("Create stack.py")
        failed = ReActResult.error(context, "model offline")
        executor_class, _ = mock_executor_class(execute_request=AsyncMock(return_value=failed))

        with patch("codeloop.api.cli.commands.run.AgentExecutor", executor_class):
            result = self.runner.invoke(app, ["run", "Create stack.py"])

        assert result.exit_code == 1
        assert "model offline" in result.stdout

    def test_run_missing_profile(self):
        executor_class, _ = mock_executor_class(
            execute_request=AsyncMock(side_effect=FileNotFoundError("Profile not found: prod"))
        )

        with patch("codeloop.api.cli.commands.run.AgentExecutor", executor_class):
            result = self.runner.invoke(app, ["--profile", "prod", "run", "anything"])

        assert result.exit_code == 2
        assert "Profile not found" in result.stdout

    def test_run_with_history(self):
        executor_class, _ = mock_executor_class(
            execute_request=AsyncMock(return_value=completed_result())
        )

        with patch("codeloop.api.cli.commands.run.AgentExecutor", executor_class):
            result = self.runner.invoke(app, ["run", "Create stack.py", "--history"])

        assert result.exit_code == 0


class TestPlanCommand:
    def setup_method(self):
        self.runner = CliRunner()

    def test_plan_prints_tasks(self):
        tasks = [Task.create("Fix problem: parser", TaskType.CODE_MODIFICATION, TaskPriority.CRITICAL)]
        executor_class, executor = mock_executor_class(plan_request=AsyncMock(return_value=tasks))

        with patch("codeloop.api.cli.commands.plan.AgentExecutor", executor_class):
            result = self.runner.invoke(app, ["plan", "fix parser"])

        assert result.exit_code == 0
        assert "CRITICAL" in result.stdout
        executor.execute_plan.assert_not_called()

    def test_plan_and_execute(self):
        tasks = [Task.create("Analyze code", TaskType.CODE_ANALYSIS)]
        results = [TaskResult.succeeded("Looks fine").for_task(tasks[0].id)]
        executor_class, executor = mock_executor_class(
            plan_request=AsyncMock(return_value=tasks),
            execute_plan=AsyncMock(return_value=results),
        )

        with patch("codeloop.api.cli.commands.plan.AgentExecutor", executor_class):
            result = self.runner.invoke(app, ["plan", "analyze", "--execute"])

        assert result.exit_code == 0
        assert "OK" in result.stdout
        assert executor.execute_plan.await_args.kwargs["tasks"] == tasks

    def test_plan_execute_failure_exit_code(self):
        tasks = [Task.create("Analyze code", TaskType.CODE_ANALYSIS)]
        results = [TaskResult.failure("model offline").for_task(tasks[0].id)]
        executor_class, _ = mock_executor_class(
            plan_request=AsyncMock(return_value=tasks),
            execute_plan=AsyncMock(return_value=results),
        )

        with patch("codeloop.api.cli.commands.plan.AgentExecutor", executor_class):
            result = self.runner.invoke(app, ["plan", "analyze", "-x"])

        assert result.exit_code == 1
