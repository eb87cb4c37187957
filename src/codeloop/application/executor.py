"""
Application Layer - Agent Executor Service

Service layer shared by the CLI and any automation driver.

The AgentExecutor:
- Creates controllers and planners using AgentFactory based on profile
- Runs a request directly through the ReAct loop
- Plans a request into tasks and executes them in priority order, tracking
  the Task lifecycle and producing one TaskResult per executed task
- Forwards progress updates to an optional callback
"""

from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

import structlog

from codeloop.application.factory import AgentFactory
from codeloop.core.domain.events import ProgressUpdate
from codeloop.core.domain.loop_controller import ReActLoopController
from codeloop.core.domain.react_result import ReActResult
from codeloop.core.domain.task import Task
from codeloop.core.domain.task_result import TaskResult
from codeloop.core.interfaces.llm import CompletionProviderProtocol

logger = structlog.get_logger()

ProgressCallback = Callable[[ProgressUpdate], None]


class AgentExecutor:
    """Service layer orchestrating planning and loop execution."""

    def __init__(self, factory: Optional[AgentFactory] = None):
        """
        Initialize AgentExecutor with optional factory.

        Args:
            factory: Optional AgentFactory instance. If not provided,
                    creates a default factory.
        """
        self.factory = factory or AgentFactory()
        self.logger = logger.bind(component="agent_executor")

    async def execute_request(
        self,
        request: str,
        profile: str = "dev",
        work_dir: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        llm_provider: Optional[CompletionProviderProtocol] = None,
    ) -> ReActResult:
        """
        Run a request through the ReAct loop.

        Args:
            request: Natural-language request
            profile: Configuration profile
            work_dir: Optional workspace override
            progress_callback: Optional callback for progress updates
            llm_provider: Optional provider overriding the configured one

        Returns:
            ReActResult of the run

        Raises:
            FileNotFoundError: If the profile does not exist
        """
        start_time = datetime.now()
        self.logger.info("request.execution.started", request=request[:100], profile=profile)

        controller = self.factory.create_controller(
            profile,
            work_dir=work_dir,
            progress_callback=progress_callback,
            llm_provider=llm_provider,
        )
        result = await controller.execute_with_loop(request)

        self.logger.info(
            "request.execution.finished",
            status=result.status.value,
            iterations=result.iterations,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
        )
        return result

    async def plan_request(
        self,
        request: str,
        profile: str = "dev",
        llm_provider: Optional[CompletionProviderProtocol] = None,
    ) -> list[Task]:
        """Plan a request into tasks without executing them."""
        planner = self.factory.create_planner(profile, llm_provider=llm_provider)
        return await planner.plan_tasks(request)

    async def execute_plan(
        self,
        request: str,
        profile: str = "dev",
        work_dir: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        llm_provider: Optional[CompletionProviderProtocol] = None,
        tasks: Optional[list[Task]] = None,
    ) -> list[TaskResult]:
        """
        Plan a request (unless tasks are given) and execute every task.

        Tasks run one after another, highest priority first; tasks with equal
        priority keep their planned order. Cancelled tasks are skipped.

        Returns:
            One TaskResult per executed task, stamped with the task id
        """
        if tasks is None:
            tasks = await self.plan_request(request, profile, llm_provider=llm_provider)

        results = []
        for task in self.order_by_priority(tasks):
            if task.is_cancelled():
                self.logger.info("task.skipped_cancelled", task_id=task.id)
                continue

            controller = self.factory.create_controller(
                profile,
                work_dir=work_dir,
                progress_callback=progress_callback,
                llm_provider=llm_provider,
            )
            results.append(await self.execute_task(task, controller, progress_callback))

        self.logger.info(
            "plan.execution.finished",
            task_count=len(tasks),
            executed=len(results),
            succeeded=sum(1 for r in results if r.success),
        )
        return results

    async def execute_task(
        self,
        task: Task,
        controller: ReActLoopController,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> TaskResult:
        """Run one task through a controller and record its lifecycle."""
        task.mark_started()
        self._notify(progress_callback, "task_started", task.description, task_id=task.id)
        self.logger.info(
            "task.started",
            task_id=task.id,
            type=task.type.value,
            priority=task.priority.name,
        )

        result = await controller.execute_with_loop(self._task_request(task))
        data = {"status": result.status.value, "iterations": result.iterations}

        if result.success:
            task.mark_completed()
            task_result = TaskResult.succeeded(result.final_message or "Task completed", data)
        else:
            task.mark_failed(result.get_user_message())
            task_result = replace(TaskResult.failure(result.get_user_message()), data=data)

        self._notify(
            progress_callback,
            "task_finished",
            task_result.display_message,
            task_id=task.id,
            success=task_result.success,
        )
        self.logger.info("task.finished", task_id=task.id, status=task.status.value)
        return task_result.for_task(task.id, task.duration)

    @staticmethod
    def order_by_priority(tasks: list[Task]) -> list[Task]:
        return sorted(tasks, key=lambda task: task.priority.weight, reverse=True)

    @staticmethod
    def _task_request(task: Task) -> str:
        original = task.get_parameter("original_request", str) or task.get_parameter("request", str)
        if original and original != task.description:
            return f"{task.description}\n\nOriginal request: {original}"
        return task.description

    def _notify(
        self,
        callback: Optional[ProgressCallback],
        event_type: str,
        message: str,
        **details,
    ) -> None:
        if callback is None:
            return
        try:
            callback(ProgressUpdate(datetime.now(), event_type, message, details))
        except Exception as e:
            self.logger.warning("progress_callback_failed", error=str(e)[:200])
