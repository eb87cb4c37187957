"""
Task Planner

Turns a free-text request into an ordered list of Tasks. Planning never
fails from the caller's point of view; it degrades through four tiers:

1. Strict: the model response is validated against the PlanResponse schema.
2. Tolerant: bracket-balanced extraction and targeted field patterns
   recover tasks from malformed JSON (flat parameters only).
3. Keywords: if the model call or both parsing tiers fail, a deterministic
   keyword classifier derives tasks from the request text.
4. Generic: a single COMPOSITE task wrapping the request.

The TaskPlanner is dependency-injected with a completion provider and has
no other I/O.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import ValidationError

from codeloop.core.domain.errors import PlanParseError
from codeloop.core.domain.json_extraction import (
    extract_array,
    extract_flat_parameters,
    extract_json_block,
    extract_object,
    extract_string_field,
    remove_object,
    split_objects,
    strip_trailing_commas,
)
from codeloop.core.domain.schemas import PlannedTaskSpec, PlanResponse
from codeloop.core.domain.task import Task, TaskPriority, TaskType
from codeloop.core.interfaces.llm import CompletionProviderProtocol
from codeloop.core.prompts.planning_prompts import build_planning_prompt


@dataclass(frozen=True)
class KeywordRule:
    """Maps request keywords to a fallback task."""

    keywords: tuple[str, ...]
    type: TaskType
    priority: TaskPriority
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def matches(self, lowered_request: str) -> bool:
        return any(keyword in lowered_request for keyword in self.keywords)


KEYWORD_RULES = (
    KeywordRule(
        keywords=("analyze", "analyse", "check", "inspect", "review"),
        type=TaskType.CODE_ANALYSIS,
        priority=TaskPriority.NORMAL,
        description="Analyze code: {request}",
        parameters={"scope": "project"},
    ),
    KeywordRule(
        keywords=("refactor", "optimize", "optimise", "improve"),
        type=TaskType.CODE_MODIFICATION,
        priority=TaskPriority.HIGH,
        description="Refactor code: {request}",
        parameters={"backup": True},
    ),
    KeywordRule(
        keywords=("test", "pytest", "junit"),
        type=TaskType.CODE_MODIFICATION,
        priority=TaskPriority.NORMAL,
        description="Write tests: {request}",
        parameters={"test_type": "unit", "framework": "pytest"},
    ),
    KeywordRule(
        keywords=("doc", "comment", "docstring"),
        type=TaskType.CODE_MODIFICATION,
        priority=TaskPriority.LOW,
        description="Add documentation: {request}",
        parameters={"format": "docstring"},
    ),
    KeywordRule(
        keywords=("fix", "bug", "error", "broken"),
        type=TaskType.CODE_MODIFICATION,
        priority=TaskPriority.CRITICAL,
        description="Fix problem: {request}",
        parameters={"backup": True, "validate": True},
    ),
)


class TaskPlanner:
    """
    Request -> Task list planner with LLM analysis and keyword fallback.

    plan_tasks() always returns at least one task and never raises.
    """

    DEFAULT_TIMEOUT_SECONDS = 120.0

    def __init__(
        self,
        llm_provider: CompletionProviderProtocol,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize TaskPlanner.

        Args:
            llm_provider: Completion collaborator used for request analysis
            timeout_seconds: Upper bound for the model call
        """
        self.llm_provider = llm_provider
        self.timeout_seconds = timeout_seconds
        self.logger = structlog.get_logger().bind(component="task_planner")

    async def plan_tasks(self, user_request: str) -> list[Task]:
        """
        Plan the tasks needed to satisfy a request.

        Args:
            user_request: Free-text user request

        Returns:
            Non-empty list of pending tasks, in execution order
        """
        request = (user_request or "").strip()
        self.logger.info("planning_started", request=request[:100])

        try:
            tasks = await self._plan_with_model(request)
            if tasks:
                self.logger.info("planning_completed", source="model", task_count=len(tasks))
                return tasks
            self.logger.info("planning_model_returned_no_tasks")
        except Exception as e:
            self.logger.warning(
                "planning_fallback_keywords",
                error_type=type(e).__name__,
                error=str(e)[:200],
            )

        tasks = self._plan_with_keywords(request)
        if tasks:
            self.logger.info("planning_completed", source="keywords", task_count=len(tasks))
            return tasks

        self.logger.info("planning_completed", source="generic", task_count=1)
        return [self._generic_task(request)]

    def plan_tasks_sync(self, user_request: str) -> list[Task]:
        """Blocking variant of plan_tasks() for synchronous callers."""
        return asyncio.run(self.plan_tasks(user_request))

    async def _plan_with_model(self, request: str) -> list[Task]:
        prompt = build_planning_prompt(request)
        response = await asyncio.wait_for(
            self.llm_provider.chat(prompt), timeout=self.timeout_seconds
        )
        specs, reasoning = self.parse_plan(response)
        self.logger.debug("planning_model_reasoning", reasoning=(reasoning or "")[:300])
        return [self._task_from_spec(spec, request) for spec in specs]

    def parse_plan(self, response: str) -> tuple[list[PlannedTaskSpec], str | None]:
        """
        Decode a planning response into task specs and the model's reasoning.

        Raises:
            PlanParseError: If neither tier can locate a task list
        """
        block = extract_json_block(response or "")
        if block is None:
            raise PlanParseError("No JSON object found in planning response")

        for candidate in dict.fromkeys((block, strip_trailing_commas(block))):
            try:
                plan = PlanResponse.model_validate_json(candidate)
                return plan.tasks, plan.reasoning
            except ValidationError as e:
                self.logger.debug("planning_strict_parse_failed", error=str(e)[:200])

        return self._parse_plan_tolerant(block)

    def _parse_plan_tolerant(self, block: str) -> tuple[list[PlannedTaskSpec], str | None]:
        tasks_array = extract_array(block, "tasks")
        if tasks_array is None:
            raise PlanParseError("No 'tasks' array found in planning response")

        specs = []
        for task_text in split_objects(tasks_array):
            top_level = remove_object(task_text, "parameters")
            specs.append(
                PlannedTaskSpec(
                    description=extract_string_field(top_level, "description"),
                    type=extract_string_field(top_level, "type"),
                    priority=extract_string_field(top_level, "priority"),
                    parameters=extract_flat_parameters(extract_object(task_text, "parameters")),
                )
            )

        reasoning = extract_string_field(block.replace(tasks_array, "[]"), "reasoning")
        self.logger.info("planning_tolerant_parse_used", task_count=len(specs))
        return specs, reasoning

    def _task_from_spec(self, spec: PlannedTaskSpec, request: str) -> Task:
        task_type = TaskType.parse(spec.type)
        if task_type is None:
            self.logger.warning("planning_invalid_task_type", value=spec.type)
            task_type = TaskType.COMPOSITE

        priority = TaskPriority.parse(spec.priority)
        if priority is None:
            if spec.priority is not None:
                self.logger.warning("planning_invalid_priority", value=spec.priority)
            priority = TaskPriority.NORMAL

        description = (spec.description or "").strip() or f"Handle request: {request}"

        parameters = dict(spec.parameters)
        parameters["request"] = request
        parameters["original_request"] = request
        parameters["llm_analyzed"] = True

        return Task.create(description, task_type, priority, parameters)

    def _plan_with_keywords(self, request: str) -> list[Task]:
        lowered = request.lower()
        tasks = []
        for rule in KEYWORD_RULES:
            if rule.matches(lowered):
                parameters = {"request": request, **rule.parameters}
                tasks.append(
                    Task.create(
                        rule.description.format(request=request),
                        rule.type,
                        rule.priority,
                        parameters,
                    )
                )
        return tasks

    def _generic_task(self, request: str) -> Task:
        return Task.create(
            f"Process request: {request}" if request else "Process empty request",
            TaskType.COMPOSITE,
            TaskPriority.NORMAL,
            {"request": request},
        )
