"""
ReAct Loop Controller

This module implements the think -> act -> observe -> fix control loop.
Each iteration:
1. Think: ask the model for the next step (initial or continuation prompt)
2. Act: dispatch the proposed tool through the closed ToolName table
3. Observe: record the outcome, compile-checking code-producing actions
4. Decide: stop when the last observation is clean and validation is
   satisfied, otherwise seed a fix iteration with the detected errors

The controller is dependency-injected with protocol interfaces (completion
provider, development tools, validator), so it runs without any
infrastructure in tests. Iterations within one run are strictly sequential.
"""

import asyncio
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping

import structlog
from pydantic import ValidationError

from codeloop.core.domain.errors import ThinkingError, ToolExecutionError
from codeloop.core.domain.events import ActionResult, ProgressUpdate, ToolName
from codeloop.core.domain.json_extraction import (
    extract_flat_parameters,
    extract_json_block,
    extract_object,
    extract_scalar_field,
    extract_string_field,
    remove_object,
    strip_trailing_commas,
)
from codeloop.core.domain.react_context import (
    ActionStep,
    ObservationStep,
    ReActContext,
    ThinkingStep,
)
from codeloop.core.domain.react_result import ReActResult
from codeloop.core.domain.schemas import AgentActionSpec, AgentResponse
from codeloop.core.domain.task_result import TaskResult
from codeloop.core.interfaces.llm import CompletionProviderProtocol
from codeloop.core.interfaces.tools import DevelopmentToolsProtocol
from codeloop.core.interfaces.validation import ValidatorProtocol, describe
from codeloop.core.prompts.react_prompts import (
    build_continuation_prompt,
    build_initial_prompt,
)

ToolHandler = Callable[[Mapping[str, Any], ReActContext], str]


@dataclass
class LoopConfig:
    """
    Loop policy.

    Attributes:
        max_iterations: Iteration budget per run
        think_timeout_seconds: Upper bound for one model call
        run_timeout_seconds: Optional wall-clock bound for the whole run,
            checked at the top of each iteration (None disables it)
    """

    max_iterations: int = 10
    think_timeout_seconds: float = 120.0
    run_timeout_seconds: float | None = None


class ReActLoopController:
    """
    Drives one request through the ReAct loop and returns a ReActResult.

    execute_with_loop() never raises for model, tool or validation failures;
    they are reported through the result status. cancel() may be called from
    any thread and takes effect at the top of the next iteration.
    """

    MAX_ITERATIONS = 10
    THINK_TIMEOUT_SECONDS = 120.0
    DEFAULT_CANCEL_REASON = "Cancelled by user"

    def __init__(
        self,
        llm_provider: CompletionProviderProtocol,
        tools: DevelopmentToolsProtocol,
        validator: ValidatorProtocol,
        workspace: Any = None,
        config: LoopConfig | None = None,
        progress_callback: Callable[[ProgressUpdate], None] | None = None,
    ):
        """
        Initialize the controller with injected collaborators.

        Args:
            llm_provider: Completion collaborator for think steps
            tools: Development tool set dispatched by act steps
            validator: Decides on and performs compile checks
            workspace: Opaque handle stored on each run's context
            config: Loop policy (defaults: 10 iterations, 120 s per think)
            progress_callback: Optional listener for ProgressUpdate events
        """
        self.llm_provider = llm_provider
        self.tools = tools
        self.validator = validator
        self.workspace = workspace
        self.config = config or LoopConfig(
            max_iterations=self.MAX_ITERATIONS,
            think_timeout_seconds=self.THINK_TIMEOUT_SECONDS,
        )
        self.progress_callback = progress_callback
        self.logger = structlog.get_logger().bind(component="react_loop")

        self._cancel_event = threading.Event()
        self._cancel_reason: str | None = None
        self._handlers: dict[ToolName, ToolHandler] = {
            ToolName.CREATE_SOURCE_FILE: self._create_source_file,
            ToolName.CREATE_FILE: self._create_file,
            ToolName.COMPILE_AND_CHECK: self._compile_and_check,
            ToolName.GET_DIAGNOSTICS: self._get_diagnostics,
            ToolName.RUN_GIT_COMMAND: self._run_git_command,
            ToolName.BUILD_PROJECT: self._build_project,
            ToolName.ANALYZE_CODE: self._analyze_code,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def cancel(self, reason: str = DEFAULT_CANCEL_REASON) -> None:
        """Request cancellation of the current (or next) run."""
        self._cancel_reason = reason
        self._cancel_event.set()
        self.logger.info("react_cancel_requested", reason=reason)

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def reset_cancellation(self) -> None:
        self._cancel_event.clear()
        self._cancel_reason = None

    async def execute_with_loop(self, user_request: str) -> ReActResult:
        """
        Run the ReAct loop for a request.

        Args:
            user_request: Natural-language request

        Returns:
            ReActResult with status COMPLETED, ERROR, MAX_ITERATIONS or CANCELLED
        """
        context = ReActContext(user_request, self.workspace)
        self.logger.info(
            "react_run_started",
            request=user_request[:100],
            max_iterations=self.config.max_iterations,
        )

        try:
            result = await self._run(context)
        except Exception as e:
            self.logger.error(
                "react_run_unexpected_error",
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
            result = ReActResult.error(context, f"Unexpected error: {e}")

        if result.success:
            self._emit("complete", result.final_message or "Completed", iterations=result.iterations)
        else:
            self._emit(
                "error",
                result.error_message or result.status.value,
                status=result.status.value,
                iterations=result.iterations,
            )

        self.logger.info(
            "react_run_finished",
            status=result.status.value,
            iterations=result.iterations,
            actions=len(context.action_steps),
            elapsed_seconds=round(context.elapsed.total_seconds(), 2),
        )
        return result

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run(self, context: ReActContext) -> ReActResult:
        started = time.monotonic()
        run_timeout = self.config.run_timeout_seconds

        while context.iteration_count < self.config.max_iterations:
            if self.is_cancelled():
                reason = self._cancel_reason or self.DEFAULT_CANCEL_REASON
                self.logger.info("react_run_cancelled", iterations=context.iteration_count)
                return ReActResult.cancelled(context, reason)

            if run_timeout is not None and time.monotonic() - started > run_timeout:
                self.logger.warning("react_run_timeout", timeout_seconds=run_timeout)
                return ReActResult.error(context, f"Timeout exceeded ({run_timeout} seconds)")

            iteration = context.increment_iteration()
            self.logger.info("react_iteration", iteration=iteration)

            # Think
            try:
                response = await self._think(context, iteration)
            except Exception as e:
                self.logger.error(
                    "thinking_failed",
                    iteration=iteration,
                    error_type=type(e).__name__,
                    error=str(e)[:200],
                )
                detail = str(e) or type(e).__name__
                return ReActResult.error(context, f"Failed to get thinking from model: {detail}")

            reasoning = response.thinking or ""

            if response.has_final_answer:
                context.add_thinking(ThinkingStep.final(reasoning, response.final_answer))
                self.logger.info("react_final_answer", iteration=iteration)
                return ReActResult.completed(context, response.final_answer)

            if not response.has_action:
                context.add_thinking(ThinkingStep.continuing(reasoning, None))
                self.logger.warning("react_no_action_proposed", iteration=iteration)
                return ReActResult.error(context, "Model did not propose any action")

            action = response.action
            context.add_thinking(ThinkingStep.continuing(reasoning, action.tool))

            # An explicit stop wins over the proposed action, which is not run.
            if response.continue_cycle is False:
                last = context.last_observation
                message = last.result if last is not None else "Task completed"
                self.logger.info(
                    "react_cycle_stopped_by_model", iteration=iteration, skipped_tool=action.tool
                )
                return ReActResult.completed(context, message)

            # Act
            tool, action_result = await self._act(context, action)

            # Observe
            observation = await self._observe(context, tool, action_result)

            # Decide
            if self._should_terminate(context):
                self.logger.info("react_termination_satisfied", iteration=iteration)
                return ReActResult.completed(context, observation.result)

            if observation.has_errors():
                context.prepare_fix_iteration(observation.errors)
                self.logger.info(
                    "react_fix_iteration_prepared",
                    iteration=iteration,
                    error_count=len(observation.errors),
                )

        self.logger.warning("react_max_iterations_reached", iterations=context.iteration_count)
        return ReActResult.max_iterations_reached(context)

    def _should_terminate(self, context: ReActContext) -> bool:
        last = context.last_observation
        if last is None or not last.success or last.has_errors():
            return False
        return context.completed_validation or not context.validation_required

    # ------------------------------------------------------------------
    # Think
    # ------------------------------------------------------------------

    async def _think(self, context: ReActContext, iteration: int) -> AgentResponse:
        prompt = self._build_prompt(context, iteration)
        self._emit("think", f"Thinking (iteration {iteration})", iteration=iteration)

        text = await asyncio.wait_for(
            self.llm_provider.chat(prompt),
            timeout=self.config.think_timeout_seconds,
        )
        return self.parse_response(text)

    def _build_prompt(self, context: ReActContext, iteration: int) -> str:
        if iteration == 1:
            return build_initial_prompt(context.original_request)

        observations = context.observation_steps
        previous = observations[-1] if observations else None
        errors = previous.errors if previous is not None else []
        # A fix iteration appends a synthetic observation; show the real one before it.
        if context.requires_fix and len(observations) >= 2:
            previous = observations[-2]
        return build_continuation_prompt(context.original_request, previous, errors, iteration)

    def parse_response(self, text: str) -> AgentResponse:
        """
        Decode a think-step response.

        Raises:
            ThinkingError: If neither the strict nor the tolerant tier succeeds
        """
        block = extract_json_block(text or "")
        if block is None:
            raise ThinkingError("No JSON object found in model response")

        for candidate in dict.fromkeys((block, strip_trailing_commas(block))):
            try:
                return AgentResponse.model_validate_json(candidate)
            except ValidationError as e:
                self.logger.debug("thinking_strict_parse_failed", error=str(e)[:200])

        return self._parse_response_tolerant(block)

    def _parse_response_tolerant(self, block: str) -> AgentResponse:
        top_level = remove_object(block, "action")
        action_text = extract_object(block, "action")

        action = None
        if action_text is not None:
            action_top = remove_object(action_text, "parameters")
            action = AgentActionSpec(
                tool=extract_string_field(action_top, "tool"),
                parameters=extract_flat_parameters(extract_object(action_text, "parameters")),
                reasoning=extract_string_field(action_top, "reasoning"),
            )

        continue_cycle = extract_scalar_field(top_level, "continue_cycle")
        response = AgentResponse(
            thinking=extract_string_field(top_level, "thinking"),
            action=action,
            final_answer=extract_string_field(top_level, "final_answer"),
            continue_cycle=continue_cycle if isinstance(continue_cycle, bool) else None,
        )

        if response.thinking is None and not response.has_action and not response.has_final_answer:
            raise ThinkingError("Model response could not be parsed")

        self.logger.info("thinking_tolerant_parse_used", has_action=response.has_action)
        return response

    # ------------------------------------------------------------------
    # Act
    # ------------------------------------------------------------------

    async def _act(
        self, context: ReActContext, action: AgentActionSpec
    ) -> tuple[ToolName | None, ActionResult]:
        tool_label = action.tool or ""
        description = action.reasoning or f"Execute {tool_label}"
        context.add_action(ActionStep(tool_label, description, action.parameters))
        self._emit("act", f"Executing {tool_label}", tool=tool_label)

        tool = ToolName.parse(tool_label)
        if tool is None:
            self.logger.warning("tool_unknown", tool=tool_label)
            return None, ActionResult.failed(f"Unknown tool: {tool_label}")

        handler = self._handlers[tool]
        try:
            message = await asyncio.to_thread(handler, action.parameters, context)
        except Exception as e:
            self.logger.warning(
                "tool_execution_failed",
                tool=tool.value,
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
            return tool, ActionResult.failed(f"Action execution error: {e}")

        self.logger.info("tool_execution_succeeded", tool=tool.value)
        return tool, ActionResult.ok(message if message is not None else "")

    # ------------------------------------------------------------------
    # Observe
    # ------------------------------------------------------------------

    async def _observe(
        self, context: ReActContext, tool: ToolName | None, action_result: ActionResult
    ) -> ObservationStep:
        if not action_result.success:
            error = action_result.error_message or "Action failed"
            observation = ObservationStep(success=False, result=error, errors=[error])
        else:
            observation = await self._validate(context, tool, action_result.message or "")

        context.add_observation(observation)
        if observation.success:
            context.clear_fix_requirement()

        self._emit(
            "observe",
            observation.result,
            success=observation.success,
            error_count=len(observation.errors),
        )
        return observation

    async def _validate(
        self, context: ReActContext, tool: ToolName, message: str
    ) -> ObservationStep:
        previous = TaskResult.succeeded(message)
        try:
            required = await asyncio.to_thread(
                self.validator.requires_compilation_check, tool.value, previous
            )
            if not required:
                return ObservationStep(success=True, result=message)

            context.mark_validation_required()
            validation = await asyncio.to_thread(
                self.validator.auto_validate, tool.value, previous
            )
        except Exception as e:
            self.logger.warning("validation_failed_to_run", tool=tool.value, error=str(e)[:200])
            error = f"Validation error: {e}"
            return ObservationStep(success=False, result=error, errors=[error])

        self.logger.info("validation_completed", tool=tool.value, **describe(validation))

        if validation.success:
            context.mark_validation_completed()
            return ObservationStep(
                success=True,
                result=f"{message}\nCode validated - compilation successful",
                warnings=list(validation.warnings),
            )

        errors = list(validation.errors) or [validation.message]
        return ObservationStep(
            success=False,
            result="Action succeeded but compilation failed",
            errors=errors,
            warnings=list(validation.warnings),
        )

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    def _create_source_file(self, params: Mapping[str, Any], context: ReActContext) -> str:
        return self.tools.create_source_file(
            _require(params, "class_name", "className"),
            _require(params, "file_path", "filePath"),
            _require(params, "content"),
        )

    def _create_file(self, params: Mapping[str, Any], context: ReActContext) -> str:
        return self.tools.create_file(
            _require(params, "file_path", "filePath"),
            _require(params, "content"),
        )

    def _compile_and_check(self, params: Mapping[str, Any], context: ReActContext) -> str:
        return self.tools.compile_and_check()

    def _get_diagnostics(self, params: Mapping[str, Any], context: ReActContext) -> str:
        return self.tools.get_diagnostics()

    def _run_git_command(self, params: Mapping[str, Any], context: ReActContext) -> str:
        operation = _require(params, "operation")
        nested = params.get("parameters")
        if isinstance(nested, Mapping):
            arguments = dict(nested)
        else:
            arguments = {k: v for k, v in params.items() if k not in ("operation", "parameters")}
        return self.tools.run_git_command(operation, arguments)

    def _build_project(self, params: Mapping[str, Any], context: ReActContext) -> str:
        return self.tools.build_project(str(params.get("operation") or "build"))

    def _analyze_code(self, params: Mapping[str, Any], context: ReActContext) -> str:
        request = params.get("request") or context.original_request
        return self.tools.analyze_code(str(request), str(params.get("scope") or "project"))

    def _emit(self, event_type: str, message: str, **details: Any) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(
                ProgressUpdate(
                    timestamp=datetime.now(),
                    event_type=event_type,
                    message=message,
                    details=details,
                )
            )
        except Exception as e:
            self.logger.warning("progress_callback_failed", error=str(e)[:200])


def _require(params: Mapping[str, Any], *names: str) -> str:
    """Return the first present parameter among names as a string."""
    for name in names:
        value = params.get(name)
        if value is not None:
            return str(value)
    raise ToolExecutionError(f"Missing required parameter: {names[0]}")
