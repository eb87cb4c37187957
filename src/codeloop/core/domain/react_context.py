"""
ReAct Run State

ReActContext accumulates the state of one orchestration run: the original
request, append-only logs of thinking, action and observation steps, the
iteration counter and the validation/fix flags. It is owned by a single
ReActLoopController run and handed to the caller inside the ReActResult.

The step logs only grow. Steps of one iteration are appended in
think -> act -> observe order.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping


@dataclass(frozen=True)
class ThinkingStep:
    """
    Model reasoning for one think step.

    A step is either continuing (next_action names the tool to run) or
    terminal (has_final_answer with final_answer text).
    """

    reasoning: str
    next_action: str | None = None
    has_final_answer: bool = False
    final_answer: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def continuing(cls, reasoning: str, next_action: str | None) -> "ThinkingStep":
        return cls(reasoning=reasoning, next_action=next_action)

    @classmethod
    def final(cls, reasoning: str, final_answer: str) -> "ThinkingStep":
        return cls(reasoning=reasoning, has_final_answer=True, final_answer=final_answer)


@dataclass(frozen=True)
class ActionStep:
    tool_name: str
    description: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ObservationStep:
    success: bool
    result: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


class ReActContext:
    """
    Mutable state of one ReAct run.

    Attributes:
        original_request: The user request driving the run
        workspace: Opaque handle passed through to tools
        start_time: When the run started
        iteration_count: Completed think-act-observe cycles
        completed_validation: A compile check has passed in this run
        validation_required: Some action in this run needed a compile check
        requires_fix: The next iteration must fix detected errors
        fix_reason: Why a fix is required
    """

    FIX_REASON_COMPILATION = "Compilation errors detected"

    def __init__(self, original_request: str, workspace: Any = None):
        self.original_request = original_request
        self.workspace = workspace
        self.start_time = datetime.now()
        self._thinking_steps: list[ThinkingStep] = []
        self._action_steps: list[ActionStep] = []
        self._observation_steps: list[ObservationStep] = []
        # (iteration, step) in recording order
        self._timeline: list[tuple[int, ThinkingStep | ActionStep | ObservationStep]] = []
        self._iteration_count = 0
        self.completed_validation = False
        self.validation_required = False
        self.requires_fix = False
        self.fix_reason: str | None = None

    @property
    def thinking_steps(self) -> list[ThinkingStep]:
        return list(self._thinking_steps)

    @property
    def action_steps(self) -> list[ActionStep]:
        return list(self._action_steps)

    @property
    def observation_steps(self) -> list[ObservationStep]:
        return list(self._observation_steps)

    @property
    def iteration_count(self) -> int:
        return self._iteration_count

    @property
    def elapsed(self) -> timedelta:
        return datetime.now() - self.start_time

    def add_thinking(self, step: ThinkingStep) -> None:
        self._thinking_steps.append(step)
        self._timeline.append((self._iteration_count, step))

    def add_action(self, step: ActionStep) -> None:
        self._action_steps.append(step)
        self._timeline.append((self._iteration_count, step))

    def add_observation(self, step: ObservationStep) -> None:
        self._observation_steps.append(step)
        self._timeline.append((self._iteration_count, step))

    def increment_iteration(self) -> int:
        self._iteration_count += 1
        return self._iteration_count

    @property
    def last_thinking(self) -> ThinkingStep | None:
        return self._thinking_steps[-1] if self._thinking_steps else None

    @property
    def last_action(self) -> ActionStep | None:
        return self._action_steps[-1] if self._action_steps else None

    @property
    def last_observation(self) -> ObservationStep | None:
        return self._observation_steps[-1] if self._observation_steps else None

    def has_errors(self) -> bool:
        """True if any observation failed and carries error text."""
        return any(
            not observation.success and observation.has_errors()
            for observation in self._observation_steps
        )

    def get_all_errors(self) -> list[str]:
        """Every error of every failed observation, in observation order."""
        errors: list[str] = []
        for observation in self._observation_steps:
            if not observation.success:
                errors.extend(observation.errors)
        return errors

    def last_observation_successful(self) -> bool:
        last = self.last_observation
        return last is not None and last.success

    def mark_validation_completed(self) -> None:
        self.completed_validation = True

    def mark_validation_required(self) -> None:
        """Record that new code needs a compile check; resets a previous pass."""
        self.validation_required = True
        self.completed_validation = False

    def mark_as_requiring_fix(self, reason: str) -> None:
        self.requires_fix = True
        self.fix_reason = reason

    def clear_fix_requirement(self) -> None:
        self.requires_fix = False
        self.fix_reason = None

    def prepare_fix_iteration(self, errors: list[str]) -> None:
        """
        Seed the next iteration with errors to fix.

        Appends a synthetic failed observation carrying the errors so the
        next continuation prompt shows them to the model.
        """
        self.mark_as_requiring_fix(self.FIX_REASON_COMPILATION)
        self.add_observation(
            ObservationStep(
                success=False,
                result="Errors detected that need fixing",
                errors=list(errors),
            )
        )

    def get_summary(self) -> str:
        return (
            f"ReAct Context [iterations={self._iteration_count}, "
            f"thinking={len(self._thinking_steps)}, "
            f"actions={len(self._action_steps)}, "
            f"observations={len(self._observation_steps)}, "
            f"validation={self.completed_validation}, "
            f"requires_fix={self.requires_fix}]"
        )

    def get_full_history(self) -> str:
        """
        Render every recorded step under the iteration it was recorded in.

        A fix iteration's synthetic observation is listed with the
        iteration that detected the errors.
        """
        lines = [f"=== ReAct History: {self.original_request} ==="]
        current = None
        for iteration, step in self._timeline:
            if iteration != current:
                lines.append(f"--- Iteration {iteration} ---")
                current = iteration

            if isinstance(step, ThinkingStep):
                lines.append(f"THINK: {step.reasoning}")
                if step.has_final_answer:
                    lines.append(f"FINAL: {step.final_answer}")
            elif isinstance(step, ActionStep):
                lines.append(f"ACT: {step.tool_name} - {step.description}")
            else:
                marker = "OK" if step.success else "FAILED"
                lines.append(f"OBSERVE [{marker}]: {step.result}")
                lines.extend(f"  error: {error}" for error in step.errors)
                lines.extend(f"  warning: {warning}" for warning in step.warnings)
        return "\n".join(lines)
