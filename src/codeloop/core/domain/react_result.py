"""
ReAct Result

Terminal, caller-facing outcome of a ReActLoopController run. Instances are
built only through the four named constructors and never change afterwards.
User-facing texts come from USER_MESSAGES so they can be swapped for
another language.
"""

from dataclasses import dataclass
from enum import Enum

from codeloop.core.domain.react_context import ReActContext


class ReActStatus(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"
    MAX_ITERATIONS = "max_iterations"
    CANCELLED = "cancelled"


USER_MESSAGES = {
    ReActStatus.COMPLETED: "{final_message}",
    ReActStatus.ERROR: "An error occurred: {error_message}",
    ReActStatus.MAX_ITERATIONS: (
        "The task could not be finished within {iterations} iterations. "
        "Partial progress has been kept."
    ),
    ReActStatus.CANCELLED: "The task was cancelled: {error_message}",
}

MAX_ITERATIONS_MESSAGE = "Max iterations ({iterations}) reached. Task partially completed."


@dataclass(frozen=True)
class ReActResult:
    """
    Outcome of one ReAct run.

    Attributes:
        context: Final state of the run, for diagnostics
        success: True only for COMPLETED
        final_message: Final answer or completion message
        status: Terminal status
        error_message: Failure or cancellation detail
    """

    context: ReActContext
    success: bool
    status: ReActStatus
    final_message: str | None = None
    error_message: str | None = None

    @classmethod
    def completed(cls, context: ReActContext, final_message: str) -> "ReActResult":
        return cls(
            context=context,
            success=True,
            status=ReActStatus.COMPLETED,
            final_message=final_message,
        )

    @classmethod
    def error(cls, context: ReActContext, error_message: str) -> "ReActResult":
        return cls(
            context=context,
            success=False,
            status=ReActStatus.ERROR,
            error_message=error_message,
        )

    @classmethod
    def max_iterations_reached(cls, context: ReActContext) -> "ReActResult":
        return cls(
            context=context,
            success=False,
            status=ReActStatus.MAX_ITERATIONS,
            error_message=MAX_ITERATIONS_MESSAGE.format(iterations=context.iteration_count),
        )

    @classmethod
    def cancelled(cls, context: ReActContext, reason: str) -> "ReActResult":
        return cls(
            context=context,
            success=False,
            status=ReActStatus.CANCELLED,
            error_message=reason,
        )

    @property
    def iterations(self) -> int:
        return self.context.iteration_count

    def get_user_message(self) -> str:
        template = USER_MESSAGES[self.status]
        return template.format(
            final_message=self.final_message or "",
            error_message=self.error_message or "unknown error",
            iterations=self.context.iteration_count,
        )

    def get_summary(self) -> str:
        lines = [
            "=== ReAct Result ===",
            f"Status: {self.status.value}",
            f"Success: {self.success}",
            f"Iterations: {self.context.iteration_count}",
            f"Actions executed: {len(self.context.action_steps)}",
        ]
        if self.final_message:
            lines.append(f"Final message: {self.final_message}")
        if self.error_message:
            lines.append(f"Error: {self.error_message}")

        errors = self.context.get_all_errors()
        if errors:
            lines.append(f"Remaining errors ({len(errors)}):")
            lines.extend(f"  - {error}" for error in errors)
        return "\n".join(lines)
