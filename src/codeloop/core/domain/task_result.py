"""Outcome record of a single task execution."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class TaskResult:
    """
    Immutable result of executing a Task.

    Build instances through succeeded() or failure(); use for_task() to stamp
    the originating task id and execution time onto a result.

    Attributes:
        success: Whether the task succeeded
        message: Result message (on success)
        error_message: Failure reason (on failure)
        data: Optional structured payload
        timestamp: When the result was created
        execution_time: How long the task ran
        task_id: Id of the originating task
    """

    success: bool
    message: str | None = None
    error_message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    execution_time: timedelta | None = None
    task_id: str | None = None

    @classmethod
    def succeeded(cls, message: str, data: dict[str, Any] | None = None) -> "TaskResult":
        return cls(success=True, message=message, data=dict(data or {}))

    @classmethod
    def failure(cls, error_message: str, cause: BaseException | None = None) -> "TaskResult":
        """Failed result; with a cause, its message is appended after a colon."""
        if cause is not None:
            error_message = f"{error_message}: {cause}"
        return cls(success=False, error_message=error_message)

    def for_task(self, task_id: str, execution_time: timedelta | None = None) -> "TaskResult":
        return replace(self, task_id=task_id, execution_time=execution_time)

    def get_data(self, key: str, expected_type: type[T]) -> T | None:
        """Type-checked lookup; None when the key is absent or the type differs."""
        value = self.data.get(key)
        if isinstance(value, expected_type):
            return value
        return None

    def has_data(self) -> bool:
        return bool(self.data)

    @property
    def display_message(self) -> str:
        if self.success:
            return self.message or "Task completed successfully"
        return self.error_message or "Task failed"
