"""
Task Domain Model

A Task is the unit of work produced by the TaskPlanner and consumed by
whatever executes it. Descriptive fields are fixed at creation; only the
lifecycle fields (status, error message, timestamps) change afterwards.

Lifecycle:
    PENDING -> RUNNING -> COMPLETED | FAILED | CANCELLED

Once a terminal status is reached it never changes again. Cancellation is
cooperative: cancel() raises a flag that the run owner checks.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger().bind(component="task")

T = TypeVar("T")


class TaskType(str, Enum):
    """Category of work a task represents."""

    CODE_ANALYSIS = "CODE_ANALYSIS"
    CODE_MODIFICATION = "CODE_MODIFICATION"
    FILE_OPERATION = "FILE_OPERATION"
    BUILD_OPERATION = "BUILD_OPERATION"
    GIT_OPERATION = "GIT_OPERATION"
    EXTERNAL_TOOL_OPERATION = "EXTERNAL_TOOL_OPERATION"
    COMPOSITE = "COMPOSITE"

    @classmethod
    def parse(cls, value: Any) -> "TaskType | None":
        """Return the member matching value (case-insensitive) or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class TaskPriority(Enum):
    """Task priority; members compare by weight."""

    LOW = 1
    NORMAL = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def weight(self) -> int:
        return self.value

    def __lt__(self, other):
        if not isinstance(other, TaskPriority):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other):
        if not isinstance(other, TaskPriority):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other):
        if not isinstance(other, TaskPriority):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other):
        if not isinstance(other, TaskPriority):
            return NotImplemented
        return self.value >= other.value

    @classmethod
    def parse(cls, value: Any) -> "TaskPriority | None":
        """Return the member whose name matches value (case-insensitive) or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return cls.__members__.get(value.strip().upper())


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)


@dataclass
class Task:
    """
    A unit of work with a guarded status lifecycle.

    Use Task.create() to build a task with a fresh id; the constructor
    is available for callers that already hold an id (tests, persisted
    plans).

    Attributes:
        id: Opaque unique identifier
        description: Free-text description of the work
        type: Task category
        priority: Scheduling priority
        parameters: String-keyed parameters for the executor
        created_at: Creation timestamp
        status: Current lifecycle status
        error_message: Failure reason once FAILED
        started_at: When the task entered RUNNING
        completed_at: When the task reached a terminal status
    """

    id: str
    description: str
    type: TaskType
    priority: TaskPriority = TaskPriority.NORMAL
    parameters: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    status: TaskStatus = TaskStatus.PENDING
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    _cancel_event: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if not self.id:
            raise ValueError("Task id is required")
        if not self.description or not self.description.strip():
            raise ValueError("Task description is required")
        if not isinstance(self.type, TaskType):
            raise ValueError(f"Invalid task type: {self.type!r}")
        if not isinstance(self.priority, TaskPriority):
            raise ValueError(f"Invalid task priority: {self.priority!r}")

    @classmethod
    def create(
        cls,
        description: str,
        type: TaskType,
        priority: TaskPriority = TaskPriority.NORMAL,
        parameters: dict[str, Any] | None = None,
    ) -> "Task":
        """Create a pending task with a generated id."""
        return cls(
            id=str(uuid.uuid4()),
            description=description,
            type=type,
            priority=priority,
            parameters=dict(parameters or {}),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration(self) -> timedelta | None:
        """Time between start and completion, if both are known."""
        if self.started_at is None or self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    def _transition(self, target: TaskStatus, error_message: str | None = None) -> bool:
        with self._lock:
            if self.status.is_terminal:
                logger.warning(
                    "task_transition_ignored",
                    task_id=self.id,
                    status=self.status.value,
                    requested=target.value,
                )
                return False
            if target == TaskStatus.RUNNING and self.status == TaskStatus.RUNNING:
                return False

            now = datetime.now()
            self.status = target
            if target == TaskStatus.RUNNING:
                self.started_at = now
            else:
                self.completed_at = now
            if error_message is not None:
                self.error_message = error_message
            return True

    def mark_started(self) -> bool:
        """Move a pending task to RUNNING."""
        return self._transition(TaskStatus.RUNNING)

    def mark_completed(self) -> bool:
        """Move the task to COMPLETED."""
        return self._transition(TaskStatus.COMPLETED)

    def mark_failed(self, error_message: str) -> bool:
        """Move the task to FAILED with the given reason."""
        return self._transition(TaskStatus.FAILED, error_message)

    def cancel(self) -> None:
        """
        Request cooperative cancellation.

        The flag is always raised; the status moves to CANCELLED only if the
        task has not already reached a terminal status.
        """
        self._cancel_event.set()
        self._transition(TaskStatus.CANCELLED)

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def get_parameter(self, key: str, expected_type: type[T]) -> T | None:
        """Return parameters[key] if it is an instance of expected_type, else None."""
        value = self.parameters.get(key)
        if isinstance(value, expected_type):
            return value
        return None
