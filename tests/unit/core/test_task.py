"""
Unit tests for Task.

Tests cover:
- Construction and required fields
- Status lifecycle and terminal-state guard
- Cooperative cancellation, including from another thread
- Typed parameter lookup
- Priority ordering
"""

import threading

import pytest

from codeloop.core.domain.task import Task, TaskPriority, TaskStatus, TaskType


@pytest.fixture
def task():
    return Task.create(
        "Create hello.py",
        TaskType.FILE_OPERATION,
        TaskPriority.HIGH,
        {"file_path": "hello.py", "backup": True, "retries": 3},
    )


class TestTaskCreation:
    def test_create_generates_unique_ids(self):
        first = Task.create("a", TaskType.COMPOSITE)
        second = Task.create("b", TaskType.COMPOSITE)
        assert first.id and second.id
        assert first.id != second.id

    def test_new_task_is_pending(self, task):
        assert task.status == TaskStatus.PENDING
        assert task.started_at is None
        assert task.completed_at is None
        assert not task.is_cancelled()

    def test_default_priority_is_normal(self):
        assert Task.create("x", TaskType.CODE_ANALYSIS).priority == TaskPriority.NORMAL

    def test_blank_description_rejected(self):
        with pytest.raises(ValueError):
            Task.create("   ", TaskType.COMPOSITE)

    def test_invalid_type_rejected(self):
        with pytest.raises(ValueError):
            Task.create("x", "CODE_ANALYSIS")

    def test_parameters_are_copied(self):
        params = {"a": 1}
        created = Task.create("x", TaskType.COMPOSITE, parameters=params)
        params["a"] = 2
        assert created.parameters["a"] == 1


class TestTaskLifecycle:
    def test_start_then_complete(self, task):
        assert task.mark_started() is True
        assert task.status == TaskStatus.RUNNING
        assert task.started_at is not None

        assert task.mark_completed() is True
        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None
        assert task.duration is not None

    def test_mark_failed_records_message(self, task):
        task.mark_started()
        task.mark_failed("compile error")
        assert task.status == TaskStatus.FAILED
        assert task.error_message == "compile error"

    def test_terminal_status_never_changes(self, task):
        task.mark_started()
        task.mark_completed()

        assert task.mark_failed("late failure") is False
        task.cancel()
        assert task.mark_started() is False

        assert task.status == TaskStatus.COMPLETED
        assert task.error_message is None

    def test_failed_task_cannot_complete(self, task):
        task.mark_failed("boom")
        assert task.mark_completed() is False
        assert task.status == TaskStatus.FAILED

    def test_is_terminal(self, task):
        assert not task.is_terminal
        task.mark_completed()
        assert task.is_terminal


class TestTaskCancellation:
    def test_cancel_pending_task(self, task):
        task.cancel()
        assert task.is_cancelled()
        assert task.status == TaskStatus.CANCELLED

    def test_cancel_running_task(self, task):
        task.mark_started()
        task.cancel()
        assert task.status == TaskStatus.CANCELLED

    def test_cancel_completed_task_sets_flag_only(self, task):
        task.mark_completed()
        task.cancel()
        assert task.is_cancelled()
        assert task.status == TaskStatus.COMPLETED

    def test_cancel_from_other_thread(self, task):
        task.mark_started()
        worker = threading.Thread(target=task.cancel)
        worker.start()
        worker.join()
        assert task.is_cancelled()
        assert task.status == TaskStatus.CANCELLED


class TestTaskParameters:
    def test_get_parameter_with_matching_type(self, task):
        assert task.get_parameter("file_path", str) == "hello.py"
        assert task.get_parameter("retries", int) == 3

    def test_get_parameter_type_mismatch_returns_none(self, task):
        assert task.get_parameter("file_path", int) is None

    def test_get_parameter_missing_returns_none(self, task):
        assert task.get_parameter("missing", str) is None


class TestTaskEnums:
    def test_priority_ordering(self):
        assert TaskPriority.LOW < TaskPriority.NORMAL < TaskPriority.HIGH < TaskPriority.CRITICAL
        assert TaskPriority.CRITICAL.weight == 4

    def test_priority_parse(self):
        assert TaskPriority.parse("high") == TaskPriority.HIGH
        assert TaskPriority.parse("URGENT") is None
        assert TaskPriority.parse(None) is None

    def test_type_parse(self):
        assert TaskType.parse("git_operation") == TaskType.GIT_OPERATION
        assert TaskType.parse("MCP_OPERATION") is None
