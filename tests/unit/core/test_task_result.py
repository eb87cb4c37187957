"""Unit tests for TaskResult."""

from datetime import timedelta

import pytest

from codeloop.core.domain.task_result import TaskResult


class TestTaskResultFactories:
    def test_succeeded(self):
        result = TaskResult.succeeded("done")
        assert result.success
        assert result.message == "done"
        assert result.error_message is None
        assert not result.has_data()

    def test_succeeded_with_data(self):
        result = TaskResult.succeeded("done", {"files": 2})
        assert result.has_data()
        assert result.get_data("files", int) == 2

    def test_failure(self):
        result = TaskResult.failure("could not build")
        assert not result.success
        assert result.error_message == "could not build"

    def test_failure_with_cause_contains_both_messages(self):
        result = TaskResult.failure("Build failed", ValueError("missing module"))
        assert "Build failed" in result.error_message
        assert "missing module" in result.error_message
        assert result.error_message == "Build failed: missing module"

    def test_result_is_immutable(self):
        result = TaskResult.succeeded("done")
        with pytest.raises(AttributeError):
            result.message = "changed"


class TestTaskResultAccessors:
    def test_get_data_type_mismatch_returns_none(self):
        result = TaskResult.succeeded("done", {"files": "2"})
        assert result.get_data("files", int) is None

    def test_get_data_missing_returns_none(self):
        assert TaskResult.succeeded("done").get_data("x", str) is None

    def test_display_message(self):
        assert TaskResult.succeeded("ok").display_message == "ok"
        assert TaskResult.failure("bad").display_message == "bad"

    def test_display_message_fallbacks(self):
        assert TaskResult(success=True).display_message == "Task completed successfully"
        assert TaskResult(success=False).display_message == "Task failed"

    def test_for_task_stamps_id_and_duration(self):
        original = TaskResult.succeeded("ok")
        stamped = original.for_task("task-1", timedelta(seconds=3))
        assert stamped.task_id == "task-1"
        assert stamped.execution_time == timedelta(seconds=3)
        assert original.task_id is None
