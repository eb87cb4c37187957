"""
Unit tests for TaskPlanner.

Tests cover:
- Strict schema decoding of well-formed plans
- Tolerant extraction of malformed plans
- Type/priority defaults and traceability parameters
- Keyword fallback when the provider fails or returns garbage
- The generic last-resort task
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from codeloop.core.domain.errors import CompletionError
from codeloop.core.domain.planner import TaskPlanner
from codeloop.core.domain.task import TaskPriority, TaskStatus, TaskType


@pytest.fixture
def mock_llm_provider():
    """Mock CompletionProviderProtocol."""
    return AsyncMock()


@pytest.fixture
def planner(mock_llm_provider):
    return TaskPlanner(llm_provider=mock_llm_provider, timeout_seconds=5)


WELL_FORMED_PLAN = """
Here is the plan:
```json
{
  "tasks": [
    {
      "description": "Create the Stack class",
      "type": "FILE_OPERATION",
      "priority": "HIGH",
      "parameters": {"operation": "create", "file_path": "stack.py"}
    },
    {
      "description": "Write unit tests for Stack",
      "type": "CODE_MODIFICATION",
      "priority": "NORMAL",
      "parameters": {}
    }
  ],
  "reasoning": "Implementation first, tests second"
}
```
"""


class TestModelPlanning:
    @pytest.mark.asyncio
    async def test_well_formed_plan(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = WELL_FORMED_PLAN

        tasks = await planner.plan_tasks("Create a stack with tests")

        assert [t.type for t in tasks] == [TaskType.FILE_OPERATION, TaskType.CODE_MODIFICATION]
        assert tasks[0].priority == TaskPriority.HIGH
        assert tasks[0].parameters["file_path"] == "stack.py"
        assert all(t.status == TaskStatus.PENDING for t in tasks)
        mock_llm_provider.chat.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_traceability_parameters_injected(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = WELL_FORMED_PLAN

        tasks = await planner.plan_tasks("Create a stack with tests")

        for task in tasks:
            assert task.parameters["original_request"] == "Create a stack with tests"
            assert task.parameters["request"] == "Create a stack with tests"
            assert task.parameters["llm_analyzed"] is True

    @pytest.mark.asyncio
    async def test_unknown_type_and_priority_are_defaulted(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = (
            '{"tasks": [{"description": "Deploy", "type": "DEPLOYMENT", '
            '"priority": "URGENT", "parameters": {}}], "reasoning": "r"}'
        )

        tasks = await planner.plan_tasks("Deploy the app")

        assert len(tasks) == 1
        assert tasks[0].type == TaskType.COMPOSITE
        assert tasks[0].priority == TaskPriority.NORMAL
        assert tasks[0].description == "Deploy"

    @pytest.mark.asyncio
    async def test_missing_description_uses_request(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = '{"tasks": [{"type": "CODE_ANALYSIS"}]}'

        tasks = await planner.plan_tasks("Look at main.py")

        assert tasks[0].description == "Handle request: Look at main.py"
        assert tasks[0].type == TaskType.CODE_ANALYSIS

    @pytest.mark.asyncio
    async def test_trailing_commas_recovered(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = """{
            "tasks": [
                {"description": "Fix parser", "type": "CODE_MODIFICATION", "priority": "CRITICAL",
                 "parameters": {"file_path": "parser.py", "backup": true,},},
                {"description": "Run tests", "type": "BUILD_OPERATION", "priority": "LOW",},
            ],
            "reasoning": "fix then verify",
        }"""

        tasks = await planner.plan_tasks("Repair the parser")

        assert [t.description for t in tasks] == ["Fix parser", "Run tests"]
        assert tasks[0].priority == TaskPriority.CRITICAL
        assert tasks[0].parameters["file_path"] == "parser.py"
        assert tasks[0].parameters["backup"] is True
        assert tasks[1].type == TaskType.BUILD_OPERATION

    def test_parse_plan_returns_reasoning(self, planner):
        specs, reasoning = planner.parse_plan(WELL_FORMED_PLAN)
        assert len(specs) == 2
        assert reasoning == "Implementation first, tests second"

    def test_trailing_commas_keep_nested_parameters(self, planner):
        specs, reasoning = planner.parse_plan(
            '{"tasks": [{"description": "Commit, then push]", "type": "GIT_OPERATION",'
            ' "parameters": {"files": ["a.py", "b.py",],},},], "reasoning": "one step",}'
        )

        assert specs[0].description == "Commit, then push]"
        assert specs[0].parameters == {"files": ["a.py", "b.py"]}
        assert reasoning == "one step"

    def test_raw_newline_in_string_falls_back_to_tolerant_tier(self, planner):
        specs, _ = planner.parse_plan(
            '{"tasks": [{"description": "Fix parser\nand lexer", "type": "CODE_MODIFICATION"}]}'
        )

        assert specs[0].description == "Fix parser\nand lexer"
        assert specs[0].type == "CODE_MODIFICATION"


class TestKeywordFallback:
    @pytest.mark.asyncio
    async def test_provider_failure_falls_back_to_keywords(self, planner, mock_llm_provider):
        mock_llm_provider.chat.side_effect = CompletionError("service unavailable")

        tasks = await planner.plan_tasks("Fix the bug in login")

        assert any(
            t.type == TaskType.CODE_MODIFICATION and t.priority == TaskPriority.CRITICAL
            for t in tasks
        )
        critical = [t for t in tasks if t.priority == TaskPriority.CRITICAL][0]
        assert critical.parameters["backup"] is True
        assert critical.parameters["validate"] is True

    @pytest.mark.asyncio
    async def test_unparseable_response_falls_back(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = "I think you should refactor things."

        tasks = await planner.plan_tasks("Please refactor utils")

        assert len(tasks) == 1
        assert tasks[0].type == TaskType.CODE_MODIFICATION
        assert tasks[0].priority == TaskPriority.HIGH
        assert "llm_analyzed" not in tasks[0].parameters

    @pytest.mark.asyncio
    async def test_json_without_tasks_falls_back(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = '{"reasoning": "nothing to do"}'

        tasks = await planner.plan_tasks("analyze the project")

        assert tasks[0].type == TaskType.CODE_ANALYSIS
        assert tasks[0].parameters["scope"] == "project"

    @pytest.mark.asyncio
    async def test_multiple_keywords_produce_multiple_tasks(self, planner, mock_llm_provider):
        mock_llm_provider.chat.side_effect = RuntimeError("boom")

        tasks = await planner.plan_tasks("Refactor the module and add docstring comments")

        priorities = {t.priority for t in tasks}
        assert TaskPriority.HIGH in priorities
        assert TaskPriority.LOW in priorities

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, mock_llm_provider):
        async def slow_chat(prompt):
            await asyncio.sleep(1)
            return WELL_FORMED_PLAN

        mock_llm_provider.chat.side_effect = slow_chat
        planner = TaskPlanner(llm_provider=mock_llm_provider, timeout_seconds=0.01)

        tasks = await planner.plan_tasks("write tests for stack")

        assert tasks[0].type == TaskType.CODE_MODIFICATION
        assert tasks[0].parameters["framework"] == "pytest"


class TestGenericFallback:
    @pytest.mark.asyncio
    async def test_no_keywords_yields_single_generic_task(self, planner, mock_llm_provider):
        mock_llm_provider.chat.side_effect = CompletionError("down")

        tasks = await planner.plan_tasks("Hello there")

        assert len(tasks) == 1
        assert tasks[0].type == TaskType.COMPOSITE
        assert tasks[0].priority == TaskPriority.NORMAL
        assert tasks[0].parameters["request"] == "Hello there"

    @pytest.mark.asyncio
    async def test_empty_model_plan_yields_generic_task(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = '{"tasks": [], "reasoning": "none"}'

        tasks = await planner.plan_tasks("Hello there")

        assert len(tasks) == 1
        assert tasks[0].type == TaskType.COMPOSITE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        ["", "null", "{", "```json\n{]\n```", '{"tasks": "not a list"}', '{"tasks": [{]}'],
    )
    async def test_always_at_least_one_task(self, planner, mock_llm_provider, response):
        mock_llm_provider.chat.return_value = response

        tasks = await planner.plan_tasks("do something useful")

        assert len(tasks) >= 1

    def test_plan_tasks_sync(self, planner, mock_llm_provider):
        mock_llm_provider.chat.return_value = WELL_FORMED_PLAN
        assert len(planner.plan_tasks_sync("Create a stack")) == 2
