"""
Domain Errors

Exception hierarchy shared by the planner, the loop controller and the
infrastructure adapters. Only CompletionError and ThinkingError end a ReAct
run; the others are recovered locally by the component that catches them.
"""


class CodeloopError(Exception):
    """Base class for all codeloop errors."""


class CompletionError(CodeloopError):
    """The completion provider could not produce a response."""


class ThinkingError(CodeloopError):
    """The model response could not be turned into a thinking step."""


class PlanParseError(CodeloopError):
    """No task list could be extracted from a planning response."""


class ToolExecutionError(CodeloopError):
    """A development tool operation failed."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details
