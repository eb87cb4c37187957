"""
Domain Events for the ReAct Loop

Values exchanged inside one loop iteration and with progress listeners:
- ToolName: the closed set of tools the loop can dispatch
- ActionResult: outcome of dispatching one tool call
- ProgressUpdate: notification emitted to an optional progress callback
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ToolName(str, Enum):
    """Tools the loop controller can dispatch."""

    CREATE_SOURCE_FILE = "create_source_file"
    CREATE_FILE = "create_file"
    COMPILE_AND_CHECK = "compile_and_check"
    GET_DIAGNOSTICS = "get_diagnostics"
    RUN_GIT_COMMAND = "run_git_command"
    BUILD_PROJECT = "build_project"
    ANALYZE_CODE = "analyze_code"

    @classmethod
    def parse(cls, name: str | None) -> "ToolName | None":
        """
        Resolve a model-supplied tool name.

        Matching ignores case, '_' and '-', and accepts the aliases in
        _TOOL_ALIASES. Unknown names return None.
        """
        if not name:
            return None
        key = _normalize(name)
        return _TOOL_LOOKUP.get(key)


def _normalize(name: str) -> str:
    return re.sub(r"[\s_\-]", "", name.strip().lower())


_TOOL_ALIASES = {
    ToolName.CREATE_FILE: ["create_generic_file", "write_file"],
    ToolName.CREATE_SOURCE_FILE: ["create_class", "create_module", "create_java_class"],
    ToolName.COMPILE_AND_CHECK: ["compile", "compile_and_check_errors", "check_compilation"],
    ToolName.GET_DIAGNOSTICS: ["get_compilation_diagnostics", "diagnostics"],
    ToolName.RUN_GIT_COMMAND: ["git", "execute_git_command"],
    ToolName.BUILD_PROJECT: ["build", "run_build"],
    ToolName.ANALYZE_CODE: ["analyze", "analyse_code"],
}

_TOOL_LOOKUP: dict[str, ToolName] = {_normalize(tool.value): tool for tool in ToolName}
for _tool, _aliases in _TOOL_ALIASES.items():
    for _alias in _aliases:
        _TOOL_LOOKUP[_normalize(_alias)] = _tool


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one tool dispatch. Exactly one of message / error_message is set."""

    success: bool
    message: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, message: str) -> "ActionResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(cls, error_message: str) -> "ActionResult":
        return cls(success=False, error_message=error_message)


@dataclass
class ProgressUpdate:
    """
    Progress notification emitted during a run.

    Attributes:
        timestamp: When the update occurred
        event_type: think, act, observe, complete or error
        message: Human-readable description
        details: Additional structured data
    """

    timestamp: datetime
    event_type: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
