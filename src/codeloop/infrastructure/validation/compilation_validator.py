"""
Compilation Validator

Implements ValidatorProtocol: results of code-producing tools are checked
by compiling the workspace. Read-only, build, git and analysis tools are
never validated, nor are failed results.
"""

import re

import structlog

from codeloop.core.domain.task_result import TaskResult
from codeloop.core.interfaces.validation import ValidationResult
from codeloop.infrastructure.tools.build_tools import BuildTools

CODE_MODIFYING_TOOLS = re.compile(
    r"^(create_source_file|create_file|modify_code|update_file)$", re.IGNORECASE
)


class CompilationValidator:
    def __init__(self, build_tools: BuildTools):
        self.build_tools = build_tools
        self.logger = structlog.get_logger().bind(component="compilation_validator")

    def requires_compilation_check(self, tool_name: str, previous_result: TaskResult) -> bool:
        if previous_result is None or not previous_result.success:
            return False
        return bool(CODE_MODIFYING_TOOLS.match(tool_name or ""))

    def auto_validate(self, tool_name: str, previous_result: TaskResult) -> ValidationResult:
        checked, diagnostics = self.build_tools.collect_diagnostics()
        errors = [line for line in diagnostics if "error" in line.lower()]

        self.logger.info(
            "auto_validation",
            tool=tool_name,
            files=checked,
            errors=len(errors),
        )

        if errors:
            return ValidationResult.failed(
                f"Compilation failed with {len(errors)} error(s)",
                errors=errors,
                diagnostics="\n".join(diagnostics),
            )
        if diagnostics:
            return ValidationResult.with_warnings(
                f"Compilation successful ({checked} files) with notes", diagnostics
            )
        return ValidationResult.passed(f"Compilation successful ({checked} files checked)")
