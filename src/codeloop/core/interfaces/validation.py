"""
Validation Protocol

Decides whether a tool call needs a compile check and performs it.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from codeloop.core.domain.task_result import TaskResult


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a compile/build check.

    Attributes:
        success: Whether validation passed
        message: Summary of the check
        errors: Compile errors, one per entry
        warnings: Non-fatal findings
        diagnostics: Raw diagnostic output
    """

    success: bool
    message: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    diagnostics: str | None = None

    @classmethod
    def passed(cls, message: str = "Validation passed") -> "ValidationResult":
        return cls(success=True, message=message)

    @classmethod
    def failed(
        cls, message: str, errors: list[str] | None = None, diagnostics: str | None = None
    ) -> "ValidationResult":
        return cls(success=False, message=message, errors=list(errors or []), diagnostics=diagnostics)

    @classmethod
    def with_warnings(cls, message: str, warnings: list[str]) -> "ValidationResult":
        return cls(success=True, message=message, warnings=list(warnings))

    def formatted_errors(self) -> str:
        return "\n".join(f"- {error}" for error in self.errors)


class ValidatorProtocol(Protocol):
    """Protocol for the validation collaborator."""

    def requires_compilation_check(self, tool_name: str, previous_result: TaskResult) -> bool:
        """True if the result of tool_name must be compile-checked."""
        ...

    def auto_validate(self, tool_name: str, previous_result: TaskResult) -> ValidationResult:
        """Run the compile check for a tool result."""
        ...


def describe(result: ValidationResult) -> dict[str, Any]:
    """Structured view of a validation result for logs and progress details."""
    return {
        "success": result.success,
        "message": result.message,
        "error_count": len(result.errors),
        "warning_count": len(result.warnings),
    }
