"""
Development Tools Protocol

The fixed set of synchronous operations the ReAct loop dispatches to. Every
operation returns a human-readable success message or raises
ToolExecutionError (any other exception is treated the same way by the
loop). The workspace the tools act on is chosen by the implementation.
"""

from typing import Any, Protocol


class DevelopmentToolsProtocol(Protocol):
    """Protocol for the development tool set."""

    def create_source_file(self, class_name: str, file_path: str, content: str) -> str:
        """Create a source module defining class_name at file_path."""
        ...

    def create_file(self, file_path: str, content: str) -> str:
        """Create or overwrite a file."""
        ...

    def compile_and_check(self) -> str:
        """Compile the workspace sources; raise if compilation fails."""
        ...

    def get_diagnostics(self) -> str:
        """Return compiler diagnostics for the workspace ("" when clean)."""
        ...

    def run_git_command(self, operation: str, parameters: dict[str, Any]) -> str:
        """Run a version-control operation."""
        ...

    def build_project(self, operation: str) -> str:
        """Run a configured build operation (e.g. test, build)."""
        ...

    def analyze_code(self, request: str, scope: str) -> str:
        """Produce a textual analysis of the workspace code."""
        ...
