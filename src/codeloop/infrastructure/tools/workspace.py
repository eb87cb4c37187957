"""
Workspace Tools

WorkspaceTools implements DevelopmentToolsProtocol for a single project
directory by composing the file, build, git and analysis tools. The
workspace root is the execution-environment handle stored on each
ReActContext.
"""

from pathlib import Path
from typing import Any

from codeloop.infrastructure.tools.analysis_tools import AnalysisTools
from codeloop.infrastructure.tools.build_tools import BuildTools
from codeloop.infrastructure.tools.file_tools import FileTools
from codeloop.infrastructure.tools.git_tools import GitTools


class WorkspaceTools:
    """Development tools bound to one workspace directory."""

    def __init__(
        self,
        root: str | Path = ".",
        build_commands: dict[str, list[str] | str] | None = None,
        git_timeout_seconds: int = 30,
        build_timeout_seconds: int = 300,
        backup: bool = True,
    ):
        self.root = Path(root).resolve()
        self.files = FileTools(self.root, backup=backup)
        self.build = BuildTools(self.root, build_commands, timeout_seconds=build_timeout_seconds)
        self.git = GitTools(self.root, timeout_seconds=git_timeout_seconds)
        self.analysis = AnalysisTools(self.root)

    def create_source_file(self, class_name: str, file_path: str, content: str) -> str:
        return self.files.create_source_file(class_name, file_path, content)

    def create_file(self, file_path: str, content: str) -> str:
        return self.files.create_file(file_path, content)

    def compile_and_check(self) -> str:
        return self.build.compile_and_check()

    def get_diagnostics(self) -> str:
        return self.build.get_diagnostics()

    def run_git_command(self, operation: str, parameters: dict[str, Any]) -> str:
        return self.git.run(operation, parameters)

    def build_project(self, operation: str) -> str:
        return self.build.build_project(operation)

    def analyze_code(self, request: str, scope: str) -> str:
        return self.analysis.analyze_code(request, scope)
