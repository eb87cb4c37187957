"""File creation tools confined to a workspace root."""

import re
from pathlib import Path

import structlog

from codeloop.core.domain.errors import ToolExecutionError


class FileTools:
    """Safe file writing with backup of overwritten files."""

    def __init__(self, root: Path, backup: bool = True):
        self.root = Path(root).resolve()
        self.backup = backup
        self.logger = structlog.get_logger().bind(tool="file_tools")

    def resolve(self, file_path: str) -> Path:
        """
        Resolve file_path against the workspace root.

        Raises:
            ToolExecutionError: If the path is empty or escapes the workspace
        """
        if not file_path or not file_path.strip():
            raise ToolExecutionError("File path is required")

        candidate = Path(file_path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()

        if resolved != self.root and self.root not in resolved.parents:
            raise ToolExecutionError(f"Path is outside the workspace: {file_path}")
        return resolved

    def create_file(self, file_path: str, content: str) -> str:
        target = self.resolve(file_path)
        if target.is_dir():
            raise ToolExecutionError(f"Path is a directory: {file_path}")

        backed_up = False
        try:
            if self.backup and target.exists():
                backup_path = target.with_suffix(target.suffix + ".bak")
                backup_path.write_text(target.read_text(encoding="utf-8"), encoding="utf-8")
                backed_up = True

            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ToolExecutionError(f"Could not write {file_path}: {e}") from e

        relative = target.relative_to(self.root).as_posix()
        self.logger.info("file_written", path=relative, size=len(content), backed_up=backed_up)

        if backed_up:
            return f"Updated file {relative} ({len(content)} chars, backup saved as {relative}.bak)"
        return f"Created file {relative} ({len(content)} chars)"

    def create_source_file(self, class_name: str, file_path: str, content: str) -> str:
        """Write a Python module that must define class_name."""
        if not class_name or not class_name.isidentifier():
            raise ToolExecutionError(f"Invalid class name: {class_name!r}")
        if not file_path.endswith(".py"):
            raise ToolExecutionError(f"Source files must have a .py suffix: {file_path}")
        if not re.search(rf"^\s*class\s+{re.escape(class_name)}\b", content, re.MULTILINE):
            raise ToolExecutionError(f"Content does not define class {class_name}")

        message = self.create_file(file_path, content)
        return f"{message}; defines class {class_name}"
