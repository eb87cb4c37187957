"""Git operations run as subprocesses inside the workspace."""

import subprocess
from pathlib import Path
from typing import Any

import structlog

from codeloop.core.domain.errors import ToolExecutionError

ALLOWED_OPERATIONS = ("status", "diff", "log", "add", "commit", "branch", "checkout", "init")


class GitTools:
    def __init__(self, root: Path, timeout_seconds: int = 30):
        self.root = Path(root)
        self.timeout_seconds = timeout_seconds
        self.logger = structlog.get_logger().bind(tool="git_tools")

    def build_command(self, operation: str, parameters: dict[str, Any]) -> list[str]:
        """Translate an operation and its parameters into a git argv."""
        operation = (operation or "").strip().lower()
        if operation not in ALLOWED_OPERATIONS:
            raise ToolExecutionError(
                f"Unsupported git operation: {operation or '<empty>'}. "
                f"Allowed: {', '.join(ALLOWED_OPERATIONS)}"
            )

        if operation == "status":
            return ["git", "status", "--short"]
        if operation == "diff":
            cmd = ["git", "diff"]
            if parameters.get("staged"):
                cmd.append("--staged")
            return cmd
        if operation == "log":
            count = int(parameters.get("count", 10))
            return ["git", "log", "--oneline", f"-{count}"]
        if operation == "add":
            files = parameters.get("files") or "."
            if isinstance(files, str):
                files = files.split()
            return ["git", "add", *[str(f) for f in files]]
        if operation == "commit":
            message = parameters.get("message")
            if not message:
                raise ToolExecutionError("Commit message is required")
            return ["git", "commit", "-m", str(message)]
        if operation == "branch":
            name = parameters.get("name")
            return ["git", "branch", str(name)] if name else ["git", "branch", "--list"]
        if operation == "checkout":
            branch = parameters.get("branch") or parameters.get("name")
            if not branch:
                raise ToolExecutionError("Branch name is required for checkout")
            return ["git", "checkout", str(branch)]
        return ["git", "init", "-b", str(parameters.get("branch", "main"))]

    def run(self, operation: str, parameters: dict[str, Any]) -> str:
        cmd = self.build_command(operation, parameters)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as e:
            raise ToolExecutionError(f"Git command timed out: {' '.join(cmd)}") from e
        except FileNotFoundError as e:
            raise ToolExecutionError("git executable not found") from e

        self.logger.info("git_command_executed", command=" ".join(cmd), returncode=result.returncode)

        if result.returncode != 0:
            error = (result.stderr or result.stdout).strip()
            raise ToolExecutionError(f"git {cmd[1]} failed: {error}", details=result.stderr)

        output = result.stdout.strip()
        return output or f"git {cmd[1]} completed"
