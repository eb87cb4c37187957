"""
Compile checks and build commands for Python workspaces.

Compilation means byte-compiling every Python source in memory; nothing is
written to __pycache__. Build operations run configured commands.
"""

import shlex
import subprocess
import sys
from pathlib import Path

import structlog

from codeloop.core.domain.errors import ToolExecutionError

EXCLUDED_DIRS = {".git", ".venv", "venv", "__pycache__", "node_modules", ".tox", "build", "dist"}

DEFAULT_BUILD_COMMANDS: dict[str, list[str]] = {
    "test": [sys.executable, "-m", "pytest", "-q"],
    "build": [sys.executable, "-m", "compileall", "-q", "."],
}

OUTPUT_TAIL_LINES = 40


def iter_python_files(root: Path):
    """Python sources below root, skipping virtualenvs, caches and hidden dirs."""
    for path in sorted(root.rglob("*.py")):
        relative_parts = path.relative_to(root).parts[:-1]
        if any(part in EXCLUDED_DIRS or part.startswith(".") for part in relative_parts):
            continue
        yield path


def _tail(text: str, lines: int = OUTPUT_TAIL_LINES) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])


class BuildTools:
    def __init__(
        self,
        root: Path,
        build_commands: dict[str, list[str] | str] | None = None,
        timeout_seconds: int = 300,
    ):
        self.root = Path(root)
        self.build_commands = dict(DEFAULT_BUILD_COMMANDS)
        self.build_commands.update(build_commands or {})
        self.timeout_seconds = timeout_seconds
        self.logger = structlog.get_logger().bind(tool="build_tools")

    def collect_diagnostics(self) -> tuple[int, list[str]]:
        """
        Compile every source file.

        Returns:
            Number of files checked and one "path:line: error: msg" entry per
            file that failed to compile
        """
        checked = 0
        diagnostics = []
        for path in iter_python_files(self.root):
            checked += 1
            relative = path.relative_to(self.root).as_posix()
            try:
                source = path.read_text(encoding="utf-8")
                compile(source, relative, "exec", dont_inherit=True)
            except SyntaxError as e:
                diagnostics.append(f"{relative}:{e.lineno or 0}: error: {e.msg}")
            except (UnicodeDecodeError, ValueError) as e:
                diagnostics.append(f"{relative}:0: error: {e}")
        return checked, diagnostics

    def compile_and_check(self) -> str:
        checked, diagnostics = self.collect_diagnostics()
        self.logger.info("compile_check", files=checked, errors=len(diagnostics))
        if diagnostics:
            raise ToolExecutionError(
                f"Compilation failed with {len(diagnostics)} error(s): " + "; ".join(diagnostics),
                details="\n".join(diagnostics),
            )
        return f"Compilation successful ({checked} files checked)"

    def get_diagnostics(self) -> str:
        checked, diagnostics = self.collect_diagnostics()
        if not diagnostics:
            return f"No diagnostics - all {checked} files compile cleanly"
        return "\n".join(diagnostics)

    def build_project(self, operation: str) -> str:
        command = self.build_commands.get(operation)
        if command is None:
            raise ToolExecutionError(
                f"Unknown build operation: {operation}. "
                f"Available: {', '.join(sorted(self.build_commands))}"
            )
        argv = shlex.split(command) if isinstance(command, str) else list(command)

        try:
            result = subprocess.run(
                argv,
                cwd=self.root,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as e:
            raise ToolExecutionError(
                f"Build '{operation}' timed out after {self.timeout_seconds}s"
            ) from e
        except FileNotFoundError as e:
            raise ToolExecutionError(f"Build command not found: {argv[0]}") from e

        output = _tail((result.stdout or "") + "\n" + (result.stderr or ""))
        self.logger.info("build_executed", operation=operation, returncode=result.returncode)

        if result.returncode != 0:
            raise ToolExecutionError(
                f"Build '{operation}' failed (exit code {result.returncode})\n{output}",
                details=output,
            )
        return f"Build '{operation}' succeeded\n{output}".rstrip()
