"""Static inventory of Python modules, classes and functions."""

import ast
from pathlib import Path

import structlog

from codeloop.core.domain.errors import ToolExecutionError
from codeloop.infrastructure.tools.build_tools import iter_python_files


class AnalysisTools:
    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.logger = structlog.get_logger().bind(tool="analysis_tools")

    def _files_in_scope(self, scope: str) -> list[Path]:
        if not scope or scope == "project":
            return list(iter_python_files(self.root))

        target = (self.root / scope).resolve()
        if target != self.root and self.root not in target.parents:
            raise ToolExecutionError(f"Scope is outside the workspace: {scope}")
        if target.is_file():
            return [target]
        if target.is_dir():
            return list(iter_python_files(target))
        raise ToolExecutionError(f"Scope not found: {scope}")

    def describe_module(self, path: Path) -> str:
        relative = path.relative_to(self.root).as_posix()
        source = path.read_text(encoding="utf-8", errors="replace")
        line_count = len(source.splitlines())
        try:
            tree = ast.parse(source, filename=relative)
        except SyntaxError as e:
            return f"{relative}: {line_count} lines, syntax error at line {e.lineno}: {e.msg}"

        classes = []
        functions = []
        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                methods = [
                    item.name
                    for item in node.body
                    if isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef))
                ]
                classes.append(f"{node.name}({len(methods)} methods)")
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                functions.append(node.name)

        parts = [f"{relative}: {line_count} lines"]
        if classes:
            parts.append(f"classes: {', '.join(classes)}")
        if functions:
            parts.append(f"functions: {', '.join(functions)}")
        if ast.get_docstring(tree) is None:
            parts.append("no module docstring")
        return "; ".join(parts)

    def analyze_code(self, request: str, scope: str) -> str:
        files = self._files_in_scope(scope)
        self.logger.info("code_analyzed", scope=scope or "project", files=len(files))

        lines = [f"Analysis for: {request}", f"Scope: {scope or 'project'} ({len(files)} files)"]
        if not files:
            lines.append("No Python files found.")
        lines.extend(self.describe_module(path) for path in files)
        return "\n".join(lines)
