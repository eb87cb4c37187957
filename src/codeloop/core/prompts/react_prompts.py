"""
ReAct Loop Prompts

Prompt templates for the think step of the ReAct loop:
- REACT_INSTRUCTIONS: tool catalog and required JSON response shape
- build_initial_prompt(): first iteration
- build_continuation_prompt(): later iterations, restating the previous
  observation and the errors still to fix

The JSON field names must match codeloop.core.domain.schemas.AgentResponse.
"""

from codeloop.core.domain.react_context import ObservationStep

REACT_INSTRUCTIONS = """
You are a coding assistant working in a Python project. You solve the task in
a Think -> Act -> Observe cycle. In each response you either choose exactly ONE
tool to run next, or give the final answer when the task is done.

## Available tools
- create_source_file: Create a Python module defining a class.
  parameters: {"class_name": str, "file_path": str, "content": str}
- create_file: Create or overwrite any file.
  parameters: {"file_path": str, "content": str}
- compile_and_check: Compile all Python sources and report errors.
  parameters: {}
- get_diagnostics: Show detailed compiler diagnostics.
  parameters: {}
- run_git_command: Run a git operation (status, diff, log, add, commit, branch,
  checkout, init).
  parameters: {"operation": str, "parameters": {"message": str, "files": str, "name": str, "branch": str}}
- build_project: Run a build operation (test, build).
  parameters: {"operation": str}
- analyze_code: Summarize modules, classes and functions of the project.
  parameters: {"request": str, "scope": "project" | "<relative path>"}

## Rules
1. Files created with create_source_file or create_file are compile-checked
   automatically; fix reported errors before finishing.
2. Only set "final_answer" when the task is fully done. Leave "action" null then.
3. Set "continue_cycle" to false only when no further action is needed.

## Response format
Respond with a single JSON object and nothing else:
{
  "thinking": "your reasoning about the next step",
  "action": {
    "tool": "tool_name",
    "parameters": {},
    "reasoning": "why this tool"
  },
  "final_answer": null,
  "continue_cycle": true
}
""".strip()


def build_initial_prompt(request: str) -> str:
    return f"""{REACT_INSTRUCTIONS}

## Task
{request}

Respond with JSON only:"""


def build_continuation_prompt(
    request: str,
    previous: ObservationStep | None,
    errors: list[str],
    iteration: int,
) -> str:
    """Prompt for iteration > 1, seeded with the last observation and open errors."""
    sections = [REACT_INSTRUCTIONS, ""]

    if previous is not None:
        status = "SUCCESS" if previous.success else "FAILED"
        sections.append(f"## PREVIOUS OBSERVATION ({status})")
        sections.append(previous.result)
        sections.append("")

    if errors:
        sections.append("## ERRORS TO FIX")
        sections.extend(f"- {error}" for error in errors)
        sections.append("")

    sections.append(f"## CONTINUE ReAct cycle (iteration {iteration}) for:")
    sections.append(request)
    sections.append("")
    sections.append("Respond with JSON only:")
    return "\n".join(sections)
