"""
System prompt generation from the available tools.

Lists the tools the agent can call, the trigger phrases of its skills, and
hints for the file formats present in the workspace.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from toolwarden.tools.base import Tool

PREAMBLE = (
    "You are an autonomous agent working inside a workspace directory. "
    "Use the tools below to inspect and change files and to run commands. "
    "Some actions require user approval; if a tool reports that permission "
    "was denied, do not retry the same action."
)

# Format-specific tool recommendations
FORMAT_TOOL_HINTS: dict[str, list[str]] = {
    ".csv": ["office (read_csv)", "bash with awk or cut"],
    ".xlsx": ["office (read_excel)"],
    ".pdf": ["office (read_pdf)"],
    ".docx": ["office (write_docx)"],
    ".json": ["filesystem (read_file)", "bash with jq"],
    ".md": ["filesystem (read_file)", "search"],
    ".py": ["search", "bash with python3"],
    ".js": ["search", "bash with node"],
    ".ts": ["search"],
}


def build_system_prompt(
    tools: Iterable[Tool],
    extra_instructions: Optional[str] = None,
    *,
    files: Optional[list[str]] = None,
) -> str:
    """
    Generate the system prompt describing the available tools.

    Args:
        tools: Tools the agent can call. Skill tools contribute their triggers.
        extra_instructions: Additional context appended at the end.
        files: Workspace file names, used for format-specific hints.

    Returns:
        A formatted prompt string.
    """
    tools = list(tools)
    lines: list[str] = [PREAMBLE, ""]

    if tools:
        lines.append("Available tools:")
        for tool in tools:
            lines.append(f"- {tool.name}: {tool.description}")

    skill_lines = []
    for tool in tools:
        triggers = getattr(tool, "triggers", None)
        if triggers:
            skill_lines.append(f"- {tool.name}: use when the request mentions {', '.join(triggers)}")
    if skill_lines:
        lines.append("")
        lines.append("Skills (call with args='read' before first use):")
        lines.extend(skill_lines)

    # File format hints based on what's in the workspace
    tool_names = {tool.name for tool in tools}
    extensions = sorted({Path(f).suffix.lower() for f in files or [] if "." in f})
    hint_lines = []
    for ext in extensions:
        hints = [h for h in FORMAT_TOOL_HINTS.get(ext, []) if h.split()[0] in tool_names]
        if hints:
            hint_lines.append(f"For {ext} files: {', '.join(hints[:2])}")
    if hint_lines:
        lines.append("")
        lines.extend(hint_lines)

    if extra_instructions:
        lines.append("")
        lines.append(extra_instructions)

    return "\n".join(lines)
