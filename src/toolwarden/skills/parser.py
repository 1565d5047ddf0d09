"""
SKILL.md parsing: YAML frontmatter followed by a markdown body.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import yaml

from toolwarden.errors import ConfigurationError, SkillLoadError
from toolwarden.skills.types import ParsedSkill, SkillSandboxConfig
from toolwarden.types import ExecutionMode

MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(.*)\Z", re.DOTALL)

_TRUE_STRINGS = {"true", "yes", "1"}
_FALSE_STRINGS = {"false", "no", "0", ""}

# field name -> accepted python types
_SANDBOX_FIELDS: dict[str, tuple[type, ...]] = {
    "image": (str,),
    "memory_limit": (str,),
    "cpu_limit": (int, float),
    "timeout_seconds": (int,),
    "network_enabled": (bool,),
}


def _split_frontmatter(text: str) -> tuple[str, str]:
    match = _FRONTMATTER_RE.match(text.lstrip("\ufeff"))
    if not match:
        raise SkillLoadError("SKILL.md must start with YAML frontmatter delimited by '---'")
    return match.group(1), match.group(2)


def _optional_str(meta: dict[str, Any], key: str) -> Optional[str]:
    value = meta.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int, float)):
        raise SkillLoadError(f"'{key}' must be a string")
    return str(value)


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise SkillLoadError(f"'{key}' must be a boolean")


def _parse_triggers(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise SkillLoadError("'triggers' must be a list of strings")
    return list(value)


def _parse_sandbox_config(value: Any) -> Optional[SkillSandboxConfig]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise SkillLoadError("'sandbox_config' must be a mapping")

    values: dict[str, Any] = {}
    for key, raw in value.items():
        if key not in _SANDBOX_FIELDS:
            raise SkillLoadError(f"Unknown sandbox_config field '{key}'")
        if raw is None:
            continue
        accepted = _SANDBOX_FIELDS[key]
        # bool is an int subclass; only network_enabled takes one
        if isinstance(raw, bool) and bool not in accepted:
            raise SkillLoadError(f"sandbox_config.{key} has the wrong type")
        if not isinstance(raw, accepted):
            raise SkillLoadError(f"sandbox_config.{key} has the wrong type")
        values[key] = float(raw) if key == "cpu_limit" else raw
    return SkillSandboxConfig(**values)


def _parse_execution_mode(value: Any) -> Optional[ExecutionMode]:
    if value is None:
        return None
    try:
        return ExecutionMode.parse(str(value))
    except ConfigurationError as e:
        raise SkillLoadError(str(e)) from None


def parse_skill_md(text: str) -> ParsedSkill:
    """
    Parse the contents of a SKILL.md file.

    Raises:
        SkillLoadError: If the frontmatter is missing, is not valid YAML, or
            violates a field constraint.
    """
    frontmatter, body = _split_frontmatter(text)
    try:
        meta = yaml.safe_load(frontmatter) or {}
    except yaml.YAMLError as e:
        raise SkillLoadError(f"Invalid YAML frontmatter: {e}") from None
    if not isinstance(meta, dict):
        raise SkillLoadError("SKILL.md frontmatter must be a mapping")

    name = _optional_str(meta, "name")
    if not name:
        raise SkillLoadError("SKILL.md must have a 'name' field in frontmatter")
    description = _optional_str(meta, "description")
    if not description:
        raise SkillLoadError("SKILL.md must have a 'description' field in frontmatter")

    if len(name) > MAX_NAME_LENGTH:
        raise SkillLoadError(f"Skill name must be at most {MAX_NAME_LENGTH} characters")
    if not _NAME_RE.match(name):
        raise SkillLoadError(
            "Skill name may only contain letters, digits, hyphens and underscores"
        )
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise SkillLoadError(f"Skill description must be at most {MAX_DESCRIPTION_LENGTH} characters")

    requires_sandbox = meta.get("requires_sandbox")
    return ParsedSkill(
        name=name,
        description=description,
        body=body.strip(),
        license=_optional_str(meta, "license"),
        category=_optional_str(meta, "category"),
        triggers=_parse_triggers(meta.get("triggers")),
        requires_sandbox=False if requires_sandbox is None else _parse_bool(requires_sandbox, "requires_sandbox"),
        sandbox_config=_parse_sandbox_config(meta.get("sandbox_config")),
        execution_mode=_parse_execution_mode(meta.get("execution_mode")),
    )
