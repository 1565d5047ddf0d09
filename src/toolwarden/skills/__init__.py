"""
Skill bundles: parsing, loading, registration and tool adaptation.
"""

from toolwarden.skills.loader import (
    SkillLoadReport,
    detect_file_type,
    list_marketplace_skills,
    load_skill,
    load_skill_from_directory,
    load_skill_from_zip,
    load_skills,
)
from toolwarden.skills.parser import parse_skill_md
from toolwarden.skills.registry import SkillRegistry
from toolwarden.skills.tool import SkillTool, adapt_skills, load_skill_tools
from toolwarden.skills.types import LoadedSkill, ParsedSkill, SkillFile, SkillInfo, SkillSandboxConfig

__all__ = [
    "LoadedSkill",
    "ParsedSkill",
    "SkillFile",
    "SkillInfo",
    "SkillLoadReport",
    "SkillRegistry",
    "SkillSandboxConfig",
    "SkillTool",
    "adapt_skills",
    "detect_file_type",
    "list_marketplace_skills",
    "load_skill",
    "load_skill_from_directory",
    "load_skill_from_zip",
    "load_skill_tools",
    "load_skills",
    "parse_skill_md",
]
