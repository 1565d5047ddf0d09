"""
In-memory store of skills and their assignment to agents.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from toolwarden.skills.loader import SkillLoadReport, load_skills
from toolwarden.skills.types import LoadedSkill

logger = logging.getLogger(__name__)


class SkillRegistry:
    """
    Many-to-many mapping between agents and skills.

    Skills are keyed by name. Unregistering a skill also removes it from every
    agent it was assigned to.
    """

    def __init__(self) -> None:
        self._skills: dict[str, LoadedSkill] = {}
        self._assignments: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def register(self, skill: LoadedSkill) -> None:
        with self._lock:
            if skill.name in self._skills:
                logger.info("Replacing registered skill %s", skill.name)
            self._skills[skill.name] = skill

    def register_directory(self, root: Path | str) -> SkillLoadReport:
        """Load and register every skill under ``root``."""
        report = load_skills(root)
        for skill in report.loaded:
            self.register(skill)
        return report

    def unregister(self, name: str) -> bool:
        with self._lock:
            if self._skills.pop(name, None) is None:
                return False
            for names in self._assignments.values():
                names.discard(name)
            return True

    def get(self, name: str) -> Optional[LoadedSkill]:
        with self._lock:
            return self._skills.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._skills)

    def assign(self, agent_id: str, name: str) -> None:
        """
        Raises:
            KeyError: If no skill named ``name`` is registered.
        """
        with self._lock:
            if name not in self._skills:
                raise KeyError(f"Unknown skill: {name}")
            self._assignments.setdefault(agent_id, set()).add(name)

    def unassign(self, agent_id: str, name: str) -> bool:
        with self._lock:
            names = self._assignments.get(agent_id)
            if not names or name not in names:
                return False
            names.discard(name)
            return True

    def skills_for(self, agent_id: str) -> list[LoadedSkill]:
        with self._lock:
            names = sorted(self._assignments.get(agent_id, ()))
            return [self._skills[n] for n in names if n in self._skills]

    def agents_for(self, name: str) -> list[str]:
        with self._lock:
            return sorted(agent for agent, names in self._assignments.items() if name in names)

    def __len__(self) -> int:
        with self._lock:
            return len(self._skills)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._skills
