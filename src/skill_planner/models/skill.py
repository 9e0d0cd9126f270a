"""Skill catalog records.

Skills and trees are loaded once and never mutated. Optional references
(requires, exclusive_with, replaces) are None when absent.
"""

from dataclasses import dataclass
from enum import Enum


class SkillType(str, Enum):
    """Which column of a tree a skill belongs to."""

    ACTIVE = "active"
    PASSIVE = "passive"


@dataclass(frozen=True, slots=True)
class Skill:
    """A single learnable skill within a tree."""

    id: str
    tree_id: str
    title: str
    tier: int                          # 1-5, gates unlock by tree spend
    type: SkillType
    cost: int                          # points consumed when learned
    requires: str | None = None        # single prerequisite in the same tree
    exclusive_with: str | None = None  # sibling that cannot be held together
    replaces: str | None = None        # display only
    skill_num: int = 0                 # ordering within a tier
    description: str = ""


@dataclass(frozen=True, slots=True)
class SkillTree:
    """An ordered collection of skills, partitioned by type."""

    id: str
    title: str
    skills: tuple[Skill, ...] = ()

    @property
    def active_skills(self) -> tuple[Skill, ...]:
        return tuple(s for s in self.skills if s.type is SkillType.ACTIVE)

    @property
    def passive_skills(self) -> tuple[Skill, ...]:
        return tuple(s for s in self.skills if s.type is SkillType.PASSIVE)

    @property
    def skill_ids(self) -> frozenset[str]:
        return frozenset(s.id for s in self.skills)
