"""Character allocation state.

AllocationState is the mutable record owned by the engine. AllocationSnapshot
is the immutable view handed to the learnability evaluator. Points spent in a
tree are always derived from the learned set, never stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from skill_planner.models.skill import Skill, SkillTree


@dataclass(slots=True)
class AllocationState:
    """Learned skill ids (across all trees) and the shared remaining pool."""

    learned_skills: set[str] = field(default_factory=set)
    skill_points_remaining: int = 0

    def snapshot(self) -> AllocationSnapshot:
        return AllocationSnapshot(
            learned_skills=frozenset(self.learned_skills),
            skill_points_remaining=self.skill_points_remaining,
        )


@dataclass(frozen=True, slots=True)
class AllocationSnapshot:
    """Read-only (learned_skills, skill_points_remaining) pair."""

    learned_skills: frozenset[str] = frozenset()
    skill_points_remaining: int = 0

    def without(self, skill: Skill) -> AllocationSnapshot:
        """Hypothetical snapshot with *skill* removed and its cost refunded."""
        return AllocationSnapshot(
            learned_skills=self.learned_skills - {skill.id},
            skill_points_remaining=self.skill_points_remaining + skill.cost,
        )

    def with_skill(self, skill: Skill) -> AllocationSnapshot:
        """Hypothetical snapshot with *skill* added and its cost paid."""
        return AllocationSnapshot(
            learned_skills=self.learned_skills | {skill.id},
            skill_points_remaining=self.skill_points_remaining - skill.cost,
        )


def points_spent(skills: Iterable[Skill], learned: Iterable[str]) -> int:
    """Sum of costs over *skills* present in *learned*."""
    learned_set = learned if isinstance(learned, (set, frozenset)) else set(learned)
    return sum(s.cost for s in skills if s.id in learned_set)


def points_spent_in_tree(tree: SkillTree | None, learned: Iterable[str]) -> int:
    """Points spent in *tree*; 0 for a missing tree."""
    if tree is None:
        return 0
    return points_spent(tree.skills, learned)
