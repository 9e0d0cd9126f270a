"""Display rows for the skill calculator screens.

The tree navigation bar shows points spent per tree, and each tree page
shows its active and passive columns with learned state and tooltip
reasons. Icon positions are left to whatever draws the rows.
"""

from __future__ import annotations

from dataclasses import dataclass

from skill_planner.engine.allocation_engine import AllocationEngine
from skill_planner.engine.learnability import evaluate
from skill_planner.models.allocation import AllocationSnapshot
from skill_planner.models.skill import Skill, SkillType


@dataclass(frozen=True, slots=True)
class TreeSummary:
    """One entry of the tree navigation bar."""

    tree_id: str
    title: str
    points_spent: int


@dataclass(frozen=True, slots=True)
class SkillRow:
    """Display state for a single skill icon."""

    skill_id: str
    title: str
    tier: int
    type: SkillType
    cost: int
    learned: bool
    can_learn: bool
    reason: str
    has_dependents: bool
    requires: str | None = None
    replaces_title: str | None = None


@dataclass(frozen=True, slots=True)
class TreeView:
    """Both columns of a tree, in display order."""

    tree_id: str
    title: str
    points_spent: int
    active: list[SkillRow]
    passive: list[SkillRow]


class SkillTreeUiModel:
    """Read/toggle adapter for UI operations over an AllocationEngine."""

    __slots__ = ("_engine",)

    def __init__(self, engine: AllocationEngine) -> None:
        self._engine = engine

    @property
    def skill_points_remaining(self) -> int:
        return self._engine.skill_points_remaining

    @property
    def out_of_points(self) -> bool:
        return self._engine.skill_points_remaining <= 0

    def tree_summaries(self) -> list[TreeSummary]:
        return [
            TreeSummary(
                tree_id=tree.id,
                title=tree.title,
                points_spent=self._engine.points_spent_in_tree(tree.id),
            )
            for tree in self._engine.graph.trees
        ]

    def tree_view(self, tree_id: str) -> TreeView:
        """Rows for one tree; active column by tier then skill_num descending."""
        graph = self._engine.graph
        tree = graph.tree(tree_id)
        snap = self._engine.snapshot()

        active = sorted(tree.active_skills, key=lambda s: (s.tier, -s.skill_num))
        passive = sorted(tree.passive_skills, key=lambda s: (s.tier, s.skill_num))
        return TreeView(
            tree_id=tree.id,
            title=tree.title,
            points_spent=self._engine.points_spent_in_tree(tree.id),
            active=[self._row(s, snap) for s in active],
            passive=[self._row(s, snap) for s in passive],
        )

    def toggle(self, skill_id: str) -> tuple[bool, str | None]:
        result = self._engine.toggle(skill_id)
        if result.ok:
            return True, None
        return False, result.message

    def _row(self, skill: Skill, snap: AllocationSnapshot) -> SkillRow:
        graph = self._engine.graph
        learned = skill.id in snap.learned_skills
        if learned:
            can_learn, reason = False, ""
        else:
            check = evaluate(skill, graph, snap)
            can_learn, reason = check.can_learn, check.reason
        replaced = graph.replaced_skill(skill.id)
        return SkillRow(
            skill_id=skill.id,
            title=skill.title,
            tier=skill.tier,
            type=skill.type,
            cost=skill.cost,
            learned=learned,
            can_learn=can_learn,
            reason=reason,
            has_dependents=graph.has_dependents(skill.id),
            requires=skill.requires,
            replaces_title=replaced.title if replaced else None,
        )
