"""Learnability evaluation: can this skill be learned from this snapshot?

evaluate() is pure: it reads the graph and a snapshot and returns a
Learnability value. The engine uses it to guard every mutation and the
presentation layer calls it freely to render enabled/disabled state and
tooltip reasons.

Checks run in a fixed order and the first failure determines the reason:
  1. tier threshold (points already spent in the tree)
  2. remaining budget
  3. prerequisite learned
  4. no exclusive partner learned
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from skill_planner.graph.skill_graph import SkillGraph
from skill_planner.models.allocation import AllocationSnapshot, points_spent_in_tree
from skill_planner.models.skill import Skill


class FailureReason(str, Enum):
    """Why a learn/unlearn/adjust request was rejected."""

    TIER_THRESHOLD_NOT_MET = "tier_threshold_not_met"
    INSUFFICIENT_BUDGET = "insufficient_budget"
    MISSING_PREREQUISITE = "missing_prerequisite"
    EXCLUSIVITY_CONFLICT = "exclusivity_conflict"
    WOULD_INVALIDATE_DEPENDENT = "would_invalidate_dependent"


@dataclass(frozen=True, slots=True)
class Learnability:
    """Result of evaluate(); reason is empty when can_learn is True."""

    can_learn: bool
    reason: str = ""
    code: FailureReason | None = None
    blocking_skill_id: str | None = None

    def __bool__(self) -> bool:
        return self.can_learn


LEARNABLE = Learnability(can_learn=True)


def _blocked(
    code: FailureReason, reason: str, blocking_skill_id: str | None = None
) -> Learnability:
    return Learnability(
        can_learn=False,
        reason=reason,
        code=code,
        blocking_skill_id=blocking_skill_id,
    )


def evaluate(
    skill: Skill, graph: SkillGraph, snapshot: AllocationSnapshot
) -> Learnability:
    """Decide whether *skill* could be learned from *snapshot*."""
    learned = snapshot.learned_skills

    required_points = graph.config.tier_threshold(skill.tier)
    spent = points_spent_in_tree(graph.tree(skill.tree_id), learned)
    if required_points > spent:
        return _blocked(
            FailureReason.TIER_THRESHOLD_NOT_MET,
            f"Requires {required_points} points in previous tiers.",
        )

    if snapshot.skill_points_remaining - skill.cost < 0:
        return _blocked(FailureReason.INSUFFICIENT_BUDGET, "Not enough skill points.")

    if skill.requires is not None and skill.requires not in learned:
        required = graph.skill(skill.requires)
        return _blocked(
            FailureReason.MISSING_PREREQUISITE,
            f"Requires {required.title}.",
            required.id,
        )

    for partner_id in graph.exclusive_partners(skill.id):
        if partner_id in learned:
            partner = graph.skill(partner_id)
            return _blocked(
                FailureReason.EXCLUSIVITY_CONFLICT,
                f"Disabled by {partner.title}.",
                partner.id,
            )

    return LEARNABLE
