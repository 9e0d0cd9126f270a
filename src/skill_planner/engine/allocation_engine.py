"""Allocation engine: learns and unlearns skills without breaking the build.

Owns an AllocationState and is its single writer. Every mutation follows
the same pattern: evaluate against a snapshot, then apply the whole change
in one step. A rejected call returns an AllocationResult carrying the
reason and leaves the state untouched.

Unlearning runs a cascade-safety check: each other learned skill in the
same tree must still be learnable on its own once the target is gone,
i.e. against the remaining set with that skill also removed and its cost
refunded. This catches removing a prerequisite and removing points that
propped up a later tier.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass

from skill_planner.engine.learnability import (
    FailureReason,
    Learnability,
    evaluate,
)
from skill_planner.graph.skill_graph import SkillGraph
from skill_planner.models.allocation import (
    AllocationSnapshot,
    AllocationState,
    points_spent_in_tree,
)
from skill_planner.models.skill import Skill

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AllocationResult:
    """Outcome of a mutating call. ok=False means nothing changed."""

    ok: bool
    skill_id: str | None = None
    reason: FailureReason | None = None
    message: str = ""
    blocking_skill_id: str | None = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(slots=True)
class AllocationError:
    """A single invariant violation discovered during validation."""

    skill_id: str | None
    category: str      # "budget" | "tier" | "prerequisite" | "exclusive" | "unknown"
    message: str


_CATEGORY_BY_REASON = {
    FailureReason.TIER_THRESHOLD_NOT_MET: "tier",
    FailureReason.INSUFFICIENT_BUDGET: "budget",
    FailureReason.MISSING_PREREQUISITE: "prerequisite",
    FailureReason.EXCLUSIVITY_CONFLICT: "exclusive",
}


def _rejected(skill_id: str | None, check: Learnability) -> AllocationResult:
    return AllocationResult(
        ok=False,
        skill_id=skill_id,
        reason=check.code,
        message=check.reason,
        blocking_skill_id=check.blocking_skill_id,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AllocationEngine:
    """Stateful controller over one character's skill allocation.

    Consumes a SkillGraph without modifying it. Callers must serialise
    calls; nothing here is thread-safe.
    """

    __slots__ = ("_graph", "_state")

    def __init__(self, graph: SkillGraph, skill_points: int = 0) -> None:
        if skill_points < 0:
            raise ValueError(f"skill_points must be >= 0, got {skill_points}")
        self._graph = graph
        self._state = AllocationState(skill_points_remaining=skill_points)

    # --- Factories ---------------------------------------------------------

    @classmethod
    def from_state(cls, state: AllocationState, graph: SkillGraph) -> AllocationEngine:
        """Restore an engine from a saved state. Raises ValueError if invalid."""
        engine = cls(graph)
        engine._state = AllocationState(
            learned_skills=set(state.learned_skills),
            skill_points_remaining=state.skill_points_remaining,
        )
        errors = engine.validate()
        if errors:
            details = "; ".join(e.message for e in errors)
            raise ValueError(f"Invalid allocation state: {details}")
        return engine

    def copy(self) -> AllocationEngine:
        """Independent engine for speculative exploration."""
        clone = AllocationEngine.__new__(AllocationEngine)
        clone._graph = self._graph
        clone._state = copy.deepcopy(self._state)
        return clone

    # --- State -------------------------------------------------------------

    @property
    def graph(self) -> SkillGraph:
        return self._graph

    @property
    def state(self) -> AllocationState:
        """Return a deep copy of the current state for serialisation."""
        return copy.deepcopy(self._state)

    @property
    def skill_points_remaining(self) -> int:
        return self._state.skill_points_remaining

    @property
    def learned_skills(self) -> frozenset[str]:
        return frozenset(self._state.learned_skills)

    def snapshot(self) -> AllocationSnapshot:
        return self._state.snapshot()

    def is_learned(self, skill_id: str) -> bool:
        self._graph.skill(skill_id)
        return skill_id in self._state.learned_skills

    # --- Queries -----------------------------------------------------------

    def can_learn(self, skill_id: str) -> Learnability:
        """Learnability of *skill_id* against the current state."""
        return evaluate(self._graph.skill(skill_id), self._graph, self.snapshot())

    def points_spent_in_tree(self, tree_id: str) -> int:
        return points_spent_in_tree(self._graph.tree(tree_id), self._state.learned_skills)

    def learnable_skills(self, tree_id: str) -> list[str]:
        """Unlearned skill ids in *tree_id* that could be learned right now."""
        snap = self.snapshot()
        return [
            s.id
            for s in self._graph.tree(tree_id).skills
            if s.id not in snap.learned_skills and evaluate(s, self._graph, snap)
        ]

    # --- Mutations ---------------------------------------------------------

    def toggle(self, skill_id: str) -> AllocationResult:
        """Learn *skill_id* if unlearned, otherwise unlearn it."""
        if self.is_learned(skill_id):
            return self.unlearn(skill_id)
        return self.learn(skill_id)

    def learn(self, skill_id: str) -> AllocationResult:
        skill = self._graph.skill(skill_id)
        if skill_id in self._state.learned_skills:
            return AllocationResult(ok=True, skill_id=skill_id)

        check = evaluate(skill, self._graph, self.snapshot())
        if not check.can_learn:
            logger.debug("Rejected learn %s: %s", skill_id, check.reason)
            return _rejected(skill_id, check)

        self._state.learned_skills.add(skill_id)
        self._state.skill_points_remaining -= skill.cost
        logger.debug(
            "Learned %s (-%d, %d remaining)",
            skill_id, skill.cost, self._state.skill_points_remaining,
        )
        return AllocationResult(ok=True, skill_id=skill_id)

    def unlearn(self, skill_id: str) -> AllocationResult:
        skill = self._graph.skill(skill_id)
        if skill_id not in self._state.learned_skills:
            return AllocationResult(ok=True, skill_id=skill_id)

        after = self.snapshot().without(skill)
        broken = self._first_invalidated(skill, after)
        if broken is not None:
            message = (
                f"Cannot unlearn {skill.title} because it would invalidate {broken.title}."
            )
            logger.debug("Rejected unlearn %s: %s", skill_id, message)
            return AllocationResult(
                ok=False,
                skill_id=skill_id,
                reason=FailureReason.WOULD_INVALIDATE_DEPENDENT,
                message=message,
                blocking_skill_id=broken.id,
            )

        self._state.learned_skills.discard(skill_id)
        self._state.skill_points_remaining += skill.cost
        logger.debug(
            "Unlearned %s (+%d, %d remaining)",
            skill_id, skill.cost, self._state.skill_points_remaining,
        )
        return AllocationResult(ok=True, skill_id=skill_id)

    def adjust_points(self, delta: int) -> AllocationResult:
        """Grant (delta > 0) or revoke (delta < 0) unspent points."""
        remaining = self._state.skill_points_remaining + delta
        if remaining < 0:
            return AllocationResult(
                ok=False,
                reason=FailureReason.INSUFFICIENT_BUDGET,
                message=(
                    f"Cannot remove {-delta} points; only "
                    f"{self._state.skill_points_remaining} unspent."
                ),
            )
        self._state.skill_points_remaining = remaining
        return AllocationResult(ok=True)

    def reset(self, skill_points: int) -> None:
        """Forget every learned skill and set a fresh pool."""
        if skill_points < 0:
            raise ValueError(f"skill_points must be >= 0, got {skill_points}")
        self._state = AllocationState(skill_points_remaining=skill_points)
        logger.info("Allocation reset with %d points", skill_points)

    def respec_tree(self, tree_id: str) -> int:
        """Unlearn every skill in one tree. Returns the points refunded."""
        tree = self._graph.tree(tree_id)
        refunded = points_spent_in_tree(tree, self._state.learned_skills)
        # Other trees never reference this one, so the rest stays valid.
        self._state.learned_skills -= tree.skill_ids
        self._state.skill_points_remaining += refunded
        logger.info("Respecced tree %s (+%d)", tree_id, refunded)
        return refunded

    # --- Validation --------------------------------------------------------

    def validate(self) -> list[AllocationError]:
        """Check the current state against every allocation invariant.

        A state is valid when each learned skill could be learned again
        from the state without it, which is exactly what the cascade
        check preserves.
        """
        errors: list[AllocationError] = []
        state = self._state

        if state.skill_points_remaining < 0:
            errors.append(AllocationError(
                None, "budget",
                f"Remaining points are negative ({state.skill_points_remaining})",
            ))

        known: list[Skill] = []
        for skill_id in sorted(state.learned_skills):
            skill = self._graph.get_skill(skill_id)
            if skill is None:
                errors.append(AllocationError(
                    skill_id, "unknown", f"Unknown skill {skill_id!r}"
                ))
            else:
                known.append(skill)
        if errors:
            return errors

        snap = self.snapshot()
        for skill in known:
            check = evaluate(skill, self._graph, snap.without(skill))
            if not check.can_learn:
                errors.append(AllocationError(
                    skill.id,
                    _CATEGORY_BY_REASON[check.code],
                    f"{skill.title}: {check.reason}",
                ))
        return errors

    def is_valid(self) -> bool:
        return len(self.validate()) == 0

    # --- Internal helpers --------------------------------------------------

    def _first_invalidated(
        self, target: Skill, after: AllocationSnapshot
    ) -> Skill | None:
        """First same-tree learned skill that *after* would leave unlearnable."""
        for other in self._graph.tree(target.tree_id).skills:
            if other.id == target.id or other.id not in after.learned_skills:
                continue
            if not evaluate(other, self._graph, after.without(other)).can_learn:
                return other
        return None
