"""Skill graph: the validated, read-only catalog of every skill tree.

Edges are `requires` links (prerequisite → dependent). Every reference a
skill makes (requires, exclusive_with, replaces) must stay inside its own
tree, and `requires` chains must be acyclic. Both are checked once in
build(); the engine never re-checks them per operation.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Iterable

from skill_planner.engine.allocation_config import AllocationConfig
from skill_planner.models.skill import Skill, SkillTree

logger = logging.getLogger(__name__)


class SkillGraphError(ValueError):
    """Raised when skill tree data breaks a structural rule."""


class UnknownSkillError(ValueError):
    """Raised when a caller asks about a skill id absent from the graph."""

    def __init__(self, skill_id: str) -> None:
        super().__init__(f"Unknown skill {skill_id!r}")
        self.skill_id = skill_id


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_skill_fields(skill: Skill, tree: SkillTree, config: AllocationConfig) -> None:
    if skill.tree_id != tree.id:
        raise SkillGraphError(
            f"Skill {skill.id!r} claims tree {skill.tree_id!r} but is listed in {tree.id!r}"
        )
    if not config.is_valid_tier(skill.tier):
        raise SkillGraphError(
            f"Skill {skill.id!r} has tier {skill.tier}, "
            f"expected {config.min_tier}..{config.max_tier}"
        )
    if skill.cost <= 0:
        raise SkillGraphError(f"Skill {skill.id!r} has non-positive cost {skill.cost}")


def _check_references(skill: Skill, tree_ids: frozenset[str]) -> None:
    """Every optional reference must name another skill in the same tree."""
    for label, ref in (
        ("requires", skill.requires),
        ("exclusiveWith", skill.exclusive_with),
        ("replaces", skill.replaces),
    ):
        if ref is None:
            continue
        if ref == skill.id:
            raise SkillGraphError(f"Skill {skill.id!r} {label} itself")
        if ref not in tree_ids:
            raise SkillGraphError(
                f"Skill {skill.id!r} {label} {ref!r}, "
                f"which is not in tree {skill.tree_id!r}"
            )


def _find_requires_cycle(skills: dict[str, Skill]) -> list[str] | None:
    """Return the ids of a `requires` cycle, or None if the chains are acyclic.

    Each skill has at most one outgoing `requires` edge, so following the
    chain from every start point is enough.
    """
    done: set[str] = set()
    for start in skills:
        if start in done:
            continue
        path: list[str] = []
        on_path: set[str] = set()
        current: str | None = start
        while current is not None and current not in done:
            if current in on_path:
                return path[path.index(current):] + [current]
            path.append(current)
            on_path.add(current)
            current = skills[current].requires
        done.update(path)
    return None


# ---------------------------------------------------------------------------
# SkillGraph
# ---------------------------------------------------------------------------


class SkillGraph:
    """Immutable catalog of skill trees with prerequisite/exclusivity lookups."""

    __slots__ = ("_trees", "_skills", "_dependents", "_exclusive", "_config")

    def __init__(self, config: AllocationConfig | None = None) -> None:
        self._config = config or AllocationConfig()
        self._trees: dict[str, SkillTree] = {}
        self._skills: dict[str, Skill] = {}
        self._dependents: dict[str, list[str]] = defaultdict(list)
        self._exclusive: dict[str, list[str]] = defaultdict(list)

    # --- Construction --------------------------------------------------------

    @classmethod
    def build(
        cls,
        trees: Iterable[SkillTree],
        config: AllocationConfig | None = None,
    ) -> SkillGraph:
        """Validate *trees* and build the graph. Raises SkillGraphError."""
        graph = cls(config)
        cfg = graph._config

        for tree in trees:
            if tree.id in graph._trees:
                raise SkillGraphError(f"Duplicate skill tree id {tree.id!r}")
            graph._trees[tree.id] = tree
            for skill in tree.skills:
                if skill.id in graph._skills:
                    other = graph._skills[skill.id].tree_id
                    raise SkillGraphError(
                        f"Duplicate skill id {skill.id!r} (trees {other!r} and {tree.id!r})"
                    )
                _check_skill_fields(skill, tree, cfg)
                graph._skills[skill.id] = skill

        for tree in graph._trees.values():
            tree_ids = tree.skill_ids
            for skill in tree.skills:
                _check_references(skill, tree_ids)

        cycle = _find_requires_cycle(graph._skills)
        if cycle is not None:
            raise SkillGraphError("Prerequisite cycle: " + " -> ".join(cycle))

        # Record reverse edges in load order.
        for skill in graph._skills.values():
            if skill.requires is not None:
                graph._dependents[skill.requires].append(skill.id)
            if skill.exclusive_with is not None:
                partner = skill.exclusive_with
                if partner not in graph._exclusive[skill.id]:
                    graph._exclusive[skill.id].append(partner)
                if skill.id not in graph._exclusive[partner]:
                    graph._exclusive[partner].append(skill.id)

        logger.debug(
            "Built skill graph: %d trees, %d skills",
            len(graph._trees),
            len(graph._skills),
        )
        return graph

    # --- Queries -------------------------------------------------------------

    @property
    def config(self) -> AllocationConfig:
        return self._config

    @property
    def trees(self) -> list[SkillTree]:
        """All trees in load order."""
        return list(self._trees.values())

    def tree(self, tree_id: str) -> SkillTree:
        """Return a tree by id. Raises ValueError for an unknown id."""
        tree = self._trees.get(tree_id)
        if tree is None:
            raise ValueError(f"Unknown skill tree {tree_id!r}")
        return tree

    def get_skill(self, skill_id: str) -> Skill | None:
        return self._skills.get(skill_id)

    def skill(self, skill_id: str) -> Skill:
        """Return a skill by id. Raises UnknownSkillError."""
        skill = self._skills.get(skill_id)
        if skill is None:
            raise UnknownSkillError(skill_id)
        return skill

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def tree_of(self, skill_id: str) -> SkillTree:
        return self._trees[self.skill(skill_id).tree_id]

    def prerequisite_of(self, skill_id: str) -> Skill | None:
        """The skill that must be learned before *skill_id*, if any."""
        req = self.skill(skill_id).requires
        return self._skills[req] if req is not None else None

    def dependents_of(self, skill_id: str) -> list[str]:
        """Ids of skills whose `requires` names *skill_id*."""
        self.skill(skill_id)
        return list(self._dependents.get(skill_id, []))

    def has_dependents(self, skill_id: str) -> bool:
        return bool(self.dependents_of(skill_id))

    def exclusive_partners(self, skill_id: str) -> list[str]:
        """Ids that cannot be learned alongside *skill_id* (either direction)."""
        self.skill(skill_id)
        return list(self._exclusive.get(skill_id, []))

    def replaced_skill(self, skill_id: str) -> Skill | None:
        """The skill *skill_id* is shown as a replacement for, if any."""
        ref = self.skill(skill_id).replaces
        return self._skills[ref] if ref is not None else None

    def prerequisite_chain(self, skill_id: str) -> list[str]:
        """Transitive prerequisites of *skill_id*, deepest first."""
        chain: list[str] = []
        req = self.skill(skill_id).requires
        while req is not None:
            chain.append(req)
            req = self._skills[req].requires
        chain.reverse()
        return chain

    def topological_order(self, tree_id: str) -> list[str]:
        """Skill ids of one tree with prerequisites before dependents.

        Uses Kahn's algorithm; ties keep load order.
        """
        tree = self.tree(tree_id)
        in_degree = {s.id: (1 if s.requires is not None else 0) for s in tree.skills}
        queue: deque[str] = deque(sid for sid, deg in in_degree.items() if deg == 0)
        result: list[str] = []

        while queue:
            sid = queue.popleft()
            result.append(sid)
            for dependent in self._dependents.get(sid, []):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        return result
