"""Tests for the skill graph: load-time validation and graph queries."""

import pytest

from skill_planner.engine.allocation_config import AllocationConfig
from skill_planner.graph.skill_graph import (
    SkillGraph,
    SkillGraphError,
    UnknownSkillError,
)
from skill_planner.models.skill import Skill, SkillTree, SkillType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _skill(
    skill_id: str,
    tree_id: str = "warrior",
    tier: int = 1,
    cost: int = 1,
    skill_type: SkillType = SkillType.ACTIVE,
    requires: str | None = None,
    exclusive_with: str | None = None,
    replaces: str | None = None,
) -> Skill:
    return Skill(
        id=skill_id,
        tree_id=tree_id,
        title=skill_id.title(),
        tier=tier,
        type=skill_type,
        cost=cost,
        requires=requires,
        exclusive_with=exclusive_with,
        replaces=replaces,
    )


def _tree(tree_id: str, *skills: Skill) -> SkillTree:
    return SkillTree(id=tree_id, title=tree_id.title(), skills=skills)


def _sample_graph() -> SkillGraph:
    return SkillGraph.build([
        _tree(
            "warrior",
            _skill("a"),
            _skill("b", tier=2, requires="a"),
            _skill("c", tier=3, requires="b", exclusive_with="d"),
            _skill("d", tier=3, requires="b"),
            _skill("e", skill_type=SkillType.PASSIVE, replaces="a"),
        ),
        _tree("ranger", _skill("r1", tree_id="ranger")),
    ])


# ===========================================================================
# Validation
# ===========================================================================


class TestBuildValidation:
    def test_valid_graph(self):
        graph = _sample_graph()
        assert [t.id for t in graph.trees] == ["warrior", "ranger"]

    def test_duplicate_skill_id_across_trees(self):
        with pytest.raises(SkillGraphError, match="Duplicate skill id"):
            SkillGraph.build([
                _tree("warrior", _skill("a")),
                _tree("ranger", _skill("a", tree_id="ranger")),
            ])

    def test_duplicate_tree_id(self):
        with pytest.raises(SkillGraphError, match="Duplicate skill tree"):
            SkillGraph.build([_tree("warrior"), _tree("warrior")])

    def test_tier_out_of_range(self):
        with pytest.raises(SkillGraphError, match="tier 6"):
            SkillGraph.build([_tree("warrior", _skill("a", tier=6))])

    def test_tier_range_follows_config(self):
        config = AllocationConfig(max_tier=6, capstone_tier=6)
        graph = SkillGraph.build([_tree("warrior", _skill("a", tier=6))], config)
        assert graph.skill("a").tier == 6

    def test_non_positive_cost(self):
        with pytest.raises(SkillGraphError, match="non-positive cost"):
            SkillGraph.build([_tree("warrior", _skill("a", cost=0))])

    def test_tree_id_mismatch(self):
        with pytest.raises(SkillGraphError, match="claims tree"):
            SkillGraph.build([_tree("warrior", _skill("a", tree_id="ranger"))])

    def test_missing_prerequisite_reference(self):
        with pytest.raises(SkillGraphError, match="requires 'ghost'"):
            SkillGraph.build([_tree("warrior", _skill("a", requires="ghost"))])

    def test_cross_tree_prerequisite_rejected(self):
        with pytest.raises(SkillGraphError, match="not in tree 'warrior'"):
            SkillGraph.build([
                _tree("warrior", _skill("a", requires="r1")),
                _tree("ranger", _skill("r1", tree_id="ranger")),
            ])

    def test_cross_tree_exclusivity_rejected(self):
        with pytest.raises(SkillGraphError, match="exclusiveWith 'r1'"):
            SkillGraph.build([
                _tree("warrior", _skill("a", exclusive_with="r1")),
                _tree("ranger", _skill("r1", tree_id="ranger")),
            ])

    def test_self_reference_rejected(self):
        with pytest.raises(SkillGraphError, match="itself"):
            SkillGraph.build([_tree("warrior", _skill("a", exclusive_with="a"))])

    def test_prerequisite_cycle_rejected(self):
        with pytest.raises(SkillGraphError, match="cycle: a -> b -> a"):
            SkillGraph.build([
                _tree("warrior", _skill("a", requires="b"), _skill("b", requires="a")),
            ])

    def test_longer_cycle_rejected(self):
        with pytest.raises(SkillGraphError, match="cycle"):
            SkillGraph.build([
                _tree(
                    "warrior",
                    _skill("root"),
                    _skill("a", requires="c"),
                    _skill("b", requires="a"),
                    _skill("c", requires="b"),
                ),
            ])


# ===========================================================================
# Queries
# ===========================================================================


class TestQueries:
    def test_skill_lookup(self):
        graph = _sample_graph()
        assert graph.skill("b").requires == "a"
        assert graph.get_skill("missing") is None
        assert "a" in graph
        assert "missing" not in graph

    def test_unknown_skill_raises(self):
        graph = _sample_graph()
        with pytest.raises(UnknownSkillError) as excinfo:
            graph.skill("missing")
        assert excinfo.value.skill_id == "missing"
        assert isinstance(excinfo.value, ValueError)

    def test_unknown_tree_raises(self):
        with pytest.raises(ValueError, match="Unknown skill tree"):
            _sample_graph().tree("mage")

    def test_tree_of(self):
        graph = _sample_graph()
        assert graph.tree_of("r1").id == "ranger"

    def test_partitions_preserve_order(self):
        tree = _sample_graph().tree("warrior")
        assert [s.id for s in tree.active_skills] == ["a", "b", "c", "d"]
        assert [s.id for s in tree.passive_skills] == ["e"]

    def test_prerequisite_of(self):
        graph = _sample_graph()
        assert graph.prerequisite_of("b").id == "a"
        assert graph.prerequisite_of("a") is None

    def test_dependents_of(self):
        graph = _sample_graph()
        assert graph.dependents_of("b") == ["c", "d"]
        assert graph.dependents_of("c") == []
        assert graph.has_dependents("a")
        assert not graph.has_dependents("e")

    def test_exclusive_partners_are_symmetric(self):
        # Only c declares the pair; d still sees it.
        graph = _sample_graph()
        assert graph.exclusive_partners("c") == ["d"]
        assert graph.exclusive_partners("d") == ["c"]
        assert graph.exclusive_partners("a") == []

    def test_replaced_skill(self):
        graph = _sample_graph()
        assert graph.replaced_skill("e").id == "a"
        assert graph.replaced_skill("a") is None

    def test_prerequisite_chain_deepest_first(self):
        graph = _sample_graph()
        assert graph.prerequisite_chain("c") == ["a", "b"]
        assert graph.prerequisite_chain("a") == []

    def test_topological_order(self):
        graph = SkillGraph.build([
            _tree(
                "warrior",
                _skill("late", tier=3, requires="mid"),
                _skill("mid", tier=2, requires="root"),
                _skill("root"),
                _skill("other"),
            ),
        ])
        order = graph.topological_order("warrior")
        assert order.index("root") < order.index("mid") < order.index("late")
        assert sorted(order) == ["late", "mid", "other", "root"]
