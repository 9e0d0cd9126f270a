"""Parse skill tree JSON into Skill / SkillTree records.

Accepted payload shapes:
  - a list of tree objects
  - an object with a "skillTrees" (or "trees") list

Tree object: {"id", "title", "skills": [...]}
Skill object keys follow the calculator's data files:
  id, title, tier, type, skillPointCost, requires, exclusiveWith,
  replaces, skillNum, description
Empty strings or nulls on requires/exclusiveWith/replaces mean "absent".
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from skill_planner.engine.allocation_config import AllocationConfig
from skill_planner.graph.skill_graph import SkillGraph, SkillGraphError
from skill_planner.models.skill import Skill, SkillTree, SkillType

logger = logging.getLogger(__name__)


def _optional_ref(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SkillGraphError(f"{key} must be a string, got {value!r}")
    value = value.strip()
    return value or None


def _required_int(data: dict[str, Any], *keys: str) -> int:
    for key in keys:
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise SkillGraphError(f"{key} must be an integer, got {value!r}")
            return value
    raise SkillGraphError(f"Missing field {keys[0]!r} in {data.get('id', data)!r}")


def _optional_int(data: dict[str, Any], key: str, default: int = 0) -> int:
    if data.get(key) is None:
        return default
    return _required_int(data, key)


def parse_skill(data: dict[str, Any], tree_id: str) -> Skill:
    """Build a Skill from one JSON skill object."""
    if not isinstance(data, dict):
        raise SkillGraphError(f"Skill entry must be an object, got {data!r}")
    skill_id = data.get("id")
    if not isinstance(skill_id, str) or not skill_id:
        raise SkillGraphError(f"Skill in tree {tree_id!r} has no id")

    raw_type = data.get("type")
    try:
        skill_type = SkillType(raw_type)
    except ValueError:
        raise SkillGraphError(
            f"Skill {skill_id!r} has type {raw_type!r}, expected 'active' or 'passive'"
        ) from None

    return Skill(
        id=skill_id,
        tree_id=tree_id,
        title=str(data.get("title") or skill_id),
        tier=_required_int(data, "tier"),
        type=skill_type,
        cost=_required_int(data, "skillPointCost", "cost"),
        requires=_optional_ref(data, "requires"),
        exclusive_with=_optional_ref(data, "exclusiveWith"),
        replaces=_optional_ref(data, "replaces"),
        skill_num=_optional_int(data, "skillNum"),
        description=str(data.get("description") or ""),
    )


def parse_skill_tree(data: dict[str, Any]) -> SkillTree:
    """Build a SkillTree, preserving skill order from the file."""
    if not isinstance(data, dict):
        raise SkillGraphError(f"Skill tree entry must be an object, got {data!r}")
    tree_id = data.get("id")
    if not isinstance(tree_id, str) or not tree_id:
        raise SkillGraphError("Skill tree has no id")
    skills_raw = data.get("skills", [])
    if not isinstance(skills_raw, list):
        raise SkillGraphError(f"Tree {tree_id!r}: skills must be a list")
    return SkillTree(
        id=tree_id,
        title=str(data.get("title") or tree_id),
        skills=tuple(parse_skill(entry, tree_id) for entry in skills_raw),
    )


def parse_skill_trees(payload: Any) -> list[SkillTree]:
    """Parse every tree in a decoded JSON payload."""
    if isinstance(payload, dict):
        payload = payload.get("skillTrees", payload.get("trees"))
    if not isinstance(payload, list):
        raise SkillGraphError("Expected a list of skill trees")
    return [parse_skill_tree(entry) for entry in payload]


def load_skill_graph(path: Path, config: AllocationConfig | None = None) -> SkillGraph:
    """Read a skill tree JSON file and build a validated SkillGraph."""
    payload = json.loads(Path(path).read_text())
    trees = parse_skill_trees(payload)
    logger.debug("Loaded %d skill trees from %s", len(trees), path)
    return SkillGraph.build(trees, config)
