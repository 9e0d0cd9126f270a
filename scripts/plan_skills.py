"""Apply a sequence of learn/unlearn operations to a skill allocation.

Usage examples:
    python -m scripts.plan_skills --trees trees.json --points 20 --learn fracture rage
    python -m scripts.plan_skills --trees trees.json --points 20 --ops '["+fracture","-fracture"]'
    python -m scripts.plan_skills --trees trees.json --points 20 --learn fracture --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from skill_planner.engine.allocation_engine import AllocationEngine, AllocationResult
from skill_planner.engine.ui_model import SkillTreeUiModel
from skill_planner.graph.skill_graph import SkillGraphError, UnknownSkillError
from skill_planner.parser.skill_tree_parser import load_skill_graph


def _parse_ops(raw: str | None) -> list[tuple[str, str]]:
    """Decode a JSON list of "+id" (learn) / "-id" (unlearn) / "id" (toggle)."""
    if raw is None:
        return []
    payload = json.loads(raw)
    if not isinstance(payload, list):
        raise ValueError("--ops must be a JSON list")
    ops: list[tuple[str, str]] = []
    for entry in payload:
        if not isinstance(entry, str) or not entry.strip("+-"):
            raise ValueError(f"Invalid operation: {entry!r}")
        if entry.startswith("+"):
            ops.append(("learn", entry[1:]))
        elif entry.startswith("-"):
            ops.append(("unlearn", entry[1:]))
        else:
            ops.append(("toggle", entry))
    return ops


def _collect_ops(args: argparse.Namespace) -> list[tuple[str, str]]:
    ops = [("learn", sid) for sid in args.learn or []]
    ops.extend(("unlearn", sid) for sid in args.unlearn or [])
    ops.extend(_parse_ops(args.ops))
    return ops


OpResult = tuple[str, str, AllocationResult]


def _apply(engine: AllocationEngine, ops: list[tuple[str, str]]) -> list[OpResult]:
    results: list[OpResult] = []
    for action, skill_id in ops:
        result = getattr(engine, action)(skill_id)
        results.append((action, skill_id, result))
    return results


def _summary(engine: AllocationEngine, results: list[OpResult]) -> dict[str, Any]:
    ui = SkillTreeUiModel(engine)
    return {
        "operations": [
            {
                "action": action,
                "skill_id": skill_id,
                "ok": result.ok,
                "reason": result.reason.value if result.reason else None,
                "message": result.message,
            }
            for action, skill_id, result in results
        ],
        "learned_skills": sorted(engine.learned_skills),
        "skill_points_remaining": engine.skill_points_remaining,
        "points_spent": {t.tree_id: t.points_spent for t in ui.tree_summaries()},
    }


def _render_text(summary: dict[str, Any]) -> str:
    lines: list[str] = []
    for op in summary["operations"]:
        status = "ok" if op["ok"] else f"REJECTED ({op['reason']}): {op['message']}"
        lines.append(f"{op['action']:<8} {op['skill_id']:<24} {status}")
    lines.append("")
    for tree_id, spent in summary["points_spent"].items():
        lines.append(f"{tree_id:<24} {spent} spent")
    lines.append(f"Points Remaining: {summary['skill_points_remaining']}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Plan a skill point allocation")
    parser.add_argument("--trees", type=Path, required=True, help="Skill tree JSON file.")
    parser.add_argument("--points", type=int, required=True, help="Starting skill points.")
    parser.add_argument("--learn", nargs="*", help="Skill ids to learn, in order.")
    parser.add_argument("--unlearn", nargs="*", help="Skill ids to unlearn after learning.")
    parser.add_argument("--ops", type=str, help='JSON list like ["+a", "-a", "b"].')
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON output.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine decisions.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        graph = load_skill_graph(args.trees)
        ops = _collect_ops(args)
        engine = AllocationEngine(graph, args.points)
        results = _apply(engine, ops)
    except (SkillGraphError, UnknownSkillError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    summary = _summary(engine, results)
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(_render_text(summary))
    return 0 if all(op["ok"] for op in summary["operations"]) else 1


if __name__ == "__main__":
    raise SystemExit(main())
