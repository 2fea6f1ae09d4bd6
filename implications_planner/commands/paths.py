"""implications paths <from> <to> — rank every route between two statuses."""
from __future__ import annotations

import sys

from implications_planner.compiler import generate_mermaid
from implications_planner.engine import TestPlanner
from implications_planner.engine.report import format_chain, format_paths
from implications_planner.errors import NoPathError


def cmd_paths(start: str, target: str, cwd: str, *, platform: str | None = None, choose: bool = False) -> None:
    planner = TestPlanner.from_project(cwd)
    candidates = planner.find_paths(start, target, current_platform=platform)

    if not candidates:
        print(f"✗ {NoPathError(start, target)}", file=sys.stderr)
        sys.exit(1)

    if not choose:
        print(f"{len(candidates)} path(s) from '{start}' to '{target}':")
        print(format_paths(candidates))
        return

    chosen = planner.select_path(start, target, current_platform=platform, candidates=candidates)
    print(format_chain(chosen.steps))
    print()
    print("```mermaid")
    print(generate_mermaid(planner.graph, chosen))
    print("```")
