"""implications validate — static checks, then a Mermaid diagram of the graph."""
from __future__ import annotations

import sys

from implications_planner.compiler import format_errors, generate_mermaid, validate_planner
from implications_planner.engine import TestPlanner


def cmd_validate(cwd: str) -> None:
    try:
        planner = TestPlanner.from_project(cwd)
    except ValueError as e:
        print(f"✗ Parse error: {e}", file=sys.stderr)
        sys.exit(1)

    errors = validate_planner(planner.registry, planner.catalog, planner.transitions)
    has_errors = any(e.level == "error" for e in errors)

    if has_errors:
        print("✗ Validation failed:")
        print(format_errors(errors))
        sys.exit(1)

    print(f"✓ {len(planner.catalog)} implication(s), {len(planner.transitions)} transition(s)")
    if errors:
        print(format_errors(errors))
    print()

    print("```mermaid")
    print(generate_mermaid(planner.graph))
    print("```")
