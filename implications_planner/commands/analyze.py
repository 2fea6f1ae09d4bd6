"""implications analyze <implication> [data-path] — print the readiness report."""
from __future__ import annotations

import sys
from pathlib import Path

from implications_planner.engine import TestPlanner
from implications_planner.errors import ImplicationNotFoundError
from implications_planner.store.context import TestContext


def cmd_analyze(ref: str, data_path: str | None, cwd: str, *, platform: str | None = None) -> None:
    planner = TestPlanner.from_project(cwd)
    path = Path(data_path) if data_path else planner.config.test_data_file

    if not TestContext.resolve_load_path(path).exists():
        print(f"Test data not found: {path}", file=sys.stderr)
        sys.exit(1)

    try:
        implication = planner.get_implication(ref)
    except ImplicationNotFoundError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    ctx = TestContext.load(path, implication)
    analysis = planner.analyze(implication, ctx.data, current_platform=platform)
    print(planner.report(analysis, str(path), platform))
    if not analysis.ready:
        sys.exit(1)
