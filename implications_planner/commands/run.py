"""implications run <implication> [data-path] — auto-execute missing prerequisites."""
from __future__ import annotations

import sys
from pathlib import Path

from implications_planner.engine import ActionRegistry, TestPlanner
from implications_planner.errors import PlannerError


def cmd_run(ref: str, data_path: str | None, cwd: str, *, platform: str | None = None) -> None:
    planner = TestPlanner.from_project(cwd)
    path = Path(data_path) if data_path else planner.config.test_data_file

    actions = ActionRegistry()
    loaded = actions.load_directory(planner.config.actions_path)
    print(f"Loaded {loaded} action(s) from {planner.config.actions_path}")

    try:
        analysis = planner.ensure_ready(ref, path, actions, current_platform=platform)
    except PlannerError as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Prerequisite action failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(planner.report(analysis, str(path), platform))
