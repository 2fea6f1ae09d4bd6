"""implications registry [--write] — show the status registry or rebuild it from implications."""
from __future__ import annotations

from implications_planner.engine import TestPlanner
from implications_planner.store.registry import StateRegistry


def cmd_registry(cwd: str, *, write: bool = False) -> None:
    planner = TestPlanner.from_project(cwd)

    if write:
        registry = StateRegistry.from_catalog(planner.catalog)
        registry.save(planner.config.registry_file)
        print(f"✓ Wrote {len(registry)} status(es) to {planner.config.registry_file}")
    else:
        registry = planner.registry

    for entry in sorted(registry.entries(), key=lambda e: e.status):
        print(f"  {entry.status:<24} → {entry.implementation_id}")
