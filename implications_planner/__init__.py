"""Prerequisite resolution and execution planner for Implication-based tests."""
from implications_planner.engine import ActionRegistry, AutoExecutor, TestPlanner, action
from implications_planner.errors import (
    ActionLookupError,
    CrossPlatformBlockedError,
    NoPathError,
    PlannerError,
    PrerequisitesNotMetError,
    StalledExecutionError,
)
from implications_planner.store import StateRegistry, TestContext
from implications_planner.types import ActionOptions, ExecutionMode, NoOp, PartialState, Saved

__all__ = [
    "ActionLookupError",
    "ActionOptions",
    "ActionRegistry",
    "AutoExecutor",
    "CrossPlatformBlockedError",
    "ExecutionMode",
    "NoOp",
    "NoPathError",
    "PartialState",
    "PlannerError",
    "PrerequisitesNotMetError",
    "Saved",
    "StalledExecutionError",
    "StateRegistry",
    "TestContext",
    "TestPlanner",
    "action",
]
