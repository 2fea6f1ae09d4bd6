from implications_planner.engine.actions import ActionRegistry, action
from implications_planner.engine.executor import AutoExecutor
from implications_planner.engine.planner import TestPlanner

__all__ = ["ActionRegistry", "AutoExecutor", "TestPlanner", "action"]
