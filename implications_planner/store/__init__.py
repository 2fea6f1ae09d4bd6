from implications_planner.store.cache import FileCache
from implications_planner.store.context import TestContext
from implications_planner.store.registry import StateRegistry

__all__ = ["FileCache", "StateRegistry", "TestContext"]
