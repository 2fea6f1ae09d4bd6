"""Action registry: explicit mapping from action name to callable."""
from __future__ import annotations

import importlib.util
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

from implications_planner.errors import ActionLookupError
from implications_planner.types import NoOp, PartialState, Saved

if TYPE_CHECKING:
    from collections.abc import Callable

    from implications_planner.types import ActionOptions, ActionResult

    Action = Callable[[str, ActionOptions], Any]

logger = logging.getLogger(__name__)

_ACTION_ATTR = "__action_name__"


def action(name: str | None = None):
    """Mark a function as an auto-executable prerequisite.

    Usage in tests/actions/booking.py::

        from implications_planner import action

        @action("acceptBooking")
        def accept_booking(data_path, options):
            ctx = TestContext.load(data_path)
            ...
            return PartialState({"status": "accepted"})
    """
    def decorator(fn: Action) -> Action:
        setattr(fn, _ACTION_ATTR, name or fn.__name__)
        return fn
    return decorator


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def to_snake(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).lower()


class ActionRegistry:
    def __init__(self, actions: dict[str, Action] | None = None):
        self._actions: dict[str, Action] = {}
        for name, fn in (actions or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: Action) -> None:
        if not callable(fn):
            raise TypeError(f"Action '{name}' is not callable")
        if name in self._actions and self._actions[name] is not fn:
            raise ValueError(f"Duplicate action name: {name}")
        self._actions[name] = fn

    def load_directory(self, actions_dir: str | Path) -> int:
        """Import every .py file in actions_dir and register @action functions."""
        path = Path(actions_dir)
        if not path.is_dir():
            return 0

        count = 0
        for py_file in sorted(path.glob("*.py")):
            try:
                spec = importlib.util.spec_from_file_location(f"implications_actions.{py_file.stem}", py_file)
                if not spec or not spec.loader:
                    continue
                mod = importlib.util.module_from_spec(spec)
                spec.loader.exec_module(mod)
            except Exception as e:
                logger.warning("Failed to load actions from %s: %s", py_file, e)
                continue

            for attr_name in dir(mod):
                obj = getattr(mod, attr_name)
                name = getattr(obj, _ACTION_ATTR, None)
                if callable(obj) and isinstance(name, str):
                    self.register(name, obj)
                    count += 1
        return count

    def candidates(self, name: str) -> list[str]:
        names = [name, to_camel(name), to_snake(name)]
        return list(dict.fromkeys(n for n in names if n))

    def resolve(self, name: str) -> Action:
        """Exact name, then camelCase, then snake_case."""
        if not name:
            raise ActionLookupError("<none>", ["step declares no setup action"])
        tried = self.candidates(name)
        for candidate in tried:
            fn = self._actions.get(candidate)
            if fn is not None:
                return fn
        raise ActionLookupError(name, tried)

    def names(self) -> list[str]:
        return sorted(self._actions)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and any(c in self._actions for c in self.candidates(name))

    def __len__(self) -> int:
        return len(self._actions)


def normalize_result(result: Any, save_path: str | Path) -> ActionResult:
    """Coerce an action's return value to NoOp | Saved | PartialState."""
    if result is None:
        return NoOp()
    if isinstance(result, (NoOp, Saved, PartialState)):
        return result
    if isinstance(result, dict):
        return PartialState(dict(result))
    save = getattr(result, "save", None)
    if callable(save):
        written = save(save_path)
        return Saved(str(written or save_path))
    raise TypeError(f"Unsupported action result: {type(result).__name__}")
