"""JSON snapshot persistence: an original baseline plus an append-only change log.

On disk a "current" file holds ``{"original": {...}, "changeLog": [...]}``.
A "master" file holds flat data and is never written by the planner. In
memory, ``data`` is the original with every delta applied in order.
"""
from __future__ import annotations

import copy
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from implications_planner.types import ChangeEntry

if TYPE_CHECKING:
    from collections.abc import Callable

    from implications_planner.types import Implication

logger = logging.getLogger(__name__)

MASTER_MARK = "-master."
CURRENT_MARK = "-current."


def status_of(data: dict[str, Any], entity: str | None = None) -> str:
    """Entity status, else global status, else _currentStatus, else 'initial'."""
    if entity:
        scoped = data.get(entity)
        if isinstance(scoped, dict) and isinstance(scoped.get("status"), str) and scoped["status"]:
            return scoped["status"]
    for key in ("status", "_currentStatus"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return "initial"


def get_nested_value(obj: Any, path: str) -> Any:
    current = obj
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current


def set_nested_value(obj: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = obj
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


def apply_delta(data: dict[str, Any], delta: dict[str, Any]) -> None:
    """Shallow merge; dotted keys set a nested value."""
    for key, value in delta.items():
        if "." in key:
            set_nested_value(data, key, copy.deepcopy(value))
        else:
            data[key] = copy.deepcopy(value)


def replay(original: dict[str, Any], change_log: list[ChangeEntry]) -> dict[str, Any]:
    data = copy.deepcopy(original)
    for entry in change_log:
        apply_delta(data, entry.delta)
    return data


def _split_snapshot(raw: Any) -> tuple[dict[str, Any], list[ChangeEntry]]:
    if not isinstance(raw, dict):
        raise ValueError("Snapshot must be a JSON object")
    log_key = "changeLog" if "changeLog" in raw else "_changeLog" if "_changeLog" in raw else None
    orig_key = "original" if "original" in raw else "_original" if "_original" in raw else None
    if log_key and orig_key:
        return dict(raw[orig_key] or {}), [ChangeEntry.from_dict(e) for e in raw[log_key] or []]
    return raw, []


def _match(predicate: Callable[[Any], bool] | dict[str, Any]) -> Callable[[Any], bool]:
    if callable(predicate):
        return predicate
    return lambda item: isinstance(item, dict) and all(item.get(k) == v for k, v in predicate.items())


class TestContext:
    __test__ = False  # not a pytest test class

    def __init__(
        self,
        data: dict[str, Any] | None = None,
        *,
        original: dict[str, Any] | None = None,
        change_log: list[ChangeEntry] | None = None,
        source_path: Path | None = None,
        input_path: Path | None = None,
        implication: Implication | None = None,
    ):
        self.data: dict[str, Any] = data if data is not None else {}
        self._original = original if original is not None else copy.deepcopy(self.data)
        self._change_log: list[ChangeEntry] = list(change_log or [])
        self.source_path = source_path
        self.input_path = input_path or source_path
        self.implication = implication

    # ─── Paths ───

    @staticmethod
    def delta_path(path: str | Path) -> Path:
        p = Path(path)
        if CURRENT_MARK in p.name:
            return p
        if MASTER_MARK in p.name:
            return p.with_name(p.name.replace(MASTER_MARK, CURRENT_MARK, 1))
        return p.with_name(f"{p.stem}-current{p.suffix or '.json'}")

    @staticmethod
    def master_path(path: str | Path) -> Path:
        p = Path(path)
        if MASTER_MARK in p.name:
            return p
        if CURRENT_MARK in p.name:
            return p.with_name(p.name.replace(CURRENT_MARK, MASTER_MARK, 1))
        return p.with_name(f"{p.stem}-master{p.suffix or '.json'}")

    @classmethod
    def resolve_load_path(cls, path: str | Path) -> Path:
        """The file ``load`` would read: the current sibling when it exists."""
        p = Path(path)
        if MASTER_MARK in p.name:
            return p
        current = cls.delta_path(p)
        return current if current.exists() else p

    # ─── Load / save ───

    @classmethod
    def load(cls, path: str | Path, implication: Implication | None = None) -> TestContext:
        p = Path(path)
        source = cls.resolve_load_path(p)
        raw = json.loads(source.read_text(encoding="utf-8"))
        original, change_log = _split_snapshot(raw)
        logger.debug("Loaded %s (%d change(s))", source, len(change_log))
        return cls(
            replay(original, change_log),
            original=original,
            change_log=change_log,
            source_path=source,
            input_path=p,
            implication=implication,
        )

    def save(self, path: str | Path | None = None) -> Path:
        base = Path(path) if path is not None else self.input_path
        if base is None:
            raise ValueError("TestContext has no path; pass one to save()")
        target = self.delta_path(base)

        introduced = {key.split(".", 1)[0] for entry in self._change_log for key in entry.delta}
        baseline = self._baseline(target)
        original = {k: copy.deepcopy(v) for k, v in self.data.items() if k not in introduced}
        for key in introduced:
            if key in baseline:
                original[key] = copy.deepcopy(baseline[key])

        doc = {"original": original, "changeLog": [e.to_dict() for e in self._change_log]}
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(doc, indent=2, ensure_ascii=False, default=str) + "\n", encoding="utf-8")

        self._original = original
        self.source_path = target
        logger.debug("Saved %s (%d change(s))", target, len(self._change_log))
        return target

    # ─── Change log ───

    @property
    def original(self) -> dict[str, Any]:
        return copy.deepcopy(self._original)

    @property
    def change_log(self) -> list[ChangeEntry]:
        return list(self._change_log)

    def record(self, label: str, test_file: str, delta: dict[str, Any]) -> ChangeEntry:
        entry = ChangeEntry(
            label=label,
            test_file=test_file,
            delta=copy.deepcopy(delta),
            timestamp=datetime.now(tz=UTC).isoformat(),
        )
        apply_delta(self.data, delta)
        self._change_log.append(entry)
        return entry

    def execute_and_save(
        self,
        label: str,
        test_file: str,
        fn: Callable[[TestContext], dict[str, Any] | None],
        path: str | Path | None = None,
    ) -> ChangeEntry:
        """Run fn, record the delta it returns and persist.

        fn may return the delta itself or ``{"delta": {...}}``.
        """
        result = fn(self) or {}
        delta = result.get("delta", result) if isinstance(result, dict) else {}
        entry = self.record(label, test_file, delta)
        self.save(path)
        return entry

    # ─── Status ───

    @property
    def status(self) -> str:
        return status_of(self.data)

    def current_status(self, implication: Implication | None = None) -> str:
        impl = implication or self.implication
        return status_of(self.data, impl.entity if impl else None)

    # ─── Structured helpers ───

    def get_nested_value(self, path: str) -> Any:
        return get_nested_value(self.data, path)

    def set_nested_value(self, path: str, value: Any) -> None:
        set_nested_value(self.data, path, value)

    def get_from_array(self, path: str, predicate: Callable[[Any], bool] | dict[str, Any]) -> Any:
        items = self.get_nested_value(path)
        if not isinstance(items, list):
            return None
        match = _match(predicate)
        return next((item for item in items if match(item)), None)

    def set_in_array(self, path: str, predicate: Callable[[Any], bool] | dict[str, Any],
                     updates: dict[str, Any]) -> bool:
        item = self.get_from_array(path, predicate)
        if not isinstance(item, dict):
            return False
        item.update(updates)
        return True

    def push_to_array(self, path: str, item: Any) -> None:
        items = self.get_nested_value(path)
        if not isinstance(items, list):
            items = []
            self.set_nested_value(path, items)
        items.append(item)

    def remove_from_array(self, path: str, predicate: Callable[[Any], bool] | dict[str, Any]) -> int:
        items = self.get_nested_value(path)
        if not isinstance(items, list):
            return 0
        match = _match(predicate)
        kept = [item for item in items if not match(item)]
        removed = len(items) - len(kept)
        items[:] = kept
        return removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source_path) if self.source_path else None,
            "status": self.status,
            "data": self.data,
            "changeLog": [e.to_dict() for e in self._change_log],
        }

    # ─── Private ───

    def _baseline(self, delta_path: Path) -> dict[str, Any]:
        master = self.master_path(delta_path)
        if master.exists():
            raw = json.loads(master.read_text(encoding="utf-8"))
            original, _ = _split_snapshot(raw)
            return original
        return self._original
