"""Status → implementation id registry."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from implications_planner.types import StateRegistryEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from implications_planner.compiler.parser import ImplicationCatalog
    from implications_planner.store.cache import FileCache

logger = logging.getLogger(__name__)

_WS = re.compile(r"\s+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_status(status: str) -> str:
    return _WS.sub("_", status.strip()).lower()


def class_name_to_status(name: str) -> str:
    """AcceptedBookingImplications → accepted_booking."""
    base = name.removesuffix("Implications")
    return _CAMEL_BOUNDARY.sub("_", base).lower()


class StateRegistry:
    def __init__(self, mappings: dict[str, str] | None = None):
        self._by_status: dict[str, str] = {}
        for status, impl_id in (mappings or {}).items():
            self.register(status, impl_id)

    @classmethod
    def load(cls, path: str | Path, cache: FileCache | None = None) -> StateRegistry:
        p = Path(path)
        raw = cache.load_json(p) if cache else (json.loads(p.read_text(encoding="utf-8")) if p.exists() else None)
        if raw is None:
            logger.warning("State registry not found at %s", p)
            return cls()
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid state registry {p}: expected a JSON object")
        return cls({str(k): str(v) for k, v in raw.items()})

    @classmethod
    def from_catalog(cls, catalog: ImplicationCatalog, overrides: dict[str, str] | None = None) -> StateRegistry:
        """Derive mappings from each implication's declared status."""
        registry = cls()
        for impl in catalog:
            registry.register(impl.status, impl.id)
        for status, impl_id in (overrides or {}).items():
            registry._by_status[status] = impl_id
        return registry

    @classmethod
    def from_pattern(cls, implementation_ids: Iterable[str], pattern: str = "{Status}Implications") -> StateRegistry:
        """Derive statuses from class names matching ``pattern``."""
        prefix, _, suffix = pattern.partition("{Status}")
        rx = re.compile(f"^{re.escape(prefix)}(.+){re.escape(suffix)}$")
        registry = cls()
        for impl_id in implementation_ids:
            m = rx.match(impl_id)
            if m:
                registry.register(_CAMEL_BOUNDARY.sub("_", m.group(1)).lower(), impl_id)
        return registry

    def register(self, status: str, implementation_id: str) -> None:
        existing = self._by_status.get(status)
        if existing and existing != implementation_id:
            logger.warning(
                "Registry conflict for status '%s': %s and %s (keeping %s)",
                status, existing, implementation_id, existing,
            )
            return
        self._by_status[status] = implementation_id

    def resolve(self, status: str) -> str | None:
        if status in self._by_status:
            return self._by_status[status]
        wanted = normalize_status(status)
        for key, impl_id in self._by_status.items():
            if normalize_status(key) == wanted:
                return impl_id
        return None

    def status_for(self, implementation_id: str) -> str | None:
        for status, impl_id in self._by_status.items():
            if impl_id == implementation_id:
                return status
        return None

    def to_status(self, ref: str) -> str:
        """Map an implementation id back to its status; plain statuses pass through normalized."""
        status = self.status_for(ref)
        if status:
            return status
        if ref.endswith("Implications"):
            return class_name_to_status(ref)
        return normalize_status(ref)

    def entries(self) -> list[StateRegistryEntry]:
        return [StateRegistryEntry(s, i) for s, i in self._by_status.items()]

    def to_dict(self) -> dict[str, str]:
        return dict(self._by_status)

    def save(self, path: str | Path) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(self._by_status, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def __contains__(self, status: object) -> bool:
        return isinstance(status, str) and self.resolve(status) is not None

    def __len__(self) -> int:
        return len(self._by_status)
