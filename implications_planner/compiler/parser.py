"""Parse YAML implication definitions into typed Implication objects."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from implications_planner.types import Implication, SetupEntry, Transition

if TYPE_CHECKING:
    from collections.abc import Iterator

# snake_case aliases -> canonical camelCase key
KEYWORD_MAP = {
    "required_fields": "requiredFields",
    "previous_status": "previousStatus",
    "action_name": "actionName",
    "test_file": "testFile",
}

# requirement operator names must survive normalization untouched
_REQUIRE_KEYS = frozenset({"requires"})


def _normalize_key(key: str) -> str:
    return KEYWORD_MAP.get(key, key)


def _normalize(obj):
    if isinstance(obj, dict):
        return {
            _normalize_key(k): (v if k in _REQUIRE_KEYS else _normalize(v))
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [_normalize(item) for item in obj]
    return obj


def _parse_setup(raw_setup, default_platform: str | None) -> list[SetupEntry]:
    if raw_setup is None:
        return []
    if isinstance(raw_setup, dict):
        raw_setup = [raw_setup]
    if not isinstance(raw_setup, list):
        raise ValueError('"setup" must be a mapping or a list of mappings')

    entries: list[SetupEntry] = []
    for item in raw_setup:
        if not isinstance(item, dict) or not item.get("actionName"):
            raise ValueError('Each setup entry needs an "actionName"')
        requires = item.get("requires") or {}
        entries.append(SetupEntry(
            action_name=str(item["actionName"]),
            test_file=str(item.get("testFile", "")),
            platform=item.get("platform") or default_platform,
            previous_status=item.get("previousStatus"),
            requires=dict(requires),
            mode=item.get("mode"),
        ))
    return entries


def _parse_transitions(status: str, body: dict[str, Any]) -> list[Transition]:
    """Accept a ``transitions`` list or an xstate-style ``on`` mapping."""
    transitions: list[Transition] = []

    for item in body.get("transitions") or []:
        if not isinstance(item, dict):
            continue
        t = Transition.from_dict({"from": status, **item})
        if t:
            transitions.append(t)

    for event, target in (body.get("on") or {}).items():
        if isinstance(target, str):
            transitions.append(Transition(from_status=status, to=target, event=str(event)))
        elif isinstance(target, dict) and target.get("target"):
            platforms = target.get("platforms") or []
            transitions.append(Transition(
                from_status=status,
                to=str(target["target"]),
                event=str(event),
                platforms=[platforms] if isinstance(platforms, str) else list(platforms),
            ))
    return transitions


def parse_implication(raw: dict[str, Any], default_id: str = "") -> Implication:
    if not isinstance(raw, dict):
        raise ValueError("Invalid implication: expected a mapping")

    body = _normalize(raw)
    meta = body.pop("meta", None)
    if isinstance(meta, dict):
        body = {**_normalize(meta), **body}

    status = body.get("status")
    if not isinstance(status, str) or not status:
        raise ValueError('Invalid implication: missing "status"')

    impl_id = str(body.get("id") or default_id or status)
    requires = body.get("requires") or {}
    if not isinstance(requires, dict):
        raise ValueError(f'Implication {impl_id}: "requires" must be a mapping')
    required_fields = body.get("requiredFields") or []
    if isinstance(required_fields, str):
        required_fields = [required_fields]

    platform = body.get("platform")
    return Implication(
        id=impl_id,
        status=status,
        entity=body.get("entity"),
        platform=platform,
        requires=dict(requires),
        required_fields=[str(f) for f in required_fields],
        setup=_parse_setup(body.get("setup"), platform),
        transitions=_parse_transitions(status, body),
    )


def parse_implication_yaml(content: str, default_id: str = "") -> Implication:
    raw = yaml.safe_load(content)
    if not isinstance(raw, dict):
        raise ValueError("Invalid YAML: expected a mapping")
    return parse_implication(raw, default_id)


class ImplicationCatalog:
    """Lookup of parsed implications by id and by status."""

    def __init__(self, implications: list[Implication] | None = None):
        self._by_id: dict[str, Implication] = {}
        for impl in implications or []:
            self.add(impl)

    @classmethod
    def load_directory(cls, directory: str | Path) -> ImplicationCatalog:
        catalog = cls()
        root = Path(directory)
        if not root.is_dir():
            return catalog
        files = sorted(
            p for p in root.rglob("*")
            if p.suffix in (".yaml", ".yml") and p.is_file()
        )
        for path in files:
            try:
                impl = parse_implication_yaml(path.read_text(encoding="utf-8"), default_id=path.stem)
            except ValueError as e:
                raise ValueError(f"{path}: {e}") from e
            catalog.add(impl)
        return catalog

    def add(self, impl: Implication) -> None:
        if impl.id in self._by_id:
            raise ValueError(f"Duplicate implication id: {impl.id}")
        self._by_id[impl.id] = impl

    def get(self, impl_id: str) -> Implication | None:
        return self._by_id.get(impl_id)

    def by_status(self, status: str) -> Implication | None:
        for impl in self._by_id.values():
            if impl.status == status:
                return impl
        return None

    def transitions(self) -> list[Transition]:
        return [t for impl in self._by_id.values() for t in impl.transitions]

    def __iter__(self) -> Iterator[Implication]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, impl_id: object) -> bool:
        return impl_id in self._by_id
