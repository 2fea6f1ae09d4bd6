"""Static checks over the registry, implications and transition graph."""
from __future__ import annotations

from typing import TYPE_CHECKING

from implications_planner.engine.graph import build_graph

if TYPE_CHECKING:
    from implications_planner.compiler.parser import ImplicationCatalog
    from implications_planner.store.registry import StateRegistry
    from implications_planner.types import Transition


class ValidationError:
    def __init__(self, level: str, message: str, status: str | None = None):
        self.level = level  # "error" | "warning"
        self.message = message
        self.status = status

    def __str__(self):
        prefix = f"[{self.status}] " if self.status else ""
        return f"{self.level.upper()}: {prefix}{self.message}"


def validate_planner(
    registry: StateRegistry,
    catalog: ImplicationCatalog,
    transitions: list[Transition],
) -> list[ValidationError]:
    """Run all static checks."""
    errors: list[ValidationError] = []

    if not len(catalog):
        errors.append(ValidationError("error", "No implications found"))
        return errors

    errors.extend(_check_registry(registry, catalog))
    errors.extend(_check_previous_status(registry, catalog))
    errors.extend(_check_prerequisite_cycles(registry, catalog))
    errors.extend(_check_targets(registry, catalog, transitions))
    errors.extend(_check_isolated(registry, catalog, transitions))
    errors.extend(_check_setup(catalog))
    return errors


def format_errors(errors: list[ValidationError]) -> str:
    if not errors:
        return ""
    lines = []
    errs = [e for e in errors if e.level == "error"]
    warns = [e for e in errors if e.level == "warning"]
    if errs:
        lines.append(f"  {len(errs)} error(s):")
        for e in errs:
            lines.append(f"    ✗ {e}")
    if warns:
        lines.append(f"  {len(warns)} warning(s):")
        for e in warns:
            lines.append(f"    ⚠ {e}")
    return "\n".join(lines)


# ─── Checks ───

def _known_statuses(registry: StateRegistry, catalog: ImplicationCatalog) -> set[str]:
    return {e.status for e in registry.entries()} | {impl.status for impl in catalog}


def _check_registry(registry: StateRegistry, catalog: ImplicationCatalog) -> list[ValidationError]:
    """Every registry entry should point at a known implication."""
    return [
        ValidationError("warning", f"Registry points at unknown implication '{entry.implementation_id}'", entry.status)
        for entry in registry.entries()
        if entry.implementation_id not in catalog
    ]


def _check_previous_status(registry: StateRegistry, catalog: ImplicationCatalog) -> list[ValidationError]:
    """requires.previousStatus must resolve through the registry."""
    errors: list[ValidationError] = []
    for impl in catalog:
        prev = impl.previous_status
        if prev and registry.resolve(prev) is None:
            errors.append(ValidationError("error", f"previousStatus '{prev}' is not registered", impl.status))
        for entry in impl.setup:
            if entry.previous_status and registry.resolve(entry.previous_status) is None:
                errors.append(ValidationError(
                    "error", f"setup '{entry.action_name}' previousStatus '{entry.previous_status}' is not registered",
                    impl.status,
                ))
    return errors


def _check_prerequisite_cycles(registry: StateRegistry, catalog: ImplicationCatalog) -> list[ValidationError]:
    """Following previousStatus must terminate."""
    errors: list[ValidationError] = []
    reported: set[frozenset[str]] = set()
    for impl in catalog:
        seen = [impl.status]
        current = impl
        while current and current.previous_status:
            prev = current.previous_status
            if prev in seen:
                cycle = frozenset(seen[seen.index(prev):])
                if cycle not in reported:
                    reported.add(cycle)
                    route = " → ".join([*seen[seen.index(prev):], prev])
                    errors.append(ValidationError("error", f"Prerequisite cycle: {route}", impl.status))
                break
            seen.append(prev)
            impl_id = registry.resolve(prev)
            current = catalog.get(impl_id) if impl_id else None
    return errors


def _check_targets(registry: StateRegistry, catalog: ImplicationCatalog,
                   transitions: list[Transition]) -> list[ValidationError]:
    """Every transition target must be a known status."""
    known = _known_statuses(registry, catalog)
    graph = build_graph(transitions, registry)
    errors: list[ValidationError] = []
    for src, edges in graph.items():
        for edge in edges:
            if edge.to not in known:
                errors.append(ValidationError(
                    "error", f"Transition target not found: '{edge.to}' (event {edge.event or '-'})", src
                ))
    return errors


def _check_isolated(registry: StateRegistry, catalog: ImplicationCatalog,
                    transitions: list[Transition]) -> list[ValidationError]:
    """Statuses with no transitions and no prerequisite links are unreachable."""
    graph = build_graph(transitions, registry)
    linked = set(graph) | {e.to for edges in graph.values() for e in edges}
    linked |= {impl.previous_status for impl in catalog if impl.previous_status}
    linked |= {impl.status for impl in catalog if impl.previous_status}
    return [
        ValidationError("warning", "Status is isolated (no transitions or prerequisites)", status)
        for status in sorted(_known_statuses(registry, catalog) - linked)
    ]


def _check_setup(catalog: ImplicationCatalog) -> list[ValidationError]:
    """Implications without a setup action cannot be auto-executed."""
    return [
        ValidationError("warning", "No setup action; cannot be run as a prerequisite", impl.status)
        for impl in catalog
        if not impl.setup
    ]
