"""Transition graph construction and ranked path search."""
from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from implications_planner.engine.platform import is_cross_platform
from implications_planner.store.registry import class_name_to_status, normalize_status
from implications_planner.types import ChainStep, Edge, PathCandidate, Transition

if TYPE_CHECKING:
    from collections.abc import Iterable

    from implications_planner.compiler.parser import ImplicationCatalog
    from implications_planner.store.registry import StateRegistry
    from implications_planner.types import Implication, SetupEntry

logger = logging.getLogger(__name__)

Graph = dict[str, list[Edge]]

DEFAULT_MAX_DEPTH = 8


def to_status(ref: str, registry: StateRegistry | None = None) -> str:
    """Map a transition endpoint (status or implementation class name) to a status."""
    if registry is not None:
        return registry.to_status(ref)
    if ref.endswith("Implications"):
        return class_name_to_status(ref)
    return normalize_status(ref)


def build_graph(
    transitions: Iterable[Transition | dict[str, Any]],
    registry: StateRegistry | None = None,
) -> Graph:
    graph: Graph = {}
    for i, raw in enumerate(transitions):
        t = raw if isinstance(raw, Transition) else Transition.from_dict(raw)
        if t is None:
            logger.warning("Skipping malformed transition #%d: %r", i, raw)
            continue
        src = to_status(t.from_status, registry)
        graph.setdefault(src, []).append(
            Edge(to=normalize_status(t.to), event=t.event, platforms=list(t.platforms))
        )
    return graph


def find_direct_transition(graph: Graph, current: str, target: str) -> Edge | None:
    for edge in graph.get(normalize_status(current), []):
        if edge.to == normalize_status(target):
            return edge
    return None


def find_all_paths(
    start: str,
    target: str,
    transitions: Graph | Iterable[Transition | dict[str, Any]],
    max_depth: int = DEFAULT_MAX_DEPTH,
    *,
    current_platform: str | None = None,
    registry: StateRegistry | None = None,
    catalog: ImplicationCatalog | None = None,
    mobile_aliases: Iterable[str] = (),
) -> list[PathCandidate]:
    """All simple paths from start to target, best score first.

    ``max_depth`` bounds the number of transitions in a path. Each path keeps
    its own visited set so independent branches may share statuses.
    """
    graph = transitions if isinstance(transitions, dict) else build_graph(transitions, registry)
    start = normalize_status(start)
    target = normalize_status(target)

    found: list[list[Edge]] = []
    queue: deque[tuple[str, list[Edge], frozenset[str]]] = deque([(start, [], frozenset({start}))])
    while queue:
        status, edges, visited = queue.popleft()
        if status == target:
            found.append(edges)
            continue
        if len(edges) >= max_depth:
            continue
        for edge in graph.get(status, []):
            if edge.to in visited:
                continue
            queue.append((edge.to, [*edges, edge], visited | {edge.to}))

    aliases = list(mobile_aliases)
    candidates = [
        _build_candidate(start, edges, current_platform, registry, catalog, aliases)
        for edges in found
    ]
    # list.sort is stable: equal scores keep discovery order
    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates


def score_path(steps: list[ChainStep], same_platform: int, has_cross_platform: bool) -> int:
    return 100 + 20 * same_platform + 5 * (10 - len(steps)) - (50 if has_cross_platform else 0)


# ─── Private ───

def _build_candidate(
    start: str,
    edges: list[Edge],
    current_platform: str | None,
    registry: StateRegistry | None,
    catalog: ImplicationCatalog | None,
    aliases: list[str],
) -> PathCandidate:
    steps = [ChainStep(
        status=start,
        implementation_id=registry.resolve(start) if registry else None,
        platform=current_platform,
        complete=True,
        is_current=True,
    )]

    prev = start
    for edge in edges:
        if current_platform and current_platform in edge.platforms:
            platform = current_platform
        else:
            platform = edge.platforms[0] if edge.platforms else current_platform
        impl_id = registry.resolve(edge.to) if registry else None
        impl = catalog.get(impl_id) if catalog and impl_id else None
        setup = _pick_setup(impl, platform, aliases)
        steps.append(ChainStep(
            status=edge.to,
            implementation_id=impl_id,
            action_name=setup.action_name if setup else (edge.event or f"goTo{_pascal(edge.to)}"),
            test_file=setup.test_file if setup else "",
            platform=platform,
            entity=impl.entity if impl else None,
            transition_event=edge.event or None,
            transition_from=prev,
        ))
        prev = edge.to

    if len(steps) > 1:
        steps[-1].is_target = True

    crossed = [is_cross_platform(s.platform, current_platform, aliases) for s in steps]
    has_cross = any(crossed)
    return PathCandidate(
        steps=steps,
        current_platform=current_platform,
        has_cross_platform=has_cross,
        score=score_path(steps, crossed.count(False), has_cross),
    )


def _pick_setup(impl: Implication | None, platform: str | None, aliases: list[str]) -> SetupEntry | None:
    if impl is None or not impl.setup:
        return None
    for entry in impl.setup:
        if not is_cross_platform(entry.platform, platform, aliases):
            return entry
    return impl.setup[0]


def _pascal(status: str) -> str:
    return "".join(part.capitalize() for part in status.split("_"))
