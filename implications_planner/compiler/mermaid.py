"""Generate a Mermaid state graph from transitions."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

from implications_planner.engine.platform import classify_platform

if TYPE_CHECKING:
    from implications_planner.engine.graph import Graph
    from implications_planner.types import PathCandidate


def _make_id(name: str, n: int) -> str:
    clean = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    clean = re.sub(r"_+", "_", clean).strip("_")
    return f"s{n}_{clean}"


def generate_mermaid(graph: Graph, path: PathCandidate | None = None) -> str:
    statuses: list[str] = []
    for src, edges in graph.items():
        for status in (src, *(e.to for e in edges)):
            if status not in statuses:
                statuses.append(status)

    ids = {status: _make_id(status, i) for i, status in enumerate(statuses, 1)}
    on_path = set(path.statuses) if path else set()
    path_edges = set(zip(path.statuses, path.statuses[1:], strict=False)) if path else set()

    nodes: list[str] = []
    for status in statuses:
        label = status.replace('"', "'")
        if path and status == path.steps[0].status:
            # Current position → stadium
            nodes.append(f'    {ids[status]}(["{label}"])')
        elif path and status == path.steps[-1].status:
            # Target → double circle
            nodes.append(f'    {ids[status]}(("{label}"))')
        else:
            nodes.append(f'    {ids[status]}["{label}"]')

    edges_out: list[str] = []
    for src, edges in graph.items():
        for edge in edges:
            label = edge.event[:30] if edge.event else ""
            if any(classify_platform(p) == "mobile" for p in edge.platforms):
                label = f"{label} (mobile)".strip()
            arrow = "==>" if (src, edge.to) in path_edges else "-->"
            if label:
                edges_out.append(f'    {ids[src]} {arrow}|"{label}"| {ids[edge.to]}')
            else:
                edges_out.append(f"    {ids[src]} {arrow} {ids[edge.to]}")

    lines = ["graph TD"]
    lines.extend(nodes)
    lines.extend(edges_out)
    if on_path:
        lines.append("    classDef onPath stroke-width:3px")
        lines.append("    class " + ",".join(ids[s] for s in statuses if s in on_path) + " onPath")
    return "\n".join(lines)
