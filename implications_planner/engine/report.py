"""Plain-text diagnostics for readiness analyses and ranked paths."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from implications_planner.types import ChainStep, PathCandidate, ReadinessAnalysis


def step_label(step: ChainStep, next_step: ChainStep | None = None) -> str:
    if step.error:
        return "[ERROR]"
    if step.is_current:
        return "[CURRENT]"
    if step.complete:
        return "[DONE]"
    if step.is_target:
        return "[TARGET]"
    if step is next_step:
        return "[NEXT]"
    return "[TODO]"


def format_chain(chain: list[ChainStep], next_step: ChainStep | None = None) -> str:
    lines = []
    for i, step in enumerate(chain, 1):
        detail = step.action_name or "-"
        if step.platform:
            detail += f" @ {step.platform}"
        if step.entity:
            detail += f" (entity: {step.entity})"
        if step.transition_event:
            detail += f" via {step.transition_event} from {step.transition_from}"
        if step.error:
            detail += f" {step.error}"
        lines.append(f"  {i}. {step_label(step, next_step):<9} {step.status}: {detail}")
    return "\n".join(lines)


def format_analysis(analysis: ReadinessAnalysis, next_command: str | None = None) -> str:
    if analysis.ready:
        head = f"✓ Ready for '{analysis.target_status}' (current: {analysis.current_status})"
        if analysis.mode == "observer":
            head += " [observer]"
        return head

    lines = [
        f"✗ Not ready for '{analysis.target_status}'",
        f"  Current status: {analysis.current_status}",
        f"  Target status:  {analysis.target_status}",
        f"  Steps remaining: {analysis.steps_remaining}",
    ]
    if analysis.missing_fields:
        lines.append("")
        lines.append(f"  {len(analysis.missing_fields)} missing field(s):")
        for gap in analysis.missing_fields:
            lines.append(f"    ✗ {gap.field}: required {gap.required!r}, actual {gap.actual!r}")
    if analysis.chain:
        lines.append("")
        lines.append("  Chain:")
        lines.append(format_chain(analysis.chain, analysis.next_step))
    if analysis.next_step:
        lines.append("")
        lines.append(f"  Next: {analysis.next_step.status} ({analysis.next_step.action_name or 'no action'})")
        if next_command:
            lines.append(f"    {next_command}")
    return "\n".join(lines)


def format_cross_platform(analysis: ReadinessAnalysis, current_platform: str | None,
                          commands: list[str]) -> str:
    platforms = sorted({s.platform or "unknown" for s in analysis.cross_platform})
    lines = [
        f"⚠ Cross-platform prerequisites for '{analysis.target_status}'",
        f"  Current platform: {current_platform or 'unknown'}",
        f"  Needs: {', '.join(platforms)}",
        "",
        "  Run these first, in order:",
    ]
    lines.extend(f"    {cmd}" for cmd in commands)
    return "\n".join(lines)


def format_paths(candidates: list[PathCandidate]) -> str:
    if not candidates:
        return "No path found."
    lines = []
    for i, c in enumerate(candidates, 1):
        route = " → ".join(c.statuses)
        flag = " (cross-platform)" if c.has_cross_platform else ""
        lines.append(f"  {i}. [{c.score}] {route}{flag}")
    return "\n".join(lines)
