"""Exceptions raised by the planner.

Readiness problems (missing fields, cross-platform steps) are reported as
data on ReadinessAnalysis. The classes here are for failures that must stop
the run: a missing action, a stalled action, no path, or a caller that asked
for readiness to be enforced.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from implications_planner.types import ChainStep, ReadinessAnalysis


class PlannerError(Exception):
    pass


class ImplicationNotFoundError(PlannerError, KeyError):
    def __init__(self, ref: str):
        super().__init__(ref)
        self.ref = ref

    def __str__(self) -> str:
        return f"Implication not found: {self.ref!r}"


class NoPathError(PlannerError):
    def __init__(self, start: str, target: str):
        super().__init__(f"No path from '{start}' to '{target}'")
        self.start = start
        self.target = target


class ActionLookupError(PlannerError, LookupError):
    def __init__(self, name: str, tried: list[str]):
        super().__init__(f"Action not registered: '{name}' (tried: {', '.join(tried)})")
        self.name = name
        self.tried = tried


class StalledExecutionError(PlannerError):
    """An action ran but the controlling status did not move."""

    def __init__(self, step: ChainStep, analysis: ReadinessAnalysis):
        super().__init__(
            f"Execution stalled at '{step.status}': action '{step.action_name}' ran "
            f"but status is still '{analysis.current_status}'"
        )
        self.step = step
        self.analysis = analysis


class PrerequisitesNotMetError(PlannerError):
    def __init__(self, analysis: ReadinessAnalysis, message: str | None = None):
        super().__init__(
            message or f"Prerequisites not met for '{analysis.target_status}' "
            f"(current: '{analysis.current_status}')"
        )
        self.analysis = analysis


class CrossPlatformBlockedError(PrerequisitesNotMetError):
    def __init__(self, analysis: ReadinessAnalysis, manual_commands: list[str]):
        platforms = sorted({s.platform or "unknown" for s in analysis.cross_platform})
        super().__init__(
            analysis,
            f"Prerequisites not met (cross-platform): run steps on {', '.join(platforms)} first",
        )
        self.manual_commands = manual_commands
