"""Auto-executor — runs missing prerequisites one at a time.

State machine:

  ANALYZING   → DONE (ready) | BLOCKED (cross-platform or field gaps) | EXECUTING
  EXECUTING   → REANALYZING | FAILED (action raised, or no such action)
  REANALYZING → DONE | STALLED (same next step as before) | ANALYZING

Each action must move the controlling status, so the loop runs at most one
action per step of the initial chain.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from implications_planner.engine.actions import normalize_result
from implications_planner.engine.report import format_analysis
from implications_planner.errors import StalledExecutionError
from implications_planner.store.context import TestContext
from implications_planner.types import (
    ActionOptions,
    ExecutionMode,
    ExecutionOutcome,
    ExecutionState,
    NoOp,
    PartialState,
    Saved,
)

if TYPE_CHECKING:
    from implications_planner.engine.actions import ActionRegistry
    from implications_planner.engine.planner import TestPlanner
    from implications_planner.types import ChainStep, Implication, ReadinessAnalysis

logger = logging.getLogger(__name__)


def snapshot_path(path: str | Path) -> Path:
    """The live snapshot for a data path: its current sibling once one exists."""
    p = Path(path)
    current = TestContext.delta_path(p)
    return current if current.exists() else p


class AutoExecutor:
    def __init__(
        self,
        planner: TestPlanner,
        actions: ActionRegistry,
        *,
        current_platform: str | None = None,
        mode: ExecutionMode = ExecutionMode.PREREQUISITE,
        report_stream: TextIO | None = None,
    ):
        self.planner = planner
        self.actions = actions
        self.current_platform = current_platform
        self.mode = mode
        self.report_stream = report_stream

    def run(
        self,
        implication: Implication,
        test_data_path: str | Path,
        *,
        driver: Any = None,
        page: Any = None,
        current_test_file: str | None = None,
    ) -> ExecutionOutcome:
        path = Path(test_data_path)
        analysis = self._analyze(implication, path, current_test_file)
        initial = analysis
        budget = max(len(initial.chain), 1)
        executed: list[str] = []
        step: ChainStep | None = None
        state = ExecutionState.ANALYZING

        while True:
            logger.debug("%s: %s", implication.id, state.value)
            match state:
                case ExecutionState.ANALYZING:
                    if analysis.ready:
                        state = ExecutionState.DONE
                    elif analysis.cross_platform:
                        commands = self.planner.manual_commands(analysis, self.current_platform, str(path))
                        return ExecutionOutcome(ExecutionState.BLOCKED, analysis, initial, executed,
                                                manual_commands=commands)
                    elif analysis.next_step is None:
                        return ExecutionOutcome(ExecutionState.BLOCKED, analysis, initial, executed)
                    elif len(executed) >= budget:
                        error = StalledExecutionError(analysis.next_step, analysis)
                        return ExecutionOutcome(ExecutionState.STALLED, analysis, initial, executed, error)
                    else:
                        step = analysis.next_step
                        state = ExecutionState.EXECUTING

                case ExecutionState.EXECUTING:
                    try:
                        self._execute(step, implication, path, driver, page)
                    except Exception as e:
                        logger.error("Prerequisite '%s' failed: %s", step.status, e)
                        self._print(format_analysis(initial))
                        return ExecutionOutcome(ExecutionState.FAILED, analysis, initial, executed, e)
                    executed.append(step.status)
                    state = ExecutionState.REANALYZING

                case ExecutionState.REANALYZING:
                    analysis = self._analyze(implication, path, current_test_file)
                    if analysis.ready:
                        state = ExecutionState.DONE
                    elif analysis.next_step is not None and analysis.next_step.status == step.status:
                        error = StalledExecutionError(step, analysis)
                        logger.error("%s", error)
                        self._print(format_analysis(initial))
                        return ExecutionOutcome(ExecutionState.STALLED, analysis, initial, executed, error)
                    else:
                        state = ExecutionState.ANALYZING

                case ExecutionState.DONE:
                    logger.info("%s ready after %d prerequisite(s)", implication.id, len(executed))
                    return ExecutionOutcome(ExecutionState.DONE, analysis, initial, executed)

    # ─── Private ───

    def _analyze(self, implication: Implication, path: Path, current_test_file: str | None) -> ReadinessAnalysis:
        ctx = TestContext.load(snapshot_path(path), implication)
        return self.planner.analyze(
            implication,
            ctx.data,
            current_platform=self.current_platform,
            current_test_file=current_test_file,
        )

    def _execute(self, step: ChainStep, implication: Implication, path: Path, driver: Any, page: Any) -> None:
        fn = self.actions.resolve(step.action_name)
        live = snapshot_path(path)
        options = ActionOptions(driver=driver, page=page, test_data_path=str(live), mode=self.mode)

        logger.info("Running prerequisite %s → %s", step.action_name, step.status)
        result = normalize_result(fn(str(live), options), live)

        match result:
            case Saved(path=saved):
                logger.debug("Action saved snapshot to %s", saved)
            case PartialState(data=delta):
                ctx = TestContext.load(snapshot_path(path), implication)
                ctx.record(step.action_name, step.test_file, delta)
                ctx.save(path)
            case NoOp():
                ctx = TestContext.load(snapshot_path(path), implication)
                ctx.record(step.action_name, step.test_file, {})
                ctx.save(path)

    def _print(self, text: str) -> None:
        print(text, file=self.report_stream or sys.stderr)
