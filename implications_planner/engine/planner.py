"""TestPlanner — the entry point tests and the CLI talk to."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from implications_planner.compiler.discovery import load_discovery
from implications_planner.compiler.parser import ImplicationCatalog
from implications_planner.config import PlannerConfig, load_config
from implications_planner.engine.chain import ChainBuilder
from implications_planner.engine.executor import AutoExecutor
from implications_planner.engine.graph import build_graph, find_all_paths, to_status
from implications_planner.engine.platform import classify_platform, manual_commands
from implications_planner.engine.prompt import prompt_path_selection
from implications_planner.engine.readiness import analyze_readiness
from implications_planner.engine.report import format_analysis, format_cross_platform
from implications_planner.errors import (
    CrossPlatformBlockedError,
    ImplicationNotFoundError,
    NoPathError,
    PrerequisitesNotMetError,
)
from implications_planner.store.cache import FileCache
from implications_planner.store.registry import StateRegistry, normalize_status
from implications_planner.types import ExecutionMode, ExecutionState, Implication

if TYPE_CHECKING:
    from collections.abc import Iterable

    from implications_planner.engine.actions import ActionRegistry
    from implications_planner.types import PathCandidate, ReadinessAnalysis, Transition


class TestPlanner:
    __test__ = False  # not a pytest test class

    def __init__(
        self,
        registry: StateRegistry,
        catalog: ImplicationCatalog,
        transitions: Iterable[Transition] = (),
        *,
        config: PlannerConfig | None = None,
        cache: FileCache | None = None,
    ):
        self.config = config or PlannerConfig()
        self.cache = cache or FileCache(ttl=self.config.cache_ttl)
        self.registry = registry
        self.catalog = catalog
        self._set_transitions(list(transitions))

    @classmethod
    def from_project(cls, project_dir: str | Path, config: PlannerConfig | None = None,
                     cache: FileCache | None = None) -> TestPlanner:
        """Load config, catalog, registry and discovery transitions from a project."""
        config = config or load_config(project_dir)
        cache = cache or FileCache(ttl=config.cache_ttl)
        catalog = ImplicationCatalog.load_directory(config.implications_path)
        planner = cls(StateRegistry(), catalog, config=config, cache=cache)
        planner.refresh()
        return planner

    def refresh(self) -> None:
        """Re-read the registry and discovery cache (cached for ``cache_ttl`` seconds)."""
        if self.config.registry_file.exists():
            self.registry = StateRegistry.load(self.config.registry_file, self.cache)
        else:
            self.registry = StateRegistry.from_catalog(self.catalog)
        self._set_transitions(load_discovery(self.config.discovery_file, self.cache))

    @property
    def transitions(self) -> list[Transition]:
        return list(self._transitions)

    # ─── Lookup ───

    def get_implication(self, ref: str | Implication) -> Implication:
        """Accepts an Implication, an implementation id, or a status."""
        if isinstance(ref, Implication):
            return ref
        impl = self.catalog.get(ref)
        if impl:
            return impl
        impl_id = self.registry.resolve(ref)
        if impl_id and self.catalog.get(impl_id):
            return self.catalog.get(impl_id)
        impl = self.catalog.by_status(ref)
        if impl:
            return impl
        raise ImplicationNotFoundError(ref)

    # ─── Analysis ───

    def analyze(
        self,
        implication: str | Implication,
        data: dict[str, Any],
        *,
        current_platform: str | None = None,
        current_test_file: str | None = None,
    ) -> ReadinessAnalysis:
        return analyze_readiness(
            self.get_implication(implication),
            data,
            self.builder,
            current_platform=current_platform or self.config.platform,
            mobile_aliases=self.config.mobile_platforms,
            current_test_file=current_test_file,
        )

    def find_paths(
        self,
        start: str,
        target: str,
        *,
        current_platform: str | None = None,
        max_depth: int | None = None,
    ) -> list[PathCandidate]:
        return find_all_paths(
            start,
            target,
            self.graph,
            max_depth or self.config.max_depth,
            current_platform=current_platform or self.config.platform,
            registry=self.registry,
            catalog=self.catalog,
            mobile_aliases=self.config.mobile_platforms,
        )

    def require_path(self, start: str, target: str, **kwargs) -> list[PathCandidate]:
        candidates = self.find_paths(start, target, **kwargs)
        if not candidates:
            raise NoPathError(start, target)
        return candidates

    def select_path(
        self,
        start: str,
        target: str,
        *,
        current_platform: str | None = None,
        stdin: TextIO | None = None,
        stderr: TextIO | None = None,
        candidates: list[PathCandidate] | None = None,
    ) -> PathCandidate:
        if candidates is None:
            candidates = self.require_path(start, target, current_platform=current_platform)
        return prompt_path_selection(
            candidates,
            start=start,
            target=target,
            timeout=self.config.prompt_timeout,
            stdin=stdin,
            stderr=stderr,
        )

    # ─── Reporting ───

    def manual_commands(self, analysis: ReadinessAnalysis, current_platform: str | None,
                        test_data_path: str) -> list[str]:
        return manual_commands(
            analysis.chain,
            current_platform or self.config.platform,
            test_data_path,
            template=self.config.command_template,
            runners=self.config.runners,
            mobile_aliases=self.config.mobile_platforms,
        )

    def next_command(self, analysis: ReadinessAnalysis, test_data_path: str) -> str | None:
        step = analysis.next_step
        if step is None:
            return None
        group = classify_platform(step.platform, self.config.mobile_platforms) or "web"
        return self.config.command_template.format(
            data_path=test_data_path,
            runner=self.config.runners.get(group, self.config.runners.get("web", "")),
            test_file=step.test_file or step.action_name,
        ).strip()

    def report(self, analysis: ReadinessAnalysis, test_data_path: str,
               current_platform: str | None = None) -> str:
        platform = current_platform or self.config.platform
        if analysis.cross_platform:
            return format_cross_platform(
                analysis, platform, self.manual_commands(analysis, platform, test_data_path)
            )
        return format_analysis(analysis, self.next_command(analysis, test_data_path))

    # ─── Enforcement ───

    def check_or_throw(
        self,
        implication: str | Implication,
        data: dict[str, Any],
        *,
        current_platform: str | None = None,
        test_data_path: str | None = None,
        stream: TextIO | None = None,
    ) -> ReadinessAnalysis:
        """Return the analysis when ready; otherwise print the report and raise."""
        analysis = self.analyze(implication, data, current_platform=current_platform)
        if analysis.ready:
            return analysis
        data_path = test_data_path or self.config.test_data_path
        print(self.report(analysis, data_path, current_platform), file=stream or sys.stderr)
        if analysis.cross_platform:
            raise CrossPlatformBlockedError(
                analysis, self.manual_commands(analysis, current_platform, data_path)
            )
        raise PrerequisitesNotMetError(analysis)

    def ensure_ready(
        self,
        implication: str | Implication,
        test_data_path: str | Path,
        actions: ActionRegistry,
        *,
        current_platform: str | None = None,
        driver: Any = None,
        page: Any = None,
        current_test_file: str | None = None,
        stream: TextIO | None = None,
    ) -> ReadinessAnalysis:
        """Auto-run missing prerequisites, raising unless the target becomes ready."""
        platform = current_platform or self.config.platform
        executor = AutoExecutor(
            self, actions, current_platform=platform, mode=ExecutionMode.PREREQUISITE, report_stream=stream
        )
        outcome = executor.run(
            self.get_implication(implication),
            test_data_path,
            driver=driver,
            page=page,
            current_test_file=current_test_file,
        )

        match outcome.state:
            case ExecutionState.DONE:
                return outcome.analysis
            case ExecutionState.FAILED | ExecutionState.STALLED:
                raise outcome.error
            case _:
                print(self.report(outcome.analysis, str(test_data_path), platform), file=stream or sys.stderr)
                if outcome.manual_commands:
                    raise CrossPlatformBlockedError(outcome.analysis, outcome.manual_commands)
                raise PrerequisitesNotMetError(outcome.analysis)

    # ─── Private ───

    def _set_transitions(self, discovered: list[Transition]) -> None:
        seen = {self._edge_key(t) for t in discovered}
        declared = [t for t in self.catalog.transitions() if self._edge_key(t) not in seen]
        self._transitions = [*discovered, *declared]
        self.graph = build_graph(self._transitions, self.registry)
        self.builder = ChainBuilder(self.registry, self.catalog, self.graph)

    def _edge_key(self, t: Transition) -> tuple[str, str, str]:
        return (to_status(t.from_status, self.registry), normalize_status(t.to), t.event)
