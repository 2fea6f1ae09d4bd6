"""Prerequisite chain builder — walks requires.previousStatus through the registry."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from implications_planner.engine.graph import find_direct_transition
from implications_planner.engine.requirements import requirements_match
from implications_planner.store.registry import normalize_status
from implications_planner.types import ChainStep

if TYPE_CHECKING:
    from implications_planner.compiler.parser import ImplicationCatalog
    from implications_planner.engine.graph import Graph
    from implications_planner.store.registry import StateRegistry
    from implications_planner.types import Implication, SetupEntry

logger = logging.getLogger(__name__)

NOT_IN_REGISTRY = "NOT_IN_REGISTRY"
NOT_IN_CATALOG = "NOT_IN_CATALOG"


class ChainBuilder:
    def __init__(
        self,
        registry: StateRegistry,
        catalog: ImplicationCatalog,
        graph: Graph,
        *,
        max_depth: int = 32,
    ):
        self.registry = registry
        self.catalog = catalog
        self.graph = graph
        self.max_depth = max_depth

    def build(
        self,
        implication: Implication,
        current_status: str,
        target_status: str | None = None,
        visited: set[str] | None = None,
        *,
        is_original_target: bool = True,
        data: dict[str, Any] | None = None,
        current_test_file: str | None = None,
    ) -> list[ChainStep]:
        """Ordered steps from the root prerequisite up to the target status.

        Completion flags are only computed for the original target call; nested
        calls return raw sub-chains that the top-level call annotates.
        """
        data = data or {}
        target = target_status or implication.status
        visited = visited if visited is not None else set()

        if target in visited:
            logger.warning("Cycle at '%s' while resolving %s, dropping branch", target, implication.id)
            return []
        if len(visited) >= self.max_depth:
            logger.warning("Prerequisite depth limit (%d) reached at '%s'", self.max_depth, target)
            return []
        visited.add(target)

        setup = self.select_setup(implication, data, current_test_file if is_original_target else None)

        if is_original_target:
            direct = find_direct_transition(self.graph, current_status, target)
            if direct:
                step = self._make_step(implication, target, setup, is_target=True)
                step.transition_event = direct.event or None
                step.transition_from = normalize_status(current_status)
                # self-loop: already at the target
                step.is_current = step.complete = step.transition_from == normalize_status(target)
                return [step]

        chain: list[ChainStep] = []

        # A registered requires.status is reached on the global axis
        required_global = implication.requires.get("status")
        if isinstance(required_global, str) and required_global in self.registry:
            global_status = _global_status(data)
            if normalize_status(global_status) != normalize_status(required_global):
                chain.extend(self._build_for_status(required_global, global_status, visited, data))

        previous = (setup.previous_status if setup else None) or implication.previous_status
        if previous:
            chain.extend(self._build_for_status(previous, current_status, visited, data))

        chain.append(self._make_step(implication, target, setup, is_target=is_original_target))

        if is_original_target:
            mark_complete(chain, current_status, implication.entity, data)
        return chain

    def select_setup(
        self,
        implication: Implication,
        data: dict[str, Any],
        current_test_file: str | None = None,
    ) -> SetupEntry | None:
        entries = implication.setup
        if not entries:
            return None
        if current_test_file:
            wanted = Path(current_test_file).name
            for entry in entries:
                if entry.test_file and Path(entry.test_file).name == wanted:
                    return entry
        for entry in entries:
            if entry.requires and requirements_match(entry.requires, data):
                return entry
        for entry in entries:
            if not entry.requires:
                return entry
        return entries[0]

    # ─── Private ───

    def _build_for_status(
        self,
        status: str,
        current_status: str,
        visited: set[str],
        data: dict[str, Any],
    ) -> list[ChainStep]:
        impl_id = self.registry.resolve(status)
        if impl_id is None:
            logger.error("Status '%s' is not in the state registry", status)
            return [ChainStep(status=status, action_name="", error=NOT_IN_REGISTRY)]
        impl = self.catalog.get(impl_id)
        if impl is None:
            logger.error("Implementation '%s' for status '%s' not found", impl_id, status)
            return [ChainStep(status=status, implementation_id=impl_id, error=NOT_IN_CATALOG)]
        return self.build(impl, current_status, status, visited, is_original_target=False, data=data)

    def _make_step(
        self,
        implication: Implication,
        status: str,
        setup: SetupEntry | None,
        *,
        is_target: bool,
    ) -> ChainStep:
        return ChainStep(
            status=status,
            implementation_id=implication.id,
            action_name=setup.action_name if setup else "",
            test_file=setup.test_file if setup else "",
            platform=(setup.platform if setup else None) or implication.platform,
            is_target=is_target,
            entity=implication.entity,
        )


def mark_complete(
    chain: list[ChainStep],
    current_status: str,
    entity: str | None = None,
    data: dict[str, Any] | None = None,
) -> None:
    """Flag finished steps in place.

    Everything up to the step matching current_status is complete. For entity
    implications, non-entity steps up to the global status are complete too.
    Completion is then closed over the prefix.
    """
    current = normalize_status(current_status)
    idx = next((i for i, s in enumerate(chain) if normalize_status(s.status) == current), None)
    if idx is not None:
        for step in chain[: idx + 1]:
            step.complete = True
        chain[idx].is_current = True

    if entity and data is not None and isinstance(data.get("status"), str):
        global_status = normalize_status(data["status"])
        gidx = next(
            (i for i, s in enumerate(chain)
             if not s.entity and not s.error and normalize_status(s.status) == global_status),
            None,
        )
        if gidx is not None:
            for step in chain[: gidx + 1]:
                if not step.entity and not step.error:
                    step.complete = True

    last = max((i for i, s in enumerate(chain) if s.complete), default=-1)
    for step in chain[: last + 1]:
        step.complete = True


def _global_status(data: dict[str, Any]) -> str:
    value = data.get("status")
    return value if isinstance(value, str) and value else "initial"
