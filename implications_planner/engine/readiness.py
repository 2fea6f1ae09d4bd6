"""Readiness analysis: is the snapshot already at the target's entry point?"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from implications_planner.engine.platform import detect_cross_platform
from implications_planner.engine.requirements import find_missing_fields
from implications_planner.store.context import status_of
from implications_planner.store.registry import normalize_status
from implications_planner.types import ReadinessAnalysis

if TYPE_CHECKING:
    from collections.abc import Iterable

    from implications_planner.engine.chain import ChainBuilder
    from implications_planner.types import ChainStep, Implication

OBSERVER_MODES = frozenset({"verify", "observer"})


def is_ready(chain: list[ChainStep], current_status: str) -> bool:
    incomplete = [s for s in chain if not s.complete]
    if any(not s.is_target for s in incomplete):
        return False
    if len(incomplete) == 1 and incomplete[0].transition_from:
        return normalize_status(current_status) == incomplete[0].transition_from
    return True


def find_next_step(chain: list[ChainStep]) -> ChainStep | None:
    return next((s for s in chain if not s.complete and not s.is_target), None)


def analyze_readiness(
    implication: Implication,
    data: dict[str, Any],
    builder: ChainBuilder,
    *,
    current_platform: str | None = None,
    mobile_aliases: Iterable[str] = (),
    current_test_file: str | None = None,
) -> ReadinessAnalysis:
    current = status_of(data, implication.entity)
    target = implication.status

    setup = builder.select_setup(implication, data, current_test_file)
    if setup and setup.mode in OBSERVER_MODES and normalize_status(current) == normalize_status(target):
        return ReadinessAnalysis(ready=True, current_status=current, target_status=target, mode="observer")

    chain = builder.build(implication, current, data=data, current_test_file=current_test_file)
    gaps = find_missing_fields(implication, data, builder.registry)
    next_step = find_next_step(chain)

    return ReadinessAnalysis(
        ready=is_ready(chain, current) and not gaps,
        current_status=current,
        target_status=target,
        missing_fields=gaps,
        chain=chain,
        next_step=next_step,
        steps_remaining=sum(1 for s in chain if not s.complete),
        cross_platform=detect_cross_platform(chain, current_platform, mobile_aliases),
    )
