"""Read transitions from the discovery cache written by the source analyzer."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from implications_planner.types import Transition

if TYPE_CHECKING:
    from implications_planner.store.cache import FileCache

logger = logging.getLogger(__name__)


def parse_transitions(raw: Any) -> list[Transition]:
    if not isinstance(raw, list):
        return []
    transitions: list[Transition] = []
    for i, item in enumerate(raw):
        t = Transition.from_dict(item)
        if t is None:
            logger.warning("Skipping malformed transition #%d: %r", i, item)
            continue
        transitions.append(t)
    return transitions


def load_discovery(path: str | Path, cache: FileCache) -> list[Transition]:
    """Return the ``transitions`` of a discovery result; [] if the file is absent."""
    doc = cache.load_json(path)
    if doc is None:
        logger.info("No discovery cache at %s", path)
        return []
    if not isinstance(doc, dict):
        raise ValueError(f"Invalid discovery cache {path}: expected a JSON object")
    return parse_transitions(doc.get("transitions"))
