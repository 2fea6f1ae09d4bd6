from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

# ─── Discovery input (read-only) ───

@dataclass
class StateRegistryEntry:
    status: str
    implementation_id: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "implementationId": self.implementation_id}


@dataclass
class Transition:
    from_status: str
    to: str
    event: str = ""
    platforms: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Transition | None:
        """Build from a discovery-cache entry. Returns None when malformed."""
        if not isinstance(raw, dict):
            return None
        src = raw.get("from")
        dst = raw.get("to")
        if not isinstance(src, str) or not src or not isinstance(dst, str) or not dst:
            return None
        platforms = raw.get("platforms") or []
        if isinstance(platforms, str):
            platforms = [platforms]
        return cls(
            from_status=src,
            to=dst,
            event=str(raw.get("event") or ""),
            platforms=[str(p) for p in platforms],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_status, "to": self.to, "event": self.event, "platforms": list(self.platforms)}


@dataclass
class Edge:
    to: str
    event: str = ""
    platforms: list[str] = field(default_factory=list)

# ─── Implication definitions (parsed from YAML) ───

@dataclass
class SetupEntry:
    action_name: str
    test_file: str = ""
    platform: str | None = None
    previous_status: str | None = None
    requires: dict[str, Any] = field(default_factory=dict)
    mode: str | None = None  # "verify" → observer step, never executed


@dataclass
class Implication:
    id: str
    status: str
    entity: str | None = None
    platform: str | None = None
    requires: dict[str, Any] = field(default_factory=dict)
    required_fields: list[str] = field(default_factory=list)
    setup: list[SetupEntry] = field(default_factory=list)
    transitions: list[Transition] = field(default_factory=list)

    @property
    def previous_status(self) -> str | None:
        value = self.requires.get("previousStatus")
        return value if isinstance(value, str) and value else None

# ─── Planning results ───

@dataclass
class ChainStep:
    status: str
    implementation_id: str | None = None
    action_name: str = ""
    test_file: str = ""
    platform: str | None = None
    complete: bool = False
    is_current: bool = False
    is_target: bool = False
    entity: str | None = None
    transition_event: str | None = None
    transition_from: str | None = None
    error: str | None = None  # NOT_IN_REGISTRY | NOT_IN_CATALOG

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "status": self.status,
            "implementationId": self.implementation_id,
            "actionName": self.action_name,
            "testFile": self.test_file,
            "platform": self.platform,
            "complete": self.complete,
            "isCurrent": self.is_current,
            "isTarget": self.is_target,
        }
        if self.entity:
            d["entity"] = self.entity
        if self.transition_event:
            d["transitionEvent"] = self.transition_event
            d["transitionFrom"] = self.transition_from
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class FieldGap:
    field: str
    required: Any
    actual: Any

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "required": self.required, "actual": self.actual}


@dataclass
class ReadinessAnalysis:
    ready: bool
    current_status: str
    target_status: str
    missing_fields: list[FieldGap] = field(default_factory=list)
    chain: list[ChainStep] = field(default_factory=list)
    next_step: ChainStep | None = None
    steps_remaining: int = 0
    cross_platform: list[ChainStep] = field(default_factory=list)
    mode: str = "normal"  # normal | observer

    @property
    def blocked_by_platform(self) -> bool:
        return bool(self.cross_platform)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": self.ready,
            "currentStatus": self.current_status,
            "targetStatus": self.target_status,
            "missingFields": [g.to_dict() for g in self.missing_fields],
            "chain": [s.to_dict() for s in self.chain],
            "nextStep": self.next_step.to_dict() if self.next_step else None,
            "stepsRemaining": self.steps_remaining,
            "crossPlatform": [s.to_dict() for s in self.cross_platform],
            "mode": self.mode,
        }


@dataclass
class PathCandidate:
    steps: list[ChainStep]
    current_platform: str | None = None
    has_cross_platform: bool = False
    score: int = 0

    @property
    def statuses(self) -> list[str]:
        return [s.status for s in self.steps]

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "currentPlatform": self.current_platform,
            "hasCrossPlatform": self.has_cross_platform,
            "score": self.score,
        }

# ─── Persistent snapshot ───

@dataclass
class ChangeEntry:
    label: str
    test_file: str
    delta: dict[str, Any]
    timestamp: str

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ChangeEntry:
        return cls(
            label=str(raw.get("label", "")),
            test_file=str(raw.get("testFile", "")),
            delta=dict(raw.get("delta") or {}),
            timestamp=str(raw.get("timestamp", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "testFile": self.test_file, "delta": self.delta, "timestamp": self.timestamp}

# ─── Action contract ───

class ExecutionMode(enum.Enum):
    INTERACTIVE = "interactive"
    PREREQUISITE = "prerequisite"  # invoked by the auto-executor, skip test-only side effects


@dataclass
class ActionOptions:
    driver: Any = None
    page: Any = None
    test_data_path: str | None = None
    mode: ExecutionMode = ExecutionMode.PREREQUISITE


@dataclass(frozen=True)
class NoOp:
    pass


@dataclass(frozen=True)
class Saved:
    path: str


@dataclass(frozen=True)
class PartialState:
    data: dict[str, Any]


ActionResult = NoOp | Saved | PartialState

# ─── Auto-executor runtime ───

class ExecutionState(enum.Enum):
    ANALYZING = "analyzing"
    EXECUTING = "executing"
    REANALYZING = "reanalyzing"
    DONE = "done"
    BLOCKED = "blocked"
    STALLED = "stalled"
    FAILED = "failed"


@dataclass
class ExecutionOutcome:
    state: ExecutionState
    analysis: ReadinessAnalysis
    initial_analysis: ReadinessAnalysis
    executed: list[str] = field(default_factory=list)
    error: BaseException | None = None
    manual_commands: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.state is ExecutionState.DONE
