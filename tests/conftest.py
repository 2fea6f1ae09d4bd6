"""Shared fixtures for planner tests."""
from __future__ import annotations

import json
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import yaml

from implications_planner.compiler.parser import ImplicationCatalog, parse_implication
from implications_planner.engine.actions import ActionRegistry
from implications_planner.engine.planner import TestPlanner
from implications_planner.store.context import TestContext

if TYPE_CHECKING:
    from implications_planner.types import Implication

FIXTURES_DIR = Path(__file__).parent / ".implications"


class PlannerHarness:
    """A throwaway project directory laid out the way the planner expects.

    tests/implications/   implication YAML
    tests/actions/        @action modules
    tests/data/           snapshots
    .implications-framework/cache/discovery-result.json
    """

    def __init__(self, *, booking: bool = True):
        self.tmp = Path(tempfile.mkdtemp())
        self.implications_dir = self.tmp / "tests" / "implications"
        self.actions_dir = self.tmp / "tests" / "actions"
        self.data_dir = self.tmp / "tests" / "data"
        self.discovery_file = self.tmp / ".implications-framework" / "cache" / "discovery-result.json"
        for d in (self.implications_dir, self.actions_dir, self.data_dir, self.discovery_file.parent):
            d.mkdir(parents=True)

        if booking:
            for src in (FIXTURES_DIR / "implications").glob("*.yaml"):
                shutil.copy2(src, self.implications_dir / src.name)
            shutil.copy2(FIXTURES_DIR / "discovery-result.json", self.discovery_file)

        self.written: list[Implication] = []

    # ─── Project files ───

    def add_implication(self, impl_id: str, **body: Any) -> Implication:
        """Write tests/implications/<impl_id>.yaml and return the parsed definition."""
        doc = {"id": impl_id, **body}
        path = self.implications_dir / f"{impl_id}.yaml"
        path.write_text(yaml.safe_dump(doc, sort_keys=False), encoding="utf-8")
        impl = parse_implication(doc)
        self.written.append(impl)
        return impl

    def write_registry(self, mapping: dict[str, str]) -> Path:
        path = self.implications_dir / ".state-registry.json"
        path.write_text(json.dumps(mapping), encoding="utf-8")
        return path

    def write_discovery(self, transitions: list[dict[str, Any]]) -> Path:
        self.discovery_file.write_text(json.dumps({"transitions": transitions, "files": {}}), encoding="utf-8")
        return self.discovery_file

    def write_config(self, **config: Any) -> Path:
        path = self.tmp / "implications.yaml"
        path.write_text(yaml.safe_dump(config), encoding="utf-8")
        return path

    def write_data(self, data: dict[str, Any], name: str = "shared.json") -> Path:
        path = self.data_dir / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def write_snapshot(self, original: dict[str, Any], change_log: list[dict[str, Any]],
                       name: str = "shared-current.json") -> Path:
        path = self.data_dir / name
        path.write_text(json.dumps({"original": original, "changeLog": change_log}), encoding="utf-8")
        return path

    def install_actions(self, filename: str, code: str) -> Path:
        dst = self.actions_dir / filename
        dst.write_text(code, encoding="utf-8")
        return dst

    def install_booking_actions(self) -> Path:
        src = FIXTURES_DIR / "actions" / "booking_actions.py"
        return Path(shutil.copy2(src, self.actions_dir / src.name))

    # ─── Planner access ───

    def planner(self) -> TestPlanner:
        return TestPlanner.from_project(self.tmp)

    def catalog(self) -> ImplicationCatalog:
        return ImplicationCatalog.load_directory(self.implications_dir)

    def actions(self) -> ActionRegistry:
        registry = ActionRegistry()
        registry.load_directory(self.actions_dir)
        return registry

    def load(self, name: str = "shared.json") -> TestContext:
        return TestContext.load(self.data_dir / name)

    def read_json(self, name: str) -> Any:
        return json.loads((self.data_dir / name).read_text(encoding="utf-8"))

    def close(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@pytest.fixture
def harness_factory():
    """Factory fixture that creates PlannerHarness instances and cleans up after test."""
    created: list[PlannerHarness] = []

    def _make(**kwargs) -> PlannerHarness:
        h = PlannerHarness(**kwargs)
        created.append(h)
        return h

    yield _make

    for h in created:
        h.close()


@pytest.fixture
def booking(harness_factory) -> PlannerHarness:
    """Harness preloaded with the draft → submitted → accepted → completed lifecycle."""
    return harness_factory()


# ─── Action code templates for tests ───

STATUS_ACTION = """\
from implications_planner import PartialState, action

@action("{name}")
def {func}(data_path, options):
    return PartialState({{"status": "{status}"}})
"""

NOOP_ACTION = """\
from implications_planner import action

@action("{name}")
def {func}(data_path, options):
    return None
"""
