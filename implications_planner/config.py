"""Project configuration loaded from implications.yaml."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE = "implications.yaml"

DEFAULT_REGISTRY_PATH = "tests/implications/.state-registry.json"
DEFAULT_DISCOVERY_PATH = ".implications-framework/cache/discovery-result.json"
DEFAULT_TEST_DATA_PATH = "tests/data/shared.json"


@dataclass
class PlannerConfig:
    project_dir: Path = field(default_factory=Path.cwd)
    registry_path: str = DEFAULT_REGISTRY_PATH
    discovery_path: str = DEFAULT_DISCOVERY_PATH
    implications_dir: str = "tests/implications"
    actions_dir: str = "tests/actions"
    test_data_path: str = DEFAULT_TEST_DATA_PATH
    max_depth: int = 8
    prompt_timeout: float = 10.0
    cache_ttl: float = 30.0
    platform: str = "web"
    mobile_platforms: list[str] = field(default_factory=list)
    command_template: str = "TEST_DATA_PATH={data_path} {runner} {test_file}"
    runners: dict[str, str] = field(default_factory=lambda: {
        "web": "npx playwright test",
        "mobile": "npx wdio run wdio.conf.js --spec",
    })

    def resolve(self, rel: str | Path) -> Path:
        p = Path(rel)
        return p if p.is_absolute() else self.project_dir / p

    @property
    def registry_file(self) -> Path:
        return self.resolve(self.registry_path)

    @property
    def discovery_file(self) -> Path:
        return self.resolve(self.discovery_path)

    @property
    def implications_path(self) -> Path:
        return self.resolve(self.implications_dir)

    @property
    def actions_path(self) -> Path:
        return self.resolve(self.actions_dir)

    @property
    def test_data_file(self) -> Path:
        return self.resolve(self.test_data_path)


def load_config(project_dir: str | Path) -> PlannerConfig:
    """Read implications.yaml from project_dir. Missing file → all defaults."""
    root = Path(project_dir)
    config_path = root / CONFIG_FILE
    raw: dict[str, Any] = {}
    if config_path.exists():
        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping")
        raw = loaded or {}

    known = {f.name for f in fields(PlannerConfig)} - {"project_dir"}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown keys in {CONFIG_FILE}: {', '.join(unknown)}")

    config = PlannerConfig(project_dir=root, **{k: v for k, v in raw.items() if k != "runners"})
    if "runners" in raw:
        config.runners = {**config.runners, **raw["runners"]}
    return config
