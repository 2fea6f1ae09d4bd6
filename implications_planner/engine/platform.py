"""Cross-platform guard — classify platforms and list manual commands."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from implications_planner.types import ChainStep

MOBILE_PLATFORMS = frozenset({"dancer", "clubapp", "club", "mobile", "webdriverio", "android", "ios", "appium"})
WEB_PLATFORMS = frozenset({"playwright", "web", "cms"})


def classify_platform(name: str | None, mobile_aliases: Iterable[str] = ()) -> str | None:
    """Returns 'mobile', 'web', the lowercased name for any other platform,
    or None when the platform is unknown.
    """
    if not name or name.lower() == "unknown":
        return None
    key = name.lower()
    if key in MOBILE_PLATFORMS or key in {a.lower() for a in mobile_aliases}:
        return "mobile"
    if key in WEB_PLATFORMS:
        return "web"
    return key


def is_cross_platform(step_platform: str | None, current_platform: str | None,
                      mobile_aliases: Iterable[str] = ()) -> bool:
    a = classify_platform(step_platform, mobile_aliases)
    b = classify_platform(current_platform, mobile_aliases)
    return a is not None and b is not None and a != b


def detect_cross_platform(chain: list[ChainStep], current_platform: str | None,
                          mobile_aliases: Iterable[str] = ()) -> list[ChainStep]:
    aliases = list(mobile_aliases)
    return [
        s for s in chain
        if not s.complete and not s.is_target
        and is_cross_platform(s.platform, current_platform, aliases)
    ]


def manual_commands(
    chain: list[ChainStep],
    current_platform: str | None,
    test_data_path: str,
    *,
    template: str,
    runners: dict[str, str],
    mobile_aliases: Iterable[str] = (),
) -> list[str]:
    """Commands for every pending prerequisite, in chain order.

    Consecutive steps on the same platform class share a ``# <platform>`` header
    so the user can run each block in the matching environment.
    """
    aliases = list(mobile_aliases)
    lines: list[str] = []
    last_group: str | None = None
    for step in chain:
        if step.complete or step.is_target:
            continue
        group = classify_platform(step.platform, aliases) or classify_platform(current_platform, aliases) or "web"
        if group != last_group:
            lines.append(f"# {step.platform or current_platform or group}")
            last_group = group
        runner = runners.get(group, runners.get("web", ""))
        lines.append(template.format(
            data_path=test_data_path,
            runner=runner,
            test_file=step.test_file or step.action_name,
        ).strip())
    return lines
