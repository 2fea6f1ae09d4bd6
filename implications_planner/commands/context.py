"""implications context <data-path> — show the replayed snapshot and its change log."""
from __future__ import annotations

import json
import sys
from pathlib import Path

from implications_planner.store.context import TestContext


def cmd_context(data_path: str, cwd: str) -> None:
    path = Path(data_path)
    if not path.is_absolute():
        path = Path(cwd) / path
    if not TestContext.resolve_load_path(path).exists():
        print(f"Test data not found: {path}", file=sys.stderr)
        sys.exit(1)

    ctx = TestContext.load(path)
    print(f"Source: {ctx.source_path}")
    print(f"Status: {ctx.status}")
    print()
    print(json.dumps(ctx.data, indent=2, ensure_ascii=False, default=str))

    log = ctx.change_log
    if log:
        print()
        print(f"{len(log)} change(s):")
        for i, entry in enumerate(log, 1):
            print(f"  {i}. {entry.timestamp} {entry.label} ({entry.test_file or '-'}): {json.dumps(entry.delta)}")
