"""Interactive choice among ranked paths, with an auto-select timeout."""
from __future__ import annotations

import queue
import sys
import threading
from typing import TYPE_CHECKING, TextIO

from implications_planner.engine.report import format_paths
from implications_planner.errors import NoPathError

if TYPE_CHECKING:
    from implications_planner.types import PathCandidate


def _read_line(stream: TextIO, timeout: float) -> str | None:
    """One line from stream, or None after ``timeout`` seconds."""
    box: queue.Queue[str] = queue.Queue(maxsize=1)

    def reader():
        try:
            box.put(stream.readline())
        except (OSError, ValueError):
            box.put("")

    threading.Thread(target=reader, daemon=True).start()
    try:
        return box.get(timeout=timeout)
    except queue.Empty:
        return None


def prompt_path_selection(
    candidates: list[PathCandidate],
    *,
    start: str = "",
    target: str = "",
    timeout: float = 10.0,
    stdin: TextIO | None = None,
    stderr: TextIO | None = None,
) -> PathCandidate:
    if not candidates:
        raise NoPathError(start, target)
    if len(candidates) == 1:
        return candidates[0]

    stdin = stdin or sys.stdin
    stderr = stderr or sys.stderr

    print(f"{len(candidates)} paths from '{start}' to '{target}':", file=stderr)
    print(format_paths(candidates), file=stderr)
    print(f"Choose a path [1-{len(candidates)}] (auto-selecting 1 in {timeout:g}s): ", end="", file=stderr)
    stderr.flush()

    line = _read_line(stdin, timeout)
    if line is None:
        print(f"\nNo answer after {timeout:g}s, using path 1", file=stderr)
        return candidates[0]

    choice = line.strip()
    if not choice:
        return candidates[0]
    if choice.isdigit() and 1 <= int(choice) <= len(candidates):
        return candidates[int(choice) - 1]
    print(f"Invalid choice {choice!r}, using path 1", file=stderr)
    return candidates[0]
