"""Thin CLI router — dispatches to commands."""
from __future__ import annotations

import logging
import os
import sys

USAGE = """\
implications — prerequisite planner for Implication-based tests

Usage:
  implications analyze <implication> [data-path]      Readiness report for an implication
  implications paths <from> <to> [--choose]           Rank every route between two statuses
  implications run <implication> [data-path]          Auto-run missing prerequisites
  implications context <data-path>                    Show replayed snapshot and change log
  implications validate                               Static checks + Mermaid diagram
  implications registry [--write]                     Show (or rebuild) the status registry

Options:
  --platform <name>    Current execution platform (default from implications.yaml)
  --verbose            Debug logging

Internal:
  implications mcp-server    Start MCP Server
"""


def _pop_flag(args: list[str], flag: str) -> bool:
    if flag in args:
        args.remove(flag)
        return True
    return False


def _pop_option(args: list[str], name: str) -> str | None:
    if name not in args:
        return None
    idx = args.index(name)
    if idx + 1 >= len(args):
        print(f"Missing value for {name}", file=sys.stderr)
        sys.exit(1)
    value = args[idx + 1]
    del args[idx:idx + 2]
    return value


def main():
    args = sys.argv[1:]
    cwd = os.getcwd()

    verbose = _pop_flag(args, "--verbose")
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    platform = _pop_option(args, "--platform")
    command = args[0] if args else None

    if command == "analyze":
        if len(args) < 2:
            print("Usage: implications analyze <implication> [data-path]", file=sys.stderr)
            sys.exit(1)
        from implications_planner.commands.analyze import cmd_analyze
        cmd_analyze(args[1], args[2] if len(args) > 2 else None, cwd, platform=platform)

    elif command == "paths":
        choose = _pop_flag(args, "--choose")
        if len(args) < 3:
            print("Usage: implications paths <from> <to> [--choose]", file=sys.stderr)
            sys.exit(1)
        from implications_planner.commands.paths import cmd_paths
        cmd_paths(args[1], args[2], cwd, platform=platform, choose=choose)

    elif command == "run":
        if len(args) < 2:
            print("Usage: implications run <implication> [data-path]", file=sys.stderr)
            sys.exit(1)
        from implications_planner.commands.run import cmd_run
        cmd_run(args[1], args[2] if len(args) > 2 else None, cwd, platform=platform)

    elif command == "context":
        if len(args) < 2:
            print("Usage: implications context <data-path>", file=sys.stderr)
            sys.exit(1)
        from implications_planner.commands.context import cmd_context
        cmd_context(args[1], cwd)

    elif command == "validate":
        from implications_planner.commands.validate import cmd_validate
        cmd_validate(cwd)

    elif command == "registry":
        write = _pop_flag(args, "--write")
        from implications_planner.commands.registry import cmd_registry
        cmd_registry(cwd, write=write)

    elif command == "mcp-server":
        from implications_planner.integrations.mcp_server import run_server
        run_server()

    elif command in ("help", "--help", "-h", None):
        print(USAGE)

    else:
        print(f"Unknown command: {command}", file=sys.stderr)
        print(USAGE)
        sys.exit(1)
