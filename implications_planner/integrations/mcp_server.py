"""MCP Server — exposes planner_* tools to coding agents."""
from __future__ import annotations

import json
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from implications_planner.compiler import validate_planner
from implications_planner.engine import TestPlanner
from implications_planner.store.context import TestContext

mcp = FastMCP("implications-planner")


def _get_planner() -> TestPlanner:
    return TestPlanner.from_project(os.getcwd())


def _resolve(data_path: str | None, planner: TestPlanner) -> Path:
    if not data_path:
        return planner.config.test_data_file
    return planner.config.resolve(data_path)


@mcp.tool()
def planner_analyze(implication: str, data_path: str | None = None, platform: str | None = None) -> str:
    """Readiness analysis for an implication against a test data snapshot."""
    try:
        planner = _get_planner()
        impl = planner.get_implication(implication)
        path = _resolve(data_path, planner)
        ctx = TestContext.load(path, impl)
        analysis = planner.analyze(impl, ctx.data, current_platform=platform)
        result = analysis.to_dict()
        result["report"] = planner.report(analysis, str(path), platform)
        return json.dumps(result, ensure_ascii=False, indent=2, default=str)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def planner_find_paths(start: str, target: str, platform: str | None = None) -> str:
    """Ranked paths between two statuses, best first."""
    try:
        planner = _get_planner()
        candidates = planner.find_paths(start, target, current_platform=platform)
        return json.dumps([c.to_dict() for c in candidates], ensure_ascii=False, indent=2)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def planner_get_context(data_path: str | None = None) -> str:
    """Replayed test data and its change log."""
    try:
        planner = _get_planner()
        ctx = TestContext.load(_resolve(data_path, planner))
        return json.dumps(ctx.to_dict(), ensure_ascii=False, indent=2, default=str)
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


@mcp.tool()
def planner_validate() -> str:
    """Static checks over registry, implications and transitions."""
    try:
        planner = _get_planner()
        errors = validate_planner(planner.registry, planner.catalog, planner.transitions)
        return json.dumps(
            [{"level": e.level, "status": e.status, "message": e.message} for e in errors],
            ensure_ascii=False,
            indent=2,
        )
    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


def run_server():
    mcp.run(transport="stdio")
