"""MCP server exposing the BDD engine: detection, step lookup, healing
catalog and scenario execution."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from bddmcp.container import get_container
from bddmcp.domains.module_detection import DetectionPolicy, ScenarioDescriptor
from bddmcp.domains.shared.errors import EngineError
from bddmcp.domains.shared.kernel import DetectionModeLiteral
from bddmcp.domains.step_registry import StepGroup, split_keyword

logger = logging.getLogger(__name__)

STEP_MODULES_ENV = "BDDMCP_STEP_MODULES"

mcp = FastMCP(
    "BDD MCP Server",
    instructions=(
        "Inspect and run behaviour-driven scenarios: detect required modules, "
        "look up step definitions, and execute scenarios with self-healing UI steps."
    ),
)


def _policy(mode: Optional[str]) -> DetectionPolicy:
    policy = get_container().config.detection_policy()
    if mode is None:
        return policy
    return DetectionPolicy(
        mode=mode,
        enabled=policy.enabled,
        default_browser=policy.default_browser,
        browser_always=policy.browser_always,
        explicit_modules=policy.explicit_modules,
        log_detection=policy.log_detection,
    )


@mcp.tool(
    name="detect_modules",
    description=(
        "Detect which runtime modules (ui, api, database, soap) a scenario needs "
        "from its tags and step texts."
    ),
)
async def detect_modules(
    steps: List[str],
    tags: Optional[List[str]] = None,
    feature_tags: Optional[List[str]] = None,
    mode: Optional[DetectionModeLiteral] = None,
    name: str = "",
) -> Dict[str, Any]:
    """Run module detection for one scenario."""
    container = get_container()
    policy = _policy(mode)
    scenario = ScenarioDescriptor(
        name=name, tags=tags or (), step_texts=steps, feature_tags=feature_tags or (),
    )
    requirement = container.detector.detect(scenario, policy)
    return {
        "success": True,
        "mode": policy.mode.value,
        "modules": requirement.to_dict(),
        "summary": requirement.summary,
        "browser_required": container.detector.is_browser_required(requirement, policy),
    }


@mcp.tool(
    name="list_step_definitions",
    description="List registered step definitions, optionally filtered by group.",
)
async def list_step_definitions(group: Optional[str] = None) -> Dict[str, Any]:
    """Return every registered step definition."""
    registry = get_container().registry
    if group:
        try:
            definitions = registry.by_group(StepGroup(group.strip().lower()))
        except ValueError:
            return {
                "success": False,
                "error": f"Unknown step group: {group}",
                "valid_groups": [g.value for g in StepGroup],
            }
    else:
        definitions = list(registry.definitions)
    return {
        "success": True,
        "count": len(definitions),
        "steps": [d.to_dict() for d in definitions],
    }


@mcp.tool(
    name="match_step",
    description=(
        "Resolve a step line (with or without its Given/When/Then keyword) to its "
        "definition and typed arguments."
    ),
)
async def match_step(step: str) -> Dict[str, Any]:
    """Match one step line against the registry."""
    keyword, text = split_keyword(step)
    try:
        match = get_container().registry.match(text)
    except EngineError as e:
        return {
            "success": False,
            "step": text,
            "error_type": type(e).__name__,
            "error": str(e),
        }
    result = match.to_dict()
    result["success"] = True
    result["keyword"] = keyword.value if keyword else None
    return result


@mcp.tool(
    name="list_healing_strategies",
    description="List the self-healing strategies in the order they are tried.",
)
async def list_healing_strategies() -> Dict[str, Any]:
    """Return the configured healing chain."""
    container = get_container()
    engine = container.create_healing_engine()
    return {
        "success": True,
        "enabled": container.config.HEALING_ENABLED,
        "max_attempts": engine.max_attempts,
        "confidence_threshold": engine.confidence_threshold,
        "strategies": [s.to_dict() for s in engine.strategies],
    }


@mcp.tool(
    name="run_scenarios",
    description=(
        "Execute scenarios against the registered steps. Each scenario is an object "
        "with 'name', 'tags', optional 'feature_tags' and 'steps'."
    ),
)
async def run_scenarios(
    scenarios: List[Dict[str, Any]],
    workers: Optional[int] = None,
) -> Dict[str, Any]:
    """Run scenarios on isolated workers and return per-step results."""
    descriptors = [ScenarioDescriptor.from_dict(s) for s in scenarios]
    results = await get_container().worker_manager.run_parallel(descriptors, workers)
    passed = sum(1 for r in results if r.passed)
    return {
        "success": passed == len(results),
        "passed": passed,
        "failed": len(results) - passed,
        "scenarios": [r.to_dict() for r in results],
    }


@mcp.tool(
    name="get_engine_config",
    description="Show the active engine configuration and any validation errors.",
)
async def get_engine_config() -> Dict[str, Any]:
    config = get_container().config
    return {
        "success": True,
        "config": config.to_dict(),
        "errors": config.validate(),
    }


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="bddmcp server entry point.")
    parser.add_argument(
        "--step-module",
        dest="step_modules",
        action="append",
        default=[],
        help=(
            "Python module defining StepSource objects; repeatable. "
            f"Also read from {STEP_MODULES_ENV} (comma separated)."
        ),
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse"],
        default=None,
        help="MCP transport (default: stdio).",
    )
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: List[str] | None = None) -> None:
    """Start the bddmcp server."""

    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    container = get_container()
    module_names = list(args.step_modules)
    module_names.extend(os.environ.get(STEP_MODULES_ENV, "").split(","))
    found = container.load_step_modules(module_names)
    # Registration errors must stop the server before any tool call.
    container.build_registry()
    logger.info("Starting bddmcp with %d step sources", found)

    run_kwargs: Dict[str, Any] = {"transport": args.transport or "stdio"}
    if args.log_level:
        run_kwargs["log_level"] = args.log_level
    if run_kwargs["transport"] != "stdio":
        if args.host:
            run_kwargs["host"] = args.host
        if args.port:
            run_kwargs["port"] = args.port

    try:
        mcp.run(**run_kwargs)
    except KeyboardInterrupt:
        logger.info("bddmcp interrupted by user")


if __name__ == "__main__":
    main()
