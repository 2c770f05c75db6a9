"""
Small CLI to replay a planner response against an in-memory workspace, without the GUI.

Usage:
    python run_script.py calls.json [--fast]

The JSON file holds ``calls`` (a list of ``{"name": ..., "args": {...}}`` tool
calls in screen coordinates) and optionally ``text``, ``instruction``,
``viewport`` (``[a, b, c, d, e, f]``) and ``canvas`` (``[width, height]``).
With ``--fast`` the human timing runs on a virtual clock.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from agent_engine.actions import Action
from agent_engine.bridge import PlanningBridge, describe_scene
from agent_engine.context import RunContext, virtual_context
from agent_engine.planner import PlannerResponse, ScriptedPlanner, ToolCall
from agent_engine.processor import ActionProcessor
from agent_engine.speech import CallbackSpeech
from agent_engine.state import AgentState
from logger import StatusLogger
from models import AgentSettings, Point, ViewportTransform
from workspace.scene import Workspace

DEFAULT_INSTRUCTION = "Replay scripted tool calls"


def parse_response(data: Dict[str, Any]) -> PlannerResponse:
    """Validate the ``calls``/``text`` part of a script. Raises ValueError on bad input."""
    raw_calls = data.get("calls", [])
    if not isinstance(raw_calls, list):
        raise ValueError("'calls' must be a list")
    calls = []
    for index, item in enumerate(raw_calls):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str):
            raise ValueError(f"Call #{index + 1} needs a string 'name'")
        args = item.get("args") or {}
        if not isinstance(args, dict):
            raise ValueError(f"Call #{index + 1}: 'args' must be an object")
        calls.append(ToolCall(name=item["name"], args=args))
    text = data.get("text")
    return PlannerResponse(calls=calls, text=str(text) if text else None)


def parse_canvas(data: Dict[str, Any]) -> Tuple[int, int, ViewportTransform]:
    width, height = data.get("canvas", [1280, 800])
    viewport = ViewportTransform.from_list(data.get("viewport", ViewportTransform.identity().to_list()))
    return int(width), int(height), viewport


async def execute(
    data: Dict[str, Any],
    fast: bool = True,
    out: Callable[[str], None] = print,
    settings: Optional[AgentSettings] = None,
) -> Tuple[Workspace, AgentState, List[Action]]:
    """Run one planning round-trip plus the full queue; returns the final workspace, state and actions."""
    settings = settings or AgentSettings()
    response = parse_response(data)
    width, height, viewport = parse_canvas(data)

    logger = StatusLogger(max_entries=1000)
    logger.on_entry(lambda entry: out(str(entry)))
    if fast:
        ctx = virtual_context(logger=logger, frame_interval_ms=settings.frame_interval_ms)
    else:
        ctx = RunContext(logger=logger, frame_interval_ms=settings.frame_interval_ms)

    workspace = Workspace(width, height, viewport)
    state = AgentState(speech=CallbackSpeech(lambda text: out(f"GHOST: {text}")), cursor=Point(width / 2, height / 2))
    processor = ActionProcessor(state, workspace, ctx, settings)
    bridge = PlanningBridge(state, workspace, ScriptedPlanner(response), logger, settings.canvas_background)

    await bridge.process_prompt(str(data.get("instruction") or DEFAULT_INSTRUCTION))
    processed = await processor.drain()
    return workspace, state, processed


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    fast = "--fast" in args
    paths = [arg for arg in args if not arg.startswith("--")]
    if len(paths) != 1:
        print("Provide path to a JSON script.")
        return 2
    path = Path(paths[0])
    if not path.exists():
        print(f"File not found: {path}")
        return 2
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Script must be a JSON object")
        parse_response(data)
        parse_canvas(data)
    except (ValueError, TypeError) as e:
        print(f"Invalid script: {e}")
        return 2

    workspace, state, processed = asyncio.run(execute(data, fast=fast))
    for action in processed:
        print(f"{action}: {action.status.value}")
    print(json.dumps([entry.to_dict() for entry in describe_scene(workspace, state)], indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
