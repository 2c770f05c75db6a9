"""
Planner collaborator: turns an instruction plus a picture of the workspace
into an ordered list of tool calls.

``GeminiPlanner`` talks to Gemini through the ``google-genai`` async client;
``ScriptedPlanner`` replays a fixed response for the headless runner and tests.
"""

from __future__ import annotations

import base64
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from google import genai
from google.genai import types

from models import AgentSettings, SceneObjectData

_DATA_URL_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,")


@dataclass
class ToolCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlannerResponse:
    calls: List[ToolCall] = field(default_factory=list)
    text: Optional[str] = None


@dataclass
class PlanningRequest:
    """Everything the planner sees for one instruction."""
    instruction: str
    image_png: bytes
    objects: List[SceneObjectData]
    viewport_size: Tuple[int, int]
    reference_image: Optional[str] = None


class Planner(Protocol):
    async def plan(self, request: PlanningRequest) -> PlannerResponse: ...


def _obj(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "OBJECT", "properties": properties, "required": required}


_NUMBER = {"type": "NUMBER"}
_STRING = {"type": "STRING"}

TOOL_DECLARATIONS: List[Dict[str, Any]] = [
    {
        "name": "move_cursor",
        "description": "Moves the virtual cursor to specific coordinates. Use this to 'look' at things or before starting a sequence.",
        "parameters": _obj({"x": _NUMBER, "y": _NUMBER}, ["x", "y"]),
    },
    {
        "name": "write_text",
        "description": "Writes text directly on the canvas.",
        "parameters": _obj({
            "text": _STRING,
            "x": _NUMBER,
            "y": _NUMBER,
            "fontSize": {"type": "NUMBER", "description": "Default is 20"},
            "color": {"type": "STRING", "description": "Hex code, default #ffffff"},
        }, ["text", "x", "y"]),
    },
    {
        "name": "draw_path",
        "description": (
            "Draws a freehand-style line or shape. The path should be relative to 0,0. "
            "The X,Y parameters determine where the center of this drawing is placed."
        ),
        "parameters": _obj({
            "pathSvg": {"type": "STRING", "description": "SVG 'd' attribute string (e.g., 'M 0 0 L 50 50'). Keep paths simple."},
            "x": {"type": "NUMBER", "description": "Center X position of the drawing"},
            "y": {"type": "NUMBER", "description": "Center Y position of the drawing"},
            "strokeColor": {"type": "STRING", "description": "Hex code"},
            "strokeWidth": _NUMBER,
        }, ["pathSvg", "x", "y"]),
    },
    {
        "name": "render_html_element",
        "description": "Creates a FUNCTIONAL INTERFACE or WEB APP.",
        "parameters": _obj({
            "html": {"type": "STRING", "description": "Full HTML + CSS <style>."},
            "width": _NUMBER,
            "height": _NUMBER,
            "x": _NUMBER,
            "y": _NUMBER,
        }, ["html", "width", "height", "x", "y"]),
    },
    {
        "name": "edit_html_element",
        "description": "Refactors or updates an EXISTING HTML element.",
        "parameters": _obj({
            "objectId": {"type": "STRING", "description": "ID of the element to edit."},
            "html": {"type": "STRING", "description": "New full HTML/CSS source."},
        }, ["objectId", "html"]),
    },
    {
        "name": "create_vector_graphic",
        "description": "Creates a detailed VECTOR ILLUSTRATION.",
        "parameters": _obj({
            "svgXml": {"type": "STRING", "description": "Valid SVG XML string."},
            "x": _NUMBER,
            "y": _NUMBER,
        }, ["svgXml", "x", "y"]),
    },
    {
        "name": "edit_vector_graphic",
        "description": "Updates an EXISTING SVG element.",
        "parameters": _obj({
            "objectId": {"type": "STRING", "description": "ID of the SVG to edit."},
            "svgXml": {"type": "STRING", "description": "New SVG XML source."},
        }, ["objectId", "svgXml"]),
    },
    {
        "name": "create_image",
        "description": "Places a specific image onto the canvas.",
        "parameters": _obj({
            "base64": {"type": "STRING", "description": "Base64 image data."},
            "x": _NUMBER,
            "y": _NUMBER,
            "width": _NUMBER,
            "height": _NUMBER,
        }, ["base64", "x", "y"]),
    },
    {
        "name": "drag_object",
        "description": "Moves an existing object to new coordinates.",
        "parameters": _obj({"objectId": _STRING, "toX": _NUMBER, "toY": _NUMBER}, ["objectId", "toX", "toY"]),
    },
    {
        "name": "delete_object",
        "description": "Removes an object from the workspace.",
        "parameters": _obj({"objectId": _STRING}, ["objectId"]),
    },
]


def build_system_instruction(request: PlanningRequest) -> str:
    width, height = request.viewport_size
    listing = " | ".join(obj.summary() for obj in request.objects)
    return f"""
You are 'Ghost', an elite Digital Architect collaborating with a human in real-time.

**CRITICAL COORDINATE SYSTEM RULES:**
1. **Visual Context:** The image you receive is the **CURRENT VISIBLE SCREEN**.
2. **Coordinate Mapping:**
   - x=0, y=0 is the TOP-LEFT of the image.
   - x={width}, y={height} is the BOTTOM-RIGHT.
3. **Center-Targeting:** ALL coordinates you generate (for creating, moving, or rendering) are the **CENTER POINT** of that object.
   - To place something in the top-left corner, use x={width * 0.1:g}, y={height * 0.1:g}.
   - To place something in the center, use x={width / 2:g}, y={height / 2:g}.

**BEHAVIOR PROTOCOL:**
1. **Plan Visually:** Before building complex apps, use `write_text` to list steps, or `draw_path` to sketch arrows/circles indicating plans.
2. **Explain Step-by-Step:** Write short notes on the canvas (e.g., "Step 1: Layout") next to work areas.
3. **Precision:** When using `drag_object`, ensure `toX` and `toY` are valid visible locations.

**TOOL USAGE:**
- **ANNOTATION (write_text):** Use for plans, labels, answers.
- **SCRIBBLING (draw_path):** Use for arrows, circles, connectors.
- **APPS (render_html_element):** For functional UI.

**CONTEXT:**
- Visible Viewport Size: {width}x{height}
- Existing Objects: {listing}

Respond with a clear plan and precise tool calls.
""".strip()


def split_data_url(payload: str) -> Tuple[bytes, str]:
    """Decode a base64 image (optionally a ``data:`` URL) into ``(bytes, mime_type)``."""
    mime_type = "image/png"
    match = _DATA_URL_RE.match(payload)
    if match:
        mime_type = match.group(1)
        payload = payload[match.end():]
    return base64.b64decode(payload), mime_type


class GeminiPlanner:
    """Planner backed by Gemini function calling."""

    def __init__(self, settings: Optional[AgentSettings] = None, api_key: Optional[str] = None, client: Any = None):
        self.settings = settings or AgentSettings()
        if client is None:
            key = api_key or os.environ.get(self.settings.api_key_env) or os.environ.get("GEMINI_API_KEY")
            if not key:
                raise RuntimeError(f"No API key: set {self.settings.api_key_env} or GEMINI_API_KEY")
            client = genai.Client(api_key=key)
        self._client = client
        self._tools = [types.Tool(function_declarations=TOOL_DECLARATIONS)]

    def _contents(self, request: PlanningRequest) -> List[types.Content]:
        parts = [types.Part.from_bytes(data=request.image_png, mime_type="image/png")]
        if request.reference_image:
            data, mime_type = split_data_url(request.reference_image)
            parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        parts.append(types.Part.from_text(text=f"COMMAND: {request.instruction}"))
        return [types.Content(role="user", parts=parts)]

    async def plan(self, request: PlanningRequest) -> PlannerResponse:
        response = await self._client.aio.models.generate_content(
            model=self.settings.model_name,
            contents=self._contents(request),
            config=types.GenerateContentConfig(
                tools=self._tools,
                system_instruction=build_system_instruction(request),
                thinking_config=types.ThinkingConfig(thinking_budget=self.settings.thinking_budget),
            ),
        )
        calls = [
            ToolCall(name=call.name or "", args=dict(call.args or {}))
            for call in (response.function_calls or [])
        ]
        return PlannerResponse(calls=calls, text=response.text or None)


class ScriptedPlanner:
    """Returns a fixed response (or raises a fixed error) and records each request."""

    def __init__(self, response: Union[PlannerResponse, BaseException, None] = None):
        self._response = response if response is not None else PlannerResponse()
        self.requests: List[PlanningRequest] = []

    async def plan(self, request: PlanningRequest) -> PlannerResponse:
        self.requests.append(request)
        if isinstance(self._response, BaseException):
            raise self._response
        return self._response
