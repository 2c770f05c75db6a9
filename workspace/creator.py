"""
Creator tools: lets the user draw on the workspace alongside the agent.

The controller owns the tool state (mode, active tool, brush) and turns
user gestures into scene objects. It has no Tk dependency; the GUI maps
mouse events to world points and calls in here.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from logger import StatusLogger
from models import Point
from workspace.scene import SceneObject, Workspace
from workspace.render import parse_color
from workspace.shapes import make_circle, make_rectangle, make_stroke, make_text


class CreatorTool(Enum):
    SELECT = "SELECT"
    PENCIL = "PENCIL"
    TEXT = "TEXT"
    RECTANGLE = "RECTANGLE"
    CIRCLE = "CIRCLE"

    @property
    def places_once(self) -> bool:
        """Tools that drop one object at the viewport centre and hand back to SELECT."""
        return self in (CreatorTool.TEXT, CreatorTool.RECTANGLE, CreatorTool.CIRCLE)


INK_COLORS = ("#00f0ff", "#ff003c", "#7000ff", "#ffffff", "#ffd700", "#00ff00")
DEFAULT_BRUSH_COLOR = INK_COLORS[0]
DEFAULT_BRUSH_WIDTH = 3
DEFAULT_TEXT = "Type here..."
TEXT_FONT_SIZE = 20
SHAPE_STROKE_WIDTH = 2


class CreatorTools:
    def __init__(
        self,
        workspace: Workspace,
        brush_color: str = DEFAULT_BRUSH_COLOR,
        brush_width: int = DEFAULT_BRUSH_WIDTH,
        logger: Optional[StatusLogger] = None,
    ):
        self.workspace = workspace
        self.logger = logger
        self.enabled = False
        self.active_tool = CreatorTool.SELECT
        self.brush_color = DEFAULT_BRUSH_COLOR
        self.brush_width = DEFAULT_BRUSH_WIDTH
        self.set_brush_color(brush_color)
        self.set_brush_width(brush_width)
        self._stroke: List[Point] = []

    @property
    def drawing(self) -> bool:
        """True while pointer drags should lay down ink instead of selecting."""
        return self.enabled and self.active_tool is CreatorTool.PENCIL

    @property
    def stroke_points(self) -> List[Point]:
        return list(self._stroke)

    def toggle(self) -> bool:
        """Flip creator mode; leaving it drops back to SELECT. Returns the new mode."""
        self.enabled = not self.enabled
        if not self.enabled:
            self.active_tool = CreatorTool.SELECT
            self._stroke.clear()
        self._log(f"Creator mode {'on' if self.enabled else 'off'}")
        return self.enabled

    def select_tool(self, tool: CreatorTool) -> bool:
        if not self.enabled:
            return False
        self.active_tool = tool
        self._stroke.clear()
        return True

    def set_brush_color(self, color: str) -> None:
        if parse_color(color) is None:
            raise ValueError(f"Not a colour: {color!r}")
        self.brush_color = color

    def set_brush_width(self, width: int) -> None:
        width = int(width)
        if width <= 0:
            raise ValueError("Brush width must be positive")
        self.brush_width = width

    # ------------------------------------------------------------------
    # One-shot tools
    # ------------------------------------------------------------------
    def place(self, center: Point, text: Optional[str] = None) -> Optional[SceneObject]:
        """
        Drop the active one-shot tool's object at ``center`` and return it.

        Text, rectangle and circle use the brush colour; the new object
        becomes the selection and the tool returns to SELECT. Returns None
        when the active tool does not place objects.
        """
        tool = self.active_tool
        if not (self.enabled and tool.places_once):
            return None

        if tool is CreatorTool.TEXT:
            obj = make_text(text or DEFAULT_TEXT, center.x, center.y, TEXT_FONT_SIZE, self.brush_color)
        elif tool is CreatorTool.RECTANGLE:
            obj = make_rectangle(center.x, center.y, self.brush_color, stroke_width=SHAPE_STROKE_WIDTH)
        else:
            obj = make_circle(center.x, center.y, self.brush_color, stroke_width=SHAPE_STROKE_WIDTH)

        self._commit(obj)
        self.active_tool = CreatorTool.SELECT
        return obj

    # ------------------------------------------------------------------
    # Pencil
    # ------------------------------------------------------------------
    def begin_stroke(self, point: Point) -> bool:
        if not self.drawing:
            return False
        self._stroke = [point]
        return True

    def extend_stroke(self, point: Point) -> None:
        if self._stroke and self._stroke[-1] != point:
            self._stroke.append(point)

    def finish_stroke(self) -> Optional[SceneObject]:
        """Commit the stroke in progress; a click without movement leaves nothing behind."""
        points, self._stroke = self._stroke, []
        if not self.drawing:
            return None
        stroke = make_stroke(points, self.brush_color, self.brush_width)
        if stroke is None:
            return None
        self.workspace.add(stroke)
        self.workspace.request_render()
        return stroke

    def _commit(self, obj: SceneObject) -> None:
        self.workspace.add(obj)
        self.workspace.set_active(obj)
        self.workspace.request_render()
        self._log(f"Added {obj.type} {obj.id}")

    def _log(self, message: str) -> None:
        if self.logger is not None:
            self.logger.log_info(message)
