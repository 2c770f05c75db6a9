"""
Agent actions: one small dataclass per kind of intent.

Supported actions (tool name the planner uses -> tag):
- move_cursor           -> MOVE_CURSOR   look at a point
- write_text            -> WRITE_TEXT    place editable text
- draw_path             -> DRAW_PATH     freehand path from SVG path data
- create_vector_graphic -> CREATE_SVG    SVG markup as a group
- edit_vector_graphic   -> EDIT_SVG      replace an SVG group in place
- create_image          -> CREATE_IMAGE  base64 image
- render_html_element   -> RENDER_HTML   overlay element + placeholder
- edit_html_element     -> EDIT_HTML     new markup for an overlay element
- drag_object           -> DRAG_OBJECT   click-and-drag an object
- delete_object         -> DELETE_OBJECT remove an object

Notes
-----
Coordinates stored on an action are always world coordinates; the planning
bridge converts the planner's screen points before building actions.
"""

from __future__ import annotations

import itertools
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type


class ActionError(Exception):
    pass


class ActionTag(Enum):
    MOVE_CURSOR = "MOVE_CURSOR"
    WRITE_TEXT = "WRITE_TEXT"
    DRAW_PATH = "DRAW_PATH"
    CREATE_SVG = "CREATE_SVG"
    EDIT_SVG = "EDIT_SVG"
    CREATE_IMAGE = "CREATE_IMAGE"
    RENDER_HTML = "RENDER_HTML"
    EDIT_HTML = "EDIT_HTML"
    DELETE_OBJECT = "DELETE_OBJECT"
    DRAG_OBJECT = "DRAG_OBJECT"


class ActionStatus(Enum):
    PENDING = "PENDING"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# Content synthesis and code editing earn a longer pause before the click.
COMPLEX_TAGS = frozenset({ActionTag.RENDER_HTML, ActionTag.EDIT_HTML})

_sequence = itertools.count(1)


def new_action_id() -> str:
    return f"action_{int(time.time() * 1000)}_{next(_sequence)}"


# ----------------------------------------------------------------------
# Argument helpers
# ----------------------------------------------------------------------
def _number(args: Dict[str, Any], key: str, *, required: bool = True) -> Optional[float]:
    value = args.get(key)
    if value is None or value == "":
        if required:
            raise ActionError(f"'{key}' is required")
        return None
    if isinstance(value, bool):
        raise ActionError(f"'{key}' must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ActionError(f"'{key}' must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ActionError(f"'{key}' must be finite")
    return number


def _text(args: Dict[str, Any], key: str, *, required: bool = True) -> Optional[str]:
    value = args.get(key)
    if value is None:
        if required:
            raise ActionError(f"'{key}' is required")
        return None
    return str(value)


@dataclass
class Action:
    """Common fields of every action; subclasses add their own payload."""

    tag: ClassVar[ActionTag]
    tool_name: ClassVar[str]
    label: ClassVar[str]

    id: str = field(default_factory=new_action_id, kw_only=True)
    status: ActionStatus = field(default=ActionStatus.PENDING, kw_only=True)

    @property
    def is_complex(self) -> bool:
        return self.tag in COMPLEX_TAGS

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "Action":  # pragma: no cover - overridden
        raise NotImplementedError

    @staticmethod
    def from_tool_call(name: str, args: Optional[Dict[str, Any]] = None) -> "Action":
        """Build the action for one planner tool call (arguments already in world space)."""
        action_cls = TOOL_ACTIONS.get(str(name or "").strip())
        if action_cls is None:
            raise ActionError(f"Unknown tool: {name}")
        try:
            return action_cls.from_args(dict(args or {}))
        except ActionError as exc:
            raise ActionError(f"{name}: {exc}") from exc

    def __str__(self) -> str:
        return f"{self.tag.value}[{self.id}]"


@dataclass
class MoveCursorAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.MOVE_CURSOR
    tool_name: ClassVar[str] = "move_cursor"
    label: ClassVar[str] = "Observing..."

    x: float
    y: float

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "MoveCursorAction":
        return cls(x=_number(args, "x"), y=_number(args, "y"))


@dataclass
class WriteTextAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.WRITE_TEXT
    tool_name: ClassVar[str] = "write_text"
    label: ClassVar[str] = "Typing..."

    text: str
    x: float
    y: float
    font_size: float = 20
    color: str = "#ffffff"

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "WriteTextAction":
        return cls(
            text=_text(args, "text"),
            x=_number(args, "x"),
            y=_number(args, "y"),
            font_size=_number(args, "fontSize", required=False) or 20,
            color=_text(args, "color", required=False) or "#ffffff",
        )


@dataclass
class DrawPathAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.DRAW_PATH
    tool_name: ClassVar[str] = "draw_path"
    label: ClassVar[str] = "Scribbling..."

    path_svg: str
    x: float
    y: float
    stroke_color: str = "#ff003c"
    stroke_width: float = 2

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "DrawPathAction":
        return cls(
            path_svg=_text(args, "pathSvg"),
            x=_number(args, "x"),
            y=_number(args, "y"),
            stroke_color=_text(args, "strokeColor", required=False) or "#ff003c",
            stroke_width=_number(args, "strokeWidth", required=False) or 2,
        )


@dataclass
class CreateSvgAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.CREATE_SVG
    tool_name: ClassVar[str] = "create_vector_graphic"
    label: ClassVar[str] = "Drawing Vector..."

    svg_xml: str
    x: float
    y: float

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "CreateSvgAction":
        return cls(svg_xml=_text(args, "svgXml"), x=_number(args, "x"), y=_number(args, "y"))


@dataclass
class EditSvgAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.EDIT_SVG
    tool_name: ClassVar[str] = "edit_vector_graphic"
    label: ClassVar[str] = "Modifying Vector..."

    object_id: str
    svg_xml: str

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "EditSvgAction":
        return cls(object_id=_text(args, "objectId"), svg_xml=_text(args, "svgXml"))


@dataclass
class CreateImageAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.CREATE_IMAGE
    tool_name: ClassVar[str] = "create_image"
    label: ClassVar[str] = "Importing Asset..."

    base64: str
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "CreateImageAction":
        return cls(
            base64=_text(args, "base64"),
            x=_number(args, "x"),
            y=_number(args, "y"),
            width=_number(args, "width", required=False) or None,
            height=_number(args, "height", required=False) or None,
        )


@dataclass
class RenderHtmlAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.RENDER_HTML
    tool_name: ClassVar[str] = "render_html_element"
    label: ClassVar[str] = "Synthesizing App..."

    html: str
    x: float
    y: float
    width: float = 400
    height: float = 300

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "RenderHtmlAction":
        return cls(
            html=_text(args, "html"),
            x=_number(args, "x"),
            y=_number(args, "y"),
            width=_number(args, "width", required=False) or 400,
            height=_number(args, "height", required=False) or 300,
        )


@dataclass
class EditHtmlAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.EDIT_HTML
    tool_name: ClassVar[str] = "edit_html_element"
    label: ClassVar[str] = "Refactoring Code..."

    object_id: str
    html: str

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "EditHtmlAction":
        return cls(object_id=_text(args, "objectId"), html=_text(args, "html"))


@dataclass
class DeleteObjectAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.DELETE_OBJECT
    tool_name: ClassVar[str] = "delete_object"
    label: ClassVar[str] = "Deleting..."

    object_id: str

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "DeleteObjectAction":
        return cls(object_id=_text(args, "objectId"))


@dataclass
class DragObjectAction(Action):
    tag: ClassVar[ActionTag] = ActionTag.DRAG_OBJECT
    tool_name: ClassVar[str] = "drag_object"
    label: ClassVar[str] = "Grabbing..."
    drag_label: ClassVar[str] = "Dragging..."

    object_id: str
    to_x: float
    to_y: float

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "DragObjectAction":
        return cls(object_id=_text(args, "objectId"), to_x=_number(args, "toX"), to_y=_number(args, "toY"))


ACTION_TYPES: Dict[ActionTag, Type[Action]] = {
    cls.tag: cls
    for cls in (
        MoveCursorAction,
        WriteTextAction,
        DrawPathAction,
        CreateSvgAction,
        EditSvgAction,
        CreateImageAction,
        RenderHtmlAction,
        EditHtmlAction,
        DeleteObjectAction,
        DragObjectAction,
    )
}

TOOL_ACTIONS: Dict[str, Type[Action]] = {cls.tool_name: cls for cls in ACTION_TYPES.values()}
