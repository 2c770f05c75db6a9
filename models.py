"""
Domain models for the Canvas Agent application.
Each class follows the Single Responsibility Principle (SRP).
"""

from enum import Enum
from dataclasses import dataclass, field, asdict
from typing import Tuple, List, Dict, Any, Optional
import math


@dataclass
class Point:
    """A position in world or screen space."""
    x: float
    y: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def __str__(self) -> str:
        return f"({self.x:.1f}, {self.y:.1f})"


@dataclass(frozen=True)
class ViewportTransform:
    """
    Pan/zoom snapshot of the workspace.

    Stored as the 2x3 affine matrix ``[a c e; b d f]`` so a world point
    ``(x, y)`` lands on screen at ``(a*x + c*y + e, b*x + d*y + f)``.
    Frozen: a captured snapshot never changes after the fact.
    """
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @staticmethod
    def identity() -> "ViewportTransform":
        return ViewportTransform()

    @staticmethod
    def from_list(values: List[float]) -> "ViewportTransform":
        """Create a transform from the six-number ``[a, b, c, d, e, f]`` form."""
        if len(values) != 6:
            raise ValueError("Viewport transform needs exactly six numbers")
        a, b, c, d, e, f = (float(v) for v in values)
        return ViewportTransform(a, b, c, d, e, f)

    def to_list(self) -> List[float]:
        return [self.a, self.b, self.c, self.d, self.e, self.f]

    @property
    def zoom(self) -> float:
        return self.a

    @property
    def pan(self) -> Tuple[float, float]:
        return (self.e, self.f)


@dataclass
class OverlayElement:
    """Rich markup anchored to a world-space rectangle, bound to a placeholder by id."""
    id: str
    html: str
    x: float
    y: float
    width: float
    height: float
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0
    z_index: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MessageRole(Enum):
    """Who wrote a chat message."""
    USER = "user"
    MODEL = "model"


@dataclass
class ChatMessage:
    role: MessageRole
    text: str


@dataclass
class SceneObjectData:
    """
    Structured description of one scene object, as shown to the planner.

    Clean Code: only the fields that carry information are serialised.
    """
    id: str
    type: str
    left: int
    top: int
    width: int
    height: int
    fill: str
    angle: int = 0
    html_content: Optional[str] = None
    svg_content: Optional[str] = None
    image_url: Optional[str] = None
    text_content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for the planner, dropping empty optional fields."""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
            "fill": self.fill,
            "angle": self.angle,
        }
        optional = {
            "htmlContent": self.html_content,
            "svgContent": self.svg_content,
            "imageUrl": self.image_url,
            "textContent": self.text_content,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    def summary(self) -> str:
        """One-line description used inside the planner's system instruction."""
        text = f" [Text: {self.text_content}]" if self.text_content else ""
        return f"{self.id} ({self.type}) at {self.left},{self.top}{text}"


@dataclass
class AgentSettings:
    """
    Persisted application preferences and engine timings.

    All durations are milliseconds.
    """

    model_name: str = "gemini-2.5-flash"
    api_key_env: str = "API_KEY"
    thinking_budget: int = 2048
    poll_interval_ms: int = 100
    frame_interval_ms: int = 16
    min_action_delay_ms: int = 400
    max_action_delay_ms: int = 1200
    complex_action_bonus_ms: int = 500
    press_duration_ms: int = 150
    post_action_delay_ms: int = 300
    look_pause_ms: int = 500
    drag_duration_ms: int = 800
    drag_hold_ms: int = 200
    edit_flash_ms: int = 400
    abort_hotkey: str = "ctrl+shift+x"
    canvas_background: str = "#0a0a0f"
    speech_enabled: bool = True
    brush_color: str = "#00f0ff"
    brush_width: int = 3

    def __post_init__(self):
        """Validate timing and brush parameters."""
        if self.poll_interval_ms <= 0:
            raise ValueError("Poll interval must be positive")

        if self.frame_interval_ms < 0:
            raise ValueError("Frame interval cannot be negative")

        if self.min_action_delay_ms > self.max_action_delay_ms:
            raise ValueError("Minimum action delay cannot exceed the maximum")

        if self.brush_width <= 0:
            raise ValueError("Brush width must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize settings to primitive types for JSON storage."""
        return asdict(self)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "AgentSettings":
        """Create settings instance from JSON dictionary, keeping defaults for missing keys."""
        defaults = AgentSettings()

        def _int(key: str) -> int:
            raw = data.get(key, getattr(defaults, key))
            return int(raw if raw is not None else getattr(defaults, key))

        return AgentSettings(
            model_name=str(data.get("model_name", defaults.model_name) or defaults.model_name),
            api_key_env=str(data.get("api_key_env", defaults.api_key_env) or defaults.api_key_env),
            thinking_budget=_int("thinking_budget"),
            poll_interval_ms=_int("poll_interval_ms"),
            frame_interval_ms=_int("frame_interval_ms"),
            min_action_delay_ms=_int("min_action_delay_ms"),
            max_action_delay_ms=_int("max_action_delay_ms"),
            complex_action_bonus_ms=_int("complex_action_bonus_ms"),
            press_duration_ms=_int("press_duration_ms"),
            post_action_delay_ms=_int("post_action_delay_ms"),
            look_pause_ms=_int("look_pause_ms"),
            drag_duration_ms=_int("drag_duration_ms"),
            drag_hold_ms=_int("drag_hold_ms"),
            edit_flash_ms=_int("edit_flash_ms"),
            abort_hotkey=str(data.get("abort_hotkey", defaults.abort_hotkey) or defaults.abort_hotkey),
            canvas_background=str(data.get("canvas_background", defaults.canvas_background) or defaults.canvas_background),
            speech_enabled=bool(data.get("speech_enabled", defaults.speech_enabled)),
            brush_color=str(data.get("brush_color", defaults.brush_color) or defaults.brush_color),
            brush_width=_int("brush_width"),
        )


