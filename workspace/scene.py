"""
In-memory scene graph the agent manipulates.

The agent engine only talks to the small ``SceneGraph`` protocol below; the
``Workspace`` class is the concrete implementation used by the desktop window,
the headless runner and the tests.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Tuple, Union

from models import Point, ViewportTransform
from agent_engine import transform
from workspace.geometry import contains_point

# A polyline in object-local coordinates and whether it closes on itself.
Subpath = Tuple[List[Tuple[float, float]], bool]

MIN_ZOOM = 0.01
MAX_ZOOM = 20.0


@dataclass
class SceneObject:
    """
    One visual object.

    ``left``/``top`` is the object's centre in world coordinates; outlines in
    ``subpaths`` and ``children`` are expressed relative to that centre.
    """

    id: str
    type: str
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    angle: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: float = 1.0
    text: Optional[str] = None
    font_size: float = 20.0
    subpaths: List[Subpath] = field(default_factory=list)
    children: List["SceneObject"] = field(default_factory=list)
    svg_source: Optional[str] = None
    image: Optional[Any] = None
    is_overlay_placeholder: bool = False

    @property
    def center(self) -> Point:
        return Point(self.left, self.top)

    @property
    def scaled_size(self) -> Tuple[float, float]:
        return (self.width * self.scale_x, self.height * self.scale_y)

    def set(self, **changes: Any) -> None:
        """Update attributes, rejecting names the object does not have."""
        for name, value in changes.items():
            if not hasattr(self, name):
                raise AttributeError(f"SceneObject has no attribute '{name}'")
            setattr(self, name, value)


class SceneGraph(Protocol):
    """What the agent engine needs from a scene."""

    def add(self, obj: SceneObject) -> None: ...

    def remove(self, object_id: str) -> bool: ...

    def get(self, object_id: str) -> Optional[SceneObject]: ...

    def objects(self) -> List[SceneObject]: ...

    def set_active(self, obj: Optional[SceneObject]) -> None: ...

    def request_render(self) -> None: ...

    @property
    def viewport_transform(self) -> ViewportTransform: ...

    @property
    def canvas_size(self) -> Tuple[int, int]: ...


RenderListener = Callable[[], None]


class Workspace:
    """
    Concrete scene graph: ordered objects, selection and pan/zoom.

    The agent mutates it from the engine thread while the GUI reads and drags
    objects from the Tk thread; structural changes hold a re-entrant lock.
    """

    def __init__(
        self,
        width: int = 1280,
        height: int = 800,
        viewport: Optional[ViewportTransform] = None,
    ) -> None:
        self._objects: List[SceneObject] = []
        self._lock = threading.RLock()
        self._width = int(width)
        self._height = int(height)
        self._viewport = viewport or ViewportTransform.identity()
        self._active: Optional[SceneObject] = None
        self._listeners: List[RenderListener] = []
        self.render_requests = 0

    # ------------------------------------------------------------------
    # Object model
    # ------------------------------------------------------------------
    def add(self, obj: SceneObject) -> None:
        with self._lock:
            self._objects.append(obj)

    def remove(self, target: Union[str, SceneObject]) -> bool:
        object_id = target.id if isinstance(target, SceneObject) else target
        with self._lock:
            for index, obj in enumerate(self._objects):
                if obj.id == object_id:
                    del self._objects[index]
                    if self._active is obj:
                        self._active = None
                    return True
        return False

    def get(self, object_id: str) -> Optional[SceneObject]:
        with self._lock:
            for obj in self._objects:
                if obj.id == object_id:
                    return obj
        return None

    def objects(self) -> List[SceneObject]:
        with self._lock:
            return list(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def set_active(self, obj: Optional[SceneObject]) -> None:
        self._active = obj

    @property
    def active_object(self) -> Optional[SceneObject]:
        return self._active

    def move_object(self, object_id: str, x: float, y: float) -> Optional[SceneObject]:
        """Place an object's centre at world ``(x, y)``; returns it, or None if unknown."""
        obj = self.get(object_id)
        if obj is None:
            return None
        obj.set(left=x, top=y)
        return obj

    def find_at(self, point: Point) -> Optional[SceneObject]:
        """Topmost object whose outline box contains the world ``point``."""
        for obj in reversed(self.objects()):
            if contains_point(obj, point):
                return obj
        return None

    # ------------------------------------------------------------------
    # Rendering hooks
    # ------------------------------------------------------------------
    def on_render(self, listener: RenderListener) -> None:
        self._listeners.append(listener)

    def request_render(self) -> None:
        self.render_requests += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                pass

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------
    @property
    def viewport_transform(self) -> ViewportTransform:
        return self._viewport

    def set_viewport_transform(self, viewport: ViewportTransform) -> None:
        transform.invert(viewport)  # reject singular transforms early
        self._viewport = viewport
        self.request_render()

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (self._width, self._height)

    def resize(self, width: int, height: int) -> None:
        self._width = max(1, int(width))
        self._height = max(1, int(height))
        self.request_render()

    @property
    def zoom(self) -> float:
        return self._viewport.zoom

    def pan(self, dx: float, dy: float) -> None:
        """Shift the view by ``dx``/``dy`` screen pixels."""
        vt = self._viewport
        self.set_viewport_transform(ViewportTransform(vt.a, vt.b, vt.c, vt.d, vt.e + dx, vt.f + dy))

    def zoom_to_point(self, screen_point: Point, zoom: float) -> None:
        """Zoom to ``zoom`` keeping the world point under ``screen_point`` fixed."""
        zoom = min(max(zoom, MIN_ZOOM), MAX_ZOOM)
        anchor = transform.to_world(screen_point.x, screen_point.y, self._viewport)
        self.set_viewport_transform(ViewportTransform(
            a=zoom,
            d=zoom,
            e=screen_point.x - anchor.x * zoom,
            f=screen_point.y - anchor.y * zoom,
        ))

    def reset_view(self) -> None:
        self.set_viewport_transform(ViewportTransform.identity())
