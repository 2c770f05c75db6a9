"""Placement math for scene objects (centre origin, rotation, scale)."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, List, Tuple

from models import Point, ViewportTransform
from agent_engine import transform

if TYPE_CHECKING:
    from workspace.scene import SceneObject


def object_matrix(obj: "SceneObject") -> ViewportTransform:
    """Local-to-parent transform: scale, then rotate, then move to the centre."""
    return transform.multiply(
        transform.translation(obj.left, obj.top),
        transform.multiply(transform.rotation(obj.angle), transform.scaling(obj.scale_x, obj.scale_y)),
    )


def map_points(matrix: ViewportTransform, points: Iterable[Tuple[float, float]]) -> List[Tuple[float, float]]:
    return [transform.apply(matrix, x, y).to_tuple() for x, y in points]


def box_outline(width: float, height: float) -> List[Tuple[float, float]]:
    """Corners of a centred ``width`` x ``height`` box, clockwise from top-left."""
    hw, hh = width / 2.0, height / 2.0
    return [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)]


def ellipse_outline(cx: float, cy: float, rx: float, ry: float, steps: int = 48) -> List[Tuple[float, float]]:
    return [
        (cx + rx * math.cos(2 * math.pi * i / steps), cy + ry * math.sin(2 * math.pi * i / steps))
        for i in range(steps)
    ]


def world_corners(obj: "SceneObject") -> List[Tuple[float, float]]:
    return map_points(object_matrix(obj), box_outline(obj.width, obj.height))


def world_bounds(obj: "SceneObject") -> Tuple[float, float, float, float]:
    """Axis-aligned ``(min_x, min_y, max_x, max_y)`` of the object's box."""
    corners = world_corners(obj)
    xs = [x for x, _ in corners]
    ys = [y for _, y in corners]
    return min(xs), min(ys), max(xs), max(ys)


def contains_point(obj: "SceneObject", point: Point) -> bool:
    try:
        local = transform.apply(transform.invert(object_matrix(obj)), point.x, point.y)
    except ValueError:
        return False
    return abs(local.x) <= obj.width / 2.0 and abs(local.y) <= obj.height / 2.0


def bounding_box(points: Iterable[Tuple[float, float]]) -> Tuple[float, float, float, float]:
    """``(min_x, min_y, max_x, max_y)`` of a point cloud; raises ValueError when empty."""
    pts = list(points)
    if not pts:
        raise ValueError("No points")
    xs = [x for x, _ in pts]
    ys = [y for _, y in pts]
    return min(xs), min(ys), max(xs), max(ys)
