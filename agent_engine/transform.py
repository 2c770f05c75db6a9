"""
Coordinate transform between screen pixels and world coordinates.

The planner reasons about the image it was shown, so any point it proposes is
in that image's pixel space. Mapping it back into the scene must use the
viewport snapshot captured together with the image, never the live one.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Tuple

from models import Point, ViewportTransform

# Argument pairs of a tool call that carry a screen-space point.
POINT_ARGUMENTS: Tuple[Tuple[str, str], ...] = (("x", "y"), ("toX", "toY"))


def apply(matrix: ViewportTransform, x: float, y: float) -> Point:
    """Apply the affine ``matrix`` to ``(x, y)``."""
    return Point(
        matrix.a * x + matrix.c * y + matrix.e,
        matrix.b * x + matrix.d * y + matrix.f,
    )


def multiply(outer: ViewportTransform, inner: ViewportTransform) -> ViewportTransform:
    """Compose two transforms; the result applies ``inner`` first, then ``outer``."""
    return ViewportTransform(
        a=outer.a * inner.a + outer.c * inner.b,
        b=outer.b * inner.a + outer.d * inner.b,
        c=outer.a * inner.c + outer.c * inner.d,
        d=outer.b * inner.c + outer.d * inner.d,
        e=outer.a * inner.e + outer.c * inner.f + outer.e,
        f=outer.b * inner.e + outer.d * inner.f + outer.f,
    )


def invert(matrix: ViewportTransform) -> ViewportTransform:
    """Return the inverse transform. Raises ``ValueError`` for a singular matrix."""
    det = matrix.a * matrix.d - matrix.b * matrix.c
    if det == 0 or not math.isfinite(det):
        raise ValueError("Viewport transform is not invertible")
    inv = 1.0 / det
    return ViewportTransform(
        a=matrix.d * inv,
        b=-matrix.b * inv,
        c=-matrix.c * inv,
        d=matrix.a * inv,
        e=(matrix.c * matrix.f - matrix.d * matrix.e) * inv,
        f=(matrix.b * matrix.e - matrix.a * matrix.f) * inv,
    )


def translation(dx: float, dy: float) -> ViewportTransform:
    return ViewportTransform(e=dx, f=dy)


def scaling(sx: float, sy: float) -> ViewportTransform:
    return ViewportTransform(a=sx, d=sy)


def rotation(degrees: float) -> ViewportTransform:
    radians = math.radians(degrees)
    cos, sin = math.cos(radians), math.sin(radians)
    return ViewportTransform(a=cos, b=sin, c=-sin, d=cos)


def to_world(px: float, py: float, snapshot: ViewportTransform) -> Point:
    """Map a screen pixel to world coordinates under ``snapshot``."""
    return apply(invert(snapshot), px, py)


def to_screen(point: Point, snapshot: ViewportTransform) -> Point:
    """Map a world point to screen pixels under ``snapshot``."""
    return apply(snapshot, point.x, point.y)


def visible_world_rect(snapshot: ViewportTransform, width: float, height: float) -> Tuple[Point, Point]:
    """World-space ``(top_left, bottom_right)`` of a ``width`` x ``height`` viewport."""
    inverse = invert(snapshot)
    corners = [apply(inverse, x, y) for x, y in ((0, 0), (width, 0), (0, height), (width, height))]
    xs = [p.x for p in corners]
    ys = [p.y for p in corners]
    return Point(min(xs), min(ys)), Point(max(xs), max(ys))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def resolve_tool_args(args: Dict[str, Any], snapshot: ViewportTransform) -> Dict[str, Any]:
    """
    Return a copy of a tool call's arguments with every screen point in world space.

    Only pairs whose two members are both numbers are converted; everything
    else is passed through untouched.
    """
    resolved = dict(args)
    inverse = invert(snapshot)
    for x_key, y_key in POINT_ARGUMENTS:
        if _is_number(resolved.get(x_key)) and _is_number(resolved.get(y_key)):
            world = apply(inverse, resolved[x_key], resolved[y_key])
            resolved[x_key] = world.x
            resolved[y_key] = world.y
    return resolved
