"""Factories for the objects the agent places on the workspace."""

from __future__ import annotations

import base64
import binascii
import io
import time
import uuid
from typing import List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from models import Point
from workspace.geometry import bounding_box, box_outline, ellipse_outline
from workspace.scene import SceneObject, Subpath
from workspace.svg import PathSyntaxError, load_svg, parse_path_data

TEXT_LINE_HEIGHT = 1.16
TEXT_CHAR_WIDTH = 0.6

PLACEHOLDER_FILL = "rgba(255,255,255,0.01)"
PLACEHOLDER_STROKE = "#00f0ff"


class ContentError(Exception):
    """Raised when a content payload (e.g. an image) cannot be decoded."""


def new_object_id(prefix: str) -> str:
    """``<prefix>_<epoch-ms>_<random>``: readable, sortable enough, collision free."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def make_text(
    text: str,
    x: float,
    y: float,
    font_size: float = 20,
    color: str = "#ffffff",
    object_id: Optional[str] = None,
) -> SceneObject:
    lines = text.splitlines() or [""]
    width = max(len(line) for line in lines) * font_size * TEXT_CHAR_WIDTH
    height = len(lines) * font_size * TEXT_LINE_HEIGHT
    return SceneObject(
        id=object_id or new_object_id("text"),
        type="i-text",
        left=x,
        top=y,
        width=width,
        height=height,
        fill=color,
        text=text,
        font_size=font_size,
    )


def _recentre(subpaths: List[Subpath]) -> Tuple[List[Subpath], Point, float, float]:
    """Shift subpaths so their bounding box is centred on the origin."""
    min_x, min_y, max_x, max_y = bounding_box(p for points, _ in subpaths for p in points)
    cx, cy = (min_x + max_x) / 2.0, (min_y + max_y) / 2.0
    centred = [([(px - cx, py - cy) for px, py in points], closed) for points, closed in subpaths]
    return centred, Point(cx, cy), max_x - min_x, max_y - min_y


def make_path(
    path_data: str,
    x: float,
    y: float,
    stroke_color: str = "#ff003c",
    stroke_width: float = 2,
    object_id: Optional[str] = None,
) -> Optional[SceneObject]:
    """
    Build a freehand path whose bounding-box centre sits at ``(x, y)``.

    The path data keeps its own origin; it is re-anchored here so the
    drawing lands where the caller pointed. Returns None when the data
    has nothing to draw.
    """
    try:
        subpaths = parse_path_data(path_data)
    except PathSyntaxError:
        return None
    if not subpaths:
        return None

    centred, _centre, width, height = _recentre(subpaths)
    return SceneObject(
        id=object_id or new_object_id("draw"),
        type="path",
        left=x,
        top=y,
        width=width,
        height=height,
        fill=None,
        stroke=stroke_color,
        stroke_width=stroke_width,
        subpaths=centred,
    )


def make_vector_graphic(markup: str, x: float, y: float, object_id: Optional[str] = None) -> Optional[SceneObject]:
    """Group built from SVG markup, centred at ``(x, y)``; None if nothing parsed."""
    group = load_svg(markup)
    if group is None:
        return None
    group.set(id=object_id or new_object_id("svg"), left=x, top=y)
    return group


def make_placeholder(
    x: float,
    y: float,
    width: float,
    height: float,
    object_id: Optional[str] = None,
) -> SceneObject:
    """Near-invisible rectangle that stands in for an overlay element on the canvas."""
    return SceneObject(
        id=object_id or new_object_id("web"),
        type="rect",
        left=x,
        top=y,
        width=width,
        height=height,
        fill=PLACEHOLDER_FILL,
        stroke=PLACEHOLDER_STROKE,
        stroke_width=1,
        subpaths=[(box_outline(width, height), True)],
        is_overlay_placeholder=True,
    )


def make_stroke(
    points: Sequence[Point],
    stroke_color: str,
    stroke_width: float = 3,
    object_id: Optional[str] = None,
) -> Optional[SceneObject]:
    """Freehand pencil stroke through world ``points``; None for fewer than two distinct points."""
    if len({(p.x, p.y) for p in points}) < 2:
        return None
    centred, centre, width, height = _recentre([([p.to_tuple() for p in points], False)])
    return SceneObject(
        id=object_id or new_object_id("path"),
        type="path",
        left=centre.x,
        top=centre.y,
        width=width,
        height=height,
        fill=None,
        stroke=stroke_color,
        stroke_width=stroke_width,
        subpaths=centred,
    )


def make_rectangle(
    x: float,
    y: float,
    stroke_color: str,
    width: float = 100,
    height: float = 100,
    stroke_width: float = 2,
    object_id: Optional[str] = None,
) -> SceneObject:
    """Unfilled rectangle centred at ``(x, y)``."""
    return SceneObject(
        id=object_id or new_object_id("rect"),
        type="rect",
        left=x,
        top=y,
        width=width,
        height=height,
        fill=None,
        stroke=stroke_color,
        stroke_width=stroke_width,
        subpaths=[(box_outline(width, height), True)],
    )


def make_circle(
    x: float,
    y: float,
    stroke_color: str,
    radius: float = 50,
    stroke_width: float = 2,
    object_id: Optional[str] = None,
) -> SceneObject:
    return SceneObject(
        id=object_id or new_object_id("circle"),
        type="circle",
        left=x,
        top=y,
        width=radius * 2,
        height=radius * 2,
        fill=None,
        stroke=stroke_color,
        stroke_width=stroke_width,
        subpaths=[(ellipse_outline(0.0, 0.0, radius, radius), True)],
    )


def decode_image(payload: str) -> Image.Image:
    """Decode base64 image data, with or without a ``data:image/...;base64,`` prefix."""
    data = payload or ""
    if data.startswith("data:"):
        _header, _sep, data = data.partition(",")
    try:
        raw = base64.b64decode(data, validate=False)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError, ValueError) as exc:
        raise ContentError(f"Image payload could not be decoded: {exc}") from exc
    return image.convert("RGBA")


def make_image(
    payload: str,
    x: float,
    y: float,
    width: Optional[float] = None,
    height: Optional[float] = None,
    object_id: Optional[str] = None,
) -> SceneObject:
    """
    Image object centred at ``(x, y)``.

    ``width`` scales uniformly to that width; ``height`` (applied after)
    scales uniformly to that height, so it wins when both are given.
    """
    image = decode_image(payload)
    natural_w, natural_h = image.size
    scale = 1.0
    if width:
        scale = float(width) / natural_w
    if height:
        scale = float(height) / natural_h
    return SceneObject(
        id=object_id or new_object_id("img"),
        type="image",
        left=x,
        top=y,
        width=natural_w,
        height=natural_h,
        scale_x=scale,
        scale_y=scale,
        image=image,
    )
