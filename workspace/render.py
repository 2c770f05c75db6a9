"""
Rasterize the visible part of a workspace with Pillow.

The planner sees exactly what the viewport shows: the image is rendered at
the viewport's pixel size through the captured pan/zoom, so a pixel in the
image is a pixel on screen.
"""

from __future__ import annotations

import base64
import io
import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from models import Point, ViewportTransform
from agent_engine import transform
from workspace.geometry import map_points, object_matrix
from workspace.scene import SceneGraph, SceneObject

RGBA = Tuple[int, int, int, int]

DEFAULT_BACKGROUND = "#0a0a0f"

_RGBA_FUNC_RE = re.compile(
    r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)", re.IGNORECASE
)


@dataclass
class ViewportCapture:
    """Everything captured at the instant a planning request is issued."""
    snapshot: ViewportTransform
    width: int
    height: int
    png: bytes
    world_top_left: Point
    world_bottom_right: Point

    def data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")


def parse_color(value: Optional[str]) -> Optional[RGBA]:
    """CSS-ish colour to RGBA; None for missing, transparent or unknown colours."""
    if not value:
        return None
    match = _RGBA_FUNC_RE.fullmatch(value.strip())
    if match:
        r, g, b = (min(255, int(v)) for v in match.group(1, 2, 3))
        alpha = match.group(4)
        a = 255 if alpha is None else int(round(min(1.0, float(alpha)) * 255))
        return (r, g, b, a)
    try:
        color = ImageColor.getcolor(value.strip(), "RGBA")
    except ValueError:
        return None
    return color  # type: ignore[return-value]


def to_hex(value: Optional[str], min_alpha: int = 8) -> Optional[str]:
    """``#rrggbb`` for widgets without alpha support; None when (nearly) invisible."""
    rgba = parse_color(value)
    if rgba is None or rgba[3] < min_alpha:
        return None
    return "#{:02x}{:02x}{:02x}".format(*rgba[:3])


def _scale_of(matrix: ViewportTransform) -> float:
    return math.sqrt(abs(matrix.a * matrix.d - matrix.b * matrix.c)) or 1.0


def _font(size: float) -> ImageFont.ImageFont:
    try:
        return ImageFont.load_default(size=max(1, int(round(size))))
    except TypeError:  # Pillow < 10.1
        return ImageFont.load_default()


def _draw_text(draw: ImageDraw.ImageDraw, obj: SceneObject, matrix: ViewportTransform) -> None:
    color = parse_color(obj.fill)
    if color is None or not obj.text:
        return
    anchor_point = transform.apply(matrix, 0, 0).to_tuple()
    font = _font(obj.font_size * _scale_of(matrix))
    anchor = "mm" if obj.type == "i-text" else "ls"
    try:
        draw.multiline_text(anchor_point, obj.text, fill=color, font=font, anchor=anchor, align="center")
    except ValueError:  # bitmap fonts do not support anchors
        draw.multiline_text(anchor_point, obj.text, fill=color, font=font)


def _draw_outline(draw: ImageDraw.ImageDraw, obj: SceneObject, matrix: ViewportTransform) -> None:
    fill = parse_color(obj.fill)
    stroke = parse_color(obj.stroke)
    width = max(1, int(round(obj.stroke_width * _scale_of(matrix))))
    for points, closed in obj.subpaths:
        screen = map_points(matrix, points)
        if len(screen) < 2:
            continue
        if closed and fill is not None and len(screen) > 2:
            draw.polygon(screen, fill=fill)
        if stroke is not None:
            line = screen + [screen[0]] if closed else screen
            draw.line(line, fill=stroke, width=width, joint="curve")


def _draw_image(canvas: Image.Image, obj: SceneObject, matrix: ViewportTransform) -> None:
    if obj.image is None:
        return
    scale = _scale_of(matrix)
    width = max(1, int(round(obj.width * abs(obj.scale_x) * scale)))
    height = max(1, int(round(obj.height * abs(obj.scale_y) * scale)))
    picture = obj.image.resize((width, height))
    if obj.angle:
        picture = picture.rotate(-obj.angle, expand=True)
    centre = transform.apply(matrix, 0, 0)
    position = (int(round(centre.x - picture.width / 2)), int(round(centre.y - picture.height / 2)))
    canvas.paste(picture, position, picture)


def _draw_object(canvas: Image.Image, draw: ImageDraw.ImageDraw, obj: SceneObject, parent: ViewportTransform) -> None:
    matrix = transform.multiply(parent, object_matrix(obj))
    if obj.type == "group":
        for child in obj.children:
            _draw_object(canvas, draw, child, matrix)
    elif obj.type == "image":
        _draw_image(canvas, obj, matrix)
    elif obj.text is not None:
        _draw_text(draw, obj, matrix)
    else:
        _draw_outline(draw, obj, matrix)


def render_scene(
    scene: SceneGraph,
    snapshot: Optional[ViewportTransform] = None,
    background: str = DEFAULT_BACKGROUND,
) -> Image.Image:
    """Render the scene as seen through ``snapshot`` (defaults to the live viewport)."""
    width, height = scene.canvas_size
    snapshot = snapshot or scene.viewport_transform
    background_rgba = parse_color(background) or (0, 0, 0, 255)
    canvas = Image.new("RGB", (width, height), background_rgba[:3])
    draw = ImageDraw.Draw(canvas, "RGBA")
    for obj in scene.objects():
        _draw_object(canvas, draw, obj, snapshot)
    return canvas


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def capture_viewport(
    scene: SceneGraph,
    background: str = DEFAULT_BACKGROUND,
    snapshot: Optional[ViewportTransform] = None,
) -> ViewportCapture:
    """
    Snapshot the viewport transform by value and render exactly what it shows.

    The returned snapshot is the one any point the planner proposes for this
    image must be mapped back through.
    """
    snapshot = snapshot or scene.viewport_transform
    width, height = scene.canvas_size
    top_left, bottom_right = transform.visible_world_rect(snapshot, width, height)
    image = render_scene(scene, snapshot=snapshot, background=background)
    return ViewportCapture(
        snapshot=snapshot,
        width=width,
        height=height,
        png=encode_png(image),
        world_top_left=top_left,
        world_bottom_right=bottom_right,
    )
