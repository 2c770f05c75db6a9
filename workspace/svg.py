"""
Vector graphic loading: SVG path data and SVG documents.

Curves are flattened into polylines so every consumer (Pillow rasterizer,
Tk canvas) only has to draw straight segments.
"""

from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Optional, Tuple

from models import ViewportTransform
from agent_engine import transform
from workspace.geometry import bounding_box, ellipse_outline, map_points
from workspace.scene import SceneObject, Subpath

CURVE_STEPS = 16
ELLIPSE_STEPS = 48

_TOKEN_RE = re.compile(r"[MmLlHhVvCcSsQqTtAaZz]|[-+]?(?:\d*\.\d+|\d+\.?)(?:[eE][-+]?\d+)?")
_TRANSFORM_RE = re.compile(r"(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)")
_NUMBER_RE = re.compile(r"[-+]?(?:\d*\.\d+|\d+\.?)(?:[eE][-+]?\d+)?")

_PARAM_COUNTS = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7, "Z": 0}

Point2 = Tuple[float, float]


class PathSyntaxError(ValueError):
    pass


# ----------------------------------------------------------------------
# Path data
# ----------------------------------------------------------------------
def _tokens(path_data: str) -> Iterator[str]:
    for match in _TOKEN_RE.finditer(path_data or ""):
        yield match.group(0)


def _cubic(p0: Point2, p1: Point2, p2: Point2, p3: Point2) -> List[Point2]:
    out = []
    for step in range(1, CURVE_STEPS + 1):
        t = step / CURVE_STEPS
        mt = 1 - t
        out.append((
            mt ** 3 * p0[0] + 3 * mt ** 2 * t * p1[0] + 3 * mt * t ** 2 * p2[0] + t ** 3 * p3[0],
            mt ** 3 * p0[1] + 3 * mt ** 2 * t * p1[1] + 3 * mt * t ** 2 * p2[1] + t ** 3 * p3[1],
        ))
    return out


def _quadratic(p0: Point2, p1: Point2, p2: Point2) -> List[Point2]:
    out = []
    for step in range(1, CURVE_STEPS + 1):
        t = step / CURVE_STEPS
        mt = 1 - t
        out.append((
            mt * mt * p0[0] + 2 * mt * t * p1[0] + t * t * p2[0],
            mt * mt * p0[1] + 2 * mt * t * p1[1] + t * t * p2[1],
        ))
    return out


def _arc(p0: Point2, rx: float, ry: float, phi_deg: float, large: bool, sweep: bool, p1: Point2) -> List[Point2]:
    """Flatten an elliptical arc given in endpoint form."""
    if p0 == p1:
        return []
    rx, ry = abs(rx), abs(ry)
    if rx == 0 or ry == 0:
        return [p1]
    phi = math.radians(phi_deg % 360)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    dx, dy = (p0[0] - p1[0]) / 2.0, (p0[1] - p1[1]) / 2.0
    x1p = cos_phi * dx + sin_phi * dy
    y1p = -sin_phi * dx + cos_phi * dy

    radii_check = x1p ** 2 / rx ** 2 + y1p ** 2 / ry ** 2
    if radii_check > 1:
        scale = math.sqrt(radii_check)
        rx, ry = rx * scale, ry * scale

    num = rx ** 2 * ry ** 2 - rx ** 2 * y1p ** 2 - ry ** 2 * x1p ** 2
    den = rx ** 2 * y1p ** 2 + ry ** 2 * x1p ** 2
    coef = math.sqrt(max(0.0, num / den)) if den else 0.0
    if large == sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx
    cx = cos_phi * cxp - sin_phi * cyp + (p0[0] + p1[0]) / 2.0
    cy = sin_phi * cxp + cos_phi * cyp + (p0[1] + p1[1]) / 2.0

    def _angle(ux: float, uy: float, vx: float, vy: float) -> float:
        return math.atan2(ux * vy - uy * vx, ux * vx + uy * vy)

    theta1 = _angle(1, 0, (x1p - cxp) / rx, (y1p - cyp) / ry)
    delta = _angle((x1p - cxp) / rx, (y1p - cyp) / ry, (-x1p - cxp) / rx, (-y1p - cyp) / ry)
    if not sweep and delta > 0:
        delta -= 2 * math.pi
    elif sweep and delta < 0:
        delta += 2 * math.pi

    steps = max(4, int(abs(delta) / (2 * math.pi) * ELLIPSE_STEPS))
    out = []
    for step in range(1, steps + 1):
        theta = theta1 + delta * step / steps
        out.append((
            cx + rx * math.cos(theta) * cos_phi - ry * math.sin(theta) * sin_phi,
            cy + rx * math.cos(theta) * sin_phi + ry * math.sin(theta) * cos_phi,
        ))
    out[-1] = p1
    return out


def parse_path_data(path_data: str) -> List[Subpath]:
    """
    Flatten SVG path data (the ``d`` attribute) into subpaths.

    Supports every path command, absolute and relative. Raises
    ``PathSyntaxError`` when the data does not start with a moveto or a
    command is missing parameters.
    """
    tokens = list(_tokens(path_data))
    subpaths: List[Subpath] = []
    current: List[Point2] = []
    pos: Point2 = (0.0, 0.0)
    start: Point2 = (0.0, 0.0)
    last_control: Optional[Point2] = None
    last_command = ""
    command = ""
    index = 0

    def _flush(closed: bool) -> None:
        nonlocal current
        if len(current) > 1:
            subpaths.append((current, closed))
        current = []

    while index < len(tokens):
        token = tokens[index]
        if token.isalpha():
            command = token
            index += 1
        elif not command:
            raise PathSyntaxError("Expected a path command")

        upper = command.upper()
        relative = command.islower()
        count = _PARAM_COUNTS.get(upper)
        if count is None:
            raise PathSyntaxError(f"Unknown path command '{command}'")

        if upper == "Z":
            if current:
                _flush(True)
            pos = start
            last_control = None
            last_command = "Z"
            command = ""
            continue

        params = tokens[index:index + count]
        if len(params) < count or any(p.isalpha() for p in params):
            raise PathSyntaxError(f"Command '{command}' is missing parameters")
        values = [float(p) for p in params]
        index += count
        ox, oy = pos if relative else (0.0, 0.0)

        if upper == "M":
            _flush(False)
            pos = (values[0] + ox, values[1] + oy)
            start = pos
            current = [pos]
            last_control = None
            last_command = "M"
            # Subsequent pairs after a moveto are implicit linetos.
            command = "l" if relative else "L"
            continue

        if not current:
            current = [pos]

        if upper == "L":
            pos = (values[0] + ox, values[1] + oy)
            current.append(pos)
            last_control = None
        elif upper == "H":
            pos = (values[0] + ox, pos[1])
            current.append(pos)
            last_control = None
        elif upper == "V":
            pos = (pos[0], values[0] + oy)
            current.append(pos)
            last_control = None
        elif upper == "C":
            c1 = (values[0] + ox, values[1] + oy)
            c2 = (values[2] + ox, values[3] + oy)
            end = (values[4] + ox, values[5] + oy)
            current.extend(_cubic(pos, c1, c2, end))
            pos, last_control = end, c2
        elif upper == "S":
            if last_command in ("C", "S") and last_control is not None:
                c1 = (2 * pos[0] - last_control[0], 2 * pos[1] - last_control[1])
            else:
                c1 = pos
            c2 = (values[0] + ox, values[1] + oy)
            end = (values[2] + ox, values[3] + oy)
            current.extend(_cubic(pos, c1, c2, end))
            pos, last_control = end, c2
        elif upper == "Q":
            c1 = (values[0] + ox, values[1] + oy)
            end = (values[2] + ox, values[3] + oy)
            current.extend(_quadratic(pos, c1, end))
            pos, last_control = end, c1
        elif upper == "T":
            if last_command in ("Q", "T") and last_control is not None:
                c1 = (2 * pos[0] - last_control[0], 2 * pos[1] - last_control[1])
            else:
                c1 = pos
            end = (values[0] + ox, values[1] + oy)
            current.extend(_quadratic(pos, c1, end))
            pos, last_control = end, c1
        elif upper == "A":
            end = (values[5] + ox, values[6] + oy)
            current.extend(_arc(pos, values[0], values[1], values[2], bool(values[3]), bool(values[4]), end))
            pos, last_control = end, None
        last_command = upper

    _flush(False)
    return subpaths


# ----------------------------------------------------------------------
# SVG documents
# ----------------------------------------------------------------------
def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _number(value: Optional[str], default: float = 0.0) -> float:
    if value is None:
        return default
    match = _NUMBER_RE.match(value.strip())
    return float(match.group(0)) if match else default


def _numbers(value: Optional[str]) -> List[float]:
    return [float(v) for v in _NUMBER_RE.findall(value or "")]


def parse_transform(value: Optional[str]) -> ViewportTransform:
    """Parse an SVG ``transform`` attribute into one affine matrix."""
    result = ViewportTransform.identity()
    for name, raw_args in _TRANSFORM_RE.findall(value or ""):
        args = _numbers(raw_args)
        if name == "matrix" and len(args) == 6:
            step = ViewportTransform.from_list(args)
        elif name == "translate" and args:
            step = transform.translation(args[0], args[1] if len(args) > 1 else 0.0)
        elif name == "scale" and args:
            step = transform.scaling(args[0], args[1] if len(args) > 1 else args[0])
        elif name == "rotate" and args:
            step = transform.rotation(args[0])
            if len(args) == 3:
                step = transform.multiply(
                    transform.translation(args[1], args[2]),
                    transform.multiply(step, transform.translation(-args[1], -args[2])),
                )
        elif name == "skewX" and args:
            step = ViewportTransform(c=math.tan(math.radians(args[0])))
        elif name == "skewY" and args:
            step = ViewportTransform(b=math.tan(math.radians(args[0])))
        else:
            continue
        result = transform.multiply(result, step)
    return result


def _style(element: ET.Element, inherited: Dict[str, str]) -> Dict[str, str]:
    style = dict(inherited)
    for key in ("fill", "stroke", "stroke-width", "font-size", "opacity"):
        if key in element.attrib:
            style[key] = element.attrib[key].strip()
    for declaration in element.attrib.get("style", "").split(";"):
        if ":" in declaration:
            key, value = declaration.split(":", 1)
            style[key.strip()] = value.strip()
    return style


def _paint(value: Optional[str]) -> Optional[str]:
    if value is None or value in ("none", "transparent") or value.startswith("url("):
        return None
    return value


def _shape_subpaths(name: str, element: ET.Element) -> List[Subpath]:
    attr = element.attrib
    if name == "rect":
        x, y = _number(attr.get("x")), _number(attr.get("y"))
        w, h = _number(attr.get("width")), _number(attr.get("height"))
        if w <= 0 or h <= 0:
            return []
        return [([(x, y), (x + w, y), (x + w, y + h), (x, y + h)], True)]
    if name == "circle":
        r = _number(attr.get("r"))
        if r <= 0:
            return []
        return [(ellipse_outline(_number(attr.get("cx")), _number(attr.get("cy")), r, r, ELLIPSE_STEPS), True)]
    if name == "ellipse":
        rx, ry = _number(attr.get("rx")), _number(attr.get("ry"))
        if rx <= 0 or ry <= 0:
            return []
        return [(ellipse_outline(_number(attr.get("cx")), _number(attr.get("cy")), rx, ry, ELLIPSE_STEPS), True)]
    if name == "line":
        return [([
            (_number(attr.get("x1")), _number(attr.get("y1"))),
            (_number(attr.get("x2")), _number(attr.get("y2"))),
        ], False)]
    if name in ("polyline", "polygon"):
        values = _numbers(attr.get("points"))
        points = list(zip(values[0::2], values[1::2]))
        if len(points) < 2:
            return []
        return [(points, name == "polygon")]
    if name == "path":
        try:
            return parse_path_data(attr.get("d", ""))
        except PathSyntaxError:
            return []
    return []


def _walk(
    element: ET.Element,
    matrix: ViewportTransform,
    style: Dict[str, str],
    out: List[SceneObject],
) -> None:
    name = _local_name(element.tag)
    if name in ("defs", "style", "script", "title", "desc", "metadata", "clipPath", "mask"):
        return
    style = _style(element, style)
    matrix = transform.multiply(matrix, parse_transform(element.attrib.get("transform")))

    if name == "text":
        content = "".join(element.itertext()).strip()
        if content:
            anchor = transform.apply(matrix, _number(element.attrib.get("x")), _number(element.attrib.get("y")))
            out.append(SceneObject(
                id="",
                type="text",
                left=anchor.x,
                top=anchor.y,
                fill=_paint(style.get("fill", "black")),
                text=content,
                font_size=_number(style.get("font-size"), 16.0) * abs(matrix.a or 1.0),
            ))
        return

    subpaths = _shape_subpaths(name, element)
    if subpaths:
        out.append(SceneObject(
            id="",
            type=name,
            fill=_paint(style.get("fill", "black")),
            stroke=_paint(style.get("stroke")),
            stroke_width=_number(style.get("stroke-width"), 1.0),
            subpaths=[(map_points(matrix, points), closed) for points, closed in subpaths],
        ))
        return

    for child in element:
        _walk(child, matrix, style, out)


def _root_matrix(root: ET.Element) -> ViewportTransform:
    """Map the viewBox onto the declared width/height, if both are present."""
    view_box = _numbers(root.attrib.get("viewBox"))
    width = _number(root.attrib.get("width"), 0.0)
    height = _number(root.attrib.get("height"), 0.0)
    if len(view_box) != 4 or view_box[2] <= 0 or view_box[3] <= 0 or width <= 0 or height <= 0:
        return ViewportTransform.identity()
    min_x, min_y, vb_w, vb_h = view_box
    scale = min(width / vb_w, height / vb_h)
    return transform.multiply(transform.scaling(scale, scale), transform.translation(-min_x, -min_y))


def load_svg(markup: str) -> Optional[SceneObject]:
    """
    Parse SVG markup into a group object centred on its own bounding box.

    Returns None when the markup is not XML or has nothing drawable; the
    caller treats that as "skip this creation".
    """
    try:
        root = ET.fromstring((markup or "").strip())
    except ET.ParseError:
        return None

    elements: List[SceneObject] = []
    _walk(root, _root_matrix(root), {}, elements)
    if not elements:
        return None

    cloud: List[Point2] = []
    for element in elements:
        if element.subpaths:
            for points, _closed in element.subpaths:
                cloud.extend(points)
        else:
            cloud.append((element.left, element.top))
    min_x, min_y, max_x, max_y = bounding_box(cloud)
    cx, cy = (min_x + max_x) / 2.0, (min_y + max_y) / 2.0

    for element in elements:
        if element.subpaths:
            element.subpaths = [
                ([(x - cx, y - cy) for x, y in points], closed) for points, closed in element.subpaths
            ]
            ex0, ey0, ex1, ey1 = bounding_box(p for points, _ in element.subpaths for p in points)
            element.width, element.height = ex1 - ex0, ey1 - ey0
        else:
            element.left, element.top = element.left - cx, element.top - cy

    return SceneObject(
        id="",
        type="group",
        width=max_x - min_x,
        height=max_y - min_y,
        children=elements,
        svg_source=markup,
    )
