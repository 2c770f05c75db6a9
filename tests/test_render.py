import io

import pytest
from PIL import Image

from models import Point, ViewportTransform
from workspace.render import capture_viewport, parse_color, render_scene, to_hex
from workspace.scene import SceneObject, Workspace
from workspace.geometry import box_outline


def _make_square(x, y, size=20, fill="#ff0000"):
    return SceneObject(id="sq", type="rect", left=x, top=y, width=size, height=size, fill=fill,
                       subpaths=[(box_outline(size, size), True)])


class TestColors:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("#ff0000", (255, 0, 0, 255)),
            ("white", (255, 255, 255, 255)),
            ("rgba(255,255,255,0.01)", (255, 255, 255, 3)),
            ("rgb(1, 2, 3)", (1, 2, 3, 255)),
            (None, None),
            ("not-a-colour", None),
        ],
    )
    def test_parse_color(self, value, expected):
        assert parse_color(value) == expected

    def test_to_hex_hides_near_transparent(self):
        assert to_hex("rgba(255,255,255,0.01)") is None
        assert to_hex("#00F0FF") == "#00f0ff"


class TestCapture:
    def test_image_matches_canvas_size(self):
        workspace = Workspace(320, 200, ViewportTransform(a=2, d=2, e=10, f=10))
        capture = capture_viewport(workspace)
        image = Image.open(io.BytesIO(capture.png))
        assert image.size == (320, 200) == (capture.width, capture.height)
        assert capture.snapshot == workspace.viewport_transform
        assert capture.world_top_left == Point(-5, -5)
        assert capture.world_bottom_right == Point(155, 95)
        assert capture.data_url().startswith("data:image/png;base64,")

    def test_snapshot_is_frozen_at_capture(self):
        workspace = Workspace(100, 100)
        capture = capture_viewport(workspace)
        workspace.pan(50, 0)
        assert capture.snapshot == ViewportTransform.identity()

    def test_render_goes_through_viewport(self):
        workspace = Workspace(400, 400, ViewportTransform(a=2, d=2))
        workspace.add(_make_square(100, 100))
        image = render_scene(workspace, background="#0a0a0f")
        assert image.getpixel((200, 200)) == (255, 0, 0)
        assert image.getpixel((100, 100)) == (10, 10, 15)


class TestWorkspace:
    def test_zoom_keeps_point_under_cursor(self):
        workspace = Workspace(800, 600)
        workspace.zoom_to_point(Point(200, 100), 2.0)
        assert workspace.viewport_transform == ViewportTransform(a=2, d=2, e=-200, f=-100)
        assert workspace.zoom == 2.0

    def test_zoom_is_clamped(self):
        workspace = Workspace(800, 600)
        workspace.zoom_to_point(Point(0, 0), 1000)
        assert workspace.zoom == 20.0

    def test_pan_and_reset(self):
        workspace = Workspace(800, 600)
        workspace.pan(30, -10)
        assert workspace.viewport_transform.pan == (30, -10)
        workspace.reset_view()
        assert workspace.viewport_transform == ViewportTransform.identity()

    def test_singular_viewport_rejected(self):
        with pytest.raises(ValueError):
            Workspace().set_viewport_transform(ViewportTransform(a=0, d=0))

    def test_find_remove_and_selection(self):
        workspace = Workspace()
        square = _make_square(50, 50)
        workspace.add(square)
        workspace.set_active(square)
        assert workspace.find_at(Point(55, 45)) is square
        assert workspace.find_at(Point(100, 100)) is None
        assert workspace.remove(square)
        assert workspace.active_object is None
        assert not workspace.remove("sq")

    def test_render_listeners(self):
        workspace = Workspace()
        seen = []
        workspace.on_render(lambda: seen.append(workspace.render_requests))
        workspace.request_render()
        workspace.resize(0, 10)
        assert seen == [1, 2]
        assert workspace.canvas_size == (1, 10)
