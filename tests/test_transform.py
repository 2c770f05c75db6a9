import pytest

from agent_engine import transform
from models import Point, ViewportTransform


def _close(p, q, tol=1e-9):
    return abs(p.x - q.x) < tol and abs(p.y - q.y) < tol


class TestScreenWorldMapping:
    @pytest.mark.parametrize(
        "snapshot",
        [
            ViewportTransform.identity(),
            ViewportTransform(a=2, d=2, e=100, f=50),
            ViewportTransform(a=0.5, d=0.5, e=-30, f=12),
            transform.multiply(transform.translation(40, -10), transform.rotation(30)),
        ],
    )
    def test_round_trip(self, snapshot):
        world = Point(123.5, -47.25)
        screen = transform.to_screen(world, snapshot)
        assert _close(transform.to_world(screen.x, screen.y, snapshot), world)

    def test_zoom_and_pan(self):
        snapshot = ViewportTransform(a=2, d=2, e=100, f=100)
        assert _close(transform.to_world(300, 300, snapshot), Point(100, 100))
        assert _close(transform.to_screen(Point(100, 100), snapshot), Point(300, 300))

    def test_singular_transform_is_rejected(self):
        with pytest.raises(ValueError):
            transform.to_world(1, 1, ViewportTransform(a=0, d=0))

    def test_multiply_applies_inner_first(self):
        combined = transform.multiply(transform.translation(10, 0), transform.scaling(2, 2))
        assert _close(transform.apply(combined, 1, 1), Point(12, 2))

    def test_visible_world_rect(self):
        top_left, bottom_right = transform.visible_world_rect(ViewportTransform(a=2, d=2, e=100, f=50), 800, 600)
        assert _close(top_left, Point(-50, -25))
        assert _close(bottom_right, Point(350, 275))


class TestResolveToolArgs:
    def test_converts_both_point_pairs(self):
        snapshot = ViewportTransform(a=2, d=2, e=100, f=100)
        resolved = transform.resolve_tool_args({"x": 300, "y": 300, "toX": 500, "toY": 100, "text": "hi"}, snapshot)
        assert resolved == {"x": 100, "y": 100, "toX": 200, "toY": 0, "text": "hi"}

    def test_leaves_incomplete_or_non_numeric_pairs(self):
        snapshot = ViewportTransform(a=2, d=2, e=100, f=100)
        args = {"x": 300, "toX": "500", "toY": 100}
        assert transform.resolve_tool_args(args, snapshot) == args

    def test_booleans_are_not_numbers(self):
        snapshot = ViewportTransform(e=5, f=5)
        args = {"x": True, "y": 10}
        assert transform.resolve_tool_args(args, snapshot) == args

    def test_does_not_mutate_input(self):
        args = {"x": 10, "y": 20}
        transform.resolve_tool_args(args, ViewportTransform(e=10, f=10))
        assert args == {"x": 10, "y": 20}
