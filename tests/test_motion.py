import math

import pytest

from agent_engine import motion
from agent_engine.motion import MotionSimulator, animate, DragPlan
from agent_engine.state import AgentState
from models import Point


def _perpendicular_offset(point, start, target):
    dx, dy = target.x - start.x, target.y - start.y
    return ((point.x - start.x) * -dy + (point.y - start.y) * dx) / math.hypot(dx, dy)


class TestEasing:
    def test_ease_in_out_cubic(self):
        assert motion.ease_in_out_cubic(0) == 0
        assert motion.ease_in_out_cubic(0.5) == pytest.approx(0.5)
        assert motion.ease_in_out_cubic(1) == 1

    def test_ease_out_quad(self):
        assert motion.ease_out_quad(0) == 0
        assert motion.ease_out_quad(0.5) == pytest.approx(0.75)
        assert motion.ease_out_quad(1) == 1


class TestDuration:
    def test_zero_distance(self):
        assert motion.motion_duration(0) == 600

    def test_grows_with_distance(self):
        assert motion.motion_duration(100) == 650
        assert motion.motion_duration(1000) == 1100

    def test_capped(self):
        assert motion.motion_duration(10_000) == 1800

    @pytest.mark.parametrize("distance", [0, 1, 50, 400, 2400, 1e6])
    def test_bounds(self, distance):
        assert 400 <= motion.motion_duration(distance) <= 1800


class TestMotionPlan:
    def test_endpoints(self, ctx):
        plan = MotionSimulator(ctx).plan(Point(0, 0), Point(300, 400))
        assert plan.point_at(0) == Point(0, 0)
        assert plan.point_at(1) == Point(300, 400)
        assert plan.duration_ms == 850

    def test_control_points_bow_to_one_side(self, ctx):
        start, target = Point(0, 0), Point(500, 0)
        for _ in range(20):
            plan = MotionSimulator(ctx).plan(start, target)
            off1 = _perpendicular_offset(plan.control1, start, target)
            off2 = _perpendicular_offset(plan.control2, start, target)
            assert abs(off1) <= 100 + 1e-9
            assert abs(off2) <= 50 + 1e-9
            assert off1 * off2 >= 0
            assert plan.control1.x == pytest.approx(150)
            assert plan.control2.x == pytest.approx(350)

    def test_arc_is_capped(self, ctx):
        start, target = Point(0, 0), Point(0, 5000)
        plan = MotionSimulator(ctx).plan(start, target)
        assert abs(_perpendicular_offset(plan.control1, start, target)) <= 150 + 1e-9

    def test_zero_distance_stays_put(self, ctx):
        plan = MotionSimulator(ctx).plan(Point(5, 5), Point(5, 5))
        assert plan.sample([0, 100, 600]) == [Point(5, 5)] * 3

    def test_zero_distance_positions_are_exact(self, ctx):
        plan = MotionSimulator(ctx).plan(Point(0.1, 0.7), Point(0.1, 0.7))
        for progress in (0.0, 0.25, 0.5, 0.99):
            point = plan.point_at(progress)
            assert (point.x, point.y) == (0.1, 0.7)

    def test_drag_plan_decelerates(self):
        plan = DragPlan(Point(0, 0), Point(100, 0), 800)
        assert plan.point_at(0.5).x == pytest.approx(75)
        assert plan.point_at(1) == Point(100, 0)


class TestAnimate:
    @pytest.mark.asyncio
    async def test_move_reaches_target_exactly(self, ctx):
        points = []
        started = ctx.now_ms()
        finished = await MotionSimulator(ctx).move(Point(0, 0), Point(200, 100), points.append)
        assert finished is True
        assert len(points) > 10
        assert points[-1] == Point(200, 100)
        assert ctx.now_ms() - started >= motion.motion_duration(math.hypot(200, 100))

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, ctx):
        state = AgentState()
        token = state.cancel_token()
        state.abort()
        points = []
        finished = await MotionSimulator(ctx).move(Point(0, 0), Point(200, 100), points.append, token)
        assert finished is False
        assert points == []

    @pytest.mark.asyncio
    async def test_cancelled_mid_motion(self, ctx):
        state = AgentState()
        token = state.cancel_token()
        points = []

        def on_point(point):
            points.append(point)
            if len(points) == 5:
                state.abort()

        finished = await MotionSimulator(ctx).move(Point(0, 0), Point(1000, 0), on_point, token)
        assert finished is False
        assert len(points) == 5
        assert points[-1] != Point(1000, 0)

    @pytest.mark.asyncio
    async def test_zero_duration_snaps(self, ctx):
        points = []
        assert await animate(DragPlan(Point(0, 0), Point(9, 9), 0), ctx, points.append)
        assert points == [Point(9, 9)]
