"""
Human-like cursor motion.

A motion is a cubic Bezier arc from the current position to the target,
timed by a Fitts-style duration and eased in and out. Everything runs on the
run context's frame clock so tests can drive it with a virtual clock.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from models import Point
from agent_engine.context import RunContext
from agent_engine.state import CancelToken

BASE_DURATION_MS = 600.0
DISTANCE_FACTOR = 0.5
MIN_DURATION_MS = 400.0
MAX_DURATION_MS = 1800.0
ARC_FACTOR = 0.2
MAX_ARC = 150.0

PointCallback = Callable[[Point], None]


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - math.pow(-2 * t + 2, 3) / 2


def ease_out_quad(t: float) -> float:
    return 1 - (1 - t) * (1 - t)


def cubic_bezier(t: float, p0: Point, p1: Point, p2: Point, p3: Point) -> Point:
    mt = 1 - t
    a = mt * mt * mt
    b = 3 * mt * mt * t
    c = 3 * mt * t * t
    d = t * t * t
    return Point(
        a * p0.x + b * p1.x + c * p2.x + d * p3.x,
        a * p0.y + b * p1.y + c * p2.y + d * p3.y,
    )


def motion_duration(distance: float) -> float:
    """Milliseconds for a move of ``distance``: longer moves take longer, within bounds."""
    return min(MAX_DURATION_MS, max(MIN_DURATION_MS, BASE_DURATION_MS + DISTANCE_FACTOR * distance))


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


@dataclass
class MotionPlan:
    """One planned cursor arc."""
    start: Point
    control1: Point
    control2: Point
    target: Point
    duration_ms: float

    def point_at(self, progress: float) -> Point:
        progress = _clamp01(progress)
        if progress >= 1.0 or self.start == self.target:
            return Point(self.target.x, self.target.y)
        eased = ease_in_out_cubic(progress)
        return cubic_bezier(eased, self.start, self.control1, self.control2, self.target)

    def sample(self, timestamps: Iterable[float]) -> List[Point]:
        """Positions at the given elapsed times (ms since the motion began)."""
        if self.duration_ms <= 0:
            return [self.point_at(1.0) for _ in timestamps]
        return [self.point_at(elapsed / self.duration_ms) for elapsed in timestamps]


@dataclass
class DragPlan:
    """Straight, decelerating move used while an object is held."""
    start: Point
    target: Point
    duration_ms: float

    def point_at(self, progress: float) -> Point:
        progress = _clamp01(progress)
        if progress >= 1.0:
            return Point(self.target.x, self.target.y)
        eased = ease_out_quad(progress)
        return Point(
            self.start.x + (self.target.x - self.start.x) * eased,
            self.start.y + (self.target.y - self.start.y) * eased,
        )


async def animate(plan, ctx: RunContext, on_point: PointCallback, token: Optional[CancelToken] = None) -> bool:
    """
    Play ``plan`` frame by frame, reporting each position to ``on_point``.

    Returns True when the motion reached its end (the last reported point is
    exactly the target), False when the token was cancelled first.
    """
    started = ctx.now_ms()
    while True:
        if token is not None and token.cancelled:
            return False
        now = await ctx.next_frame()
        if token is not None and token.cancelled:
            return False
        elapsed = now - started
        progress = 1.0 if plan.duration_ms <= 0 else elapsed / plan.duration_ms
        if progress >= 1.0:
            on_point(Point(plan.target.x, plan.target.y))
            return True
        on_point(plan.point_at(progress))


class MotionSimulator:
    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    def plan(self, start: Point, target: Point) -> MotionPlan:
        dx = target.x - start.x
        dy = target.y - start.y
        distance = math.hypot(dx, dy)
        duration = motion_duration(distance)
        if distance == 0:
            same = Point(target.x, target.y)
            return MotionPlan(Point(start.x, start.y), same, same, same, duration)

        arc = min(distance * ARC_FACTOR, MAX_ARC)
        side = 1.0 if self.ctx.rng.random() > 0.5 else -1.0
        # unit normal to the straight path
        nx, ny = -dy / distance, dx / distance
        off1 = self.ctx.rng.random() * arc * side
        off2 = self.ctx.rng.random() * arc * 0.5 * side
        cp1 = Point(start.x + dx * 0.3 + nx * off1, start.y + dy * 0.3 + ny * off1)
        cp2 = Point(start.x + dx * 0.7 + nx * off2, start.y + dy * 0.7 + ny * off2)
        return MotionPlan(Point(start.x, start.y), cp1, cp2, Point(target.x, target.y), duration)

    async def move(self, start: Point, target: Point, on_point: PointCallback, token: Optional[CancelToken] = None) -> bool:
        return await animate(self.plan(start, target), self.ctx, on_point, token)

    async def drag(
        self,
        start: Point,
        target: Point,
        duration_ms: float,
        on_point: PointCallback,
        token: Optional[CancelToken] = None,
    ) -> bool:
        plan = DragPlan(Point(start.x, start.y), Point(target.x, target.y), duration_ms)
        return await animate(plan, self.ctx, on_point, token)
