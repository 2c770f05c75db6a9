"""Run context handed to the processor and the motion simulator: time, randomness, logging."""

from __future__ import annotations

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional

from logger import StatusLogger

SleepHook = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def _monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


class RunContext:
    """
    Small helper object passed to the engine at runtime.

    ``clock`` returns milliseconds and ``sleep_hook`` awaits seconds; tests
    swap both for a fake clock so timed animations finish instantly.
    """

    def __init__(
        self,
        logger: Optional[StatusLogger] = None,
        sleep_hook: Optional[SleepHook] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        frame_interval_ms: float = 16.0,
    ):
        self.logger = logger or StatusLogger()
        self._sleep = sleep_hook or asyncio.sleep
        self._clock = clock or _monotonic_ms
        self.rng = rng or random.Random()
        self.frame_interval_ms = frame_interval_ms

    def log(self, msg: str) -> None:
        self.logger.log_info(msg)

    def now_ms(self) -> float:
        return self._clock()

    async def sleep(self, seconds: float) -> None:
        await self._sleep(max(seconds, 0.0))

    async def sleep_ms(self, ms: float) -> None:
        await self.sleep(max(ms, 0) / 1000.0)

    async def next_frame(self) -> float:
        """Yield until the next animation frame and return its timestamp in ms."""
        await self.sleep_ms(self.frame_interval_ms)
        return self.now_ms()

    def uniform_ms(self, low: float, high: float) -> float:
        return self.rng.uniform(low, high)


class VirtualClock:
    """
    Millisecond clock that only advances when something sleeps on it.

    Used for headless fast runs and tests: the full human-timing protocol
    still executes, it just does not wait in real time.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self.now = float(start_ms)

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += max(seconds, 0.0) * 1000.0
        await asyncio.sleep(0)


def virtual_context(
    logger: Optional[StatusLogger] = None,
    rng: Optional[random.Random] = None,
    frame_interval_ms: float = 16.0,
) -> RunContext:
    clock = VirtualClock()
    return RunContext(logger=logger, sleep_hook=clock.sleep, clock=clock, rng=rng, frame_interval_ms=frame_interval_ms)
