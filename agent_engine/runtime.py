"""
Agent runtime: hosts the engine's asyncio loop in a worker thread.

The GUI thread never awaits anything; it submits instructions and aborts
through the thread-safe entry points below and polls the shared state.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from agent_engine.bridge import PlanningBridge
from agent_engine.processor import ActionProcessor
from agent_engine.state import AgentState


class AgentRuntime:
    def __init__(self, state: AgentState, processor: ActionProcessor, bridge: PlanningBridge):
        self.state = state
        self.processor = processor
        self.bridge = bridge
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._on_done: Optional[Callable[[bool, str], None]] = None

    def on_done(self, cb: Callable[[bool, str], None]) -> None:
        """Called (from the worker thread) when an instruction has been planned."""
        self._on_done = cb

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._ready.clear()
        self._thread = threading.Thread(target=self._worker, name="agent-runtime", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=2.0)

    def stop(self) -> None:
        loop = self._loop
        if loop is not None and loop.is_running():
            loop.call_soon_threadsafe(self.processor.stop)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def submit(self, instruction: str) -> Optional[Future]:
        """Plan ``instruction`` on the engine loop; returns a future for the queued count."""
        if self._loop is None or not self.is_running():
            self.bridge.logger.log_warning("Agent runtime is not running")
            return None
        future = asyncio.run_coroutine_threadsafe(self.bridge.process_prompt(instruction), self._loop)
        future.add_done_callback(self._planned)
        return future

    def abort(self) -> None:
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self.state.abort)
        else:
            self.state.abort()
        self.bridge.logger.log_warning("Abort requested")

    def _planned(self, future: Future) -> None:
        if not self._on_done:
            return
        if future.cancelled():
            ok, msg = False, "Cancelled"
        elif future.exception() is not None:
            ok, msg = False, f"Error: {future.exception()}"
        else:
            ok, msg = True, f"Queued {future.result()} action(s)"
        try:
            self._on_done(ok, msg)
        except Exception as e:
            self.bridge.logger.log_error(f"Completion callback failed: {e}")

    def _worker(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        try:
            loop.run_until_complete(self.processor.run())
        finally:
            pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()
            self._loop = None
