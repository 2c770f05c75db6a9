import threading
import time

from agent_engine.bridge import PlanningBridge
from agent_engine.context import RunContext
from agent_engine.planner import PlannerResponse, ScriptedPlanner, ToolCall
from agent_engine.processor import ActionProcessor
from agent_engine.runtime import AgentRuntime
from agent_engine.state import ABORT_MESSAGE, AgentState
from logger import StatusLogger
from models import AgentSettings, Point
from workspace.scene import Workspace

QUICK = AgentSettings(
    poll_interval_ms=5,
    min_action_delay_ms=0,
    max_action_delay_ms=0,
    press_duration_ms=0,
    post_action_delay_ms=0,
    look_pause_ms=0,
)


def _make_runtime(response):
    logger = StatusLogger(max_entries=500)
    state = AgentState()
    workspace = Workspace(400, 300)
    processor = ActionProcessor(state, workspace, RunContext(logger=logger), QUICK)
    bridge = PlanningBridge(state, workspace, ScriptedPlanner(response), logger)
    return AgentRuntime(state, processor, bridge), state, workspace


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestAgentRuntime:
    def test_submit_plans_and_executes(self):
        response = PlannerResponse(calls=[ToolCall("write_text", {"text": "hi", "x": 20, "y": 30})])
        runtime, state, workspace = _make_runtime(response)
        done = []
        finished = threading.Event()

        def on_done(ok, msg):
            done.append((ok, msg))
            finished.set()

        runtime.on_done(on_done)
        runtime.start()
        try:
            assert runtime.is_running()
            future = runtime.submit("say hi")
            assert future.result(timeout=5) == 1
            assert finished.wait(timeout=5)
            assert done == [(True, "Queued 1 action(s)")]
            assert _wait_for(lambda: len(workspace) == 1 and not state.is_busy)
            assert state.cursor_position == Point(20, 30)
        finally:
            runtime.stop()
        assert not runtime.is_running()

    def test_abort_from_another_thread(self):
        response = PlannerResponse(calls=[ToolCall("move_cursor", {"x": 5000, "y": 0})])
        runtime, state, _workspace = _make_runtime(response)
        runtime.start()
        try:
            runtime.submit("wander").result(timeout=5)
            assert _wait_for(lambda: state.is_acting)
            runtime.abort()
            assert _wait_for(lambda: not state.is_busy)
            assert state.agent_message == ABORT_MESSAGE
            assert state.cursor_position != Point(5000, 0)
        finally:
            runtime.stop()

    def test_submit_when_stopped(self):
        runtime, _state, _workspace = _make_runtime(PlannerResponse())
        assert runtime.submit("anything") is None
