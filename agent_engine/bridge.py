"""
Planning bridge: one instruction in, one burst of queued actions out.

The bridge captures the viewport at the moment of the request, asks the
planner, converts the planner's screen points through that same capture and
only then touches the queue.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from logger import StatusLogger
from models import MessageRole, SceneObjectData
from agent_engine import transform
from agent_engine.actions import Action, ActionError
from agent_engine.planner import Planner, PlannerResponse, PlanningRequest
from agent_engine.state import AgentState
from workspace.render import DEFAULT_BACKGROUND, capture_viewport
from workspace.scene import SceneGraph

IMAGE_PLACEHOLDER = "[Image present on canvas]"
DEFAULT_REPLY = "Understood. Re-encoding parameters."
NO_COMMAND_REPLY = "No specific command detected."
LINK_ERROR = "Core link error. System reset."


def describe_scene(scene: SceneGraph, state: AgentState) -> List[SceneObjectData]:
    """Object listing for the planner; image payloads are never sent."""
    listing = []
    for obj in scene.objects():
        width, height = obj.scaled_size
        entry = SceneObjectData(
            id=obj.id,
            type=obj.type,
            left=round(obj.left),
            top=round(obj.top),
            width=round(width),
            height=round(height),
            fill=obj.fill if obj.fill is not None else "transparent",
            angle=round(obj.angle),
        )
        if obj.is_overlay_placeholder:
            overlay = state.get_overlay(obj.id)
            entry.html_content = overlay.html if overlay else None
        elif obj.svg_source:
            entry.svg_content = obj.svg_source
        elif obj.type == "image":
            entry.image_url = IMAGE_PLACEHOLDER
        elif obj.type in ("i-text", "text"):
            entry.text_content = obj.text
        listing.append(entry)
    return listing


class PlanningBridge:
    def __init__(
        self,
        state: AgentState,
        scene: SceneGraph,
        planner: Planner,
        logger: Optional[StatusLogger] = None,
        background: str = DEFAULT_BACKGROUND,
    ):
        self.state = state
        self.scene = scene
        self.planner = planner
        self.logger = logger or StatusLogger()
        self.background = background

    def describe_scene(self) -> List[SceneObjectData]:
        return describe_scene(self.scene, self.state)

    async def process_prompt(self, instruction: str) -> int:
        """
        Run one planning round-trip for ``instruction``.

        Returns the number of actions enqueued. Refuses (returns 0) while a
        previous instruction is still being planned.
        """
        if self.state.is_thinking:
            self.logger.log_warning("Still planning the previous instruction; ignoring new one")
            return 0

        self.state.set_thinking(True)
        self.logger.log_info(f'Neural scan initiated for: "{instruction}"')
        token = self.state.cancel_token()
        try:
            # snapshot on the loop, rasterise in a worker thread
            snapshot = self.scene.viewport_transform
            capture = await asyncio.to_thread(capture_viewport, self.scene, self.background, snapshot)
            request = PlanningRequest(
                instruction=instruction,
                image_png=capture.png,
                objects=self.describe_scene(),
                viewport_size=(capture.width, capture.height),
                reference_image=self.state.last_uploaded_image,
            )
            response = await self.planner.plan(request)
            if token.cancelled:
                self.logger.log_info("Plan discarded: aborted while thinking")
                return 0

            actions = self._build_actions(response, capture.snapshot)
            reply = response.text or (DEFAULT_REPLY if response.calls else NO_COMMAND_REPLY)
            self._publish(reply)
            self.state.queue.extend(actions)
            self.logger.log_info(f"Queued {len(actions)} action(s)")
            return len(actions)
        except Exception as e:
            if token.cancelled:
                self.logger.log_info(f"Planner exchange ended after abort: {e}")
                return 0
            self.logger.log_error(f"Planner exchange failed: {e}")
            self._publish(LINK_ERROR)
            return 0
        finally:
            # after an abort the flag was already reset and may belong to a newer request
            if not token.cancelled:
                self.state.set_thinking(False)

    def _build_actions(self, response: PlannerResponse, snapshot) -> List[Action]:
        actions: List[Action] = []
        for call in response.calls:
            args = transform.resolve_tool_args(call.args or {}, snapshot)
            try:
                actions.append(Action.from_tool_call(call.name, args))
            except ActionError as e:
                self.logger.log_warning(f"Dropped tool call: {e}")
        return actions

    def _publish(self, text: str) -> None:
        self.state.add_message(MessageRole.MODEL, text)
        self.state.set_agent_message(text)
        try:
            self.state.speech.speak(text)
        except Exception as e:
            self.logger.log_warning(f"Speech unavailable: {e}")
