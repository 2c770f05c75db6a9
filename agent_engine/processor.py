"""
Action processor: drains the queue one action at a time with human timing.

Each action runs the same protocol: show a label, glide the cursor to the
target, hesitate, press, apply the effect, then pause to "look" at the
result. Only one action executes at a time; an abort is noticed at the next
frame or pause.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Set

from models import AgentSettings, OverlayElement, Point
from agent_engine.actions import (
    Action,
    ActionStatus,
    ActionTag,
    CreateImageAction,
    CreateSvgAction,
    DeleteObjectAction,
    DragObjectAction,
    DrawPathAction,
    EditHtmlAction,
    EditSvgAction,
    MoveCursorAction,
    RenderHtmlAction,
    WriteTextAction,
)
from agent_engine.context import RunContext
from agent_engine.motion import MotionSimulator
from agent_engine.state import AgentState, CancelToken
from workspace.scene import SceneGraph, SceneObject
from workspace.shapes import (
    PLACEHOLDER_STROKE,
    ContentError,
    make_image,
    make_path,
    make_placeholder,
    make_text,
    make_vector_graphic,
)

EDIT_FLASH_STROKE = "#ff003c"

Handler = Callable[[Action, CancelToken], Awaitable[bool]]


class ActionProcessor:
    def __init__(
        self,
        state: AgentState,
        scene: SceneGraph,
        ctx: Optional[RunContext] = None,
        settings: Optional[AgentSettings] = None,
        motion: Optional[MotionSimulator] = None,
    ):
        self.state = state
        self.scene = scene
        self.settings = settings or AgentSettings()
        self.ctx = ctx or RunContext(frame_interval_ms=self.settings.frame_interval_ms)
        self.motion = motion or MotionSimulator(self.ctx)
        self._busy = False
        self._running = False
        self._current: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._handlers: Dict[ActionTag, Handler] = {
            ActionTag.MOVE_CURSOR: self._move_cursor,
            ActionTag.WRITE_TEXT: self._write_text,
            ActionTag.DRAW_PATH: self._draw_path,
            ActionTag.CREATE_SVG: self._create_svg,
            ActionTag.EDIT_SVG: self._edit_svg,
            ActionTag.CREATE_IMAGE: self._create_image,
            ActionTag.RENDER_HTML: self._render_html,
            ActionTag.EDIT_HTML: self._edit_html,
            ActionTag.DELETE_OBJECT: self._delete_object,
            ActionTag.DRAG_OBJECT: self._drag_object,
        }
        missing = set(ActionTag) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for: {sorted(tag.value for tag in missing)}")

    @property
    def busy(self) -> bool:
        return self._busy

    # ------------------------------------------------------------------
    # Queue draining
    # ------------------------------------------------------------------
    def poll(self) -> Optional[asyncio.Task]:
        """Claim the head of the queue when idle and start it; returns the task or None."""
        if self._busy:
            return None
        action = self.state.queue.dequeue_one()
        if action is None:
            return None
        self._busy = True
        self.state.set_acting(True)
        self._current = asyncio.get_running_loop().create_task(self._run_action(action))
        return self._current

    async def run(self) -> None:
        """Poll the queue every ``poll_interval_ms`` until :meth:`stop` is called."""
        self._running = True
        self.ctx.log("Action processor started")
        try:
            while self._running:
                self.poll()
                await self.ctx.sleep_ms(self.settings.poll_interval_ms)
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False

    async def process_next(self) -> Optional[Action]:
        """Wait for the in-flight action, then run the next queued one to its end."""
        await self.wait_idle(include_background=False)
        task = self.poll()
        if task is None:
            return None
        return await task

    async def wait_idle(self, include_background: bool = True) -> None:
        current = self._current
        if current is not None and not current.done():
            await current
        if include_background and self._background:
            await asyncio.gather(*list(self._background))

    async def drain(self) -> List[Action]:
        """Run queued actions until the queue is empty; returns them in execution order."""
        processed: List[Action] = []
        while True:
            action = await self.process_next()
            if action is None:
                break
            processed.append(action)
        await self.wait_idle()
        return processed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def _run_action(self, action: Action) -> Action:
        token = self.state.cancel_token()
        action.status = ActionStatus.EXECUTING
        self.ctx.log(f"Executing {action}")
        try:
            completed = await self._handlers[action.tag](action, token)
            action.status = ActionStatus.COMPLETED if completed else ActionStatus.FAILED
            if not completed:
                self.ctx.logger.log_warning(f"{action} interrupted by abort")
        except Exception as e:
            action.status = ActionStatus.FAILED
            self.ctx.logger.log_error(f"Agent processor error in {action}: {e}")
        finally:
            self._busy = False
            self._current = None
            self.state.set_clicking(False)
            self.state.set_acting(False)
            self.state.set_current_action(None)
        return action

    async def _approach(self, target: Point, token: CancelToken) -> bool:
        return await self.motion.move(self.state.cursor_position, target, self.state.set_cursor_position, token)

    async def _execute(
        self,
        action: Action,
        target: Point,
        token: CancelToken,
        effect: Callable[[], None],
    ) -> bool:
        """Label, approach, hesitate, press, apply ``effect``, verify. False if aborted first."""
        s = self.settings
        self.state.set_current_action(action.label)
        if not await self._approach(target, token):
            return False

        pause = self.ctx.uniform_ms(s.min_action_delay_ms, s.max_action_delay_ms)
        if action.is_complex:
            pause += s.complex_action_bonus_ms
        await self.ctx.sleep_ms(pause)
        if token.cancelled:
            return False

        self.state.set_clicking(True)
        await self.ctx.sleep_ms(s.press_duration_ms)
        self.state.set_clicking(False)
        if token.cancelled:
            return False

        effect()
        await self.ctx.sleep_ms(s.post_action_delay_ms)
        return True

    def _spawn_background(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _lookup(self, action: Action, object_id: str) -> Optional[SceneObject]:
        target = self.scene.get(object_id)
        if target is None:
            self.ctx.log(f"{action}: object '{object_id}' not found, skipping")
        return target

    def _place(self, obj: SceneObject, activate: bool = True) -> None:
        self.scene.add(obj)
        if activate:
            self.scene.set_active(obj)
        self.scene.request_render()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    async def _move_cursor(self, action: MoveCursorAction, token: CancelToken) -> bool:
        self.state.set_current_action(action.label)
        if not await self._approach(Point(action.x, action.y), token):
            return False
        await self.ctx.sleep_ms(self.settings.look_pause_ms)
        return not token.cancelled

    async def _write_text(self, action: WriteTextAction, token: CancelToken) -> bool:
        def effect() -> None:
            self._place(make_text(action.text, action.x, action.y, action.font_size, action.color))

        return await self._execute(action, Point(action.x, action.y), token, effect)

    async def _draw_path(self, action: DrawPathAction, token: CancelToken) -> bool:
        def effect() -> None:
            path = make_path(action.path_svg, action.x, action.y, action.stroke_color, action.stroke_width)
            if path is None:
                self.ctx.log(f"{action}: path data has nothing to draw")
                return
            self._place(path, activate=False)

        return await self._execute(action, Point(action.x, action.y), token, effect)

    async def _create_svg(self, action: CreateSvgAction, token: CancelToken) -> bool:
        def effect() -> None:
            group = make_vector_graphic(action.svg_xml, action.x, action.y)
            if group is None:
                self.ctx.log(f"{action}: SVG markup has nothing to draw")
                return
            self._place(group)

        return await self._execute(action, Point(action.x, action.y), token, effect)

    async def _edit_svg(self, action: EditSvgAction, token: CancelToken) -> bool:
        target = self._lookup(action, action.object_id)
        if target is None:
            return True

        def effect() -> None:
            group = make_vector_graphic(action.svg_xml, target.left, target.top, object_id=action.object_id)
            if group is None:
                self.ctx.log(f"{action}: SVG markup has nothing to draw")
                return
            group.set(angle=target.angle, scale_x=target.scale_x, scale_y=target.scale_y)
            self.scene.remove(target)
            self._place(group)

        return await self._execute(action, target.center, token, effect)

    async def _create_image(self, action: CreateImageAction, token: CancelToken) -> bool:
        def effect() -> None:
            try:
                image = make_image(action.base64, action.x, action.y, action.width, action.height)
            except ContentError as e:
                self.ctx.logger.log_warning(f"{action}: {e}")
                return
            self._place(image)

        return await self._execute(action, Point(action.x, action.y), token, effect)

    async def _render_html(self, action: RenderHtmlAction, token: CancelToken) -> bool:
        def effect() -> None:
            placeholder = make_placeholder(action.x, action.y, action.width, action.height)
            self.scene.add(placeholder)
            self.state.put_overlay(OverlayElement(
                id=placeholder.id,
                html=action.html,
                x=action.x,
                y=action.y,
                width=action.width,
                height=action.height,
            ))
            self.scene.set_active(placeholder)
            self.scene.request_render()

        return await self._execute(action, Point(action.x, action.y), token, effect)

    async def _edit_html(self, action: EditHtmlAction, token: CancelToken) -> bool:
        target = self._lookup(action, action.object_id)
        if target is None:
            return True

        def effect() -> None:
            self.state.update_overlay(action.object_id, html=action.html)
            if not target.is_overlay_placeholder:
                return
            target.set(stroke=EDIT_FLASH_STROKE)
            self.scene.request_render()
            self._spawn_background(self._revert_flash(target))

        return await self._execute(action, target.center, token, effect)

    async def _revert_flash(self, target: SceneObject) -> None:
        await self.ctx.sleep_ms(self.settings.edit_flash_ms)
        target.set(stroke=PLACEHOLDER_STROKE)
        self.scene.request_render()

    async def _delete_object(self, action: DeleteObjectAction, token: CancelToken) -> bool:
        target = self._lookup(action, action.object_id)
        if target is None:
            return True

        def effect() -> None:
            self.scene.remove(action.object_id)
            self.state.remove_overlay(action.object_id)
            self.scene.request_render()

        return await self._execute(action, target.center, token, effect)

    async def _drag_object(self, action: DragObjectAction, token: CancelToken) -> bool:
        target = self._lookup(action, action.object_id)
        if target is None:
            return True

        s = self.settings
        start = target.center
        self.state.set_current_action(action.label)
        if not await self._approach(start, token):
            return False

        self.state.set_clicking(True)
        await self.ctx.sleep_ms(s.drag_hold_ms)
        if token.cancelled:
            return False

        self.state.set_current_action(action.drag_label)

        def follow(point: Point) -> None:
            target.set(left=point.x, top=point.y)
            if target.is_overlay_placeholder:
                self.state.update_overlay(target.id, x=point.x, y=point.y)
            self.state.set_cursor_position(point)
            self.scene.request_render()

        finished = await self.motion.drag(start, Point(action.to_x, action.to_y), s.drag_duration_ms, follow, token)
        self.state.set_clicking(False)
        if not finished:
            return False
        await self.ctx.sleep_ms(s.drag_hold_ms)
        return True
