import asyncio

import pytest

from agent_engine.actions import (
    ActionStatus,
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
from agent_engine.processor import EDIT_FLASH_STROKE, ActionProcessor
from models import Point
from workspace.shapes import PLACEHOLDER_STROKE

SQUARE_SVG = '<svg xmlns="http://www.w3.org/2000/svg"><rect x="0" y="0" width="40" height="20" fill="red"/></svg>'


def _make_processor(state, workspace, ctx, settings):
    return ActionProcessor(state, workspace, ctx, settings)


async def _run(processor, state, *actions):
    state.queue.extend(actions)
    return await processor.drain()


def _messages(logger, level=None):
    return [e.message for e in logger.get_all_logs() if level is None or e.level == level]


class TestQueueDraining:
    @pytest.mark.asyncio
    async def test_runs_in_order_one_at_a_time(self, state, workspace, ctx, settings, logger):
        processor = _make_processor(state, workspace, ctx, settings)
        actions = [
            MoveCursorAction(x=100, y=50),
            WriteTextAction(text="one", x=200, y=50),
            MoveCursorAction(x=10, y=300),
        ]
        state.queue.extend(actions)

        runner = asyncio.create_task(processor.run())
        peak = 0
        for _ in range(100_000):
            peak = max(peak, sum(a.status == ActionStatus.EXECUTING for a in actions))
            if all(a.status == ActionStatus.COMPLETED for a in actions):
                break
            await asyncio.sleep(0)
        processor.stop()
        await runner

        assert peak == 1
        assert all(a.status == ActionStatus.COMPLETED for a in actions)
        executed = [m for m in _messages(logger) if m.startswith("Executing")]
        assert executed == [f"Executing {a}" for a in actions]
        assert state.cursor_position == Point(10, 300)
        assert not state.is_acting

    @pytest.mark.asyncio
    async def test_poll_refuses_while_busy(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        state.queue.extend([MoveCursorAction(x=10, y=10), MoveCursorAction(x=20, y=20)])
        first = processor.poll()
        assert first is not None
        assert processor.busy and state.is_acting
        assert processor.poll() is None
        await first
        assert len(state.queue) == 1

    @pytest.mark.asyncio
    async def test_drain_on_empty_queue(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        assert await processor.drain() == []


class TestHandlers:
    @pytest.mark.asyncio
    async def test_write_text_then_delete(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        (write,) = await _run(processor, state, WriteTextAction(text="Hello", x=100, y=120))

        assert write.status == ActionStatus.COMPLETED
        (text,) = workspace.objects()
        assert (text.type, text.text, text.center) == ("i-text", "Hello", Point(100, 120))
        assert workspace.active_object is text
        assert state.cursor_position == Point(100, 120)

        (delete,) = await _run(processor, state, DeleteObjectAction(object_id=text.id))
        assert delete.status == ActionStatus.COMPLETED
        assert len(workspace) == 0

    @pytest.mark.asyncio
    async def test_move_cursor_only_moves(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, MoveCursorAction(x=42, y=24))
        assert state.cursor_position == Point(42, 24)
        assert len(workspace) == 0
        assert workspace.render_requests == 0

    @pytest.mark.asyncio
    async def test_draw_path_is_not_selected(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, DrawPathAction(path_svg="M 0 0 L 100 50", x=200, y=200))
        (path,) = workspace.objects()
        assert path.type == "path"
        assert (path.width, path.height) == (100, 50)
        assert workspace.active_object is None

    @pytest.mark.asyncio
    async def test_draw_path_with_bad_data_places_nothing(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        (action,) = await _run(processor, state, DrawPathAction(path_svg="L 1", x=0, y=0))
        assert action.status == ActionStatus.COMPLETED
        assert len(workspace) == 0

    @pytest.mark.asyncio
    async def test_create_and_edit_vector_graphic(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, CreateSvgAction(svg_xml=SQUARE_SVG, x=300, y=200))
        (group,) = workspace.objects()
        assert group.type == "group"
        assert group.id.startswith("svg_")
        group.set(angle=30)

        bigger = SQUARE_SVG.replace('width="40"', 'width="80"')
        (edit,) = await _run(processor, state, EditSvgAction(object_id=group.id, svg_xml=bigger))
        assert edit.status == ActionStatus.COMPLETED
        (replaced,) = workspace.objects()
        assert replaced is not group
        assert replaced.id == group.id
        assert (replaced.center, replaced.angle, replaced.width) == (Point(300, 200), 30, 80)

    @pytest.mark.asyncio
    async def test_create_image(self, state, workspace, ctx, settings, png_base64):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, CreateImageAction(base64=png_base64, x=50, y=60, width=40))
        (image,) = workspace.objects()
        assert image.type == "image"
        assert image.scaled_size == (40, 20)

    @pytest.mark.asyncio
    async def test_undecodable_image_is_skipped(self, state, workspace, ctx, settings, logger):
        processor = _make_processor(state, workspace, ctx, settings)
        (action,) = await _run(processor, state, CreateImageAction(base64="not an image", x=0, y=0))
        assert action.status == ActionStatus.COMPLETED
        assert len(workspace) == 0
        assert any("could not be decoded" in m for m in _messages(logger, "WARNING"))

    @pytest.mark.asyncio
    async def test_render_html_adds_placeholder_and_overlay(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, RenderHtmlAction(html="<button>Go</button>", x=50, y=60))

        (placeholder,) = workspace.objects()
        assert placeholder.is_overlay_placeholder
        assert placeholder.stroke == PLACEHOLDER_STROKE
        assert (placeholder.width, placeholder.height) == (400, 300)
        overlay = state.get_overlay(placeholder.id)
        assert overlay.html == "<button>Go</button>"
        assert (overlay.x, overlay.y, overlay.width, overlay.height) == (50, 60, 400, 300)
        assert (overlay.scale_x, overlay.rotation, overlay.z_index) == (1.0, 0.0, 10)

    @pytest.mark.asyncio
    async def test_edit_html_flashes_then_reverts(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, RenderHtmlAction(html="<p>old</p>", x=50, y=60))
        (placeholder,) = workspace.objects()
        strokes = []
        workspace.on_render(lambda: strokes.append(placeholder.stroke))

        (edit,) = await _run(processor, state, EditHtmlAction(object_id=placeholder.id, html="<p>new</p>"))

        assert edit.status == ActionStatus.COMPLETED
        assert state.get_overlay(placeholder.id).html == "<p>new</p>"
        assert EDIT_FLASH_STROKE in strokes
        assert placeholder.stroke == PLACEHOLDER_STROKE

    @pytest.mark.asyncio
    async def test_edit_html_on_plain_object_keeps_its_outline(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, WriteTextAction(text="label", x=50, y=60))
        (text,) = workspace.objects()

        (edit,) = await _run(processor, state, EditHtmlAction(object_id=text.id, html="<p/>"))

        assert edit.status == ActionStatus.COMPLETED
        assert text.stroke is None
        assert state.overlays == {}

    @pytest.mark.asyncio
    async def test_missing_target_is_a_no_op(self, state, workspace, ctx, settings, logger):
        processor = _make_processor(state, workspace, ctx, settings)
        actions = await _run(
            processor,
            state,
            EditHtmlAction(object_id="nope", html="<p/>"),
            DeleteObjectAction(object_id="nope"),
            DragObjectAction(object_id="nope", to_x=10, to_y=10),
        )
        assert [a.status for a in actions] == [ActionStatus.COMPLETED] * 3
        assert state.cursor_position == Point(0, 0)
        assert sum("not found, skipping" in m for m in _messages(logger)) == 3

    @pytest.mark.asyncio
    async def test_drag_moves_object_overlay_and_cursor(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, RenderHtmlAction(html="<p/>", x=100, y=100, width=200, height=100))
        (placeholder,) = workspace.objects()
        labels = []
        workspace.on_render(lambda: labels.append(state.current_action))

        (drag,) = await _run(processor, state, DragObjectAction(object_id=placeholder.id, to_x=300, to_y=200))

        assert drag.status == ActionStatus.COMPLETED
        assert placeholder.center == Point(300, 200)
        overlay = state.get_overlay(placeholder.id)
        assert (overlay.x, overlay.y) == (300, 200)
        assert state.cursor_position == Point(300, 200)
        assert not state.is_clicking
        assert "Dragging..." in labels

    @pytest.mark.asyncio
    async def test_delete_removes_overlay(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, RenderHtmlAction(html="<p/>", x=100, y=100))
        (placeholder,) = workspace.objects()
        await _run(processor, state, DeleteObjectAction(object_id=placeholder.id))
        assert len(workspace) == 0
        assert state.overlays == {}


class TestTiming:
    @pytest.mark.asyncio
    async def test_complex_actions_pause_longer(self, state, workspace, ctx, settings, monkeypatch):
        sleeps = []
        original = ctx.sleep_ms

        async def recording(ms):
            sleeps.append(ms)
            await original(ms)

        monkeypatch.setattr(ctx, "sleep_ms", recording)
        monkeypatch.setattr(ctx, "uniform_ms", lambda low, high: low)
        processor = _make_processor(state, workspace, ctx, settings)

        await _run(processor, state, WriteTextAction(text="a", x=10, y=10))
        assert sleeps[-3:] == [400, 150, 300]
        assert 900 not in sleeps

        sleeps.clear()
        await _run(processor, state, RenderHtmlAction(html="<p/>", x=10, y=10))
        assert sleeps[-3:] == [900, 150, 300]

    @pytest.mark.asyncio
    async def test_pause_is_within_configured_range(self, state, workspace, ctx, settings, monkeypatch):
        pauses = []
        original = ctx.uniform_ms

        def recording(low, high):
            value = original(low, high)
            pauses.append(value)
            return value

        monkeypatch.setattr(ctx, "uniform_ms", recording)
        processor = _make_processor(state, workspace, ctx, settings)
        await _run(processor, state, *[WriteTextAction(text=str(i), x=i, y=i) for i in range(5)])
        assert len(pauses) == 5
        assert all(settings.min_action_delay_ms <= p <= settings.max_action_delay_ms for p in pauses)


class TestFailures:
    @pytest.mark.asyncio
    async def test_effect_error_fails_action_and_queue_continues(self, state, workspace, ctx, settings, logger, monkeypatch):
        original_add = workspace.add
        calls = []

        def flaky_add(obj):
            calls.append(obj)
            if len(calls) == 1:
                raise RuntimeError("scene locked")
            original_add(obj)

        monkeypatch.setattr(workspace, "add", flaky_add)
        processor = _make_processor(state, workspace, ctx, settings)

        first, second = await _run(
            processor, state, WriteTextAction(text="a", x=10, y=10), WriteTextAction(text="b", x=20, y=20)
        )

        assert first.status == ActionStatus.FAILED
        assert second.status == ActionStatus.COMPLETED
        assert [obj.text for obj in workspace.objects()] == ["b"]
        assert any("scene locked" in m for m in _messages(logger, "ERROR"))
        assert not processor.busy
        assert not state.is_acting and not state.is_clicking
        assert state.current_action is None

    @pytest.mark.asyncio
    async def test_abort_mid_motion(self, state, workspace, ctx, settings):
        processor = _make_processor(state, workspace, ctx, settings)
        state.queue.extend([MoveCursorAction(x=2000, y=0), WriteTextAction(text="later", x=5, y=5)])

        task = asyncio.create_task(processor.process_next())
        for _ in range(20):
            await asyncio.sleep(0)
        assert state.is_acting
        state.abort()
        action = await task

        assert action.status == ActionStatus.FAILED
        assert state.cursor_position != Point(2000, 0)
        assert state.queue.is_empty()
        assert not state.is_acting
        assert not processor.busy
        assert len(workspace) == 0

    @pytest.mark.asyncio
    async def test_abort_during_press_skips_effect(self, state, workspace, ctx, settings, monkeypatch):
        original = ctx.sleep_ms

        async def abort_on_press(ms):
            await original(ms)
            if ms == settings.press_duration_ms:
                state.abort()

        monkeypatch.setattr(ctx, "sleep_ms", abort_on_press)
        processor = _make_processor(state, workspace, ctx, settings)

        (action,) = await _run(processor, state, WriteTextAction(text="never", x=10, y=10))

        assert action.status == ActionStatus.FAILED
        assert len(workspace) == 0
        assert not state.is_clicking

    @pytest.mark.asyncio
    async def test_abort_during_look_pause_fails_move(self, state, workspace, ctx, settings, monkeypatch):
        original = ctx.sleep_ms

        async def abort_while_looking(ms):
            await original(ms)
            if ms == settings.look_pause_ms:
                state.abort()

        monkeypatch.setattr(ctx, "sleep_ms", abort_while_looking)
        processor = _make_processor(state, workspace, ctx, settings)

        (action,) = await _run(processor, state, MoveCursorAction(x=40, y=40))

        assert action.status == ActionStatus.FAILED
        assert not state.is_acting
