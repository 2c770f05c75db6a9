import pytest

from agent_engine.actions import (
    Action,
    ActionError,
    ActionStatus,
    ActionTag,
    DrawPathAction,
    RenderHtmlAction,
    WriteTextAction,
)

MINIMAL_CALLS = {
    "move_cursor": ({"x": 1, "y": 2}, ActionTag.MOVE_CURSOR),
    "write_text": ({"text": "hi", "x": 1, "y": 2}, ActionTag.WRITE_TEXT),
    "draw_path": ({"pathSvg": "M 0 0 L 10 10", "x": 1, "y": 2}, ActionTag.DRAW_PATH),
    "create_vector_graphic": ({"svgXml": "<svg/>", "x": 1, "y": 2}, ActionTag.CREATE_SVG),
    "edit_vector_graphic": ({"objectId": "svg_1", "svgXml": "<svg/>"}, ActionTag.EDIT_SVG),
    "create_image": ({"base64": "AAAA", "x": 1, "y": 2}, ActionTag.CREATE_IMAGE),
    "render_html_element": ({"html": "<b>x</b>", "x": 1, "y": 2}, ActionTag.RENDER_HTML),
    "edit_html_element": ({"objectId": "web_1", "html": "<i>y</i>"}, ActionTag.EDIT_HTML),
    "drag_object": ({"objectId": "web_1", "toX": 3, "toY": 4}, ActionTag.DRAG_OBJECT),
    "delete_object": ({"objectId": "web_1"}, ActionTag.DELETE_OBJECT),
}


class TestFromToolCall:
    @pytest.mark.parametrize("name", sorted(MINIMAL_CALLS))
    def test_every_tool_maps_to_its_tag(self, name):
        args, tag = MINIMAL_CALLS[name]
        action = Action.from_tool_call(name, args)
        assert action.tag == tag
        assert action.status == ActionStatus.PENDING
        assert action.id.startswith("action_")

    def test_unknown_tool(self):
        with pytest.raises(ActionError, match="Unknown tool"):
            Action.from_tool_call("launch_rocket", {})

    def test_missing_required_argument(self):
        with pytest.raises(ActionError, match="write_text"):
            Action.from_tool_call("write_text", {"x": 1, "y": 2})

    @pytest.mark.parametrize("bad", ["left", True, float("nan"), None])
    def test_bad_coordinates(self, bad):
        with pytest.raises(ActionError):
            Action.from_tool_call("move_cursor", {"x": bad, "y": 2})

    def test_numeric_strings_are_accepted(self):
        action = Action.from_tool_call("move_cursor", {"x": "10", "y": 2.5})
        assert (action.x, action.y) == (10.0, 2.5)


class TestDefaults:
    def test_write_text(self):
        action = Action.from_tool_call("write_text", {"text": "hi", "x": 0, "y": 0})
        assert isinstance(action, WriteTextAction)
        assert action.font_size == 20
        assert action.color == "#ffffff"

    def test_draw_path(self):
        action = Action.from_tool_call("draw_path", {"pathSvg": "M 0 0 L 1 1", "x": 0, "y": 0})
        assert isinstance(action, DrawPathAction)
        assert (action.stroke_color, action.stroke_width) == ("#ff003c", 2)

    def test_render_html(self):
        action = Action.from_tool_call("render_html_element", {"html": "<b/>", "x": 0, "y": 0})
        assert isinstance(action, RenderHtmlAction)
        assert (action.width, action.height) == (400, 300)

    def test_render_html_explicit_size(self):
        action = Action.from_tool_call("render_html_element", {"html": "<b/>", "x": 0, "y": 0, "width": 640, "height": 480})
        assert (action.width, action.height) == (640, 480)


class TestMetadata:
    def test_ids_are_unique(self):
        ids = {Action.from_tool_call("move_cursor", {"x": 0, "y": 0}).id for _ in range(50)}
        assert len(ids) == 50

    def test_complex_actions(self):
        complex_tags = {
            name for name, (args, _tag) in MINIMAL_CALLS.items() if Action.from_tool_call(name, args).is_complex
        }
        assert complex_tags == {"render_html_element", "edit_html_element"}

    def test_labels(self):
        assert Action.from_tool_call("write_text", {"text": "a", "x": 0, "y": 0}).label == "Typing..."
        assert Action.from_tool_call("drag_object", {"objectId": "a", "toX": 0, "toY": 0}).label == "Grabbing..."
