import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_engine.actions import TOOL_ACTIONS
from agent_engine.planner import (
    TOOL_DECLARATIONS,
    GeminiPlanner,
    PlanningRequest,
    ScriptedPlanner,
    build_system_instruction,
    split_data_url,
)
from models import AgentSettings, SceneObjectData


def _make_request(**overrides):
    fields = dict(
        instruction="Draw a box",
        image_png=b"\x89PNG fake",
        objects=[SceneObjectData(id="text_1", type="i-text", left=10, top=20, width=50, height=20, fill="#fff", text_content="Hi")],
        viewport_size=(1000, 800),
    )
    fields.update(overrides)
    return PlanningRequest(**fields)


def _make_client(function_calls=None, text=None):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(function_calls=function_calls, text=text)
    )
    return client


class TestDeclarations:
    def test_every_tool_has_an_action(self):
        assert {d["name"] for d in TOOL_DECLARATIONS} == set(TOOL_ACTIONS)

    def test_required_arguments_are_declared(self):
        for declaration in TOOL_DECLARATIONS:
            params = declaration["parameters"]
            assert set(params["required"]) <= set(params["properties"])


class TestSystemInstruction:
    def test_mentions_viewport_and_objects(self):
        prompt = build_system_instruction(_make_request())
        assert "Visible Viewport Size: 1000x800" in prompt
        assert "x=500, y=400" in prompt
        assert "text_1 (i-text) at 10,20 [Text: Hi]" in prompt


class TestSplitDataUrl:
    def test_data_url(self):
        data, mime = split_data_url("data:image/jpeg;base64," + base64.b64encode(b"jpeg").decode())
        assert (data, mime) == (b"jpeg", "image/jpeg")

    def test_bare_base64_defaults_to_png(self):
        assert split_data_url(base64.b64encode(b"png").decode()) == (b"png", "image/png")


class TestGeminiPlanner:
    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(RuntimeError, match="No API key"):
            GeminiPlanner(AgentSettings())

    @pytest.mark.asyncio
    async def test_converts_function_calls(self):
        client = _make_client(
            function_calls=[SimpleNamespace(name="write_text", args={"text": "Hi", "x": 1, "y": 2})],
            text="Writing it down.",
        )
        planner = GeminiPlanner(AgentSettings(model_name="test-model"), client=client)

        response = await planner.plan(_make_request())

        assert [(c.name, c.args) for c in response.calls] == [("write_text", {"text": "Hi", "x": 1, "y": 2})]
        assert response.text == "Writing it down."
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "Visible Viewport Size: 1000x800" in kwargs["config"].system_instruction

    @pytest.mark.asyncio
    async def test_reference_image_is_attached(self):
        client = _make_client()
        planner = GeminiPlanner(client=client)
        reference = "data:image/png;base64," + base64.b64encode(b"ref").decode()

        response = await planner.plan(_make_request(reference_image=reference))

        assert response.calls == [] and response.text is None
        (content,) = client.aio.models.generate_content.await_args.kwargs["contents"]
        assert len(content.parts) == 3
        assert content.parts[-1].text == "COMMAND: Draw a box"


class TestScriptedPlanner:
    @pytest.mark.asyncio
    async def test_records_and_raises(self):
        planner = ScriptedPlanner(ValueError("offline"))
        with pytest.raises(ValueError):
            await planner.plan(_make_request())
        assert len(planner.requests) == 1
