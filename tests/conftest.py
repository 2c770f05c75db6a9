import base64
import io
import random

import pytest
from PIL import Image

from agent_engine.context import virtual_context
from agent_engine.state import AgentState
from logger import StatusLogger
from models import AgentSettings, Point
from workspace.scene import Workspace


@pytest.fixture
def logger():
    return StatusLogger(max_entries=1000)


@pytest.fixture
def ctx(logger):
    """Run context on a virtual clock with a seeded generator."""
    return virtual_context(logger=logger, rng=random.Random(7))


@pytest.fixture
def settings():
    return AgentSettings()


@pytest.fixture
def workspace():
    return Workspace(800, 600)


@pytest.fixture
def state():
    return AgentState(cursor=Point(0.0, 0.0))


def make_png_base64(width=20, height=10, color=(255, 0, 0, 255)):
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def png_base64():
    return make_png_base64()
