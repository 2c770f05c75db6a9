"""Agent cursor drawn on the workspace canvas: arrow tip, activity label and speech bubble."""

from __future__ import annotations

import time
import tkinter as tk
from typing import Callable, Optional

from models import Point

TIP_COLOR = "#00f0ff"
PRESS_COLOR = "#ff003c"
BUBBLE_MAX_WIDTH = 250

# Arrow outline relative to the hot spot (top-left tip)
_ARROW = [(0, 0), (7.5, 17.5), (10.5, 10.5), (17.5, 7.5)]


def message_lifetime_ms(text: str) -> int:
    """How long a speech bubble stays up: five seconds plus reading time."""
    return 5000 + 50 * len(text)


class AgentCursorOverlay:
    """Draws the agent's virtual cursor on a Tk canvas, above everything else."""

    TAG = "agent_cursor"

    def __init__(self, canvas: tk.Canvas, on_message_expired: Optional[Callable[[], None]] = None) -> None:
        self._canvas = canvas
        self._on_message_expired = on_message_expired
        self._message: Optional[str] = None
        self._message_deadline = 0.0

    def update(
        self,
        position: Point,
        *,
        clicking: bool,
        thinking: bool,
        label: Optional[str],
        message: Optional[str],
    ) -> None:
        """Redraw at screen ``position`` with the current cursor state."""
        self._track_message(message)
        canvas = self._canvas
        canvas.delete(self.TAG)
        x, y = position.x, position.y

        if self._message:
            self._draw_bubble(x, y, self._message)

        scale = 0.75 if clicking else 1.0
        points = []
        for px, py in _ARROW:
            points.extend((x + px * scale, y + py * scale))
        canvas.create_polygon(
            points,
            fill=PRESS_COLOR if clicking else TIP_COLOR,
            outline="white",
            width=1.5,
            tags=self.TAG,
        )
        if clicking:
            canvas.create_oval(x - 8, y - 8, x + 32, y + 32, outline=TIP_COLOR, width=2, tags=self.TAG)

        if thinking or label:
            text = label or "Thinking..."
            text_id = canvas.create_text(
                x + 26, y + 24, text=text, anchor="nw", fill="#050505", font=("Segoe UI", 9, "bold"), tags=self.TAG
            )
            x0, y0, x1, y1 = canvas.bbox(text_id)
            box = canvas.create_rectangle(x0 - 8, y0 - 3, x1 + 8, y1 + 3, fill=TIP_COLOR, outline="", tags=self.TAG)
            canvas.tag_lower(box, text_id)

        canvas.tag_raise(self.TAG)

    def _track_message(self, message: Optional[str]) -> None:
        now = time.monotonic()
        if message != self._message:
            self._message = message
            self._message_deadline = now + message_lifetime_ms(message) / 1000.0 if message else 0.0
        elif message and now >= self._message_deadline:
            self._message = None
            if self._on_message_expired:
                self._on_message_expired()

    def _draw_bubble(self, x: float, y: float, text: str) -> None:
        canvas = self._canvas
        text_id = canvas.create_text(
            x + 28,
            y - 40,
            text=text,
            anchor="sw",
            width=BUBBLE_MAX_WIDTH,
            fill="black",
            font=("Segoe UI", 10),
            tags=self.TAG,
        )
        x0, y0, x1, y1 = canvas.bbox(text_id)
        bubble = canvas.create_rectangle(x0 - 10, y0 - 8, x1 + 10, y1 + 8, fill="white", outline="", tags=self.TAG)
        tail = canvas.create_polygon(x0 - 10, y1 + 8, x0 + 6, y1 + 8, x0 - 10, y1 + 20, fill="white", outline="", tags=self.TAG)
        canvas.tag_lower(tail, text_id)
        canvas.tag_lower(bubble, text_id)

    def clear(self) -> None:
        self._canvas.delete(self.TAG)
