"""
Shared agent state: the action queue plus what the presentation observes.

All mutation goes through the setter methods so the single-writer rule stays
auditable: the processor writes cursor position, pressing and the activity
label; the planning bridge writes thinking and the agent message.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from models import ChatMessage, MessageRole, OverlayElement, Point
from agent_engine.actions import Action
from agent_engine.speech import NullSpeech, SpeechPort

GREETING = "Ghost System online. Describe what you want built."
ABORT_MESSAGE = "Task aborted by user."


class ActionQueue:
    """FIFO of pending actions: append at the tail, consume from the head."""

    def __init__(self) -> None:
        self._items: Deque[Action] = deque()
        self._lock = threading.Lock()

    def enqueue(self, action: Action) -> None:
        with self._lock:
            self._items.append(action)

    def extend(self, actions: Iterable[Action]) -> None:
        """Append a burst of actions atomically, preserving their order."""
        batch = list(actions)
        with self._lock:
            self._items.extend(batch)

    def dequeue_one(self) -> Optional[Action]:
        """Remove and return the head, or None when empty. Single consumer only."""
        with self._lock:
            return self._items.popleft() if self._items else None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def snapshot(self) -> List[Action]:
        with self._lock:
            return list(self._items)

    def is_empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class CancelToken:
    """Becomes cancelled once the state is aborted after the token was issued."""

    def __init__(self, state: "AgentState", epoch: int) -> None:
        self._state = state
        self._epoch = epoch

    @property
    def cancelled(self) -> bool:
        return self._state.epoch != self._epoch


class AgentState:
    """Single owned container for queue, cursor state, conversation and overlays."""

    def __init__(self, speech: Optional[SpeechPort] = None, cursor: Optional[Point] = None) -> None:
        self.queue = ActionQueue()
        self.speech: SpeechPort = speech or NullSpeech()
        self._cursor = cursor or Point(0.0, 0.0)
        self._thinking = False
        self._acting = False
        self._clicking = False
        self._current_action: Optional[str] = None
        self._agent_message: Optional[str] = None
        self._messages: List[ChatMessage] = [ChatMessage(MessageRole.MODEL, GREETING)]
        self._overlays: Dict[str, OverlayElement] = {}
        self._last_uploaded_image: Optional[str] = None
        self._epoch = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Cursor facets
    # ------------------------------------------------------------------
    @property
    def cursor_position(self) -> Point:
        return self._cursor

    def set_cursor_position(self, position: Point) -> None:
        self._cursor = Point(position.x, position.y)

    @property
    def is_thinking(self) -> bool:
        return self._thinking

    def set_thinking(self, thinking: bool) -> None:
        self._thinking = bool(thinking)

    @property
    def is_acting(self) -> bool:
        return self._acting

    def set_acting(self, acting: bool) -> None:
        self._acting = bool(acting)

    @property
    def is_clicking(self) -> bool:
        return self._clicking

    def set_clicking(self, clicking: bool) -> None:
        self._clicking = bool(clicking)

    @property
    def current_action(self) -> Optional[str]:
        return self._current_action

    def set_current_action(self, label: Optional[str]) -> None:
        self._current_action = label

    @property
    def agent_message(self) -> Optional[str]:
        return self._agent_message

    def set_agent_message(self, message: Optional[str]) -> None:
        self._agent_message = message

    @property
    def is_busy(self) -> bool:
        """True while thinking, acting or with work still queued."""
        return self._thinking or self._acting or not self.queue.is_empty()

    # ------------------------------------------------------------------
    # Conversation & reference image
    # ------------------------------------------------------------------
    @property
    def messages(self) -> List[ChatMessage]:
        with self._lock:
            return list(self._messages)

    def add_message(self, role: MessageRole, text: str) -> None:
        with self._lock:
            self._messages.append(ChatMessage(role, text))

    @property
    def last_uploaded_image(self) -> Optional[str]:
        return self._last_uploaded_image

    def set_last_uploaded_image(self, image: Optional[str]) -> None:
        self._last_uploaded_image = image

    # ------------------------------------------------------------------
    # Overlay elements
    # ------------------------------------------------------------------
    @property
    def overlays(self) -> Dict[str, OverlayElement]:
        with self._lock:
            return dict(self._overlays)

    def get_overlay(self, element_id: str) -> Optional[OverlayElement]:
        with self._lock:
            return self._overlays.get(element_id)

    def put_overlay(self, element: OverlayElement) -> None:
        with self._lock:
            self._overlays[element.id] = element

    def update_overlay(self, element_id: str, **changes) -> bool:
        """Merge ``changes`` into an existing overlay element; False if unknown."""
        with self._lock:
            element = self._overlays.get(element_id)
            if element is None:
                return False
            for name, value in changes.items():
                if not hasattr(element, name):
                    raise AttributeError(f"OverlayElement has no attribute '{name}'")
                setattr(element, name, value)
            return True

    def remove_overlay(self, element_id: str) -> bool:
        with self._lock:
            return self._overlays.pop(element_id, None) is not None

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------
    @property
    def epoch(self) -> int:
        return self._epoch

    def cancel_token(self) -> CancelToken:
        return CancelToken(self, self._epoch)

    def abort(self) -> None:
        """
        Stop everything: drop queued work, reset busy flags, silence speech.

        Idempotent. In-flight animations notice through their cancel token
        on their next tick; effects that already ran stay.
        """
        self.queue.clear()
        self._epoch += 1
        self._thinking = False
        self._acting = False
        self._clicking = False
        self._current_action = None
        self._agent_message = ABORT_MESSAGE
        try:
            self.speech.cancel()
        except Exception:
            pass
