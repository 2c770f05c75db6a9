"""Optional speech output. The core never depends on it being present."""

from __future__ import annotations

from typing import Callable, Optional, Protocol


class SpeechPort(Protocol):
    def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


class NullSpeech:
    """Speech port that says nothing."""

    def speak(self, text: str) -> None:
        return None

    def cancel(self) -> None:
        return None


class CallbackSpeech:
    """
    Forwards utterances to a callable, e.g. a console printer or a TTS hook.
    """

    def __init__(self, on_speak: Callable[[str], None], on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._on_speak = on_speak
        self._on_cancel = on_cancel
        self.spoken: list[str] = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)
        self._on_speak(text)

    def cancel(self) -> None:
        if self._on_cancel:
            self._on_cancel()
