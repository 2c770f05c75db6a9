"""Global abort hotkey built on top of pynput."""

from __future__ import annotations

from typing import Callable, Dict, Optional

try:
    from pynput import keyboard  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore


class HotkeyManager:
    """Registers a system-wide hotkey that aborts the running agent task."""

    _SPECIAL_KEY_ALIASES: Dict[str, str] = {
        "ctrl": "ctrl",
        "control": "ctrl",
        "alt": "alt",
        "shift": "shift",
        "win": "cmd",
        "cmd": "cmd",
        "command": "cmd",
        "option": "alt",
        "super": "cmd",
        "esc": "esc",
        "escape": "esc",
        "pause": "pause",
        "space": "space",
        "tab": "tab",
        "enter": "enter",
        "return": "enter",
    }

    def __init__(self, abort_hotkey: str = "ctrl+shift+x") -> None:
        self._abort_hotkey = abort_hotkey
        self._abort_callback: Optional[Callable[[], None]] = None
        self._listener: Optional[object] = None
        self._is_registered = False
        self._last_error: Optional[str] = None

    @property
    def last_error(self) -> Optional[str]:
        """Reason the last registration attempt failed, if any."""
        return self._last_error

    def register_abort_callback(self, callback: Callable[[], None]) -> None:
        self._abort_callback = callback

    def enable_hotkeys(self) -> bool:
        if self._is_registered:
            return True

        if not self._abort_callback:
            self._last_error = "No abort callback registered"
            return False

        try:
            hotkey = self.to_pynput_hotkey(self._abort_hotkey)
        except ValueError as exc:
            self._last_error = f"Invalid hotkey definition: {exc}"
            return False

        if keyboard is None:
            self._last_error = "pynput/keyboard backend not available; global hotkeys disabled"
            self._listener = None
            self._is_registered = False
            return False
        try:
            self._listener = keyboard.GlobalHotKeys({hotkey: self._abort_callback})
            self._listener.start()
            self._is_registered = True
            self._last_error = None
            return True
        except Exception as exc:  # pragma: no cover - system specific
            self._last_error = f"Failed to register hotkeys: {exc}"
            self._listener = None
            self._is_registered = False
            return False

    def disable_hotkeys(self) -> None:
        if not self._is_registered:
            return

        if self._listener is not None:
            try:
                self._listener.stop()  # type: ignore[attr-defined]
            except Exception:
                pass
            self._listener = None

        self._is_registered = False

    def get_abort_hotkey(self) -> str:
        return self._abort_hotkey

    def update_hotkey(self, abort_hotkey: str) -> bool:
        was_registered = self._is_registered
        if was_registered:
            self.disable_hotkeys()

        self._abort_hotkey = abort_hotkey

        if was_registered:
            return self.enable_hotkeys()
        return True

    @classmethod
    def to_pynput_hotkey(cls, hotkey: str) -> str:
        """Translate ``"Ctrl+Shift+X"`` style strings into pynput's ``"<ctrl>+<shift>+x"``."""
        if not hotkey:
            raise ValueError("Empty hotkey string")

        tokens = [token.strip() for token in hotkey.replace("+", " ").split() if token.strip()]
        if not tokens:
            raise ValueError("Hotkey contains no tokens")

        parsed: list[str] = []
        for token in tokens:
            lower_token = token.lower()

            if lower_token in cls._SPECIAL_KEY_ALIASES:
                parsed.append(f"<{cls._SPECIAL_KEY_ALIASES[lower_token]}>")
                continue

            if lower_token.startswith("f") and lower_token[1:].isdigit():
                parsed.append(f"<{lower_token}>")
                continue

            if len(lower_token) == 1:
                parsed.append(lower_token)
                continue

            raise ValueError(f"Unknown key '{token}'")

        return "+".join(parsed)
