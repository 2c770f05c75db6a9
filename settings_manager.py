"""
Persistence of the preferences a user changes from the Canvas Agent window.

Only the fields in :data:`PREFERENCE_FIELDS` are written. Engine timings,
the planner's thinking budget and the name of the API key variable stay
in code, so a saved file can never slow the agent down or point it at a
different credential. The file layout is::

    {"version": 1, "preferences": {"model_name": "...", ...}}
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

from logger import StatusLogger
from models import AgentSettings

FORMAT_VERSION = 1
PREFERENCE_FIELDS = (
    "model_name",
    "abort_hotkey",
    "speech_enabled",
    "canvas_background",
    "brush_color",
    "brush_width",
)


def preferences_of(settings: AgentSettings) -> Dict[str, Any]:
    return {name: getattr(settings, name) for name in PREFERENCE_FIELDS}


class SettingsManager:
    """Loads and saves user preferences layered over the engine defaults."""

    def __init__(self, storage_path: Optional[Path] = None, logger: Optional[StatusLogger] = None) -> None:
        package_root = Path(__file__).resolve().parent
        self._storage_path = storage_path or package_root / "agent_settings.json"
        self.logger = logger

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def load(self, base: Optional[AgentSettings] = None) -> AgentSettings:
        """
        Apply the saved preferences on top of ``base`` (defaults when omitted).

        A file that cannot be read, is not valid JSON, has the wrong layout
        or carries invalid values is moved aside to ``.bak`` and ``base`` is
        returned unchanged.
        """
        base = base or AgentSettings()
        path = self.storage_path
        if not path.exists():
            return base

        try:
            preferences = self._read_preferences(json.loads(path.read_text(encoding="utf-8")))
            return replace(base, **preferences)
        except (OSError, ValueError, TypeError) as e:
            self._quarantine(path, e)
            return base

    def save(self, settings: AgentSettings) -> Path:
        """Write the preferences of ``settings`` atomically; returns the file path."""
        path = self.storage_path
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {"version": FORMAT_VERSION, "preferences": preferences_of(settings)}
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)
        return path

    @staticmethod
    def _read_preferences(raw: Any) -> Dict[str, Any]:
        if not isinstance(raw, dict) or not isinstance(raw.get("preferences"), dict):
            raise ValueError("Settings file has invalid structure")
        version = raw.get("version")
        if not isinstance(version, int) or version > FORMAT_VERSION:
            raise ValueError(f"Unsupported settings version: {version!r}")

        stored = {name: value for name, value in raw["preferences"].items() if name in PREFERENCE_FIELDS}
        # from_dict coerces and validates; only the keys actually stored are applied
        parsed = AgentSettings.from_dict(stored)
        return {name: getattr(parsed, name) for name in stored}

    def _quarantine(self, path: Path, error: Exception) -> None:
        backup_path = path.with_suffix(".bak")
        try:
            path.replace(backup_path)
        except OSError as e:
            self._warn(f"Ignoring unreadable settings {path} ({error}); could not move it aside: {e}")
            return
        self._warn(f"Ignoring unreadable settings ({error}); kept a copy at {backup_path}")

    def _warn(self, message: str) -> None:
        if self.logger is not None:
            self.logger.log_warning(message)
