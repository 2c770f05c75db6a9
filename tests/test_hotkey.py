from unittest.mock import MagicMock

import pytest

from hotkey_manager import HotkeyManager


class TestHotkeyTranslation:
    @pytest.mark.parametrize(
        "hotkey, expected",
        [
            ("ctrl+shift+x", "<ctrl>+<shift>+x"),
            ("Ctrl + Alt + Q", "<ctrl>+<alt>+q"),
            ("esc", "<esc>"),
            ("cmd+F5", "<cmd>+<f5>"),
        ],
    )
    def test_translates(self, hotkey, expected):
        assert HotkeyManager.to_pynput_hotkey(hotkey) == expected

    @pytest.mark.parametrize("hotkey", ["", "+", "ctrl+banana"])
    def test_rejects(self, hotkey):
        with pytest.raises(ValueError):
            HotkeyManager.to_pynput_hotkey(hotkey)


class TestHotkeyManager:
    def test_enable_without_callback(self):
        manager = HotkeyManager()
        assert manager.enable_hotkeys() is False
        assert manager.last_error == "No abort callback registered"

    def test_enable_with_invalid_hotkey(self):
        manager = HotkeyManager("ctrl+banana")
        manager.register_abort_callback(MagicMock())
        assert manager.enable_hotkeys() is False
        assert "banana" in manager.last_error

    def test_update_while_disabled(self):
        manager = HotkeyManager()
        assert manager.update_hotkey("ctrl+alt+a")
        assert manager.get_abort_hotkey() == "ctrl+alt+a"
