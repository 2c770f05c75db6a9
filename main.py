"""
Main entry point for the Canvas Agent application.

Clean Code principles:
- Minimal main file
- Services are wired inside the GUI root
- Clear program flow
"""

import sys
import tkinter as tk
from gui import WorkspaceGUI


def _enable_high_dpi_awareness() -> None:
    if not sys.platform.startswith("win"):
        return

    import ctypes

    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(2)
    except (AttributeError, OSError):
        try:
            ctypes.windll.user32.SetProcessDPIAware()
        except (AttributeError, OSError):
            # Tk falls back to its default scaling.
            pass


def main() -> None:
    """Start the workspace window and hand control to Tk."""
    _enable_high_dpi_awareness()
    root = tk.Tk()
    WorkspaceGUI(root)
    root.mainloop()


if __name__ == "__main__":
    main()
