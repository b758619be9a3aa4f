"""
natcmd.vision

Read-only awareness of the foreground application. Used to scope commands
to the host the user is looking at (Visual Studio, VS Code, browsers).
"""
from natcmd.vision.window_context import HostContextSnapshot, capture_context, get_foreground_window

__all__ = ["HostContextSnapshot", "capture_context", "get_foreground_window"]
