"""
Window placement and focus for the Windows desktop.

Targets are either "active" (the foreground window) or a title substring.
Geometry uses each monitor's work area so the taskbar stays visible.
"""
import ctypes
import time
from typing import Any, Dict, List, Optional, Tuple

from natcmd.core.errors import EffectorError
from natcmd.core.logger import get_logger

# Windows API constants
SW_MAXIMIZE = 3
SW_RESTORE = 9
SWP_NOZORDER = 0x0004
SWP_NOACTIVATE = 0x0010
MOUSEEVENTF_LEFTDOWN = 0x0002
MOUSEEVENTF_LEFTUP = 0x0004
VK_MENU = 0x12
KEYEVENTF_KEYUP = 0x0002

# Try to import pywin32, fallback to ctypes
try:
    import win32api
    import win32con
    import win32gui
    import win32process
    HAS_PYWIN32 = True
except ImportError:
    HAS_PYWIN32 = False

try:
    user32 = ctypes.windll.user32
except AttributeError:
    # ctypes.windll only exists on Windows
    user32 = None

try:
    import psutil
except ImportError:
    psutil = None


class RECT(ctypes.Structure):
    _fields_ = [("left", ctypes.c_long), ("top", ctypes.c_long), ("right", ctypes.c_long), ("bottom", ctypes.c_long)]


class POINT(ctypes.Structure):
    _fields_ = [("x", ctypes.c_long), ("y", ctypes.c_long)]


class MONITORINFO(ctypes.Structure):
    _fields_ = [("cbSize", ctypes.c_ulong), ("rcMonitor", RECT), ("rcWork", RECT), ("dwFlags", ctypes.c_ulong)]


def _require_windows() -> None:
    if user32 is None and not HAS_PYWIN32:
        raise EffectorError("window management requires Windows")


def _process_name(pid: int) -> str:
    if not pid or psutil is None:
        return ""
    try:
        return psutil.Process(pid).name().lower()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return ""


def _enumerate_windows() -> List[Dict[str, Any]]:
    """Visible, titled top-level windows in Z-order."""
    windows: List[Dict[str, Any]] = []

    if HAS_PYWIN32:
        def callback(hwnd, extra):
            if win32gui.IsWindowVisible(hwnd):
                title = win32gui.GetWindowText(hwnd)
                if title:
                    _, pid = win32process.GetWindowThreadProcessId(hwnd)
                    windows.append({"hwnd": hwnd, "title": title, "pid": pid, "process": _process_name(pid)})
            return True

        win32gui.EnumWindows(callback, None)
    else:
        EnumWindowsProc = ctypes.WINFUNCTYPE(ctypes.c_bool, ctypes.c_void_p, ctypes.c_void_p)

        def callback(hwnd, lParam):
            if user32.IsWindowVisible(hwnd):
                length = user32.GetWindowTextLengthW(hwnd)
                if length > 0:
                    buff = ctypes.create_unicode_buffer(length + 1)
                    user32.GetWindowTextW(hwnd, buff, length + 1)
                    if buff.value:
                        pid = ctypes.c_ulong()
                        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
                        windows.append({
                            "hwnd": hwnd,
                            "title": buff.value,
                            "pid": pid.value,
                            "process": _process_name(pid.value),
                        })
            return True

        user32.EnumWindows(EnumWindowsProc(callback), 0)

    return windows


def _find_window(title: str) -> Optional[int]:
    """Title substring first, then process name (case-insensitive)."""
    needle = title.lower()
    windows = _enumerate_windows()
    for window in windows:
        if needle in window["title"].lower():
            return window["hwnd"]
    for window in windows:
        if needle in window["process"]:
            return window["hwnd"]
    return None


def _foreground_window() -> Optional[int]:
    hwnd = win32gui.GetForegroundWindow() if HAS_PYWIN32 else user32.GetForegroundWindow()
    return hwnd or None


def _resolve_target(target: str) -> int:
    _require_windows()
    if not target or target.lower() == "active":
        hwnd = _foreground_window()
        if not hwnd:
            raise EffectorError("no active window")
        return hwnd
    hwnd = _find_window(target)
    if not hwnd:
        raise EffectorError(f"no window matching '{target}'")
    return hwnd


def _window_title(hwnd: int) -> str:
    if HAS_PYWIN32:
        return win32gui.GetWindowText(hwnd)
    length = user32.GetWindowTextLengthW(hwnd)
    buff = ctypes.create_unicode_buffer(length + 1)
    user32.GetWindowTextW(hwnd, buff, length + 1)
    return buff.value


def _window_rect(hwnd: int) -> Tuple[int, int, int, int]:
    if HAS_PYWIN32:
        return tuple(win32gui.GetWindowRect(hwnd))
    rect = RECT()
    user32.GetWindowRect(hwnd, ctypes.byref(rect))
    return rect.left, rect.top, rect.right, rect.bottom


def _enumerate_monitors() -> List[Dict[str, int]]:
    """Work areas of all monitors, primary first is not guaranteed."""
    monitors: List[Dict[str, int]] = []

    if HAS_PYWIN32:
        for handle, _, _ in win32api.EnumDisplayMonitors():
            left, top, right, bottom = win32api.GetMonitorInfo(handle)["Work"]
            monitors.append({"x": left, "y": top, "width": right - left, "height": bottom - top})
        return monitors

    MonitorEnumProc = ctypes.WINFUNCTYPE(ctypes.c_int, ctypes.c_void_p, ctypes.c_void_p, ctypes.POINTER(RECT), ctypes.c_void_p)

    def callback(hMonitor, hdcMonitor, lprcMonitor, dwData):
        info = MONITORINFO()
        info.cbSize = ctypes.sizeof(MONITORINFO)
        user32.GetMonitorInfoW(hMonitor, ctypes.byref(info))
        work = info.rcWork
        monitors.append({"x": work.left, "y": work.top, "width": work.right - work.left, "height": work.bottom - work.top})
        return 1

    user32.EnumDisplayMonitors(0, 0, MonitorEnumProc(callback), 0)
    return monitors


def _monitor_index(rect: Tuple[int, int, int, int], monitors: List[Dict[str, int]]) -> int:
    """Monitor containing the window's center (nearest one when off-screen)."""
    cx = (rect[0] + rect[2]) // 2
    cy = (rect[1] + rect[3]) // 2
    best, best_dist = 0, None
    for i, m in enumerate(monitors):
        if m["x"] <= cx < m["x"] + m["width"] and m["y"] <= cy < m["y"] + m["height"]:
            return i
        dist = abs(cx - (m["x"] + m["width"] // 2)) + abs(cy - (m["y"] + m["height"] // 2))
        if best_dist is None or dist < best_dist:
            best, best_dist = i, dist
    return best


def _show(hwnd: int, cmd: int) -> None:
    if HAS_PYWIN32:
        win32gui.ShowWindow(hwnd, cmd)
    else:
        user32.ShowWindow(hwnd, cmd)


def _is_maximized(hwnd: int) -> bool:
    if HAS_PYWIN32:
        return win32gui.GetWindowPlacement(hwnd)[1] == win32con.SW_SHOWMAXIMIZED
    return bool(user32.IsZoomed(hwnd))


def _set_rect(hwnd: int, x: int, y: int, w: int, h: int) -> None:
    _show(hwnd, SW_RESTORE)
    flags = SWP_NOZORDER | SWP_NOACTIVATE
    if HAS_PYWIN32:
        win32gui.SetWindowPos(hwnd, 0, x, y, w, h, flags)
    elif not user32.SetWindowPos(hwnd, 0, x, y, w, h, flags):
        raise EffectorError("SetWindowPos failed")


def _current_monitor(hwnd: int) -> Dict[str, int]:
    monitors = _enumerate_monitors()
    if not monitors:
        raise EffectorError("no monitors found")
    return monitors[_monitor_index(_window_rect(hwnd), monitors)]


class WindowsWindowPlacer:
    """WindowPlacer over user32 / pywin32."""

    def __init__(self):
        self.logger = get_logger()

    def maximize(self, target: str) -> str:
        hwnd = _resolve_target(target)
        _show(hwnd, SW_MAXIMIZE)
        return f"Maximized '{_window_title(hwnd)}'"

    def restore(self, target: str, width_pct: Optional[int], height_pct: Optional[int]) -> str:
        hwnd = _resolve_target(target)
        mon = _current_monitor(hwnd)
        wp = max(10, min(100, width_pct or 80))
        hp = max(10, min(100, height_pct or 80))
        w = mon["width"] * wp // 100
        h = mon["height"] * hp // 100
        _set_rect(hwnd, mon["x"] + (mon["width"] - w) // 2, mon["y"] + (mon["height"] - h) // 2, w, h)
        return f"Restored '{_window_title(hwnd)}' to {wp}% x {hp}%"

    def move_to_half(self, target: str, side: str) -> str:
        side = (side or "").lower()
        if side not in ("left", "right"):
            raise EffectorError(f"unknown side '{side}'")
        hwnd = _resolve_target(target)
        mon = _current_monitor(hwnd)
        w = mon["width"] // 2
        x = mon["x"] if side == "left" else mon["x"] + mon["width"] - w
        _set_rect(hwnd, x, mon["y"], w, mon["height"])
        return f"Moved '{_window_title(hwnd)}' to the {side} half"

    def move_to_next_monitor(self, target: str) -> str:
        hwnd = _resolve_target(target)
        monitors = _enumerate_monitors()
        if len(monitors) < 2:
            raise EffectorError("only one monitor connected")

        was_maximized = _is_maximized(hwnd)
        rect = _window_rect(hwnd)
        current = _monitor_index(rect, monitors)
        src = monitors[current]
        dst = monitors[(current + 1) % len(monitors)]

        # Keep the window's relative position and size
        rel_x = (rect[0] - src["x"]) / max(1, src["width"])
        rel_y = (rect[1] - src["y"]) / max(1, src["height"])
        w = min(dst["width"], int((rect[2] - rect[0]) * dst["width"] / max(1, src["width"])))
        h = min(dst["height"], int((rect[3] - rect[1]) * dst["height"] / max(1, src["height"])))
        _set_rect(hwnd, dst["x"] + int(rel_x * dst["width"]), dst["y"] + int(rel_y * dst["height"]), w, h)
        if was_maximized:
            _show(hwnd, SW_MAXIMIZE)
        return f"Moved '{_window_title(hwnd)}' to monitor {(current + 1) % len(monitors) + 1}"


class WindowsWindowFocuser:
    """WindowFocuser: restore + set foreground, or a simulated title-bar click."""

    def __init__(self):
        self.logger = get_logger()

    def focus(self, title: str) -> bool:
        _require_windows()
        hwnd = _find_window(title)
        if not hwnd:
            self.logger.debug(f"[LADDER] no window matching '{title}'")
            return False
        _show(hwnd, SW_RESTORE)
        # A synthetic Alt press lifts the foreground lock for this process
        if user32 is not None:
            user32.keybd_event(VK_MENU, 0, 0, 0)
            user32.keybd_event(VK_MENU, 0, KEYEVENTF_KEYUP, 0)
        if HAS_PYWIN32:
            try:
                win32gui.SetForegroundWindow(hwnd)
            except win32gui.error as e:
                self.logger.debug(f"[LADDER] SetForegroundWindow refused: {e}")
        else:
            user32.SetForegroundWindow(hwnd)
        time.sleep(0.05)
        return _foreground_window() == hwnd

    def click_focus(self, title: str) -> bool:
        _require_windows()
        if user32 is None:
            return False
        hwnd = _find_window(title)
        if not hwnd:
            return False
        _show(hwnd, SW_RESTORE)
        left, top, right, _ = _window_rect(hwnd)

        saved = POINT()
        user32.GetCursorPos(ctypes.byref(saved))
        # Title bar, away from the caption buttons
        user32.SetCursorPos((left + right) // 2, top + 10)
        user32.mouse_event(MOUSEEVENTF_LEFTDOWN, 0, 0, 0, 0)
        user32.mouse_event(MOUSEEVENTF_LEFTUP, 0, 0, 0, 0)
        user32.SetCursorPos(saved.x, saved.y)
        time.sleep(0.05)
        return _foreground_window() == hwnd
