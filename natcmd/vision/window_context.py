"""
natcmd.vision.window_context

Foreground application detection (READ-ONLY).

get_foreground_window() returns the raw reading:
    {
        "app": str | None,      # Executable name, e.g. "devenv.exe"
        "title": str | None,
        "pid": int | None
    }

capture_context() turns it into a HostContextSnapshot, the value the
resolver and dispatcher work with. It is taken once per utterance.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import psutil

from natcmd.core.logger import get_logger


@dataclass(frozen=True)
class HostContextSnapshot:
    """
    One point-in-time read of the foreground application.

    process_name is lowercase with ".exe" stripped ("devenv", "code", "chrome").
    """
    process_name: Optional[str] = None
    window_title: Optional[str] = None
    pid: Optional[int] = None

    @classmethod
    def from_process(cls, app: Optional[str], title: Optional[str] = None, pid: Optional[int] = None) -> "HostContextSnapshot":
        return cls(normalize_process_name(app), title or None, pid or None)

    @property
    def known(self) -> bool:
        return bool(self.process_name)


EMPTY_CONTEXT = HostContextSnapshot()


def normalize_process_name(app: Optional[str]) -> Optional[str]:
    if not app:
        return None
    name = os.path.basename(str(app).strip().replace("\\", "/")).lower()
    return name.removesuffix(".exe") or None


# ============================================================================
# FOREGROUND READERS (Windows)
# ============================================================================
# Each reader returns (pid, title) for the foreground window. pywin32 is
# tried first, the raw user32 calls second.

try:
    import win32gui
    import win32process
    HAS_PYWIN32 = True
except ImportError:
    HAS_PYWIN32 = False

try:
    import ctypes
    from ctypes import wintypes
    _user32 = ctypes.windll.user32
except (ImportError, AttributeError):
    # ctypes.windll only exists on Windows
    _user32 = None

Reading = Tuple[Optional[int], Optional[str]]


def _read_pywin32() -> Reading:
    hwnd = win32gui.GetForegroundWindow()
    if not hwnd:
        return None, None
    _, pid = win32process.GetWindowThreadProcessId(hwnd)
    return pid or None, win32gui.GetWindowText(hwnd) or None


def _read_user32() -> Reading:
    hwnd = _user32.GetForegroundWindow()
    if not hwnd:
        return None, None
    length = _user32.GetWindowTextLengthW(hwnd)
    buf = ctypes.create_unicode_buffer(length + 1)
    if length > 0:
        _user32.GetWindowTextW(hwnd, buf, length + 1)
    pid = wintypes.DWORD()
    _user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
    return pid.value or None, buf.value or None


def _readers() -> List[Tuple[str, Callable[[], Reading]]]:
    readers = []
    if HAS_PYWIN32:
        readers.append(("pywin32", _read_pywin32))
    if _user32 is not None:
        readers.append(("user32", _read_user32))
    return readers


def process_name_for(pid: Optional[int]) -> Optional[str]:
    if not pid:
        return None
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


def get_foreground_window() -> Dict[str, Any]:
    """Read the foreground window. All values are None when nothing can be read."""
    logger = get_logger()
    if os.name != "nt":
        logger.debug("[CONTEXT] Not on Windows, no foreground window")
        return {"app": None, "title": None, "pid": None}

    pid, title = None, None
    for name, reader in _readers():
        try:
            pid, title = reader()
        except Exception as e:  # pywintypes.error is not an OSError
            logger.debug(f"[CONTEXT] {name} read failed: {e}")
            continue
        if pid or title:
            break

    app = process_name_for(pid)
    logger.debug(f"[CONTEXT] app={app or 'unknown'} title={title or 'unknown'} pid={pid or 'unknown'}")
    return {"app": app, "title": title, "pid": pid}


def capture_context() -> HostContextSnapshot:
    """Take one HostContextSnapshot of the foreground application."""
    info = get_foreground_window()
    return HostContextSnapshot.from_process(info.get("app"), info.get("title"), info.get("pid"))
