"""Tests for foreground context snapshots.

No real window is read: get_foreground_window is monkeypatched.

Run with: python -m pytest tests/test_window_context.py -v
"""

import os

import pytest

from natcmd.vision import window_context
from natcmd.vision.window_context import (
    EMPTY_CONTEXT,
    HostContextSnapshot,
    capture_context,
    normalize_process_name,
    process_name_for,
)


@pytest.mark.parametrize("app,expected", [
    ("devenv.exe", "devenv"),
    ("Code.exe", "code"),
    (r"C:\Program Files\Google\Chrome\Application\chrome.exe", "chrome"),
    ("firefox", "firefox"),
    ("", None),
    (None, None),
    (".exe", None),
])
def test_normalize_process_name(app, expected):
    assert normalize_process_name(app) == expected


def test_snapshot_from_process():
    snapshot = HostContextSnapshot.from_process("DEVENV.EXE", "", 0)
    assert snapshot == HostContextSnapshot("devenv", None, None)
    assert snapshot.known
    assert not EMPTY_CONTEXT.known


def test_capture_context(monkeypatch):
    monkeypatch.setattr(window_context, "get_foreground_window",
                        lambda: {"app": "Code.exe", "title": "main.py", "pid": 42})
    assert capture_context() == HostContextSnapshot("code", "main.py", 42)


def test_capture_context_nothing_read(monkeypatch):
    monkeypatch.setattr(window_context, "get_foreground_window",
                        lambda: {"app": None, "title": None, "pid": None})
    assert capture_context() == EMPTY_CONTEXT


def test_process_name_for_missing_pid():
    assert process_name_for(None) is None
    assert process_name_for(0) is None


def test_process_name_for_current_process():
    assert process_name_for(os.getpid())


@pytest.mark.skipif(os.name == "nt", reason="reads the real desktop on Windows")
def test_foreground_window_off_windows():
    assert window_context.get_foreground_window() == {"app": None, "title": None, "pid": None}
