"""
Key chord parsing and injection, plus literal text / symbol typing.

A keys string is either a chord ("ctrl shift t", "ctrl+w", "control ,") or
literal text. It is a chord only when every token is a known key name and at
most one token is not a modifier; anything else is typed as text.
"""
import ctypes
import time
from typing import Dict, List, Optional, Tuple

from natcmd.core.errors import EffectorError
from natcmd.core.logger import get_logger

# Key event flags
KEYEVENTF_KEYUP = 0x0002
KEYEVENTF_UNICODE = 0x0004
INPUT_KEYBOARD = 1

# Windows API (absent off Windows)
try:
    user32 = ctypes.windll.user32
except AttributeError:
    user32 = None

VK_SHIFT = 0x10
VK_CONTROL = 0x11
VK_MENU = 0x12
VK_LWIN = 0x5B

MODIFIERS: Dict[str, int] = {
    "ctrl": VK_CONTROL,
    "control": VK_CONTROL,
    "alt": VK_MENU,
    "menu": VK_MENU,
    "shift": VK_SHIFT,
    "win": VK_LWIN,
    "windows": VK_LWIN,
}

NAMED_KEYS: Dict[str, int] = {
    "enter": 0x0D,
    "return": 0x0D,
    "esc": 0x1B,
    "escape": 0x1B,
    "tab": 0x09,
    "space": 0x20,
    "backspace": 0x08,
    "delete": 0x2E,
    "del": 0x2E,
    "insert": 0x2D,
    "home": 0x24,
    "end": 0x23,
    "pageup": 0x21,
    "pagedown": 0x22,
    "up": 0x26,
    "down": 0x28,
    "left": 0x25,
    "right": 0x27,
    "comma": 0xBC,
    ",": 0xBC,
    "period": 0xBE,
    ".": 0xBE,
    "plus": 0xBB,
    "add": 0xBB,
    "minus": 0xBD,
    "subtract": 0xBD,
    "backslash": 0xDC,
    "\\": 0xDC,
    "slash": 0xBF,
    "/": 0xBF,
}
NAMED_KEYS.update({chr(c): c - 32 for c in range(ord("a"), ord("z") + 1)})
NAMED_KEYS.update({str(d): 0x30 + d for d in range(10)})
NAMED_KEYS.update({f"f{n}": 0x6F + n for n in range(1, 25)})


def _tokenize(keys: str) -> List[str]:
    text = (keys or "").strip().lower()
    # "ctrl++" and a lone "+" mean the plus key
    text = text.replace("++", "+plus")
    if text == "+":
        return ["plus"]
    return [t for t in text.replace("+", " ").split() if t]


def parse_chord(keys: str) -> Optional[Tuple[int, ...]]:
    """
    Virtual-key codes for a chord, modifiers first, or None for literal text.

    >>> parse_chord("ctrl shift t")
    (17, 16, 84)
    """
    tokens = _tokenize(keys)
    if not tokens:
        return None
    modifiers: List[int] = []
    main: List[int] = []
    for token in tokens:
        if token in MODIFIERS:
            vk = MODIFIERS[token]
            if vk not in modifiers:
                modifiers.append(vk)
        elif token in NAMED_KEYS:
            main.append(NAMED_KEYS[token])
        else:
            return None
    if len(main) > 1:
        return None
    return tuple(modifiers + main)


# ============================================================================
# SendInput structures (only used on Windows)
# ============================================================================

class KEYBDINPUT(ctypes.Structure):
    _fields_ = [
        ("wVk", ctypes.c_ushort),
        ("wScan", ctypes.c_ushort),
        ("dwFlags", ctypes.c_uint32),
        ("time", ctypes.c_uint32),
        ("dwExtraInfo", ctypes.c_size_t),
    ]


class MOUSEINPUT(ctypes.Structure):
    _fields_ = [
        ("dx", ctypes.c_int32),
        ("dy", ctypes.c_int32),
        ("mouseData", ctypes.c_uint32),
        ("dwFlags", ctypes.c_uint32),
        ("time", ctypes.c_uint32),
        ("dwExtraInfo", ctypes.c_size_t),
    ]


class _INPUTUNION(ctypes.Union):
    _fields_ = [("ki", KEYBDINPUT), ("mi", MOUSEINPUT)]


class INPUT(ctypes.Structure):
    _fields_ = [("type", ctypes.c_uint32), ("union", _INPUTUNION)]


def _require_user32():
    if user32 is None:
        raise EffectorError("keyboard injection requires Windows")
    return user32


def send_chord(vks: Tuple[int, ...]) -> None:
    """Press keys in order, release in reverse."""
    api = _require_user32()
    for vk in vks:
        api.keybd_event(vk, 0, 0, 0)
    time.sleep(0.02)
    for vk in reversed(vks):
        api.keybd_event(vk, 0, KEYEVENTF_KEYUP, 0)


def type_text(text: str) -> None:
    """Type text through KEYEVENTF_UNICODE events (one per UTF-16 unit)."""
    api = _require_user32()
    raw = text.encode("utf-16-le")
    units = [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]
    events = []
    for unit in units:
        for flags in (KEYEVENTF_UNICODE, KEYEVENTF_UNICODE | KEYEVENTF_KEYUP):
            events.append(INPUT(INPUT_KEYBOARD, _INPUTUNION(ki=KEYBDINPUT(0, unit, flags, 0, 0))))
    if not events:
        return
    array = (INPUT * len(events))(*events)
    sent = api.SendInput(len(events), array, ctypes.sizeof(INPUT))
    if sent != len(events):
        raise EffectorError(f"SendInput injected {sent}/{len(events)} events")


class WindowsKeyInjector:
    """KeyInjector over keybd_event / SendInput."""

    def __init__(self):
        self.logger = get_logger()

    def send_keys(self, keys: str) -> str:
        if not keys or not keys.strip():
            raise EffectorError("no keys to send")
        chord = parse_chord(keys)
        if chord is None:
            type_text(keys)
            return f"Typed: {keys}"
        send_chord(chord)
        self.logger.debug(f"[DISPATCH] chord {keys!r} -> {[hex(vk) for vk in chord]}")
        return f"Sent keys: {keys}"


class WindowsSymbolTyper:
    """SymbolTyper: the symbol goes in as unicode input, never as a chord."""

    def type_symbol(self, symbol: str) -> str:
        if not symbol:
            raise EffectorError("no symbol to type")
        type_text(symbol)
        return f"Inserted {symbol}"
