"""
Dict <-> ActionRequest conversion.

Used by the catalog loaders (JSON tables) and the AI fallback (model output).
Both sources are untrusted: unknown types, missing fields and wrong value
types raise ActionParseError, which callers turn into "skip entry" or
AIFailure respectively.

Accepted shape:
    {"type": "<variant or alias>", "<field>": value, ...}

Type names are matched case-insensitively with "_", "-" and spaces ignored,
so "MoveWindow", "move_window" and "MoveWindowAction" are all the same.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

from natcmd.core.actions import (
    ACTION_VARIANTS,
    ActionRequest,
    CloseTab,
    ExecuteHostCommand,
    FocusWindow,
    LaunchApp,
    MoveWindow,
    Noop,
    OpenFolder,
    OpenWebsite,
    ReloadCatalog,
    RunBundle,
    SendKeys,
    SetSymbol,
    ShowHelp,
    SymbolInsert,
)
from natcmd.core.errors import ActionParseError


def _type_key(name: str) -> str:
    key = re.sub(r"[\s_\-]+", "", name or "").lower()
    if key.endswith("action") and len(key) > len("action"):
        key = key[: -len("action")]
    return key


# Canonical variant names plus the names used by older tables and model prompts
TYPE_ALIAS_MAP: Dict[str, str] = {
    "executevscommand": "ExecuteHostCommand",
    "vscommand": "ExecuteHostCommand",
    "hostcommand": "ExecuteHostCommand",
    "emoji": "SymbolInsert",
    "typesymbol": "SymbolInsert",
    "setemoji": "SetSymbol",
    "runmultipleactions": "RunBundle",
    "multiaction": "RunBundle",
    "bundle": "RunBundle",
    "launch": "LaunchApp",
    "openapp": "LaunchApp",
    "presskeys": "SendKeys",
    "focus": "FocusWindow",
    "openurl": "OpenWebsite",
    "help": "ShowHelp",
    "none": "Noop",
}

# Disabled features that still have a recognizable action type
DISABLED_TYPES: Dict[str, str] = {
    "setwindowalwaysontop": "always-on-top is disabled",
}

_VARIANTS_BY_KEY: Dict[str, Type[ActionRequest]] = {
    _type_key(cls.__name__): cls for cls in ACTION_VARIANTS
}

# field name -> accepted keys, first present wins
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "target": ("target", "Target"),
    "monitor": ("monitor", "Monitor"),
    "position": ("position", "Position"),
    "width_pct": ("width_pct", "widthPct", "WidthPercent", "width_percent"),
    "height_pct": ("height_pct", "heightPct", "HeightPercent", "height_percent"),
    "title_substring": ("title_substring", "titleSubstring", "WindowTitleSubstring", "title"),
    "exe_or_uri": ("exe_or_uri", "exeOrUri", "AppExe", "AppIdOrPath", "app", "exe"),
    "keys": ("keys", "KeysText", "keys_text"),
    "known_folder": ("known_folder", "knownFolder", "KnownFolder", "folder"),
    "url": ("url", "Url", "URL"),
    "canonical_name": ("canonical_name", "canonicalName", "CommandName", "command"),
    "args": ("args", "Arguments", "arguments"),
    "symbol": ("symbol", "EmojiText", "emoji"),
    "name": ("name", "Name"),
    "scope": ("scope", "Scope"),
    "reason": ("reason", "Reason"),
    "steps": ("steps", "Actions", "actions"),
    "continue_on_error": ("continue_on_error", "continueOnError", "ContinueOnError"),
    "inter_step_delay_ms": ("inter_step_delay_ms", "interStepDelayMs", "delay_ms", "delayMs", "DelayMsBetween"),
}

_MISSING = object()


def variant_for_type(type_name: str) -> Optional[Type[ActionRequest]]:
    """Look up the ActionRequest class for a type name or alias."""
    key = _type_key(type_name)
    if key in _VARIANTS_BY_KEY:
        return _VARIANTS_BY_KEY[key]
    canonical = TYPE_ALIAS_MAP.get(key)
    if canonical:
        return _VARIANTS_BY_KEY.get(_type_key(canonical))
    return None


def _get(data: Mapping[str, Any], field_name: str, default: Any = _MISSING) -> Any:
    for key in FIELD_ALIASES.get(field_name, (field_name,)):
        if key in data and data[key] is not None:
            return data[key]
    if default is _MISSING:
        raise ActionParseError(f"missing field '{field_name}'")
    return default


def _str(data: Mapping[str, Any], field_name: str, default: Any = _MISSING, required: bool = True) -> Optional[str]:
    value = _get(data, field_name, default)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ActionParseError(f"field '{field_name}' must be a string")
    value = value.strip()
    if required and not value:
        raise ActionParseError(f"field '{field_name}' is empty")
    return value


def _opt_int(data: Mapping[str, Any], field_name: str) -> Optional[int]:
    value = _get(data, field_name, None)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ActionParseError(f"field '{field_name}' must be a number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ActionParseError(f"field '{field_name}' must be a number")
    except OverflowError:
        raise ActionParseError(f"field '{field_name}' is out of range")


def _bool(data: Mapping[str, Any], field_name: str, default: bool) -> bool:
    value = _get(data, field_name, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    raise ActionParseError(f"field '{field_name}' must be true/false")


def _build_move(data: Mapping[str, Any]) -> ActionRequest:
    return MoveWindow(
        target=_str(data, "target", "active") or "active",
        monitor=(_str(data, "monitor", "current") or "current").lower(),
        position=(_str(data, "position", None, required=False) or None),
        width_pct=_opt_int(data, "width_pct"),
        height_pct=_opt_int(data, "height_pct"),
    )


def _build_symbol_insert(data: Mapping[str, Any]) -> ActionRequest:
    return SymbolInsert(symbol=_str(data, "symbol"), name=_str(data, "name", None, required=False) or None)


def _build_set_symbol(data: Mapping[str, Any]) -> ActionRequest:
    return SetSymbol(name=_str(data, "name"), symbol=_str(data, "symbol", None, required=False) or None)


def _build_bundle(data: Mapping[str, Any], default_delay_ms: int, default_continue: bool) -> ActionRequest:
    raw_steps = _get(data, "steps")
    if not isinstance(raw_steps, list):
        raise ActionParseError("field 'steps' must be a list")
    steps: List[ActionRequest] = []
    for raw in raw_steps:
        steps.append(action_from_dict(raw, allow_bundle=False))
    if not steps:
        raise ActionParseError("bundle has no steps")
    delay = _opt_int(data, "inter_step_delay_ms")
    return RunBundle(
        name=_str(data, "name"),
        steps=tuple(steps),
        continue_on_error=_bool(data, "continue_on_error", default_continue),
        inter_step_delay_ms=default_delay_ms if delay is None else delay,
    )


_BUILDERS: Dict[Type[ActionRequest], Callable[[Mapping[str, Any]], ActionRequest]] = {
    MoveWindow: _build_move,
    FocusWindow: lambda d: FocusWindow(_str(d, "title_substring")),
    LaunchApp: lambda d: LaunchApp(_str(d, "exe_or_uri")),
    SendKeys: lambda d: SendKeys(_str(d, "keys")),
    OpenFolder: lambda d: OpenFolder(_str(d, "known_folder")),
    OpenWebsite: lambda d: OpenWebsite(_str(d, "url")),
    CloseTab: lambda d: CloseTab(),
    ExecuteHostCommand: lambda d: ExecuteHostCommand(
        _str(d, "canonical_name"), _str(d, "args", None, required=False) or None
    ),
    SymbolInsert: _build_symbol_insert,
    SetSymbol: _build_set_symbol,
    ReloadCatalog: lambda d: ReloadCatalog(),
    ShowHelp: lambda d: ShowHelp(_str(d, "scope", None, required=False) or None),
    Noop: lambda d: Noop(_str(d, "reason", "", required=False) or ""),
}


def action_from_dict(
    data: Any,
    allow_bundle: bool = True,
    default_delay_ms: int = 250,
    default_continue: bool = True,
) -> ActionRequest:
    """
    Build an ActionRequest from its dict shape.

    Args:
        data: Parsed JSON object
        allow_bundle: Whether a RunBundle may appear at this level
        default_delay_ms: Bundle delay when the dict does not set one
        default_continue: Bundle continue_on_error when the dict does not set one

    Raises:
        ActionParseError: Unknown type, nested bundle, or malformed fields
    """
    if not isinstance(data, Mapping):
        raise ActionParseError(f"action must be an object, got {type(data).__name__}")

    type_name = data.get("type", data.get("Type"))
    if not isinstance(type_name, str) or not type_name.strip():
        raise ActionParseError("action has no 'type'")

    key = _type_key(type_name)
    if key in DISABLED_TYPES:
        return Noop(DISABLED_TYPES[key])

    cls = variant_for_type(type_name)
    if cls is None:
        raise ActionParseError(f"unknown action type '{type_name}'")

    if cls is RunBundle:
        if not allow_bundle:
            raise ActionParseError("bundles cannot be nested")
        return _build_bundle(data, default_delay_ms, default_continue)

    try:
        return _BUILDERS[cls](data)
    except (TypeError, ValueError, OverflowError) as e:
        raise ActionParseError(f"invalid {cls.__name__}: {e}") from e
