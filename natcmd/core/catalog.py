"""natcmd.core.catalog

Command catalog: every table the resolver reads, frozen into one snapshot.

A CommandCatalog is built once at startup (built-in tables from
command_data plus the JSON tables in Config.config_dir()) and replaced
wholesale on reload or symbol set/unset.

HARD RULES:
- Snapshots are never mutated after construction
- Readers grab a snapshot once per utterance and never lock
- Writers (reload, set/unset symbol) serialize on CatalogStore's lock and
  swap the reference
- A missing or malformed table is an empty table plus a [CATALOG] warning
"""

from __future__ import annotations

import json
import os
import re
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from natcmd.core import command_data
from natcmd.core.action_codec import action_from_dict
from natcmd.core.actions import (
    ActionRequest,
    CloseTab,
    MoveWindow,
    Noop,
    OpenFolder,
    RunBundle,
    SendKeys,
)
from natcmd.core.config import Config
from natcmd.core.errors import ActionParseError, CatalogLoadError
from natcmd.core.logger import get_logger
from natcmd.core.normalizer import POLITENESS_PHRASES, TextNormalizer


RULE_KINDS = ("contains", "all_of", "prefix", "regex", "exact")

_COMPACT_RE = re.compile(r"[^\w]+")


def compact_alias(name: str) -> str:
    """Lowercase, punctuation and spaces removed: "Morning Setup!" -> "morningsetup"."""
    return _COMPACT_RE.sub("", (name or "").lower()).replace("_", "")


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-phrase containment (phrase must start and end on word boundaries)."""
    if not phrase:
        return False
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text) is not None


# ============================================================================
# ENTRY TYPES
# ============================================================================

@dataclass(frozen=True)
class PatternRule:
    """
    One predicate -> action rule.

    Kinds:
        contains: any phrase occurs as a whole phrase
        all_of:   every token occurs as a substring, any order
        prefix:   text starts with any phrase
        regex:    any pattern matches (re.search)
        exact:    text equals any phrase

    A rule carries either an action or a disabled reason. Disabled rules
    still consume the match and resolve to Noop.
    """
    kind: str
    terms: Tuple[str, ...]
    action: Optional[ActionRequest] = None
    disabled: Optional[str] = None
    name: str = ""
    _compiled: Tuple[Pattern, ...] = field(default=(), repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind not in RULE_KINDS:
            raise ValueError(f"unknown rule kind '{self.kind}'")
        if not self.terms:
            raise ValueError("rule has no terms")
        if self.action is None and not self.disabled:
            raise ValueError("rule needs an action or a disabled reason")
        if self.kind == "regex":
            # Patterns run against lowercase text, so they are kept as written
            try:
                compiled = tuple(re.compile(t) for t in self.terms)
            except re.error as e:
                raise ValueError(f"bad regex: {e}") from e
            object.__setattr__(self, "terms", tuple(self.terms))
            object.__setattr__(self, "_compiled", compiled)
        else:
            object.__setattr__(self, "terms", tuple(t.lower() for t in self.terms))

    def matches(self, text: str) -> bool:
        if self.kind == "contains":
            return any(contains_phrase(text, t) for t in self.terms)
        if self.kind == "all_of":
            return all(t in text for t in self.terms)
        if self.kind == "prefix":
            return any(text.startswith(t) for t in self.terms)
        if self.kind == "regex":
            return any(p.search(text) for p in self._compiled)
        return text in self.terms

    def build(self) -> ActionRequest:
        if self.action is not None:
            return self.action
        return Noop(self.disabled or "disabled")


@dataclass(frozen=True)
class ContextScope:
    """Mappings that only apply while one of `processes` is in the foreground."""
    name: str
    label: str
    processes: Tuple[str, ...]
    mappings: Tuple[Tuple[str, ActionRequest], ...] = ()

    def applies_to(self, process_name: Optional[str]) -> bool:
        return bool(process_name) and process_name.lower() in self.processes

    def lookup(self, phrase: str) -> Optional[ActionRequest]:
        for key, action in self.mappings:
            if key == phrase:
                return action
        return None


@dataclass(frozen=True)
class FuzzyEntry:
    label: str
    action: ActionRequest
    description: str = ""
    scope: str = ""


@dataclass(frozen=True)
class CommandCatalog:
    """Immutable snapshot of every command table."""
    literal_overrides: Mapping[str, ActionRequest]
    pattern_rules: Tuple[PatternRule, ...]
    context_scopes: Tuple[ContextScope, ...]
    fuzzy_entries: Tuple[FuzzyEntry, ...]
    macros: Mapping[str, RunBundle]
    substitutions: Mapping[str, str]
    symbols: Mapping[str, str]
    app_map: Mapping[str, str]
    website_map: Mapping[str, str]
    known_folders: Mapping[str, str]
    help_phrases: Tuple[str, ...]
    help_listings: Mapping[str, Tuple[Tuple[str, str], ...]]
    host_command_chords: Mapping[str, Tuple[str, ...]]
    misrecognitions: Mapping[str, str]
    normalizer: TextNormalizer

    def active_scopes(self, process_name: Optional[str]) -> Tuple[ContextScope, ...]:
        return tuple(s for s in self.context_scopes if s.applies_to(process_name))

    def scope_by_name(self, name: Optional[str]) -> Optional[ContextScope]:
        for scope in self.context_scopes:
            if scope.name == name:
                return scope
        return None

    def with_symbols(self, symbols: Mapping[str, str]) -> "CommandCatalog":
        return replace(self, symbols=_freeze(symbols))


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


# ============================================================================
# BUILT-IN PATTERN RULES
# ============================================================================

_ALWAYS_ON_TOP = "always-on-top is disabled"

BUILTIN_PATTERN_RULES: Tuple[PatternRule, ...] = (
    PatternRule("all_of", ("restore", "window"), MoveWindow("active", "current", "center", 80, 80), name="restore"),
    PatternRule("contains", ("unmaximize",), MoveWindow("active", "current", "center", 80, 80), name="restore"),
    PatternRule("contains", command_data.ALWAYS_ON_TOP_PHRASES, disabled=_ALWAYS_ON_TOP, name="always_on_top"),
    PatternRule("regex", command_data.ALWAYS_ON_TOP_REGEXES, disabled=_ALWAYS_ON_TOP, name="always_on_top"),
    PatternRule("all_of", ("float", "window", "above"), disabled=_ALWAYS_ON_TOP, name="always_on_top"),
    PatternRule("all_of", ("maximize", "window"), MoveWindow("active", "current", "center", 100, 100), name="maximize"),
    PatternRule("all_of", ("full screen", "window"), MoveWindow("active", "current", "center", 100, 100), name="maximize"),
    PatternRule("regex", (r"\b(move|snap)\b.*\bwindow\b.*\b(other|next) (monitor|screen)\b",),
                MoveWindow("active", "next"), name="next_monitor"),
    PatternRule("contains", ("left half",), MoveWindow("active", "current", "left", 50, 100), name="left_half"),
    PatternRule("contains", ("right half",), MoveWindow("active", "current", "right", 50, 100), name="right_half"),
    PatternRule("all_of", ("open", "document"), OpenFolder("Documents"), name="documents"),
    PatternRule("all_of", ("open", "download"), OpenFolder("Downloads"), name="downloads"),
    PatternRule("exact", command_data.CLOSE_TAB_PHRASES, CloseTab(), name="close_tab"),
    PatternRule("contains", command_data.CODE_SEARCH_PHRASES, SendKeys("control ,"), name="code_search"),
)


def _builtin_scopes(normalizer: TextNormalizer) -> List[ContextScope]:
    scopes = []
    for name, (label, processes, mappings) in command_data.CONTEXT_SCOPES.items():
        scopes.append(ContextScope(
            name=name,
            label=label,
            processes=tuple(p.lower() for p in processes),
            mappings=tuple((normalizer.normalize(k), a) for k, a in mappings),
        ))
    return scopes


def build_catalog(
    substitutions: Optional[Mapping[str, str]] = None,
    literal_overrides: Optional[Mapping[str, ActionRequest]] = None,
    pattern_rules: Iterable[PatternRule] = (),
    context_scopes: Iterable[ContextScope] = (),
    fuzzy_entries: Optional[Iterable[FuzzyEntry]] = None,
    macros: Iterable[RunBundle] = (),
    symbols: Optional[Mapping[str, str]] = None,
) -> CommandCatalog:
    """
    Assemble a snapshot from built-in tables plus caller-supplied extras.

    Configured entries go first (pattern rules, scope mappings) or win over
    built-ins on key collisions (overrides, substitutions).
    """
    subs = dict(command_data.DEFAULT_SUBSTITUTIONS)
    subs.update(substitutions or {})
    normalizer = TextNormalizer(subs, POLITENESS_PHRASES)

    overrides: Dict[str, ActionRequest] = {}
    for phrase, action in command_data.LITERAL_OVERRIDES.items():
        overrides[normalizer.normalize(phrase)] = action
    for phrase, action in (literal_overrides or {}).items():
        key = normalizer.normalize(phrase)
        if key:
            overrides[key] = action

    # Configured scopes extend built-ins of the same name (their mappings first)
    merged: Dict[str, ContextScope] = {s.name: s for s in _builtin_scopes(normalizer)}
    for scope in context_scopes:
        scope = replace(scope, mappings=tuple((normalizer.normalize(k), a) for k, a in scope.mappings))
        base = merged.get(scope.name)
        if base is not None:
            scope = replace(
                scope,
                label=scope.label or base.label,
                processes=scope.processes or base.processes,
                mappings=scope.mappings + base.mappings,
            )
        merged[scope.name] = scope

    if fuzzy_entries is None:
        fuzzy_entries = [
            FuzzyEntry(label, action, desc, scope)
            for label, desc, action, scope in command_data.FUZZY_ENTRIES
        ]

    macro_map: Dict[str, RunBundle] = {}
    for bundle in macros:
        key = normalizer.normalize(bundle.name)
        if not key:
            continue
        macro_map.setdefault(key, bundle)
        macro_map.setdefault(compact_alias(bundle.name), bundle)

    return CommandCatalog(
        literal_overrides=_freeze(overrides),
        pattern_rules=tuple(pattern_rules) + BUILTIN_PATTERN_RULES,
        context_scopes=tuple(merged.values()),
        fuzzy_entries=tuple(fuzzy_entries),
        macros=_freeze(macro_map),
        substitutions=_freeze(normalizer.substitutions),
        symbols=_freeze(command_data.DEFAULT_SYMBOLS if symbols is None else symbols),
        app_map=_freeze(command_data.APP_MAPPINGS),
        website_map=_freeze(command_data.WEBSITE_MAPPINGS),
        known_folders=_freeze(command_data.KNOWN_FOLDERS),
        help_phrases=tuple(normalizer.normalize(p) for p in command_data.HELP_PHRASES),
        help_listings=_freeze({k: tuple(v) for k, v in command_data.HELP_LISTINGS.items()}),
        host_command_chords=_freeze(command_data.HOST_COMMAND_CHORDS),
        misrecognitions=_freeze(command_data.MISRECOGNITIONS),
        normalizer=normalizer,
    )


# ============================================================================
# SYMBOL PERSISTENCE
# ============================================================================

class JsonSymbolStore:
    """Persists the name -> symbol table as one JSON object."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, str]]:
        """Stored table, or None when the file is missing or unusable."""
        logger = get_logger()
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"[CATALOG] Could not read symbols from {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"[CATALOG] {self.path.name} must be a JSON object, ignoring it")
            return None
        return {
            str(k).strip().lower(): v
            for k, v in data.items()
            if isinstance(v, str) and v and str(k).strip()
        }

    def save(self, symbols: Mapping[str, str]) -> None:
        """Write atomically (temp file + replace). Raises OSError."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(dict(symbols), f, ensure_ascii=False, indent=2, sort_keys=True)
        os.replace(tmp, self.path)


# ============================================================================
# JSON TABLE LOADER
# ============================================================================

class CatalogLoader:
    """
    Reads the JSON command tables from one directory.

    Every load_* method returns an empty table on a missing or malformed
    file; bad entries inside a good file are skipped one by one.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir is not None else Config.config_dir()
        self.logger = get_logger()

    def _path(self, file_name: str) -> Path:
        return self.config_dir / file_name

    def _read_json(self, file_name: str, expected: Tuple[type, ...]) -> Any:
        """Parse one table. Raises CatalogLoadError; None when the file is absent."""
        path = self._path(file_name)
        if not path.exists():
            self.logger.debug(f"[CATALOG] {file_name} not found, using built-ins")
            return None
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CatalogLoadError(f"{file_name}: {e}") from e
        if not isinstance(data, expected):
            names = " or ".join(t.__name__ for t in expected)
            raise CatalogLoadError(f"{file_name}: expected {names}, got {type(data).__name__}")
        return data

    def _load_table(self, file_name: str, expected: Tuple[type, ...]) -> Any:
        try:
            return self._read_json(file_name, expected)
        except CatalogLoadError as e:
            self.logger.warning(f"[CATALOG] Ignoring table {e}")
            return None

    def _action(self, raw: Any, where: str) -> Optional[ActionRequest]:
        try:
            return action_from_dict(
                raw,
                default_delay_ms=Config.DEFAULT_BUNDLE_DELAY_MS,
                default_continue=Config.DEFAULT_BUNDLE_CONTINUE_ON_ERROR,
            )
        except (ActionParseError, ValueError, TypeError, OverflowError) as e:
            self.logger.warning(f"[CATALOG] Skipping {where}: {e}")
            return None

    def load_substitutions(self) -> Dict[str, str]:
        data = self._load_table(Config.WORD_REPLACEMENTS_FILE, (dict,)) or {}
        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def load_literal_overrides(self) -> Dict[str, ActionRequest]:
        data = self._load_table(Config.LITERAL_OVERRIDES_FILE, (dict,)) or {}
        overrides: Dict[str, ActionRequest] = {}
        for phrase, raw in data.items():
            action = self._action(raw, f"override '{phrase}'")
            if action is not None:
                overrides[phrase] = action
        return overrides

    def load_pattern_rules(self) -> List[PatternRule]:
        data = self._load_table(Config.PATTERN_RULES_FILE, (list,)) or []
        rules: List[PatternRule] = []
        for i, raw in enumerate(data):
            if not isinstance(raw, dict):
                self.logger.warning(f"[CATALOG] Skipping pattern rule #{i}: not an object")
                continue
            terms = raw.get("phrases", raw.get("tokens", raw.get("pattern", raw.get("phrase"))))
            if isinstance(terms, str):
                terms = [terms]
            if not isinstance(terms, list) or not all(isinstance(t, str) for t in terms):
                self.logger.warning(f"[CATALOG] Skipping pattern rule #{i}: no phrases")
                continue
            action = None
            if raw.get("action") is not None:
                action = self._action(raw["action"], f"pattern rule #{i}")
                if action is None:
                    continue
            disabled = raw.get("disabled")
            if disabled is True:
                disabled = "disabled"
            try:
                rules.append(PatternRule(
                    kind=str(raw.get("kind", "contains")).lower(),
                    terms=tuple(terms),
                    action=action,
                    disabled=disabled if isinstance(disabled, str) else None,
                    name=str(raw.get("name", f"rule{i}")),
                ))
            except ValueError as e:
                self.logger.warning(f"[CATALOG] Skipping pattern rule #{i}: {e}")
        return rules

    def load_context_scopes(self) -> List[ContextScope]:
        data = self._load_table(Config.CONTEXT_SCOPES_FILE, (dict,)) or {}
        scopes: List[ContextScope] = []
        for name, raw in data.items():
            if not isinstance(raw, dict) or not isinstance(raw.get("mappings", {}), dict):
                self.logger.warning(f"[CATALOG] Skipping context scope '{name}': wrong shape")
                continue
            processes = raw.get("processes", [])
            if isinstance(processes, str):
                processes = [processes]
            if not isinstance(processes, list) or not all(isinstance(p, str) for p in processes):
                self.logger.warning(f"[CATALOG] Skipping context scope '{name}': processes must be a string or a list of strings")
                continue
            mappings = []
            for phrase, action_raw in raw.get("mappings", {}).items():
                action = self._action(action_raw, f"scope '{name}' mapping '{phrase}'")
                if action is not None:
                    mappings.append((phrase, action))
            scopes.append(ContextScope(
                name=str(name).lower(),
                label=str(raw.get("label", "")),
                processes=tuple(str(p).lower().removesuffix(".exe") for p in processes),
                mappings=tuple(mappings),
            ))
        return scopes

    def load_macros(self) -> List[RunBundle]:
        """
        Read multi_actions.json.

        Accepts a list of macro objects or {name: macro-object | [steps]}.
        A step {"type": "macro", "name": X} is replaced by X's steps; X itself
        must not reference a macro (one level only).
        """
        data = self._load_table(Config.MACROS_FILE, (list, dict))
        if not data:
            return []
        if isinstance(data, dict):
            raw_list = []
            for name, body in data.items():
                if isinstance(body, list):
                    body = {"name": name, "steps": body}
                elif isinstance(body, dict):
                    body = {"name": name, **body}
                raw_list.append(body)
        else:
            raw_list = data

        raw_by_name: Dict[str, Dict[str, Any]] = {}
        for i, raw in enumerate(raw_list):
            if not isinstance(raw, dict):
                self.logger.warning(f"[CATALOG] Skipping macro #{i}: not an object")
                continue
            name = raw.get("name", raw.get("Name"))
            steps = raw.get("steps", raw.get("Actions", raw.get("actions")))
            if not isinstance(name, str) or not name.strip() or not isinstance(steps, list):
                self.logger.warning(f"[CATALOG] Skipping macro #{i}: needs a name and a steps list")
                continue
            raw_by_name.setdefault(compact_alias(name), dict(raw, name=name.strip(), steps=steps))

        bundles: List[RunBundle] = []
        for key, raw in raw_by_name.items():
            try:
                steps = self._expand_steps(key, raw["steps"], raw_by_name)
                bundle = action_from_dict(
                    {
                        "type": "RunBundle",
                        "name": raw["name"],
                        "steps": steps,
                        "continue_on_error": _first(raw, "continue_on_error", "continueOnError", "ContinueOnError"),
                        "inter_step_delay_ms": _first(raw, "delay_ms", "inter_step_delay_ms", "delayMs", "DelayMsBetween"),
                    },
                    default_delay_ms=Config.DEFAULT_BUNDLE_DELAY_MS,
                    default_continue=Config.DEFAULT_BUNDLE_CONTINUE_ON_ERROR,
                )
            except (ActionParseError, ValueError, TypeError, OverflowError) as e:
                self.logger.warning(f"[CATALOG] Skipping macro '{raw['name']}': {e}")
                continue
            bundles.append(bundle)
        return bundles

    def _expand_steps(self, key: str, steps: List[Any], raw_by_name: Mapping[str, Dict[str, Any]]) -> List[Any]:
        expanded: List[Any] = []
        for step in steps:
            if not _is_macro_ref(step):
                expanded.append(step)
                continue
            ref_key = compact_alias(str(step.get("name", step.get("Name", ""))))
            if ref_key == key:
                raise ActionParseError("macro references itself")
            target = raw_by_name.get(ref_key)
            if target is None:
                raise ActionParseError(f"unknown macro '{step.get('name', step.get('Name'))}'")
            if any(_is_macro_ref(s) for s in target["steps"]):
                raise ActionParseError(f"macro '{target['name']}' is nested more than one level")
            expanded.extend(target["steps"])
        return expanded

    def load_symbols(self) -> Optional[Dict[str, str]]:
        return JsonSymbolStore(self._path(Config.SYMBOLS_FILE)).load()

    def symbol_store(self) -> JsonSymbolStore:
        return JsonSymbolStore(self._path(Config.SYMBOLS_FILE))

    def build(self) -> CommandCatalog:
        """Load every table and assemble a snapshot."""
        self.logger.info(f"[CATALOG] Loading command tables from {self.config_dir}")
        catalog = build_catalog(
            substitutions=self.load_substitutions(),
            literal_overrides=self.load_literal_overrides(),
            pattern_rules=self.load_pattern_rules(),
            context_scopes=self.load_context_scopes(),
            macros=self.load_macros(),
            symbols=self.load_symbols(),
        )
        self.logger.debug(
            f"[CATALOG] {len(catalog.literal_overrides)} overrides, "
            f"{len(catalog.pattern_rules)} pattern rules, {len(catalog.context_scopes)} scopes, "
            f"{len(catalog.macros)} macro keys, {len(catalog.symbols)} symbols"
        )
        return catalog


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _is_macro_ref(step: Any) -> bool:
    return isinstance(step, dict) and str(step.get("type", step.get("Type", ""))).strip().lower() == "macro"


# ============================================================================
# STORE
# ============================================================================

class CatalogStore:
    """
    Holds the current CommandCatalog and serializes writers.

    snapshot() is a plain attribute read; reference assignment is atomic, so
    readers never see a half-built catalog.
    """

    def __init__(
        self,
        loader: Optional[CatalogLoader] = None,
        symbol_store: Optional[JsonSymbolStore] = None,
        catalog: Optional[CommandCatalog] = None,
    ):
        self.logger = get_logger()
        self._loader = loader
        self._symbol_store = symbol_store
        if self._symbol_store is None and loader is not None:
            self._symbol_store = loader.symbol_store()
        self._lock = threading.Lock()
        if catalog is None:
            catalog = loader.build() if loader is not None else build_catalog()
        self._catalog = catalog

    def snapshot(self) -> CommandCatalog:
        return self._catalog

    def reload(self) -> CommandCatalog:
        """Rebuild from the loader (or built-ins) and swap."""
        with self._lock:
            catalog = self._loader.build() if self._loader is not None else build_catalog(
                symbols=self._catalog.symbols
            )
            self._catalog = catalog
            return catalog

    def set_symbol(self, name: str, symbol: str) -> CommandCatalog:
        key = " ".join((name or "").lower().split())
        if not key or not symbol:
            raise ValueError("symbol name and value are required")
        with self._lock:
            symbols = dict(self._catalog.symbols)
            symbols[key] = symbol
            self._catalog = self._catalog.with_symbols(symbols)
            self._persist(symbols)
            return self._catalog

    def unset_symbol(self, name: str) -> bool:
        """Remove a mapping. Returns False when the name was not mapped."""
        key = " ".join((name or "").lower().split())
        with self._lock:
            if key not in self._catalog.symbols:
                return False
            symbols = dict(self._catalog.symbols)
            del symbols[key]
            self._catalog = self._catalog.with_symbols(symbols)
            self._persist(symbols)
            return True

    def _persist(self, symbols: Mapping[str, str]) -> None:
        if self._symbol_store is None:
            return
        try:
            self._symbol_store.save(symbols)
        except OSError as e:
            self.logger.warning(f"[CATALOG] Could not save symbols to {self._symbol_store.path}: {e}")
