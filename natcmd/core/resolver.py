"""natcmd.core.resolver

Strategy cascade: NormalizedText + HostContextSnapshot + CommandCatalog
-> ActionRequest | Unresolved.

Stages run in a fixed order and the first non-empty MatchCandidate wins.
There is no blending across stages and no fallthrough once a stage matched.

    1. directive prefixes (play / focus / press / type / emoji / open / go to)
    2. literal overrides
    3. help phrases
    4. macros
    5. pattern rules (configured, then built-in)
    6. context-scoped mappings
    7. fuzzy catalog (LCS ratio > 0.6)

A strategy that raises is logged and treated as no match. resolve() never
throws.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Union

from natcmd.core.actions import (
    ActionRequest,
    FocusWindow,
    LaunchApp,
    MatchCandidate,
    Noop,
    OpenFolder,
    OpenWebsite,
    SendKeys,
    SetSymbol,
    ShowHelp,
    SymbolInsert,
    Unresolved,
)
from natcmd.core.catalog import CommandCatalog, compact_alias, contains_phrase
from natcmd.core.config import Config
from natcmd.core.logger import get_logger
from natcmd.core.similarity import score
from natcmd.vision.window_context import EMPTY_CONTEXT, HostContextSnapshot


class Strategy:
    """One cascade stage."""
    name = "strategy"

    def try_match(
        self,
        text: str,
        context: HostContextSnapshot,
        catalog: CommandCatalog,
    ) -> Optional[MatchCandidate]:
        raise NotImplementedError

    def _hit(self, action: ActionRequest, confidence: float = 1.0) -> MatchCandidate:
        return MatchCandidate(self.name, confidence, action)


# ============================================================================
# DIRECTIVE PARSING HELPERS
# ============================================================================

_PLAY_RE = re.compile(r"^play\s+(?P<name>.+)$")
_FOCUS_RE = re.compile(r"^(?:/focus|focus\s+window|focus)\s+(?P<target>.+)$")
_PRESS_RE = re.compile(r"^press\s+(?P<keys>.+)$")
_TYPE_RE = re.compile(r"^type\s+(?P<text>.+)$")
_EMOJI_SET_RE = re.compile(r"^emoji\s+set\s+(?P<rest>.+)$")
_EMOJI_UNSET_RE = re.compile(r"^emoji\s+unset\s+(?P<name>.+)$")
_EMOJI_TYPE_RE = re.compile(r"^emoji\s+type\s+(?P<symbol>.+)$")
_EMOJI_RE = re.compile(r"^emoji\s+(?P<name>.+)$")
_OPEN_RE = re.compile(r"^(?:open|launch)\s+(?P<target>.+)$")
_BROWSE_RE = re.compile(r"^(?:go\s+to|browse\s+to|browse|visit)\s+(?P<site>.+)$")

_SITE_NOISE_RE = re.compile(r"(?<!\w)(?:dot\s+com|\.com|com|website|site|web\s+page)(?!\w)")
_APP_NOISE_RE = re.compile(r"(?<!\w)(?:the|app|application|program)(?!\w)")
_APP_PREFIX_RE = re.compile(r"^(?:microsoft|ms)\s+")

_FOCUS_FILLER = {"window", "app", "the window", "the app"}


def _squash(text: str) -> str:
    return " ".join(text.split())


def parse_website(name: str, website_map) -> Optional[str]:
    """Map a spoken site name ("youtube dot com", "the github site") to its URL."""
    cleaned = _squash(_SITE_NOISE_RE.sub(" ", name))
    cleaned = re.sub(r"^the\s+", "", cleaned)
    if not cleaned:
        return None
    if cleaned in website_map:
        return website_map[cleaned]
    compact = cleaned.replace(" ", "")
    if compact in website_map:
        return website_map[compact]
    for key, url in website_map.items():
        if contains_phrase(cleaned, key):
            return url
    return None


def parse_app(name: str, app_map) -> Optional[str]:
    """Map a spoken app name ("the calculator app", "microsoft edge") to an executable."""
    if name in app_map:
        return app_map[name]
    cleaned = _squash(_APP_NOISE_RE.sub(" ", name))
    cleaned = _APP_PREFIX_RE.sub("", cleaned)
    if cleaned in app_map:
        return app_map[cleaned]
    return None


def parse_known_folder(name: str, known_folders) -> Optional[str]:
    cleaned = re.sub(r"^the\s+", "", name)
    cleaned = re.sub(r"\s+(?:folder|directory)$", "", cleaned)
    return known_folders.get(cleaned)


# ============================================================================
# STRATEGIES
# ============================================================================

class DirectivePrefixStrategy(Strategy):
    """Fixed verbs recognized by prefix, each with its own micro-parser."""
    name = "directive"

    def __init__(self, name_resolver=None):
        self.name_resolver = name_resolver

    def try_match(self, text, context, catalog):
        for parser in (
            self._play,
            self._focus,
            self._press,
            self._type,
            self._emoji,
            self._open,
            self._browse,
        ):
            action = parser(text, context, catalog)
            if action is not None:
                return self._hit(action)
        return None

    def _play(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _PLAY_RE.match(text)
        if not m or self.name_resolver is None:
            return None
        target = self.name_resolver.resolve(m.group("name"))
        if not target:
            get_logger().debug(f"[RESOLVE] play: no game matches '{m.group('name')}'")
            return None
        return LaunchApp(target)

    def _focus(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _FOCUS_RE.match(text)
        if not m:
            return None
        target = m.group("target").strip()
        if not target or target in _FOCUS_FILLER:
            return None
        # "focus error list" inside Visual Studio means the tool window
        for scope in catalog.active_scopes(context.process_name):
            action = scope.lookup(target)
            if action is not None:
                return action
        return FocusWindow(target)

    def _press(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _PRESS_RE.match(text)
        return SendKeys(m.group("keys").strip()) if m else None

    def _type(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _TYPE_RE.match(text)
        return SendKeys(m.group("text").strip()) if m else None

    def _emoji(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _EMOJI_SET_RE.match(text)
        if m:
            parts = m.group("rest").split()
            if len(parts) < 2:
                return None
            return SetSymbol(" ".join(parts[:-1]), parts[-1])

        m = _EMOJI_UNSET_RE.match(text)
        if m:
            return SetSymbol(m.group("name").strip(), None)

        m = _EMOJI_TYPE_RE.match(text)
        if m:
            return SymbolInsert(m.group("symbol").strip())

        m = _EMOJI_RE.match(text)
        if m:
            name = m.group("name").strip()
            symbol = catalog.symbols.get(name)
            if symbol:
                return SymbolInsert(symbol, name)
        return None

    def _open(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _OPEN_RE.match(text)
        if not m:
            return None
        target = m.group("target").strip()

        folder = parse_known_folder(target, catalog.known_folders)
        if folder:
            return OpenFolder(folder)

        url = parse_website(target, catalog.website_map)
        if url:
            return OpenWebsite(url)

        exe = parse_app(target, catalog.app_map)
        if exe:
            return LaunchApp(exe)
        return None

    def _browse(self, text, context, catalog) -> Optional[ActionRequest]:
        m = _BROWSE_RE.match(text)
        if not m:
            return None
        url = parse_website(m.group("site").strip(), catalog.website_map)
        return OpenWebsite(url) if url else None


class LiteralOverrideStrategy(Strategy):
    name = "literal_override"

    def try_match(self, text, context, catalog):
        action = catalog.literal_overrides.get(text)
        return self._hit(action) if action is not None else None


class HelpStrategy(Strategy):
    name = "help"

    def __init__(self, external_help_ui: Optional[bool] = None):
        self.external_help_ui = external_help_ui

    def try_match(self, text, context, catalog):
        if not any(contains_phrase(text, phrase) for phrase in catalog.help_phrases):
            return None
        external = Config.EXTERNAL_HELP_UI if self.external_help_ui is None else self.external_help_ui
        if external:
            return self._hit(Noop("help is shown by the external UI"))
        scopes = catalog.active_scopes(context.process_name)
        return self._hit(ShowHelp(scopes[0].name if scopes else None))


class MacroStrategy(Strategy):
    name = "macro"

    def try_match(self, text, context, catalog):
        bundle = catalog.macros.get(text)
        if bundle is None:
            bundle = catalog.macros.get(compact_alias(text))
        return self._hit(bundle) if bundle is not None else None


class PatternRuleStrategy(Strategy):
    name = "pattern_rule"

    def try_match(self, text, context, catalog):
        for rule in catalog.pattern_rules:
            if not rule.matches(text):
                continue
            action = rule.build()
            if rule.disabled and rule.action is None:
                get_logger().info(f"[RESOLVE] '{text}' matched disabled rule '{rule.name}': {rule.disabled}")
            return self._hit(action)
        return None


class ContextScopedStrategy(Strategy):
    """Host-specific mappings; exact pass over every mapping, then containment."""
    name = "context_scope"

    def try_match(self, text, context, catalog):
        scopes = catalog.active_scopes(context.process_name)
        if not scopes:
            return None
        for scope in scopes:
            action = scope.lookup(text)
            if action is not None:
                return self._hit(action)
        for scope in scopes:
            for phrase, action in scope.mappings:
                if contains_phrase(text, phrase):
                    return self._hit(action, 0.9)
        return None


class FuzzyCatalogStrategy(Strategy):
    name = "fuzzy"

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = Config.FUZZY_THRESHOLD if threshold is None else threshold

    def try_match(self, text, context, catalog):
        if not text:
            return None
        active = {s.name for s in catalog.active_scopes(context.process_name)}
        best = None
        best_score = 0.0
        for entry in catalog.fuzzy_entries:
            if entry.scope and entry.scope not in active:
                continue
            s = score(text, entry.label)
            # strict > keeps the first-declared entry on ties
            if s > best_score:
                best, best_score = entry, s
        if best is None or not best_score > self.threshold:
            return None
        get_logger().debug(f"[RESOLVE] fuzzy '{text}' ~ '{best.label}' ({best_score:.2f})")
        return self._hit(best.action, best_score)


def default_strategies(name_resolver=None) -> List[Strategy]:
    return [
        DirectivePrefixStrategy(name_resolver),
        LiteralOverrideStrategy(),
        HelpStrategy(),
        MacroStrategy(),
        PatternRuleStrategy(),
        ContextScopedStrategy(),
        FuzzyCatalogStrategy(),
    ]


class Resolver:
    """Runs the cascade in order; the first candidate wins."""

    def __init__(self, strategies: Optional[Sequence[Strategy]] = None, name_resolver=None):
        self.logger = get_logger()
        self.strategies = list(strategies) if strategies is not None else default_strategies(name_resolver)

    def match(
        self,
        text: str,
        context: Optional[HostContextSnapshot],
        catalog: CommandCatalog,
    ) -> Optional[MatchCandidate]:
        context = context or EMPTY_CONTEXT
        text = str(text or "")
        if not text:
            return None
        for strategy in self.strategies:
            try:
                candidate = strategy.try_match(text, context, catalog)
            except Exception as e:  # a broken stage must not take the cascade down
                self.logger.warning(f"[RESOLVE] Strategy '{strategy.name}' failed on '{text}': {e}")
                continue
            if candidate is not None:
                self.logger.debug(
                    f"[RESOLVE] '{text}' -> {candidate.action.kind} via {candidate.strategy_name} "
                    f"({candidate.confidence:.2f})"
                )
                return candidate
        return None

    def resolve(
        self,
        text: str,
        context: Optional[HostContextSnapshot],
        catalog: CommandCatalog,
    ) -> Union[ActionRequest, Unresolved]:
        candidate = self.match(text, context, catalog)
        if candidate is None:
            self.logger.debug(f"[RESOLVE] '{text}' unresolved")
            return Unresolved(str(text or ""))
        return candidate.action
