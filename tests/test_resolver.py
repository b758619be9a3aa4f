"""Tests for the resolver cascade.

Pure Python tests. No OS calls required.
Tests verify that:
- The end-to-end phrases land on the expected actions
- Earlier stages win over later ones (literal override beats fuzzy)
- The fuzzy threshold is exclusive (0.60 misses, 0.61 hits)
- Context-scoped mappings only fire for their process
- A strategy that raises is skipped, never propagated

Run with: python -m pytest tests/test_resolver.py -v
"""

import pytest

from natcmd.core.actions import (
    CloseTab,
    ExecuteHostCommand,
    FocusWindow,
    LaunchApp,
    MoveWindow,
    Noop,
    OpenFolder,
    OpenWebsite,
    RunBundle,
    SendKeys,
    SetSymbol,
    ShowHelp,
    SymbolInsert,
    Unresolved,
)
from natcmd.core.catalog import ContextScope, FuzzyEntry, build_catalog
from natcmd.core.command_data import DEFAULT_SYMBOLS
from natcmd.core.resolver import (
    FuzzyCatalogStrategy,
    HelpStrategy,
    LiteralOverrideStrategy,
    Resolver,
    Strategy,
)
from natcmd.core.similarity import score
from natcmd.vision.window_context import EMPTY_CONTEXT, HostContextSnapshot

from conftest import FakeNameResolver


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def resolver():
    return Resolver(name_resolver=FakeNameResolver({"portal 2": "620"}))


def resolve(resolver, catalog, raw, context=EMPTY_CONTEXT):
    return resolver.resolve(catalog.normalizer.normalize(raw), context, catalog)


# ============================================================================
# END-TO-END PHRASES
# ============================================================================

class TestScenarios:

    def test_maximize_window(self, resolver, catalog):
        assert resolve(resolver, catalog, "maximize window") == MoveWindow("active", "current", "center", 100, 100)

    def test_open_downloads(self, resolver, catalog):
        assert resolve(resolver, catalog, "open downloads") == OpenFolder("Downloads")

    def test_please_close_tab(self, resolver, catalog):
        assert catalog.normalizer.normalize("please close tab") == "close tab"
        assert resolve(resolver, catalog, "please close tab") == CloseTab()

    def test_typo_in_visual_studio(self, resolver, catalog, devenv):
        assert score("buld the solution", "build the solution") > 0.6
        assert resolve(resolver, catalog, "buld the solution", devenv) == ExecuteHostCommand("Build.BuildSolution")

    def test_typo_against_plain_fuzzy_catalog(self, resolver):
        catalog = build_catalog(fuzzy_entries=[
            FuzzyEntry("build the solution", ExecuteHostCommand("Build.BuildSolution")),
        ])
        assert resolve(resolver, catalog, "buld the solution") == ExecuteHostCommand("Build.BuildSolution")


# ============================================================================
# PRIORITY AND DETERMINISM
# ============================================================================

class TestPriority:

    def test_literal_override_beats_fuzzy(self, resolver):
        catalog = build_catalog(
            literal_overrides={"tidy up": SendKeys("ctrl k")},
            fuzzy_entries=[FuzzyEntry("tidy up", Noop("fuzzy"))],
        )
        candidate = resolver.match("tidy up", EMPTY_CONTEXT, catalog)
        assert candidate.action == SendKeys("ctrl k")
        assert candidate.strategy_name == "literal_override"

    def test_bare_focus_is_literal_override(self, resolver, catalog):
        assert resolve(resolver, catalog, "focus") == SendKeys("ctrl alt tab")

    def test_configured_rule_beats_builtin(self, resolver):
        from natcmd.core.catalog import PatternRule
        catalog = build_catalog(pattern_rules=[
            PatternRule("all_of", ("maximize", "window"), SendKeys("win up")),
        ])
        assert resolve(resolver, catalog, "maximize window") == SendKeys("win up")

    def test_deterministic(self, resolver, catalog, devenv):
        for raw, context in [("buld the solution", devenv), ("open downloads", EMPTY_CONTEXT), ("xyzzy", EMPTY_CONTEXT)]:
            results = {resolve(resolver, catalog, raw, context) for _ in range(5)}
            assert len(results) == 1

    def test_failing_strategy_is_skipped(self, catalog):
        class Exploding(Strategy):
            name = "exploding"

            def try_match(self, text, context, catalog):
                raise RuntimeError("kaboom")

        resolver = Resolver(strategies=[Exploding(), LiteralOverrideStrategy()])
        assert resolver.resolve("debug application", EMPTY_CONTEXT, catalog) == ExecuteHostCommand("Debug.Start")

    def test_empty_text_is_unresolved(self, resolver, catalog):
        assert resolver.resolve("", EMPTY_CONTEXT, catalog) == Unresolved("")


# ============================================================================
# FUZZY THRESHOLD
# ============================================================================

class TestFuzzyThreshold:

    def test_exactly_point_six_does_not_match(self, resolver):
        catalog = build_catalog(fuzzy_entries=[FuzzyEntry("abcdefghij", Noop("hit"))])
        assert score("abcdef", "abcdefghij") == 0.6
        assert isinstance(resolver.resolve("abcdef", EMPTY_CONTEXT, catalog), Unresolved)

    def test_point_six_one_matches(self, resolver):
        label = "a" * 61 + "b" * 39
        catalog = build_catalog(fuzzy_entries=[FuzzyEntry(label, Noop("hit"))])
        assert score("a" * 61, label) == pytest.approx(0.61)
        assert resolver.resolve("a" * 61, EMPTY_CONTEXT, catalog) == Noop("hit")

    def test_first_declared_entry_wins_ties(self):
        catalog = build_catalog(fuzzy_entries=[
            FuzzyEntry("close tabs", Noop("first")),
            FuzzyEntry("close tabx", Noop("second")),
        ])
        assert score("close tab", "close tabs") == score("close tab", "close tabx")
        candidate = FuzzyCatalogStrategy().try_match("close tab", EMPTY_CONTEXT, catalog)
        assert candidate.action == Noop("first")


# ============================================================================
# CONTEXT SCOPING
# ============================================================================

class TestContextScoping:

    @pytest.fixture
    def paint_catalog(self):
        scope = ContextScope("paint", "Paint", ("mspaint",), (("flip it", SendKeys("ctrl r")),))
        return build_catalog(context_scopes=[scope], fuzzy_entries=[])

    def test_scoped_mapping_fires_in_scope(self, resolver, paint_catalog):
        context = HostContextSnapshot.from_process("mspaint.exe")
        assert resolve(resolver, paint_catalog, "flip it", context) == SendKeys("ctrl r")

    def test_scoped_mapping_silent_out_of_scope(self, resolver, paint_catalog):
        context = HostContextSnapshot.from_process("notepad.exe")
        assert isinstance(resolve(resolver, paint_catalog, "flip it", context), Unresolved)
        assert isinstance(resolve(resolver, paint_catalog, "flip it"), Unresolved)

    def test_same_phrase_per_host(self, resolver, catalog, devenv, vscode):
        assert resolve(resolver, catalog, "format document", devenv) == ExecuteHostCommand("Edit.FormatDocument")
        assert resolve(resolver, catalog, "format document", vscode) == SendKeys("shift+alt+f")

    def test_visual_studio_phrase_outside_visual_studio(self, resolver, catalog):
        assert isinstance(resolve(resolver, catalog, "build the solution"), Unresolved)

    def test_containment_pass(self, resolver, catalog, devenv):
        candidate = resolver.match("show the error list", devenv, catalog)
        assert candidate.action == ExecuteHostCommand("View.ErrorList")
        assert candidate.confidence == 0.9


# ============================================================================
# DIRECTIVES
# ============================================================================

class TestDirectives:

    def test_play_uses_name_resolver(self, resolver, catalog):
        assert resolve(resolver, catalog, "play Portal 2") == LaunchApp("steam://rungameid/620")

    def test_play_without_resolver_falls_through(self, catalog):
        result = Resolver().resolve("play portal 2", EMPTY_CONTEXT, catalog)
        assert not isinstance(result, LaunchApp)

    def test_focus(self, resolver, catalog):
        assert resolve(resolver, catalog, "focus zoom") == FocusWindow("zoom")
        assert resolve(resolver, catalog, "focus window slack") == FocusWindow("slack")
        assert not isinstance(resolve(resolver, catalog, "focus window"), FocusWindow)

    def test_focus_tool_window_in_visual_studio(self, resolver, catalog, devenv):
        assert resolve(resolver, catalog, "focus error list", devenv) == ExecuteHostCommand("View.ErrorList")

    def test_press_and_type(self, resolver, catalog):
        assert resolve(resolver, catalog, "press ctrl shift t") == SendKeys("ctrl shift t")
        assert resolve(resolver, catalog, "type hello world") == SendKeys("hello world")

    def test_emoji(self, resolver, catalog):
        assert resolve(resolver, catalog, "emoji set rocket 🚀") == SetSymbol("rocket", "🚀")
        assert resolve(resolver, catalog, "emoji unset rocket") == SetSymbol("rocket", None)
        assert resolve(resolver, catalog, "emoji type 🎉") == SymbolInsert("🎉")
        assert resolve(resolver, catalog, "emoji happy") == SymbolInsert(DEFAULT_SYMBOLS["happy"], "happy")

    @pytest.mark.parametrize("raw,expected", [
        ("open calculator", LaunchApp("calc.exe")),
        ("open the calculator app", LaunchApp("calc.exe")),
        ("launch microsoft edge", LaunchApp("msedge.exe")),
        ("open youtube dot com", OpenWebsite("https://www.youtube.com")),
        ("open outlook", OpenWebsite("https://outlook.live.com")),
        ("open my documents", OpenFolder("Documents")),
        ("open the desktop folder", OpenFolder("Desktop")),
        ("go to github", OpenWebsite("https://github.com")),
        ("visit the reddit website", OpenWebsite("https://www.reddit.com")),
    ])
    def test_open_targets(self, resolver, catalog, raw, expected):
        assert resolve(resolver, catalog, raw) == expected

    def test_unknown_open_target_falls_through(self, resolver, catalog):
        assert isinstance(resolve(resolver, catalog, "open frobnicator"), Unresolved)


# ============================================================================
# HELP, RULES AND MACROS
# ============================================================================

class TestOtherStages:

    def test_help(self, resolver, catalog, devenv):
        assert resolve(resolver, catalog, "what can I say?") == ShowHelp(None)
        assert resolve(resolver, catalog, "show commands", devenv) == ShowHelp("devenv")

    def test_help_with_external_ui(self, catalog):
        candidate = HelpStrategy(external_help_ui=True).try_match("help", EMPTY_CONTEXT, catalog)
        assert isinstance(candidate.action, Noop)

    def test_disabled_always_on_top(self, resolver, catalog):
        assert resolve(resolver, catalog, "make this window always on top") == Noop("always-on-top is disabled")

    def test_next_monitor(self, resolver, catalog):
        assert resolve(resolver, catalog, "move the window to the other monitor") == MoveWindow("active", "next")

    def test_macro_by_name_and_alias(self, resolver):
        bundle = RunBundle("Morning Setup", (CloseTab(),), inter_step_delay_ms=0)
        catalog = build_catalog(macros=[bundle])
        assert resolve(resolver, catalog, "morning setup") is bundle
        assert resolver.resolve("morningsetup", EMPTY_CONTEXT, catalog) is bundle
