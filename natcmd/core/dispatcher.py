"""natcmd.core.dispatcher

ActionRequest -> ExecutionResult through the effectors.

HARD RULES:
- execute() never throws; every failure becomes ExecutionResult(ok=False)
- One handler per concrete ActionRequest class (checked on construction)
- Fragile variants (FocusWindow, ExecuteHostCommand) run a fallback ladder;
  each rung is logged with [LADDER], the caller only sees the final result
- RunBundle steps run strictly in order; the inter-step delay is a
  cancellable Event.wait, never a blocking sleep
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from natcmd.core.actions import (
    ACTION_VARIANTS,
    ActionRequest,
    BundleState,
    CloseTab,
    ExecuteHostCommand,
    ExecutionResult,
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
    StepOutcome,
    SymbolInsert,
)
from natcmd.core.catalog import CatalogStore
from natcmd.core.config import Config
from natcmd.core.errors import EffectorError
from natcmd.core.logger import get_logger
from natcmd.tools.effectors import Effectors
from natcmd.vision.window_context import EMPTY_CONTEXT, HostContextSnapshot, capture_context


APP_SWITCH_CHORD = "ctrl alt tab"
CLOSE_TAB_CHORD = "ctrl w"
DEVENV_CLOSE_DOCUMENT = "Window.CloseDocumentWindow"
COMMAND_WINDOW_CHORD = "ctrl alt a"


def _ok(text: str) -> ExecutionResult:
    return ExecutionResult(text, True)


def _fail(text: str) -> ExecutionResult:
    return ExecutionResult(text, False)


class Dispatcher:
    """Routes each action variant to its effector."""

    def __init__(
        self,
        effectors: Effectors,
        store: Optional[CatalogStore] = None,
        context_provider: Callable[[], HostContextSnapshot] = capture_context,
    ):
        self.logger = get_logger()
        self.effectors = effectors
        self.store = store if store is not None else CatalogStore()
        self.context_provider = context_provider
        self._cancel = threading.Event()

        self._handlers: Dict[type, Callable[[ActionRequest], ExecutionResult]] = {
            MoveWindow: self._move_window,
            FocusWindow: self._focus_window,
            LaunchApp: self._launch_app,
            SendKeys: self._send_keys,
            OpenFolder: self._open_folder,
            OpenWebsite: self._open_website,
            CloseTab: self._close_tab,
            ExecuteHostCommand: self._host_command,
            SymbolInsert: self._symbol_insert,
            SetSymbol: self._set_symbol,
            ReloadCatalog: self._reload_catalog,
            ShowHelp: self._show_help,
            Noop: self._noop,
            RunBundle: self._run_bundle,
        }
        missing = [v.__name__ for v in ACTION_VARIANTS if v not in self._handlers]
        if missing:
            raise RuntimeError(f"Dispatcher has no handler for: {', '.join(missing)}")

    @property
    def handlers(self) -> Dict[type, Callable[[ActionRequest], ExecutionResult]]:
        return dict(self._handlers)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop any running bundle before its next step. Sticky until reset()."""
        self._cancel.set()

    def reset(self) -> None:
        self._cancel.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def execute(self, action: ActionRequest) -> ExecutionResult:
        handler = self._handlers.get(type(action))
        if handler is None:
            return _fail(f"Unsupported action: {type(action).__name__}")
        self.logger.debug(f"[DISPATCH] {action.to_dict()}")
        try:
            return handler(action)
        except EffectorError as e:
            self.logger.warning(f"[DISPATCH] {action.kind} failed: {e}")
            return _fail(f"{action.kind} failed: {e}")
        except Exception as e:  # effectors are external code
            self.logger.error(f"[DISPATCH] {action.kind} raised {type(e).__name__}: {e}")
            return _fail(f"{action.kind} failed: {e}")

    # ------------------------------------------------------------------
    # Single-effector variants
    # ------------------------------------------------------------------

    def _move_window(self, action: MoveWindow) -> ExecutionResult:
        placer = self.effectors.window_placer
        position = (action.position or "center").lower()
        if action.monitor == "next":
            return _ok(placer.move_to_next_monitor(action.target))
        if position in ("left", "right"):
            return _ok(placer.move_to_half(action.target, position))
        if position == "maximize" or (action.width_pct, action.height_pct) == (100, 100):
            return _ok(placer.maximize(action.target))
        if position == "center":
            return _ok(placer.restore(action.target, action.width_pct, action.height_pct))
        return _fail(f"Unsupported window position '{action.position}'")

    def _launch_app(self, action: LaunchApp) -> ExecutionResult:
        return _ok(self.effectors.process_launcher.launch(action.exe_or_uri))

    def _send_keys(self, action: SendKeys) -> ExecutionResult:
        return _ok(self.effectors.key_injector.send_keys(action.keys))

    def _open_folder(self, action: OpenFolder) -> ExecutionResult:
        return _ok(self.effectors.folder_opener.open_known_folder(action.known_folder))

    def _open_website(self, action: OpenWebsite) -> ExecutionResult:
        return _ok(self.effectors.url_opener.open_url(action.url))

    def _symbol_insert(self, action: SymbolInsert) -> ExecutionResult:
        return _ok(self.effectors.symbol_typer.type_symbol(action.symbol))

    def _noop(self, action: Noop) -> ExecutionResult:
        return _ok(f"No action taken: {action.reason}" if action.reason else "No action taken")

    # ------------------------------------------------------------------
    # Ladders
    # ------------------------------------------------------------------

    def _focus_window(self, action: FocusWindow) -> ExecutionResult:
        title = action.title_substring
        focuser = self.effectors.window_focuser

        rungs = (("focus", focuser.focus), ("click_focus", focuser.click_focus))
        for rung, attempt in rungs:
            try:
                focused = attempt(title)
            except EffectorError as e:
                self.logger.info(f"[LADDER] {rung}('{title}') failed: {e}")
                continue
            self.logger.info(f"[LADDER] {rung}('{title}') -> {'ok' if focused else 'no'}")
            if focused:
                suffix = "" if rung == "focus" else " (click)"
                return _ok(f"Focused window matching '{title}'{suffix}")

        try:
            self.effectors.key_injector.send_keys(APP_SWITCH_CHORD)
        except EffectorError as e:
            self.logger.info(f"[LADDER] app switcher failed: {e}")
            return _fail(f"Could not focus '{title}': {e}")
        self.logger.info(f"[LADDER] opened app switcher for '{title}'")
        return _fail(f"Could not focus '{title}'; opened app switcher")

    def _host_command(self, action: ExecuteHostCommand) -> ExecutionResult:
        name = action.canonical_name
        injector = self.effectors.key_injector
        try:
            if self.effectors.host_command_executor.execute(name, action.args):
                self.logger.info(f"[LADDER] {name} executed by host automation")
                return _ok(f"Executed {name}")
            self.logger.info(f"[LADDER] host automation declined {name}")
        except EffectorError as e:
            self.logger.info(f"[LADDER] host automation failed for {name}: {e}")

        chords = self.store.snapshot().host_command_chords.get(name)
        if chords:
            try:
                for chord in chords:
                    injector.send_keys(chord)
            except EffectorError as e:
                self.logger.info(f"[LADDER] keyboard fallback failed for {name}: {e}")
            else:
                self.logger.info(f"[LADDER] {name} sent as keys {list(chords)}")
                return _ok(f"Executed {name} via keyboard ({', '.join(chords)})")

        # Last rung: type the command into Visual Studio's Command Window.
        # Only attempted while devenv is in the foreground.
        if self._read_context().process_name != "devenv":
            self.logger.info(f"[LADDER] no command window for {name}: Visual Studio is not in the foreground")
            return _fail(f"Could not execute host command '{name}': no automation and no keyboard fallback")
        command = f"{name} {action.args}" if action.args else name
        try:
            injector.send_keys(COMMAND_WINDOW_CHORD)
            injector.send_keys(command)
            injector.send_keys("enter")
        except EffectorError as e:
            self.logger.info(f"[LADDER] command window failed for {name}: {e}")
            return _fail(f"Could not execute host command '{name}': {e}")
        self.logger.info(f"[LADDER] {name} typed into the command window")
        return _ok(f"Executed {name} via command window")

    def _read_context(self) -> HostContextSnapshot:
        try:
            return self.context_provider() or EMPTY_CONTEXT
        except Exception as e:  # context reads are best-effort
            self.logger.warning(f"[CONTEXT] Could not read foreground window: {e}")
            return EMPTY_CONTEXT

    def _close_tab(self, action: CloseTab) -> ExecutionResult:
        context = self._read_context()
        process = context.process_name
        if not process:
            return _fail("Could not detect current application.")
        if process == "devenv":
            return self._host_command(ExecuteHostCommand(DEVENV_CLOSE_DOCUMENT))
        if process in Config.CLOSE_TAB_PROCESSES:
            self.effectors.key_injector.send_keys(CLOSE_TAB_CHORD)
            return _ok(f"Closed tab in {process}")
        return _fail(f"Close tab is not supported in {process}.")

    # ------------------------------------------------------------------
    # Catalog writers and help
    # ------------------------------------------------------------------

    def _set_symbol(self, action: SetSymbol) -> ExecutionResult:
        if action.symbol:
            self.store.set_symbol(action.name, action.symbol)
            return _ok(f"Set emoji '{action.name}' to {action.symbol}")
        if self.store.unset_symbol(action.name):
            return _ok(f"Removed emoji '{action.name}'")
        return _fail(f"No emoji named '{action.name}'")

    def _reload_catalog(self, action: ReloadCatalog) -> ExecutionResult:
        catalog = self.store.reload()
        return _ok(
            f"Reloaded command tables ({len(catalog.literal_overrides)} overrides, "
            f"{len(catalog.pattern_rules)} rules, {len(catalog.symbols)} emoji)"
        )

    def format_help(self, scope: Optional[str] = None) -> str:
        catalog = self.store.snapshot()
        listing = catalog.help_listings.get(scope or "") or catalog.help_listings.get("", ())
        scope_def = catalog.scope_by_name(scope)
        title = f"{scope_def.label} commands" if scope_def and scope_def.label else "Available commands"

        lines = [f"{title}:"]
        for label, description in listing:
            symbol = catalog.symbols.get(label)
            prefix = f"{symbol} " if symbol else ""
            lines.append(f"- {prefix}{label}: {description}")
        return "\n".join(lines)

    def _show_help(self, action: ShowHelp) -> ExecutionResult:
        text = self.format_help(action.scope)
        presenter = self.effectors.help_presenter
        if presenter is not None:
            presenter.show(text.split(":", 1)[0], text)
        return _ok(text)

    # ------------------------------------------------------------------
    # Bundles
    # ------------------------------------------------------------------

    def _run_bundle(self, bundle: RunBundle) -> ExecutionResult:
        steps = bundle.steps
        total = len(steps)
        state = BundleState.PENDING
        outcomes: List[StepOutcome] = []
        delay_s = max(0, bundle.inter_step_delay_ms) / 1000.0

        if total == 0:
            return ExecutionResult(f"Executed bundle '{bundle.name}': no steps", True, BundleState.SUCCEEDED)

        state = BundleState.RUNNING
        self.logger.info(f"[BUNDLE] '{bundle.name}' starting ({total} steps)")
        for index, step in enumerate(steps, start=1):
            if index > 1 and delay_s:
                self._cancel.wait(delay_s)
            if self._cancel.is_set():
                state = BundleState.ABORTED
                self.logger.info(f"[BUNDLE] '{bundle.name}' cancelled before step {index}/{total}")
                return ExecutionResult(
                    f"Bundle '{bundle.name}' aborted at step {index}/{total} ({step.kind}): "
                    f"cancelled before step {index}",
                    False, state, tuple(outcomes),
                )

            result = self.execute(step)
            outcomes.append(StepOutcome(index, step, result.ok, result.text))
            self.logger.info(
                f"[BUNDLE] '{bundle.name}' step {index}/{total} {step.kind}: "
                f"{'ok' if result.ok else 'FAILED'} - {result.text}"
            )

            if not result.ok and not bundle.continue_on_error:
                state = BundleState.ABORTED
                return ExecutionResult(
                    f"Bundle '{bundle.name}' aborted at step {index}/{total} ({step.kind}): {result.text}",
                    False, state, tuple(outcomes),
                )

        if all(o.ok for o in outcomes):
            state = BundleState.SUCCEEDED
            return ExecutionResult(
                f"Executed bundle '{bundle.name}': {outcomes[-1].text}", True, state, tuple(outcomes)
            )

        state = BundleState.COMPLETED_WITH_ERRORS
        summary = "; ".join(
            f"step {o.index} ({o.action.kind}) {'ok' if o.ok else 'failed'}: {o.text}" for o in outcomes
        )
        return ExecutionResult(
            f"Bundle '{bundle.name}' completed with errors: {summary}", False, state, tuple(outcomes)
        )
