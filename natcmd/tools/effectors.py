"""
Effector interfaces the dispatcher drives, and the default Windows bundle.

Every method returns a short human-readable status string (or a bool where
noted) and raises EffectorError when it cannot do its job. The dispatcher
catches everything, so implementations stay simple.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class WindowPlacer(Protocol):
    def maximize(self, target: str) -> str: ...

    def restore(self, target: str, width_pct: Optional[int], height_pct: Optional[int]) -> str: ...

    def move_to_half(self, target: str, side: str) -> str: ...

    def move_to_next_monitor(self, target: str) -> str: ...


@runtime_checkable
class KeyInjector(Protocol):
    def send_keys(self, keys: str) -> str: ...


@runtime_checkable
class ProcessLauncher(Protocol):
    def launch(self, exe_or_uri: str) -> str: ...


@runtime_checkable
class FolderOpener(Protocol):
    def open_known_folder(self, name: str) -> str: ...


@runtime_checkable
class UrlOpener(Protocol):
    def open_url(self, url: str) -> str: ...


@runtime_checkable
class HostCommandExecutor(Protocol):
    def execute(self, name: str, args: Optional[str] = None) -> bool: ...


@runtime_checkable
class WindowFocuser(Protocol):
    def focus(self, title: str) -> bool: ...

    def click_focus(self, title: str) -> bool: ...


@runtime_checkable
class SymbolTyper(Protocol):
    def type_symbol(self, symbol: str) -> str: ...


@runtime_checkable
class NameResolver(Protocol):
    def resolve(self, name: str) -> Optional[str]: ...


@runtime_checkable
class HelpPresenter(Protocol):
    """
    Optional extension point for showing help outside the result text,
    e.g. a popup window. No implementation ships; ShowHelp always returns
    the listing as its result text.
    """

    def show(self, title: str, text: str) -> None: ...


@dataclass
class Effectors:
    """One implementation of each capability."""
    window_placer: WindowPlacer
    key_injector: KeyInjector
    process_launcher: ProcessLauncher
    folder_opener: FolderOpener
    url_opener: UrlOpener
    host_command_executor: HostCommandExecutor
    window_focuser: WindowFocuser
    symbol_typer: SymbolTyper
    help_presenter: Optional[HelpPresenter] = None


def build_default_effectors() -> Effectors:
    """Windows implementations. Importable anywhere; calls fail off Windows."""
    from natcmd.tools.host_commands import VisualStudioCommandExecutor
    from natcmd.tools.key_sender import WindowsKeyInjector, WindowsSymbolTyper
    from natcmd.tools.open_target import ShellFolderOpener, ShellProcessLauncher, WebBrowserUrlOpener
    from natcmd.tools.window_manager import WindowsWindowFocuser, WindowsWindowPlacer

    return Effectors(
        window_placer=WindowsWindowPlacer(),
        key_injector=WindowsKeyInjector(),
        process_launcher=ShellProcessLauncher(),
        folder_opener=ShellFolderOpener(),
        url_opener=WebBrowserUrlOpener(),
        host_command_executor=VisualStudioCommandExecutor(),
        window_focuser=WindowsWindowFocuser(),
        symbol_typer=WindowsSymbolTyper(),
    )
