"""
Shared fixtures: recording fake effectors, catalogs and a dispatcher.

The fakes never touch the OS. Each records its calls as tuples
("method", *args) and can be told to fail per method.
"""

import pytest

from natcmd.core.catalog import CatalogStore, build_catalog
from natcmd.core.dispatcher import Dispatcher
from natcmd.core.errors import EffectorError
from natcmd.core.logger import init_logger
from natcmd.tools.effectors import Effectors
from natcmd.vision.window_context import EMPTY_CONTEXT, HostContextSnapshot


# ============================================================================
# FAKE EFFECTORS
# ============================================================================

class FakeEffector:
    def __init__(self):
        self.calls = []
        self.failures = {}

    def fail(self, method, message="boom"):
        self.failures[method] = EffectorError(message)

    def _record(self, method, *args):
        self.calls.append((method,) + args)
        error = self.failures.get(method)
        if error is not None:
            raise error


class FakeWindowPlacer(FakeEffector):
    def maximize(self, target):
        self._record("maximize", target)
        return f"Maximized {target}"

    def restore(self, target, width_pct, height_pct):
        self._record("restore", target, width_pct, height_pct)
        return f"Restored {target}"

    def move_to_half(self, target, side):
        self._record("move_to_half", target, side)
        return f"Moved {target} to {side} half"

    def move_to_next_monitor(self, target):
        self._record("move_to_next_monitor", target)
        return f"Moved {target} to next monitor"


class FakeKeyInjector(FakeEffector):
    def send_keys(self, keys):
        self._record("send_keys", keys)
        return f"Sent keys: {keys}"


class FakeProcessLauncher(FakeEffector):
    def launch(self, exe_or_uri):
        self._record("launch", exe_or_uri)
        return f"Launched {exe_or_uri}"


class FakeFolderOpener(FakeEffector):
    def open_known_folder(self, name):
        self._record("open_known_folder", name)
        return f"Opened {name}"


class FakeUrlOpener(FakeEffector):
    def open_url(self, url):
        self._record("open_url", url)
        return f"Opened {url}"


class FakeHostCommandExecutor(FakeEffector):
    def __init__(self, result=True):
        super().__init__()
        self.result = result

    def execute(self, name, args=None):
        self._record("execute", name, args)
        return self.result


class FakeWindowFocuser(FakeEffector):
    def __init__(self, focus_result=True, click_result=True):
        super().__init__()
        self.focus_result = focus_result
        self.click_result = click_result

    def focus(self, title):
        self._record("focus", title)
        return self.focus_result

    def click_focus(self, title):
        self._record("click_focus", title)
        return self.click_result


class FakeSymbolTyper(FakeEffector):
    def type_symbol(self, symbol):
        self._record("type_symbol", symbol)
        return f"Inserted {symbol}"


class FakeHelpPresenter(FakeEffector):
    def show(self, title, text):
        self._record("show", title, text)


class FakeNameResolver:
    def __init__(self, games=None):
        self.games = games or {}
        self.queries = []

    def resolve(self, name):
        self.queries.append(name)
        app_id = self.games.get(name.lower())
        return f"steam://rungameid/{app_id}" if app_id else None


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep test output free of pipeline chatter."""
    init_logger("ERROR")
    yield


@pytest.fixture
def effectors():
    return Effectors(
        window_placer=FakeWindowPlacer(),
        key_injector=FakeKeyInjector(),
        process_launcher=FakeProcessLauncher(),
        folder_opener=FakeFolderOpener(),
        url_opener=FakeUrlOpener(),
        host_command_executor=FakeHostCommandExecutor(),
        window_focuser=FakeWindowFocuser(),
        symbol_typer=FakeSymbolTyper(),
    )


@pytest.fixture
def catalog():
    return build_catalog()


@pytest.fixture
def store():
    return CatalogStore(catalog=build_catalog())


class HostContext:
    """Mutable stand-in for the foreground window."""

    def __init__(self):
        self.snapshot = EMPTY_CONTEXT

    def set(self, process_name, title=None):
        self.snapshot = HostContextSnapshot.from_process(process_name, title)

    def __call__(self):
        return self.snapshot


@pytest.fixture
def host_context():
    return HostContext()


@pytest.fixture
def dispatcher(effectors, store, host_context):
    return Dispatcher(effectors, store, context_provider=host_context)


@pytest.fixture
def devenv():
    return HostContextSnapshot.from_process("devenv.exe", "MySolution - Microsoft Visual Studio")


@pytest.fixture
def vscode():
    return HostContextSnapshot.from_process("Code.exe", "main.py - Visual Studio Code")
