"""Tests for the AI fallback adapter.

No network: the Ollama client is replaced by small fakes.
Tests verify that:
- Model replies parse to exactly one AI-safe leaf action
- Malformed output, out-of-range numbers, unknown variants, bundles and
  catalog writers are AIFailure values
- The call is time-boxed and client errors never escape
- LaunchApp targets are rewritten through the name resolver

Run with: python -m pytest tests/test_ai_fallback.py -v
"""

import threading

import pytest

from natcmd.brain import ai_fallback
from natcmd.brain.ai_fallback import AIFailure, AIFallbackAdapter, extract_json_object, parse_ai_reply
from natcmd.core.actions import CloseTab, LaunchApp, OpenFolder, SendKeys
from natcmd.core.config import Config
from natcmd.vision.window_context import HostContextSnapshot

from conftest import FakeNameResolver


# ============================================================================
# FAKE CLIENTS
# ============================================================================

class FakeClient:
    def __init__(self, reply='{"type": "CloseTab"}', error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def chat(self, system, user, model, options=None):
        self.calls.append({"system": system, "user": user, "model": model, "options": options})
        if self.error is not None:
            raise self.error
        return self.reply


class StuckClient:
    """chat() blocks until released."""

    def __init__(self):
        self.release = threading.Event()

    def chat(self, system, user, model, options=None):
        self.release.wait(5)
        return '{"type": "CloseTab"}'


@pytest.fixture
def stuck_client():
    client = StuckClient()
    yield client
    client.release.set()


def adapter_for(client, **kwargs):
    kwargs.setdefault("enabled", True)
    kwargs.setdefault("system_prompt", "SYSTEM")
    kwargs.setdefault("model", "test-model")
    return AIFallbackAdapter(client=client, **kwargs)


# ============================================================================
# REPLY PARSING
# ============================================================================

class TestParseReply:

    @pytest.mark.parametrize("reply,expected", [
        ('{"type": "CloseTab"}', CloseTab()),
        ('```json\n{"type": "SendKeys", "keys": "ctrl s"}\n```', SendKeys("ctrl s")),
        ('Sure! {"type": "OpenFolder", "known_folder": "Downloads"} Hope that helps.', OpenFolder("Downloads")),
        ('{{"type": "CloseTab"}}', CloseTab()),
        ('{"action": {"type": "PressKeys", "KeysText": "ctrl w"}}', SendKeys("ctrl w")),
    ])
    def test_accepted_shapes(self, reply, expected):
        assert parse_ai_reply(reply) == expected

    @pytest.mark.parametrize("reply", ["", "I cannot do that.", '{"type": ', "[1, 2, 3]"])
    def test_malformed(self, reply):
        result = parse_ai_reply(reply)
        assert isinstance(result, AIFailure)
        assert result.reason.startswith("malformed reply")

    def test_explicit_no_action(self):
        assert parse_ai_reply('{"type": "None"}') == AIFailure("model found no matching action")

    @pytest.mark.parametrize("reply,type_name", [
        ('{"type": "Teleport", "where": "mars"}', "Teleport"),
        ('{"type": "RunBundle", "name": "x", "steps": [{"type": "CloseTab"}]}', "RunBundle"),
        ('{"type": "SetSymbol", "name": "x", "symbol": "y"}', "SetSymbol"),
        ('{"type": "ReloadCatalog"}', "ReloadCatalog"),
    ])
    def test_unsupported_variants(self, reply, type_name):
        assert parse_ai_reply(reply) == AIFailure(f"unsupported action type '{type_name}'")

    def test_missing_field(self):
        result = parse_ai_reply('{"type": "SendKeys"}')
        assert isinstance(result, AIFailure)
        assert "keys" in result.reason

    @pytest.mark.parametrize("reply,reason", [
        ('{"type": "MoveWindow", "width_pct": Infinity}', "out of range"),
        ('{"type": "MoveWindow", "height_pct": 1e999}', "out of range"),
        ('{"type": "MoveWindow", "width_pct": NaN}', "must be a number"),
        ('{"type": "SendKeys", "keys": ["ctrl", "w"]}', "must be a string"),
    ])
    def test_bad_numbers_and_field_types(self, reply, reason):
        result = parse_ai_reply(reply)
        assert isinstance(result, AIFailure)
        assert result.reason.startswith("invalid action")
        assert reason in result.reason

    def test_extract_rejects_non_object(self):
        with pytest.raises(ValueError):
            extract_json_object("no braces here")


# ============================================================================
# ADAPTER
# ============================================================================

class TestAdapter:

    def test_returns_parsed_action(self):
        client = FakeClient('{"type": "CloseTab"}')
        assert adapter_for(client).try_resolve("shut this tab") == CloseTab()
        call = client.calls[0]
        assert call["system"] == "SYSTEM"
        assert call["user"] == "shut this tab"
        assert call["model"] == "test-model"

    def test_context_is_sent(self):
        client = FakeClient()
        context = HostContextSnapshot.from_process("devenv.exe")
        adapter_for(client).try_resolve("rebuild everything", context)
        assert client.calls[0]["user"] == "rebuild everything\nCurrentApplication: devenv"

    def test_disabled(self):
        client = FakeClient()
        assert adapter_for(client, enabled=False).try_resolve("anything") == AIFailure("disabled")
        assert client.calls == []
        assert AIFallbackAdapter(client=None, enabled=True).try_resolve("anything") == AIFailure("disabled")

    def test_timeout(self, stuck_client):
        result = adapter_for(stuck_client).try_resolve("do the thing", timeout=0.05)
        assert result == AIFailure("timed out after 0.05s")

    @pytest.mark.parametrize("error", [
        ConnectionError("Cannot reach Ollama at http://127.0.0.1:11434. Try: ollama serve"),
        ValueError("Model 'x' not found. Try: ollama pull x"),
    ])
    def test_client_errors_become_failures(self, error):
        result = adapter_for(FakeClient(error=error)).try_resolve("anything")
        assert result == AIFailure(str(error))

    def test_unexpected_client_error(self):
        result = adapter_for(FakeClient(error=RuntimeError("bug"))).try_resolve("anything")
        assert isinstance(result, AIFailure)
        assert "bug" in result.reason

    def test_out_of_range_reply_is_a_failure(self):
        client = FakeClient('{"type": "MoveWindow", "width_pct": Infinity}')
        result = adapter_for(client).try_resolve("zzqx blorp")
        assert isinstance(result, AIFailure)
        assert "out of range" in result.reason

    def test_parser_crash_is_a_failure(self, monkeypatch):
        def explode(reply):
            raise RecursionError("too deep")

        monkeypatch.setattr(ai_fallback, "parse_ai_reply", explode)
        result = adapter_for(FakeClient()).try_resolve("anything")
        assert result == AIFailure("malformed reply: too deep")

    def test_abandoned_call_does_not_hold_the_process(self, stuck_client):
        adapter_for(stuck_client).try_resolve("do the thing", timeout=0.05)
        workers = [t for t in threading.enumerate() if t.name == "natcmd-ai"]
        assert workers
        assert all(t.daemon for t in workers)

    def test_latest_prompt_written(self, tmp_path, monkeypatch):
        target = tmp_path / "latest_prompt.txt"
        monkeypatch.setattr(Config, "AI_LATEST_PROMPT_PATH", str(target))
        adapter_for(FakeClient()).try_resolve("close it")
        written = target.read_text(encoding="utf-8")
        assert "SYSTEM" in written and "close it" in written


class TestLaunchRewrite:

    def test_target_name_rewritten(self):
        client = FakeClient('{"type": "LaunchApp", "exe_or_uri": "Half-Life 2"}')
        adapter = adapter_for(client, name_resolver=FakeNameResolver({"half-life 2": "220"}))
        assert adapter.try_resolve("start half life two") == LaunchApp("steam://rungameid/220")

    def test_falls_back_to_play_text(self):
        client = FakeClient('{"type": "LaunchApp", "exe_or_uri": "C:\\\\Games\\\\portal2.exe"}')
        resolver = FakeNameResolver({"portal 2": "620"})
        adapter = adapter_for(client, name_resolver=resolver)
        assert adapter.try_resolve("play portal 2") == LaunchApp("steam://rungameid/620")
        assert resolver.queries == ["portal2", "portal 2"]

    def test_unknown_name_kept(self):
        client = FakeClient('{"type": "LaunchApp", "exe_or_uri": "notepad.exe"}')
        adapter = adapter_for(client, name_resolver=FakeNameResolver())
        assert adapter.try_resolve("open a text editor") == LaunchApp("notepad.exe")

    def test_existing_steam_uri_untouched(self):
        client = FakeClient('{"type": "LaunchApp", "exe_or_uri": "steam://rungameid/10"}')
        resolver = FakeNameResolver({"x": "1"})
        adapter = adapter_for(client, name_resolver=resolver)
        assert adapter.try_resolve("play counter strike") == LaunchApp("steam://rungameid/10")
        assert resolver.queries == []
