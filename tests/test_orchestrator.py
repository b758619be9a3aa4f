"""Tests for the natural-mode pipeline and the command line.

Effectors, foreground context and the AI client are fakes.
Tests verify that:
- Results carry the "[Natural mode] " prefix
- Misheard words are retried before the AI is asked
- AI timeouts and failures end as "No matching action for: <text>"
- run.main() maps results to exit codes (0 ok, 1 failed, 2 usage)
- Ctrl+C during a run cancels the bundle instead of killing the process

Run with: python -m pytest tests/test_orchestrator.py -v
"""

import _thread
import json
import threading
import time

import pytest

import run
from natcmd.brain.ai_fallback import AIFallbackAdapter
from natcmd.core.actions import BundleState, RunBundle, SendKeys, Unresolved
from natcmd.core.catalog import build_catalog
from natcmd.core.config import Config
from natcmd.core.dispatcher import Dispatcher
from natcmd.core.orchestrator import NATURAL_PREFIX, Pipeline
from natcmd.core.resolver import LiteralOverrideStrategy, Resolver

from conftest import FakeKeyInjector


class ScriptedClient:
    def __init__(self, reply):
        self.reply = reply
        self.calls = 0

    def chat(self, system, user, model, options=None):
        self.calls += 1
        return self.reply


class StuckClient:
    def __init__(self):
        self.release = threading.Event()

    def chat(self, system, user, model, options=None):
        self.release.wait(5)
        return '{"type": "CloseTab"}'


def make_adapter(client, timeout=5.0):
    return AIFallbackAdapter(client=client, model="test-model", timeout=timeout,
                             enabled=True, system_prompt="SYSTEM")


@pytest.fixture
def pipeline(store, dispatcher, host_context):
    return Pipeline(store, dispatcher, context_provider=host_context)


@pytest.fixture
def restore_config(monkeypatch):
    """run.main() writes CLI flags into Config."""
    for attr in ("CONFIG_DIR", "AI_MODE", "OLLAMA_MODEL", "OLLAMA_BASE_URL", "AI_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.setattr(Config, attr, getattr(Config, attr))


# ============================================================================
# PIPELINE
# ============================================================================

class TestPipeline:

    def test_resolved_action_is_executed(self, pipeline, effectors):
        result = pipeline.handle_natural("please maximize window")
        assert result.ok
        assert result.text == NATURAL_PREFIX + "Maximized active"
        assert effectors.window_placer.calls == [("maximize", "active")]

    def test_close_tab_uses_foreground_app(self, pipeline, effectors, host_context):
        host_context.set("chrome.exe")
        result = pipeline.handle_natural("please close tab")
        assert result.text == "[Natural mode] Closed tab in chrome"
        assert effectors.key_injector.calls == [("send_keys", "ctrl w")]

    def test_failure_keeps_prefix(self, pipeline, effectors):
        effectors.folder_opener.fail("open_known_folder", "shell refused")
        result = pipeline.handle_natural("open downloads")
        assert not result.ok
        assert result.text == "[Natural mode] OpenFolder failed: shell refused"

    def test_unresolved_without_ai(self, pipeline):
        result = pipeline.handle_natural("xyzzy plugh frobnicate")
        assert not result.ok
        assert result.text == "[Natural mode] No matching action for: xyzzy plugh frobnicate"

    def test_context_failure_is_tolerated(self, store, dispatcher):
        def broken():
            raise OSError("no desktop")

        pipeline = Pipeline(store, dispatcher, context_provider=broken)
        assert pipeline.handle_natural("open downloads").ok

    def test_misrecognition_retry(self, store, dispatcher, host_context):
        catalog = build_catalog(literal_overrides={"show tool window": SendKeys("ctrl alt t")})
        pipeline = Pipeline(store, dispatcher, resolver=Resolver(strategies=[LiteralOverrideStrategy()]),
                            context_provider=host_context)
        assert pipeline.resolve("show tall window", catalog=catalog) == SendKeys("ctrl alt t")


class TestAIFallback:

    def test_ai_answer_is_executed(self, store, dispatcher, host_context, effectors):
        client = ScriptedClient('{"type": "OpenWebsite", "url": "https://example.com"}')
        pipeline = Pipeline(store, dispatcher, ai=make_adapter(client), context_provider=host_context)
        result = pipeline.handle_natural("xyzzy plugh frobnicate")
        assert result.ok
        assert client.calls == 1
        assert effectors.url_opener.calls == [("open_url", "https://example.com")]

    def test_cascade_hit_skips_ai(self, store, dispatcher, host_context):
        client = ScriptedClient('{"type": "CloseTab"}')
        pipeline = Pipeline(store, dispatcher, ai=make_adapter(client), context_provider=host_context)
        assert pipeline.handle_natural("open downloads").ok
        assert client.calls == 0

    def test_ai_timeout_reports_original_text(self, store, dispatcher, host_context, effectors):
        client = StuckClient()
        pipeline = Pipeline(store, dispatcher, ai=make_adapter(client, timeout=0.05),
                            context_provider=host_context)
        try:
            result = pipeline.handle_natural("Please do the Frobnication")
        finally:
            client.release.set()
        assert not result.ok
        assert result.text == "[Natural mode] No matching action for: Please do the Frobnication"
        assert effectors.key_injector.calls == []

    def test_out_of_range_ai_reply_is_unresolved(self, store, dispatcher, host_context, effectors):
        client = ScriptedClient('{"type": "MoveWindow", "width_pct": Infinity}')
        pipeline = Pipeline(store, dispatcher, ai=make_adapter(client), context_provider=host_context)
        result = pipeline.handle_natural("zzqx blorp")
        assert not result.ok
        assert result.text == "[Natural mode] No matching action for: zzqx blorp"
        assert effectors.window_placer.calls == []

    def test_ai_no_action(self, store, dispatcher, host_context):
        pipeline = Pipeline(store, dispatcher, ai=make_adapter(ScriptedClient('{"type": "None"}')),
                            context_provider=host_context)
        assert isinstance(pipeline.resolve("xyzzy plugh frobnicate"), Unresolved)


# ============================================================================
# COMMAND LINE
# ============================================================================

@pytest.mark.usefixtures("restore_config")
class TestCommandLine:

    def test_natural_mode(self, pipeline, capsys):
        code = run.main(["natural", "maximize", "window", "--log-level", "ERROR"], pipeline=pipeline)
        assert code == 0
        assert capsys.readouterr().out.strip() == "[Natural mode] Maximized active"

    def test_slash_prefixed_mode(self, pipeline, effectors):
        assert run.main(["/Natural", "open", "downloads", "--log-level", "ERROR"], pipeline=pipeline) == 0
        assert effectors.folder_opener.calls == [("open_known_folder", "Downloads")]

    def test_unresolved_exit_code(self, pipeline, capsys):
        code = run.main(["natural", "xyzzy", "plugh", "--log-level", "ERROR"], pipeline=pipeline)
        assert code == 1
        assert "No matching action for: xyzzy plugh" in capsys.readouterr().out

    def test_empty_mode_is_usage_error(self, capsys):
        assert run.main(["/"]) == 2
        assert "usage" in capsys.readouterr().err

    def test_list_commands(self, pipeline, capsys):
        assert run.main(["list-commands", "--log-level", "ERROR"], pipeline=pipeline) == 0
        assert capsys.readouterr().out.startswith("Available commands:")

    def test_dry_run_prints_action(self, pipeline, effectors, capsys):
        code = run.main(["natural", "open", "downloads", "--dry-run", "--log-level", "ERROR"], pipeline=pipeline)
        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"type": "OpenFolder", "known_folder": "Downloads"}
        assert effectors.folder_opener.calls == []

    def test_overrides_reach_config(self, pipeline):
        run.main(["natural", "open", "downloads", "--ai", "off", "--ai-timeout", "2.5",
                  "--ollama-model", "llama3.2:1b", "--log-level", "ERROR"], pipeline=pipeline)
        assert Config.AI_MODE == "off"
        assert Config.AI_TIMEOUT == 2.5
        assert Config.OLLAMA_MODEL == "llama3.2:1b"


class TestInterrupt:

    def test_ctrl_c_cancels_running_bundle(self, effectors, store):
        class InterruptingInjector(FakeKeyInjector):
            def send_keys(self, keys):
                result = super().send_keys(keys)
                _thread.interrupt_main()
                return result

        class BundlePipeline:
            def __init__(self, dispatcher, bundle):
                self.dispatcher = dispatcher
                self.bundle = bundle

            def handle_natural(self, text):
                return self.dispatcher.execute(self.bundle)

        effectors.key_injector = InterruptingInjector()
        bundle = RunBundle("long", (SendKeys("a"), SendKeys("b")), inter_step_delay_ms=10_000)
        pipeline = BundlePipeline(Dispatcher(effectors, store), bundle)

        started = time.monotonic()
        result = run.run_natural(pipeline, "long")
        assert time.monotonic() - started < 5
        assert result.state is BundleState.ABORTED
        assert result.text.endswith("cancelled before step 2")
        assert effectors.key_injector.calls == [("send_keys", "a")]
