"""
natcmd.brain.ai_fallback

Last-resort resolution through a language model.

Invoked only after the cascade returned Unresolved. The model is opaque and
untrusted: its reply must parse to exactly one AI-safe leaf action, anything
else is an AIFailure value. The call is time-boxed on a worker thread so the
caller never blocks past the timeout.
"""

from __future__ import annotations

import concurrent.futures
import json
import re
import threading
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Any, Dict, Optional, Union

from natcmd.core.action_codec import action_from_dict
from natcmd.core.actions import (
    ActionRequest,
    CloseTab,
    ExecuteHostCommand,
    FocusWindow,
    LaunchApp,
    MoveWindow,
    OpenFolder,
    OpenWebsite,
    SendKeys,
    ShowHelp,
    SymbolInsert,
)
from natcmd.core.config import Config
from natcmd.core.errors import ActionParseError
from natcmd.core.logger import get_logger
from natcmd.vision.window_context import EMPTY_CONTEXT, HostContextSnapshot


# Leaf variants the model may ask for. Bundles and catalog writers are never
# accepted from it.
AI_SAFE_VARIANTS = (
    MoveWindow,
    FocusWindow,
    LaunchApp,
    SendKeys,
    OpenFolder,
    OpenWebsite,
    CloseTab,
    ExecuteHostCommand,
    SymbolInsert,
    ShowHelp,
)

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_PLAY_PREFIX_RE = re.compile(r"^\s*play\s+", re.IGNORECASE)


@dataclass(frozen=True)
class AIFailure:
    """The model could not produce a usable action. A value, never raised."""
    reason: str


def extract_json_object(reply: str) -> Dict[str, Any]:
    """
    Pull the first JSON object out of a model reply.

    Tolerates code fences, leading prose and doubled braces ({{...}}).

    Raises:
        ValueError: No object found or it does not parse
    """
    text = _FENCE_RE.sub("", reply or "").strip()
    if text.startswith("{{") and text.endswith("}}"):
        text = text[1:-1]
    start = text.find("{")
    if start < 0:
        raise ValueError("reply contains no JSON object")
    obj, _ = json.JSONDecoder().raw_decode(text, start)
    if not isinstance(obj, dict):
        raise ValueError("reply JSON is not an object")
    # Some models wrap the action: {"action": {...}}
    if "type" not in obj and isinstance(obj.get("action"), dict):
        obj = obj["action"]
    return obj


def parse_ai_reply(reply: str) -> Union[ActionRequest, AIFailure]:
    """Turn raw model text into an AI-safe action or an AIFailure."""
    try:
        data = extract_json_object(reply)
    except ValueError as e:
        return AIFailure(f"malformed reply: {e}")

    type_name = str(data.get("type", data.get("Type", ""))).strip()
    if type_name.lower() in ("none", "noop", ""):
        return AIFailure("model found no matching action")

    try:
        action = action_from_dict(data, allow_bundle=False)
    except ActionParseError as e:
        if "unknown action type" in str(e) or "nested" in str(e):
            return AIFailure(f"unsupported action type '{type_name}'")
        return AIFailure(f"invalid action: {e}")
    except (TypeError, ValueError, OverflowError) as e:
        return AIFailure(f"invalid action: {e}")

    if not isinstance(action, AI_SAFE_VARIANTS):
        return AIFailure(f"unsupported action type '{action.kind}'")
    return action


class AIFallbackAdapter:
    """Time-boxed model call mapping raw text (+ context) to one action."""

    def __init__(
        self,
        client=None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        name_resolver=None,
        enabled: Optional[bool] = None,
        system_prompt: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ):
        self.logger = get_logger()
        self.client = client
        self.model = model or Config.OLLAMA_MODEL
        self.timeout = Config.AI_TIMEOUT if timeout is None else timeout
        self.name_resolver = name_resolver
        self.enabled = Config.ai_enabled() if enabled is None else enabled
        self._system_prompt = system_prompt
        self.options = options if options is not None else {
            "temperature": Config.OLLAMA_TEMPERATURE,
            "num_predict": Config.OLLAMA_NUM_PREDICT,
        }

    def system_prompt(self) -> str:
        if self._system_prompt is not None:
            return self._system_prompt
        path = Config.prompt_path()
        if path is not None:
            try:
                return path.read_text(encoding="utf-8")
            except OSError as e:
                self.logger.warning(f"[AI] Could not read prompt {path}: {e}; using built-in prompt")
        from natcmd.brain.prompt import SYSTEM_PROMPT
        return SYSTEM_PROMPT

    @staticmethod
    def build_user_message(raw_text: str, context: HostContextSnapshot) -> str:
        message = raw_text
        if context.process_name:
            message += f"\nCurrentApplication: {context.process_name}"
        return message

    def _write_latest_prompt(self, system: str, user: str) -> None:
        if not Config.AI_LATEST_PROMPT_PATH:
            return
        path = Path(Config.AI_LATEST_PROMPT_PATH).expanduser()
        try:
            path.write_text(f"{system}\n\n---\n{user}\n", encoding="utf-8")
        except OSError as e:
            self.logger.debug(f"[AI] Could not write latest prompt to {path}: {e}")

    def _submit_chat(self, system: str, user: str) -> concurrent.futures.Future:
        """
        Run client.chat on a daemon thread.

        A call that outlives the timeout is abandoned; being a daemon, it
        does not keep the process alive after the caller returns.
        """
        future: concurrent.futures.Future = concurrent.futures.Future()

        def worker():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.client.chat(system, user, self.model, self.options))
            except BaseException as e:
                future.set_exception(e)

        threading.Thread(target=worker, name="natcmd-ai", daemon=True).start()
        return future

    def try_resolve(
        self,
        raw_text: str,
        context: Optional[HostContextSnapshot] = None,
        timeout: Optional[float] = None,
    ) -> Union[ActionRequest, AIFailure]:
        """
        Ask the model for an action.

        Returns:
            An AI-safe ActionRequest, or AIFailure(reason) on timeout,
            client error, malformed reply or unsupported variant.
        """
        if not self.enabled or self.client is None:
            return AIFailure("disabled")
        context = context or EMPTY_CONTEXT
        timeout = self.timeout if timeout is None else timeout

        system = self.system_prompt()
        user = self.build_user_message(raw_text, context)
        self._write_latest_prompt(system, user)
        self.logger.info(f"[AI] Asking {self.model} about '{raw_text}' (timeout {timeout:g}s)")

        future = self._submit_chat(system, user)
        try:
            reply = future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            self.logger.warning(f"[AI] No reply within {timeout:g}s")
            return AIFailure(f"timed out after {timeout:g}s")
        except (ConnectionError, ValueError) as e:
            self.logger.warning(f"[AI] Client error: {e}")
            return AIFailure(str(e))
        except Exception as e:  # the client is external code
            self.logger.error(f"[AI] Unexpected client error: {e}")
            return AIFailure(f"client error: {e}")

        self.logger.debug(f"[AI] Reply: {str(reply)[:200]}")
        try:
            result = parse_ai_reply(str(reply))
        except Exception as e:  # reply content is untrusted
            self.logger.error(f"[AI] Could not parse reply: {e}")
            return AIFailure(f"malformed reply: {e}")
        if isinstance(result, AIFailure):
            self.logger.info(f"[AI] Rejected reply: {result.reason}")
            return result
        if isinstance(result, LaunchApp):
            result = self._rewrite_launch(result, raw_text)
        self.logger.info(f"[AI] Resolved to {result.kind}")
        return result

    def _rewrite_launch(self, action: LaunchApp, raw_text: str) -> LaunchApp:
        """Route game names through the NameResolver (steam://rungameid/<id>)."""
        target = action.exe_or_uri
        if self.name_resolver is None or target.lower().startswith("steam://"):
            return action

        stem = PureWindowsPath(target).stem if not re.match(r"^[a-z][a-z0-9+.-]*://", target, re.IGNORECASE) else ""
        candidates = [stem]
        if _PLAY_PREFIX_RE.match(raw_text or ""):
            candidates.append(_PLAY_PREFIX_RE.sub("", raw_text).strip())

        for name in candidates:
            if not name:
                continue
            try:
                uri = self.name_resolver.resolve(name)
            except Exception as e:  # lookup is best-effort
                self.logger.warning(f"[AI] Name lookup failed for '{name}': {e}")
                continue
            if uri:
                self.logger.debug(f"[AI] Rewrote launch target '{target}' -> '{uri}'")
                return LaunchApp(uri)
        return action
