"""
HTTP client for the Ollama /api/chat endpoint (stdlib urllib, connection reuse).

Only the AI fallback talks to it. Errors surface as ConnectionError (server
unreachable, HTTP failure) or ValueError (unknown model, bad payload); the
fallback adapter turns both into AIFailure.
"""
import json
import time
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from natcmd.core.logger import get_logger


class OllamaClient:
    """Client for the Ollama /api/chat endpoint."""

    def __init__(self, base_url: str = "http://127.0.0.1:11434", timeout: float = 30):
        """
        Args:
            base_url: Ollama API base URL (e.g., http://127.0.0.1:11434)
            timeout: Socket timeout for requests in seconds
        """
        self.logger = get_logger()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # One opener for every request so keep-alive connections are reused
        self.opener = urllib.request.build_opener(
            urllib.request.HTTPHandler(debuglevel=0),
            urllib.request.HTTPSHandler(debuglevel=0)
        )

    def _request(self, path: str, payload: Dict[str, Any]) -> urllib.request.Request:
        return urllib.request.Request(
            f"{self.base_url}{path}",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Connection": "keep-alive"
            },
            method="POST"
        )

    def _translate_error(self, e: Exception, model: str, started: float) -> Exception:
        """Map urllib errors onto ConnectionError / ValueError."""
        elapsed_ms = int((time.time() - started) * 1000)
        if isinstance(e, urllib.error.HTTPError):
            error_body = ""
            try:
                error_body = e.read().decode("utf-8", errors="replace")
            except OSError:
                pass
            self.logger.error(f"[AI] HTTP {e.code} from Ollama after {elapsed_ms}ms: {error_body[:200]}")
            if e.code == 404 or "model" in error_body.lower():
                return ValueError(f"Model '{model}' not found. Try: ollama pull {model}")
            return ConnectionError(f"Ollama HTTP error: {e.code}")

        self.logger.error(f"[AI] Connection error after {elapsed_ms}ms: {e}")
        if "Connection refused" in str(e):
            return ConnectionError(f"Cannot reach Ollama at {self.base_url}. Try: ollama serve")
        return ConnectionError(f"Network error: {e}")

    def chat(
        self,
        system: str,
        user: str,
        model: str,
        options: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        One system + user exchange on /api/chat. Returns the assistant content.

        Raises:
            ConnectionError: If cannot reach Ollama
            ValueError: If response is invalid or model not found
        """
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        started = time.time()
        req = self._request("/api/chat", {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": options or {}
        })
        self.logger.debug(f"[AI] Chat with {model} ({len(user)} chars)")
        try:
            with self.opener.open(req, timeout=self.timeout) as response:
                response_data = json.loads(response.read().decode("utf-8"))
        except urllib.error.URLError as e:
            raise self._translate_error(e, model, started) from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON from Ollama: {e}") from e

        message = response_data.get("message")
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise ValueError("Ollama chat response has no message content")
        self.logger.debug(f"[AI] Chat completed in {int((time.time() - started) * 1000)}ms")
        return message["content"].strip()
