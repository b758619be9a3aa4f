"""
Logging for natcmd.

Every line goes to stderr through a rich Console so stdout stays free for the
CLI result. Messages start with a stage tag ("[RESOLVE] ...", "[AI] ...");
quiet mode drops the per-stage tags listed in QUIET_TAGS and keeps untagged
messages, warnings excepted.

There is one process-wide Logger. init_logger() reconfigures it in place, so
components that grabbed get_logger() at construction follow later changes.
"""
import os
import re
from datetime import datetime
from typing import FrozenSet, Optional

from rich.console import Console


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LEVEL_STYLES = {
    "DEBUG": "dim cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold red",
}

# Stage chatter hidden in quiet mode
QUIET_TAGS: FrozenSet[str] = frozenset({
    "RESOLVE",
    "AI",
    "DISPATCH",
    "BUNDLE",
    "LADDER",
    "CATALOG",
    "CONTEXT",
    "NORMALIZE",
})

_TAG_RE = re.compile(r"^\[([A-Z]+)\]")


def message_tag(message: str) -> Optional[str]:
    """Leading "[TAG]" of a message, or None."""
    m = _TAG_RE.match(message)
    return m.group(1) if m else None


class Logger:
    """Level-filtered, timestamped lines on a rich stderr console."""

    def __init__(self, level: str = "INFO", quiet_mode: bool = False, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.configure(level, quiet_mode)

    def configure(self, level: str, quiet_mode: bool = False) -> None:
        level = (level or "INFO").upper()
        self.threshold = LEVELS.index(level) if level in LEVELS else LEVELS.index("INFO")
        self.quiet_mode = quiet_mode

    def enabled_for(self, level: str) -> bool:
        return LEVELS.index(level) >= self.threshold

    def _suppressed(self, level: str, message: str) -> bool:
        if not self.enabled_for(level):
            return True
        # Quiet mode never hides warnings and errors
        return self.quiet_mode and level in ("DEBUG", "INFO") and message_tag(message) in QUIET_TAGS

    def log(self, level: str, message: str) -> None:
        if self._suppressed(level, message):
            return
        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        # markup off: messages carry [TAG] prefixes and raw user text
        self.console.print(
            f"[{stamp}] [{level:<8}] {message}",
            style=LEVEL_STYLES[level],
            markup=False,
            highlight=False,
            soft_wrap=True,
        )

    def debug(self, message: str) -> None:
        self.log("DEBUG", message)

    def info(self, message: str) -> None:
        self.log("INFO", message)

    def warning(self, message: str) -> None:
        self.log("WARNING", message)

    def error(self, message: str) -> None:
        self.log("ERROR", message)

    def critical(self, message: str) -> None:
        self.log("CRITICAL", message)


_logger: Optional[Logger] = None


def _env_quiet() -> bool:
    return os.environ.get("NATCMD_QUIET_MODE", "false").lower() in ("true", "1", "yes")


def init_logger(level: str = "INFO", quiet_mode: bool = False) -> Logger:
    """Set the level and quiet mode of the shared logger (creating it if needed)."""
    global _logger
    if _logger is None:
        _logger = Logger(level, quiet_mode)
    else:
        _logger.configure(level, quiet_mode)
    return _logger


def get_logger() -> Logger:
    global _logger
    if _logger is None:
        _logger = Logger(os.environ.get("NATCMD_LOG_LEVEL", "INFO"), _env_quiet())
    return _logger


def set_quiet_mode(enabled: bool) -> None:
    get_logger().quiet_mode = enabled
