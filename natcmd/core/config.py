"""
Configuration module for natcmd.
Centralizes all settings with environment variable overrides.
"""
import os
from pathlib import Path
from typing import List, Optional


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


class Config:
    """Central configuration for natcmd"""

    # Logging
    LOG_LEVEL: str = os.environ.get("NATCMD_LOG_LEVEL", "INFO").upper()
    QUIET_MODE: bool = _env_bool("NATCMD_QUIET_MODE")

    # Directory holding the JSON command tables (overrides, macros, symbols...)
    # Defaults to the current working directory, matching how the CLI is usually
    # launched from the folder that ships the tables.
    CONFIG_DIR: str = os.environ.get("NATCMD_CONFIG_DIR", "")

    # Command table file names (relative to CONFIG_DIR)
    LITERAL_OVERRIDES_FILE: str = "literal_overrides.json"
    PATTERN_RULES_FILE: str = "pattern_rules.json"
    CONTEXT_SCOPES_FILE: str = "context_scopes.json"
    MACROS_FILE: str = "multi_actions.json"
    WORD_REPLACEMENTS_FILE: str = "word_replacements.json"
    SYMBOLS_FILE: str = "emoji_mappings.json"

    # Fuzzy catalog acceptance threshold (exclusive). Not tunable at runtime.
    FUZZY_THRESHOLD: float = 0.6

    # Bundle defaults
    DEFAULT_BUNDLE_DELAY_MS: int = int(os.environ.get("NATCMD_DEFAULT_BUNDLE_DELAY_MS", "250"))
    DEFAULT_BUNDLE_CONTINUE_ON_ERROR: bool = _env_bool("NATCMD_DEFAULT_BUNDLE_CONTINUE_ON_ERROR", "true")

    # When an external UI already presents the command list, help phrases
    # resolve to Noop instead of ShowHelp.
    EXTERNAL_HELP_UI: bool = _env_bool("NATCMD_EXTERNAL_HELP_UI")

    # AI fallback (Ollama)
    AI_MODE: str = os.environ.get("NATCMD_AI_MODE", "ollama").lower()
    OLLAMA_BASE_URL: str = os.environ.get("NATCMD_OLLAMA_URL", "http://127.0.0.1:11434")
    OLLAMA_MODEL: str = os.environ.get("NATCMD_OLLAMA_MODEL", "llama3.1:latest")
    OLLAMA_TEMPERATURE: float = float(os.environ.get("NATCMD_OLLAMA_TEMPERATURE", "0.0"))
    OLLAMA_NUM_PREDICT: int = int(os.environ.get("NATCMD_OLLAMA_NUM_PREDICT", "200"))
    AI_TIMEOUT: float = float(os.environ.get("NATCMD_AI_TIMEOUT", "10"))
    AI_PROMPT_PATH: str = os.environ.get("NATCMD_AI_PROMPT_PATH", "")
    AI_LATEST_PROMPT_PATH: str = os.environ.get("NATCMD_AI_LATEST_PROMPT_PATH", "")

    # Steam library lookup for "play <game>" and AI LaunchApp rewrites
    STEAM_PATH: str = os.environ.get("NATCMD_STEAM_PATH", "")

    # Processes that understand Ctrl+W as "close tab"
    CLOSE_TAB_PROCESSES: List[str] = ["chrome", "msedge", "firefox", "brave", "opera", "code"]

    @classmethod
    def config_dir(cls) -> Path:
        """Directory the command tables are loaded from."""
        if cls.CONFIG_DIR:
            return Path(cls.CONFIG_DIR).expanduser()
        return Path.cwd()

    @classmethod
    def prompt_path(cls) -> Optional[Path]:
        if not cls.AI_PROMPT_PATH:
            return None
        return Path(cls.AI_PROMPT_PATH).expanduser()

    @classmethod
    def ai_enabled(cls) -> bool:
        return cls.AI_MODE not in ("off", "none", "disabled", "")
