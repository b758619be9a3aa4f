#!/usr/bin/env python3
"""
natcmd - natural-language desktop commands
Entry point for resolving and executing one utterance.

Usage:
    python run.py natural maximize the window    # Resolve and execute
    python run.py /natural open downloads        # Leading slash is ignored
    python run.py list-commands                  # Print the help listing
    python run.py natural play portal --dry-run  # Print the action only
"""
import json
import sys
import argparse
import threading
from typing import List, Optional

from natcmd.core.logger import init_logger, get_logger
from natcmd.core.config import Config


LIST_COMMANDS_MODE = "list-commands"


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="natcmd - resolve natural-language desktop commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py natural maximize window          # Maximize the active window
  python run.py natural please open my documents # Politeness is ignored
  python run.py list-commands                    # Show available commands
  python run.py natural build the solution --ai off
        """
    )

    parser.add_argument(
        "mode",
        type=str,
        help="Command mode: natural or list-commands (leading '/' is ignored)"
    )

    parser.add_argument(
        "text",
        nargs="*",
        help="Utterance to resolve"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=Config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {Config.LOG_LEVEL})"
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        default=None,
        help="Directory holding the JSON command tables (default: current directory)"
    )

    # AI fallback arguments
    parser.add_argument(
        "--ai",
        type=str,
        default=None,
        choices=["ollama", "off"],
        help=f"AI fallback mode: ollama or off (default: {Config.AI_MODE})"
    )

    parser.add_argument(
        "--ollama-model",
        type=str,
        default=None,
        help=f"Ollama model name (default: {Config.OLLAMA_MODEL})"
    )

    parser.add_argument(
        "--ollama-url",
        type=str,
        default=None,
        help=f"Ollama API base URL (default: {Config.OLLAMA_BASE_URL})"
    )

    parser.add_argument(
        "--ai-timeout",
        type=float,
        default=None,
        help=f"AI fallback timeout in seconds (default: {Config.AI_TIMEOUT:g})"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved action as JSON instead of executing it"
    )

    return parser.parse_args(argv)


def normalize_mode(mode: str) -> str:
    return (mode or "").strip().lstrip("/").lower()


def apply_overrides(args) -> None:
    """Push CLI flags into Config before anything reads it."""
    if args.config_dir is not None:
        Config.CONFIG_DIR = args.config_dir
    if args.ai is not None:
        Config.AI_MODE = args.ai
    if args.ollama_model is not None:
        Config.OLLAMA_MODEL = args.ollama_model
    if args.ollama_url is not None:
        Config.OLLAMA_BASE_URL = args.ollama_url
    if args.ai_timeout is not None:
        Config.AI_TIMEOUT = args.ai_timeout
    Config.LOG_LEVEL = args.log_level


def run_natural(pipeline, text: str, poll: float = 0.1):
    """
    Run one utterance on a worker thread.

    Ctrl+C cancels the dispatcher instead of tearing the process down, so a
    running bundle stops before its next step and still reports a result.
    """
    outcome = {}

    def work():
        outcome["result"] = pipeline.handle_natural(text)

    worker = threading.Thread(target=work, name="natcmd-run", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(poll)
    except KeyboardInterrupt:
        get_logger().info("Cancel requested by user")
        pipeline.dispatcher.cancel()
        worker.join()
    return outcome["result"]


def main(argv: Optional[List[str]] = None, pipeline=None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_args(argv)
    mode = normalize_mode(args.mode)
    if not mode:
        print("usage: run.py <mode> <text...>  (modes: natural, list-commands)", file=sys.stderr)
        return 2

    apply_overrides(args)
    init_logger(args.log_level, Config.QUIET_MODE)
    logger = get_logger()

    if pipeline is None:
        from natcmd.core.orchestrator import build_default_pipeline
        pipeline = build_default_pipeline()

    if mode == LIST_COMMANDS_MODE:
        print(pipeline.dispatcher.format_help())
        return 0

    if mode != "natural":
        logger.debug(f"Unknown mode '{mode}', treating as natural")
    text = " ".join(args.text)

    if args.dry_run:
        from natcmd.core.actions import Unresolved
        action = pipeline.resolve(text)
        if isinstance(action, Unresolved):
            print(f"No matching action for: {text}")
            return 1
        print(json.dumps(action.to_dict(), ensure_ascii=False))
        return 0

    result = run_natural(pipeline, text)
    print(result.text)
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
