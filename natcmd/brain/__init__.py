"""
natcmd.brain

Language-model fallback: Ollama HTTP client, system prompt, and the
time-boxed adapter that turns a model reply into one ActionRequest.
"""
from natcmd.brain.ai_fallback import AIFailure, AIFallbackAdapter, parse_ai_reply
from natcmd.brain.ollama_client import OllamaClient

__all__ = ["AIFailure", "AIFallbackAdapter", "OllamaClient", "parse_ai_reply"]
