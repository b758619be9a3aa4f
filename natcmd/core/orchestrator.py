"""
Natural-mode pipeline: normalize -> resolve -> (retry / AI) -> dispatch.

One utterance is handled synchronously. The host context and the catalog
snapshot are taken once at the start so every stage sees the same view,
even if a writer swaps the catalog mid-utterance.
"""
from typing import Callable, Optional, Union

from natcmd.brain.ai_fallback import AIFailure, AIFallbackAdapter
from natcmd.core.actions import ActionRequest, ExecutionResult, Unresolved
from natcmd.core.catalog import CatalogLoader, CatalogStore, CommandCatalog
from natcmd.core.config import Config
from natcmd.core.dispatcher import Dispatcher
from natcmd.core.logger import get_logger
from natcmd.core.normalizer import apply_word_map, compile_phrases
from natcmd.core.resolver import Resolver
from natcmd.vision.window_context import EMPTY_CONTEXT, HostContextSnapshot, capture_context


NATURAL_PREFIX = "[Natural mode] "


class Pipeline:
    """Owns the resolver, the dispatcher and the AI adapter for one host."""

    def __init__(
        self,
        store: CatalogStore,
        dispatcher: Dispatcher,
        resolver: Optional[Resolver] = None,
        ai: Optional[AIFallbackAdapter] = None,
        context_provider: Callable[[], HostContextSnapshot] = capture_context,
    ):
        self.logger = get_logger()
        self.store = store
        self.dispatcher = dispatcher
        self.resolver = resolver or Resolver()
        self.ai = ai
        self.context_provider = context_provider

    def _capture(self) -> HostContextSnapshot:
        try:
            return self.context_provider() or EMPTY_CONTEXT
        except Exception as e:  # context reads are best-effort
            self.logger.warning(f"[CONTEXT] Could not read foreground window: {e}")
            return EMPTY_CONTEXT

    def _retry_misrecognitions(self, text: str, context: HostContextSnapshot,
                               catalog: CommandCatalog) -> Union[ActionRequest, Unresolved]:
        if not catalog.misrecognitions:
            return Unresolved(text)
        pattern = compile_phrases(catalog.misrecognitions.keys())
        corrected = apply_word_map(text, pattern, catalog.misrecognitions)
        if corrected == text:
            return Unresolved(text)
        self.logger.debug(f"[RESOLVE] Retrying '{text}' as '{corrected}'")
        return self.resolver.resolve(corrected, context, catalog)

    def resolve(self, text: str, context: Optional[HostContextSnapshot] = None,
                catalog: Optional[CommandCatalog] = None) -> Union[ActionRequest, Unresolved]:
        """
        Resolve raw text to an action without dispatching it.

        Unresolved is returned only when the cascade, the misrecognition
        retry and the AI fallback all come up empty.
        """
        context = context if context is not None else self._capture()
        catalog = catalog if catalog is not None else self.store.snapshot()

        normalized = catalog.normalizer.normalize(text)
        result = self.resolver.resolve(normalized, context, catalog)
        if not isinstance(result, Unresolved):
            return result

        result = self._retry_misrecognitions(str(normalized), context, catalog)
        if not isinstance(result, Unresolved):
            return result

        if self.ai is None:
            return Unresolved(text or "")
        answer = self.ai.try_resolve(text or "", context)
        if isinstance(answer, AIFailure):
            self.logger.info(f"[AI] No action for '{text}': {answer.reason}")
            return Unresolved(text or "")
        return answer

    def handle_natural(self, text: str, context: Optional[HostContextSnapshot] = None) -> ExecutionResult:
        """Resolve and execute one utterance. Never raises."""
        context = context if context is not None else self._capture()
        catalog = self.store.snapshot()

        action = self.resolve(text, context, catalog)
        if isinstance(action, Unresolved):
            return ExecutionResult(f"No matching action for: {text}", False).with_prefix(NATURAL_PREFIX)

        self.logger.info(f"[DISPATCH] '{text}' -> {action.kind}")
        return self.dispatcher.execute(action).with_prefix(NATURAL_PREFIX)


def build_default_pipeline() -> Pipeline:
    """Wire the Windows effectors, the JSON tables, Steam and Ollama from Config."""
    from natcmd.brain.ollama_client import OllamaClient
    from natcmd.local_library.steam import SteamNameResolver
    from natcmd.tools.effectors import build_default_effectors

    store = CatalogStore(loader=CatalogLoader())
    name_resolver = SteamNameResolver()
    dispatcher = Dispatcher(build_default_effectors(), store)

    ai = None
    if Config.ai_enabled():
        client = OllamaClient(base_url=Config.OLLAMA_BASE_URL, timeout=Config.AI_TIMEOUT)
        ai = AIFallbackAdapter(client=client, name_resolver=name_resolver)

    return Pipeline(
        store=store,
        dispatcher=dispatcher,
        resolver=Resolver(name_resolver=name_resolver),
        ai=ai,
    )


_pipeline: Optional[Pipeline] = None


def handle_natural(text: str, context: Optional[HostContextSnapshot] = None) -> ExecutionResult:
    """Module-level entry point over a lazily built default pipeline."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_default_pipeline()
    return _pipeline.handle_natural(text, context)
