import threading
from fastapi import Depends
from lago.core.config import Settings, get_settings
from lago.services.analyzer import AnalysisOrchestrator
from lago.services.model_client import ModelClient
from lago.services.prompts import FilePromptTemplateProvider

# Module-level singletons (lazy-initialized, thread-safe)
_model_client: ModelClient | None = None
_template_provider: FilePromptTemplateProvider | None = None
_analyzer: AnalysisOrchestrator | None = None
_lock = threading.Lock()


def get_model_client(settings: Settings = Depends(get_settings)) -> ModelClient:
    global _model_client
    if _model_client is None:
        with _lock:
            if _model_client is None:  # double-check after acquiring lock
                _model_client = ModelClient(settings)
    return _model_client


def get_template_provider(settings: Settings = Depends(get_settings)) -> FilePromptTemplateProvider:
    global _template_provider
    if _template_provider is None:
        with _lock:
            if _template_provider is None:
                _template_provider = FilePromptTemplateProvider(
                    settings.PROMPT_PATH, ttl_seconds=settings.PROMPT_TTL_SECONDS
                )
    return _template_provider


def get_analyzer(
    model_client: ModelClient = Depends(get_model_client),
    template_provider: FilePromptTemplateProvider = Depends(get_template_provider),
) -> AnalysisOrchestrator:
    global _analyzer
    if _analyzer is None:
        with _lock:
            if _analyzer is None:
                _analyzer = AnalysisOrchestrator(model_client, template_provider)
    return _analyzer


async def close_model_client():
    """Closes the shared HTTP client on shutdown and forgets the singletons that hold it."""
    global _model_client, _analyzer
    with _lock:
        client, _model_client, _analyzer = _model_client, None, None
    if client is not None:
        await client.aclose()
