"""Selection of the reasoning engine from settings."""

import logging

from pilot_server.config import PilotServerSettings
from pilot_server.engines.anthropic_engine import AnthropicEngine
from pilot_server.engines.base import ReasoningEngine
from pilot_server.engines.ollama_engine import OllamaEngine
from pilot_server.engines.openai_engine import OpenAIEngine
from pilot_server.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "ollama": "llama3.2:latest",
    "anthropic": "claude-3-5-sonnet-20241022",
    "openai": "gpt-4-turbo-preview",
}


def create_engine(settings: PilotServerSettings) -> ReasoningEngine:
    """Create the reasoning engine configured in settings.

    Args:
        settings: Application settings

    Returns:
        ReasoningEngine: The configured engine adapter

    Raises:
        ConfigurationError: If the engine name is not supported
    """
    engine_name = settings.engine.lower()
    if engine_name not in DEFAULT_MODELS:
        supported = ", ".join(sorted(DEFAULT_MODELS))
        raise ConfigurationError(
            f"Unsupported engine '{settings.engine}' (supported: {supported})"
        )

    model = settings.model or DEFAULT_MODELS[engine_name]
    common = {"system_prompt": settings.system_prompt, "max_tokens": settings.max_tokens}

    if engine_name == "ollama":
        engine: ReasoningEngine = OllamaEngine(model, host=settings.ollama_host, **common)
    elif engine_name == "anthropic":
        engine = AnthropicEngine(model, api_key=settings.anthropic_api_key, **common)
    else:
        engine = OpenAIEngine(model, api_key=settings.openai_api_key, **common)

    logger.info(f"Using reasoning engine '{engine.name}' with model '{engine.model}'")
    return engine
