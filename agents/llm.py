import logging
from typing import Optional

from langchain_openai import ChatOpenAI

from config.settings import Settings, load_settings
from exceptions import ConfigurationError, LLMInitializationError

logger = logging.getLogger("agents")


def build_llm(settings: Optional[Settings] = None) -> ChatOpenAI:
    """Create the chat model shared by the search agent and the trip workflow."""
    settings = settings or load_settings()
    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY environment variable is not set")
        raise ConfigurationError("OPENAI_API_KEY environment variable is not set")

    logger.info(f"Initializing ChatOpenAI with model: {settings.openai_model}")
    try:
        return ChatOpenAI(
            model=settings.openai_model,
            temperature=settings.temperature,
            api_key=settings.openai_api_key,
        )
    except Exception as e:
        logger.error(f"Failed to initialize ChatOpenAI: {e}", exc_info=True)
        raise LLMInitializationError(f"Failed to initialize ChatOpenAI: {e}") from e
