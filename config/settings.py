import os
import logging
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from exceptions import ConfigurationError

logger = logging.getLogger("workflow")

REQUIRED_KEYS = {
    "OPENAI_API_KEY": "openai_api_key",
    "TAVILY_API_KEY": "tavily_api_key",
}

# Environment variable -> Settings field
ENV_FIELDS = {
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_MODEL": "openai_model",
    "LLM_TEMPERATURE": "temperature",
    "TAVILY_API_KEY": "tavily_api_key",
    "SEARCH_MAX_RESULTS": "search_max_results",
    "FLIGHT_ORIGIN": "flight_origin",
    "CHECKPOINT_BACKEND": "checkpoint_backend",
    "CHECKPOINT_PATH": "checkpoint_path",
    "LOG_LEVEL": "log_level",
    "THREAD_ID": "default_thread_id",
}


class Settings(BaseModel):
    """Runtime configuration read from the environment."""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    temperature: float = Field(default=0, ge=0, le=2)
    tavily_api_key: str = ""
    search_max_results: int = Field(default=4, ge=1, le=20)
    flight_origin: str = "Mumbai, India"
    checkpoint_backend: Literal["memory", "sqlite"] = "memory"
    checkpoint_path: str = "checkpoints.sqlite"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    default_thread_id: str = "123-abc"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        if isinstance(value, str):
            return value.upper()
        return value


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Load the .env file and build Settings from environment variables."""
    load_dotenv(dotenv_path=dotenv_path)

    values = {}
    for env_name, field_name in ENV_FIELDS.items():
        value = os.getenv(env_name)
        if value is not None and value.strip() != "":
            values[field_name] = value.strip()

    try:
        settings = Settings(**values)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug(f"Settings loaded: model={settings.openai_model}, checkpoint_backend={settings.checkpoint_backend}")
    return settings


def missing_keys(settings: Settings) -> List[str]:
    """Names of required API keys that are not set."""
    return [env_name for env_name, field_name in REQUIRED_KEYS.items() if not getattr(settings, field_name)]


def require_keys(settings: Settings) -> None:
    missing = missing_keys(settings)
    if missing:
        logger.error(f"Missing required API keys: {', '.join(missing)}")
        raise ConfigurationError(f"Missing required API keys: {', '.join(missing)}")
