import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    recipe_fallback_title: str = Field("未命名菜谱", alias="RECIPE_FALLBACK_TITLE")
    raw_text_preview_chars: int = Field(500, alias="RAW_TEXT_PREVIEW_CHARS")
    error_context_chars: int = Field(50, alias="ERROR_CONTEXT_CHARS")
    # Extra characters treated as the end of a value when deciding on comma insertion
    repair_extra_value_terminals: str = Field("", alias="REPAIR_EXTRA_VALUE_TERMINALS")
    # Deeper input is reported as a syntax failure rather than parsed
    repair_max_nesting_depth: int = Field(100, alias="REPAIR_MAX_NESTING_DEPTH")
    llm_base_url: str | None = Field(None, alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(None, alias="LLM_API_KEY")
    llm_model_name: str = Field("glm-4", alias="LLM_MODEL_NAME")
    llm_timeout_seconds: float = Field(120.0, alias="LLM_TIMEOUT_SECONDS")
    llm_max_tokens: int = Field(6000, alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(0.7, alias="LLM_TEMPERATURE")
    # Seconds to wait between sequential batch requests
    llm_batch_delay_seconds: float = Field(1.0, alias="LLM_BATCH_DELAY_SECONDS")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
