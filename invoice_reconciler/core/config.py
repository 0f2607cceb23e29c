from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("invoice-reconciler", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # LLM extraction backend (OpenAI-compatible chat completions)
    llm_base_url: str | None = Field(default=None, alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_deployment: str | None = Field(default=None, alias="LLM_DEPLOYMENT")
    llm_fallback_deployment: str | None = Field(default=None, alias="LLM_FALLBACK_DEPLOYMENT")
    llm_timeout_seconds: float = Field(60.0, alias="LLM_TIMEOUT_SECONDS")
    llm_temperature: float = Field(0.1, alias="LLM_TEMPERATURE")

    # Azure Document Intelligence
    az_di_endpoint: str | None = Field(default=None, alias="AZ_DI_ENDPOINT")
    az_di_api_key: str | None = Field(default=None, alias="AZ_DI_API_KEY")
    az_di_model_id: str = Field("prebuilt-invoice", alias="AZ_DI_MODEL_ID")

    # Reconciliation engine
    quality_threshold: int = Field(70, alias="QUALITY_THRESHOLD")
    confidence_merge_threshold: float = Field(0.10, alias="CONFIDENCE_MERGE_THRESHOLD")
    default_max_passes: int = Field(4, alias="DEFAULT_MAX_PASSES")
    assumed_default_currency: str | None = Field("USD", alias="ASSUMED_DEFAULT_CURRENCY")
    field_prompt_char_limit: int = Field(4000, alias="FIELD_PROMPT_CHAR_LIMIT")
    reextract_concurrently: bool = Field(False, alias="REEXTRACT_CONCURRENTLY")

    # HTTP surface
    process_timeout_seconds: float = Field(180.0, alias="PROCESS_TIMEOUT_SECONDS")
    review_min_confidence: float = Field(0.85, alias="REVIEW_MIN_CONFIDENCE")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}

settings = Settings()
