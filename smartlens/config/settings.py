"""Application settings loaded from environment variables via pydantic-settings.

Two kinds of configuration live here:

* :class:`Settings` -- deployment values and secrets, read from environment
  variables first and the project ``.env`` file second.  Field
  ``anthropic_api_key`` maps to env var ``ANTHROPIC_API_KEY`` and so on.
  Empty strings mean "not configured".
* :class:`PipelineConfig` -- the ingestion pipeline's fixed thresholds.
  Defaults are the production values; ``config/config.yaml`` may override
  them for local experiments (see :mod:`smartlens.config.loader`).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """SmartLens application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM Providers ===
    # The same provider serves the vision fallback and the analysis step.
    # With no key at all, both are disabled.
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_text_model: str = ""
    openai_vision_model: str = ""
    # SDK-level request timeout.  Must exceed analysis_timeout_seconds.
    llm_request_timeout_seconds: float = 45.0

    # === Persistence ===
    database_path: str = "data/smartlens.db"

    # === Asset storage ===
    storage_dir: str = "data/assets"
    storage_public_base_url: str = "http://localhost:8000/assets"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    config_path: str = "config/config.yaml"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have non-empty API keys, in priority order."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        return providers


class PipelineConfig(BaseModel):
    """Thresholds consumed by the ingestion pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Primary OCR confidence (0-100) below which the vision fallback is tried.
    ocr_confidence_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    # The fallback wins only when longer than primary * ratio.
    fallback_length_ratio: float = Field(default=1.2, ge=1.0)
    # Text-layer yield below this marks a PDF as scanned.
    pdf_text_layer_min_length: int = Field(default=50, ge=0)
    # Notes are never created from less text than this.
    min_text_length: int = Field(default=200, ge=1)
    analysis_timeout_seconds: float = Field(default=30.0, gt=0.0)
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    title_max_chars: int = Field(default=50, gt=0)
