"""
Application settings for VisaScore, loaded from the environment or a .env file.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "VisaScore Officer Review"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    structured_logging: bool = True
    allowed_hosts: list = ["*"]
    cors_origins: list = ["*"]

    # Generative providers, tried in order
    provider_order: List[str] = ["anthropic", "gemini"]
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-pro"

    # Retry policy for provider calls
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0

    # Scoring
    max_document_chars: int = 150_000
    scoring_max_tokens: int = 16384
    scoring_temperature: float = 0.4
    chat_max_tokens: int = 4096
    chat_temperature: float = 0.5

    # File upload limits
    max_file_size: int = 100 * 1024 * 1024  # 100MB
    max_files_per_request: int = 20
    allowed_file_types: list = [".pdf", ".txt", ".md"]


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
