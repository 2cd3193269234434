"""Lingua – Application Configuration.

Pydantic Settings, loaded from a .env file or environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Gateway ---
    environment: str = "development"
    log_level: str = "info"
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 8000
    cors_allowed_origins: str = "http://localhost:3000"

    # --- Database ---
    database_url: str = ""

    # --- Redis (document cache) ---
    redis_url: str = "redis://127.0.0.1:6379/0"
    document_cache_ttl_seconds: int = 3600

    # --- Auth ---
    auth_secret: str = "change-me-long-random-secret"
    auth_token_ttl_hours: int = 12
    system_admin_email: str = "admin@lingua.local"
    system_admin_password: str = ""

    # --- Languages ---
    # Comma separated language codes every project is translated into.
    supported_languages: str = "en,de,it,fr,es"
    source_language: str = "en"

    # --- AI suggestions ---
    llm_provider: str = "gemini"  # gemini | openai
    llm_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_model: str = "gemini-2.0-flash"
    llm_api_key: str = ""
    llm_timeout_seconds: float = 30.0

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def language_codes(self) -> list[str]:
        codes = [c.strip().lower() for c in (self.supported_languages or "").split(",") if c.strip()]
        return codes or [self.source_language]


def get_settings() -> Settings:
    """Factory function for settings singleton."""
    return Settings()
