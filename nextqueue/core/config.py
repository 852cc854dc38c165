from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    model_config = SettingsConfigDict(env_prefix="NEXTQUEUE_", env_file=".env", case_sensitive=False)

    app_name: str = Field(default="NextQueue")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)s %(name)s %(message)s")

    # Queue behaviour
    history_limit: int = Field(default=50, ge=1)
    default_workstation_type: str = Field(default="Guichê")
    auto_forward_default: bool = Field(default=False)

    # Voice announcements
    speech_enabled: bool = Field(default=True)
    speech_locale: str = Field(default="pt-BR")

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="nextqueue")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: str | None = Field(default=None)


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()
