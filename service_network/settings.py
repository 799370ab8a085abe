"""Process settings loaded from environment variables or .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings that are not part of the stack configuration.

    Stack inputs (CIDR, zones, tags) live in Pulumi config, see
    ``service_network.config``. These only control how the program runs.
    """

    model_config = SettingsConfigDict(
        env_prefix="SERVICE_NETWORK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_mode: str = "development"  # "production" switches to JSON logs
    log_level: str = "info"  # debug, info, warning, error or silent
    log_sink: str = "engine"  # engine (Pulumi log) or console; ignored in production

    @property
    def is_production(self) -> bool:
        return self.app_mode.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
