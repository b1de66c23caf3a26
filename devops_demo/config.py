from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    # NODE_ENV is still honoured so existing deployment manifests keep working.
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    hostname: str = Field(default="unknown", alias="HOSTNAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    shutdown_timeout_seconds: float = Field(default=10.0, alias="SHUTDOWN_TIMEOUT_SECONDS")
    metrics_collapse_unmatched_routes: bool = Field(default=True, alias="METRICS_COLLAPSE_UNMATCHED_ROUTES")

    healthcheck_host: str = Field(default="localhost", alias="HEALTHCHECK_HOST")
    healthcheck_timeout_seconds: float = Field(default=5.0, alias="HEALTHCHECK_TIMEOUT_SECONDS")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
