from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "upload_queue"
    db_username: str = "upload_queue"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    poll_batch_size: int = 10
    poll_interval_seconds: int = 5
    max_query_limit: int = 100

    # Comma-separated source types this worker converts.
    converters: str = "raw"

    @field_validator("poll_batch_size", "max_query_limit")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @property
    def supported_source_types(self) -> list[str]:
        return [name.strip() for name in self.converters.split(",") if name.strip()]
