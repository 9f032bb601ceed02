"""Configuration management via pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Transport
    transport_max_retries: int = 3
    transport_timeout_ms: int = 30000
    transport_follow_redirects: bool = True
    proxy_url: str | None = None

    # Extraction
    comment_max_depth: int = 3

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Field(default=Path("./logs"))

    @property
    def timeout_seconds(self) -> float:
        return self.transport_timeout_ms / 1000


settings = Settings()
