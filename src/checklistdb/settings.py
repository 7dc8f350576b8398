"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the checklistdb engine and its admin API.

    Values are read from environment variables and from a ``.env`` file
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"

    # Engine
    batch_max_operations: int = 500  # document store ceiling per atomic batch
    comments_max_length: int = 1000
    validation_concurrent: bool = True  # fan rules out with asyncio.gather

    # Admin API
    api_server_host: str = "localhost"
    api_server_port: int = 8000
    port: int | None = None  # platform-injected PORT; takes precedence over api_server_port

    @property
    def effective_port(self) -> int:
        """Return the port to listen on (platform PORT takes precedence)."""
        return self.port if self.port is not None else self.api_server_port
