from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Goal Planner API"
    # "http" talks to a json-server style /goals collection, "postgres" uses
    # DATABASE_URL, "memory" keeps everything in-process (local demos, tests).
    store_backend: Literal["http", "postgres", "memory"] = "memory"
    store_base_url: str = "http://localhost:3000"
    store_timeout_seconds: float = 10
    store_max_retries: int = 2
    database_url: str = ""
    deposit_max_attempts: int = 5
    deposit_retry_delay_seconds: float = 0.05
    # Comma-separated origins for CORS.
    cors_allow_origins: str = "*"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
