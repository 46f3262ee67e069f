from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    platform: Literal["web", "mobile"] = Field(default="web", alias="PLATFORM")
    documents_dir: str = Field(default="./documents", alias="DOCUMENTS_DIR")

    store_backend: Literal["memory", "json", "postgres"] = Field(default="memory", alias="STORE_BACKEND")
    store_path: str = Field(default="./store", alias="STORE_PATH")
    pg_dsn: str | None = Field(default=None, alias="PG_DSN")
    pg_schema: str = Field(default="public", alias="PG_SCHEMA")
    postgres_host: str | None = Field(default=None, alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str | None = Field(default=None, alias="POSTGRES_DB")
    postgres_user: str | None = Field(default=None, alias="POSTGRES_USER")
    postgres_password: SecretStr | None = Field(default=None, alias="POSTGRES_PASSWORD")

    enhancement_enabled: bool = Field(default=False, alias="ENHANCEMENT_ENABLED")
    enhancement_url: str | None = Field(default=None, alias="ENHANCEMENT_URL")
    enhancement_api_key: str | None = Field(default=None, alias="ENHANCEMENT_API_KEY")
    enhancement_batch_size: int = Field(default=3, alias="ENHANCEMENT_BATCH_SIZE")
    enhancement_batch_delay_s: float = Field(default=1.0, alias="ENHANCEMENT_BATCH_DELAY_S")
    enhancement_timeout_s: float = Field(default=60.0, alias="ENHANCEMENT_TIMEOUT_S")

    init_timeout_s: float = Field(default=5.0, alias="INIT_TIMEOUT_S")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["text", "json"] = Field(default="text", alias="LOG_FORMAT")


def load_settings() -> Settings:
    return Settings()
