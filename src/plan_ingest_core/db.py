from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import SecretStr

if TYPE_CHECKING:
    from plan_ingest_core.config import Settings


@dataclass(frozen=True)
class PostgresConfig:
    """Connection settings for the Postgres-backed key-value store."""

    dsn: str | None = None
    host: str | None = None
    port: int = 5432
    db: str | None = None
    user: str | None = None
    password: SecretStr | str | None = None
    schema: str = "public"

    @classmethod
    def from_settings(cls, settings: Settings) -> PostgresConfig:
        return cls(
            dsn=settings.pg_dsn,
            host=settings.postgres_host,
            port=settings.postgres_port,
            db=settings.postgres_db,
            user=settings.postgres_user,
            password=settings.postgres_password,
            schema=settings.pg_schema,
        )

    def build_dsn(self) -> str:
        if self.dsn:
            return self.dsn
        required = {
            "POSTGRES_HOST": self.host,
            "POSTGRES_DB": self.db,
            "POSTGRES_USER": self.user,
            "POSTGRES_PASSWORD": self.password,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(f"Missing Postgres config: {', '.join(missing)} (or set PG_DSN)")
        password = (
            self.password.get_secret_value() if isinstance(self.password, SecretStr) else self.password
        )
        return f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.db}"
