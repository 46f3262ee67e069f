from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import psycopg

_MIGRATIONS_TABLE = "plan_ingest_migrations"


@dataclass(frozen=True)
class Migration:
    version: str
    path: Path

    def sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


def discover_migrations(directory: Path | None = None) -> list[Migration]:
    root = directory or Path(__file__).resolve().parent / "sql"
    return [Migration(version=p.stem, path=p) for p in sorted(root.glob("*.sql"))]


def _prepare(conn: psycopg.Connection, schema: str) -> set[str]:
    conn.execute("set timezone to 'UTC'")
    conn.execute(f'create schema if not exists "{schema}"')
    conn.execute(f'set search_path to "{schema}"')
    conn.execute(
        f"""
        create table if not exists {_MIGRATIONS_TABLE} (
          version text primary key,
          applied_at timestamptz not null default now()
        )
        """
    )
    rows = conn.execute(f"select version from {_MIGRATIONS_TABLE}").fetchall()
    return {r[0] for r in rows}


def apply_migrations(
    dsn: str,
    *,
    schema: str = "public",
    migrations: Iterable[Migration] | None = None,
) -> list[str]:
    """
    Create the key-value store tables in `schema` and return the versions applied now.

    Re-running is a no-op: recorded versions are skipped.
    """
    pending = list(migrations) if migrations is not None else discover_migrations()

    applied: list[str] = []
    with psycopg.connect(dsn) as conn:
        done = _prepare(conn, schema)
        for mig in pending:
            if mig.version in done:
                continue
            conn.execute(mig.sql())
            conn.execute(f"insert into {_MIGRATIONS_TABLE}(version) values (%s)", (mig.version,))
            conn.commit()
            applied.append(mig.version)

    return applied
