#!/usr/bin/env python3
"""Apply migrations/versions/*.sql, in name order, to the run store database."""
import argparse
import asyncio
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import asyncpg

from src.core.config.env import get_app_db_url, load_project_env

VERSIONS = ROOT / "migrations" / "versions"


def split_statements(sql: str) -> list[str]:
    lines = [line for line in sql.split("\n") if not line.strip().startswith("--")]
    return [stmt.strip() + ";" for stmt in "\n".join(lines).split(";") if stmt.strip()]


async def run_migrations(url: str, only: str | None = None) -> None:
    conn = await asyncpg.connect(url)
    try:
        for sql_path in sorted(VERSIONS.glob("*.sql")):
            if only and sql_path.name != only:
                continue
            for stmt in split_statements(sql_path.read_text(encoding="utf-8")):
                await conn.execute(stmt)
            print(f"Migration {sql_path.name} applied successfully.")
    finally:
        await conn.close()


def main():
    parser = argparse.ArgumentParser(description="Apply SQL migrations to the workflow run store.")
    parser.add_argument("--only", help="Apply a single migration file by name")
    parser.add_argument("--connection-id", default="POSTGRES_APP_URL", help="Env var holding the database URL")
    args = parser.parse_args()

    load_project_env(ROOT)
    url = get_app_db_url(dict(os.environ), args.connection_id)
    if not url:
        print(f"{args.connection_id} not set. Set it in config/env/.env or .env")
        sys.exit(1)
    asyncio.run(run_migrations(url, args.only))


if __name__ == "__main__":
    main()
