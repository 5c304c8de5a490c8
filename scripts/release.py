"""
Release phase: apply migrations, then seed the admin account and default settings.

Runs before every deploy (see scripts/start.py). Both steps are idempotent and the
seed never overwrites an existing password.

Usage:
  DATABASE_URL=postgresql://... python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is not set; refusing to release against the default sqlite file.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
    return db_url


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def seed(db_url: str) -> None:
    from scripts.init_db import seed_only

    seed_only(database_url=db_url)


def run_release() -> None:
    db_url = _database_url()
    print("Release: alembic upgrade head", flush=True)
    migrate(db_url)
    print("Release: seeding admin and settings", flush=True)
    seed(db_url)
    print("Release: done", flush=True)


if __name__ == "__main__":
    run_release()
