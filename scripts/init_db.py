"""
Seed the initial admin account and the default site settings (idempotent).

Usage:
  python scripts/init_db.py               # seed only (tables come from `alembic upgrade head`)
  python scripts/init_db.py --create-all  # also create tables directly (local sqlite)
"""
import argparse
import os
import sys
from datetime import datetime
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.bestar.models import Base, User
from app.bestar.modules.settings.models import Setting
from app.bestar.modules.settings.service import DEFAULT_SETTINGS
from app.bestar.permissions import Role
from scripts._db_utils import create_script_engine, script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin user and default settings.
    Does NOT overwrite an existing admin user's password, and never demotes anyone.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@bestarca.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///bestar.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        now = datetime.utcnow()
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                name="Administrator",
                role=Role.ADMIN.value,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            s.add(user)
        elif user.role != Role.ADMIN.value:
            user.role = Role.ADMIN.value
            user.updated_at = now

        existing = {key for (key,) in s.query(Setting.key).all()}
        for key, value in DEFAULT_SETTINGS.items():
            if key not in existing:
                s.add(Setting(key=key, value=value, updated_at=now))

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def create_all(database_url: str) -> None:
    engine = create_script_engine(database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--create-all", action="store_true", help="Create tables from the models before seeding")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///bestar.db").strip()
    if args.create_all:
        create_all(db_url)
        print("Tables created.")
    seed_only(database_url=db_url)


if __name__ == "__main__":
    main()
