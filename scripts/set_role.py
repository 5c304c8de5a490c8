#!/usr/bin/env python3
"""Set a user's role and, optionally, the staff article override.

Usage:
  python scripts/set_role.py --email jane@bestarca.com --role STAFF
  python scripts/set_role.py --email jane@bestarca.com --role STAFF --articles on
"""

import argparse
import os
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.bestar.models import User
from app.bestar.permissions import Role, coerce_role
from scripts._db_utils import script_session


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", required=True, help=f"One of: {', '.join(r.value for r in Role)}")
    parser.add_argument("--articles", choices=("on", "off"), help="Grant or revoke article management for STAFF")
    args = parser.parse_args()

    role = coerce_role(args.role)
    if role is None:
        print(f"Unknown role: {args.role}")
        return 2

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///bestar.db").strip()
    with script_session(db_url) as s:
        user = s.query(User).filter(User.email.ilike(args.email)).one_or_none()
        if not user:
            print(f"User not found: {args.email}")
            return 1
        user.role = role.value
        if args.articles is not None:
            user.can_manage_articles = args.articles == "on"
        user.updated_at = datetime.utcnow()
        print(f"{user.email}: role={user.role} can_manage_articles={user.can_manage_articles}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
