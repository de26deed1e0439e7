#!/usr/bin/env python3
"""Seed permissions, the superuser role and an admin account.

Usage:
    python scripts/bootstrap_auth.py --email admin@example.com --password 'S3cure!pass'

Falls back to BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD from the
environment (or .env) when the flags are omitted.
"""
import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Bootstrap auth reference data and an admin user")
    parser.add_argument("--email", help="admin email")
    parser.add_argument("--password", help="admin password")
    args = parser.parse_args(argv)

    from core.config import settings
    from core.database import SessionLocal, init_db
    from core.logging_config import setup_logging
    from services.bootstrap_service import bootstrap_auth

    setup_logging(log_level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)
    init_db()

    db = SessionLocal()
    try:
        result = bootstrap_auth(db, args.email, args.password)
    finally:
        db.close()

    print(f"Admin ready: {result['email']} ({result['status']})")
    if result["status"] == "created" and not args.password:
        print("Default password in use, change it after the first login.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
