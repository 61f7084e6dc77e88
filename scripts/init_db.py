#!/usr/bin/env python3
"""
Database Init Script

Creates the schema, checks the file store and optionally seeds an admin.
Admins cannot self-register, so the first one is created here.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --admin-email admin@espacestage.app --admin-password 'S3cretPass'
"""
import argparse
import sys

sys.path.insert(0, '.')

from espacestage.core.config import get_settings
from espacestage.core.logging_config import configure_logging
from espacestage.db.init import create_admin, init_database
from espacestage.db.mongodb import GridFSFileStore
from espacestage.db.postgres import Database


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the EspaceStage database")
    parser.add_argument("--admin-email", help="Email of an admin account to create")
    parser.add_argument("--admin-password", help="Password of the admin account (min 8 characters)")
    args = parser.parse_args(argv)

    if bool(args.admin_email) != bool(args.admin_password):
        parser.error("--admin-email and --admin-password go together")
    if args.admin_password and len(args.admin_password) < 8:
        parser.error("--admin-password must be at least 8 characters")

    settings = get_settings()
    configure_logging(settings)

    print("=" * 50)
    print("ESPACESTAGE - DATABASE INIT")
    print("=" * 50)

    db = Database(settings)
    try:
        print("\n[1] PostgreSQL schema...")
        if not db.test_connection():
            print("    ❌ PostgreSQL: unreachable")
            return 1
        init_database(db)
        print("    ✅ Tables ready")

        print("\n[2] MongoDB file store...")
        store = GridFSFileStore(settings)
        if store.test_connection():
            print("    ✅ MongoDB: CONNECTED")
        else:
            print("    ⚠️  MongoDB: unreachable, uploads will fail until it is up")
        store.close()

        if args.admin_email:
            print("\n[3] Admin account...")
            admin_id = create_admin(db, args.admin_email, args.admin_password)
            if admin_id is None:
                print(f"    ⚠️  {args.admin_email} already exists")
            else:
                print(f"    ✅ Created admin {args.admin_email} (id {admin_id})")
    finally:
        db.dispose()

    print("\n" + "=" * 50)
    print("Init complete!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
