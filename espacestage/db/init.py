"""
Schema creation and admin seeding.

Admins cannot self-register; the first one is created here.
"""

import logging
from typing import Optional

from sqlalchemy import text

from espacestage.core.auth import hash_password
from espacestage.db.postgres import Database

logger = logging.getLogger(__name__)


def init_database(db: Database) -> None:
    """Create all tables that do not exist yet."""
    db.create_schema()
    logger.info("Database schema ready")


def create_admin(db: Database, email: str, password: str) -> Optional[int]:
    """Create an admin account. Returns its id, or None if the email is taken."""
    email = email.strip().lower()
    with db.session() as session:
        existing = session.execute(
            text("SELECT id FROM accounts WHERE email = :email"), {"email": email}
        ).fetchone()
        if existing:
            logger.info("Admin %s already exists", email)
            return None

        account_id = session.execute(
            text("""
                INSERT INTO accounts (email, password_hash, role, status)
                VALUES (:email, :password_hash, 'admin', 'active')
                RETURNING id
            """),
            {"email": email, "password_hash": hash_password(password)},
        ).scalar_one()

    logger.info("Created admin account %s", email)
    return account_id
