"""
Relational database access.

One Database object per process: it owns the engine (connection pool)
and the session factory. The application factory creates it at startup,
stores it on app.state and disposes it on shutdown; handlers receive it
through the get_db dependency.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker

from espacestage.core.config import Settings
from espacestage.db.schema import metadata

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, settings: Settings):
        self.url = settings.sqlalchemy_url
        self.is_sqlite = self.url.startswith("sqlite")

        if self.is_sqlite:
            self.engine = create_engine(
                self.url,
                connect_args={"check_same_thread": False},
                echo=settings.debug,
            )
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # pool_size=5: maintain 5 connections ready
            # max_overflow=10: allow 10 extra connections under load
            self.engine = create_engine(
                self.url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_pre_ping=True,
                connect_args={
                    "connect_timeout": settings.db_pool_timeout,
                    "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
                    "application_name": settings.app_name.lower(),
                },
                echo=settings.debug,
            )

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Scoped session: commit on success, rollback on error, always release.

        Usage:
            with db.session() as session:
                session.execute(text("SELECT * FROM accounts"))
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            try:
                session.close()
            except Exception:
                # The connection is unusable; drop it instead of returning it to the pool
                logger.exception("Failed to release database connection, invalidating it")
                session.invalidate()

    def execute_raw_sql(self, sql: str, params: Optional[dict] = None) -> List[dict]:
        """Execute raw SQL and return results as list of dicts."""
        with self.session() as session:
            result = session.execute(text(sql), params or {})
            columns = result.keys()
            return [dict(zip(columns, row)) for row in result.fetchall()]

    def fetch_one(self, sql: str, params: Optional[dict] = None) -> Optional[dict]:
        rows = self.execute_raw_sql(sql, params)
        return rows[0] if rows else None

    def create_schema(self) -> None:
        metadata.create_all(bind=self.engine)

    def test_connection(self) -> bool:
        """
        Test if the database is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            with self.session() as session:
                return session.execute(text("SELECT 1")).scalar() == 1
        except Exception as e:
            logger.warning("Database connection check failed: %s", e)
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def run_health_checks(db: Database, interval: int) -> None:
    """Periodically verify the pool can still reach the database."""
    while True:
        await asyncio.sleep(interval)
        healthy = await asyncio.to_thread(db.test_connection)
        if not healthy:
            logger.warning("Lost database connection, the pool will reconnect on next checkout")


def get_db(request: Request) -> Database:
    """
    Dependency for FastAPI route injection.
    Usage:
        @router.get("/offres")
        def list_offers(db: Database = Depends(get_db)):
            ...
    """
    return request.app.state.db
