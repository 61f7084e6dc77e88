"""
EspaceStage - Main Application

FastAPI backend with:
- PostgreSQL for accounts, profiles, offers and applications
- MongoDB GridFS for uploaded documents
- JWT authentication with student / company / admin roles
- Email notifications through Resend

Run: uvicorn espacestage.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from espacestage import __version__
from espacestage.api.routes import api_router
from espacestage.core.config import Settings, get_settings
from espacestage.core.errors import register_error_handlers
from espacestage.core.logging_config import configure_logging
from espacestage.db.init import init_database
from espacestage.db.mongodb import FileStore, GridFSFileStore
from espacestage.db.postgres import Database, run_health_checks
from espacestage.services.notification_service import Notifier, ResendNotifier

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    file_store: Optional[FileStore] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """
    Build the application.

    Infrastructure is created here and attached to app.state; tests pass
    their own database, file store and notifier.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        db: Database = app.state.db
        init_database(db)

        health_task = None
        if settings.db_health_check_interval > 0:
            health_task = asyncio.create_task(run_health_checks(db, settings.db_health_check_interval))
        logger.info("%s started (%s)", settings.app_name, settings.app_env)

        try:
            yield
        finally:
            if health_task is not None:
                health_task.cancel()
                with suppress(asyncio.CancelledError):
                    await health_task
            app.state.file_store.close()
            db.dispose()
            logger.info("%s stopped", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        description="""
    Internship marketplace for students, companies and administrators.

    ## Features
    - **Authentication**: JWT-based auth, role-based redirection
    - **Students**: Profile, CV upload, applications
    - **Companies**: Profile, offer management, application review
    - **Offers**: Public search with filters
    - **Admin**: Moderation, statistics, reports (CSV/PDF), pivot table
    """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db = database or Database(settings)
    app.state.file_store = file_store or GridFSFileStore(settings)
    app.state.notifier = notifier or ResendNotifier(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/", tags=["Health"])
    def root():
        return {"success": True, "app": settings.app_name, "version": __version__}

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Detailed health check."""
        postgres_ok = request.app.state.db.test_connection()
        mongo_ok = request.app.state.file_store.test_connection()
        return {
            "status": "healthy" if postgres_ok and mongo_ok else "degraded",
            "postgres": "connected" if postgres_ok else "disconnected",
            "mongodb": "connected" if mongo_ok else "disconnected",
        }

    return app


app = create_app()
