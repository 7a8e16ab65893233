"""
Identity Service - signup, login, JWT access/refresh tokens and password reset

Run with: uvicorn identity_platform.identity_platform.identity_service.main:get_application --factory
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .db import build_session_factory, create_db_engine, init_db
from .email_service import SmtpEmailSender
from .errors import register_error_handlers
from .passwords import PasswordHasher
from .routes import auth, users
from .utils.event_logger import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Settings, email_sender=None) -> FastAPI:
    """
    Build the FastAPI application around an explicit ``Settings`` instance.

    Every component reads its configuration from the instance stored on
    ``app.state``; nothing is looked up from the environment after this point.
    """
    configure_logging(settings)
    engine = create_db_engine(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        """Initialize database on startup"""
        init_db(engine)
        logger.info("Identity service started")
        yield
        engine.dispose()

    app = FastAPI(
        title="Identity Service",
        description="User signup, login, token issuance and password reset",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.password_hasher = PasswordHasher(settings.PASSWORD_HASH_ROUNDS)
    app.state.email_sender = email_sender or SmtpEmailSender(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}

    return app


def get_application(settings: Optional[Settings] = None) -> FastAPI:
    return create_app(settings or Settings())
