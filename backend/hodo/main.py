"""
FastAPI backend for the Hodo task manager.

Provides the REST API consumed by the web UI: accounts and session
credentials, unlock-code redemption and status, and per-user tasks.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import asyncpg
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.auth import router as auth_router
from .api.tasks import router as tasks_router
from .api.unlock import router as unlock_router
from .config import Settings
from .db import close_db, init_db
from .licensing import LicensingError, StorageUnavailable
from .logging import get_logger, setup_logging
from .services import Services

logger = get_logger("main")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    When ``services`` is supplied the caller owns persistence, and startup
    neither opens the database pool nor writes log files.
    """
    settings = settings or (services.settings if services else Settings())
    manage_resources = services is None
    services = services or Services.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        if manage_resources:
            setup_logging(settings.log_dir)
            await init_db(settings.database_url)
        logger.info("Starting Hodo backend...")
        if settings.uses_default_secret:
            logger.warning("JWT_SECRET is not set; credentials are signed with the insecure default secret")
        if not services.decryptor.validate_private_key():
            logger.error(f"Private key at {settings.private_key_path} is missing or invalid; unlock codes cannot be redeemed")
        yield
        if manage_resources:
            await close_db()
        logger.info("Shutting down...")

    app = FastAPI(
        title="Hodo",
        description="Personal task manager backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS for the web UI served by the desktop shell
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LicensingError)
    async def licensing_error_handler(request: Request, exc: LicensingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Connectivity failures only; other database errors surface as 500
    @app.exception_handler(asyncpg.PostgresConnectionError)
    @app.exception_handler(asyncpg.CannotConnectNowError)
    @app.exception_handler(asyncpg.InterfaceError)
    @app.exception_handler(OSError)
    async def storage_error_handler(request: Request, exc: Exception):
        logger.error(f"Storage error on {request.method} {request.url.path}: {type(exc).__name__}")
        error = StorageUnavailable()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    app.include_router(auth_router)
    app.include_router(unlock_router)
    app.include_router(tasks_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "private_key_valid": services.decryptor.validate_private_key(),
        }

    return app


app = create_app()
