"""
Entry point for the Service Hub backend.

This module creates the FastAPI application, includes all API routers,
and sets up middleware and error handlers. Run with:

    uvicorn servicehub.main:app --reload

"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .core.config import env_flag, get_app_env, settings, validate_runtime_settings
from .core.db import SessionLocal, engine
from .core.errors import log_exception, register_error_handlers
from .core.logging_config import setup_logging
from .models import Base
from .scripts.run_migrations import run_migrations_to_head
from .services.auth_seed import seed_admin_user


def _cors_origins() -> list[str]:
    raw = settings.cors_origins or ""
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app() -> FastAPI:
    setup_logging(settings.log_level, log_file=os.getenv("LOG_FILE") or None)
    validate_runtime_settings()

    app = FastAPI(title="Service Hub Backend", version="0.1.0")
    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    # Include API routers
    app.include_router(api_router)

    @app.on_event("startup")
    def _init_db() -> None:
        logger = logging.getLogger("startup")
        env = get_app_env()
        if env_flag("AUTO_CREATE_DB", "true"):
            try:
                Base.metadata.create_all(bind=engine)
            except Exception as exc:
                log_exception(logger, "DB create_all failed", exc=exc)
                if env == "prod":
                    raise
        if env_flag("AUTO_RUN_MIGRATIONS", "true"):
            try:
                run_migrations_to_head()
            except Exception as exc:
                log_exception(logger, "DB migrations failed", exc=exc)
                if env == "prod":
                    raise
        if env_flag("AUTO_SEED_ADMIN_USER", "true"):
            try:
                with SessionLocal() as db:
                    seed_admin_user(db)
            except Exception as exc:
                log_exception(logger, "Seed admin user failed", exc=exc)
                if env == "prod":
                    raise
        logger.info("Service Hub backend started env=%s", env)

    return app


app = create_app()
