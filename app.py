"""
dao-tracker-api/app.py
Point d'entrée principal de l'API de suivi des DAO
"""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Config
from api.endpoints import (
    router as api_router, auth_router, admin_router, comments_router, notifications_router
)
from domain.exceptions import DaoTrackerError, StorageError
from infrastructure.dependencies import build_context
from logging_config import setup_logging, setup_colored_logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "dao-tracker-api"
VERSION = "1.0.0"


def _configure_logging(config: Config) -> None:
    log_file = config.log_file_path if config.log_file_enabled else None
    if config.log_colored:
        setup_colored_logging(log_level=config.log_level, log_file=log_file)
    else:
        setup_logging(log_level=config.log_level, log_file=log_file)


def _error_body(config: Config, exc: Exception, message: str, code: str, details=None):
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    if not config.is_production:
        body["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def register_exception_handlers(app: FastAPI, config: Config) -> None:
    """Rendu uniforme des erreurs: {error, code, details?, trace?}"""

    @app.exception_handler(DaoTrackerError)
    async def handle_app_error(request: Request, exc: DaoTrackerError):
        message = exc.message
        if isinstance(exc, StorageError):
            logger.error(f"❌ Storage error on {request.method} {request.url.path}: {exc.message}")
            if config.is_production:
                message = "Internal storage error"
        elif exc.http_status >= 500:
            logger.error(f"❌ {exc.code} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.warning(f"⚠️ {exc.code} on {request.method} {request.url.path}: {exc.message}")

        details = getattr(exc, "details", None)
        return JSONResponse(
            status_code=exc.http_status,
            content=_error_body(config, exc, message, exc.code, details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path", "header")),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Validation error", "code": "VALIDATION_ERROR", "details": details},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        message = "Internal server error" if config.is_production else str(exc)
        return JSONResponse(
            status_code=500,
            content=_error_body(config, exc, message, "INTERNAL_ERROR"),
        )


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Crée l'application FastAPI avec son propre contexte (stockage, services, sessions)"""
    config = config or Config()
    _configure_logging(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gestion du cycle de vie de l'application"""
        # --- Startup ---
        context = app.state.context
        logger.info("🚀 Démarrage de DAO Tracker API")
        logger.info(f"📊 Storage: {context.storage.name}")
        logger.info(f"🌍 Environment: {config.environment}")

        yield

        # --- Shutdown ---
        logger.info("🛑 Arrêt de DAO Tracker API")
        context.close()

    app = FastAPI(
        title="DAO Tracker API",
        description="API de suivi des dossiers d'appel d'offres (DAO)",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.config = config
    app.state.context = build_context(config)

    # Configuration CORS (pour permettre les appels depuis le frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, config)

    # Inclure les routes API
    app.include_router(api_router, prefix="/api")
    # Inclure les routes d'authentification
    app.include_router(auth_router, prefix="/api")
    app.include_router(comments_router, prefix="/api")
    app.include_router(notifications_router, prefix="/api")
    # Inclure les routes de gestion admin
    app.include_router(admin_router, prefix="/api")

    @app.get("/", tags=["Root"])
    def root():
        """Page d'accueil de l'API"""
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "status": "operational",
            "documentation": "/docs"
        }

    @app.get("/health", tags=["System"])
    def health_check():
        """Endpoint de santé pour les orchestrateurs (Kubernetes, Docker, etc.)"""
        context = app.state.context
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "storage": context.storage.name,
            "bootId": context.boot_id
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    from logging_config import get_uvicorn_log_config

    log_config = get_uvicorn_log_config(log_level=app.state.config.log_level)

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_config=log_config
    )
