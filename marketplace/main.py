"""
Marketplace Auth Service - FastAPI Application
Passwordless authentication and vendor onboarding for the B2B marketplace
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace import __version__
from marketplace.config import Settings, get_settings
from marketplace.db.database import MarketplaceDatabase
from marketplace.routes import auth, users, vendor_profiles
from marketplace.services.auth_service import AuthService
from marketplace.services.identity_provider import CognitoIdentityProvider
from marketplace.utils.exceptions import MarketplaceError
from marketplace.utils.file_storage import S3FileStorage
from marketplace.utils.logger import get_request_logger, setup_logging
from marketplace.utils.security import TokenVerifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    settings: Settings = app.state.settings
    if settings.environment != "testing":
        setup_logging(
            settings.logging_config_path,
            settings.log_level,
            settings.log_format,
            settings.environment
        )

    logger.info(f"{settings.app_name} starting up...")
    await app.state.database.initialize()
    logger.info(f"{settings.app_name} startup complete")

    yield

    logger.info(f"{settings.app_name} shutting down...")
    await app.state.database.close()


def add_exception_handlers(app: FastAPI) -> None:
    """Render every error with the same JSON envelope"""

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.detail,
                "code": "HTTP_ERROR",
                "status_code": exc.status_code
            },
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Request validation failed",
                "code": "VALIDATION_ERROR",
                "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
                "details": jsonable_encoder(exc.errors())
            }
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        settings: Settings = request.app.state.settings
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": str(exc) if settings.debug else "Internal server error",
                "code": "INTERNAL_ERROR",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
            }
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[MarketplaceDatabase] = None,
    identity_provider: Optional[CognitoIdentityProvider] = None,
    token_verifier: Optional[TokenVerifier] = None,
    file_storage: Optional[S3FileStorage] = None
) -> FastAPI:
    """
    Build the application and wire its collaborators

    Settings are read once here and passed to every component.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Passwordless authentication and vendor onboarding for the B2B marketplace",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    database = database or MarketplaceDatabase(settings)
    identity_provider = identity_provider or CognitoIdentityProvider(settings)
    token_verifier = token_verifier or TokenVerifier(settings)

    app.state.settings = settings
    app.state.database = database
    app.state.file_storage = file_storage or S3FileStorage(settings)
    app.state.auth_service = AuthService(settings, database, identity_provider, token_verifier)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    request_logger = get_request_logger()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        request_logger.log_request(
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - start,
            request.client.host if request.client else None
        )
        return response

    add_exception_handlers(app)

    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(vendor_profiles.router, prefix="/vendor-profiles", tags=["Vendor Profiles"])

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": __version__,
            "environment": settings.environment
        }

    @app.get("/health/database")
    async def database_health_check():
        try:
            if database.engine is None or not await database.health_check():
                raise RuntimeError("database not initialized")
            return {"status": "healthy", "database": settings.db_name}
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": settings.db_name, "error": str(e)}
            )

    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    return app


def get_app() -> FastAPI:
    """Factory for `uvicorn --factory marketplace.main:get_app`"""
    return create_app()
