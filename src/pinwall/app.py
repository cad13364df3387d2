"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pinwall.api.routes import admin, files, records, uploads
from pinwall.core import timezone  # noqa: F401
from pinwall.core.config import Settings, configure_logging
from pinwall.core.database import create_tables, dispose_db_session, setup_db_session
from pinwall.services.admin_auth import AdminAuthService
from pinwall.services.exceptions import PinwallError, StorageError
from pinwall.services.moderation import ModerationService
from pinwall.services.storage import FileStorage
from pinwall.services.upload_keys import UploadKeyService
from pinwall.services.upload_policy import UploadPolicy
from pinwall.uow import create_uow_factory

logger = structlog.get_logger()


def install_services(app: FastAPI, settings: Settings, storage: FileStorage) -> None:
    """Create the service objects and store them in app.state for the routers."""
    upload_keys = UploadKeyService(secret=settings.key_secret)
    app.state.settings = settings
    app.state.storage = storage
    app.state.upload_keys = upload_keys
    app.state.admin_auth = AdminAuthService()
    app.state.moderation = ModerationService(
        storage=storage,
        policy=UploadPolicy.from_settings(settings),
        keys=upload_keys,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Handles startup and shutdown tasks:
    - Startup: Configure logging, open the database, bootstrap the admin credential
    - Shutdown: Dispose database connections
    """
    settings: Settings = app.state.settings

    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    if settings.auto_create_tables:
        await create_tables(session_factory)

    uow_factory = create_uow_factory(session_factory)
    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory

    async with await uow_factory() as uow:
        created = await app.state.admin_auth.ensure_password(uow, settings.admin_password)
        if created:
            logger.info("startup.admin_credential_created")

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        upload_dir=settings.upload_dir,
    )

    yield

    logger.info("application.shutdown")
    await dispose_db_session(session_factory)


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors to JSON responses."""

    @app.exception_handler(PinwallError)
    async def handle_service_error(request: Request, exc: PinwallError) -> JSONResponse:
        if isinstance(exc, StorageError):
            logger.error(
                "request.storage_error",
                path=request.url.path,
                error=str(exc),
                cause=repr(exc.__cause__) if exc.__cause__ else None,
            )
        else:
            logger.info(
                "request.rejected",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=str(exc),
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "request.database_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": StorageError.public_message},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": errors},
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Settings to use (loaded from the environment when None)

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Pinwall API",
        description="Moderated image sharing with single-use upload keys",
        version="0.1.0",
        lifespan=lifespan,
    )

    storage = FileStorage(settings.upload_dir)
    storage.ensure_root()
    install_services(app, settings, storage)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(uploads.router)
    app.include_router(records.router)
    app.include_router(admin.router)
    app.include_router(files.router)

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


def run() -> None:
    """Run the API with uvicorn using HOST/PORT from settings."""
    import uvicorn

    settings = Settings()  # type: ignore[call-arg]
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
