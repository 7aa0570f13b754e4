"""
seaptc/main.py
Application entry point: settings, logging, database, store and routers.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from seaptc.config.settings import Settings, get_settings
from seaptc.database import close_db, create_engine, create_session_factory, init_db
from seaptc.errors import APIError, ErrorCode, InternalError, ServiceUnavailableError, from_core_exception
from seaptc.exceptions import ConfigurationInvalidError, SeaptcException
from seaptc.log import configure_logging
from seaptc.middleware.request_trace import RequestTraceMiddleware
from seaptc.rate_limit import limiter
from seaptc.routes import api, catalog, dashboard, participant
from seaptc.services.conference_store import ConferenceStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting application...")

    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
        store = ConferenceStore(create_session_factory(engine), max_age_seconds=settings.cache_ttl_seconds)
        conf, _ = await store.get_conference()
    except Exception as e:
        logger.error(f"Failed to load conference data: {str(e)}")
        await close_db(engine)
        raise

    try:
        conf.configuration.validate_settings()
    except ConfigurationInvalidError as e:
        if not settings.dev_mode:
            await close_db(engine)
            raise
        logger.error(f"Invalid configuration (ignored in development): {e.message}")

    app.state.store = store
    logger.info(f"Conference data loaded (version {store.max_version})")

    yield

    logger.info("Shutting down application...")
    await close_db(engine)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, structured=bool(settings.gae_service))

    app = FastAPI(
        title="SEAPTC Conference API",
        description="Class catalog, participant schedules and evaluations for the program and training conference",
        version="1.0.0",
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Attach rate limiter to the app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        RequestTraceMiddleware,
        project_id=settings.project_id,
        structured=bool(settings.gae_service),
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        error_details = [
            {"loc": error.get("loc"), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation Error",
                "message": "Request validation failed",
                "code": ErrorCode.VALIDATION_ERROR,
                "details": error_details,
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": "Error",
                "message": str(exc.detail),
                "code": ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.NOT_FOUND,
            }
        )

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        logger.warning(f"API error on {request.url.path}: {exc.code} - {exc.message}")
        return exc.to_response()

    @app.exception_handler(SeaptcException)
    async def core_error_handler(request: Request, exc: SeaptcException):
        if exc.status_code >= 500:
            logger.error(f"Error on {request.url.path}: {type(exc).__name__}: {exc.message}")
        else:
            logger.warning(f"Rejected request on {request.url.path}: {exc.message}")
        return from_core_exception(exc).to_response()

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Database error on {request.url.path}: {type(exc).__name__}: {str(exc)}")
        return ServiceUnavailableError(log_id=log_id).to_response()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")
        return InternalError("An unexpected error occurred. Please try again later.", log_id=log_id).to_response()

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        store: Optional[ConferenceStore] = getattr(request.app.state, "store", None)
        return {
            "status": "healthy",
            "environment": settings.environment,
            "max_version": store.max_version if store else None,
            "version": "1.0.0",
        }

    app.include_router(api.router)
    app.include_router(catalog.router)
    app.include_router(participant.router)
    app.include_router(dashboard.router)
    return app


app = create_app()
