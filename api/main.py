import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_settings
from database import Base, build_engine, build_session_factory
from errors import PortalError
from logging_config import setup_logging
from middleware.rate_limiter import RateLimitMiddleware
from mt5api.client import ManagerClient
from routers import status, auth, accounts, account_data, demo, funds
from scheduler import SchedulerService, register_reconciliation_job
from security import SessionCodec
from utils.email import Mailer
import models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None, engine=None, platform: ManagerClient = None, mailer: Mailer = None) -> FastAPI:
    """
    Build the portal API.

    Long-lived handles (engine, session factory, manager API client,
    mailer, session codec, scheduler) are created in the lifespan and
    parked on app.state. Tests pass their own engine/platform/mailer.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.LOG_LEVEL)
        settings.check_required()

        db_engine = engine if engine is not None else build_engine(settings)
        Base.metadata.create_all(bind=db_engine)

        app.state.settings = settings
        app.state.engine = db_engine
        app.state.session_factory = build_session_factory(db_engine)
        app.state.platform = platform or ManagerClient.from_settings(settings)
        app.state.mailer = mailer or Mailer.from_settings(settings)
        app.state.codec = SessionCodec(settings.AUTH_SECRET_KEY, settings.AUTH_ALGORITHM)

        app.state.scheduler = None
        if settings.RECONCILE_INTERVAL_MINUTES > 0:
            app.state.scheduler = SchedulerService(app.state.session_factory)
            register_reconciliation_job(app.state.scheduler, settings)
            app.state.scheduler.start()

        logger.info(f"Portal API started: {settings!r}")
        try:
            yield
        finally:
            if app.state.scheduler is not None:
                app.state.scheduler.shutdown()
            if platform is None:
                app.state.platform.close()
            if engine is None:
                db_engine.dispose()
            logger.info("Portal API stopped")

    app = FastAPI(
        title="iTrade Portal API",
        version="1.0.0",
        description="Client portal endpoints: signup, login, accounts and funds",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(RateLimitMiddleware, auth_limit=settings.AUTH_RATE_LIMIT)

    # Include Routers
    app.include_router(status.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(accounts.router, prefix="/api")
    app.include_router(account_data.router, prefix="/api")
    app.include_router(demo.router, prefix="/api")
    app.include_router(funds.router, prefix="/api")

    # Exception handlers
    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Invalid request.", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    return app


app = create_app()
