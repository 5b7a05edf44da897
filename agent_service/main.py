import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker
from agent_service.config import Settings, get_settings
from agent_service.database.connection import build_engine, build_session_factory
from agent_service.controllers.auth_controller import router as auth_router
from agent_service.controllers.agent_controller import router as agent_router
from agent_service.services import AgentRegistry, AuthGateway, OtpAuthenticator, SessionIssuer
from agent_service.utils.error_handlers import register_error_handlers
from agent_service.utils.logger import setup_logging

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests"""
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_ip}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(f"Response: {response.status_code} for {request.method} {request.url.path} ({process_time:.3f}s)")
        return response


async def run_otp_cleanup(otp: OtpAuthenticator, interval_seconds: int) -> None:
    """Periodically purge expired codes and lockouts"""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await otp.cleanup()
        except Exception as e:
            logger.error(f"OTP cleanup failed: {str(e)}", exc_info=True)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker] = None,
) -> FastAPI:
    """Build the application with one set of services per process"""
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    engine = None
    if session_factory is None:
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)

    registry = AgentRegistry.from_settings(session_factory, settings)
    otp = OtpAuthenticator.from_settings(session_factory, settings)
    sessions = SessionIssuer.from_settings(session_factory, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Test database connection on startup (non-blocking - don't fail startup)
        if engine is not None:
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                logger.info("Database connection successful")
            except Exception as e:
                logger.warning(f"Database connection failed on startup: {str(e)}")

        cleanup_task = None
        if settings.OTP_CLEANUP_INTERVAL_SECONDS > 0:
            cleanup_task = asyncio.create_task(run_otp_cleanup(otp, settings.OTP_CLEANUP_INTERVAL_SECONDS))

        yield

        if cleanup_task is not None:
            cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cleanup_task

        if engine is not None:
            try:
                await engine.dispose()
                logger.info("Database connections closed")
            except Exception as e:
                logger.error(f"Error closing database: {str(e)}")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Agent registration and one-time-code login",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.agent_registry = registry
    app.state.session_issuer = sessions
    app.state.auth_gateway = AuthGateway(registry, otp, sessions)

    # Add request logging middleware first (runs before CORS)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(auth_router, prefix=settings.API_V1_STR)
    app.include_router(agent_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        return {"message": settings.PROJECT_NAME, "status": "running"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
