"""FastAPI application entry point with lifecycle management."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import asyncio

from .config import settings
from .routes import router, limiter
from .db import init_models, dispose_engine
from .crud import StorageError
from .errors import validation_exception_handler, storage_exception_handler
from .logger import logger
from .middleware import (
    graceful_shutdown_middleware,
    add_request_id_middleware,
    request_logging_middleware,
    security_headers_middleware,
    set_shutdown_manager,
)
from .monitoring import setup_monitoring

# ==================== Graceful Shutdown ====================


class GracefulShutdownManager:
    """Tracks in-flight requests so shutdown can let them finish."""

    def __init__(self):
        self.is_shutting_down = False
        self.active_requests = 0
        self.shutdown_timeout = settings.GRACEFUL_SHUTDOWN_TIMEOUT

    def request_started(self):
        if not self.is_shutting_down:
            self.active_requests += 1

    def request_finished(self):
        if self.active_requests > 0:
            self.active_requests -= 1

    async def initiate_shutdown(self):
        """Stop accepting requests and wait (up to shutdown_timeout) for the rest."""
        if self.is_shutting_down:
            return

        logger.info("Graceful shutdown initiated")
        self.is_shutting_down = True

        if self.active_requests == 0:
            logger.info("No active requests - proceeding with immediate shutdown")
            return

        logger.info(f"Waiting for {self.active_requests} active request(s) to complete...")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.shutdown_timeout
        while self.active_requests > 0:
            if loop.time() >= deadline:
                logger.warning(
                    f"Shutdown timeout ({self.shutdown_timeout}s) reached with "
                    f"{self.active_requests} request(s) still active - forcing shutdown"
                )
                return
            await asyncio.sleep(0.1)

        logger.info("All active requests completed successfully")


shutdown_manager = GracefulShutdownManager()
set_shutdown_manager(shutdown_manager)

# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the document table on startup; drain requests and close the pool on shutdown."""
    logger.info(f"Starting {settings.APP_NAME} in {settings.APP_ENV} mode")
    await init_models()
    logger.info(f"{settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await shutdown_manager.initiate_shutdown()
    await dispose_engine()
    logger.info(f"{settings.APP_NAME} shutdown complete")

# ==================== Application Setup ====================


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Middleware registration (first registered = innermost layer)
app.middleware("http")(security_headers_middleware)
app.middleware("http")(request_logging_middleware)
app.middleware("http")(add_request_id_middleware)
app.middleware("http")(graceful_shutdown_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Error rendering
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StorageError, storage_exception_handler)

app.include_router(router)

setup_monitoring(app)
