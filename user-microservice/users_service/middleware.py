"""HTTP middleware for request tracing, logging, shutdown gating and security headers."""

from fastapi import Request
from fastapi.responses import JSONResponse
import time
import uuid
from .config import settings
from .logger import logger

# Set by main.py to avoid a circular import
shutdown_manager = None


def set_shutdown_manager(manager):
    """Register the shutdown manager instance (called from main.py)."""
    global shutdown_manager
    shutdown_manager = manager


# ==================== Graceful Shutdown Middleware ====================

async def graceful_shutdown_middleware(request: Request, call_next):
    """Count in-flight requests; turn new ones away once shutdown has begun."""
    if shutdown_manager is None:
        return await call_next(request)

    if shutdown_manager.is_shutting_down:
        logger.warning(
            f"Rejecting request {request.method} {request.url.path} - service is shutting down"
        )
        return JSONResponse(
            status_code=503,
            content={
                "error": "SERVICE_UNAVAILABLE",
                "message": "Service is shutting down - please retry with another instance"
            },
            headers={"Retry-After": "10"}
        )

    shutdown_manager.request_started()
    try:
        return await call_next(request)
    finally:
        shutdown_manager.request_finished()


# ==================== Request ID Middleware ====================

async def add_request_id_middleware(request: Request, call_next):
    """Reuse the caller's X-Request-ID or mint one, and echo it back."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """Log each request with its status and duration."""
    start_time = time.perf_counter()
    request_id = getattr(request.state, "request_id", "unknown")
    label = f"[{request_id}] {request.method} {request.url.path}"

    logger.info(f"{label} - Request received")
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"{label} - Error: {str(e)} - Duration: {time.perf_counter() - start_time:.3f}s",
            exc_info=True
        )
        raise

    logger.info(
        f"{label} - Status: {response.status_code} - "
        f"Duration: {time.perf_counter() - start_time:.3f}s"
    )
    return response


# ==================== Security Headers Middleware ====================

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # JSON API only; docs UI assets come from the jsdelivr CDN
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https://cdn.jsdelivr.net"
    ),
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


async def security_headers_middleware(request: Request, call_next):
    """Attach security headers to every response."""
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    if settings.APP_ENV == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response
