# API route definitions (HTTP layer)
# Defines ENDPOINTS

import os
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .schemas import HEX_ID_PATTERN, MAX_ID_LENGTH, MessageResponse, UserIn
from . import services
from . import db
from .config import settings

limiter = Limiter(key_func=get_remote_address)

# Helper to conditionally apply rate limiting (skip in tests)
def conditional_limit(limit_string):
    """Apply rate limit only if not in test mode."""
    if os.getenv('TEST_MODE'):
        def decorator(func):
            return func
        return decorator
    return limiter.limit(limit_string)


UserId = Annotated[
    str,
    Path(
        pattern=HEX_ID_PATTERN,
        max_length=MAX_ID_LENGTH,
        description="Hex document id (hash of the user's email)",
    ),
]

router = APIRouter()


@router.get("/")
def root():
    return {"app": settings.APP_NAME, "env": settings.APP_ENV}


@router.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if the service and document store are reachable
        - 503 Service Unavailable otherwise
    """
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
    }

    if await db.check_db_connection():
        health_status["database"] = "connected"
        return health_status

    health_status["status"] = "unhealthy"
    health_status["database"] = "disconnected"
    raise HTTPException(status_code=503, detail=health_status)


# ============================================================================
# User Endpoints
# ============================================================================

@router.get("/users")
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_users(request: Request) -> list[dict]:
    """Return all users.

    Raises:
        404: The collection is empty
    """
    return await services.list_users()


@router.get("/users/{user_id}")
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_user(user_id: UserId, request: Request) -> dict:
    """Return one user.

    Raises:
        400: Malformed id
        404: No user with that id
    """
    return await services.get_user(user_id)


@router.post("/users/{user_id}", response_model=MessageResponse, status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_user(user_id: UserId, user: UserIn, request: Request):
    """Create a user at the given id.

    Raises:
        400: Malformed id or body, or a user already exists at that id
    """
    return await services.create_user(user_id, user)


@router.put("/users/{user_id}", response_model=MessageResponse)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def update_user(user_id: UserId, user: UserIn, request: Request):
    """Replace a user's fields with the given body.

    Raises:
        400: Malformed id or body
        404: No user with that id
    """
    return await services.update_user(user_id, user)


@router.delete("/users/{user_id}", response_model=MessageResponse)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def delete_user(user_id: UserId, request: Request):
    """Delete a user.

    Raises:
        400: Malformed id
        404: No user with that id
    """
    return await services.delete_user(user_id)
