"""Exception handlers rendering rejected requests as ErrorResponse payloads."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .crud import StorageError
from .schemas import ErrorCode, ErrorResponse
from .logger import logger


def _field_name(loc: tuple) -> str:
    # loc starts with the request segment ("body", "path", ...)
    parts = [str(part) for part in loc[1:]] or [str(part) for part in loc]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed ids and bodies with 400 and the list of offending fields."""
    errors = [
        {
            "field": _field_name(tuple(error.get("loc", ()))),
            "location": str(error["loc"][0]) if error.get("loc") else None,
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    fields = sorted({error["field"] for error in errors})
    logger.info(f"Validation failed for {request.method} {request.url.path}: fields={fields}")

    body = ErrorResponse(
        error=ErrorCode.INVALID_INPUT,
        message="Request validation failed",
        details={"fields": fields, "errors": errors},
    )
    return JSONResponse(status_code=400, content={"detail": body.model_dump()})


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Render document store failures as a generic 500."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"[{request_id}] Storage failure on {request.method} {request.url.path}: {exc}")

    body = ErrorResponse(
        error=ErrorCode.STORAGE_ERROR,
        message="The request could not be completed due to a storage error",
        details={"request_id": request_id},
    )
    return JSONResponse(status_code=500, content={"detail": body.model_dump()})
