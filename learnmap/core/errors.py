"""Domain errors and their HTTP translation.

Services raise these exceptions; the handlers at the bottom of this module are
registered on the FastAPI app and turn them into a uniform JSON envelope:

    {"status": 404, "message": "Roadmap 7 not found", "details": null}
"""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnmap.core.logging import get_logger

logger = get_logger(__name__)


class LearnmapError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(LearnmapError):
    """A referenced roadmap or node does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidInputError(LearnmapError):
    """Malformed or inconsistent input."""

    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(LearnmapError):
    """The acting user does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class BatchOperationError(LearnmapError):
    """A batch stopped at one item.

    ``applied_ids`` lists the nodes written before the failure. It is empty
    when the batch ran atomically and was rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        index: int,
        cause: LearnmapError,
        item: Any = None,
        applied_ids: list[int] | None = None,
    ) -> None:
        self.index = index
        self.item = item
        self.cause = cause
        self.applied_ids = list(applied_ids or [])
        self.status_code = cause.status_code
        super().__init__(
            message,
            details={
                "index": index,
                "item": item,
                "reason": cause.message,
                "applied_ids": self.applied_ids,
            },
        )


def error_response(status_code: int, message: str, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": status_code, "message": message, "details": details},
    )


async def learnmap_error_handler(request: Request, exc: LearnmapError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Domain error", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
    return error_response(exc.status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("HTTP exception", path=request.url.path, detail=exc.detail)
    return error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.warning("Validation error", path=request.url.path)
    return error_response(
        422,
        "Validation error",
        details=jsonable_errors(exc.errors()),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error", path=request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def jsonable_errors(errors: Any) -> list[dict[str, Any]]:
    """Strip non-serializable context (e.g. exception instances) from pydantic errors."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]
