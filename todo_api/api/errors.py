"""Translation of failures into the response envelope."""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.errors import InvalidIdError, TaskNotFoundError, ValidationError

logger = logging.getLogger(__name__)

INVALID_ID_MESSAGE = "Invalid todo ID format"


class ApiError(Exception):
    """Failure rendered as {success: false, message, error?, errors?}."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        error: Optional[str] = None,
        errors: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error
        self.errors = errors

    def to_body(self) -> dict:
        body: dict = {"success": False, "message": self.message}
        if self.error is not None:
            body["error"] = self.error
        if self.errors is not None:
            body["errors"] = self.errors
        return body


def read_failure(
    exc: Exception, message: str, not_found_message: str = "Todo not found"
) -> ApiError:
    """Map a failed read: 404, 400 for a bad id, 500 otherwise."""
    if isinstance(exc, TaskNotFoundError):
        return ApiError(404, not_found_message)
    if isinstance(exc, InvalidIdError):
        return ApiError(400, INVALID_ID_MESSAGE)
    logger.error(f"{message}: {exc}")
    return ApiError(500, message, error=str(exc))


def write_failure(
    exc: Exception, message: str, not_found_message: str = "Todo not found"
) -> ApiError:
    """Map a failed write: 404, 400 with field errors, 400 otherwise."""
    if isinstance(exc, TaskNotFoundError):
        return ApiError(404, not_found_message)
    if isinstance(exc, ValidationError):
        return ApiError(400, "Validation error", errors=exc.errors)
    if isinstance(exc, InvalidIdError):
        return ApiError(400, INVALID_ID_MESSAGE)
    logger.error(f"{message}: {exc}")
    return ApiError(400, message, error=str(exc))


def _format_validation_error(error: dict) -> str:
    # Drop the "body"/"query" prefix from the location
    location = ".".join(str(part) for part in error.get("loc", ())[1:])
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def install_error_handlers(app: FastAPI) -> None:
    """Render every error as the response envelope."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [_format_validation_error(e) for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation error", "errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )
