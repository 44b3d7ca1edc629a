"""Error handlers converting exceptions into JSON responses."""

from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from agentmarket.agents.errors import InputValidationError, MarketplaceError
from agentmarket.observability.logging import get_logger

logger = get_logger(__name__)


def _format_errors(errors: Sequence[Any]) -> list[dict[str, Any]]:
    formatted = []
    for error in errors:
        field = ".".join(str(loc) for loc in error["loc"])
        formatted.append({"field": field, "message": error["msg"]})
    return formatted


def _validation_response(errors: Sequence[Any]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "code": "validation_error",
            "message": "Request validation failed",
            "errors": _format_errors(errors),
        },
    )


def setup_error_handlers(app: FastAPI) -> None:
    """Register the exception handlers on an application.

    Args:
        app: The FastAPI application instance to configure
    """

    @app.exception_handler(MarketplaceError)
    async def handle_marketplace_error(request: Request, exc: MarketplaceError) -> JSONResponse:
        """Domain errors carry their own status code and error code."""
        content: dict[str, Any] = {"code": exc.code, "message": exc.message}
        if isinstance(exc, InputValidationError):
            content["errors"] = exc.errors
        logger.info(
            "request_rejected", path=request.url.path, code=exc.code, status=exc.status_code
        )
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _validation_response(exc.errors())

    @app.exception_handler(PydanticValidationError)
    async def handle_validation_error(
        request: Request, exc: PydanticValidationError
    ) -> JSONResponse:
        return _validation_response(exc.errors())

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
        """Log unexpected errors and hide their details from clients."""
        logger.error("unexpected_error", path=request.url.path, error=str(exc), exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"code": "internal_error", "message": "An internal server error occurred"},
        )
