# shopcart/core/error_handlers.py

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

from .exceptions import ShopCartError, ErrorCode

logger = logging.getLogger(__name__)

STATUS_CODE_MAP = {
    ErrorCode.PRODUCT_NOT_FOUND: 404,
    ErrorCode.INVALID_QUANTITY: 400,
    ErrorCode.OUT_OF_STOCK: 409,
    ErrorCode.EXCEEDS_MAXIMUM: 400,
    ErrorCode.STORAGE_FAILURE: 500,
    ErrorCode.CACHE_UNAVAILABLE: 503,
}


def setup_error_handlers(app: FastAPI):
    """Set up global error handlers for the FastAPI application."""

    @app.exception_handler(ShopCartError)
    async def shopcart_error_handler(request: Request, exc: ShopCartError):
        """Handle cart errors with a status code derived from the error code."""
        status_code = STATUS_CODE_MAP.get(exc.code, 400)

        log = logger.error if status_code >= 500 else logger.warning
        log(
            f"Cart error {exc.code.value} on {request.method} {request.url.path}: {exc.user_message}",
            extra={
                "error_code": exc.code.value,
                "technical_details": exc.technical_details,
                "context": exc.context,
            }
        )

        return JSONResponse(
            status_code=status_code,
            content=exc.to_response()
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with better formatting."""
        errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
            })

        logger.warning(f"Request validation failed on {request.method} {request.url.path}")

        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": errors
                }
            }
        )
