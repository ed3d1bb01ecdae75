"""
Domain error mapping
Translates StockFlowError subclasses into HTTP responses
"""
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from stockflow.core.config import settings
from stockflow.core.exceptions import (
    AccessDeniedError, DuplicateError, InvalidStateError, NotFoundError,
    StockError, StockFlowError, ValidationError
)
from stockflow.core.logging import get_logger

logger = get_logger("api")

# Resolved along the exception MRO, so subclasses inherit their parent's code
STATUS_CODES: Dict[Type[StockFlowError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    AccessDeniedError: 403,
    InvalidStateError: 409,
    DuplicateError: 409,
    StockError: 409,
}


def status_code_for(exc: StockFlowError) -> int:
    for klass in type(exc).__mro__:
        if klass in STATUS_CODES:
            return STATUS_CODES[klass]
    return status.HTTP_400_BAD_REQUEST


async def stockflow_exception_handler(request: Request, exc: StockFlowError) -> JSONResponse:
    code = status_code_for(exc)
    logger.warning(f"{request.method} {request.url.path} -> {code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=code, content=jsonable_encoder(exc.to_dict()))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StockFlowError, stockflow_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
