"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import (
    Conflict,
    InvalidRate,
    InvalidTransition,
    MarketplaceError,
    NotFound,
    NotOwner,
    OverlapError,
    SlotInUse,
    StoreTimeout,
)

logger = logging.getLogger(__name__)

# Most specific class first; SlotUnavailable resolves through InvalidTransition
ERROR_MAP: list[tuple[type[MarketplaceError], int, str]] = [
    (NotFound, 404, ErrorCodes.NOT_FOUND),
    (NotOwner, 403, ErrorCodes.NOT_OWNER),
    (InvalidTransition, 409, ErrorCodes.INVALID_STATUS_TRANSITION),
    (OverlapError, 409, ErrorCodes.SLOT_OVERLAP),
    (SlotInUse, 409, ErrorCodes.SLOT_IN_USE),
    (InvalidRate, 400, ErrorCodes.INVALID_RATE),
    (Conflict, 409, ErrorCodes.CONFLICT),
    (StoreTimeout, 504, ErrorCodes.STORE_TIMEOUT),
]


def status_and_code(exc: MarketplaceError) -> tuple[int, str]:
    for error_cls, status, code in ERROR_MAP:
        if isinstance(exc, error_cls):
            return status, code
    return 500, ErrorCodes.INTERNAL_ERROR


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        status, code = status_and_code(exc)
        if status >= 500:
            logger.error(f"{code} on {request.url.path}: {exc}")
        else:
            logger.info(f"{code} on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status,
            content=error_response(code, str(exc), _request_id(request)).model_dump(mode="json"),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors(include_url=False)),
                _request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content=error_response(
                ErrorCodes.INVALID_REQUEST, str(exc), _request_id(request)
            ).model_dump(mode="json"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                ErrorCodes.VALIDATION_ERROR,
                str(exc.errors()),
                _request_id(request),
            ).model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=error_response(
                ErrorCodes.INTERNAL_ERROR,
                "An internal error occurred",
                _request_id(request),
            ).model_dump(mode="json"),
        )
