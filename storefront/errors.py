import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ShopError(HTTPException):
    """Base for every error the API turns into a structured 4xx reply."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class InvalidInput(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST


class OutOfStock(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST


class EmptyCart(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(ShopError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AccountDisabled(ShopError):
    status_code = status.HTTP_403_FORBIDDEN


class Forbidden(ShopError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ShopError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ShopError):
    status_code = status.HTTP_409_CONFLICT


class TooManyRequests(ShopError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
        headers=exc.headers,
    )


def _field_name(loc) -> str:
    # drop the "body" / "path" / "query" prefix FastAPI adds
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)
