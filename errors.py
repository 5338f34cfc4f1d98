import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base for every business failure; `error` is the machine-readable code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "InternalError"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message, headers=headers)

    @property
    def message(self) -> str:
        return self.detail


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "ValidationError"
    default_message = "Validation failed"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "NotFound"
    default_message = "Resource not found"

    def __init__(self, resource: str = "Resource", message: Optional[str] = None):
        super().__init__(message or f"{resource} not found")


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"
    default_message = "Unauthorized"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"
    default_message = "Forbidden"


class InsufficientStock(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "InsufficientStock"
    default_message = "Insufficient stock"


class EmptyCart(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "EmptyCart"
    default_message = "Cart is empty"


class AlreadyPaid(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "AlreadyPaid"
    default_message = "Order already paid"


class AlreadyExists(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "AlreadyExists"
    default_message = "Already exists"


_GENERIC_ERRORS = {
    400: "ValidationError",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
}


def error_body(error: str, message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "error": error, "message": message, **extra}


def field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    out = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        out.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return out


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.message), headers=exc.headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = _GENERIC_ERRORS.get(exc.status_code, "InternalError")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content=error_body(code, message), headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_body("ValidationError", "Validation failed", errors=field_errors(exc)),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("InternalError", "Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
