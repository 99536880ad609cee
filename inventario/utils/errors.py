# inventario/utils/errors.py
import enum
import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL = "INTERNAL"


# Business codes returned in the "code" field of error payloads
class ErrorCode:
    BAD_REQUEST = "400"
    UNAUTHORIZED = "401"
    FORBIDDEN = "403"
    NOT_FOUND = "404"
    CONFLICT = "409"
    UNPROCESSABLE_ENTITY = "422"
    INTERNAL_SERVER_ERROR = "500"

    INSUFFICIENT_STOCK = "1001"
    INVALID_MOVEMENT = "1002"
    CATEGORY_HAS_PRODUCTS = "1003"
    USER_HAS_MOVEMENTS = "1004"
    ROLE_HAS_USERS = "1005"
    CONCURRENT_MODIFICATION = "1006"


_KIND_HTTP = {
    ErrorKind.INVALID_ARGUMENT: (status.HTTP_400_BAD_REQUEST, "Invalid Argument", ErrorCode.BAD_REQUEST),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Not Found", ErrorCode.NOT_FOUND),
    ErrorKind.INSUFFICIENT_STOCK: (status.HTTP_409_CONFLICT, "Insufficient Stock", ErrorCode.INSUFFICIENT_STOCK),
    ErrorKind.CONFLICT: (status.HTTP_409_CONFLICT, "Conflict", ErrorCode.CONFLICT),
    ErrorKind.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, "Unauthorized", ErrorCode.UNAUTHORIZED),
    ErrorKind.FORBIDDEN: (status.HTTP_403_FORBIDDEN, "Forbidden", ErrorCode.FORBIDDEN),
    ErrorKind.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", ErrorCode.INTERNAL_SERVER_ERROR),
}

_STATUS_KIND = {
    400: ErrorKind.INVALID_ARGUMENT,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
}


class InventoryError(Exception):
    """Business error carrying an explicit kind instead of a message to be parsed."""

    def __init__(self, kind: ErrorKind, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code or _KIND_HTTP[kind][2]

    @property
    def http_status(self) -> int:
        return _KIND_HTTP[self.kind][0]


def invalid(message: str) -> InventoryError:
    return InventoryError(ErrorKind.INVALID_ARGUMENT, message)


def not_found(message: str) -> InventoryError:
    return InventoryError(ErrorKind.NOT_FOUND, message)


def conflict(message: str, code: Optional[str] = None) -> InventoryError:
    return InventoryError(ErrorKind.CONFLICT, message, code)


def error_body(status_code: int, error: str, message: str, code: str,
               validation_errors: Optional[List[dict]] = None) -> dict:
    body: dict[str, Any] = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": status_code,
        "error": error,
        "message": message,
        "code": code,
    }
    if validation_errors is not None:
        body["validationErrors"] = validation_errors
    return body


async def inventory_error_handler(request: Request, exc: InventoryError):
    http_status, error, _ = _KIND_HTTP[exc.kind]
    if exc.kind is ErrorKind.INTERNAL:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {http_status} {exc.kind.value}: {exc.message}")
    return JSONResponse(status_code=http_status, content=error_body(http_status, error, exc.message, exc.code))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    kind = _STATUS_KIND.get(exc.status_code)
    error = _KIND_HTTP[kind][1] if kind else "Error"
    message = exc.detail if isinstance(exc.detail, str) else "Error"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, error, message, str(exc.status_code)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc),
            "message": err.get("msg"),
            "value": err.get("input"),
        })
    logger.warning(f"{request.method} {request.url.path}: validation failed on {[d['field'] for d in details]}")
    body = error_body(
        status.HTTP_400_BAD_REQUEST, "Validation Error",
        "Los datos proporcionados no son válidos", ErrorCode.UNPROCESSABLE_ENTITY,
        validation_errors=details,
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=jsonable_encoder(body))


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.error(f"{request.method} {request.url.path}: integrity error {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(status.HTTP_409_CONFLICT, "Data Integrity Violation",
                           "Ya existe un registro con estos datos o tiene dependencias", ErrorCode.CONFLICT),
    )


async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning(f"{request.method} {request.url.path}: concurrent modification {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(status.HTTP_409_CONFLICT, "Conflict",
                           "El registro fue modificado por otra operación, intente nuevamente",
                           ErrorCode.CONCURRENT_MODIFICATION),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"{request.method} {request.url.path}: database error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error",
                           "Error interno del servidor", ErrorCode.INTERNAL_SERVER_ERROR),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
