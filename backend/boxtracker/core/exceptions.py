import enum

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

logger = structlog.get_logger()


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    PERMISSION_DENIED = "permission-denied"
    INVALID_ARGUMENT = "invalid-argument"
    ALREADY_EXISTS = "already-exists"
    NOT_FOUND = "not-found"
    INTERNAL = "internal"


class ServiceError(Exception):
    """
    Error raised by the service layer.
    Carries a machine-readable kind and a message that is safe to show the caller.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(ServiceError):
    kind = ErrorKind.UNAUTHENTICATED


class PermissionDenied(ServiceError):
    kind = ErrorKind.PERMISSION_DENIED


class InvalidArgument(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT


class AlreadyExists(ServiceError):
    kind = ErrorKind.ALREADY_EXISTS


class NotFound(ServiceError):
    kind = ErrorKind.NOT_FOUND


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL


STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def service_exception_handler(request: Request, exc: ServiceError):
    """
    Translate service errors into {"kind", "detail"} responses.
    """
    log = logger.error if exc.kind == ErrorKind.INTERNAL else logger.info
    log("service_error", kind=exc.kind.value, detail=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content={"kind": exc.kind.value, "detail": exc.message},
    )

async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all for unhandled exceptions.
    Prevents stack trace leakage in production.
    """
    logger.error("unhandled_exception", error=str(exc), path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"kind": ErrorKind.INTERNAL.value, "detail": "An unexpected error occurred. Please try again later."},
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Standard HTTP exception handler.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Pydantic validation error handler.
    """
    logger.warning("validation_error", errors=exc.errors(), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "kind": ErrorKind.INVALID_ARGUMENT.value,
            "detail": "Validation error",
            "errors": jsonable_errors(exc),
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw exception object, which is not JSON serialisable
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
