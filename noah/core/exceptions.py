"""Exception hierarchy and FastAPI exception handlers."""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from noah.core.logging import get_logger, request_context

logger = get_logger(__name__)


class NoahException(Exception):
    """Base exception for the Noah application."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "E5000",
        details: dict = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(NoahException):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str):
        super().__init__(message, code="E5001")


class ValidationFailedError(NoahException):
    """Request payload failed a domain check."""

    def __init__(self, message: str):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, code="E4000")


class NotFoundError(NoahException):
    """Resource not found."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, code="E4040")


class InvalidTransitionError(NoahException):
    """A file operation was asked to move to a state it cannot reach."""

    def __init__(self, operation_id: str, current: str, target: str):
        super().__init__(
            f"Operation {operation_id} cannot move from {current} to {target}",
            status_code=status.HTTP_409_CONFLICT,
            code="E4090",
            details={"operation_id": operation_id, "status": current},
        )


class PathNotAllowedError(NoahException):
    """A file path falls outside the allowed directories."""

    def __init__(self, path: str):
        super().__init__(
            f"Path not allowed: {path}",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="E4001",
        )


class ServiceUnavailableError(NoahException):
    """A backing service (MCP server, provider) is not available."""

    def __init__(self, message: str = "Service unavailable"):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, code="E5030")


class ProviderError(NoahException):
    """AI provider error."""

    def __init__(self, message: str, provider: str = None):
        super().__init__(
            message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            code="E3000",
            details={"provider": provider} if provider else {},
        )


class OperationTimeoutError(NoahException):
    """An awaited operation exceeded its deadline and was cancelled."""

    def __init__(self, operation: str, seconds: float):
        self.operation = operation
        self.seconds = seconds
        super().__init__(
            f"{operation} timed out after {seconds:g}s",
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            code="E5040",
        )


def _current_request_id() -> str | None:
    ctx = request_context.get()
    return ctx.get("request_id") if ctx else None


def _envelope(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": message,
            "error": {
                "code": code,
                "message": message,
                "request_id": _current_request_id(),
            },
            **extra,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(NoahException)
    async def noah_exception_handler(request: Request, exc: NoahException) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"Noah error: {exc.message}",
            data={"status_code": exc.status_code, "code": exc.code, "details": exc.details},
        )
        return _envelope(exc.status_code, exc.code, exc.message, **exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("Validation error", data={"errors": exc.errors()})
        return _envelope(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "E4220",
            "Validation error",
            errors=jsonable_errors(exc),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        response = _envelope(exc.status_code, f"E{exc.status_code}0", str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            exc_info=True,
        )
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "E5000", "Internal server error"
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serialisable context (exception instances) from pydantic errors."""
    cleaned = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k != "ctx"}
        if "ctx" in err:
            item["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        cleaned.append(item)
    return cleaned
