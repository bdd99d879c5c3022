"""Core module with logging, middleware, and exception handling."""

from noah.core.exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    NoahException,
    NotFoundError,
    OperationTimeoutError,
    PathNotAllowedError,
    ProviderError,
    ServiceUnavailableError,
    ValidationFailedError,
    setup_exception_handlers,
)
from noah.core.logging import get_logger, setup_logging
from noah.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
    TrustedHostMiddleware,
    get_client_ip,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ConfigurationError",
    "InvalidTransitionError",
    "NoahException",
    "NotFoundError",
    "OperationTimeoutError",
    "PathNotAllowedError",
    "ProviderError",
    "ServiceUnavailableError",
    "ValidationFailedError",
    "RequestContextMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
    "TrustedHostMiddleware",
    "get_client_ip",
    "setup_exception_handlers",
]
