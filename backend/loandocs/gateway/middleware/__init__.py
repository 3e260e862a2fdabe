"""
Gateway Middleware Module

Custom middleware for request ids, request logging, and error handling.
"""
from .request_logging import RequestLoggingMiddleware
from .error_handler import ErrorHandlingMiddleware
from .request_id import RequestIDMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "ErrorHandlingMiddleware",
    "RequestIDMiddleware"
]
