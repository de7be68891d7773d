from .cors import add_cors_middleware
from .request_logging import RequestLoggingMiddleware

__all__ = [
    "add_cors_middleware",
    "RequestLoggingMiddleware",
]
