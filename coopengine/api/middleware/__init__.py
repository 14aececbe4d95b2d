"""API middleware."""

from .errors import ERROR_CODE_TO_HTTP_STATUS, register_error_handlers
from .rate_limiter import init_limiter, limiter

__all__ = ["ERROR_CODE_TO_HTTP_STATUS", "register_error_handlers", "init_limiter", "limiter"]
