"""
Middleware for the Agency Membership API
"""
from app.middleware.request_logging import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
]
