"""
Middleware package for the QR check-in API.

Provides centralized error handling and request processing.
"""

from qrcheckin.middleware.error_handler import (
    ErrorHandlingMiddleware,
    register_exception_handlers,
)

__all__ = ["ErrorHandlingMiddleware", "register_exception_handlers"]
