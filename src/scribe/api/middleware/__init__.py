"""API middleware package."""

from src.scribe.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
