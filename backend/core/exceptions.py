# backend/core/exceptions.py
"""
Domain errors raised by the ingestion pipeline.

Services raise these; routers translate them to HTTP responses and the
background worker records them on the job / interview row.
"""
from typing import Optional


class AppError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class FetchError(AppError):
    """The content resolver could not retrieve the submitted URL."""


class ExtractionError(AppError):
    """The extractor call failed or returned something we could not parse."""


class SentinelCompanyMissing(AppError):
    """The owner has no "unknown company" row; it must exist from signup."""


class CompanyNotFound(AppError):
    pass


class PersistenceError(AppError):
    """A primary write failed and was rolled back."""
