"""
Custom exceptions for the dashboard.
Each exception carries the HTTP status the API layer answers with.
"""
from typing import Any, Dict, Optional


class BankDashboardException(Exception):
    """Base exception for all dashboard errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details (logged, never returned to clients)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(BankDashboardException):
    """Raised when request data is missing or malformed."""
    status_code = 400


class AuthenticationError(BankDashboardException):
    """Raised when no valid identity-provider session is present."""
    status_code = 401


class DataNotFoundError(BankDashboardException):
    """Raised when a requested record does not exist."""
    status_code = 404


class DatabaseError(BankDashboardException):
    """Raised when the document store cannot be queried."""
    pass


class ExportError(BankDashboardException):
    """Raised when CSV or Excel export fails."""
    pass


class ConfigurationError(BankDashboardException):
    """Raised when configuration is invalid."""
    pass
