"""
Custom exceptions for ledger reconciliation.
"""
from typing import Any, Dict, Optional


class LedgerReconciliationException(Exception):
    """Base exception for all ledger reconciliation errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FetchError(LedgerReconciliationException):
    """Raised when a ledger or subject listing cannot be fetched."""
    pass


class ValidationError(LedgerReconciliationException):
    """Raised when a user request cannot be served (e.g. nothing to export)."""
    pass


class ExportError(LedgerReconciliationException):
    """Raised when writing an export file fails."""
    pass


class ConfigurationError(LedgerReconciliationException):
    """Raised when configuration is invalid."""
    pass


class DataNotFoundError(LedgerReconciliationException):
    """Raised when a requested subject or file does not exist."""
    pass
