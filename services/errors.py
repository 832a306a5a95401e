"""
Error taxonomy for catalog and payment operations.

Every error carries a category and the HTTP status the API layer reports it
with, so handlers never have to guess how to surface a failure.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    REFERENTIAL_INTEGRITY = "referential_integrity"
    NOT_FOUND = "not_found"
    AUTHENTICATION = "authentication"
    STORAGE = "storage"


class CatalogError(Exception):
    """Base class for errors reported to the immediate caller."""

    category = ErrorCategory.VALIDATION
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to the structured error payload."""
        return {
            'error': self.message,
            'category': self.category.value,
            'details': self.details,
        }


class InvalidInputError(CatalogError):
    """Missing or malformed input; no side effects were performed."""
    category = ErrorCategory.VALIDATION
    status_code = 400


class ReferentialIntegrityError(CatalogError):
    """An id list references a missing or cross-store entity."""
    category = ErrorCategory.REFERENTIAL_INTEGRITY
    status_code = 422

    def __init__(self, message: str, kind: Optional[str] = None, missing_ids=None):
        details = {}
        if kind:
            details['kind'] = kind
        if missing_ids:
            details['missing_ids'] = sorted(missing_ids)
        super().__init__(message, details)
        self.kind = kind
        self.missing_ids = sorted(missing_ids or [])


class NotFoundError(CatalogError):
    """The addressed product, order or store does not exist."""
    category = ErrorCategory.NOT_FOUND
    status_code = 404


class SignatureVerificationError(CatalogError):
    """Webhook payload failed signature verification."""
    category = ErrorCategory.AUTHENTICATION
    status_code = 400


class StorageError(CatalogError):
    """Transaction failure; surfaced as an opaque server error."""
    category = ErrorCategory.STORAGE
    status_code = 500
