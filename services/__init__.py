"""
Services package for the back-office.

This package contains the business logic that sits between the HTTP
handlers and the repositories:
- Product creation and association replacement
- Catalog queries in the legacy view shape
- Payment webhook reconciliation
"""

from .errors import (
    CatalogError, ErrorCategory, InvalidInputError, NotFoundError,
    ReferentialIntegrityError, SignatureVerificationError, StorageError
)
from .association_replacer import AssociationReplacer, ProductChanges, ProductDraft
from .catalog_query import CatalogQueryService
from .payment_reconciler import (
    CheckoutEvent, OrderPaymentReconciler, ReconcileResult, parse_event, verify_signature
)

__all__ = [
    'AssociationReplacer',
    'CatalogError',
    'CatalogQueryService',
    'CheckoutEvent',
    'ErrorCategory',
    'InvalidInputError',
    'NotFoundError',
    'OrderPaymentReconciler',
    'ProductChanges',
    'ProductDraft',
    'ReconcileResult',
    'ReferentialIntegrityError',
    'SignatureVerificationError',
    'StorageError',
    'parse_event',
    'verify_signature'
]
