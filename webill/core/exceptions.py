"""
Typed billing errors and the DRF exception handler that presents them.

Service and pure-logic code raises these; views let them propagate and the
handler turns them into ``{"error": ..., "error_kind": ...}`` responses.
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('webill.core')


class BillingError(Exception):
    """Base class for every error raised by billing logic."""
    error_kind = 'BillingError'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Billing operation failed'

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def as_dict(self):
        data = {'error': self.message, 'error_kind': self.error_kind}
        data.update(self.extra)
        return data


class InvalidInput(BillingError):
    """Malformed or out-of-domain field (negative amount, unknown status...)"""
    error_kind = 'InvalidInput'
    default_message = 'Invalid input'


class InvalidStatus(InvalidInput):
    default_message = 'Invalid status'


class EntityNotFound(BillingError):
    error_kind = 'NotFound'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class InvoiceNotFound(EntityNotFound):
    default_message = 'Invoice not found'


class TransactionNotFound(EntityNotFound):
    default_message = 'Transaction not found'


class ConstraintViolation(BillingError):
    """A business rule blocks the operation"""
    error_kind = 'ConstraintViolation'
    default_message = 'Operation not allowed'


class DuplicateInvoice(ConstraintViolation):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Invoice already exists for this transaction'


class PersistenceFailure(BillingError):
    error_kind = 'PersistenceFailure'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Failed to save changes'


def billing_exception_handler(exc, context):
    """REST framework EXCEPTION_HANDLER that knows about BillingError."""
    if isinstance(exc, DatabaseError):
        view = context.get('view')
        logger.exception(f"Database error in {type(view).__name__}: {exc}")
        exc = PersistenceFailure()

    if isinstance(exc, BillingError):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_kind}: {exc.message}")
        return Response(exc.as_dict(), status=exc.status_code)

    return exception_handler(exc, context)
