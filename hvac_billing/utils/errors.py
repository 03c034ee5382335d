"""
Error taxonomy for the billing package.

Validation problems are fixed by the user; storage problems abort the
single operation that hit them. Nothing here is retried.
"""

from typing import Optional


class BillingError(Exception):
    """Base class for all billing errors."""


class ValidationError(BillingError, ValueError):
    """Missing required field, non-numeric or negative numeric input."""
    
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class OutOfRangeError(BillingError, ValueError):
    """Amount outside the range the words converter supports."""


class StorageUnavailable(BillingError):
    """A collection slot could not be read, parsed or written."""
    
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class DuplicateInvoiceNumber(BillingError):
    """An invoice number is already taken by another invoice."""
    
    def __init__(self, invoice_number: str):
        super().__init__(f"Invoice number '{invoice_number}' is already in use")
        self.invoice_number = invoice_number
