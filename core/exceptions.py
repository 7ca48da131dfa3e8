"""Typed exceptions for invoice operations."""


class InvoiceError(Exception):
    """Base class for invoice lifecycle errors."""


class ResourceNotFoundError(InvoiceError):
    """Operation referenced an invoice (or a user) that does not exist."""

    def __init__(self, resource: str, identifier: object):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found with id: {identifier}")


class DuplicateResourceError(InvoiceError):
    """
    Invoice number already taken.

    Raised before commit when the number is known to exist, and when the
    store's unique constraint rejects the insert.
    """

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice with number {invoice_number} already exists")


class InvoiceValidationError(InvoiceError, ValueError):
    """Payload failed required-field or range validation."""


class InvoiceNumberGenerationError(InvoiceError):
    """
    The number sequence could not produce a value.

    Creation is aborted; no invoice is persisted without a number.
    """
