"""Domain errors raised by the invoice services and mapped to HTTP responses."""
from typing import Optional


class InvoicebookError(Exception):
    """Base class for every error the service reports to its callers"""
    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class InvoiceValidationError(InvoicebookError):
    """Client input is malformed or misses a required field"""
    status_code = 400
    public_message = "Invalid invoice"


class InvoiceNotFoundError(InvoicebookError):
    status_code = 404
    public_message = "Invoice not found"

    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice {invoice_id} not found")
        self.invoice_id = invoice_id


class InvoiceConflictError(InvoicebookError):
    """The stored revision moved on since the client last read the invoice"""
    status_code = 409
    public_message = "Invoice was modified by another request"

    def __init__(self, invoice_id: str, expected_revision: int, current_revision: int):
        super().__init__(
            f"Invoice {invoice_id} is at revision {current_revision}, "
            f"expected {expected_revision}")
        self.invoice_id = invoice_id
        self.expected_revision = expected_revision
        self.current_revision = current_revision


class PersistenceError(InvoicebookError):
    """Storage engine unavailable or write failure. Never shown verbatim to clients."""
    status_code = 500
    public_message = "Storage failure"
