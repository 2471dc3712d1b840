from datetime import date
from typing import Any, List, Optional
from fastapi.logger import logger
from sqlmodel import Session

from src.api.common.exceptions import InvoiceNotFoundError
from src.api.invoices.constants import MAX_PAGE_SIZE, SortDirection, SortField
from src.api.invoices.models.invoice import Invoice
from src.api.invoices.services.invoice_repository import InvoiceRepository
from src.api.invoices.services.invoice_view import (
    InvoiceView, SortSpec, build_view, current_quarter_view, filter_invoices
)
from src.api.invoices.services.normalization import normalize, parse_update


class InvoiceService:
    """Invoice lifecycle: validation, persistence, search and reports"""

    def __init__(self, db: Session, max_page_size: int = MAX_PAGE_SIZE):
        self.repository = InvoiceRepository(db, max_page_size)

    def create_invoice(self, payload: Any) -> Invoice:
        """Validate and store a new invoice"""
        invoice = self.repository.insert(normalize(payload))
        logger.info(f"Created invoice {invoice.id} ({invoice.code}) for {invoice.customer_name}")
        return invoice

    def get_invoice(self, invoice_id: str) -> Invoice:
        """Get an invoice by ID"""
        invoice = self.repository.get(invoice_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def list_invoices(self, query: str = "", limit: Optional[int] = None) -> List[Invoice]:
        """
        Get the newest invoices, optionally filtered.

        The query is a case-insensitive substring matched against id, code
        and customer name.
        """
        if not (query or "").strip():
            return self.repository.list(limit)
        matches = filter_invoices(self.repository.scan(), query)
        return matches[:self.repository.clamp_limit(limit)]

    def update_invoice(self, invoice_id: str, payload: Any) -> Invoice:
        """Apply a partial update"""
        changes, expected_revision = parse_update(payload)
        invoice = self.repository.update(invoice_id, changes, expected_revision)
        logger.info(
            f"Updated invoice {invoice_id} to revision {invoice.revision}: {sorted(changes)}")
        return invoice

    def get_view(
        self,
        query: str = "",
        sort: SortField = SortField.ISSUE_DATE,
        direction: SortDirection = SortDirection.DESCENDING,
        current_quarter: bool = False,
        today: Optional[date] = None,
    ) -> InvoiceView:
        """
        Filtered, sorted rows plus totals.

        With current_quarter, only invoices issued in the current calendar
        quarter are considered (dashboard).
        """
        rows = self.repository.scan()
        sort_spec = SortSpec(sort, direction)
        if current_quarter:
            return current_quarter_view(rows, query, sort_spec, today)
        return build_view(rows, query, sort_spec)
