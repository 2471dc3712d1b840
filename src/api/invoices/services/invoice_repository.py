from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4
from fastapi.logger import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from src.api.common.exceptions import (
    InvoiceConflictError, InvoiceNotFoundError, PersistenceError
)
from src.api.common.utils.datetime import get_current_datetime
from src.api.invoices.constants import MAX_PAGE_SIZE, UPDATABLE_FIELDS
from src.api.invoices.models.invoice import Invoice
from src.api.invoices.services.calculations import quarter_of


def generate_invoice_code(invoice: Invoice) -> str:
    """Server-side display code, e.g. INV-20251101-3F9A1C. Not guaranteed unique."""
    return f"INV-{invoice.issue_date:%Y%m%d}-{uuid4().hex[:6].upper()}"


class InvoiceRepository:
    """Maps canonical invoices to rows of the invoice table"""

    def __init__(self, db: Session, max_page_size: int = MAX_PAGE_SIZE):
        self.db = db
        self.max_page_size = max_page_size

    def _commit(self, invoice: Invoice, action: str) -> Invoice:
        try:
            self.db.add(invoice)
            self.db.commit()
            self.db.refresh(invoice)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} invoice {invoice.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to {action} invoice") from e
        return invoice

    def insert(self, invoice: Invoice) -> Invoice:
        """Store a new invoice under a fresh identifier"""
        invoice.id = uuid4().hex
        if not invoice.code:
            invoice.code = generate_invoice_code(invoice)
        return self._commit(invoice, "insert")

    def get(self, invoice_id: str) -> Optional[Invoice]:
        try:
            return self.db.get(Invoice, invoice_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read invoice {invoice_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to read invoice") from e

    def _ordered_by_creation(self, newest_first: bool):
        if newest_first:
            return select(Invoice).order_by(Invoice.created_at.desc(), Invoice.id.desc())
        return select(Invoice).order_by(Invoice.created_at.asc(), Invoice.id.asc())

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.max_page_size
        return max(1, min(limit, self.max_page_size))

    def list(self, limit: Optional[int] = None, newest_first: bool = True) -> List[Invoice]:
        """
        List invoices by creation time.

        Args:
            limit: Page size, capped at max_page_size
            newest_first: Order by created_at descending when True

        Returns:
            At most max_page_size invoices
        """
        statement = self._ordered_by_creation(newest_first).limit(self.clamp_limit(limit))
        try:
            return list(self.db.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to list invoices: {e}", exc_info=True)
            raise PersistenceError("Failed to list invoices") from e

    def scan(self, newest_first: bool = True) -> List[Invoice]:
        """Full scan ordered by creation time, used for search and reports"""
        try:
            return list(self.db.exec(self._ordered_by_creation(newest_first)).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to scan invoices: {e}", exc_info=True)
            raise PersistenceError("Failed to list invoices") from e

    def update(
        self,
        invoice_id: str,
        changes: Dict[str, Any],
        expected_revision: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Invoice:
        """
        Apply allow-listed changes to a stored invoice.

        Derived fields are recomputed, updated_at is refreshed and the revision
        is incremented. Keys outside the allow-list are ignored.

        Raises:
            InvoiceNotFoundError: If no invoice has this id
            InvoiceConflictError: If expected_revision is given and is stale
        """
        invoice = self.get(invoice_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)

        if expected_revision is not None and expected_revision != invoice.revision:
            raise InvoiceConflictError(invoice_id, expected_revision, invoice.revision)

        for key, value in changes.items():
            if key in UPDATABLE_FIELDS:
                setattr(invoice, key, value)

        invoice.customer_name_lower = invoice.customer_name.lower()
        invoice.quarter = quarter_of(invoice.issue_date)
        invoice.updated_at = now or get_current_datetime()
        invoice.revision = (invoice.revision or 0) + 1
        return self._commit(invoice, "update")
