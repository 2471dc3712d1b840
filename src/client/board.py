"""
Client-side invoice state for one session.

Holds the rows fetched from the API and recomputes the displayed table
(filter, sort, totals, quarters) locally with the same functions the API
uses, so the view never depends on derived values stored on the server.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from src.api.common.utils.datetime import get_current_date
from src.api.invoices.constants import SortDirection, SortField
from src.api.invoices.schemas.invoice import InvoiceRead
from src.api.invoices.services.calculations import preview_amounts, quarter_of
from src.api.invoices.services.invoice_view import (
    InvoiceView, SortSpec, build_view, current_quarter_view
)
from src.client.api_client import InvoiceApiClient, NetworkError

logger = logging.getLogger(__name__)


@dataclass
class InvoiceDraft:
    """State of the new-invoice form"""
    customer_name: str = ""
    issue_date: date = field(default_factory=get_current_date)
    rate: float = 0.0
    days: float = 0.0
    paid: bool = False
    invoice_url: str = ""

    @property
    def preview(self) -> Dict[str, float]:
        """Live amounts: excl., VAT, TAXE and total"""
        return preview_amounts(self.rate, self.days)

    @property
    def quarter(self) -> str:
        return quarter_of(self.issue_date)

    def to_payload(self) -> Dict[str, Any]:
        # No code: the server assigns one
        amounts = self.preview
        return {
            "customerName": self.customer_name,
            "issueDate": self.issue_date.isoformat(),
            "paid": self.paid,
            "amountExcl": amounts["amount_excl"],
            "vat": amounts["vat"],
            "taxe": amounts["taxe"],
            "invoiceUrl": self.invoice_url,
        }


class InvoiceBoard:
    """In-memory invoice list backed by the API"""

    LOAD_ERROR = "Failed to load invoices."

    def __init__(self, api: InvoiceApiClient):
        self.api = api
        self.rows: List[InvoiceRead] = []
        self.query = ""
        self.sort = SortSpec()
        self.error = ""
        self.loading = False

    async def reload(self) -> None:
        """Fetch rows; on failure keep the previous rows and set the banner"""
        self.error = ""
        self.loading = True
        try:
            self.rows = await self.api.load_invoices(self.query)
        except NetworkError as e:
            logger.error(f"Could not reload invoices: {e}")
            self.error = self.LOAD_ERROR
        finally:
            self.loading = False

    async def search(self, query: str) -> None:
        self.query = query
        await self.reload()

    async def save_invoice(self, draft: InvoiceDraft) -> InvoiceRead:
        """
        Submit a new invoice and show it at the top of the list.

        Raises:
            NetworkError: If the API rejected or could not receive the invoice
        """
        self.error = ""
        created = await self.api.create_invoice(draft.to_payload())
        self.rows.insert(0, created)
        return created

    async def edit_invoice(self, invoice_id: str, changes: Dict[str, Any]) -> InvoiceRead:
        """Send a partial update and replace the row with the server's version"""
        updated = await self.api.update_invoice(invoice_id, changes)
        self.rows = [updated if row.id == invoice_id else row for row in self.rows]
        return updated

    def request_sort(self, sort_field: SortField) -> SortSpec:
        """Clicking a column sorts ascending, clicking it again flips to descending"""
        direction = SortDirection.ASCENDING
        if self.sort.field == sort_field and self.sort.direction == SortDirection.ASCENDING:
            direction = SortDirection.DESCENDING
        self.sort = SortSpec(sort_field, direction)
        return self.sort

    def view(self) -> InvoiceView:
        return build_view(self.rows, self.query, self.sort)

    def dashboard(self, today: Optional[date] = None) -> InvoiceView:
        return current_quarter_view(self.rows, self.query, self.sort, today)
