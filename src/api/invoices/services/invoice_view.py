"""
Filtering, sorting and aggregation of invoice collections.

Used by the API for search and report endpoints and by the client to
recompute the displayed table, so both apply the same rules.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Optional

from src.api.common.utils.datetime import get_current_date
from src.api.invoices.constants import SortField, SortDirection
from src.api.invoices.services.calculations import (
    as_amount, field_value, quarter_of, total_of
)

_SORT_ATTRIBUTES = {
    SortField.ID: "id",
    SortField.CUSTOMER_NAME: "customer_name",
    SortField.ISSUE_DATE: "issue_date",
    SortField.PAID: "paid",
    SortField.AMOUNT_EXCL: "amount_excl",
    SortField.VAT: "vat",
    SortField.TAXE: "taxe",
}


@dataclass(frozen=True)
class SortSpec:
    field: SortField = SortField.ISSUE_DATE
    direction: SortDirection = SortDirection.DESCENDING

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.DESCENDING


@dataclass
class InvoiceTotals:
    amount_excl: float = 0.0
    vat: float = 0.0
    taxe: float = 0.0
    total: float = 0.0


@dataclass
class InvoiceView:
    rows: List[Any] = field(default_factory=list)
    totals: InvoiceTotals = field(default_factory=InvoiceTotals)
    quarter: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.rows)


def matches_query(invoice: Any, query: str) -> bool:
    """Case-insensitive substring match on id, code or customer name"""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    for name in ("id", "code", "customer_name"):
        value = field_value(invoice, name)
        if value is not None and needle in str(value).lower():
            return True
    return False


def filter_invoices(rows: Iterable[Any], query: str = "") -> List[Any]:
    return [row for row in rows if matches_query(row, query)]


def _sort_value(invoice: Any, sort_field: SortField) -> Any:
    if sort_field == SortField.TOTAL:
        return total_of(invoice)
    value = field_value(invoice, _SORT_ATTRIBUTES[sort_field])
    if sort_field in (SortField.AMOUNT_EXCL, SortField.VAT, SortField.TAXE):
        return as_amount(value)
    if sort_field == SortField.PAID:
        return bool(value)
    return value


def sort_invoices(rows: Iterable[Any], sort: Optional[SortSpec] = None) -> List[Any]:
    """
    Stable sort of invoices by one field.

    Rows with a missing value go last whatever the direction; rows with equal
    values keep their relative order.
    """
    sort = sort or SortSpec()
    rows = list(rows)
    present = [row for row in rows if _sort_value(row, sort.field) is not None]
    missing = [row for row in rows if _sort_value(row, sort.field) is None]
    # sorted() with reverse=True keeps equal elements in their original order
    present = sorted(
        present,
        key=lambda row: _sort_value(row, sort.field),
        reverse=sort.descending,
    )
    return present + missing


def aggregate_totals(rows: Iterable[Any]) -> InvoiceTotals:
    totals = InvoiceTotals()
    for row in rows:
        totals.amount_excl += as_amount(field_value(row, "amount_excl"))
        totals.vat += as_amount(field_value(row, "vat"))
        totals.taxe += as_amount(field_value(row, "taxe"))
        totals.total += total_of(row)
    return totals


def build_view(
    rows: Iterable[Any],
    query: str = "",
    sort: Optional[SortSpec] = None,
) -> InvoiceView:
    """Filter, then sort, then total the rows that remain"""
    filtered = filter_invoices(rows, query)
    return InvoiceView(rows=sort_invoices(filtered, sort), totals=aggregate_totals(filtered))


def in_quarter(invoice: Any, quarter: str) -> bool:
    issue_date = field_value(invoice, "issue_date")
    if not issue_date:
        return False
    try:
        return quarter_of(issue_date) == quarter
    except ValueError:
        return False


def current_quarter_view(
    rows: Iterable[Any],
    query: str = "",
    sort: Optional[SortSpec] = None,
    today: Optional[date] = None,
) -> InvoiceView:
    """Dashboard view: same as build_view, restricted to the current quarter"""
    quarter = quarter_of(today or get_current_date())
    view = build_view([row for row in rows if in_quarter(row, quarter)], query, sort)
    view.quarter = quarter
    return view
