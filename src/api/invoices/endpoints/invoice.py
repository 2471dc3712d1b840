from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.logger import logger
from fastapi.responses import JSONResponse
from sqlmodel import Session

from src.api.common.exceptions import InvoicebookError, PersistenceError
from src.api.common.utils.config import get_config
from src.api.common.utils.database import get_db
from src.api.invoices.constants import SortDirection, SortField, ViewScope
from src.api.invoices.schemas.invoice import InvoiceRead, InvoiceTotals, InvoiceViewRead
from src.api.invoices.services.invoice_service import InvoiceService
from src.api.invoices.services.invoice_view import InvoiceView

router = APIRouter(prefix="/invoices", tags=["invoices"])


def get_invoice_service(db: Session = Depends(get_db)):
    return InvoiceService(db, max_page_size=get_config().max_page_size)


def error_response(error: InvoicebookError, failure: str) -> JSONResponse:
    """
    Render a domain error as {"error": message}.

    Storage failures are logged in full and reported with a generic message.
    """
    if isinstance(error, PersistenceError):
        logger.error(f"{failure}: {error}", exc_info=error)
        return JSONResponse(status_code=error.status_code, content={"error": failure})
    logger.warning(f"{failure}: {error.message}")
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


def _to_view_read(view: InvoiceView) -> InvoiceViewRead:
    return InvoiceViewRead(
        rows=[InvoiceRead.model_validate(row) for row in view.rows],
        totals=InvoiceTotals.model_validate(view.totals),
        count=view.count,
        quarter=view.quarter,
    )


@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: Dict[str, Any] = Body(...),
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """Create a new invoice"""
    try:
        return invoice_service.create_invoice(payload)
    except InvoicebookError as e:
        return error_response(e, "Failed to create invoice")


@router.get("", response_model=List[InvoiceRead])
def get_invoices(
    q: str = "",
    limit: Optional[int] = Query(None, ge=1),
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """Get the newest invoices, optionally filtered by id, code or customer name"""
    try:
        return invoice_service.list_invoices(q, limit)
    except InvoicebookError as e:
        return error_response(e, "Failed to fetch invoices")


@router.get("/view", response_model=InvoiceViewRead)
def get_invoice_view(
    q: str = "",
    sort: SortField = SortField.ISSUE_DATE,
    direction: SortDirection = SortDirection.DESCENDING,
    scope: ViewScope = ViewScope.ALL,
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """Filtered and sorted invoices with totals for amount excl., VAT, TAXE and total"""
    try:
        view = invoice_service.get_view(
            q, sort, direction, current_quarter=scope == ViewScope.QUARTER)
        return _to_view_read(view)
    except InvoicebookError as e:
        return error_response(e, "Failed to fetch invoices")


@router.get("/dashboard", response_model=InvoiceViewRead)
def get_dashboard(
    q: str = "",
    sort: SortField = SortField.ISSUE_DATE,
    direction: SortDirection = SortDirection.DESCENDING,
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """Invoices issued in the current quarter, with totals"""
    try:
        return _to_view_read(
            invoice_service.get_view(q, sort, direction, current_quarter=True))
    except InvoicebookError as e:
        return error_response(e, "Failed to fetch invoices")


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: str,
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """Get an invoice by ID"""
    try:
        return invoice_service.get_invoice(invoice_id)
    except InvoicebookError as e:
        return error_response(e, "Failed to fetch invoice")


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: str,
    payload: Dict[str, Any] = Body(...),
    invoice_service: InvoiceService = Depends(get_invoice_service)
):
    """Update an invoice"""
    try:
        return invoice_service.update_invoice(invoice_id, payload)
    except InvoicebookError as e:
        return error_response(e, "Failed to update invoice")
