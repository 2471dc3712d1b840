from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from pydantic import ValidationError as PydanticValidationError

from src.api.common.exceptions import InvoiceValidationError
from src.api.common.utils.datetime import get_current_datetime
from src.api.invoices.constants import UPDATABLE_FIELDS, AMOUNT_FIELDS
from src.api.invoices.models.invoice import Invoice
from src.api.invoices.schemas.invoice import InvoiceCreate, InvoiceUpdate
from src.api.invoices.services.calculations import quarter_of, resolve_amounts


def describe_validation_error(error: PydanticValidationError) -> str:
    """Turn pydantic errors into one readable sentence, e.g. 'issueDate: Field required'"""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid invoice"


def _validate(schema, raw: Any):
    if not isinstance(raw, Mapping):
        raise InvoiceValidationError("Invoice payload must be a JSON object")
    try:
        return schema.model_validate(dict(raw))
    except PydanticValidationError as e:
        raise InvoiceValidationError(describe_validation_error(e)) from e


def normalize(raw: Any, now: Optional[datetime] = None) -> Invoice:
    """
    Build a canonical invoice from raw client input.

    Defaults are filled in, amounts are derived from rate and days when
    given, and the server-owned fields (quarter, lowercase customer name,
    timestamps) are computed. Server-owned keys in the input are ignored, so
    normalizing a canonical record again gives the same record.

    Args:
        raw: Candidate fields, camelCase or snake_case
        now: Timestamp for created_at/updated_at, defaults to the current time

    Returns:
        An Invoice not yet persisted (no id)

    Raises:
        InvoiceValidationError: If a required field is missing or a value is malformed
    """
    data = _validate(InvoiceCreate, raw)
    now = now or get_current_datetime()
    amounts = resolve_amounts(data.amount_excl, data.vat, data.taxe, data.rate, data.days)

    return Invoice(
        code=(data.code or "").strip() or None,
        customer_name=data.customer_name,
        customer_name_lower=data.customer_name.lower(),
        issue_date=data.issue_date,
        quarter=quarter_of(data.issue_date),
        paid=data.paid,
        amount_excl=amounts["amount_excl"] or 0.0,
        vat=amounts["vat"] or 0.0,
        taxe=amounts["taxe"] or 0.0,
        invoice_url=data.invoice_url or "",
        created_at=now,
        updated_at=now,
    )


def parse_update(raw: Any) -> Tuple[Dict[str, Any], Optional[int]]:
    """
    Validate a partial update payload.

    Returns:
        Tuple of (allow-listed changes, expected revision or None)

    Raises:
        InvoiceValidationError: If a supplied value is malformed
    """
    data = _validate(InvoiceUpdate, raw)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    amounts = resolve_amounts(
        *(changes.get(name) for name in AMOUNT_FIELDS),
        rate=changes.get("rate"),
        days=changes.get("days"),
    )
    changes.update({name: value for name, value in amounts.items() if value is not None})

    if "code" in changes:
        changes["code"] = changes["code"].strip()
        if not changes["code"]:
            raise InvoiceValidationError("code: must not be empty")

    return {name: changes[name] for name in UPDATABLE_FIELDS if name in changes}, data.revision
