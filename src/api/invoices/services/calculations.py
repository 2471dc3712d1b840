"""
Derived invoice values.

Pure functions shared by the API and the client so that quarters and totals
are computed the same way wherever they are displayed or aggregated.
"""
import math
from collections.abc import Mapping
from datetime import date
from typing import Any, Dict, Optional, Union

from src.api.common.utils.datetime import parse_iso_date, get_quarter_number
from src.api.invoices.constants import VAT_RATE, TAXE_RATE, AMOUNT_FIELDS


def field_value(invoice: Any, name: str, default: Any = None) -> Any:
    """
    Read a field from an invoice given as a model or as a mapping.

    Mappings may use either the snake_case attribute name or the camelCase
    wire name.
    """
    if isinstance(invoice, Mapping):
        if name in invoice:
            return invoice[name]
        head, *rest = name.split("_")
        camel = head + "".join(part.title() for part in rest)
        return invoice.get(camel, default)
    return getattr(invoice, name, default)


def as_amount(value: Any) -> float:
    """Coerce an amount to float; missing, non-numeric or NaN values count as 0"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(amount) else amount


def quarter_of(issue_date: Union[date, str]) -> str:
    """
    Get the quarter label of an issue date, e.g. "Q4 2025".

    Raises:
        ValueError: If issue_date is not a valid ISO date
    """
    parsed = parse_iso_date(issue_date)
    if parsed is None:
        raise ValueError("An issue date is required to compute its quarter")
    return f"Q{get_quarter_number(parsed)} {parsed.year}"


def total_of(invoice: Any) -> float:
    """Total amount including taxes: amount excl. + VAT + TAXE"""
    return sum(as_amount(field_value(invoice, field)) for field in AMOUNT_FIELDS)


def amounts_from_rate(rate: Any, days: Any) -> Dict[str, float]:
    """Compute the three amounts from a daily rate and a number of days worked"""
    amount_excl = round(as_amount(rate) * as_amount(days), 2)
    return {
        "amount_excl": amount_excl,
        "vat": round(amount_excl * VAT_RATE, 2),
        "taxe": round(amount_excl * TAXE_RATE, 2),
    }


def preview_amounts(rate: Any, days: Any) -> Dict[str, float]:
    """Amounts and total shown while an invoice form is being filled in"""
    amounts = amounts_from_rate(rate, days)
    amounts["total"] = total_of(amounts)
    return amounts


def resolve_amounts(
    amount_excl: Optional[float] = None,
    vat: Optional[float] = None,
    taxe: Optional[float] = None,
    rate: Optional[float] = None,
    days: Optional[float] = None,
) -> Dict[str, Optional[float]]:
    """
    Decide the stored amounts from what the client supplied.

    Explicit amounts always win. When both rate and days are given, the
    missing amounts come from the rate formula. Anything still missing is
    left as None so callers can apply their own default.
    """
    resolved = {"amount_excl": amount_excl, "vat": vat, "taxe": taxe}
    if rate is None or days is None:
        return resolved

    computed = amounts_from_rate(rate, days)
    if amount_excl is not None:
        # VAT and TAXE follow the explicit base amount
        computed["vat"] = round(amount_excl * VAT_RATE, 2)
        computed["taxe"] = round(amount_excl * TAXE_RATE, 2)
    return {
        field: value if value is not None else computed[field]
        for field, value in resolved.items()
    }
