from typing import Optional
from datetime import date
from sqlmodel import Field
from src.api.common.models.base import BaseModel, TimestampMixin


class Invoice(BaseModel, TimestampMixin, table=True):
    """
    Canonical invoice record as persisted.

    customer_name_lower and quarter are derived from customer_name and
    issue_date on every write; total is never stored.
    """
    id: Optional[str] = Field(default=None, primary_key=True, max_length=32)

    # Display label, not unique
    code: str = Field(index=True)

    customer_name: str
    customer_name_lower: str = Field(index=True)

    issue_date: date = Field(index=True)
    quarter: str = Field(index=True)
    paid: bool = False

    amount_excl: float = 0
    vat: float = 0
    taxe: float = 0

    invoice_url: str = ""

    revision: int = 1

    class Config:
        from_attributes = True
