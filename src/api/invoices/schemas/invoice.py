from typing import Optional, List, Any
from datetime import datetime, date
from pydantic import (
    BaseModel, Field, TypeAdapter, AnyUrl, ValidationInfo, computed_field, field_validator
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from src.api.common.utils.datetime import parse_iso_date
from src.api.invoices.services.calculations import quarter_of, total_of

_url_adapter = TypeAdapter(AnyUrl)


def amount_field():
    return Field(default=None, ge=0, allow_inf_nan=False)


class InvoiceInput(BaseModel):
    """Field rules shared by create and update payloads"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    @field_validator("customer_name", check_fields=False)
    @classmethod
    def customer_name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("customerName must not be empty")
        return value

    @field_validator("issue_date", mode="before", check_fields=False)
    @classmethod
    def issue_date_is_iso(cls, value: Any) -> Any:
        if value is None:
            return value
        if not isinstance(value, (str, date)):
            raise ValueError("issueDate must be an ISO-8601 date string")
        return parse_iso_date(value)

    @field_validator("amount_excl", "vat", "taxe", "rate", "days", mode="before", check_fields=False)
    @classmethod
    def amount_is_not_boolean(cls, value: Any, info: ValidationInfo) -> Any:
        # JSON true/false would otherwise be coerced to 1.0/0.0
        if isinstance(value, bool):
            raise ValueError(f"{to_camel(info.field_name)} must be a number")
        return value

    @field_validator("invoice_url", check_fields=False)
    @classmethod
    def invoice_url_is_valid(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            return ""
        try:
            _url_adapter.validate_python(value)
        except PydanticValidationError:
            raise ValueError("invoiceUrl must be a valid URL") from None
        return value


class InvoiceCreate(InvoiceInput):
    """Schema for creating a new invoice"""
    code: Optional[str] = None
    customer_name: str
    issue_date: date
    paid: bool = False
    amount_excl: Optional[float] = amount_field()
    vat: Optional[float] = amount_field()
    taxe: Optional[float] = amount_field()
    invoice_url: Optional[str] = ""

    # Daily rate and days worked, used for any amount not given explicitly
    rate: Optional[float] = amount_field()
    days: Optional[float] = amount_field()

    @field_validator("paid", mode="before")
    @classmethod
    def paid_defaults_to_false(cls, value: Any) -> Any:
        return False if value is None else value


class InvoiceUpdate(InvoiceInput):
    """Schema for updating invoice data. Only allow-listed fields are kept."""
    code: Optional[str] = None
    customer_name: Optional[str] = None
    issue_date: Optional[date] = None
    paid: Optional[bool] = None
    amount_excl: Optional[float] = amount_field()
    vat: Optional[float] = amount_field()
    taxe: Optional[float] = amount_field()
    invoice_url: Optional[str] = None
    rate: Optional[float] = amount_field()
    days: Optional[float] = amount_field()

    # Revision the client last read; when given, a mismatch is a conflict
    revision: Optional[int] = Field(default=None, ge=1)


class InvoiceRead(BaseModel):
    """Schema for reading invoice data"""
    id: str
    code: str
    customer_name: str
    customer_name_lower: str
    issue_date: date
    paid: bool = False
    amount_excl: float = 0
    vat: float = 0
    taxe: float = 0
    invoice_url: str = ""
    revision: int = 1
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

    @computed_field
    @property
    def quarter(self) -> str:
        return quarter_of(self.issue_date)

    @computed_field
    @property
    def total(self) -> float:
        return total_of(self)


class InvoiceTotals(BaseModel):
    amount_excl: float = 0
    vat: float = 0
    taxe: float = 0
    total: float = 0

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class InvoiceViewRead(BaseModel):
    """Filtered and sorted rows with their aggregate totals"""
    rows: List[InvoiceRead]
    totals: InvoiceTotals
    count: int
    quarter: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
