from enum import Enum

VAT_RATE = 0.20
TAXE_RATE = 0.73

MAX_PAGE_SIZE = 200

# Fields a client may write through PUT /invoices/{id}
UPDATABLE_FIELDS = (
    "code",
    "customer_name",
    "issue_date",
    "paid",
    "amount_excl",
    "vat",
    "taxe",
    "invoice_url",
)

AMOUNT_FIELDS = ("amount_excl", "vat", "taxe")


class SortField(str, Enum):
    ID = "id"
    CUSTOMER_NAME = "customerName"
    ISSUE_DATE = "issueDate"
    PAID = "paid"
    AMOUNT_EXCL = "amountExcl"
    VAT = "vat"
    TAXE = "taxe"
    TOTAL = "total"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class ViewScope(str, Enum):
    ALL = "all"
    QUARTER = "quarter"
