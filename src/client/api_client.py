import logging
from typing import Any, Dict, List, Optional
import httpx
from src.api.invoices.schemas.invoice import InvoiceRead
from src.client.config import ClientConfig

logger = logging.getLogger(__name__)

# Keys the API accepts on PUT /invoices/{id}
ALLOWED_UPDATE_KEYS = (
    "code",
    "customerName",
    "issueDate",
    "paid",
    "amountExcl",
    "vat",
    "taxe",
    "invoiceUrl",
    "revision",
)


class NetworkError(Exception):
    """A request to the invoice API failed or returned a non-2xx status"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


def clean_update_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Keep allow-listed keys with a value"""
    return {
        key: payload[key]
        for key in ALLOWED_UPDATE_KEYS
        if key in payload and payload[key] is not None
    }


class InvoiceApiClient:
    def __init__(self, config: Optional[ClientConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or ClientConfig()
        self.headers = {"Content-Type": "application/json"}
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.api_url,
            headers=self.headers,
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def _request(self, action: str, method: str, path: str, **kwargs) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Network error while trying to {action}: {e}")
            raise NetworkError(f"Failed to {action}: {e}") from e

        if response.is_success:
            return response.json()

        detail = None
        try:
            detail = response.json().get("error")
        except (ValueError, AttributeError):
            detail = response.text or None
        logger.error(f"Failed to {action}: {response.status_code} {detail}")
        raise NetworkError(
            f"Failed to {action}: {response.status_code}",
            status_code=response.status_code,
            detail=detail,
        )

    async def health(self) -> bool:
        """Check that the API answers its health probe"""
        data = await self._request("check API health", "GET", "/health")
        return bool(data.get("ok"))

    async def load_invoices(self, query: str = "") -> List[InvoiceRead]:
        """
        Load invoices from the backend, newest first.

        Args:
            query: Optional case-insensitive substring

        Returns:
            Invoice rows from the API
        """
        params = {"q": query} if query else None
        data = await self._request("load invoices", "GET", "/invoices", params=params)
        return [InvoiceRead.model_validate(row) for row in data]

    async def create_invoice(self, payload: Dict[str, Any]) -> InvoiceRead:
        """Create a new invoice; the server fills in ids, codes and derived fields"""
        data = await self._request("create invoice", "POST", "/invoices", json=payload)
        return InvoiceRead.model_validate(data)

    async def update_invoice(self, invoice_id: str, payload: Dict[str, Any]) -> InvoiceRead:
        """Update an existing invoice with the allow-listed subset of payload"""
        data = await self._request(
            "update invoice", "PUT", f"/invoices/{invoice_id}",
            json=clean_update_payload(payload))
        return InvoiceRead.model_validate(data)
