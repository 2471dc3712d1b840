from fastapi import APIRouter
from src.api.invoices.endpoints.invoice import router as invoice_router

api_router = APIRouter()

# Include all domain routers
api_router.include_router(invoice_router)


@api_router.get("/health")
def health_check():
    return {"ok": True}
