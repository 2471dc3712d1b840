import pytest
import os
from datetime import datetime, timezone
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

# Import all models to ensure they're registered with SQLModel
from src.api.invoices.models.invoice import Invoice
from src.api.invoices.services.invoice_service import InvoiceService
from src.api.invoices.services.normalization import normalize


@pytest.fixture
def test_engine():
    """Create an in-memory SQLite database for testing"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def test_session(test_engine):
    """Create a test database session"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture
def api_client(test_session):
    """HTTP client for the app, wired to the test database"""
    from fastapi.testclient import TestClient
    from src.main import app
    from src.api.common.utils.database import get_db

    def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_invoice_data():
    """Sample invoice payload as sent by the client"""
    return {
        "code": "INV-1",
        "customerName": "Acme",
        "issueDate": "2025-11-01",
        "amountExcl": 1000,
        "vat": 200,
        "taxe": 730,
    }


@pytest.fixture
def fixed_now():
    return datetime(2025, 11, 5, 9, 30, 0, tzinfo=timezone.utc)


# Test data factories
class TestDataFactory:
    @staticmethod
    def build_invoice(**kwargs) -> Invoice:
        """Build a canonical invoice without storing it"""
        data = {
            "code": "INV-001",
            "customerName": "Acme Pty Ltd",
            "issueDate": "2025-11-01",
            "amountExcl": 1000.0,
            "vat": 200.0,
            "taxe": 730.0,
        }
        data.update(kwargs)
        now = data.pop("now", None)
        return normalize(data, now=now)

    @staticmethod
    def create_invoice(session: Session, **kwargs) -> Invoice:
        """Create a test invoice through the service"""
        data = {
            "code": "INV-001",
            "customerName": "Acme Pty Ltd",
            "issueDate": "2025-11-01",
            "amountExcl": 1000.0,
            "vat": 200.0,
            "taxe": 730.0,
        }
        data.update(kwargs)
        return InvoiceService(session).create_invoice(data)


@pytest.fixture
def test_data_factory():
    """Provide test data factory"""
    return TestDataFactory


@pytest.fixture
def invoice_rows():
    """Plain rows in wire format, as the client holds them"""
    return [
        {"id": "a1", "code": "INV-1", "customerName": "Acme Pty Ltd", "issueDate": "2025-11-01",
         "paid": True, "amountExcl": 100, "vat": 20, "taxe": 73},
        {"id": "b2", "code": "INV-2", "customerName": "Blue Ocean Co", "issueDate": "2025-02-14",
         "paid": False, "amountExcl": 300, "vat": 60, "taxe": 219},
        {"id": "c3", "code": "INV-3", "customerName": "Coral Labs", "issueDate": "2025-10-03",
         "paid": True, "amountExcl": 50, "vat": 10, "taxe": 0},
        {"id": "d4", "code": "INV-4", "customerName": "acme holdings", "issueDate": "2024-12-31",
         "paid": False, "amountExcl": 0, "vat": 0, "taxe": 0},
    ]
