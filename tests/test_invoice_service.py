import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from src.api.common.exceptions import (
    InvoiceConflictError, InvoiceNotFoundError, InvoiceValidationError, PersistenceError
)
from src.api.invoices.constants import SortDirection, SortField
from src.api.invoices.models.invoice import Invoice
from src.api.invoices.services.invoice_repository import InvoiceRepository
from src.api.invoices.services.invoice_service import InvoiceService


def naive(value: datetime) -> datetime:
    """SQLite returns naive datetimes; compare on wall-clock UTC"""
    return value.replace(tzinfo=None)


class TestInvoiceRepository:
    """Test the persistence adapter"""

    def test_insert_assigns_identifier(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)

        stored = repository.insert(test_data_factory.build_invoice())

        assert stored.id is not None
        assert len(stored.id) == 32
        assert stored.code == "INV-001"
        assert stored.revision == 1

    def test_insert_generates_code_when_missing(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)

        stored = repository.insert(test_data_factory.build_invoice(code=None))

        assert stored.code.startswith("INV-20251101-")
        assert len(stored.code) == len("INV-20251101-") + 6

    def test_insert_identifiers_are_unique(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)

        first = repository.insert(test_data_factory.build_invoice())
        second = repository.insert(test_data_factory.build_invoice())

        assert first.id != second.id
        assert first.code == second.code

    def test_insert_then_list_round_trip(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)
        stored = repository.insert(test_data_factory.build_invoice(customerName="Blue Ocean Co"))

        listed = repository.list()

        assert [invoice.id for invoice in listed] == [stored.id]
        invoice = listed[0]
        assert invoice.created_at is not None
        assert invoice.updated_at is not None
        assert invoice.quarter == "Q4 2025"
        assert invoice.customer_name_lower == "blue ocean co"

    def test_list_orders_by_creation_not_insertion(self, test_session, test_data_factory, fixed_now):
        repository = InvoiceRepository(test_session)
        late = repository.insert(test_data_factory.build_invoice(code="late", now=fixed_now))
        early = repository.insert(
            test_data_factory.build_invoice(code="early", now=fixed_now - timedelta(days=1)))
        middle = repository.insert(
            test_data_factory.build_invoice(code="middle", now=fixed_now - timedelta(hours=1)))

        assert [i.code for i in repository.list()] == ["late", "middle", "early"]
        assert [i.code for i in repository.list(newest_first=False)] == ["early", "middle", "late"]
        assert [i.id for i in repository.scan()] == [late.id, middle.id, early.id]

    def test_list_limit_is_capped(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session, max_page_size=3)
        for i in range(5):
            repository.insert(test_data_factory.build_invoice(code=f"INV-{i}"))

        assert len(repository.list()) == 3
        assert len(repository.list(limit=2)) == 2
        assert len(repository.list(limit=500)) == 3
        assert len(repository.list(limit=0)) == 1
        assert len(repository.scan()) == 5

    def test_update_recomputes_derived_fields(self, test_session, test_data_factory, fixed_now):
        repository = InvoiceRepository(test_session)
        stored = repository.insert(test_data_factory.build_invoice(now=fixed_now))
        later = fixed_now + timedelta(minutes=5)

        updated = repository.update(
            stored.id,
            {"customer_name": "Blue OCEAN Co", "issue_date": date(2026, 2, 1)},
            now=later,
        )

        assert updated.id == stored.id
        assert updated.customer_name == "Blue OCEAN Co"
        assert updated.customer_name_lower == "blue ocean co"
        assert updated.quarter == "Q1 2026"
        assert updated.revision == 2
        assert naive(updated.updated_at) == naive(later)
        assert naive(updated.created_at) == naive(fixed_now)

    def test_update_ignores_fields_outside_allow_list(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)
        stored = repository.insert(test_data_factory.build_invoice())
        original_id = stored.id
        created_at = stored.created_at

        updated = repository.update(stored.id, {
            "id": "forged",
            "created_at": datetime(2000, 1, 1, tzinfo=timezone.utc),
            "quarter": "Q1 2000",
            "customer_name_lower": "forged",
            "paid": True,
        })

        assert updated.id == original_id
        assert updated.created_at == created_at
        assert updated.quarter == "Q4 2025"
        assert updated.customer_name_lower == "acme pty ltd"
        assert updated.paid is True

    def test_update_unknown_id(self, test_session):
        repository = InvoiceRepository(test_session)

        with pytest.raises(InvoiceNotFoundError):
            repository.update("missing", {"paid": True})

        assert test_session.exec(select(Invoice)).all() == []

    def test_update_revision_conflict(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)
        stored = repository.insert(test_data_factory.build_invoice())
        repository.update(stored.id, {"paid": True}, expected_revision=1)

        with pytest.raises(InvoiceConflictError) as exc_info:
            repository.update(stored.id, {"paid": False}, expected_revision=1)

        assert exc_info.value.current_revision == 2
        assert repository.get(stored.id).paid is True

    def test_insert_persistence_error(self, test_session, test_data_factory):
        repository = InvoiceRepository(test_session)

        with patch.object(test_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk I/O error"))):
            with pytest.raises(PersistenceError) as exc_info:
                repository.insert(test_data_factory.build_invoice())

        assert "disk I/O" not in exc_info.value.message
        assert exc_info.value.status_code == 500

    def test_list_persistence_error(self, test_session):
        repository = InvoiceRepository(test_session)

        with patch.object(test_session, "exec", side_effect=OperationalError("SELECT", {}, Exception("gone"))):
            with pytest.raises(PersistenceError):
                repository.list()


class TestInvoiceService:
    """Test InvoiceService class"""

    def test_create_invoice_end_to_end(self, test_session, sample_invoice_data):
        service = InvoiceService(test_session)

        invoice = service.create_invoice(sample_invoice_data)

        assert invoice.id is not None
        assert invoice.code == "INV-1"
        assert invoice.quarter == "Q4 2025"
        assert invoice.paid is False
        assert invoice.amount_excl + invoice.vat + invoice.taxe == 1930

    def test_create_invoice_validation_error_persists_nothing(self, test_session):
        service = InvoiceService(test_session)

        with pytest.raises(InvoiceValidationError):
            service.create_invoice({"customerName": "Acme", "issueDate": "2025-02-30"})

        assert service.list_invoices() == []

    def test_get_invoice(self, test_session, test_data_factory):
        invoice = test_data_factory.create_invoice(test_session)
        service = InvoiceService(test_session)

        assert service.get_invoice(invoice.id).id == invoice.id

    def test_get_invoice_not_found(self, test_session):
        service = InvoiceService(test_session)

        with pytest.raises(InvoiceNotFoundError):
            service.get_invoice("missing")

    def test_list_invoices_search(self, test_session, test_data_factory):
        test_data_factory.create_invoice(test_session, customerName="Acme Pty Ltd")
        ocean = test_data_factory.create_invoice(test_session, customerName="Blue Ocean Co")
        service = InvoiceService(test_session)

        assert [i.id for i in service.list_invoices("OCEAN")] == [ocean.id]
        assert [i.id for i in service.list_invoices(ocean.id[:8])] == [ocean.id]
        assert len(service.list_invoices()) == 2
        assert len(service.list_invoices("   ")) == 2

    def test_list_invoices_search_respects_limit(self, test_session, test_data_factory):
        for _ in range(4):
            test_data_factory.create_invoice(test_session, customerName="Acme")
        service = InvoiceService(test_session, max_page_size=3)

        assert len(service.list_invoices("acme")) == 3
        assert len(service.list_invoices("acme", limit=2)) == 2

    def test_update_invoice(self, test_session, test_data_factory):
        invoice = test_data_factory.create_invoice(test_session)
        service = InvoiceService(test_session)

        updated = service.update_invoice(invoice.id, {"issueDate": "2026-07-04", "paid": True})

        assert updated.quarter == "Q3 2026"
        assert updated.paid is True
        assert updated.revision == 2
        assert updated.customer_name == "Acme Pty Ltd"

    def test_update_invoice_invalid_payload(self, test_session, test_data_factory):
        invoice = test_data_factory.create_invoice(test_session)
        service = InvoiceService(test_session)

        with pytest.raises(InvoiceValidationError):
            service.update_invoice(invoice.id, {"vat": -5})

        assert service.get_invoice(invoice.id).revision == 1

    def test_update_invoice_not_found_creates_nothing(self, test_session):
        service = InvoiceService(test_session)

        with pytest.raises(InvoiceNotFoundError):
            service.update_invoice("missing", {"customerName": "Acme", "issueDate": "2025-01-01"})

        assert service.list_invoices() == []

    def test_update_invoice_conflict(self, test_session, test_data_factory):
        invoice = test_data_factory.create_invoice(test_session)
        service = InvoiceService(test_session)

        with pytest.raises(InvoiceConflictError):
            service.update_invoice(invoice.id, {"paid": True, "revision": 7})

    def test_get_view(self, test_session, test_data_factory):
        test_data_factory.create_invoice(test_session, customerName="Acme", amountExcl=10, vat=0, taxe=0)
        test_data_factory.create_invoice(test_session, customerName="Blue", amountExcl=30, vat=0, taxe=0)
        test_data_factory.create_invoice(test_session, customerName="Acme bis", amountExcl=20, vat=0, taxe=0)
        service = InvoiceService(test_session)

        view = service.get_view("acme", SortField.TOTAL, SortDirection.ASCENDING)

        assert [row.customer_name for row in view.rows] == ["Acme", "Acme bis"]
        assert view.totals.total == 30

    def test_get_view_current_quarter(self, test_session, test_data_factory):
        test_data_factory.create_invoice(test_session, customerName="Now", issueDate="2025-11-02")
        test_data_factory.create_invoice(test_session, customerName="Before", issueDate="2025-06-30")
        service = InvoiceService(test_session)

        view = service.get_view(current_quarter=True, today=date(2025, 12, 31))

        assert view.quarter == "Q4 2025"
        assert [row.customer_name for row in view.rows] == ["Now"]
        assert view.totals.total == 1930
