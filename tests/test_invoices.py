"""
Tests for the invoice workflow: numbering, computation and rendering.
"""

from datetime import date
from decimal import Decimal

import pytest

from hvac_billing.models.domain import InvoiceDraft, LineItemDraft, PaymentStatus
from hvac_billing.services.invoices import SEQUENCE_KEY, InvoiceService
from hvac_billing.services.stores import INVOICES_KEY
from hvac_billing.utils.errors import DuplicateInvoiceNumber, StorageUnavailable, ValidationError

from conftest import make_invoice


def draft(**overrides):
    data = dict(
        bill_type="Tax Invoice",
        customer_name="Sri Ganesh Traders",
        address="12 Anna Salai\nT Nagar",
        city="Chennai",
        state="Tamil Nadu",
        zip_code="600017",
        items=[
            LineItemDraft(description="Split AC general service", quantity="2", price="750", gst_rate="18"),
            LineItemDraft(description="Gas top-up R32", quantity="1", price="10.01", gst_rate="5"),
        ],
        notes="Warranty: 90 days on labour",
    )
    data.update(overrides)
    return InvoiceDraft(**data)


@pytest.fixture
def service(storage, clock):
    return InvoiceService(storage, clock=clock)


class TestCreateInvoice:
    """Test invoice creation from a bill form"""
    
    def test_computes_totals(self, service):
        invoice = service.create_invoice(draft())
        
        assert invoice.subtotal == Decimal("1510.01")
        assert invoice.tax_total == Decimal("270.50")
        assert invoice.grand_total == Decimal("1780.51")
        assert invoice.grand_total == invoice.subtotal + invoice.tax_total
        assert [item.sno for item in invoice.items] == ["1", "2"]
        assert invoice.status == PaymentStatus.PENDING
    
    def test_defaults_issue_date_to_today(self, service):
        assert service.create_invoice(draft()).issue_date == date(2026, 3, 15)
    
    def test_keeps_issue_date(self, service):
        invoice = service.create_invoice(draft(issue_date=date(2026, 1, 2)))
        assert invoice.issue_date == date(2026, 1, 2)
    
    def test_persisted(self, service, storage):
        invoice = service.create_invoice(draft())
        
        assert service.get_invoice(invoice.id) == invoice
        assert storage.get(INVOICES_KEY)[0]["invoice_number"] == "INV-2026-001"
    
    def test_no_items(self, service):
        invoice = service.create_invoice(draft(items=[]))
        
        assert invoice.items == []
        assert invoice.grand_total == Decimal("0.00")
    
    @pytest.mark.parametrize("field", ["customer_name", "bill_type"])
    def test_required_fields(self, service, storage, field):
        with pytest.raises(ValidationError) as exc:
            service.create_invoice(draft(**{field: "  "}))
        assert exc.value.field == field
        assert storage.get(INVOICES_KEY) is None
    
    def test_bad_line_reports_position(self, service):
        items = [
            LineItemDraft(description="Service", quantity="1", price="100"),
            LineItemDraft(description="Filter", quantity="1", price="-5"),
        ]
        with pytest.raises(ValidationError) as exc:
            service.create_invoice(draft(items=items))
        assert exc.value.field == "items.1.price"


class TestInvoiceNumbering:
    """Test generated and user-supplied invoice numbers"""
    
    def test_serial_numbers_do_not_collide(self, service):
        numbers = [service.create_invoice(draft()).invoice_number for _ in range(3)]
        assert numbers == ["INV-2026-001", "INV-2026-002", "INV-2026-003"]
    
    def test_counter_is_stored(self, service, storage):
        service.create_invoice(draft())
        service.create_invoice(draft())
        assert storage.get(SEQUENCE_KEY) == 2
    
    def test_delete_does_not_reuse_numbers(self, service):
        service.create_invoice(draft())
        second = service.create_invoice(draft())
        
        assert service.delete_invoice(second.id) is True
        assert service.create_invoice(draft()).invoice_number == "INV-2026-003"
    
    def test_padding_widens_past_three_digits(self, service, storage):
        storage.set(SEQUENCE_KEY, 999)
        assert service.create_invoice(draft()).invoice_number == "INV-2026-1000"
    
    def test_user_supplied_number(self, service, storage):
        invoice = service.create_invoice(draft(invoice_number=" VR/2026/17 "))
        
        assert invoice.invoice_number == "VR/2026/17"
        assert storage.get(SEQUENCE_KEY) is None
    
    def test_user_supplied_duplicate_rejected(self, service):
        service.create_invoice(draft(invoice_number="VR-17"))
        
        with pytest.raises(DuplicateInvoiceNumber) as exc:
            service.create_invoice(draft(invoice_number="VR-17"))
        assert exc.value.invoice_number == "VR-17"
        assert len(service.list_invoices()) == 1
    
    def test_generated_number_skips_user_supplied_one(self, service):
        service.create_invoice(draft(invoice_number="INV-2026-001"))
        assert service.create_invoice(draft()).invoice_number == "INV-2026-002"
    
    def test_counter_catches_up_with_existing_invoices(self, service, storage):
        service.store.replace_all([make_invoice(id="old", invoice_number="INV-2025-007")])
        assert service.create_invoice(draft()).invoice_number == "INV-2026-008"
    
    def test_corrupt_counter(self, service, storage):
        storage.set(SEQUENCE_KEY, "seven")
        with pytest.raises(StorageUnavailable):
            service.create_invoice(draft())
    
    def test_find_duplicate_numbers(self, service):
        service.store.replace_all([
            make_invoice(id="a", invoice_number="INV-2026-004"),
            make_invoice(id="b", invoice_number="INV-2026-004"),
            make_invoice(id="c", invoice_number="INV-2026-005"),
        ])
        assert service.find_duplicate_numbers() == {"INV-2026-004": ["a", "b"]}


class TestInvoiceLifecycle:
    """Test status changes, listing and rendering of stored invoices"""
    
    def test_update_status(self, service):
        invoice = service.create_invoice(draft())
        
        assert service.update_status(invoice.id, "Paid") is True
        assert service.get_invoice(invoice.id).status == PaymentStatus.PAID
        assert [i.id for i in service.list_invoices(PaymentStatus.PAID)] == [invoice.id]
        assert service.list_invoices(PaymentStatus.OVERDUE) == []
    
    def test_list_rejects_unknown_status(self, service):
        with pytest.raises(ValidationError) as exc:
            service.list_invoices("Refunded")
        assert exc.value.field == "status"
    
    def test_update_status_rejects_unknown(self, service):
        invoice = service.create_invoice(draft())
        with pytest.raises(ValidationError):
            service.update_status(invoice.id, "Refunded")
    
    def test_render_invoice(self, service):
        invoice = service.create_invoice(draft())
        document = service.render_invoice(invoice.id)
        
        assert document.filename == "Invoice-INV-2026-001.pdf"
        assert document.content.startswith(b"%PDF")
        assert service.export_filename(invoice) == document.filename
        assert document.page_count == 1
    
    def test_render_missing_invoice(self, service):
        assert service.render_invoice("nope") is None
        assert service.save_pdf("nope") is None
    
    def test_save_pdf(self, service, tmp_path):
        invoice = service.create_invoice(draft())
        path = service.save_pdf(invoice.id, str(tmp_path))
        
        assert path == tmp_path / "Invoice-INV-2026-001.pdf"
        assert path.read_bytes().startswith(b"%PDF")
