"""
Core Component Tests

Tests the building blocks every service depends on:
- Configuration defaults
- Domain models
- Form drafts
- Report models
"""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from hvac_billing.models import (
    BillTotals,
    Customer,
    CustomerType,
    Invoice,
    InvoiceDraft,
    LineItemDraft,
    MigrationSummary,
    PaymentStatus,
    QuantityUnit,
    ServiceOrder,
    ServiceStatus,
    StatusBreakdown,
    Technician,
)
from hvac_billing.utils.config import Settings, configure_logging, settings

from conftest import FIXED_NOW, make_invoice


def test_configuration():
    """Test configuration defaults match the printed invoice template"""
    print("\n" + "="*60)
    print("TEST 1: Configuration")
    print("="*60)
    
    config = Settings(_env_file=None)
    
    assert config.STORAGE_BACKEND == "file", "Default backend mismatch"
    assert config.DEFAULT_HSN == "995463", "Default HSN mismatch"
    assert config.INVOICE_PREFIX == "INV", "Invoice prefix mismatch"
    assert config.INVOICE_PADDING == 3, "Invoice padding mismatch"
    assert config.WORDS_SUFFIX == "RUPEES ONLY"
    assert config.BANK_IFSC == "HDFC0003760"
    assert config.LOGO_PATH is None
    
    print("✅ Configuration loaded successfully")
    print(f"   - Backend: {config.STORAGE_BACKEND}")
    print(f"   - Company: {config.COMPANY_NAME}")


def test_configure_logging():
    """Test LOG_LEVEL is applied through logging.basicConfig"""
    with patch("hvac_billing.utils.config.logging.basicConfig") as basic_config:
        configure_logging("debug")
        configure_logging()
    
    first, second = basic_config.call_args_list
    assert first.kwargs["level"] == "DEBUG"
    assert second.kwargs["level"] == settings.LOG_LEVEL.upper()
    assert "%(name)s" in first.kwargs["format"]


def test_domain_models():
    """Test domain records validate and coerce stored values"""
    print("\n" + "="*60)
    print("TEST 2: Domain Models")
    print("="*60)
    
    customer = Customer(id="c1", name="Meena Stores", created_at="2026-03-15T10:30:00+00:00")
    assert customer.type == CustomerType.RESIDENTIAL
    assert isinstance(customer.created_at, datetime)
    print(f"✅ Customer model: {customer.name} ({customer.type.value})")
    
    technician = Technician(id="t1", name="Ravi", phone="9840000000", created_at=FIXED_NOW)
    assert technician.email == ""
    print(f"✅ Technician model: {technician.name}")
    
    order = ServiceOrder(
        id="s1",
        customer="Meena Stores",
        service="AC Service",
        service_date="2026-03-02",
        value="4500.50",
        created_at=FIXED_NOW,
    )
    assert order.status == ServiceStatus.SCHEDULED
    assert order.service_date == date(2026, 3, 2)
    assert order.value == Decimal("4500.50")
    assert order.customer_id is None
    print(f"✅ ServiceOrder model: {order.service} for {order.customer}")
    
    invoice = make_invoice()
    assert invoice.status == PaymentStatus.PENDING
    assert invoice.grand_total == invoice.subtotal + invoice.tax_total
    print(f"✅ Invoice model: {invoice.invoice_number} - Status: {invoice.status.value}")


def test_domain_model_validation():
    """Test required fields and value constraints"""
    with pytest.raises(PydanticValidationError):
        Customer(id="c1", name="", created_at=FIXED_NOW)
    
    with pytest.raises(PydanticValidationError):
        ServiceOrder(id="s1", customer="A", service="Repair", value="-1", created_at=FIXED_NOW)
    
    with pytest.raises(PydanticValidationError):
        ServiceOrder(id="s1", customer="A", service="Repair", status="Done", created_at=FIXED_NOW)


def test_invoice_json_round_trip():
    """Test an invoice survives its storage representation"""
    invoice = make_invoice()
    stored = invoice.model_dump(mode="json")
    
    assert stored["grand_total"] == "1770.00"
    assert stored["items"][0]["unit"] == "unit"
    assert Invoice.model_validate(stored) == invoice


def test_quantity_unit_labels():
    """Test unit tags printed after quantities"""
    assert QuantityUnit.UNIT.label == " (unit)"
    assert QuantityUnit.METER.label == " (mtr)"
    assert QuantityUnit.UNSPECIFIED.label == ""


def test_drafts():
    """Test form drafts keep raw numbers until computation"""
    line = LineItemDraft(description="Gas top-up", quantity="", price="abc")
    assert line.quantity == ""
    assert line.price == "abc"
    assert line.hsn is None
    
    draft = InvoiceDraft(bill_type="Tax Invoice", customer_name="A", items=[line])
    assert draft.invoice_number is None
    assert draft.issue_date is None
    assert len(draft.items) == 1


def test_report_models():
    """Test report payload helpers"""
    breakdown = StatusBreakdown(labels=["Completed", "Scheduled"], counts=[3, 1])
    assert breakdown.as_dict() == {"Completed": 3, "Scheduled": 1}
    
    summary = MigrationSummary()
    assert summary.migrated == 0
    assert summary.secondary_slot_dropped is False
    
    totals = BillTotals(subtotal=Decimal("100.00"), tax=Decimal("18.00"), total=Decimal("118.00"))
    assert totals.total == totals.subtotal + totals.tax
