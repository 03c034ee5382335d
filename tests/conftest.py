"""
Shared fixtures: in-memory storage, a fixed clock and invoice builders.
"""

import os
import sys
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from hvac_billing.models.domain import Invoice, LineItemDraft, QuantityUnit
from hvac_billing.services.tax import aggregate, build_line_item
from hvac_billing.utils.storage import MemoryStorage

FIXED_NOW = datetime(2026, 3, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


def make_line(description="Split AC general service", quantity="2", price="750", gst_rate="18",
              unit=QuantityUnit.UNIT, sno=""):
    return build_line_item(LineItemDraft(
        sno=sno,
        description=description,
        quantity=quantity,
        price=price,
        gst_rate=gst_rate,
        unit=unit,
    ))


def make_invoice(items=None, **overrides):
    items = items if items is not None else [make_line()]
    totals = aggregate(items)
    fields = dict(
        id="inv-1",
        bill_type="Tax Invoice",
        customer_name="Sri Ganesh Traders",
        address="12 Anna Salai",
        city="Chennai",
        state="Tamil Nadu",
        zip_code="600017",
        invoice_number="INV-2026-001",
        issue_date=date(2026, 3, 15),
        items=items,
        notes="",
        subtotal=totals.subtotal,
        tax_total=totals.tax,
        grand_total=totals.total,
        created_at=FIXED_NOW,
    )
    fields.update(overrides)
    return Invoice(**fields)
