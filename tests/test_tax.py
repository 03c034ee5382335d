"""
Tests for the GST line calculator and bill aggregator.
"""

from decimal import ROUND_HALF_UP, Decimal

import pytest

from hvac_billing.models.domain import LineItemDraft, QuantityUnit
from hvac_billing.services.tax import aggregate, build_line_item, compute_line, recompute_line_item
from hvac_billing.utils.errors import ValidationError

from conftest import make_line


class TestComputeLine:
    """Test per-line tax figures"""
    
    def test_basic_line(self):
        figures = compute_line("750", "2", "18")
        
        assert figures.subtotal == Decimal("1500.00")
        assert figures.gst_amount == Decimal("270.00")
        assert figures.cgst == figures.sgst == Decimal("135.00")
        assert figures.total == Decimal("1770.00")
    
    def test_half_cent_rounding(self):
        figures = compute_line("10.01", "1", "5")
        
        assert figures.subtotal == Decimal("10.01")
        assert figures.cgst == figures.sgst == Decimal("0.25")
        assert figures.total == Decimal("10.51")
    
    @pytest.mark.parametrize("price, quantity, rate", [
        ("0", "0", "0"),
        ("1", "1", "0"),
        ("99.99", "3", "18"),
        ("333.33", "1.5", "12"),
        ("0.07", "7", "28"),
        ("1250", "0.25", "5"),
        ("12345.67", "11", "18"),
    ])
    def test_line_invariants(self, price, quantity, rate):
        figures = compute_line(price, quantity, rate)
        
        expected = (Decimal(price) * Decimal(quantity)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert figures.subtotal == expected
        assert figures.cgst == figures.sgst
        assert figures.total == figures.subtotal + 2 * figures.cgst
        for value in (figures.subtotal, figures.cgst, figures.sgst, figures.total):
            assert value == value.quantize(Decimal("0.01"))
    
    def test_blank_inputs_are_zero(self):
        figures = compute_line("", None, "  ")
        
        assert figures.total == Decimal("0.00")
        assert figures.cgst == Decimal("0.00")
    
    def test_numeric_inputs_accepted(self):
        assert compute_line(100, 2, 18.0).total == Decimal("236.00")
    
    @pytest.mark.parametrize("price, quantity, rate, field", [
        ("-1", "1", "18", "price"),
        ("1", "-2", "18", "quantity"),
        ("1", "1", "-5", "gst_rate"),
    ])
    def test_negative_inputs_rejected(self, price, quantity, rate, field):
        with pytest.raises(ValidationError) as exc:
            compute_line(price, quantity, rate)
        assert exc.value.field == field
    
    def test_non_numeric_rejected(self):
        with pytest.raises(ValidationError) as exc:
            compute_line("abc", "1", "18")
        assert exc.value.field == "price"
    
    def test_non_finite_rejected(self):
        with pytest.raises(ValidationError):
            compute_line("NaN", "1", "18")


class TestBuildLineItem:
    """Test form line to computed line conversion"""
    
    def test_builds_computed_item(self):
        item = make_line(quantity="3", price="200", gst_rate="18", unit=QuantityUnit.METER)
        
        assert item.quantity == Decimal("3")
        assert item.subtotal == Decimal("600.00")
        assert item.cgst == Decimal("54.00")
        assert item.total == Decimal("708.00")
        assert item.unit == QuantityUnit.METER
    
    def test_default_hsn(self):
        assert make_line().hsn == "995463"
    
    def test_explicit_hsn_kept(self):
        item = build_line_item(LineItemDraft(description="Copper pipe", hsn="7411", quantity="1", price="10"))
        assert item.hsn == "7411"
    
    def test_blank_gst_means_no_tax(self):
        item = make_line(gst_rate="")
        
        assert item.gst_rate == Decimal("0")
        assert item.cgst == Decimal("0.00")
        assert item.total == item.subtotal
    
    def test_fallback_serial(self):
        item = build_line_item(LineItemDraft(description="Gas top-up", quantity="1", price="1"), sno="4")
        assert item.sno == "4"
    
    @pytest.mark.parametrize("overrides, field", [
        ({"description": "  "}, "description"),
        ({"quantity": ""}, "quantity"),
        ({"price": None}, "price"),
    ])
    def test_required_fields(self, overrides, field):
        data = {"description": "Duct cleaning", "quantity": "1", "price": "500", "gst_rate": "18"}
        data.update(overrides)
        with pytest.raises(ValidationError) as exc:
            build_line_item(LineItemDraft(**data))
        assert exc.value.field == field
    
    def test_recompute_is_idempotent(self):
        item = make_line(price="333.33", quantity="1.5", gst_rate="12")
        
        once = recompute_line_item(item)
        twice = recompute_line_item(once)
        assert once == item
        assert twice == once


class TestAggregate:
    """Test whole-bill totals"""
    
    def test_empty_bill(self):
        totals = aggregate([])
        
        assert totals.subtotal == Decimal("0.00")
        assert totals.tax == Decimal("0.00")
        assert totals.total == Decimal("0.00")
    
    def test_sums_lines(self):
        items = [
            make_line(price="750", quantity="2", gst_rate="18"),
            make_line(price="10.01", quantity="1", gst_rate="5"),
        ]
        totals = aggregate(items)
        
        assert totals.subtotal == Decimal("1510.01")
        assert totals.tax == Decimal("270.50")
        assert totals.total == Decimal("1780.51")
    
    def test_total_matches_sum_of_line_totals(self):
        items = [
            make_line(price=price, quantity=quantity, gst_rate=rate)
            for price, quantity, rate in [
                ("0.07", "7", "28"), ("99.99", "3", "18"), ("333.33", "1.5", "12"), ("10.01", "1", "5"),
            ]
        ]
        totals = aggregate(items)
        
        line_sum = sum(item.total for item in items)
        assert abs(totals.total - line_sum.quantize(Decimal("0.01"))) <= Decimal("0.01")
        assert totals.total == totals.subtotal + totals.tax
    
    def test_accepts_generator(self):
        totals = aggregate(make_line() for _ in range(3))
        assert totals.total == Decimal("5310.00")
