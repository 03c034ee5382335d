"""
GST line calculator and bill aggregator.

Rounding order: every derived line figure is rounded to 2 decimal places
when the line is computed, and the bill totals are sums of those rounded
figures (rounded once more at the end). CGST and SGST are each half of
the line GST rounded to the cent, and the line total is the subtotal
plus both halves, so a printed row always adds up and the bill's grand
total always equals subtotal + tax.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from hvac_billing.models.domain import BillTotals, LineFigures, LineItem, LineItemDraft
from hvac_billing.utils.config import settings
from hvac_billing.utils.errors import ValidationError
from hvac_billing.utils.money import ZERO, parse_amount, round_money

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
TWO = Decimal("2")


def compute_line(price: Any, quantity: Any, gst_percent: Any) -> LineFigures:
    """
    Compute subtotal, GST, its CGST/SGST halves and the line total.
    
    Blank inputs count as zero. Non-numeric or negative inputs raise
    ValidationError.
    """
    unit_price = parse_amount(price, "price")
    qty = parse_amount(quantity, "quantity")
    rate = parse_amount(gst_percent, "gst_rate")
    
    raw_subtotal = unit_price * qty
    half_gst = round_money(raw_subtotal * rate / HUNDRED / TWO)
    subtotal = round_money(raw_subtotal)
    gst_amount = half_gst * 2
    
    return LineFigures(
        subtotal=subtotal,
        gst_amount=gst_amount,
        cgst=half_gst,
        sgst=half_gst,
        total=round_money(subtotal + gst_amount),
    )


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def build_line_item(draft: LineItemDraft, sno: Optional[str] = None) -> LineItem:
    """
    Turn a form line into a computed LineItem.
    
    Description, quantity and price are required; a blank GST rate means
    no GST and a blank HSN takes settings.DEFAULT_HSN.
    """
    if not draft.description or not draft.description.strip():
        raise ValidationError("Line item description is required", field="description")
    for field in ("quantity", "price"):
        if _is_blank(getattr(draft, field)):
            raise ValidationError(f"Line item {field} is required", field=field)
    
    figures = compute_line(draft.price, draft.quantity, draft.gst_rate)
    hsn = draft.hsn.strip() if draft.hsn and draft.hsn.strip() else settings.DEFAULT_HSN
    
    return LineItem(
        sno=draft.sno or sno or "",
        description=draft.description,
        hsn=hsn,
        quantity=parse_amount(draft.quantity, "quantity"),
        unit=draft.unit,
        price=parse_amount(draft.price, "price"),
        gst_rate=parse_amount(draft.gst_rate, "gst_rate"),
        subtotal=figures.subtotal,
        cgst=figures.cgst,
        sgst=figures.sgst,
        total=figures.total,
    )


def recompute_line_item(item: LineItem) -> LineItem:
    """Recompute the derived figures of an existing line. Idempotent."""
    figures = compute_line(item.price, item.quantity, item.gst_rate)
    return item.model_copy(update={
        "subtotal": figures.subtotal,
        "cgst": figures.cgst,
        "sgst": figures.sgst,
        "total": figures.total,
    })


def aggregate(items: Iterable[LineItem]) -> BillTotals:
    """Sum computed lines into subtotal, tax and total."""
    subtotal = ZERO
    tax = ZERO
    total = ZERO
    count = 0
    for item in items:
        subtotal += item.subtotal
        tax += item.cgst + item.sgst
        total += item.total
        count += 1
    
    totals = BillTotals(
        subtotal=round_money(subtotal),
        tax=round_money(tax),
        total=round_money(total),
    )
    logger.debug(f"Aggregated {count} lines: {totals}")
    return totals
