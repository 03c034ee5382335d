"""
Legacy Bill Migration

Older data held every bill twice: in saved_bills with string-typed
figures and camelCase keys, and again in saved_bills02. This module
rewrites saved_bills into canonical Invoice records, recomputing every
derived figure, and removes saved_bills02.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from hvac_billing.models.domain import (
    Invoice,
    LineItemDraft,
    PaymentStatus,
    QuantityUnit,
)
from hvac_billing.models.reports import MigrationSummary
from hvac_billing.services.stores import INVOICES_KEY, InvoiceStore
from hvac_billing.services.tax import aggregate, build_line_item
from hvac_billing.utils.errors import BillingError
from hvac_billing.utils.storage import KeyValueStorage, get_storage

logger = logging.getLogger(__name__)

SECONDARY_BILLS_KEY = "saved_bills02"

LEGACY_UNITS = {
    "(unit)": QuantityUnit.UNIT,
    "(mtr)": QuantityUnit.METER,
    "unit": QuantityUnit.UNIT,
    "meter": QuantityUnit.METER,
}


def is_legacy_row(row: Dict[str, Any]) -> bool:
    return "customer_name" not in row and ("customer" in row or "billtype" in row)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def convert_legacy_row(row: Dict[str, Any]) -> Invoice:
    """
    Build a canonical Invoice from one legacy saved_bills row.
    
    The user-typed invoice number ('invoice') is preferred over the
    generated one ('invoiceNumber') because it is the one printed on
    the PDF. Derived figures are recomputed, never copied.
    
    Raises:
        BillingError: the row cannot be turned into a valid invoice
    """
    items = []
    for index, raw in enumerate(row.get("additionalItems") or []):
        unit = LEGACY_UNITS.get(str(raw.get("quantityType") or "").strip(), QuantityUnit.UNSPECIFIED)
        draft = LineItemDraft(
            sno=str(raw.get("sno") or ""),
            description=str(raw.get("name") or ""),
            hsn=raw.get("hsn"),
            quantity=raw.get("units"),
            unit=unit,
            price=raw.get("price"),
            gst_rate=raw.get("gst"),
        )
        items.append(build_line_item(draft, sno=str(index + 1)))
    totals = aggregate(items)
    
    created_at = _parse_datetime(row.get("createdAt")) or datetime.now(timezone.utc)
    number = str(row.get("invoice") or row.get("invoiceNumber") or "").strip()
    if not number:
        raise BillingError(f"Legacy bill {row.get('id')} has no invoice number")
    
    try:
        status = PaymentStatus(row.get("status") or PaymentStatus.PENDING)
    except ValueError:
        status = PaymentStatus.PENDING
    
    try:
        return Invoice(
            id=str(row.get("id") or ""),
            bill_type=str(row.get("billtype") or ""),
            customer_name=str(row.get("customer") or ""),
            address=str(row.get("address") or ""),
            city=str(row.get("city") or ""),
            state=str(row.get("state") or ""),
            zip_code=str(row.get("zip") or ""),
            invoice_number=number,
            issue_date=_parse_date(row.get("date")) or created_at.date(),
            items=items,
            notes=str(row.get("notes") or ""),
            subtotal=totals.subtotal,
            tax_total=totals.tax,
            grand_total=totals.total,
            status=status,
            created_at=created_at,
        )
    except PydanticValidationError as e:
        raise BillingError(f"Legacy bill {row.get('id')} is invalid: {e}") from e


def migrate_legacy_bills(storage: Optional[KeyValueStorage] = None) -> MigrationSummary:
    """
    Convert legacy rows in saved_bills in place and drop saved_bills02.
    
    Rows already in the canonical shape are kept as they are. Rows that
    cannot be converted are left out and counted as skipped. Running the
    migration twice changes nothing the second time.
    """
    storage = storage if storage is not None else get_storage()
    store = InvoiceStore(storage)
    summary = MigrationSummary()
    
    invoices: List[Invoice] = []
    seen_ids = set()
    for row in store.read_raw():
        if not isinstance(row, dict):
            logger.warning(f"Skipping non-object bill row: {row!r}")
            summary.skipped += 1
            continue
        try:
            if is_legacy_row(row):
                invoice = convert_legacy_row(row)
                summary.migrated += 1
            else:
                invoice = Invoice.model_validate(row)
        except (BillingError, PydanticValidationError) as e:
            logger.warning(f"Skipping bill row {row.get('id')!r}: {e}")
            summary.skipped += 1
            continue
        if invoice.id in seen_ids:
            summary.duplicates_dropped += 1
            continue
        seen_ids.add(invoice.id)
        invoices.append(invoice)
    
    if summary.migrated or summary.skipped or summary.duplicates_dropped:
        storage.set_many({INVOICES_KEY: store.dump(invoices)})
    summary.secondary_slot_dropped = storage.delete(SECONDARY_BILLS_KEY)
    
    logger.info(
        f"Bill migration: {summary.migrated} migrated, {summary.skipped} skipped, "
        f"{summary.duplicates_dropped} duplicates, secondary slot dropped={summary.secondary_slot_dropped}"
    )
    return summary
