"""
Spreadsheet export of customer and bill collections.
"""

import io
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font

from hvac_billing.models.domain import Customer, Invoice

logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS: List[Tuple[str, Callable[[Customer], Any]]] = [
    ("Name", lambda c: c.name),
    ("Email", lambda c: c.email),
    ("Phone", lambda c: c.phone),
    ("Address", lambda c: c.address),
    ("Type", lambda c: c.type.value),
    ("CreatedAt", lambda c: c.created_at.isoformat()),
]

BILL_COLUMNS: List[Tuple[str, Callable[[Invoice], Any]]] = [
    ("Name", lambda b: b.customer_name),
    ("Date", lambda b: b.issue_date.isoformat()),
    ("InvoiceNo", lambda b: b.invoice_number),
    ("Address", lambda b: b.address),
    ("CreatedAt", lambda b: b.created_at.isoformat()),
]


def build_workbook(title: str, columns: Sequence[Tuple[str, Callable]], records: Iterable) -> Workbook:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append([name for name, _ in columns])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    count = 0
    for record in records:
        sheet.append([getter(record) for _, getter in columns])
        count += 1
    logger.debug(f"Built '{title}' sheet with {count} rows")
    return workbook


def workbook_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_filename(prefix: str, day: Optional[date] = None) -> str:
    return f"{prefix}_{(day or date.today()).isoformat()}.xlsx"


def export_customers(customers: Iterable[Customer]) -> bytes:
    return workbook_bytes(build_workbook("Customers", CUSTOMER_COLUMNS, customers))


def export_bills(invoices: Iterable[Invoice]) -> bytes:
    return workbook_bytes(build_workbook("Bills", BILL_COLUMNS, invoices))


def save_export(content: bytes, prefix: str, directory: str = ".", day: Optional[date] = None) -> Path:
    path = Path(directory) / export_filename(prefix, day)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    logger.info(f"Wrote export {path}")
    return path
