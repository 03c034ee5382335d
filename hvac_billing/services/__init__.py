"""
Services package for the HVAC billing package.
"""

from .words import number_to_words, amount_in_words
from .tax import compute_line, build_line_item, aggregate
from .renderer import Document, InvoiceRenderer, render
from .stores import (
    RecordStore,
    InvoiceStore,
    ServiceOrderStore,
    customer_store,
    technician_store,
    service_store,
    invoice_store,
)
from .invoices import (
    InvoiceService,
    get_invoice_service,
    reset_invoice_service,
)
from .migration import migrate_legacy_bills
from .reports import ReportService

__version__ = "0.1.0"

__all__ = [
    "number_to_words",
    "amount_in_words",
    "compute_line",
    "build_line_item",
    "aggregate",
    "Document",
    "InvoiceRenderer",
    "render",
    "RecordStore",
    "InvoiceStore",
    "ServiceOrderStore",
    "customer_store",
    "technician_store",
    "service_store",
    "invoice_store",
    "InvoiceService",
    "get_invoice_service",
    "reset_invoice_service",
    "migrate_legacy_bills",
    "ReportService",
]
