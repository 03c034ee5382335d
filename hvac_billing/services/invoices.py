"""
Invoice Service

Turns a submitted bill form into a stored, numbered invoice and hands
stored invoices to the renderer.
"""

import logging
import re
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from hvac_billing.models.domain import Invoice, InvoiceDraft, PaymentStatus
from hvac_billing.services.renderer import Document, InvoiceRenderer, document_filename
from hvac_billing.services.stores import INVOICES_KEY, InvoiceStore, utc_now
from hvac_billing.services.tax import aggregate, build_line_item
from hvac_billing.utils.config import settings
from hvac_billing.utils.errors import DuplicateInvoiceNumber, StorageUnavailable, ValidationError
from hvac_billing.utils.storage import KeyValueStorage, get_storage

logger = logging.getLogger(__name__)

SEQUENCE_KEY = "invoice_sequence"
REQUIRED_FIELDS = ("bill_type", "customer_name")


class InvoiceService:
    """
    Creates, numbers, updates and renders invoices.
    
    Generated numbers come from a monotonic counter slot that is written
    in the same set_many as the invoice collection. Two processes that
    both read the counter before either writes can still hand out the
    same number; create_invoice and find_duplicate_numbers surface such
    collisions instead of hiding them.
    """
    
    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        renderer: Optional[InvoiceRenderer] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage if storage is not None else get_storage()
        self.store = InvoiceStore(self.storage)
        self.renderer = renderer or InvoiceRenderer()
        self.clock = clock
    
    # ------------------------------------------------------------------
    # Numbering
    # ------------------------------------------------------------------
    
    def format_number(self, year: int, sequence: int) -> str:
        return f"{settings.INVOICE_PREFIX}-{year}-{sequence:0{settings.INVOICE_PADDING}d}"
    
    def _number_pattern(self) -> re.Pattern:
        return re.compile(rf"^{re.escape(settings.INVOICE_PREFIX)}-\d{{4}}-(\d+)$")
    
    def current_sequence(self, invoices: Optional[List[Invoice]] = None) -> int:
        """
        Last sequence handed out.
        
        The counter slot wins, but never trails the highest generated
        number already stored (collections written before the counter
        existed).
        """
        stored = self.storage.get(SEQUENCE_KEY)
        if stored is not None and (isinstance(stored, bool) or not isinstance(stored, int)):
            raise StorageUnavailable(f"Slot '{SEQUENCE_KEY}' is corrupt", key=SEQUENCE_KEY)
        counter = stored or 0
        
        pattern = self._number_pattern()
        for invoice in invoices if invoices is not None else self.store.list():
            match = pattern.match(invoice.invoice_number)
            if match:
                counter = max(counter, int(match.group(1)))
        return counter
    
    # ------------------------------------------------------------------
    # Validation and computation
    # ------------------------------------------------------------------
    
    def validate_draft(self, draft: InvoiceDraft):
        for field in REQUIRED_FIELDS:
            value = getattr(draft, field)
            if not value or not value.strip():
                raise ValidationError(f"{field} is required", field=field)
    
    def compute(self, draft: InvoiceDraft) -> Dict:
        """Validated, computed invoice fields (everything but number, id and timestamp)"""
        self.validate_draft(draft)
        items = []
        for index, line in enumerate(draft.items):
            try:
                items.append(build_line_item(line, sno=str(index + 1)))
            except ValidationError as e:
                field = f"items.{index}.{e.field}" if e.field else f"items.{index}"
                raise ValidationError(f"Line {index + 1}: {e}", field=field) from e
        totals = aggregate(items)
        
        return {
            "bill_type": draft.bill_type.strip(),
            "customer_name": draft.customer_name.strip(),
            "customer_id": draft.customer_id,
            "address": draft.address,
            "city": draft.city.strip(),
            "state": draft.state.strip(),
            "zip_code": draft.zip_code.strip(),
            "issue_date": draft.issue_date or self.clock().date(),
            "items": items,
            "notes": draft.notes,
            "subtotal": totals.subtotal,
            "tax_total": totals.tax,
            "grand_total": totals.total,
            "status": PaymentStatus.PENDING,
        }
    
    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    
    def create_invoice(self, draft: InvoiceDraft) -> Invoice:
        """
        Compute, number and store an invoice.
        
        Raises:
            ValidationError: missing required field or bad line input
            DuplicateInvoiceNumber: a user-supplied number is already used
        """
        fields = self.compute(draft)
        invoices = self.store.list()
        taken = {invoice.invoice_number for invoice in invoices}
        writes = {}
        
        requested = (draft.invoice_number or "").strip()
        if requested:
            if requested in taken:
                raise DuplicateInvoiceNumber(requested)
            number = requested
        else:
            sequence = self.current_sequence(invoices) + 1
            year = self.clock().year
            number = self.format_number(year, sequence)
            while number in taken:
                logger.warning(f"Generated invoice number {number} is already in use, skipping")
                sequence += 1
                number = self.format_number(year, sequence)
            writes[SEQUENCE_KEY] = sequence
        
        invoice = self.store.build({**fields, "invoice_number": number})
        invoices.append(invoice)
        writes[INVOICES_KEY] = self.store.dump(invoices)
        self.storage.set_many(writes)
        
        logger.info(
            f"Created invoice {invoice.invoice_number} for {invoice.customer_name}: "
            f"{len(invoice.items)} lines, total {invoice.grand_total}"
        )
        return invoice
    
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self.store.get_by_id(invoice_id)
    
    def list_invoices(self, status: Optional[PaymentStatus] = None) -> List[Invoice]:
        invoices = self.store.list()
        if status is not None:
            wanted = self.store.coerce_status(status)
            invoices = [invoice for invoice in invoices if invoice.status == wanted]
        return invoices
    
    def update_status(self, invoice_id: str, status) -> bool:
        return self.store.set_status(invoice_id, status)
    
    def delete_invoice(self, invoice_id: str) -> bool:
        """Remove an invoice. The sequence counter is not rewound"""
        return self.store.delete(invoice_id)
    
    def find_duplicate_numbers(self) -> Dict[str, List[str]]:
        """Invoice numbers shared by more than one stored invoice, mapped to their ids"""
        by_number = defaultdict(list)
        for invoice in self.store.list():
            by_number[invoice.invoice_number].append(invoice.id)
        duplicates = {number: ids for number, ids in by_number.items() if len(ids) > 1}
        if duplicates:
            logger.warning(f"Duplicate invoice numbers found: {sorted(duplicates)}")
        return duplicates
    
    def export_filename(self, invoice: Invoice) -> str:
        return document_filename(invoice.invoice_number)
    
    def render_invoice(self, invoice_id: str) -> Optional[Document]:
        invoice = self.get_invoice(invoice_id)
        if invoice is None:
            return None
        return self.renderer.render(invoice)
    
    def save_pdf(self, invoice_id: str, directory: str = ".") -> Optional[Path]:
        document = self.render_invoice(invoice_id)
        if document is None:
            return None
        return document.save(directory)


# Global singleton instance
_invoice_service: Optional[InvoiceService] = None


def get_invoice_service() -> InvoiceService:
    """Get the global invoice service instance"""
    global _invoice_service
    if _invoice_service is None:
        _invoice_service = InvoiceService()
    return _invoice_service


def reset_invoice_service():
    """Reset the global invoice service (useful for testing)."""
    global _invoice_service
    _invoice_service = None
