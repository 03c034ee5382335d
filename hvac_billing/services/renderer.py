"""
Invoice Renderer

Lays an Invoice out on the fixed A4 template and paints it with
reportlab's canvas. Layout works top-down in millimetres like the paper
template; conversion to PDF points happens only in the drawing
primitives.

Template, top to bottom:
    logo band and centred bill-type title
    TO: party block (left) and invoice number/date (right)
    line-item table, header row repeated after every page break
    GRAND TOTAL row
    notes (optional), amount in words, declaration and bank details
    signature captions and footer image
"""

import io
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from hvac_billing.models.domain import Invoice, LineItem
from hvac_billing.services.words import amount_in_words_or_overflow
from hvac_billing.utils.config import Settings, settings as default_settings
from hvac_billing.utils.money import format_amount

logger = logging.getLogger(__name__)

# ─── PAGE GEOMETRY (mm, measured from the top-left corner) ───
PAGE_W, PAGE_H = A4
PAGE_WIDTH_MM = 210
LEFT = 20
RIGHT_COLUMN = 150
PARTY_TOP = 60
TEXT_LINE = 5

# ─── TABLE ───
@dataclass(frozen=True)
class Column:
    title: str
    x: float
    width: float


COLUMNS = (
    Column("SL NO", 20, 13),
    Column("ITEM DESCRIPTION", 33, 47),
    Column("HSN", 80, 15),
    Column("QTY", 95, 15),
    Column("RATE", 110, 15),
    Column("GST", 125, 15),
    Column("CGST", 140, 17.5),
    Column("SGST", 157.5, 17.5),
    Column("TOTAL AMT", 175, 20),
)
CELL_PADDING = 4
HEADER_HEIGHT = 10
HEADER_GAP = 2
MIN_ROW_HEIGHT = 10
LINE_HEIGHT = 4
PAGE_BREAK_Y = 270
CONTINUATION_TOP = 20
TOTAL_ROW_HEIGHT = 8
TOTAL_LABEL_WIDTH = 135
TOTAL_VALUE_WIDTH = 40
TABLE_TOP = CONTINUATION_TOP + HEADER_HEIGHT + HEADER_GAP
MAX_ROW_LINES = int((PAGE_BREAK_Y - TABLE_TOP - CELL_PADDING) // LINE_HEIGHT)

# ─── TRAILER ───
NOTES_WIDTH = 170
DECLARATION_WIDTH = 90
SIGNATURE_Y = 253
FOOTER_Y = 268
LOGO_BOX = (20, 0, 170, 40)
FOOTER_BOX = (20, FOOTER_Y, 170, 30)

# ─── TYPE ───
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
TITLE_SIZE = 16
BODY_SIZE = 10
TABLE_SIZE = 9
SMALL_SIZE = 9


@dataclass
class TableRow:
    """Where one table row landed: kind is 'header', 'item' or 'total'."""
    page: int
    kind: str
    y: float
    height: float
    lines: int = 1


@dataclass
class Document:
    """A rendered invoice ready for download."""
    filename: str
    content: bytes
    page_count: int
    rows: List[TableRow] = field(default_factory=list)
    
    def save(self, directory: str = ".") -> Path:
        path = Path(directory) / self.filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.content)
        logger.info(f"Wrote {path} ({len(self.content)} bytes, {self.page_count} pages)")
        return path
    
    def rows_on(self, page: int, kind: Optional[str] = None) -> List[TableRow]:
        return [r for r in self.rows if r.page == page and (kind is None or r.kind == kind)]


def document_filename(invoice_number: str) -> str:
    """Invoice-<number>.pdf, with path separators replaced"""
    safe = re.sub(r"[\\/:]+", "-", invoice_number.strip()) or "draft"
    return f"Invoice-{safe}.pdf"


def plain_number(value: Decimal) -> str:
    """Decimal without exponent or trailing zeros: 2.50 -> 2.5, 10 -> 10"""
    text = format(Decimal(value), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def row_height_for(lines: int) -> float:
    return max(MIN_ROW_HEIGHT, lines * LINE_HEIGHT + CELL_PADDING)


def lines_that_fit(space: float) -> int:
    """Most wrapped lines a row can hold within space mm"""
    if space < MIN_ROW_HEIGHT:
        return 0
    return int((space - CELL_PADDING) // LINE_HEIGHT)


def wrap_text(text: str, width_mm: float, font: str = FONT, size: float = TABLE_SIZE) -> List[str]:
    """Split text into lines no wider than width_mm; embedded newlines are kept"""
    if not text:
        return [""]
    return simpleSplit(str(text), font, size, width_mm * mm) or [""]


def cell_values(item: LineItem) -> List[str]:
    """Printed text of each table column for one line item"""
    return [
        item.sno,
        item.description,
        item.hsn,
        f"{plain_number(item.quantity)}{item.unit.label}",
        format_amount(item.price),
        f"{plain_number(item.gst_rate)}%" if item.gst_rate else "-",
        format_amount(item.cgst) if item.cgst else "-",
        format_amount(item.sgst) if item.sgst else "-",
        format_amount(item.total),
    ]


class InvoiceRenderer:
    """Paints invoices on the fixed template. One instance can render many."""
    
    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.c: Optional[canvas.Canvas] = None
        self.page = 0
        self.rows: List[TableRow] = []
    
    # ─── DRAWING PRIMITIVES ───
    
    def _pt_y(self, y_mm: float) -> float:
        return PAGE_H - y_mm * mm
    
    def draw_text(self, text: str, x: float, y: float, font: str = FONT, size: float = BODY_SIZE,
                  align: str = "left"):
        self.c.setFont(font, size)
        if align == "center":
            self.c.drawCentredString(x * mm, self._pt_y(y), text)
        else:
            self.c.drawString(x * mm, self._pt_y(y), text)
    
    def draw_box(self, x: float, y: float, w: float, h: float):
        self.c.rect(x * mm, self._pt_y(y + h), w * mm, h * mm, stroke=1, fill=0)
    
    def draw_image(self, path: Optional[str], box):
        if not path:
            return
        if not Path(path).is_file():
            logger.warning(f"Template image {path} not found, skipping")
            return
        x, y, w, h = box
        self.c.drawImage(ImageReader(path), x * mm, self._pt_y(y + h), w * mm, h * mm, mask="auto")
    
    def draw_centered_lines(self, lines: Sequence[str], x: float, y: float, w: float, h: float,
                            bold: bool = False, size: float = TABLE_SIZE):
        """Centre a block of lines horizontally and vertically inside a cell"""
        font = FONT_BOLD if bold else FONT
        self.c.setFont(font, size)
        start = y + (h - len(lines) * LINE_HEIGHT) / 2 + 3
        for index, line in enumerate(lines):
            width_mm = stringWidth(line, font, size) / mm
            self.c.drawString((x + (w - width_mm) / 2) * mm, self._pt_y(start + index * LINE_HEIGHT), line)
    
    def draw_cell(self, text: str, x: float, y: float, w: float, h: float, bold: bool = False):
        font = FONT_BOLD if bold else FONT
        self.draw_box(x, y, w, h)
        self.draw_centered_lines(wrap_text(text, w - CELL_PADDING, font), x, y, w, h, bold)
    
    def new_page(self):
        self.c.showPage()
        self.page += 1
    
    # ─── LAYOUT BLOCKS ───
    
    def draw_header_band(self, invoice: Invoice):
        self.draw_image(self.config.LOGO_PATH, LOGO_BOX)
        self.draw_text(invoice.bill_type, PAGE_WIDTH_MM / 2, 45, size=TITLE_SIZE, align="center")
    
    def draw_party_block(self, invoice: Invoice) -> float:
        """Customer on the left, number and date on the right. Returns the next y"""
        y = PARTY_TOP
        self.draw_text("TO:", LEFT, y, FONT_BOLD)
        
        lines = [invoice.customer_name]
        lines.extend(line.strip() for line in invoice.address.split("\n") if line.strip())
        if invoice.city or invoice.state or invoice.zip_code:
            lines.append(f"{invoice.city}, {invoice.state} - {invoice.zip_code}")
        for line in lines:
            y += TEXT_LINE
            self.draw_text(line, LEFT, y)
        
        self.draw_text("INVOICE NO:", RIGHT_COLUMN, PARTY_TOP, FONT_BOLD)
        self.draw_text(invoice.invoice_number, 173, PARTY_TOP)
        self.draw_text("DATE:", RIGHT_COLUMN, PARTY_TOP + TEXT_LINE, FONT_BOLD)
        self.draw_text(invoice.issue_date.isoformat(), 165, PARTY_TOP + TEXT_LINE)
        
        return y + TEXT_LINE
    
    def draw_table_header(self, y: float) -> float:
        for col in COLUMNS:
            self.draw_cell(col.title, col.x, y, col.width, HEADER_HEIGHT, bold=True)
        self.rows.append(TableRow(self.page, "header", y, HEADER_HEIGHT))
        return y + HEADER_HEIGHT + HEADER_GAP
    
    def wrap_cells(self, item: LineItem) -> List[List[str]]:
        """Wrapped lines of every column; the tallest one sets the row height"""
        return [
            wrap_text(value, col.width - CELL_PADDING)
            for col, value in zip(COLUMNS, cell_values(item))
        ]
    
    def draw_item_row(self, item: LineItem, y: float) -> float:
        """
        Draw one line item; returns the next y.
        
        A row that fits on a fresh page but not on this one moves to the
        next page. A row taller than a whole page is split into chunks,
        one TableRow each, with the header repeated on every new page.
        """
        cells = self.wrap_cells(item)
        total_lines = max(len(lines) for lines in cells)
        
        if total_lines <= MAX_ROW_LINES and y + row_height_for(total_lines) > PAGE_BREAK_Y:
            self.new_page()
            y = self.draw_table_header(CONTINUATION_TOP)
        
        start = 0
        while True:
            room = lines_that_fit(PAGE_BREAK_Y - y)
            if room == 0:
                self.new_page()
                y = self.draw_table_header(CONTINUATION_TOP)
                continue
            count = min(total_lines - start, room)
            height = row_height_for(count)
            for col, lines in zip(COLUMNS, cells):
                self.draw_box(col.x, y, col.width, height)
                self.draw_centered_lines(lines[start:start + count], col.x, y, col.width, height)
            self.rows.append(TableRow(self.page, "item", y, height, count))
            y += height
            start += count
            if start >= total_lines:
                return y
            self.new_page()
            y = self.draw_table_header(CONTINUATION_TOP)
    
    def draw_total_row(self, invoice: Invoice, y: float) -> float:
        if y + TOTAL_ROW_HEIGHT > PAGE_BREAK_Y:
            self.new_page()
            y = self.draw_table_header(CONTINUATION_TOP)
        self.draw_cell("GRAND TOTAL", LEFT, y, TOTAL_LABEL_WIDTH, TOTAL_ROW_HEIGHT, bold=True)
        self.draw_cell(format_amount(invoice.grand_total), LEFT + TOTAL_LABEL_WIDTH, y,
                       TOTAL_VALUE_WIDTH, TOTAL_ROW_HEIGHT, bold=True)
        self.rows.append(TableRow(self.page, "total", y, TOTAL_ROW_HEIGHT))
        return y + TOTAL_ROW_HEIGHT
    
    def trailer_height(self, notes: List[str], declaration: List[str]) -> float:
        height = 15.0
        if notes:
            height += 2 * TEXT_LINE + len(notes) * LINE_HEIGHT
        height += 20 + TEXT_LINE + max(len(declaration) * LINE_HEIGHT, 3 * TEXT_LINE)
        return height
    
    def draw_trailer(self, invoice: Invoice, y: float):
        notes = wrap_text(invoice.notes, NOTES_WIDTH, size=BODY_SIZE) if invoice.notes.strip() else []
        declaration = wrap_text(self.config.DECLARATION, DECLARATION_WIDTH, size=SMALL_SIZE)
        
        # Keep the trailer above the signature line
        if y + self.trailer_height(notes, declaration) > SIGNATURE_Y - TEXT_LINE:
            self.new_page()
            y = CONTINUATION_TOP
        else:
            y += 15
        
        if notes:
            self.draw_text("Notes:", LEFT, y, FONT_BOLD)
            y += TEXT_LINE
            for line in notes:
                self.draw_text(line, LEFT, y)
                y += LINE_HEIGHT
            y += TEXT_LINE
        
        self.draw_text("Amount in Words:", LEFT, y, FONT_BOLD)
        self.draw_text(amount_in_words_or_overflow(invoice.grand_total, self.config.WORDS_SUFFIX),
                       LEFT, y + TEXT_LINE)
        y += 20
        
        self.draw_text("Declaration:", LEFT, y, FONT_BOLD, SMALL_SIZE)
        y += TEXT_LINE
        for index, line in enumerate(declaration):
            self.draw_text(line, LEFT, y + index * LINE_HEIGHT, size=SMALL_SIZE)
        
        bank_y = y - TEXT_LINE
        bank = [
            ("Bank name:", self.config.BANK_NAME),
            ("Ac/no:", self.config.BANK_ACCOUNT),
            ("IFSC code:", self.config.BANK_IFSC),
            ("G PAY:", self.config.GPAY_NUMBER),
        ]
        for index, (label, value) in enumerate(bank):
            self.draw_text(label, RIGHT_COLUMN, bank_y + index * TEXT_LINE, FONT_BOLD, SMALL_SIZE)
            self.draw_text(value, 170, bank_y + index * TEXT_LINE, size=SMALL_SIZE)
    
    def draw_signatures(self):
        self.draw_text("Customer Signature:", LEFT, SIGNATURE_Y, size=SMALL_SIZE)
        self.draw_text("Computer generated invoice requires no signature:", 75, SIGNATURE_Y, size=SMALL_SIZE)
        self.draw_text(f"For {self.config.COMPANY_NAME}:", RIGHT_COLUMN, SIGNATURE_Y, size=SMALL_SIZE)
        self.draw_image(self.config.FOOTER_PATH, FOOTER_BOX)
    
    # ─── ENTRY POINT ───
    
    def render(self, invoice: Invoice) -> Document:
        """Lay out and paint one invoice"""
        buffer = io.BytesIO()
        self.c = canvas.Canvas(buffer, pagesize=A4)
        self.c.setTitle(f"{invoice.bill_type} {invoice.invoice_number}".strip())
        self.c.setAuthor(self.config.COMPANY_NAME)
        self.page = 1
        self.rows = []
        
        self.draw_header_band(invoice)
        y = self.draw_party_block(invoice)
        y = self.draw_table_header(y)
        for item in invoice.items:
            y = self.draw_item_row(item, y)
        y = self.draw_total_row(invoice, y)
        self.draw_trailer(invoice, y)
        self.draw_signatures()
        
        self.c.save()
        document = Document(
            filename=document_filename(invoice.invoice_number),
            content=buffer.getvalue(),
            page_count=self.page,
            rows=self.rows,
        )
        logger.info(f"Rendered {document.filename}: {len(invoice.items)} lines, {self.page} pages")
        self.c = None
        return document


def render(invoice: Invoice, config: Optional[Settings] = None) -> Document:
    """Render an invoice with a fresh renderer"""
    return InvoiceRenderer(config).render(invoice)
