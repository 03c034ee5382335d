"""
Domain Models - Pydantic models for billing and service records.

These models represent the business entities of the HVAC service desk
(customers, technicians, service orders, invoices) and are used for
validation and serialization when records are written to and read from
their storage slots.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Enums
# ============================================================================

class PaymentStatus(str, Enum):
    """Payment status values for invoices."""
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


class ServiceStatus(str, Enum):
    """Status values for service orders."""
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class CustomerType(str, Enum):
    """Kinds of customer premises."""
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    MULTI_UNIT = "Multi-unit"


class QuantityUnit(str, Enum):
    """Unit tag printed after a line item's quantity."""
    UNIT = "unit"
    METER = "meter"
    UNSPECIFIED = ""
    
    @property
    def label(self) -> str:
        return {"unit": " (unit)", "meter": " (mtr)", "": ""}[self.value]


# ============================================================================
# Domain Models
# ============================================================================

class Customer(BaseModel):
    """Customer record from the saved_customers slot."""
    
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    address: str = ""
    type: CustomerType = CustomerType.RESIDENTIAL
    created_at: datetime


class Technician(BaseModel):
    """Technician record from the saved_technicians slot."""
    
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    created_at: datetime


class ServiceOrder(BaseModel):
    """
    Service visit from the saved_services slot.
    
    customer and technician hold the names copied at booking time;
    customer_id and technician_id are optional references to the
    records those names came from. Renaming a customer or technician
    does not rewrite existing service orders.
    """
    
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    customer: str = Field(..., min_length=1)
    customer_id: Optional[str] = None
    phone: str = ""
    address: str = ""
    service: str = Field(..., min_length=1)
    service_date: Optional[date] = None
    technician: str = ""
    technician_id: Optional[str] = None
    status: ServiceStatus = ServiceStatus.SCHEDULED
    notes: str = ""
    value: Decimal = Field(default=Decimal("0"), ge=0)
    created_at: datetime


class LineItem(BaseModel):
    """
    Computed invoice line.
    
    subtotal, cgst, sgst and total are derived by the tax calculator and
    already rounded to 2 decimal places.
    """
    
    model_config = ConfigDict(from_attributes=True)
    
    sno: str = ""
    description: str
    hsn: str = ""
    quantity: Decimal = Field(ge=0)
    unit: QuantityUnit = QuantityUnit.UNSPECIFIED
    price: Decimal = Field(ge=0)
    gst_rate: Decimal = Field(ge=0)
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    total: Decimal


class Invoice(BaseModel):
    """Invoice record from the saved_bills slot."""
    
    model_config = ConfigDict(from_attributes=True)
    
    id: str
    bill_type: str
    customer_name: str
    customer_id: Optional[str] = None
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    invoice_number: str
    issue_date: date
    items: List[LineItem] = Field(default_factory=list)
    notes: str = ""
    subtotal: Decimal = Decimal("0.00")
    tax_total: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime


# ============================================================================
# Form Input (before computation)
# ============================================================================

class LineItemDraft(BaseModel):
    """A line as typed into the bill form. Numbers stay raw until parsed."""
    
    sno: str = ""
    description: str = ""
    hsn: Optional[str] = None
    quantity: Any = None
    unit: QuantityUnit = QuantityUnit.UNSPECIFIED
    price: Any = None
    gst_rate: Any = None


class InvoiceDraft(BaseModel):
    """Bill form contents submitted for saving."""
    
    bill_type: str = ""
    customer_name: str = ""
    customer_id: Optional[str] = None
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    invoice_number: Optional[str] = Field(
        default=None,
        description="User-supplied number; generated when empty"
    )
    issue_date: Optional[date] = None
    items: List[LineItemDraft] = Field(default_factory=list)
    notes: str = ""


# ============================================================================
# Computed Figures
# ============================================================================

class LineFigures(BaseModel):
    """Per-line tax computation result, each value rounded to 2 places."""
    
    subtotal: Decimal
    gst_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    total: Decimal


class BillTotals(BaseModel):
    """Whole-invoice sums over computed lines."""
    
    subtotal: Decimal
    tax: Decimal
    total: Decimal
