"""
Models package for the HVAC billing package.
"""

# Domain models
from .domain import (
    Customer,
    Technician,
    ServiceOrder,
    LineItem,
    Invoice,
    LineItemDraft,
    InvoiceDraft,
    PaymentStatus,
    ServiceStatus,
    CustomerType,
    QuantityUnit,
    LineFigures,
    BillTotals,
)

# Report models
from .reports import (
    StatusBreakdown,
    DashboardStats,
    MonthlyRevenue,
    RecentServices,
    MigrationSummary,
)

__version__ = "0.1.0"

__all__ = [
    # Domain
    "Customer",
    "Technician",
    "ServiceOrder",
    "LineItem",
    "Invoice",
    "LineItemDraft",
    "InvoiceDraft",
    "PaymentStatus",
    "ServiceStatus",
    "CustomerType",
    "QuantityUnit",
    "LineFigures",
    "BillTotals",
    # Reports
    "StatusBreakdown",
    "DashboardStats",
    "MonthlyRevenue",
    "RecentServices",
    "MigrationSummary",
]
