"""
Report Models - Pydantic models for dashboard and maintenance results.

These are read-side payloads derived from the record stores; nothing in
them is ever written back.
"""

from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, Field

from .domain import ServiceOrder


class StatusBreakdown(BaseModel):
    """Count of records per status, in a fixed label order."""
    
    labels: List[str] = Field(..., description="Status labels in display order")
    counts: List[int] = Field(..., description="Count per label")
    
    def as_dict(self) -> Dict[str, int]:
        return dict(zip(self.labels, self.counts))


class DashboardStats(BaseModel):
    """Headline figures for the dashboard."""
    
    total_revenue: Decimal = Field(..., description="Sum of all service order values")
    monthly_revenue: Decimal = Field(..., description="Service value in the current month")
    monthly_growth: float = Field(..., description="Month-over-month growth in percent, 1 decimal")
    total_services: int = Field(..., ge=0)
    pending_services: int = Field(..., ge=0, description="Scheduled or In Progress")
    active_customers: int = Field(..., ge=0, description="Distinct customers on service orders")
    completion_rate: int = Field(..., ge=0, le=100, description="Completed services in percent")
    average_service_value: int = Field(..., ge=0)


class MonthlyRevenue(BaseModel):
    """Invoice revenue per calendar month of one year."""
    
    year: int
    labels: List[str] = Field(..., description="Month abbreviations Jan..Dec")
    totals: List[Decimal] = Field(..., description="Grand totals per month")


class RecentServices(BaseModel):
    """Latest service orders by service date."""
    
    services: List[ServiceOrder] = Field(default_factory=list)
    count: int = 0


class MigrationSummary(BaseModel):
    """Outcome of converting legacy bill rows."""
    
    migrated: int = Field(0, description="Rows converted to invoices")
    skipped: int = Field(0, description="Rows that failed validation")
    duplicates_dropped: int = Field(0, description="Rows whose id was already present")
    secondary_slot_dropped: bool = Field(False, description="Whether saved_bills02 was removed")
