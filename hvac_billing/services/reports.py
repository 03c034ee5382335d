"""
Dashboard Report Service

Re-derives dashboard and report figures from the record stores. Purely
read-side: nothing computed here is stored.
"""

import logging
from collections import Counter
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, Optional

from hvac_billing.models.domain import PaymentStatus, ServiceStatus
from hvac_billing.models.reports import (
    DashboardStats,
    MonthlyRevenue,
    RecentServices,
    StatusBreakdown,
)
from hvac_billing.services.stores import (
    customer_store,
    invoice_store,
    service_store,
    utc_now,
)
from hvac_billing.utils.money import ZERO, round_half_up, round_money
from hvac_billing.utils.storage import KeyValueStorage, get_storage

logger = logging.getLogger(__name__)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
COMPLETION_ORDER = [
    ServiceStatus.COMPLETED,
    ServiceStatus.IN_PROGRESS,
    ServiceStatus.SCHEDULED,
    ServiceStatus.CANCELLED,
]
RECENT_LIMIT = 5


def _previous_month(year: int, month: int):
    return (year - 1, 12) if month == 1 else (year, month - 1)


class ReportService:
    """Aggregates over customers, service orders and invoices"""
    
    def __init__(self, storage: Optional[KeyValueStorage] = None,
                 clock: Callable[[], datetime] = utc_now):
        storage = storage if storage is not None else get_storage()
        self.customers = customer_store(storage)
        self.services = service_store(storage)
        self.invoices = invoice_store(storage)
        self.clock = clock
    
    def service_completion(self) -> StatusBreakdown:
        counts = Counter(service.status for service in self.services.list())
        return StatusBreakdown(
            labels=[status.value for status in COMPLETION_ORDER],
            counts=[counts.get(status, 0) for status in COMPLETION_ORDER],
        )
    
    def dashboard_stats(self) -> DashboardStats:
        services = self.services.list()
        today = self.clock().date()
        prev_year, prev_month = _previous_month(today.year, today.month)
        
        total_revenue = sum((s.value for s in services), ZERO)
        current = sum(
            (s.value for s in services
             if s.service_date and (s.service_date.year, s.service_date.month) == (today.year, today.month)),
            ZERO,
        )
        previous = sum(
            (s.value for s in services
             if s.service_date and (s.service_date.year, s.service_date.month) == (prev_year, prev_month)),
            ZERO,
        )
        growth = float((current - previous) / previous * 100) if previous > 0 else 0.0
        
        completed = sum(1 for s in services if s.status == ServiceStatus.COMPLETED)
        pending = sum(1 for s in services if s.status in (ServiceStatus.SCHEDULED, ServiceStatus.IN_PROGRESS))
        total = len(services)
        
        stats = DashboardStats(
            total_revenue=round_money(total_revenue),
            monthly_revenue=round_money(current),
            monthly_growth=round(growth, 1),
            total_services=total,
            pending_services=pending,
            active_customers=len({s.customer for s in services}),
            completion_rate=round_half_up(Decimal(completed * 100) / total) if total else 0,
            average_service_value=round_half_up(total_revenue / total) if total else 0,
        )
        logger.debug(f"Dashboard stats: {stats}")
        return stats
    
    def recent_services(self, limit: int = RECENT_LIMIT) -> RecentServices:
        """Latest service orders by date; undated orders sort last"""
        services = sorted(
            self.services.list(),
            key=lambda s: (s.service_date is not None, s.service_date or date.min),
            reverse=True,
        )[:limit]
        return RecentServices(services=services, count=len(services))
    
    def monthly_revenue(self, year: Optional[int] = None) -> MonthlyRevenue:
        """Invoice grand totals bucketed by issue month"""
        year = year or self.clock().year
        totals = [ZERO] * 12
        for invoice in self.invoices.list():
            if invoice.issue_date.year == year:
                totals[invoice.issue_date.month - 1] += invoice.grand_total
        return MonthlyRevenue(year=year, labels=list(MONTHS), totals=[round_money(t) for t in totals])
    
    def total_invoiced(self) -> Decimal:
        return round_money(sum((invoice.grand_total for invoice in self.invoices.list()), ZERO))
    
    def totals_by_payment_status(self) -> Dict[str, Decimal]:
        totals = {status.value: ZERO for status in PaymentStatus}
        for invoice in self.invoices.list():
            totals[invoice.status.value] += invoice.grand_total
        return {status: round_money(total) for status, total in totals.items()}
    
    def service_type_counts(self) -> Dict[str, int]:
        return dict(Counter(service.service for service in self.services.list()))
    
    def customer_type_counts(self) -> Dict[str, int]:
        return dict(Counter(customer.type.value for customer in self.customers.list()))
