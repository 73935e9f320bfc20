"""Dashboard metrics aggregation."""

import time
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, TypeVar

from .invoice_service import sum_totals
from ..models.dashboard import (
    ActivityType,
    ChartDataPoint,
    DashboardActivity,
    DashboardData,
    DashboardInsight,
    InsightType,
    Period,
    TimeFrame,
)
from ..models.invoice import Invoice, InvoiceStatus
from ..models.product import Product
from ..storage.data_manager import DataManager
from ..utils.config import get_config
from ..utils.dates import add_months, is_same_month
from ..utils.exceptions import StorageError
from ..utils.logger import get_dashboard_logger, get_error_logger

T = TypeVar("T", Invoice, Product)

ACTIVITY_BY_STATUS = {
    InvoiceStatus.DRAFT: ActivityType.INVOICE_CREATED,
    InvoiceStatus.SENT: ActivityType.INVOICE_SENT,
    InvoiceStatus.PAID: ActivityType.INVOICE_PAID,
    InvoiceStatus.OVERDUE: ActivityType.INVOICE_OVERDUE,
    InvoiceStatus.CANCELLED: ActivityType.INVOICE_CANCELLED,
}


def percentage_change(current, previous) -> Optional[float]:
    """
    Period-over-period change in percent.

    Returns None when ``previous`` is zero: there is nothing to compare
    against, which is different from a 0% change.
    """
    if not previous:
        return None
    return float((Decimal(str(current)) - Decimal(str(previous))) / Decimal(str(previous)) * 100)


def in_period(invoices: Iterable[Invoice], period: Period) -> List[Invoice]:
    return [invoice for invoice in invoices if period.contains(invoice.date)]


def paid_invoices(invoices: Iterable[Invoice]) -> List[Invoice]:
    return [invoice for invoice in invoices if invoice.status == InvoiceStatus.PAID]


def outstanding_invoices(invoices: Iterable[Invoice], now: datetime) -> List[Invoice]:
    """Sent invoices that are still within their payment terms."""
    return [
        invoice for invoice in invoices
        if invoice.status == InvoiceStatus.SENT and not invoice.is_overdue(now)
    ]


def overdue_invoices(invoices: Iterable[Invoice], now: datetime) -> List[Invoice]:
    return [invoice for invoice in invoices if invoice.is_overdue(now)]


def scope_to_company(records: Iterable[T], company_id: Optional[str],
                     primary_company_id: Optional[str] = None) -> List[T]:
    """
    Keep records belonging to ``company_id``.

    Records without a company id belong to the primary company. A None
    ``company_id`` disables scoping.
    """
    if company_id is None:
        return list(records)
    return [
        record for record in records
        if (record.company_id == company_id)
        or (record.company_id is None and company_id == primary_company_id)
    ]


def build_chart_data(invoices: Sequence[Invoice], timeframe: TimeFrame, period: Period) -> List[ChartDataPoint]:
    """Paid revenue per bucket, one point per bucket including empty ones."""
    starts = timeframe.bucket_starts(period)
    ends = starts[1:] + [period.end]

    points = []
    for start, end in zip(starts, ends):
        bucket = Period(start, end)
        value = sum_totals(paid_invoices(in_period(invoices, bucket)))
        points.append(ChartDataPoint(date=start, value=value))
    return points


def build_recent_activities(invoices: Iterable[Invoice], limit: int = 10) -> List[DashboardActivity]:
    recent = sorted(invoices, key=lambda invoice: invoice.date, reverse=True)[:limit]
    return [
        DashboardActivity(
            id=invoice.id,
            type=ACTIVITY_BY_STATUS[invoice.status],
            title=f"Faktura {invoice.formatted_number}",
            subtitle=invoice.client.name,
            timestamp=invoice.date,
        )
        for invoice in recent
    ]


def top_selling_products(invoices: Iterable[Invoice], products: Sequence[Product], now: datetime) -> List[Product]:
    """Products ordered by how many of this month's invoice lines name them."""
    counts = Counter(
        item.description
        for invoice in invoices
        if is_same_month(invoice.date, now)
        for item in invoice.items
    )
    by_name = {}
    for product in products:
        by_name.setdefault(product.name, product)

    return [by_name[name] for name, _ in counts.most_common() if name in by_name]


def build_insights(invoices: Sequence[Invoice], products: Sequence[Product], now: datetime) -> List[DashboardInsight]:
    insights = []

    overdue = overdue_invoices(invoices, now)
    if overdue:
        insights.append(DashboardInsight(
            type=InsightType.WARNING,
            title="Förfallna fakturor",
            description=f"Du har {len(overdue)} förfallna fakturor som behöver följas upp",
            has_action=True,
        ))

    last_month = add_months(now, -1)
    paid = paid_invoices(invoices)
    paid_this_month = sum(1 for invoice in paid if is_same_month(invoice.date, now))
    paid_last_month = sum(1 for invoice in paid if is_same_month(invoice.date, last_month))
    if paid_this_month > paid_last_month:
        insights.append(DashboardInsight(
            type=InsightType.SUCCESS,
            title="Bra betalningstrend",
            description="Fler fakturor har betalats denna månad jämfört med förra månaden",
        ))

    top_products = top_selling_products(invoices, products, now)
    if top_products:
        insights.append(DashboardInsight(
            type=InsightType.INFO,
            title="Populäraste produkten",
            description=f"{top_products[0].name} är din mest sålda produkt denna månad",
            has_action=True,
        ))

    return insights


def build_dashboard(
    invoices: Sequence[Invoice],
    products: Sequence[Product],
    timeframe: TimeFrame = TimeFrame.MONTH,
    now: Optional[datetime] = None,
    activity_limit: int = 10
) -> DashboardData:
    """
    Compute the dashboard for the window of ``timeframe`` containing ``now``.

    Revenue counts paid invoices. Outstanding counts sent invoices within
    terms and overdue counts the rest of the unpaid ones, so the two
    amounts never share an invoice. Active invoices is the size of their
    union. Each metric is compared with the preceding window of the same
    calendar length.
    """
    now = now or datetime.now()
    timeframe = TimeFrame(timeframe)

    current_period = timeframe.date_range(now)
    previous_period = timeframe.previous_range(now)
    current = in_period(invoices, current_period)
    previous = in_period(invoices, previous_period)

    def metrics(selection):
        outstanding = outstanding_invoices(selection, now)
        overdue = overdue_invoices(selection, now)
        return (
            sum_totals(paid_invoices(selection)),
            len(outstanding) + len(overdue),
            sum_totals(outstanding),
            sum_totals(overdue),
        )

    revenue, active, outstanding_amount, overdue_amount = metrics(current)
    prev_revenue, prev_active, prev_outstanding, prev_overdue = metrics(previous)

    return DashboardData(
        timeframe=timeframe,
        total_revenue=revenue,
        active_invoices=active,
        outstanding_amount=outstanding_amount,
        overdue_amount=overdue_amount,
        revenue_change=percentage_change(revenue, prev_revenue),
        invoice_change=percentage_change(active, prev_active),
        outstanding_change=percentage_change(outstanding_amount, prev_outstanding),
        overdue_change=percentage_change(overdue_amount, prev_overdue),
        chart_data=build_chart_data(current, timeframe, current_period),
        recent_activities=build_recent_activities(invoices, activity_limit),
        insights=build_insights(invoices, products, now),
        generated_at=now,
    )


class DashboardService:
    """
    Holds the latest dashboard for one company and time window.

    Each refresh takes a fresh snapshot from the store and replaces the
    cached data. A failed load keeps the previous data. Unless
    ``primary_company_id`` is given, the primary company is read from the
    store on every refresh.
    """

    def __init__(
        self,
        data_manager: Optional[DataManager] = None,
        timeframe: Optional[TimeFrame] = None,
        company_id: Optional[str] = None,
        primary_company_id: Optional[str] = None
    ):
        self.config = get_config()
        self.logger = get_dashboard_logger()
        self.error_logger = get_error_logger()
        self.data_manager = data_manager or DataManager()

        self.timeframe = TimeFrame(timeframe or self.config.dashboard.default_timeframe)
        self.company_id = company_id
        self.primary_company_id = primary_company_id

        self.dashboard_data = DashboardData(timeframe=self.timeframe)
        self.error_message: Optional[str] = None
        self.last_update: Optional[datetime] = None

    def refresh(self, now: Optional[datetime] = None, manual: bool = False) -> DashboardData:
        """Reload invoices and products and recompute the dashboard."""
        delay = self.config.dashboard.refresh_delay_seconds
        if manual and delay > 0:
            time.sleep(delay)

        self.error_message = None
        try:
            invoices = self.data_manager.load_invoices()
            products = self.data_manager.load_products()
            primary_company_id = self.primary_company_id or self.data_manager.primary_company_id()
        except StorageError as e:
            self.error_message = e.message
            self.error_logger.error(f"Dashboard refresh failed: {e.message}")
            return self.dashboard_data

        invoices = scope_to_company(invoices, self.company_id, primary_company_id)
        products = scope_to_company(products, self.company_id, primary_company_id)

        self.dashboard_data = build_dashboard(
            invoices,
            products,
            self.timeframe,
            now=now,
            activity_limit=self.config.dashboard.recent_activity_limit,
        )
        self.last_update = self.dashboard_data.generated_at

        self.logger.info(
            f"Dashboard refreshed ({self.timeframe.value}): "
            f"{len(invoices)} invoices, revenue {self.dashboard_data.total_revenue:.2f}"
        )
        return self.dashboard_data

    def update_timeframe(self, timeframe: TimeFrame, now: Optional[datetime] = None) -> DashboardData:
        self.timeframe = TimeFrame(timeframe)
        return self.refresh(now=now)
