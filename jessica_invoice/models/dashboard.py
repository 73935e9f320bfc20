"""Dashboard aggregate data models."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Dict, Any

from ..utils.dates import (
    add_months,
    add_years,
    start_of_month,
    start_of_quarter,
    start_of_week,
    start_of_year,
)


@dataclass(frozen=True)
class Period:
    """Half-open time window ``[start, end)``."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class TimeFrame(str, Enum):
    """Dashboard reporting window."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @property
    def display_name(self) -> str:
        return {
            TimeFrame.WEEK: "Vecka",
            TimeFrame.MONTH: "Månad",
            TimeFrame.QUARTER: "Kvartal",
            TimeFrame.YEAR: "År",
        }[self]

    @property
    def bucket_unit(self) -> str:
        """Granularity of chart points for this window."""
        return {
            TimeFrame.WEEK: "day",
            TimeFrame.MONTH: "day",
            TimeFrame.QUARTER: "week",
            TimeFrame.YEAR: "month",
        }[self]

    def shift(self, moment: datetime, count: int = 1) -> datetime:
        """Move ``moment`` by ``count`` whole windows."""
        if self is TimeFrame.WEEK:
            return moment + timedelta(weeks=count)
        if self is TimeFrame.MONTH:
            return add_months(moment, count)
        if self is TimeFrame.QUARTER:
            return add_months(moment, 3 * count)
        return add_years(moment, count)

    def date_range(self, now: Optional[datetime] = None) -> Period:
        """The calendar window containing ``now``."""
        now = now or datetime.now()
        start = {
            TimeFrame.WEEK: start_of_week,
            TimeFrame.MONTH: start_of_month,
            TimeFrame.QUARTER: start_of_quarter,
            TimeFrame.YEAR: start_of_year,
        }[self](now)
        return Period(start, self.shift(start, 1))

    def previous_range(self, now: Optional[datetime] = None) -> Period:
        """The window of the same calendar length immediately before."""
        current = self.date_range(now)
        return Period(self.shift(current.start, -1), current.start)

    def bucket_starts(self, period: Period) -> List[datetime]:
        """Start of every chart bucket in ``period``."""
        starts = []
        cursor = period.start
        while cursor < period.end:
            starts.append(cursor)
            cursor = _step(cursor, self.bucket_unit)
        return starts


def _step(moment: datetime, unit: str) -> datetime:
    if unit == "day":
        return moment + timedelta(days=1)
    if unit == "week":
        return moment + timedelta(weeks=1)
    return add_months(moment, 1)


class ActivityType(str, Enum):
    INVOICE_CREATED = "invoice_created"
    INVOICE_SENT = "invoice_sent"
    INVOICE_PAID = "invoice_paid"
    INVOICE_OVERDUE = "invoice_overdue"
    INVOICE_CANCELLED = "invoice_cancelled"


class InsightType(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    ERROR = "error"


@dataclass
class ChartDataPoint:
    """Revenue for one chart bucket."""

    date: datetime
    value: Decimal = Decimal("0")

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "value": str(self.value)}


@dataclass
class DashboardActivity:
    """Entry in the recent activity feed."""

    id: str
    type: ActivityType
    title: str
    subtitle: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "subtitle": self.subtitle,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DashboardInsight:
    """Short advisory shown under the metrics."""

    type: InsightType
    title: str
    description: str
    has_action: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "has_action": self.has_action,
        }


@dataclass
class DashboardData:
    """
    Summary statistics for one time window.

    The ``*_change`` fields hold the period-over-period percentage, or
    ``None`` when the previous period had nothing to compare against.
    """

    timeframe: TimeFrame = TimeFrame.MONTH
    total_revenue: Decimal = Decimal("0")
    active_invoices: int = 0
    outstanding_amount: Decimal = Decimal("0")
    overdue_amount: Decimal = Decimal("0")
    revenue_change: Optional[float] = None
    invoice_change: Optional[float] = None
    outstanding_change: Optional[float] = None
    overdue_change: Optional[float] = None
    chart_data: List[ChartDataPoint] = field(default_factory=list)
    recent_activities: List[DashboardActivity] = field(default_factory=list)
    insights: List[DashboardInsight] = field(default_factory=list)
    generated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "timeframe": self.timeframe.value,
            "total_revenue": str(self.total_revenue),
            "active_invoices": self.active_invoices,
            "outstanding_amount": str(self.outstanding_amount),
            "overdue_amount": str(self.overdue_amount),
            "revenue_change": _round(self.revenue_change),
            "invoice_change": _round(self.invoice_change),
            "outstanding_change": _round(self.outstanding_change),
            "overdue_change": _round(self.overdue_change),
            "chart_data": [point.to_dict() for point in self.chart_data],
            "recent_activities": [activity.to_dict() for activity in self.recent_activities],
            "insights": [insight.to_dict() for insight in self.insights],
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }

    def get_summary(self) -> str:
        """Get a human-readable summary."""
        lines = [
            f"Dashboard ({self.timeframe.display_name})",
            f"Total revenue:     {self.total_revenue:.2f} ({_format_change(self.revenue_change)})",
            f"Active invoices:   {self.active_invoices} ({_format_change(self.invoice_change)})",
            f"Outstanding:       {self.outstanding_amount:.2f} ({_format_change(self.outstanding_change)})",
            f"Overdue:           {self.overdue_amount:.2f} ({_format_change(self.overdue_change)})",
        ]

        if self.insights:
            lines.append(f"\nInsights ({len(self.insights)}):")
            for insight in self.insights:
                lines.append(f"  - {insight.title}: {insight.description}")

        return "\n".join(lines)


def _round(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None


def _format_change(value: Optional[float]) -> str:
    if value is None:
        return "no change data"
    return f"{value:+.1f}%"
