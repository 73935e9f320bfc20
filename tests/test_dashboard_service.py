"""Tests for dashboard metrics aggregation."""

from datetime import datetime
from decimal import Decimal

import pytest

from jessica_invoice.models.company import Company
from jessica_invoice.models.dashboard import ActivityType, InsightType, TimeFrame
from jessica_invoice.models.invoice import InvoiceStatus
from jessica_invoice.services.dashboard_service import (
    DashboardService,
    build_dashboard,
    build_insights,
    percentage_change,
    scope_to_company,
)
from jessica_invoice.utils.exceptions import StorageError


class TestPercentageChange:
    """Tests for percentage_change."""

    def test_increase(self):
        assert percentage_change(Decimal("1250"), Decimal("625")) == 100.0

    def test_decrease(self):
        assert percentage_change(0, 2500) == -100.0

    def test_previous_zero_is_none(self):
        assert percentage_change(Decimal("100"), Decimal("0")) is None
        assert percentage_change(0, 0) is None


class TestBuildDashboard:
    """Tests for build_dashboard."""

    def test_month_metrics(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, TimeFrame.MONTH, now=now)

        assert data.total_revenue == Decimal("1250")
        assert data.active_invoices == 3
        assert data.outstanding_amount == Decimal("2500")
        assert data.overdue_amount == Decimal("1250")

    def test_month_changes(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, TimeFrame.MONTH, now=now)

        assert data.revenue_change == 100.0
        assert data.invoice_change == 200.0
        assert data.outstanding_change == 100.0
        assert data.overdue_change is None

    def test_outstanding_and_overdue_are_disjoint(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, TimeFrame.YEAR, now=now)

        unpaid = sum(
            (invoice.total for invoice in sample_invoices
             if invoice.status in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)),
            Decimal("0"),
        )
        assert data.outstanding_amount + data.overdue_amount == unpaid

    def test_month_chart_has_a_point_per_day(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, TimeFrame.MONTH, now=now)

        assert len(data.chart_data) == 30
        assert data.chart_data[0].date == datetime(2025, 9, 1)
        assert data.chart_data[1].value == Decimal("1250")
        assert sum((point.value for point in data.chart_data), Decimal("0")) == data.total_revenue

    def test_week_metrics(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, TimeFrame.WEEK, now=now)

        assert data.total_revenue == Decimal("0")
        assert data.active_invoices == 0
        assert data.revenue_change is None
        assert data.outstanding_change == -100.0
        assert data.invoice_change == -100.0
        assert len(data.chart_data) == 7

    def test_year_chart_is_monthly(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, TimeFrame.YEAR, now=now)

        assert len(data.chart_data) == 12
        assert data.chart_data[7].value == Decimal("625")
        assert data.chart_data[8].value == Decimal("1250")
        assert data.revenue_change is None

    def test_empty_store(self, now):
        data = build_dashboard([], [], TimeFrame.QUARTER, now=now)

        assert data.total_revenue == Decimal("0")
        assert data.active_invoices == 0
        assert data.revenue_change is None
        assert data.invoice_change is None
        assert len(data.chart_data) == 14
        assert data.recent_activities == []
        assert data.insights == []

    def test_recent_activities(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, now=now, activity_limit=3)

        assert [activity.id for activity in data.recent_activities] == [
            "inv-2025-005", "inv-2025-002", "inv-2025-004"
        ]
        assert data.recent_activities[0].type is ActivityType.INVOICE_CREATED
        assert data.recent_activities[0].title == "Faktura FAK-2025-005"
        assert data.recent_activities[2].type is ActivityType.INVOICE_OVERDUE

    def test_generated_at_is_now(self, sample_invoices, sample_products, now):
        data = build_dashboard(sample_invoices, sample_products, now=now)

        assert data.generated_at == now
        assert data.timeframe is TimeFrame.MONTH


class TestInsights:
    """Tests for build_insights."""

    def test_overdue_and_top_product(self, sample_invoices, sample_products, now):
        insights = build_insights(sample_invoices, sample_products, now)

        assert [insight.type for insight in insights] == [InsightType.WARNING, InsightType.INFO]
        assert insights[0].description == "Du har 2 förfallna fakturor som behöver följas upp"
        assert insights[1].description.startswith("Consulting")

    def test_payment_trend(self, invoice_factory, now):
        invoices = [
            invoice_factory("2025-001", datetime(2025, 9, 2), InvoiceStatus.PAID, 100, description="Other"),
            invoice_factory("2025-002", datetime(2025, 9, 3), InvoiceStatus.PAID, 100, description="Other"),
            invoice_factory("2025-003", datetime(2025, 8, 3), InvoiceStatus.PAID, 100, description="Other"),
        ]

        insights = build_insights(invoices, [], now)

        assert [insight.type for insight in insights] == [InsightType.SUCCESS]
        assert insights[0].title == "Bra betalningstrend"


class TestScopeToCompany:
    """Tests for scope_to_company."""

    def test_unscoped_keeps_everything(self, sample_invoices):
        assert scope_to_company(sample_invoices, None) == sample_invoices

    def test_records_without_company_belong_to_primary(self, sample_invoices):
        sample_invoices[0].company_id = "c-second"

        primary = scope_to_company(sample_invoices, "c-main", primary_company_id="c-main")
        second = scope_to_company(sample_invoices, "c-second", primary_company_id="c-main")

        assert len(primary) == 6
        assert [invoice.id for invoice in second] == ["inv-2025-001"]


class TestDashboardService:
    """Tests for DashboardService."""

    @pytest.fixture
    def stored(self, data_manager, sample_invoices, sample_products):
        data_manager.save_invoices(sample_invoices)
        data_manager.save_products(sample_products)
        return data_manager

    def test_initial_data_is_empty(self, stored):
        service = DashboardService(stored)

        assert service.timeframe is TimeFrame.MONTH
        assert service.dashboard_data.total_revenue == Decimal("0")
        assert service.last_update is None

    def test_refresh(self, stored, now):
        service = DashboardService(stored)

        data = service.refresh(now=now)

        assert data.total_revenue == Decimal("1250")
        assert service.dashboard_data is data
        assert service.last_update == now
        assert service.error_message is None

    def test_update_timeframe(self, stored, now):
        service = DashboardService(stored)

        data = service.update_timeframe(TimeFrame.WEEK, now=now)

        assert service.timeframe is TimeFrame.WEEK
        assert len(data.chart_data) == 7

    def test_company_scope(self, stored, now):
        service = DashboardService(stored, company_id="c-other", primary_company_id="c-main")

        data = service.refresh(now=now)

        assert data.total_revenue == Decimal("0")
        assert data.insights == []

    def test_unscoped_records_count_for_the_stored_primary_company(self, stored, now):
        company = Company(name="Jessica AB", organization_number="556000-0001")
        stored.save_company(company)
        other = Company(name="Sidoprojekt AB", organization_number="556000-0002")
        stored.save_company(other)

        primary = DashboardService(stored, company_id=company.id).refresh(now=now)
        secondary = DashboardService(stored, company_id=other.id).refresh(now=now)

        assert primary.total_revenue == Decimal("1250")
        assert secondary.total_revenue == Decimal("0")

    def test_failed_load_keeps_previous_data(self, stored, now, monkeypatch):
        service = DashboardService(stored)
        previous = service.refresh(now=now)

        def broken():
            raise StorageError("disk gone")

        monkeypatch.setattr(stored, "load_invoices", broken)

        assert service.refresh(now=now, manual=True) is previous
        assert service.error_message == "disk gone"
