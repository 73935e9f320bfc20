"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from jessica_invoice.models.invoice import Address, Client, Invoice, InvoiceItem, InvoiceStatus
from jessica_invoice.models.product import Product, ProductCategory
from jessica_invoice.storage.data_manager import DataManager

# Wednesday; month window is September 2025, previous is August 2025
NOW = datetime(2025, 9, 17, 12, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def data_manager(tmp_path):
    """Store rooted in a temporary directory, without sample data."""
    return DataManager(data_dir=tmp_path / "data", create_sample_data=False)


@pytest.fixture
def sample_products():
    """A small catalogue in a fixed order."""
    return [
        Product(
            name="Consulting",
            description="Hourly advisory work",
            price=1000,
            unit="timme",
            category=ProductCategory.SERVICE,
            id="p-consulting",
        ),
        Product(
            name="Widget",
            description="Boxed hardware",
            price=250,
            category=ProductCategory.PRODUCT,
            is_active=False,
            id="p-widget",
        ),
        Product(
            name="Logo design",
            description="Brand identity and consulting session",
            price="4500.50",
            unit="projekt",
            category=ProductCategory.DESIGN,
            id="p-logo",
        ),
        Product(
            name="Server upkeep",
            description="Monthly maintenance",
            price=800,
            unit="månad",
            category=ProductCategory.MAINTENANCE,
            id="p-upkeep",
        ),
    ]


@pytest.fixture
def sample_client():
    return Client(
        name="Exempel AB",
        contact_person="Anna Andersson",
        email="info@exempel.se",
        address=Address(street="Testgatan 1", postal_code="123 45", city="Stockholm"),
    )


def make_invoice(number, date, status, amount, client=None, description="Consulting", payment_terms=30):
    """Invoice with one line whose pre-VAT amount is ``amount`` (total is amount * 1.25)."""
    return Invoice(
        number=number,
        date=date,
        client=client or Client(name=f"Client {number}"),
        items=[InvoiceItem(description=description, quantity=1, unit_price=amount)],
        status=status,
        payment_terms=payment_terms,
        id=f"inv-{number}",
    )


@pytest.fixture
def invoice_factory():
    return make_invoice


@pytest.fixture
def sample_invoices():
    """
    Invoices around NOW (2025-09-17).

    September: paid 1000, sent-in-terms 2000, sent-past-due 400,
    overdue 600, draft 300. August: paid 500, sent-in-terms 1000.
    """
    return [
        make_invoice("2025-001", datetime(2025, 9, 2), InvoiceStatus.PAID, 1000),
        make_invoice("2025-002", datetime(2025, 9, 10), InvoiceStatus.SENT, 2000),
        make_invoice("2025-003", datetime(2025, 9, 1), InvoiceStatus.SENT, 400, payment_terms=10),
        make_invoice("2025-004", datetime(2025, 9, 5), InvoiceStatus.OVERDUE, 600, description="Logo design"),
        make_invoice("2025-005", datetime(2025, 9, 15), InvoiceStatus.DRAFT, 300),
        make_invoice("2025-006", datetime(2025, 8, 20), InvoiceStatus.PAID, 500),
        make_invoice("2025-007", datetime(2025, 8, 25), InvoiceStatus.SENT, 1000),
    ]
