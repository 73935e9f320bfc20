"""Invoice, line item and client data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Dict, Any

from .product import Product, to_decimal, _parse_datetime

HUNDRED = Decimal("100")


class InvoiceStatus(str, Enum):
    """Lifecycle status of an invoice."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

    @property
    def display_name(self) -> str:
        return {
            InvoiceStatus.DRAFT: "Utkast",
            InvoiceStatus.SENT: "Skickad",
            InvoiceStatus.PAID: "Betald",
            InvoiceStatus.OVERDUE: "Förfallen",
            InvoiceStatus.CANCELLED: "Avbruten",
        }[self]


@dataclass
class Address:
    """Postal address."""

    street: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = "Sverige"

    @property
    def formatted(self) -> str:
        return f"{self.street}, {self.postal_code} {self.city}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "street": self.street,
            "postal_code": self.postal_code,
            "city": self.city,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Address":
        data = data or {}
        return cls(
            street=data.get("street", ""),
            postal_code=data.get("postal_code", ""),
            city=data.get("city", ""),
            country=data.get("country", "Sverige"),
        )


@dataclass
class Client:
    """Invoice recipient."""

    name: str = ""
    contact_person: str = ""
    email: str = ""
    phone: str = ""
    address: Address = field(default_factory=Address)
    organization_number: str = ""
    vat_number: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address.to_dict(),
            "organization_number": self.organization_number,
            "vat_number": self.vat_number,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Client":
        data = data or {}
        return cls(
            name=data.get("name", ""),
            contact_person=data.get("contact_person", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            address=Address.from_dict(data.get("address")),
            organization_number=data.get("organization_number", ""),
            vat_number=data.get("vat_number", ""),
        )


@dataclass
class InvoiceItem:
    """A single line on an invoice."""

    description: str = ""
    quantity: Decimal = Decimal("1")
    unit: str = "st"
    unit_price: Decimal = Decimal("0")
    vat_rate: Decimal = Decimal("25")

    def __post_init__(self):
        self.quantity = to_decimal(self.quantity, "Quantity")
        self.unit_price = to_decimal(self.unit_price, "Unit price")
        self.vat_rate = to_decimal(self.vat_rate, "VAT rate")

        if self.quantity < 0:
            raise ValueError("Quantity cannot be negative")

        if self.unit_price < 0:
            raise ValueError("Unit price cannot be negative")

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def vat_amount(self) -> Decimal:
        return self.subtotal * self.vat_rate / HUNDRED

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.vat_amount

    @classmethod
    def from_product(cls, product: Product, quantity: Any = 1) -> "InvoiceItem":
        """Build a draft line from a catalogue product."""
        return cls(
            description=product.name,
            quantity=quantity,
            unit=product.unit,
            unit_price=product.price,
            vat_rate=product.vat_rate,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "unit_price": str(self.unit_price),
            "vat_rate": str(self.vat_rate),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InvoiceItem":
        return cls(
            description=data.get("description", ""),
            quantity=data.get("quantity", 1),
            unit=data.get("unit", "st"),
            unit_price=data.get("unit_price", 0),
            vat_rate=data.get("vat_rate", 25),
        )


@dataclass
class Invoice:
    """A billing document with line items."""

    number: str = ""
    date: Optional[datetime] = None
    client: Client = field(default_factory=Client)
    items: List[InvoiceItem] = field(default_factory=list)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str = ""
    payment_terms: int = 30  # days
    currency: str = "SEK"
    vat_rate: Decimal = Decimal("25")
    due_date: Optional[datetime] = None
    company_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        """Normalize status and amounts, derive the due date."""
        self.status = InvoiceStatus(self.status)
        self.vat_rate = to_decimal(self.vat_rate, "VAT rate")

        if self.payment_terms < 0:
            raise ValueError("Payment terms cannot be negative")

        if self.date is None:
            self.date = datetime.now()

        if self.due_date is None:
            self.due_date = self.date + timedelta(days=self.payment_terms)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))

    @property
    def vat_amount(self) -> Decimal:
        return self.subtotal * self.vat_rate / HUNDRED

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.vat_amount

    @property
    def formatted_number(self) -> str:
        return f"FAK-{self.number}"

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """True when marked overdue, or sent and past its due date."""
        if self.status == InvoiceStatus.OVERDUE:
            return True
        now = now or datetime.now()
        return self.status == InvoiceStatus.SENT and now > self.due_date

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "number": self.number,
            "formatted_number": self.formatted_number,
            "date": self.date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "client": self.client.to_dict(),
            "items": [item.to_dict() for item in self.items],
            "status": self.status.value,
            "notes": self.notes,
            "payment_terms": self.payment_terms,
            "currency": self.currency,
            "vat_rate": str(self.vat_rate),
            "subtotal": str(self.subtotal),
            "total": str(self.total),
            "company_id": self.company_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Invoice":
        """Create instance from dictionary; derived totals are ignored."""
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]

        return cls(
            number=data.get("number", ""),
            date=_parse_datetime(data.get("date")),
            due_date=_parse_datetime(data.get("due_date")),
            client=Client.from_dict(data.get("client")),
            items=[InvoiceItem.from_dict(item) for item in data.get("items", [])],
            status=data.get("status", InvoiceStatus.DRAFT.value),
            notes=data.get("notes", ""),
            payment_terms=data.get("payment_terms", 30),
            currency=data.get("currency", "SEK"),
            vat_rate=data.get("vat_rate", 25),
            company_id=data.get("company_id"),
            **kwargs
        )
