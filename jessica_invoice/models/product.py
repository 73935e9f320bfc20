"""Product catalogue data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Dict, Any


class ProductCategory(str, Enum):
    """Catalogue category tag."""

    SERVICE = "service"
    PRODUCT = "product"
    DESIGN = "design"
    CONSULTATION = "consultation"
    DEVELOPMENT = "development"
    MAINTENANCE = "maintenance"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES[self]

    @classmethod
    def from_display_name(cls, name: str) -> Optional["ProductCategory"]:
        for category, display in _CATEGORY_NAMES.items():
            if display == name:
                return category
        return None


_CATEGORY_NAMES = {
    ProductCategory.SERVICE: "Tjänst",
    ProductCategory.PRODUCT: "Produkt",
    ProductCategory.DESIGN: "Design",
    ProductCategory.CONSULTATION: "Konsultation",
    ProductCategory.DEVELOPMENT: "Utveckling",
    ProductCategory.MAINTENANCE: "Underhåll",
}


class ProductUnit(str, Enum):
    """Units a product can be sold in."""

    PIECE = "st"
    HOUR = "timme"
    DAY = "dag"
    WEEK = "vecka"
    MONTH = "månad"
    YEAR = "år"
    PROJECT = "projekt"
    METER = "m"
    SQUARE_METER = "m²"
    KILOGRAM = "kg"

    @property
    def short_name(self) -> str:
        return _UNIT_SHORT_NAMES.get(self, self.value)


_UNIT_SHORT_NAMES = {
    ProductUnit.HOUR: "h",
    ProductUnit.WEEK: "v",
    ProductUnit.MONTH: "mån",
    ProductUnit.PROJECT: "proj",
}


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """Convert numbers and numeric strings to a finite ``Decimal``."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first so floats like 0.1 keep their printed value
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValueError(f"{field_name} must be a number, got {value!r}")

    if not result.is_finite():
        raise ValueError(f"{field_name} must be a finite number, got {value!r}")
    return result


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings; offset-aware values become naive local time."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


@dataclass
class Product:
    """Represents a reusable catalogue entry."""

    name: str
    price: Decimal = Decimal("0")
    description: str = ""
    unit: str = ProductUnit.PIECE.value
    category: ProductCategory = ProductCategory.SERVICE
    vat_rate: Decimal = Decimal("25")
    is_active: bool = True
    created_date: Optional[datetime] = None
    last_used: Optional[datetime] = None
    company_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        """Validate and normalize data."""
        self.price = to_decimal(self.price, "Price")
        self.vat_rate = to_decimal(self.vat_rate, "VAT rate")
        self.category = ProductCategory(self.category)

        if self.price < 0:
            raise ValueError("Price cannot be negative")

        if self.created_date is None:
            self.created_date = datetime.now()

    @property
    def formatted_price(self) -> str:
        return f"{self.price:.0f} kr"

    def matches_search(self, query: str) -> bool:
        """Case-insensitive substring match on name and description."""
        needle = query.casefold()
        return needle in self.name.casefold() or needle in self.description.casefold()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "unit": self.unit,
            "category": self.category.value,
            "vat_rate": str(self.vat_rate),
            "is_active": self.is_active,
            "created_date": self.created_date.isoformat() if self.created_date else None,
            "last_used": self.last_used.isoformat() if self.last_used else None,
            "company_id": self.company_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Create instance from dictionary."""
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]

        return cls(
            name=data["name"],
            description=data.get("description", ""),
            price=data.get("price", 0),
            unit=data.get("unit", ProductUnit.PIECE.value),
            category=data.get("category", ProductCategory.SERVICE.value),
            vat_rate=data.get("vat_rate", 25),
            is_active=data.get("is_active", True),
            created_date=_parse_datetime(data.get("created_date")),
            last_used=_parse_datetime(data.get("last_used")),
            company_id=data.get("company_id"),
            **kwargs
        )
