"""Company (invoice issuer) data model."""

import re
import uuid
from dataclasses import dataclass, field
from typing import List, Dict, Any

from .invoice import Address

ORG_NUMBER_PATTERN = re.compile(r"^\d{6}-\d{4}$|^\d{10}$")


@dataclass
class Company:
    """The business issuing invoices."""

    name: str = ""
    organization_number: str = ""
    vat_number: str = ""
    address: Address = field(default_factory=Address)
    email: str = ""
    phone: str = ""
    default_payment_terms: int = 30
    default_currency: str = "SEK"
    default_vat_rate: float = 25.0
    is_primary: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def has_completed_setup(self) -> bool:
        return bool(
            self.name
            and self.organization_number
            and self.address.street
            and self.email
        )

    def validate(self) -> List[str]:
        """Return human-readable validation messages; empty when valid."""
        errors = []
        if not self.name:
            errors.append("Företagsnamn är obligatoriskt")

        if not self.organization_number:
            errors.append("Organisationsnummer är obligatoriskt")
        elif not ORG_NUMBER_PATTERN.match(self.organization_number):
            errors.append("Ogiltigt organisationsnummer")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "organization_number": self.organization_number,
            "vat_number": self.vat_number,
            "address": self.address.to_dict(),
            "email": self.email,
            "phone": self.phone,
            "default_payment_terms": self.default_payment_terms,
            "default_currency": self.default_currency,
            "default_vat_rate": self.default_vat_rate,
            "is_primary": self.is_primary,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Company":
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]

        return cls(
            name=data.get("name", ""),
            organization_number=data.get("organization_number", ""),
            vat_number=data.get("vat_number", ""),
            address=Address.from_dict(data.get("address")),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            default_payment_terms=data.get("default_payment_terms", 30),
            default_currency=data.get("default_currency", "SEK"),
            default_vat_rate=data.get("default_vat_rate", 25.0),
            is_primary=data.get("is_primary", False),
            **kwargs
        )
