"""Company management: several issuing companies, one of them primary."""

from typing import List, Optional

from ..models.company import Company
from ..storage.data_manager import DataManager
from ..utils.config import get_config
from ..utils.exceptions import LastCompanyError, NotFoundError, ValidationError
from ..utils.logger import get_store_logger


class CompanyService:
    """
    Companies the user invoices from.

    The primary company owns every record stored without a company id.
    ``active_company`` is the one currently selected for dashboards and
    new invoices; it defaults to the primary company.
    """

    def __init__(self, data_manager: Optional[DataManager] = None, autoload: bool = True):
        self.config = get_config()
        self.logger = get_store_logger()
        self.data_manager = data_manager or DataManager()

        self.companies: List[Company] = []
        self.active_company: Optional[Company] = None

        if autoload:
            self.load_companies()

    def load_companies(self) -> List[Company]:
        self.companies = self.data_manager.load_companies()

        active_id = self.active_company.id if self.active_company else None
        self.active_company = next(
            (company for company in self.companies if company.id == active_id),
            self.companies[0] if self.companies else None
        )
        return self.companies

    @property
    def primary_company(self) -> Optional[Company]:
        return next((company for company in self.companies if company.is_primary), None)

    @property
    def additional_companies(self) -> List[Company]:
        return [company for company in self.companies if not company.is_primary]

    @property
    def has_multiple_companies(self) -> bool:
        return len(self.companies) > 1

    def get_company(self, company_id: str) -> Company:
        for company in self.companies:
            if company.id == company_id:
                return company
        raise NotFoundError(f"Company not found: {company_id}", details={"id": company_id})

    def validate_company(self, company: Company) -> List[str]:
        errors = company.validate()
        duplicate = company.organization_number and any(
            existing.organization_number == company.organization_number and existing.id != company.id
            for existing in self.companies
        )
        if duplicate:
            errors.append("Organisationsnummer används redan av ett annat företag")
        return errors

    def save_company(self, company: Company) -> Company:
        """
        Insert or replace a company after validation.

        Raises:
            ValidationError: If the company has validation messages
            StorageError: If the company list cannot be written
        """
        errors = self.validate_company(company)
        if errors:
            raise ValidationError(errors, details={"id": company.id})

        self.data_manager.save_company(company)
        self.logger.info(f"Saved company {company.name}")
        self.load_companies()
        return self.get_company(company.id)

    def create_new_company(self, name: str, organization_number: str) -> Company:
        """Create and store a company using the configured invoice defaults."""
        company = Company(
            name=name,
            organization_number=organization_number,
            default_currency=self.config.env.default_currency,
            default_vat_rate=self.config.env.default_vat_rate,
        )
        return self.save_company(company)

    def delete_company(self, company_id: str):
        """
        Remove a company. The last remaining company cannot be deleted.

        Raises:
            NotFoundError: If no company has this id
            LastCompanyError: If it is the only company
        """
        self.get_company(company_id)
        if not self.has_multiple_companies:
            raise LastCompanyError(details={"id": company_id})

        self.data_manager.delete_company(company_id)
        self.load_companies()

    def switch_to_company(self, company_id: str) -> Company:
        self.active_company = self.get_company(company_id)
        self.logger.info(f"Active company: {self.active_company.name}")
        return self.active_company

    def set_primary_company(self, company_id: str) -> Company:
        """Make ``company_id`` primary and select it."""
        self.get_company(company_id)
        self.data_manager.set_primary_company(company_id)
        self.load_companies()
        return self.switch_to_company(company_id)
