"""JSON file store for products, invoices and company data."""

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Callable

from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type
)

from ..models.company import Company
from ..models.invoice import Address, Client, Invoice, InvoiceItem, InvoiceStatus
from ..models.product import Product, ProductCategory
from ..utils.config import get_config
from ..utils.exceptions import NotFoundError, StorageError
from ..utils.logger import get_store_logger, get_error_logger

BACKUP_SUFFIX = ".backup"
BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
APP_VERSION = "1.0.0"


@dataclass
class BackupInfo:
    """A backup file on disk."""

    path: Path
    date: datetime
    size: int

    @property
    def formatted_size(self) -> str:
        if self.size >= 1024 * 1024:
            return f"{self.size / (1024 * 1024):.1f} MB"
        return f"{self.size / 1024:.1f} KB"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.path.name,
            "date": self.date.isoformat(),
            "size": self.size,
        }


class DataManager:
    """
    Persists the catalogue and invoices as JSON documents.

    Reads are forgiving: a missing or unreadable file yields sample data
    (when enabled) so the app can always start. Writes go to a temporary
    file that replaces the target, and transient ``OSError`` failures are
    retried before surfacing as ``StorageError``.
    """

    def __init__(self, data_dir: Optional[Path] = None, create_sample_data: Optional[bool] = None):
        self.config = get_config()
        self.logger = get_store_logger()
        self.error_logger = get_error_logger()

        storage = self.config.storage
        self.data_dir = Path(data_dir) if data_dir is not None else self.config.data_dir
        self.create_sample_data = (
            storage.create_sample_data if create_sample_data is None else create_sample_data
        )

        self.invoices_path = self.data_dir / storage.invoices_file
        self.products_path = self.data_dir / storage.products_file
        self.companies_path = self.data_dir / storage.companies_file
        self.backup_dir = self.data_dir / storage.backup_dir

    # ------------------------------------------------------------------
    # Low-level IO
    # ------------------------------------------------------------------

    def _read_json(self, path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write_json(self, path: Path, payload: Any) -> None:
        storage = self.config.storage

        @retry(
            stop=stop_after_attempt(storage.write_retries),
            wait=wait_fixed(storage.retry_delay),
            retry=retry_if_exception_type(OSError),
            reraise=True
        )
        def _write():
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2, sort_keys=True, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

        try:
            _write()
        except OSError as e:
            self.error_logger.error(f"Failed writing {path}: {str(e)}")
            raise StorageError(f"Could not write {path.name}", details={"error": str(e)})

    def _load_list(self, path: Path, factory: Callable[[Dict[str, Any]], Any],
                   fallback: Callable[[], List[Any]], label: str) -> List[Any]:
        if not path.exists():
            self.logger.info(f"No {label} file at {path}, using defaults")
            return fallback()

        try:
            records = [factory(item) for item in self._read_json(path)]
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.logger.error(f"Error loading {label}: {str(e)}")
            self.error_logger.error(f"Corrupt {label} file {path}: {str(e)}")
            return fallback()

        self.logger.info(f"Loaded {len(records)} {label}")
        return records

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def load_invoices(self) -> List[Invoice]:
        """Load all invoices."""
        return self._load_list(self.invoices_path, Invoice.from_dict, self._sample_invoices, "invoices")

    def save_invoices(self, invoices: List[Invoice]) -> None:
        """Replace the stored invoice list."""
        self._write_json(self.invoices_path, [invoice.to_dict() for invoice in invoices])
        self.logger.info(f"Saved {len(invoices)} invoices")

    def _sample_invoices(self) -> List[Invoice]:
        if not self.create_sample_data:
            return []

        client = Client(
            name="Exempel AB",
            contact_person="Anna Andersson",
            email="info@exempel.se",
            phone="08-123 45 67",
            address=Address(street="Testgatan 1", postal_code="123 45", city="Stockholm"),
            organization_number="556123-4567",
            vat_number="SE556123456701",
        )
        return [
            Invoice(
                number=f"{datetime.now().year}-001",
                client=client,
                items=[InvoiceItem(description="Konsulttjänst", quantity=10, unit="timme", unit_price=1000)],
                status=InvoiceStatus.SENT,
                notes="Tack för ert förtroende.",
            )
        ]

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def load_products(self) -> List[Product]:
        """Load all products, active and inactive."""
        return self._load_list(self.products_path, Product.from_dict, self._sample_products, "products")

    def save_products(self, products: List[Product]) -> None:
        """Replace the stored product list."""
        self._write_json(self.products_path, [product.to_dict() for product in products])
        self.logger.info(f"Saved {len(products)} products")

    def _sample_products(self) -> List[Product]:
        if not self.create_sample_data:
            return []

        return [
            Product(
                name="Konsulttjänst",
                description="Rådgivning och konsultation",
                price=1000,
                unit="timme",
                category=ProductCategory.SERVICE,
            ),
            Product(
                name="Projektledning",
                description="Planering och koordinering",
                price=1200,
                unit="timme",
                category=ProductCategory.SERVICE,
            ),
        ]

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def load_companies(self) -> List[Company]:
        """
        All companies, primary first.

        When no company carries the primary flag the first stored one is
        treated as primary.
        """
        companies = self._load_list(self.companies_path, Company.from_dict, list, "companies")
        if companies and not any(company.is_primary for company in companies):
            companies[0].is_primary = True
        return sorted(companies, key=lambda company: not company.is_primary)

    def save_companies(self, companies: List[Company]) -> None:
        """Replace the stored company list."""
        self._write_json(self.companies_path, [company.to_dict() for company in companies])
        self.logger.info(f"Saved {len(companies)} companies")

    def load_company(self) -> Company:
        """The primary company, or an empty one before setup."""
        companies = self.load_companies()
        return companies[0] if companies else Company()

    def primary_company_id(self) -> Optional[str]:
        companies = self.load_companies()
        return companies[0].id if companies else None

    def save_company(self, company: Company) -> None:
        """Insert or replace one company. The first company stored becomes primary."""
        companies = self.load_companies()
        if company.is_primary:
            for existing in companies:
                existing.is_primary = existing.id == company.id
        for index, existing in enumerate(companies):
            if existing.id == company.id:
                companies[index] = company
                break
        else:
            if not companies:
                company.is_primary = True
            companies.append(company)
        self.save_companies(companies)

    def delete_company(self, company_id: str) -> None:
        """Remove a company; if it was primary the next one takes over."""
        companies = self.load_companies()
        remaining = [company for company in companies if company.id != company_id]
        if len(remaining) == len(companies):
            raise NotFoundError(f"Company not found: {company_id}", details={"id": company_id})

        if remaining and not any(company.is_primary for company in remaining):
            remaining[0].is_primary = True
        self.save_companies(remaining)
        self.logger.info(f"Deleted company {company_id}")

    def set_primary_company(self, company_id: str) -> Company:
        companies = self.load_companies()
        if not any(company.id == company_id for company in companies):
            raise NotFoundError(f"Company not found: {company_id}", details={"id": company_id})

        for company in companies:
            company.is_primary = company.id == company_id
        self.save_companies(sorted(companies, key=lambda company: not company.is_primary))
        self.logger.info(f"Primary company is now {company_id}")
        return next(company for company in companies if company.is_primary)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def create_backup(self) -> Path:
        """Write every collection into a single timestamped backup file."""
        timestamp = datetime.now()
        backup_path = self.backup_dir / f"JessicaInvoice_{timestamp.strftime(BACKUP_TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"

        payload = {
            "timestamp": timestamp.isoformat(),
            "app_version": APP_VERSION,
            "companies": [company.to_dict() for company in self.load_companies()],
            "invoices": [invoice.to_dict() for invoice in self.load_invoices()],
            "products": [product.to_dict() for product in self.load_products()],
        }
        self._write_json(backup_path, payload)

        self.logger.info(f"Created backup: {backup_path.name}")
        return backup_path

    def restore_backup(self, path: Path) -> None:
        """Replace the current data with the contents of a backup file."""
        path = Path(path)
        if not path.exists():
            raise NotFoundError(f"Backup not found: {path.name}", details={"path": str(path)})

        try:
            payload = self._read_json(path)
            if "companies" in payload:
                companies = [Company.from_dict(item) for item in payload["companies"]]
            else:
                # single-company backups
                companies = [Company.from_dict(payload["company"])] if payload.get("company") else []
            invoices = [Invoice.from_dict(item) for item in payload.get("invoices", [])]
            products = [Product.from_dict(item) for item in payload.get("products", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StorageError(f"Invalid backup file: {path.name}", details={"error": str(e)})

        self.logger.info(f"Restoring from backup created: {payload.get('timestamp')}")
        self.save_companies(companies)
        self.save_invoices(invoices)
        self.save_products(products)
        self.logger.info("Backup restored successfully")

    def available_backups(self) -> List[BackupInfo]:
        """Backups on disk, newest first."""
        if not self.backup_dir.exists():
            return []

        backups = []
        for path in self.backup_dir.glob(f"*{BACKUP_SUFFIX}"):
            stat = path.stat()
            backups.append(BackupInfo(
                path=path,
                date=datetime.fromtimestamp(stat.st_mtime),
                size=stat.st_size,
            ))
        return sorted(backups, key=lambda info: info.date, reverse=True)

    def delete_backup(self, info: BackupInfo) -> None:
        try:
            info.path.unlink()
        except FileNotFoundError:
            raise NotFoundError(f"Backup not found: {info.path.name}")
        self.logger.info(f"Deleted backup: {info.path.name}")

    def clear_all_data(self) -> None:
        """Remove the invoice, product and company files."""
        for path in (self.invoices_path, self.products_path, self.companies_path):
            if path.exists():
                path.unlink()
        self.logger.info("Cleared all data")
