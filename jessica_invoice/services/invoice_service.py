"""Invoice service: filtering, lifecycle updates and totals."""

import copy
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from ..models.company import Company
from ..models.invoice import Invoice, InvoiceStatus
from ..storage.data_manager import DataManager
from ..utils.config import get_config
from ..utils.exceptions import NotFoundError, StorageError, ValidationError
from ..utils.logger import get_store_logger, get_error_logger

InvoiceRef = Union[Invoice, str]

DEFAULT_PAYMENT_TERMS = 30


def sum_totals(invoices: Iterable[Invoice]) -> Decimal:
    return sum((invoice.total for invoice in invoices), Decimal("0"))


def filter_invoices(
    invoices: Iterable[Invoice],
    *,
    search_text: Optional[str] = None,
    status: Optional[InvoiceStatus] = None
) -> List[Invoice]:
    """
    Filter invoices by client name / number text and status.

    Results are sorted newest first.
    """
    query = (search_text or "").strip().casefold()
    if status is not None:
        status = InvoiceStatus(status)

    matches = [
        invoice for invoice in invoices
        if (status is None or invoice.status == status)
        and (
            not query
            or query in invoice.client.name.casefold()
            or query in invoice.number.casefold()
            or query in invoice.formatted_number.casefold()
        )
    ]
    return sorted(matches, key=lambda invoice: invoice.date, reverse=True)


class InvoiceService:
    """In-memory invoice list backed by the JSON store."""

    def __init__(self, data_manager: Optional[DataManager] = None, autoload: bool = True):
        self.logger = get_store_logger()
        self.error_logger = get_error_logger()
        self.data_manager = data_manager or DataManager()

        self.invoices: List[Invoice] = []
        self.search_text: str = ""
        self.selected_status: Optional[InvoiceStatus] = None
        self.error_message: Optional[str] = None

        if autoload:
            self.load_invoices()

    def load_invoices(self) -> List[Invoice]:
        """Reload from the store; on failure keep the current list."""
        self.error_message = None
        try:
            self.invoices = self.data_manager.load_invoices()
        except StorageError as e:
            self.error_message = e.message
            self.error_logger.error(f"Failed loading invoices: {e.message}")
        return self.invoices

    @property
    def filtered_invoices(self) -> List[Invoice]:
        return filter_invoices(self.invoices, search_text=self.search_text, status=self.selected_status)

    def clear_filters(self):
        self.search_text = ""
        self.selected_status = None

    def _index_of(self, ref: InvoiceRef) -> int:
        invoice_id = ref.id if isinstance(ref, Invoice) else ref
        for index, invoice in enumerate(self.invoices):
            if invoice.id == invoice_id:
                return index
        raise NotFoundError(f"Invoice not found: {invoice_id}", details={"id": invoice_id})

    def get_invoice(self, invoice_id: str) -> Invoice:
        return self.invoices[self._index_of(invoice_id)]

    @contextmanager
    def _rollback_on_failure(self):
        """Restore the in-memory invoices if the store write fails."""
        snapshot = copy.deepcopy(self.invoices)
        try:
            yield
        except StorageError:
            self.invoices = snapshot
            raise

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_new_invoice(self, company_id: Optional[str] = None, now: Optional[datetime] = None) -> Invoice:
        """
        Unsaved draft with the next invoice number.

        Payment terms, currency and VAT rate come from the issuing company
        (``company_id``, else the primary company). Before any company is
        set up the configured currency and VAT rate are used.
        """
        now = now or datetime.now()
        company = self._issuing_company(company_id)
        if company is not None:
            payment_terms = company.default_payment_terms
            currency = company.default_currency
            vat_rate = company.default_vat_rate
        else:
            settings = get_config().env
            payment_terms = DEFAULT_PAYMENT_TERMS
            currency = settings.default_currency
            vat_rate = settings.default_vat_rate

        return Invoice(
            number=self.generate_invoice_number(now),
            date=now,
            company_id=company_id,
            payment_terms=payment_terms,
            currency=currency,
            vat_rate=vat_rate,
        )

    def _issuing_company(self, company_id: Optional[str]) -> Optional[Company]:
        companies = self.data_manager.load_companies()
        for company in companies:
            if company.id == company_id:
                return company
        return companies[0] if companies else None

    def save_invoice(self, invoice: Invoice, validate: bool = True) -> Invoice:
        """
        Insert or replace an invoice.

        Raises:
            ValidationError: If ``validate`` is set and the invoice has errors
        """
        if validate:
            errors = self.validate_invoice(invoice)
            if errors:
                raise ValidationError(errors, details={"id": invoice.id})

        with self._rollback_on_failure():
            try:
                self.invoices[self._index_of(invoice)] = invoice
            except NotFoundError:
                self.invoices.append(invoice)
            self.data_manager.save_invoices(self.invoices)

        self.logger.info(f"Saved invoice {invoice.formatted_number}")
        return invoice

    def delete_invoice(self, ref: InvoiceRef):
        index = self._index_of(ref)
        with self._rollback_on_failure():
            invoice = self.invoices.pop(index)
            self.data_manager.save_invoices(self.invoices)
        self.logger.info(f"Deleted invoice {invoice.formatted_number}")

    def duplicate_invoice(self, ref: InvoiceRef, now: Optional[datetime] = None) -> Invoice:
        """Unsaved draft copy dated today with a fresh number."""
        now = now or datetime.now()
        duplicated = copy.deepcopy(self.invoices[self._index_of(ref)])
        duplicated.id = str(uuid.uuid4())
        duplicated.number = self.generate_invoice_number(now)
        duplicated.date = now
        duplicated.due_date = now + timedelta(days=duplicated.payment_terms)
        duplicated.status = InvoiceStatus.DRAFT
        return duplicated

    def update_invoice_status(self, ref: InvoiceRef, status: InvoiceStatus) -> Invoice:
        invoice = self.invoices[self._index_of(ref)]
        previous = invoice.status
        with self._rollback_on_failure():
            invoice.status = InvoiceStatus(status)
            self.data_manager.save_invoices(self.invoices)
        self.logger.info(
            f"Invoice {invoice.formatted_number}: {previous.value} -> {invoice.status.value}"
        )
        return invoice

    def refresh_overdue(self, now: Optional[datetime] = None) -> List[Invoice]:
        """Move sent invoices past their due date to overdue."""
        now = now or datetime.now()
        changed = [
            invoice for invoice in self.invoices
            if invoice.status == InvoiceStatus.SENT and invoice.is_overdue(now)
        ]
        if not changed:
            return changed

        with self._rollback_on_failure():
            for invoice in changed:
                invoice.status = InvoiceStatus.OVERDUE
            self.data_manager.save_invoices(self.invoices)

        self.logger.info(f"Marked {len(changed)} invoice(s) overdue")
        return changed

    def generate_invoice_number(self, now: Optional[datetime] = None) -> str:
        """``YYYY-NNN`` where NNN follows the count of invoices this year."""
        year = (now or datetime.now()).year
        this_year = sum(1 for invoice in self.invoices if invoice.date.year == year)
        return f"{year}-{this_year + 1:03d}"

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @property
    def total_invoiced(self) -> Decimal:
        return sum_totals(self.invoices)

    @property
    def total_paid(self) -> Decimal:
        return sum_totals(self.get_invoices_by_status(InvoiceStatus.PAID))

    @property
    def total_outstanding(self) -> Decimal:
        return sum_totals(self.get_invoices_by_status(InvoiceStatus.SENT))

    def total_overdue(self, now: Optional[datetime] = None) -> Decimal:
        return sum_totals(self.overdue_invoices(now))

    def recent_invoices(self, limit: int = 5) -> List[Invoice]:
        return sorted(self.invoices, key=lambda invoice: invoice.date, reverse=True)[:limit]

    def overdue_invoices(self, now: Optional[datetime] = None) -> List[Invoice]:
        return [invoice for invoice in self.invoices if invoice.is_overdue(now)]

    def get_invoices_by_status(self, status: InvoiceStatus) -> List[Invoice]:
        status = InvoiceStatus(status)
        return [invoice for invoice in self.invoices if invoice.status == status]

    def get_invoices_by_date_range(self, start: datetime, end: datetime) -> List[Invoice]:
        return [invoice for invoice in self.invoices if start <= invoice.date <= end]

    # ------------------------------------------------------------------
    # Validation & bulk operations
    # ------------------------------------------------------------------

    def validate_invoice(self, invoice: Invoice) -> List[str]:
        errors = []

        if not invoice.client.name.strip():
            errors.append("Kundnamn saknas")

        if not invoice.items:
            errors.append("Inga artiklar har lagts till")

        if any(not item.description.strip() for item in invoice.items):
            errors.append("Artikelbeskrivning saknas")

        if any(item.unit_price <= 0 for item in invoice.items):
            errors.append("Pris måste vara större än 0")

        return errors

    def bulk_update_status(self, refs: List[InvoiceRef], status: InvoiceStatus):
        for ref in refs:
            self.update_invoice_status(ref, status)

    def bulk_delete(self, refs: List[InvoiceRef]):
        ids = {ref.id if isinstance(ref, Invoice) else ref for ref in refs}
        remaining = [invoice for invoice in self.invoices if invoice.id not in ids]
        self.data_manager.save_invoices(remaining)
        self.invoices = remaining
