"""Product catalogue service: filtering, editing, statistics and CSV."""

import copy
import csv
import io
import uuid
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from .product_filter import filter_products, products_in_price_range
from ..models.import_result import ImportResult
from ..models.product import Product, ProductCategory, to_decimal
from ..storage.data_manager import DataManager
from ..utils.exceptions import (
    EmptyFileError,
    InvalidFileFormatError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ..utils.logger import get_store_logger, get_error_logger

CSV_HEADERS = ["Namn", "Beskrivning", "Pris", "Enhet", "Kategori", "Moms %"]

ProductRef = Union[Product, str]


class ProductService:
    """
    In-memory product catalogue backed by the JSON store.

    ``filtered_products`` is always derived from the current products and
    the ``search_text``, ``selected_category`` and ``active_only`` criteria.
    """

    def __init__(self, data_manager: Optional[DataManager] = None, autoload: bool = True):
        self.logger = get_store_logger()
        self.error_logger = get_error_logger()
        self.data_manager = data_manager or DataManager()

        self.products: List[Product] = []
        self.search_text: str = ""
        self.selected_category: Optional[ProductCategory] = None
        self.active_only: bool = True
        self.error_message: Optional[str] = None

        if autoload:
            self.load_products()

    # ------------------------------------------------------------------
    # Loading & filtering
    # ------------------------------------------------------------------

    def load_products(self) -> List[Product]:
        """Reload from the store; on failure keep the current list."""
        self.error_message = None
        try:
            self.products = self.data_manager.load_products()
        except StorageError as e:
            self.error_message = e.message
            self.error_logger.error(f"Failed loading products: {e.message}")
        return self.products

    @property
    def filtered_products(self) -> List[Product]:
        return filter_products(
            self.products,
            search_text=self.search_text,
            category=self.selected_category,
            active_only=self.active_only,
        )

    def set_filters(
        self,
        search_text: Optional[str] = None,
        category: Optional[ProductCategory] = None,
        active_only: Optional[bool] = None
    ) -> List[Product]:
        """
        Update the criteria and return the new filtered list.

        ``search_text`` and ``active_only`` are left alone when None;
        ``category`` is always replaced, so None clears it.
        """
        if search_text is not None:
            self.search_text = search_text
        self.selected_category = ProductCategory(category) if category is not None else None
        if active_only is not None:
            self.active_only = active_only
        return self.filtered_products

    def clear_filters(self):
        self.search_text = ""
        self.selected_category = None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _index_of(self, ref: ProductRef) -> int:
        product_id = ref.id if isinstance(ref, Product) else ref
        for index, product in enumerate(self.products):
            if product.id == product_id:
                return index
        raise NotFoundError(f"Product not found: {product_id}", details={"id": product_id})

    def get_product(self, product_id: str) -> Product:
        return self.products[self._index_of(product_id)]

    @contextmanager
    def _rollback_on_failure(self):
        """Restore the in-memory catalogue if the store write fails."""
        snapshot = copy.deepcopy(self.products)
        try:
            yield
        except StorageError:
            self.products = snapshot
            raise

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def save_product(self, product: Product) -> Product:
        """
        Insert or replace a product after validation.

        Raises:
            ValidationError: If the product has validation messages
            StorageError: If the catalogue cannot be written
        """
        errors = self.validate_product(product)
        if errors:
            raise ValidationError(errors, details={"id": product.id})

        with self._rollback_on_failure():
            try:
                self.products[self._index_of(product)] = product
                self.logger.info(f"Updated product {product.name}")
            except NotFoundError:
                self.products.append(product)
                self.logger.info(f"Added product {product.name}")

            self.data_manager.save_products(self.products)
        return product

    def delete_product(self, ref: ProductRef) -> bool:
        """
        Delete a product, or mark it inactive when invoices reference it.

        Returns:
            True if the product was removed, False if it was soft-deleted
        """
        index = self._index_of(ref)
        product = self.products[index]
        used = self.is_product_used_in_invoices(product)

        with self._rollback_on_failure():
            if used:
                product.is_active = False
            else:
                del self.products[index]
            self.data_manager.save_products(self.products)

        if used:
            self.logger.info(f"Product {product.name} is used in invoices; marked inactive")
        else:
            self.logger.info(f"Deleted product {product.name}")
        return not used

    def duplicate_product(self, ref: ProductRef) -> Product:
        """Unsaved copy with a new id and a "(Kopia)" suffix."""
        original = self.products[self._index_of(ref)]
        duplicated = copy.deepcopy(original)
        duplicated.id = str(uuid.uuid4())
        duplicated.name = f"{original.name} (Kopia)"
        duplicated.created_date = datetime.now()
        duplicated.last_used = None
        return duplicated

    def toggle_product_active(self, ref: ProductRef) -> Product:
        product = self.products[self._index_of(ref)]
        with self._rollback_on_failure():
            product.is_active = not product.is_active
            self.data_manager.save_products(self.products)
        return product

    def mark_product_as_used(self, ref: ProductRef, when: Optional[datetime] = None) -> Product:
        product = self.products[self._index_of(ref)]
        with self._rollback_on_failure():
            product.last_used = when or datetime.now()
            self.data_manager.save_products(self.products)
        return product

    def is_product_used_in_invoices(self, product: Product) -> bool:
        invoices = self.data_manager.load_invoices()
        return any(
            item.description == product.name
            for invoice in invoices
            for item in invoice.items
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @property
    def active_products(self) -> List[Product]:
        return [product for product in self.products if product.is_active]

    @property
    def total_products(self) -> int:
        return len(self.active_products)

    @property
    def products_by_category(self) -> Dict[ProductCategory, List[Product]]:
        grouped = defaultdict(list)
        for product in self.active_products:
            grouped[product.category].append(product)
        return dict(grouped)

    @property
    def average_price(self) -> Decimal:
        active = self.active_products
        if not active:
            return Decimal("0")
        return sum((product.price for product in active), Decimal("0")) / len(active)

    @property
    def most_used_products(self) -> List[Product]:
        used = [product for product in self.active_products if product.last_used is not None]
        return sorted(used, key=lambda product: product.last_used, reverse=True)

    @property
    def recently_added_products(self) -> List[Product]:
        return sorted(self.active_products, key=lambda product: product.created_date, reverse=True)

    def get_product_count(self, category: ProductCategory) -> int:
        return len(self.get_products_by_category(category))

    def get_products_by_category(self, category: ProductCategory) -> List[Product]:
        return filter_products(self.products, category=category, active_only=True)

    def get_products_by_price_range(self, minimum, maximum) -> List[Product]:
        return products_in_price_range(
            self.products, to_decimal(minimum, "Minimum"), to_decimal(maximum, "Maximum")
        )

    def get_statistics(self) -> Dict[str, object]:
        """Catalogue summary as plain data."""
        return {
            "total_products": self.total_products,
            "average_price": str(self.average_price.quantize(Decimal("0.01"))),
            "by_category": {
                category.value: self.get_product_count(category) for category in ProductCategory
            },
            "most_used": [product.name for product in self.most_used_products[:5]],
            "recently_added": [product.name for product in self.recently_added_products[:5]],
        }

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_product(self, product: Product) -> List[str]:
        """Return validation messages; empty when the product is valid."""
        errors = []

        if not product.name.strip():
            errors.append("Produktnamn saknas")

        if product.price <= 0:
            errors.append("Pris måste vara större än 0")

        if not product.unit.strip():
            errors.append("Enhet saknas")

        if product.vat_rate < 0 or product.vat_rate > 100:
            errors.append("Moms måste vara mellan 0 och 100 procent")

        duplicate = any(
            existing.name.casefold() == product.name.casefold()
            and existing.id != product.id
            and existing.is_active
            for existing in self.products
        )
        if duplicate:
            errors.append("En produkt med detta namn finns redan")

        return errors

    # ------------------------------------------------------------------
    # CSV import / export
    # ------------------------------------------------------------------

    def export_products_to_csv(self) -> str:
        """Active products as CSV text with a header row."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for product in self.active_products:
            writer.writerow([
                product.name,
                product.description,
                str(product.price),
                product.unit,
                product.category.display_name,
                str(product.vat_rate),
            ])
        return buffer.getvalue()

    def import_products_from_csv(self, data: Union[str, bytes]) -> ImportResult:
        """
        Append products from CSV produced by ``export_products_to_csv``.

        Rows with fewer than six columns or unparsable numbers are skipped
        and reported; unknown categories fall back to service.

        Raises:
            InvalidFileFormatError: If bytes are not valid UTF-8
            EmptyFileError: If there are no data rows
        """
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise InvalidFileFormatError(details={"error": str(e)})

        rows = list(csv.reader(io.StringIO(data)))
        if len(rows) <= 1:
            raise EmptyFileError()

        result = ImportResult()
        imported = []
        for line_number, columns in enumerate(rows[1:], start=2):
            if not any(column.strip() for column in columns):
                continue

            result.total_rows += 1
            if len(columns) < len(CSV_HEADERS):
                result.add_error(line_number, "Too few columns", raw=",".join(columns))
                continue

            name, description, price, unit, category_name, vat_rate = columns[:6]
            try:
                product = Product(
                    name=name,
                    description=description,
                    price=price or 0,
                    unit=unit,
                    category=ProductCategory.from_display_name(category_name) or ProductCategory.SERVICE,
                    vat_rate=vat_rate or 25,
                )
            except ValueError as e:
                result.add_error(line_number, str(e), raw=",".join(columns))
                continue

            imported.append(product)
            result.imported_count += 1

        if imported:
            self.data_manager.save_products(self.products + imported)
            self.products = self.products + imported

        result.finalize()
        self.logger.info(f"CSV import: {result.imported_count} imported, {result.skipped_count} skipped")
        return result

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def bulk_delete(self, refs: List[ProductRef]) -> int:
        """Delete each product; returns how many were removed outright."""
        return sum(1 for ref in refs if self.delete_product(ref))

    def bulk_update_category(self, refs: List[ProductRef], category: ProductCategory):
        category = ProductCategory(category)
        with self._rollback_on_failure():
            for product in self._existing(refs):
                product.category = category
            self.data_manager.save_products(self.products)

    def bulk_update_vat_rate(self, refs: List[ProductRef], vat_rate):
        vat_rate = to_decimal(vat_rate, "VAT rate")
        with self._rollback_on_failure():
            for product in self._existing(refs):
                product.vat_rate = vat_rate
            self.data_manager.save_products(self.products)

    def _existing(self, refs: List[ProductRef]) -> List[Product]:
        found = []
        for ref in refs:
            try:
                found.append(self.products[self._index_of(ref)])
            except NotFoundError:
                self.logger.warning(f"Skipping unknown product {ref}")
        return found
