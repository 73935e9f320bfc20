"""Tests for the product catalogue service."""

from datetime import datetime
from decimal import Decimal

import pytest

from jessica_invoice.models.product import Product, ProductCategory
from jessica_invoice.services.product_service import CSV_HEADERS, ProductService
from jessica_invoice.utils.exceptions import (
    EmptyFileError,
    InvalidFileFormatError,
    NotFoundError,
    StorageError,
    ValidationError,
)


@pytest.fixture
def service(data_manager, sample_products):
    data_manager.save_products(sample_products)
    return ProductService(data_manager)


class TestFiltering:
    """Tests for the stateful filter criteria."""

    def test_loads_from_store(self, service):
        assert len(service.products) == 4

    def test_filtered_products_follow_criteria(self, service):
        service.search_text = "consult"
        assert [p.name for p in service.filtered_products] == ["Consulting", "Logo design"]

        service.selected_category = ProductCategory.DESIGN
        assert [p.name for p in service.filtered_products] == ["Logo design"]

    def test_set_filters_and_clear(self, service):
        result = service.set_filters(search_text="widget", active_only=False)
        assert [p.name for p in result] == ["Widget"]

        service.clear_filters()

        assert service.search_text == ""
        assert service.selected_category is None
        assert len(service.filtered_products) == 4

    def test_empty_store_gives_empty_list(self, data_manager):
        service = ProductService(data_manager)

        assert service.products == []
        assert service.filtered_products == []


class TestEditing:
    """Tests for save/delete/duplicate/toggle."""

    def test_save_new_product_persists(self, service, data_manager):
        service.save_product(Product(name="Hosting", price=99))

        stored = [p.name for p in data_manager.load_products()]
        assert "Hosting" in stored

    def test_save_existing_product_replaces(self, service, data_manager):
        product = service.get_product("p-consulting")
        product.price = Decimal("1100")

        service.save_product(product)

        assert len(service.products) == 4
        reloaded = ProductService(data_manager).get_product("p-consulting")
        assert reloaded.price == Decimal("1100")

    def test_save_invalid_product_raises(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.save_product(Product(name="", price=0, unit=""))

        assert "Produktnamn saknas" in exc_info.value.errors
        assert "Pris måste vara större än 0" in exc_info.value.errors
        assert "Enhet saknas" in exc_info.value.errors

    def test_validate_duplicate_name(self, service):
        errors = service.validate_product(Product(name="consulting", price=10))

        assert errors == ["En produkt med detta namn finns redan"]

    def test_validate_vat_range(self, service):
        errors = service.validate_product(Product(name="New", price=10, vat_rate=120))

        assert errors == ["Moms måste vara mellan 0 och 100 procent"]

    def test_delete_unused_product_removes_it(self, service):
        assert service.delete_product("p-upkeep") is True

        with pytest.raises(NotFoundError):
            service.get_product("p-upkeep")

    def test_delete_used_product_marks_inactive(self, service, data_manager, sample_invoices):
        data_manager.save_invoices(sample_invoices)

        assert service.delete_product("p-consulting") is False

        product = service.get_product("p-consulting")
        assert product.is_active is False
        assert "Consulting" not in [p.name for p in service.filtered_products]

    def test_delete_unknown_product_raises(self, service):
        with pytest.raises(NotFoundError, match="Product not found"):
            service.delete_product("missing")

    def test_duplicate_product(self, service):
        duplicated = service.duplicate_product("p-logo")

        assert duplicated.name == "Logo design (Kopia)"
        assert duplicated.id != "p-logo"
        assert duplicated.price == Decimal("4500.50")
        assert len(service.products) == 4

    def test_toggle_active(self, service):
        assert service.toggle_product_active("p-widget").is_active is True
        assert service.toggle_product_active("p-widget").is_active is False

    def test_mark_as_used(self, service, now):
        product = service.mark_product_as_used("p-logo", when=now)

        assert product.last_used == now
        assert service.most_used_products == [product]


class TestStatistics:
    """Tests for catalogue statistics."""

    def test_counts_and_average(self, service):
        assert service.total_products == 3
        assert service.average_price == (Decimal("1000") + Decimal("4500.50") + Decimal("800")) / 3

    def test_average_price_without_products(self, data_manager):
        assert ProductService(data_manager).average_price == Decimal("0")

    def test_products_by_category(self, service):
        grouped = service.products_by_category

        assert set(grouped) == {ProductCategory.SERVICE, ProductCategory.DESIGN, ProductCategory.MAINTENANCE}
        assert service.get_product_count(ProductCategory.PRODUCT) == 0

    def test_price_range(self, service):
        result = service.get_products_by_price_range(500, 1000)

        assert [p.name for p in result] == ["Consulting", "Server upkeep"]

    def test_recently_added(self, service):
        newest = Product(name="Newest", price=1, created_date=datetime(2030, 1, 1))
        service.save_product(newest)

        assert service.recently_added_products[0].name == "Newest"

    def test_get_statistics(self, service):
        stats = service.get_statistics()

        assert stats["total_products"] == 3
        assert stats["by_category"]["service"] == 1
        assert stats["average_price"] == "2100.17"


class TestCsv:
    """Tests for CSV import and export."""

    def test_export_active_products(self, service):
        lines = service.export_products_to_csv().splitlines()

        assert lines[0] == ",".join(CSV_HEADERS)
        assert len(lines) == 4
        assert lines[1] == "Consulting,Hourly advisory work,1000,timme,Tjänst,25"

    def test_export_then_import_into_empty_catalogue(self, service, data_manager, tmp_path):
        exported = service.export_products_to_csv()
        other = ProductService(type(data_manager)(data_dir=tmp_path / "other", create_sample_data=False))

        result = other.import_products_from_csv(exported)

        assert result.imported_count == 3
        assert result.success is True
        assert [p.category for p in other.products] == [
            ProductCategory.SERVICE, ProductCategory.DESIGN, ProductCategory.MAINTENANCE
        ]

    def test_import_reports_bad_rows(self, service):
        data = (
            "Namn,Beskrivning,Pris,Enhet,Kategori,Moms %\n"
            "Hosting,Web hosting,99,månad,Tjänst,25\n"
            "Broken,row\n"
            "Bad price,x,abc,st,Tjänst,25\n"
            "Unknown,x,10,st,Mystery,\n"
        )

        result = service.import_products_from_csv(data.encode("utf-8"))

        assert result.total_rows == 4
        assert result.imported_count == 2
        assert [error.line for error in result.errors] == [3, 4]
        assert service.products[-1].category == ProductCategory.SERVICE
        assert service.products[-1].vat_rate == Decimal("25")

    def test_import_rejects_non_finite_prices(self, service, data_manager):
        data = (
            "Namn,Beskrivning,Pris,Enhet,Kategori,Moms %\n"
            "Bad,x,NaN,st,Tjänst,25\n"
            "Huge,x,Infinity,st,Tjänst,25\n"
            "Odd,x,10,st,Tjänst,-inf\n"
        )

        result = service.import_products_from_csv(data)

        assert result.imported_count == 0
        assert [error.line for error in result.errors] == [2, 3, 4]
        assert "finite" in result.errors[0].message
        assert len(data_manager.load_products()) == 4

    def test_failed_import_write_keeps_catalogue(self, service, data_manager, monkeypatch):
        def broken(products):
            raise StorageError("disk full")

        monkeypatch.setattr(data_manager, "save_products", broken)

        with pytest.raises(StorageError):
            service.import_products_from_csv("Namn,Beskrivning,Pris,Enhet,Kategori,Moms %\nHosting,x,99,st,Tjänst,25\n")

        assert len(service.products) == 4

    def test_import_header_only_raises(self, service):
        with pytest.raises(EmptyFileError):
            service.import_products_from_csv("Namn,Beskrivning,Pris,Enhet,Kategori,Moms %\n")

    def test_import_invalid_bytes_raises(self, service):
        with pytest.raises(InvalidFileFormatError):
            service.import_products_from_csv(b"\xff\xfe\xfa")


class TestBulk:
    """Tests for bulk operations."""

    def test_bulk_update_category(self, service):
        service.bulk_update_category(["p-consulting", "p-upkeep", "missing"], ProductCategory.DEVELOPMENT)

        assert service.get_product_count(ProductCategory.DEVELOPMENT) == 2

    def test_bulk_update_vat_rate(self, service):
        service.bulk_update_vat_rate(["p-logo"], "12")

        assert service.get_product("p-logo").vat_rate == Decimal("12")

    def test_bulk_delete(self, service):
        assert service.bulk_delete(["p-upkeep", "p-logo"]) == 2
        assert len(service.products) == 2


class TestWriteFailures:
    """A failed store write leaves the in-memory catalogue as it was."""

    @pytest.fixture
    def failing_store(self, service, data_manager, monkeypatch):
        def broken(products):
            raise StorageError("disk full")

        monkeypatch.setattr(data_manager, "save_products", broken)
        return service

    def test_save_new_product(self, failing_store):
        with pytest.raises(StorageError):
            failing_store.save_product(Product(name="New", price=10))

        assert len(failing_store.products) == 4
        assert "New" not in [p.name for p in failing_store.products]

    def test_save_existing_product(self, failing_store):
        edited = Product(name="Consulting", price=1, id="p-consulting")

        with pytest.raises(StorageError):
            failing_store.save_product(edited)

        assert failing_store.get_product("p-consulting").price == Decimal("1000")

    def test_delete_and_toggle(self, failing_store):
        with pytest.raises(StorageError):
            failing_store.delete_product("p-upkeep")
        with pytest.raises(StorageError):
            failing_store.toggle_product_active("p-logo")

        assert failing_store.get_product("p-upkeep").is_active
        assert failing_store.get_product("p-logo").is_active

    def test_bulk_update(self, failing_store):
        with pytest.raises(StorageError):
            failing_store.bulk_update_vat_rate(["p-logo", "p-upkeep"], 6)

        assert failing_store.get_product("p-logo").vat_rate == Decimal("25")
