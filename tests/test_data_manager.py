"""Tests for the JSON file store."""

import json
import os
from decimal import Decimal

import pytest

from jessica_invoice.models.company import Company
from jessica_invoice.storage.data_manager import DataManager
from jessica_invoice.utils.exceptions import NotFoundError, StorageError


class TestLoadAndSave:
    """Tests for loading and saving collections."""

    def test_missing_files_without_samples(self, data_manager):
        assert data_manager.load_products() == []
        assert data_manager.load_invoices() == []
        assert data_manager.load_company().name == ""

    def test_missing_files_with_samples(self, tmp_path):
        manager = DataManager(data_dir=tmp_path, create_sample_data=True)

        products = manager.load_products()
        invoices = manager.load_invoices()

        assert [p.name for p in products] == ["Konsulttjänst", "Projektledning"]
        assert len(invoices) == 1
        assert invoices[0].total == Decimal("12500")

    def test_products_round_trip(self, data_manager, sample_products):
        data_manager.save_products(sample_products)

        assert data_manager.load_products() == sample_products

    def test_invoices_round_trip(self, data_manager, sample_invoices):
        data_manager.save_invoices(sample_invoices)

        loaded = data_manager.load_invoices()

        assert [invoice.id for invoice in loaded] == [invoice.id for invoice in sample_invoices]
        assert [invoice.total for invoice in loaded] == [invoice.total for invoice in sample_invoices]

    def test_money_is_stored_as_string(self, data_manager, sample_products):
        data_manager.save_products(sample_products)

        with open(data_manager.products_path, encoding="utf-8") as f:
            raw = json.load(f)

        assert raw[2]["price"] == "4500.50"

    def test_corrupt_file_falls_back(self, data_manager):
        data_manager.products_path.parent.mkdir(parents=True)
        data_manager.products_path.write_text("{not json", encoding="utf-8")

        assert data_manager.load_products() == []

    def test_non_finite_price_falls_back(self, data_manager, sample_products):
        data_manager.save_products(sample_products)
        raw = json.loads(data_manager.products_path.read_text(encoding="utf-8"))
        raw[0]["price"] = "NaN"
        data_manager.products_path.write_text(json.dumps(raw), encoding="utf-8")

        assert data_manager.load_products() == []

    def test_company_round_trip(self, data_manager):
        company = Company(name="Jessica AB", organization_number="556123-4567")

        data_manager.save_company(company)

        assert data_manager.load_company().name == "Jessica AB"

    def test_write_failure_raises_storage_error(self, data_manager, sample_products, monkeypatch):
        monkeypatch.setattr(data_manager.config.storage, "retry_delay", 0)
        calls = []

        def failing_replace(src, dst):
            calls.append(dst)
            raise PermissionError("read-only")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(StorageError):
            data_manager.save_products(sample_products)

        assert len(calls) == data_manager.config.storage.write_retries
        assert not data_manager.products_path.exists()
        assert list(data_manager.data_dir.iterdir()) == []


class TestCompanies:
    """Tests for the company collection."""

    @pytest.fixture
    def stored(self, data_manager):
        data_manager.save_company(Company(name="Jessica AB", organization_number="556000-0001", id="c-main"))
        data_manager.save_company(Company(name="Sidoprojekt AB", organization_number="556000-0002", id="c-side"))
        return data_manager

    def test_first_saved_company_is_primary(self, stored):
        companies = stored.load_companies()

        assert [c.id for c in companies] == ["c-main", "c-side"]
        assert [c.is_primary for c in companies] == [True, False]
        assert stored.primary_company_id() == "c-main"

    def test_unflagged_file_treats_first_as_primary(self, data_manager):
        data_manager.save_companies([Company(name="A", id="c-a"), Company(name="B", id="c-b")])

        assert data_manager.primary_company_id() == "c-a"

    def test_saving_a_primary_company_clears_the_others(self, stored):
        side = stored.load_companies()[1]
        side.is_primary = True

        stored.save_company(side)

        assert [(c.id, c.is_primary) for c in stored.load_companies()] == [("c-side", True), ("c-main", False)]

    def test_set_primary_company(self, stored):
        assert stored.set_primary_company("c-side").id == "c-side"
        assert stored.load_company().name == "Sidoprojekt AB"

        with pytest.raises(NotFoundError):
            stored.set_primary_company("missing")

    def test_delete_primary_promotes_next(self, stored):
        stored.delete_company("c-main")

        assert stored.primary_company_id() == "c-side"
        with pytest.raises(NotFoundError):
            stored.delete_company("c-main")

    def test_no_companies(self, data_manager):
        assert data_manager.load_companies() == []
        assert data_manager.primary_company_id() is None


class TestBackups:
    """Tests for backup and restore."""

    def test_create_and_restore(self, data_manager, sample_products, sample_invoices):
        data_manager.save_products(sample_products)
        data_manager.save_invoices(sample_invoices)
        backup_path = data_manager.create_backup()

        data_manager.clear_all_data()
        assert data_manager.load_products() == []

        data_manager.restore_backup(backup_path)

        assert data_manager.load_products() == sample_products
        assert len(data_manager.load_invoices()) == 7

    def test_backup_includes_companies(self, data_manager):
        data_manager.save_company(Company(name="Jessica AB", organization_number="556000-0001", id="c-main"))
        data_manager.save_company(Company(name="Sidoprojekt AB", organization_number="556000-0002", id="c-side"))
        backup_path = data_manager.create_backup()
        data_manager.clear_all_data()

        data_manager.restore_backup(backup_path)

        assert [c.id for c in data_manager.load_companies()] == ["c-main", "c-side"]

    def test_restore_single_company_backup(self, data_manager, tmp_path):
        path = tmp_path / "old.backup"
        company = Company(name="Jessica AB", organization_number="556000-0001", id="c-main")
        path.write_text(json.dumps({"company": company.to_dict(), "invoices": [], "products": []}), encoding="utf-8")

        data_manager.restore_backup(path)

        assert data_manager.primary_company_id() == "c-main"

    def test_backup_name_and_listing(self, data_manager):
        backup_path = data_manager.create_backup()

        assert backup_path.name.startswith("JessicaInvoice_")
        assert backup_path.suffix == ".backup"
        assert [info.path for info in data_manager.available_backups()] == [backup_path]

    def test_delete_backup(self, data_manager):
        data_manager.create_backup()
        info = data_manager.available_backups()[0]

        data_manager.delete_backup(info)

        assert data_manager.available_backups() == []
        with pytest.raises(NotFoundError):
            data_manager.delete_backup(info)

    def test_restore_missing_backup(self, data_manager, tmp_path):
        with pytest.raises(NotFoundError):
            data_manager.restore_backup(tmp_path / "nope.backup")

    def test_restore_invalid_backup(self, data_manager, tmp_path):
        path = tmp_path / "broken.backup"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(StorageError, match="Invalid backup file"):
            data_manager.restore_backup(path)

    def test_no_backups(self, data_manager):
        assert data_manager.available_backups() == []
