"""Tests for product search and filtering."""

from decimal import Decimal

from jessica_invoice.models.product import Product, ProductCategory
from jessica_invoice.services.product_filter import filter_products, products_in_price_range


def names(products):
    return [product.name for product in products]


class TestFilterProducts:
    """Tests for filter_products."""

    def test_search_and_active_only(self):
        """
        Inactive products are dropped even when the text matches.

        Physical goods are catalogued under ``ProductCategory.PRODUCT``.
        """
        products = [
            Product(name="Consulting", category=ProductCategory.SERVICE),
            Product(name="Widget", category=ProductCategory.PRODUCT, is_active=False),
        ]

        result = filter_products(products, search_text="cons", active_only=True)

        assert names(result) == ["Consulting"]

    def test_empty_criteria_returns_active_subset(self, sample_products):
        result = filter_products(sample_products)

        assert names(result) == ["Consulting", "Logo design", "Server upkeep"]

    def test_empty_criteria_without_active_only_returns_everything(self, sample_products):
        result = filter_products(sample_products, active_only=False)

        assert result == sample_products

    def test_result_preserves_source_order(self, sample_products):
        reversed_products = list(reversed(sample_products))

        result = filter_products(reversed_products, search_text="consult")

        assert names(result) == ["Logo design", "Consulting"]

    def test_search_matches_description_case_insensitively(self, sample_products):
        result = filter_products(sample_products, search_text="MAINTENANCE")

        assert names(result) == ["Server upkeep"]

    def test_search_is_trimmed(self, sample_products):
        result = filter_products(sample_products, search_text="  logo  ")

        assert names(result) == ["Logo design"]

    def test_category_filter(self, sample_products):
        result = filter_products(sample_products, category=ProductCategory.DESIGN)

        assert names(result) == ["Logo design"]

    def test_category_filter_accepts_value_string(self, sample_products):
        result = filter_products(sample_products, category="maintenance")

        assert names(result) == ["Server upkeep"]

    def test_category_filter_is_idempotent(self, sample_products):
        once = filter_products(sample_products, category=ProductCategory.SERVICE, active_only=False)
        twice = filter_products(once, category=ProductCategory.SERVICE, active_only=False)

        assert twice == once

    def test_search_and_category_combine(self, sample_products):
        result = filter_products(sample_products, search_text="consult", category=ProductCategory.SERVICE)

        assert names(result) == ["Consulting"]

    def test_no_match_is_empty_list(self, sample_products):
        assert filter_products(sample_products, search_text="nothing like this") == []

    def test_result_is_subset(self, sample_products):
        for query in ["", "o", "design", "x"]:
            for category in [None, *ProductCategory]:
                result = filter_products(sample_products, search_text=query, category=category)
                assert all(product in sample_products for product in result)

    def test_source_is_not_mutated(self, sample_products):
        before = list(sample_products)

        filter_products(sample_products, search_text="logo", category=ProductCategory.DESIGN)

        assert sample_products == before


class TestPriceRange:
    """Tests for products_in_price_range."""

    def test_inclusive_bounds_and_active_only(self, sample_products):
        result = products_in_price_range(sample_products, Decimal("250"), Decimal("1000"))

        assert names(result) == ["Consulting", "Server upkeep"]
