"""Product search and filtering."""

from typing import Iterable, List, Optional

from ..models.product import Product, ProductCategory


def filter_products(
    products: Iterable[Product],
    *,
    search_text: Optional[str] = None,
    category: Optional[ProductCategory] = None,
    active_only: bool = True
) -> List[Product]:
    """
    Filter products by free text, category and active flag.

    Args:
        products: Source collection; its order is kept in the result
        search_text: Case-insensitive substring matched against name and
            description. Blank means no text constraint.
        category: Exact category to keep, or None for all categories
        active_only: Drop inactive (soft-deleted) products

    Returns:
        The matching products, possibly empty
    """
    query = (search_text or "").strip()
    if category is not None:
        category = ProductCategory(category)

    return [
        product for product in products
        if (not active_only or product.is_active)
        and (category is None or product.category == category)
        and (not query or product.matches_search(query))
    ]


def products_in_price_range(products: Iterable[Product], minimum, maximum) -> List[Product]:
    """Active products whose price lies in ``[minimum, maximum]``."""
    return [
        product for product in products
        if product.is_active and minimum <= product.price <= maximum
    ]
