"""Catalog models, store and loader."""

from storefront.catalog.models import Category, Product, ProductType, Subcategory
from storefront.catalog.store import (
    CatalogLoader,
    CatalogSnapshot,
    CatalogStore,
    CollectionName,
)

__all__ = [
    # Models
    "Category",
    "Product",
    "ProductType",
    "Subcategory",
    # Store
    "CatalogLoader",
    "CatalogSnapshot",
    "CatalogStore",
    "CollectionName",
]
