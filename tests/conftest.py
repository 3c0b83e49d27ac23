"""Shared fixtures for storefront tests."""

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.catalog.models import Category, Product, ProductType, Subcategory
from storefront.catalog.store import CatalogSnapshot, CatalogStore, CollectionName
from storefront.infrastructure.backend_client import APIError, APIResponse, BackendClient
from storefront.infrastructure.storage import MemoryStorage, StorageChannel
from storefront.routing.paths import CategoryLanding

MEN_ID = "6405fa546fb18bc74bd3d9cb"
WOMEN_ID = "640601ffbab3fa741b0ade07"
ACCESSORIES_ID = "6406aa00000000000000acc1"


# ============================================================================
# Catalog Data
# ============================================================================


@pytest.fixture
def landings() -> tuple[CategoryLanding, ...]:
    """The two navigable category landings."""
    return (
        CategoryLanding(path="/barbati", category_id=MEN_ID, featured_product_types=("Blugi", "Hanorace")),
        CategoryLanding(path="/femei", category_id=WOMEN_ID, featured_product_types=("Fuste", "Genti")),
    )


@pytest.fixture
def categories() -> dict[str, Category]:
    return {
        MEN_ID: Category(id=MEN_ID, name="Barbati"),
        WOMEN_ID: Category(id=WOMEN_ID, name="Femei"),
        ACCESSORIES_ID: Category(id=ACCESSORIES_ID, name="Accesorii"),
    }


@pytest.fixture
def subcategories() -> dict[str, Subcategory]:
    return {
        "s-men-haine": Subcategory(id="s-men-haine", category_id=MEN_ID, name="Haine"),
        "s-women-haine": Subcategory(id="s-women-haine", category_id=WOMEN_ID, name="Haine"),
        "s-acc-genti": Subcategory(id="s-acc-genti", category_id=ACCESSORIES_ID, name="Genti"),
    }


@pytest.fixture
def product_types() -> dict[str, ProductType]:
    return {
        "pt-blugi": ProductType(id="pt-blugi", subcategory_id="s-men-haine", name="Blugi"),
        "pt-fuste": ProductType(id="pt-fuste", subcategory_id="s-women-haine", name="Fuste scurte"),
        "pt-rucsac": ProductType(id="pt-rucsac", subcategory_id="s-acc-genti", name="Rucsacuri mari"),
    }


@pytest.fixture
def products() -> dict[str, Product]:
    return {
        "p1": Product(id="p1", attributes={"name": "Blugi slim", "price": 199}),
        "p2": Product(id="p2", attributes={"name": "Fusta plisata", "price": 149}),
    }


@pytest.fixture
def snapshot(
    categories: dict[str, Category],
    subcategories: dict[str, Subcategory],
    product_types: dict[str, ProductType],
    products: dict[str, Product],
) -> CatalogSnapshot:
    """A fully loaded, consistent catalog snapshot."""
    store = CatalogStore()
    store.replace(CollectionName.CATEGORIES, categories)
    store.replace(CollectionName.SUBCATEGORIES, subcategories)
    store.replace(CollectionName.PRODUCT_TYPES, product_types)
    store.replace(CollectionName.PRODUCTS, products)
    return store.snapshot


# ============================================================================
# Backend Doubles
# ============================================================================


@pytest.fixture
def catalog_source(
    categories: dict[str, Category],
    subcategories: dict[str, Subcategory],
    product_types: dict[str, ProductType],
    products: dict[str, Product],
) -> MagicMock:
    """Catalog source answering with the sample catalog."""
    source = MagicMock(spec=BackendClient)
    source.fetch_categories = AsyncMock(return_value=categories)
    source.fetch_subcategories = AsyncMock(return_value=subcategories)
    source.fetch_product_types = AsyncMock(return_value=product_types)
    source.fetch_products = AsyncMock(return_value=products)
    source.close = AsyncMock()
    return source


def _auth_response(status_code: int, data: Any = None) -> APIResponse:
    if status_code >= 400:
        return APIResponse(
            success=False,
            status_code=status_code,
            error=APIError(
                error_code=f"HTTP_{status_code}",
                message="error",
                status_code=status_code,
            ),
        )
    return APIResponse(success=True, status_code=status_code, data=data)


def _session_client(response: APIResponse | None = None) -> MagicMock:
    client = MagicMock(spec=BackendClient)
    client.check_auth = AsyncMock(return_value=response or _auth_response(401))
    client.logout = AsyncMock(return_value=APIResponse(success=True, status_code=200))
    client.close = AsyncMock()
    return client


# ============================================================================
# Storage
# ============================================================================


@pytest.fixture
def channel() -> StorageChannel:
    return StorageChannel()


@pytest.fixture
def storage(channel: StorageChannel) -> MemoryStorage:
    return MemoryStorage(channel)


@pytest.fixture
def auth_response() -> Callable[..., APIResponse]:
    """Factory for the APIResponse the backend client returns for /user/auth."""
    return _auth_response


@pytest.fixture
def session_client() -> Callable[..., MagicMock]:
    """Factory for session clients whose auth check answers with a response."""
    return _session_client
