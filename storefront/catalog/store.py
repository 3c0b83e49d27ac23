"""Catalog store and loader.

The store holds the four catalog collections. Each update replaces one
collection wholesale and notifies listeners, which recompute anything
derived (the path table) from a fresh snapshot.

The loader issues the four backend fetches concurrently. Each fetch is its
own failure domain: one failing leaves only its collection empty.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Protocol

import structlog

from storefront.catalog.models import Category, Product, ProductType, Subcategory

logger = structlog.get_logger()


class CollectionName(str, Enum):
    """Names of the catalog collections."""

    CATEGORIES = "categories"
    SUBCATEGORIES = "subcategories"
    PRODUCT_TYPES = "product_types"
    PRODUCTS = "products"


def _empty() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable view of the catalog at one point in time.

    Attributes:
        categories: Categories keyed by id.
        subcategories: Subcategories keyed by id.
        product_types: Product types keyed by id.
        products: Products keyed by id.
        version: Store version this snapshot was taken at.
    """

    categories: Mapping[str, Category] = field(default_factory=_empty)
    subcategories: Mapping[str, Subcategory] = field(default_factory=_empty)
    product_types: Mapping[str, ProductType] = field(default_factory=_empty)
    products: Mapping[str, Product] = field(default_factory=_empty)
    version: int = 0

    @property
    def ready(self) -> bool:
        """Whether the taxonomy is loaded enough to route.

        Products are not part of the gate.
        """
        return (
            len(self.categories) > 0
            and len(self.subcategories) > 0
            and len(self.product_types) > 0
        )


CatalogListener = Callable[[CatalogSnapshot], None]


class CatalogStore:
    """Holds the fetched catalog collections.

    Example usage:
        store = CatalogStore()
        store.subscribe(lambda snapshot: print(snapshot.ready))
        store.replace(CollectionName.CATEGORIES, {"c1": Category("c1", "Femei")})
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._snapshot = CatalogSnapshot()
        self._listeners: list[CatalogListener] = []

    @property
    def snapshot(self) -> CatalogSnapshot:
        """Current catalog snapshot."""
        return self._snapshot

    @property
    def ready(self) -> bool:
        """Readiness of the current snapshot."""
        return self._snapshot.ready

    def subscribe(self, listener: CatalogListener) -> Callable[[], None]:
        """Register a change listener.

        Args:
            listener: Called with the new snapshot after every replacement.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, name: CollectionName, items: Mapping[str, Any]) -> CatalogSnapshot:
        """Replace one collection and notify listeners.

        Args:
            name: Collection to replace.
            items: New contents keyed by id.

        Returns:
            The new snapshot.
        """
        frozen = MappingProxyType(dict(items))
        current = self._snapshot
        self._snapshot = CatalogSnapshot(
            categories=frozen if name is CollectionName.CATEGORIES else current.categories,
            subcategories=frozen if name is CollectionName.SUBCATEGORIES else current.subcategories,
            product_types=frozen if name is CollectionName.PRODUCT_TYPES else current.product_types,
            products=frozen if name is CollectionName.PRODUCTS else current.products,
            version=current.version + 1,
        )

        logger.info(
            "Catalog collection updated",
            collection=name.value,
            count=len(frozen),
            version=self._snapshot.version,
            ready=self._snapshot.ready,
        )

        for listener in list(self._listeners):
            listener(self._snapshot)
        return self._snapshot


# ============================================================================
# Loader
# ============================================================================


class CatalogSource(Protocol):
    """Anything that can fetch the four catalog collections."""

    async def fetch_categories(self) -> dict[str, Category]: ...

    async def fetch_subcategories(self) -> dict[str, Subcategory]: ...

    async def fetch_product_types(self) -> dict[str, ProductType]: ...

    async def fetch_products(self) -> dict[str, Product]: ...


class CatalogLoader:
    """Populates a CatalogStore from a CatalogSource.

    The four fetches run as independent tasks with no ordering between
    them. Teardown cancels whatever is still in flight; nothing is applied
    to the store after ``close()``.
    """

    def __init__(self, source: CatalogSource, store: CatalogStore) -> None:
        """Initialize loader.

        Args:
            source: Catalog source (normally a BackendClient).
            store: Store to populate.
        """
        self.source = source
        self.store = store
        self._tasks: dict[CollectionName, asyncio.Task[None]] = {}
        self._closed = False

    def start(self) -> None:
        """Issue all four fetches concurrently.

        Must be called from a running event loop. Calling it again while
        fetches are in flight does nothing.
        """
        if self._tasks:
            return

        fetchers: dict[CollectionName, Callable[[], Awaitable[Mapping[str, Any]]]] = {
            CollectionName.CATEGORIES: self.source.fetch_categories,
            CollectionName.SUBCATEGORIES: self.source.fetch_subcategories,
            CollectionName.PRODUCT_TYPES: self.source.fetch_product_types,
            CollectionName.PRODUCTS: self.source.fetch_products,
        }
        for name, fetch in fetchers.items():
            self._tasks[name] = asyncio.create_task(
                self._load(name, fetch), name=f"catalog-{name.value}"
            )

    async def _load(
        self,
        name: CollectionName,
        fetch: Callable[[], Awaitable[Mapping[str, Any]]],
    ) -> None:
        """Run one fetch and apply its result."""
        try:
            items = await fetch()
        except asyncio.CancelledError:
            logger.debug("Catalog fetch cancelled", collection=name.value)
            raise
        except Exception as e:
            logger.error(
                "Catalog fetch raised, collection left empty",
                collection=name.value,
                error=str(e),
            )
            return

        if self._closed:
            return
        if not items:
            logger.warning("Catalog collection is empty", collection=name.value)
        self.store.replace(name, items or {})

    async def wait(self) -> None:
        """Wait until every started fetch has finished."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def close(self) -> None:
        """Cancel in-flight fetches."""
        self._closed = True
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("Cancelled catalog fetches", count=len(pending))
