"""Path table derivation.

Builds the full set of navigable paths from a catalog snapshot. The table
is always recomputed from scratch; nothing patches it incrementally.

Path shapes:
    /                                           home
    /barbati, /femei                            category landing pages
    /{category}/{subcategory}                   navigable categories only
    /{category}/{subcategory}/{product+type}    every product type
    /products/{id}                              every product
    /shoppingCart /register /login /account /admin
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Sequence

import structlog

from storefront.catalog.models import Category, ProductType, Subcategory
from storefront.catalog.store import CatalogSnapshot
from storefront.infrastructure.config import Settings

logger = structlog.get_logger()


HOME_PATH = "/"
SHOPPING_CART_PATH = "/shoppingCart"
REGISTER_PATH = "/register"
LOGIN_PATH = "/login"
ACCOUNT_PATH = "/account"
ADMIN_PATH = "/admin"


class RouteKind(str, Enum):
    """What a path renders."""

    HOME = "home"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"
    PRODUCT_TYPE = "product_type"
    PRODUCT = "product"
    SHOPPING_CART = "shopping_cart"
    REGISTER = "register"
    LOGIN = "login"
    ACCOUNT = "account"
    ADMIN = "admin"


@dataclass(frozen=True)
class CategoryLanding:
    """A fixed landing page for one navigable category.

    Attributes:
        path: Landing path (e.g. "/barbati").
        category_id: Category the page shows.
        featured_product_types: Product type names highlighted on the page.
    """

    path: str
    category_id: str
    featured_product_types: tuple[str, ...] = ()


def landings_from_settings(settings: Settings) -> tuple[CategoryLanding, ...]:
    """Build the two category landings from configuration."""
    return (
        CategoryLanding(
            path=settings.men_path,
            category_id=settings.men_category_id,
            featured_product_types=tuple(settings.men_featured_product_types),
        ),
        CategoryLanding(
            path=settings.women_path,
            category_id=settings.women_category_id,
            featured_product_types=tuple(settings.women_featured_product_types),
        ),
    )


@dataclass(frozen=True)
class RouteDescriptor:
    """One entry of the path table.

    Attributes:
        path: Exact path string.
        kind: What the path renders.
        category_id: Bound category, if any.
        subcategory_id: Bound subcategory, if any.
        product_type_id: Bound product type, if any.
        product_id: Bound product, if any.
        featured_product_types: Landing page highlights (CATEGORY only).
    """

    path: str
    kind: RouteKind
    category_id: str | None = None
    subcategory_id: str | None = None
    product_type_id: str | None = None
    product_id: str | None = None
    featured_product_types: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": self.path, "kind": self.kind.value}
        for key in ("category_id", "subcategory_id", "product_type_id", "product_id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.featured_product_types:
            data["featured_product_types"] = list(self.featured_product_types)
        return data


@dataclass
class PathTable:
    """Ordered mapping from path to route descriptor.

    Keys are unique. When two descriptors produce the same path the first
    one is kept and the later one is recorded in ``collisions``.
    """

    _routes: dict[str, RouteDescriptor] = field(default_factory=dict)
    collisions: list[RouteDescriptor] = field(default_factory=list)

    def add(self, descriptor: RouteDescriptor) -> bool:
        """Insert a descriptor unless its path is taken.

        Returns:
            True if inserted, False on collision.
        """
        existing = self._routes.get(descriptor.path)
        if existing is not None:
            self.collisions.append(descriptor)
            logger.warning(
                "Path collision, keeping first descriptor",
                path=descriptor.path,
                kept_kind=existing.kind.value,
                dropped_kind=descriptor.kind.value,
            )
            return False
        self._routes[descriptor.path] = descriptor
        return True

    def get(self, path: str) -> RouteDescriptor | None:
        return self._routes.get(path)

    def paths(self) -> list[str]:
        return list(self._routes)

    def __contains__(self, path: object) -> bool:
        return path in self._routes

    def __iter__(self) -> Iterator[RouteDescriptor]:
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)


# ============================================================================
# Slugs
# ============================================================================


def category_slug(category: Category) -> str:
    return category.name.lower()


def subcategory_slug(subcategory: Subcategory) -> str:
    return subcategory.name.lower()


def product_type_slug(product_type: ProductType) -> str:
    """Lowercase name with every space replaced by ``+``."""
    return product_type.name.lower().replace(" ", "+")


# ============================================================================
# Resolver
# ============================================================================


def resolve_paths(
    snapshot: CatalogSnapshot,
    landings: Sequence[CategoryLanding],
) -> PathTable:
    """Derive the path table from a catalog snapshot.

    Total over partially consistent data: entries whose parent reference
    does not resolve in the snapshot are skipped.

    Args:
        snapshot: Catalog contents.
        landings: Category landing pages; their category ids are the only
            categories whose subcategories get a two-segment path.

    Returns:
        The ordered path table.
    """
    table = PathTable()
    navigable = {landing.category_id for landing in landings}

    table.add(RouteDescriptor(path=HOME_PATH, kind=RouteKind.HOME))
    for landing in landings:
        table.add(
            RouteDescriptor(
                path=landing.path,
                kind=RouteKind.CATEGORY,
                category_id=landing.category_id,
                featured_product_types=landing.featured_product_types,
            )
        )

    for subcategory in snapshot.subcategories.values():
        if subcategory.category_id not in navigable:
            continue
        category = snapshot.categories.get(subcategory.category_id)
        if category is None:
            logger.debug(
                "Skipping subcategory with unknown category",
                subcategory_id=subcategory.id,
                category_id=subcategory.category_id,
            )
            continue
        table.add(
            RouteDescriptor(
                path=f"/{category_slug(category)}/{subcategory_slug(subcategory)}",
                kind=RouteKind.SUBCATEGORY,
                category_id=category.id,
                subcategory_id=subcategory.id,
            )
        )

    # No navigable-category filter at this level.
    for product_type in snapshot.product_types.values():
        subcategory = snapshot.subcategories.get(product_type.subcategory_id)
        category = snapshot.categories.get(subcategory.category_id) if subcategory else None
        if subcategory is None or category is None:
            logger.debug(
                "Skipping product type with unresolved parent",
                product_type_id=product_type.id,
                subcategory_id=product_type.subcategory_id,
            )
            continue
        table.add(
            RouteDescriptor(
                path=(
                    f"/{category_slug(category)}/{subcategory_slug(subcategory)}"
                    f"/{product_type_slug(product_type)}"
                ),
                kind=RouteKind.PRODUCT_TYPE,
                category_id=category.id,
                subcategory_id=subcategory.id,
                product_type_id=product_type.id,
            )
        )

    for product in snapshot.products.values():
        table.add(
            RouteDescriptor(
                path=f"/products/{product.id}",
                kind=RouteKind.PRODUCT,
                product_id=product.id,
            )
        )

    table.add(RouteDescriptor(path=SHOPPING_CART_PATH, kind=RouteKind.SHOPPING_CART))
    table.add(RouteDescriptor(path=REGISTER_PATH, kind=RouteKind.REGISTER))
    table.add(RouteDescriptor(path=LOGIN_PATH, kind=RouteKind.LOGIN))
    table.add(RouteDescriptor(path=ACCOUNT_PATH, kind=RouteKind.ACCOUNT))
    table.add(RouteDescriptor(path=ADMIN_PATH, kind=RouteKind.ADMIN))

    return table
