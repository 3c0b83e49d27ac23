"""Router.

Turns a path table into route entries and renders a location. Dispatch is
table driven: each ``RouteKind`` maps to a view builder. The layout comes
from the guard; the account route additionally consults the auth state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from storefront.catalog.store import CatalogSnapshot
from storefront.domain.auth import AuthState
from storefront.domain.cart import CartEntry, cart_to_dict, item_count
from storefront.routing.guard import LayoutKind, decide_layout
from storefront.routing.paths import LOGIN_PATH, PathTable, RouteDescriptor, RouteKind


class RenderOutcome(str, Enum):
    """What the content area shows."""

    VIEW = "view"
    SUPPRESSED = "suppressed"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"
    NOTHING = "nothing"


@dataclass(frozen=True)
class View:
    """A page to render with its props."""

    name: str
    props: dict[str, Any] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class Redirect:
    """A navigation instead of a page."""

    to: str
    replace: bool = True


@dataclass(frozen=True)
class Chrome:
    """Navigation bar and footer context."""

    cart_count: int
    logged_in: bool
    user: dict[str, Any] | None = field(default=None, hash=False)


@dataclass(frozen=True)
class RenderResult:
    """Everything needed to draw one location.

    Attributes:
        path: The rendered location.
        layout: Wrapping decided by the guard.
        outcome: What the content area holds.
        route: Matched descriptor, if any.
        view: Page to render when outcome is VIEW or NOT_FOUND.
        redirect: Target when outcome is REDIRECT.
        chrome: Navigation context when layout is CHROME.
    """

    path: str
    layout: LayoutKind
    outcome: RenderOutcome
    route: RouteDescriptor | None = None
    view: View | None = None
    redirect: Redirect | None = None
    chrome: Chrome | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "layout": self.layout.value,
            "outcome": self.outcome.value,
            "route": self.route.to_dict() if self.route else None,
            "view": {"name": self.view.name, "props": self.view.props} if self.view else None,
            "redirect": (
                {"to": self.redirect.to, "replace": self.redirect.replace}
                if self.redirect
                else None
            ),
            "chrome": (
                {
                    "cart_count": self.chrome.cart_count,
                    "logged_in": self.chrome.logged_in,
                    "user": self.chrome.user,
                }
                if self.chrome
                else None
            ),
        }


@dataclass(frozen=True)
class RenderContext:
    """Per-render inputs owned by the tab."""

    auth: AuthState
    cart: Mapping[str, CartEntry]


@dataclass(frozen=True)
class RouteEntry:
    """A descriptor paired with the builder that renders it."""

    descriptor: RouteDescriptor
    build: Callable[[RouteDescriptor, CatalogSnapshot, RenderContext], View | Redirect | None]


# ============================================================================
# View builders
# ============================================================================


def _entity(mapping: Mapping[str, Any], key: str | None) -> dict[str, Any] | None:
    item = mapping.get(key) if key is not None else None
    return item.to_dict() if item is not None else None


def _home(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View("homepage")


def _category(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View(
        "category_page",
        {
            "category_id": route.category_id,
            "category": _entity(catalog.categories, route.category_id),
            "featured_product_types": list(route.featured_product_types),
        },
    )


def _subcategory(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View(
        "products_container",
        {
            "container_type": "Subcategory",
            "category": _entity(catalog.categories, route.category_id),
            "subcategory": _entity(catalog.subcategories, route.subcategory_id),
        },
    )


def _product_type(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View(
        "products_container",
        {
            "container_type": "ProductType",
            "category": _entity(catalog.categories, route.category_id),
            "subcategory": _entity(catalog.subcategories, route.subcategory_id),
            "product_type": _entity(catalog.product_types, route.product_type_id),
        },
    )


def _product(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View(
        "product_page",
        {
            "product": _entity(catalog.products, route.product_id),
            "cart_items": cart_to_dict(ctx.cart),
        },
    )


def _shopping_cart(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View("shopping_cart", {"cart_items": cart_to_dict(ctx.cart)})


def _register(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View("register")


def _login(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View("login")


def _account(
    route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext
) -> View | Redirect | None:
    """Protected route: nothing while pending, redirect when anonymous."""
    if ctx.auth.is_pending:
        return None
    if ctx.auth.is_authenticated:
        return View("account", {"user": ctx.auth.user})
    return Redirect(to=LOGIN_PATH, replace=True)


def _admin(route: RouteDescriptor, catalog: CatalogSnapshot, ctx: RenderContext) -> View:
    return View("admin")


VIEW_BUILDERS: dict[
    RouteKind,
    Callable[[RouteDescriptor, CatalogSnapshot, RenderContext], View | Redirect | None],
] = {
    RouteKind.HOME: _home,
    RouteKind.CATEGORY: _category,
    RouteKind.SUBCATEGORY: _subcategory,
    RouteKind.PRODUCT_TYPE: _product_type,
    RouteKind.PRODUCT: _product,
    RouteKind.SHOPPING_CART: _shopping_cart,
    RouteKind.REGISTER: _register,
    RouteKind.LOGIN: _login,
    RouteKind.ACCOUNT: _account,
    RouteKind.ADMIN: _admin,
}


# ============================================================================
# Router
# ============================================================================


class Router:
    """Route entries for one path table.

    Rebuilt whenever the path table is recomputed; never patched.
    """

    def __init__(self, table: PathTable, catalog: CatalogSnapshot) -> None:
        """Instantiate one entry per descriptor.

        Args:
            table: Path table to route over.
            catalog: Snapshot the table was derived from.
        """
        self.table = table
        self.catalog = catalog
        self.entries: dict[str, RouteEntry] = {
            descriptor.path: RouteEntry(descriptor, VIEW_BUILDERS[descriptor.kind])
            for descriptor in table
        }

    @property
    def ready(self) -> bool:
        return self.catalog.ready

    def render(
        self,
        pathname: str,
        auth: AuthState,
        cart: Mapping[str, CartEntry] | None = None,
    ) -> RenderResult:
        """Render a location.

        Args:
            pathname: Location path.
            auth: The tab's auth state.
            cart: The tab's cart.

        Returns:
            The render result. Never raises for unknown paths.
        """
        ctx = RenderContext(auth=auth, cart=cart or {})
        layout = decide_layout(pathname, self.table, self.ready)

        if layout is LayoutKind.SHELL:
            return RenderResult(path=pathname, layout=layout, outcome=RenderOutcome.NOTHING)
        if layout is LayoutKind.NOT_FOUND:
            return RenderResult(
                path=pathname,
                layout=layout,
                outcome=RenderOutcome.NOT_FOUND,
                view=View("not_found"),
            )

        entry = self.entries[pathname]
        content = entry.build(entry.descriptor, self.catalog, ctx)

        chrome = None
        if layout is LayoutKind.CHROME:
            chrome = Chrome(
                cart_count=item_count(ctx.cart),
                logged_in=auth.is_authenticated,
                user=auth.user,
            )

        if content is None:
            outcome = RenderOutcome.SUPPRESSED
            view, redirect = None, None
        elif isinstance(content, Redirect):
            outcome = RenderOutcome.REDIRECT
            view, redirect = None, content
        else:
            outcome = RenderOutcome.VIEW
            view, redirect = content, None

        return RenderResult(
            path=pathname,
            layout=layout,
            outcome=outcome,
            route=entry.descriptor,
            view=view,
            redirect=redirect,
            chrome=chrome,
        )
