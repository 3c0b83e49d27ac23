"""API request/response schemas.

Pydantic models for the storefront HTTP surface.
"""

from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error_code: str
    message: str
    details: list[Any] | dict[str, Any] = Field(default_factory=list)
    request_id: str | None = None


# ============================================================================
# Routes
# ============================================================================


class RouteSchema(BaseModel):
    """One path table entry."""

    path: str
    kind: str
    category_id: str | None = None
    subcategory_id: str | None = None
    product_type_id: str | None = None
    product_id: str | None = None
    featured_product_types: list[str] = Field(default_factory=list)


class RouteTableResponse(BaseModel):
    """The derived path table."""

    ready: bool
    routes: list[RouteSchema]
    collisions: list[RouteSchema]


# ============================================================================
# Tabs
# ============================================================================


class TabResponse(BaseModel):
    """State of one tab."""

    tab_id: str
    auth: str
    user: dict[str, Any] | None = None
    cart: dict[str, dict[str, Any]]
    cart_count: int


class CartResponse(BaseModel):
    """A tab's cart."""

    tab_id: str
    items: dict[str, dict[str, Any]]
    count: int


class CartItemRequest(BaseModel):
    """Set the quantity of one cart line."""

    quantity: int = Field(..., description="Units; 0 removes the line.")
    attributes: dict[str, Any] = Field(default_factory=dict)


class SignInRequest(BaseModel):
    """User returned by a successful login/registration."""

    user: dict[str, Any]


# ============================================================================
# Render
# ============================================================================


class ViewSchema(BaseModel):
    name: str
    props: dict[str, Any] = Field(default_factory=dict)


class RedirectSchema(BaseModel):
    to: str
    replace: bool


class ChromeSchema(BaseModel):
    cart_count: int
    logged_in: bool
    user: dict[str, Any] | None = None


class RenderResponse(BaseModel):
    """What a tab renders for a location."""

    path: str
    layout: str
    outcome: str
    route: RouteSchema | None = None
    view: ViewSchema | None = None
    redirect: RedirectSchema | None = None
    chrome: ChromeSchema | None = None
