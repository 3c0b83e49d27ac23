"""Path derivation, layout guard and router."""

from storefront.routing.guard import LayoutKind, decide_layout
from storefront.routing.paths import (
    CategoryLanding,
    PathTable,
    RouteDescriptor,
    RouteKind,
    resolve_paths,
)
from storefront.routing.router import RenderOutcome, RenderResult, Router

__all__ = [
    "CategoryLanding",
    "LayoutKind",
    "PathTable",
    "RenderOutcome",
    "RenderResult",
    "RouteDescriptor",
    "RouteKind",
    "Router",
    "decide_layout",
    "resolve_paths",
]
