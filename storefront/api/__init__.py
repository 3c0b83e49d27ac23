"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from storefront.api.health import router as health_router
from storefront.api.routes import router as routes_router
from storefront.api.tabs import router as tabs_router

__all__ = [
    "health_router",
    "routes_router",
    "tabs_router",
]
