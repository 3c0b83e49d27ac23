"""Backend HTTP client.

Thin client over the storefront backend: catalog collections and the
cookie-based session endpoints. Every call returns an ``APIResponse``;
transport and decoding failures are converted to error responses and
never raised to the caller.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import httpx
import structlog

from storefront.catalog.models import Category, Product, ProductType, Subcategory
from storefront.infrastructure.config import Settings

logger = structlog.get_logger()

M = TypeVar("M")


@dataclass
class APIError:
    """Represents an API error response."""

    error_code: str
    message: str
    status_code: int | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class APIResponse:
    """Represents an API response."""

    success: bool
    status_code: int | None = None
    data: dict[str, Any] | list[Any] | None = None
    error: APIError | None = None


class BackendClient:
    """HTTP client for the storefront backend.

    One instance per credential scope: the catalog loader uses an
    anonymous client, each tab uses a client carrying that tab's cookies
    so that ``GET /user/auth`` sees the session.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        cookies: dict[str, str] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: Backend base URL.
            timeout: Request timeout in seconds.
            cookies: Session cookies sent with every request.
            settings: Settings providing endpoint paths (defaults if omitted).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cookies = dict(cookies or {})
        self.settings = settings or Settings()
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, cookies: dict[str, str] | None = None
    ) -> "BackendClient":
        """Create a client configured from application settings."""
        return cls(
            base_url=settings.backend_url,
            timeout=settings.backend_timeout,
            cookies=cookies,
            settings=settings,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                cookies=self.cookies,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str) -> APIResponse:
        """Make a backend request.

        Args:
            method: HTTP method.
            path: Endpoint path.

        Returns:
            APIResponse with success status and data or error.
        """
        client = await self._get_client()

        try:
            logger.debug("Making backend request", method=method, path=path)
            response = await client.request(method=method, url=path)
        except httpx.TimeoutException as e:
            logger.error("Backend request timeout", path=path, error=str(e))
            return APIResponse(
                success=False,
                error=APIError(
                    error_code="TIMEOUT",
                    message=f"Request timed out: {path}",
                ),
            )
        except httpx.RequestError as e:
            logger.error("Backend request failed", path=path, error=str(e))
            return APIResponse(
                success=False,
                error=APIError(
                    error_code="REQUEST_ERROR",
                    message=f"Request failed: {str(e)}",
                ),
            )

        if response.status_code >= 400:
            return APIResponse(
                success=False,
                status_code=response.status_code,
                error=APIError(
                    error_code=f"HTTP_{response.status_code}",
                    message=response.text[:200] or response.reason_phrase,
                    status_code=response.status_code,
                ),
            )

        if response.status_code == 204 or not response.content:
            return APIResponse(success=True, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "Backend returned invalid JSON",
                path=path,
                status_code=response.status_code,
                error=str(e),
            )
            return APIResponse(
                success=False,
                status_code=response.status_code,
                error=APIError(
                    error_code="INVALID_RESPONSE",
                    message=f"Invalid JSON from {path}",
                    status_code=response.status_code,
                ),
            )

        return APIResponse(success=True, status_code=response.status_code, data=data)

    # =========================================================================
    # Catalog Endpoints
    # =========================================================================

    async def _fetch_collection(
        self,
        path: str,
        factory: Callable[[dict[str, Any]], M],
    ) -> dict[str, M]:
        """Fetch a catalog collection keyed by id.

        The backend may answer with a list of documents or with a mapping
        keyed by id. Errors and unparseable documents degrade to an empty
        (or partial) collection.

        Args:
            path: Endpoint path.
            factory: Builds a model from one document.

        Returns:
            Mapping from id to model, empty on any failure.
        """
        result = await self._request("GET", path)
        if not result.success:
            logger.warning(
                "Catalog fetch failed",
                path=path,
                error_code=result.error.error_code if result.error else None,
            )
            return {}

        data = result.data
        if isinstance(data, dict):
            documents = list(data.values())
        elif isinstance(data, list):
            documents = data
        else:
            logger.warning("Catalog fetch returned no collection", path=path)
            return {}

        collection: dict[str, M] = {}
        for document in documents:
            if not isinstance(document, dict):
                logger.warning("Skipping non-object catalog document", path=path)
                continue
            try:
                item = factory(document)
            except (KeyError, TypeError) as e:
                logger.warning(
                    "Skipping malformed catalog document",
                    path=path,
                    missing=str(e),
                )
                continue
            collection[item.id] = item  # type: ignore[attr-defined]
        return collection

    async def fetch_categories(self) -> dict[str, Category]:
        """Fetch all categories keyed by id."""
        return await self._fetch_collection(
            self.settings.categories_path, Category.from_api_response
        )

    async def fetch_subcategories(self) -> dict[str, Subcategory]:
        """Fetch all subcategories keyed by id."""
        return await self._fetch_collection(
            self.settings.subcategories_path, Subcategory.from_api_response
        )

    async def fetch_product_types(self) -> dict[str, ProductType]:
        """Fetch all product types keyed by id."""
        return await self._fetch_collection(
            self.settings.product_types_path, ProductType.from_api_response
        )

    async def fetch_products(self) -> dict[str, Product]:
        """Fetch all products keyed by id."""
        return await self._fetch_collection(
            self.settings.products_path, Product.from_api_response
        )

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    async def check_auth(self) -> APIResponse:
        """Ask the backend who owns the current session cookie.

        Returns:
            APIResponse; ``data`` is ``{"user": {...}}`` on 200.
        """
        return await self._request("GET", self.settings.auth_path)

    async def logout(self) -> APIResponse:
        """End the backend session."""
        return await self._request("GET", self.settings.logout_path)
