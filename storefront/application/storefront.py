"""Storefront application state.

One ``Storefront`` per process owns everything app-wide: the catalog
store and loader, the derived path table and router, and the durable cart
storage with its cross-tab channel. Each open browser tab is a
``TabSession`` owned by the storefront, holding the tab's own cart
synchronizer and auth gate.

Lifecycle:
    storefront = Storefront.from_settings(settings)
    await storefront.start()         # catalog fetches begin
    tab = storefront.open_tab(cookies)
    tab.render("/femei")
    await storefront.close()         # cancels fetches, closes every tab
"""

import asyncio
import time
from typing import Any, Callable
from uuid import uuid4

import structlog

from storefront.application.auth_gate import AuthGate, SessionClient
from storefront.application.cart_sync import CartSynchronizer
from storefront.catalog.store import CatalogLoader, CatalogSnapshot, CatalogSource, CatalogStore
from storefront.domain.auth import AuthState
from storefront.domain.cart import cart_to_dict
from storefront.domain.exceptions import TabNotFoundError
from storefront.infrastructure.backend_client import BackendClient
from storefront.infrastructure.config import Settings
from storefront.infrastructure.storage import (
    FileStorage,
    KeyValueStorage,
    MemoryStorage,
    StorageChannel,
)
from storefront.routing.paths import CategoryLanding, PathTable, landings_from_settings, resolve_paths
from storefront.routing.router import RenderResult, Router

logger = structlog.get_logger()

SessionClientFactory = Callable[[dict[str, str]], SessionClient]


class TabSession:
    """One open tab: its cart and its identity."""

    def __init__(
        self,
        storefront: "Storefront",
        tab_id: str,
        cart: CartSynchronizer,
        auth: AuthGate,
    ) -> None:
        self.storefront = storefront
        self.id = tab_id
        self.cart = cart
        self.auth = auth
        self.last_seen = 0.0
        self._auth_task: asyncio.Task[AuthState] | None = None

    def start(self) -> None:
        """Begin listening to other tabs and start the session check."""
        self.cart.start()
        if self._auth_task is None:
            self._auth_task = asyncio.create_task(
                self.auth.check(), name=f"auth-check-{self.id}"
            )

    async def wait_for_auth(self) -> AuthState:
        """Wait for the session check to resolve."""
        if self._auth_task is None:
            return await self.auth.check()
        return await asyncio.shield(self._auth_task)

    def render(self, pathname: str) -> RenderResult:
        """Render a location for this tab."""
        return self.storefront.router.render(pathname, self.auth.state, self.cart.items)

    def to_dict(self) -> dict[str, Any]:
        state = self.auth.state
        return {
            "tab_id": self.id,
            "auth": state.status.value,
            "user": state.user,
            "cart": cart_to_dict(self.cart.items),
            "cart_count": self.cart.item_count,
        }

    async def close(self) -> None:
        """Tear down: cancel a pending check and leave the channel."""
        if self._auth_task is not None and not self._auth_task.done():
            self._auth_task.cancel()
            try:
                await self._auth_task
            except asyncio.CancelledError:
                pass
        await self.cart.close()
        client_close = getattr(self.auth.client, "close", None)
        if client_close is not None:
            await client_close()


class Storefront:
    """Application-state container owned by the process root."""

    def __init__(
        self,
        catalog_source: CatalogSource,
        session_client_factory: SessionClientFactory,
        storage: KeyValueStorage,
        landings: tuple[CategoryLanding, ...],
        cart_key: str = "cartItems",
        persist_empty_cart: bool = False,
        tab_idle_timeout: float | None = None,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the storefront.

        Args:
            catalog_source: Source of the catalog collections.
            session_client_factory: Builds a session client from tab cookies.
            storage: Shared durable storage (with its channel).
            landings: Category landing pages.
            cart_key: Storage key of the cart.
            persist_empty_cart: Write empty carts to storage too.
            tab_idle_timeout: Seconds without a request after which a tab is
                closed. None keeps tabs until they are closed explicitly.
            sweep_interval: Seconds between idle-tab sweeps.
            clock: Monotonic time source.
        """
        self.catalog_source = catalog_source
        self.session_client_factory = session_client_factory
        self.storage = storage
        self.landings = landings
        self.cart_key = cart_key
        self.persist_empty_cart = persist_empty_cart
        self.tab_idle_timeout = tab_idle_timeout
        self.sweep_interval = sweep_interval
        self.clock = clock

        self.catalog = CatalogStore()
        self.loader = CatalogLoader(catalog_source, self.catalog)
        self._tabs: dict[str, TabSession] = {}
        self._sweeper: asyncio.Task[None] | None = None
        self._path_table = resolve_paths(self.catalog.snapshot, landings)
        self._router = Router(self._path_table, self.catalog.snapshot)
        self._unsubscribe_catalog = self.catalog.subscribe(self._on_catalog_change)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Storefront":
        """Wire the storefront against the configured backend and storage."""
        channel = StorageChannel()
        storage: KeyValueStorage
        if settings.cart_storage_file:
            storage = FileStorage(settings.cart_storage_file, channel)
        else:
            storage = MemoryStorage(channel)

        return cls(
            catalog_source=BackendClient.from_settings(settings),
            session_client_factory=lambda cookies: BackendClient.from_settings(
                settings, cookies=cookies
            ),
            storage=storage,
            landings=landings_from_settings(settings),
            cart_key=settings.cart_storage_key,
            persist_empty_cart=settings.cart_persist_empty,
            tab_idle_timeout=settings.tab_idle_timeout,
            sweep_interval=settings.tab_sweep_interval,
        )

    # =========================================================================
    # Catalog-derived state
    # =========================================================================

    def _on_catalog_change(self, snapshot: CatalogSnapshot) -> None:
        self._path_table = resolve_paths(snapshot, self.landings)
        self._router = Router(self._path_table, snapshot)
        logger.info(
            "Path table recomputed",
            routes=len(self._path_table),
            collisions=len(self._path_table.collisions),
            ready=snapshot.ready,
        )

    @property
    def path_table(self) -> PathTable:
        return self._path_table

    @property
    def router(self) -> Router:
        return self._router

    @property
    def ready(self) -> bool:
        return self.catalog.ready

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the concurrent catalog fetches and the idle-tab sweeper."""
        self.loader.start()
        if self.tab_idle_timeout is not None and self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep(), name="tab-sweeper")

    async def wait_until_loaded(self) -> None:
        """Wait for every catalog fetch to finish (successfully or not)."""
        await self.loader.wait()

    async def close(self) -> None:
        """Cancel fetches, close every tab and release clients."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        await self.loader.close()
        for tab_id in list(self._tabs):
            await self.close_tab(tab_id)
        self._unsubscribe_catalog()
        source_close = getattr(self.catalog_source, "close", None)
        if source_close is not None:
            await source_close()
        logger.info("Storefront closed")

    async def _sweep(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await self.expire_idle_tabs()
            except Exception:
                logger.exception("Idle tab sweep failed")

    # =========================================================================
    # Tabs
    # =========================================================================

    def open_tab(self, cookies: dict[str, str] | None = None) -> TabSession:
        """Open a tab: load its cart and start its session check.

        Must be called from a running event loop.

        Args:
            cookies: The tab's cookies, forwarded to the session endpoint.

        Returns:
            The new tab session.
        """
        tab_id = str(uuid4())
        cart = CartSynchronizer(
            self.storage,
            context_id=tab_id,
            key=self.cart_key,
            persist_empty=self.persist_empty_cart,
        )
        auth = AuthGate(self.session_client_factory(dict(cookies or {})), owner_id=tab_id)
        tab = TabSession(self, tab_id, cart, auth)
        tab.last_seen = self.clock()
        self._tabs[tab_id] = tab
        tab.start()
        logger.info("Tab opened", tab_id=tab_id, cart_lines=len(cart.items))
        return tab

    def get_tab(self, tab_id: str) -> TabSession:
        """Look up an open tab and mark it as seen.

        Raises:
            TabNotFoundError: If no such tab is open.
        """
        tab = self._tabs.get(tab_id)
        if tab is None:
            raise TabNotFoundError(tab_id)
        tab.last_seen = self.clock()
        return tab

    async def close_tab(self, tab_id: str) -> None:
        """Close a tab.

        Raises:
            TabNotFoundError: If no such tab is open.
        """
        tab = self._tabs.pop(tab_id, None)
        if tab is None:
            raise TabNotFoundError(tab_id)
        await tab.close()
        logger.info("Tab closed", tab_id=tab_id)

    async def expire_idle_tabs(self) -> list[str]:
        """Close every tab not seen for longer than the idle timeout.

        Returns:
            Ids of the tabs that were closed.
        """
        if self.tab_idle_timeout is None:
            return []

        now = self.clock()
        idle = [
            tab_id
            for tab_id, tab in self._tabs.items()
            if now - tab.last_seen > self.tab_idle_timeout
        ]
        expired = []
        for tab_id in idle:
            try:
                await self.close_tab(tab_id)
            except TabNotFoundError:
                continue
            expired.append(tab_id)

        if expired:
            logger.info("Idle tabs expired", count=len(expired), remaining=len(self._tabs))
        return expired

    @property
    def tab_count(self) -> int:
        return len(self._tabs)
