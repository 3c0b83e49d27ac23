"""Tests for the storefront state container and tab sessions."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from storefront.application.storefront import Storefront
from storefront.domain.exceptions import TabNotFoundError
from storefront.infrastructure.storage import MemoryStorage
from storefront.routing.guard import LayoutKind
from storefront.routing.router import RenderOutcome


@pytest.fixture
def opened_sessions() -> list[tuple[dict[str, str], object]]:
    """(cookies, client) for every session client the storefront created."""
    return []


@pytest.fixture
def make_storefront(
    catalog_source, session_client, storage: MemoryStorage, landings, opened_sessions
):
    """Build a storefront whose tabs get mocked session clients."""

    def _make(response=None, **options) -> Storefront:
        def factory(cookies: dict[str, str]):
            client = session_client(response)
            opened_sessions.append((cookies, client))
            return client

        return Storefront(
            catalog_source=catalog_source,
            session_client_factory=factory,
            storage=storage,
            landings=landings,
            **options,
        )

    return _make


class TestStorefrontCatalog:
    """Tests for catalog loading and path table recomputation."""

    def test_starts_with_static_routes_only(self, make_storefront) -> None:
        storefront = make_storefront()

        assert not storefront.ready
        assert "/femei" in storefront.path_table
        assert "/femei/haine" not in storefront.path_table

    @pytest.mark.asyncio
    async def test_path_table_recomputed_after_load(self, make_storefront, catalog_source) -> None:
        storefront = make_storefront()

        await storefront.start()
        await storefront.wait_until_loaded()

        assert storefront.ready
        assert "/femei/haine/fuste+scurte" in storefront.path_table
        assert storefront.router.table is storefront.path_table
        catalog_source.fetch_categories.assert_awaited_once()
        catalog_source.fetch_products.assert_awaited_once()

        await storefront.close()

    @pytest.mark.asyncio
    async def test_failed_collection_keeps_storefront_unready(
        self, make_storefront, catalog_source
    ) -> None:
        catalog_source.fetch_product_types = AsyncMock(side_effect=RuntimeError("boom"))
        storefront = make_storefront()

        await storefront.start()
        await storefront.wait_until_loaded()

        assert not storefront.ready
        assert "/products/p1" in storefront.path_table
        await storefront.close()

    @pytest.mark.asyncio
    async def test_close_cancels_fetches(self, make_storefront, catalog_source) -> None:
        never = asyncio.Event()

        async def hang():
            await never.wait()
            return {}

        catalog_source.fetch_categories = AsyncMock(side_effect=hang)
        storefront = make_storefront()
        await storefront.start()
        await asyncio.sleep(0)

        await storefront.close()

        assert not storefront.catalog.snapshot.categories
        catalog_source.close.assert_awaited_once()


class TestTabSessions:
    """Tests for tab lifecycle and rendering."""

    @pytest.mark.asyncio
    async def test_open_tab_forwards_cookies(self, make_storefront, opened_sessions) -> None:
        storefront = make_storefront()

        tab = storefront.open_tab({"connect.sid": "abc"})

        assert storefront.get_tab(tab.id) is tab
        assert opened_sessions[0][0] == {"connect.sid": "abc"}
        await storefront.close()

    @pytest.mark.asyncio
    async def test_tab_resolves_auth_in_background(
        self, make_storefront, auth_response
    ) -> None:
        storefront = make_storefront(auth_response(200, {"user": {"id": "u1"}}))
        tab = storefront.open_tab()

        assert tab.auth.state.is_pending
        state = await tab.wait_for_auth()

        assert state.is_authenticated
        assert tab.to_dict()["auth"] == "authenticated"
        await storefront.close()

    @pytest.mark.asyncio
    async def test_account_render_follows_auth(self, make_storefront) -> None:
        storefront = make_storefront()
        await storefront.start()
        await storefront.wait_until_loaded()
        tab = storefront.open_tab()

        pending = tab.render("/account")
        await tab.wait_for_auth()
        resolved = tab.render("/account")

        assert pending.outcome is RenderOutcome.SUPPRESSED
        assert resolved.outcome is RenderOutcome.REDIRECT
        assert resolved.redirect.to == "/login"
        await storefront.close()

    @pytest.mark.asyncio
    async def test_tabs_share_cart(self, make_storefront, storage: MemoryStorage) -> None:
        storefront = make_storefront()
        tab_a = storefront.open_tab()
        tab_b = storefront.open_tab()

        tab_a.cart.add_item("p1", 2)
        await storage.channel.join()

        assert tab_b.cart.item_count == 2
        await storefront.close()

    @pytest.mark.asyncio
    async def test_new_tab_loads_stored_cart(self, make_storefront) -> None:
        storefront = make_storefront()
        first = storefront.open_tab()
        first.cart.add_item("p1", 1)

        second = storefront.open_tab()

        assert second.cart.item_count == 1
        await storefront.close()

    @pytest.mark.asyncio
    async def test_render_before_load_is_shell(self, make_storefront) -> None:
        storefront = make_storefront()
        tab = storefront.open_tab()

        assert tab.render("/").layout is LayoutKind.SHELL
        assert tab.render("/admin").layout is LayoutKind.BARE
        await storefront.close()

    @pytest.mark.asyncio
    async def test_close_tab(self, make_storefront, storage: MemoryStorage, opened_sessions) -> None:
        storefront = make_storefront()
        tab = storefront.open_tab()

        await storefront.close_tab(tab.id)

        assert storefront.tab_count == 0
        assert storage.channel.subscriber_count == 0
        opened_sessions[0][1].close.assert_awaited_once()
        with pytest.raises(TabNotFoundError):
            storefront.get_tab(tab.id)
        with pytest.raises(TabNotFoundError):
            await storefront.close_tab(tab.id)

    @pytest.mark.asyncio
    async def test_close_closes_every_tab(self, make_storefront) -> None:
        storefront = make_storefront()
        storefront.open_tab()
        storefront.open_tab()

        await storefront.close()

        assert storefront.tab_count == 0


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestIdleTabs:
    """Tests for closing tabs nobody uses anymore."""

    @pytest.mark.asyncio
    async def test_expires_tabs_idle_past_timeout(
        self, make_storefront, storage: MemoryStorage, opened_sessions
    ) -> None:
        clock = FakeClock()
        storefront = make_storefront(tab_idle_timeout=30.0, clock=clock)
        idle = storefront.open_tab()
        active = storefront.open_tab()

        clock.now += 20
        storefront.get_tab(active.id)
        clock.now += 15

        expired = await storefront.expire_idle_tabs()

        assert expired == [idle.id]
        assert storefront.tab_count == 1
        assert storage.channel.subscriber_count == 1
        opened_sessions[0][1].close.assert_awaited_once()
        with pytest.raises(TabNotFoundError):
            storefront.get_tab(idle.id)
        await storefront.close()

    @pytest.mark.asyncio
    async def test_no_timeout_keeps_tabs(self, make_storefront) -> None:
        clock = FakeClock()
        storefront = make_storefront(clock=clock)
        storefront.open_tab()

        clock.now += 10**6

        assert await storefront.expire_idle_tabs() == []
        assert storefront.tab_count == 1
        await storefront.close()

    @pytest.mark.asyncio
    async def test_sweeper_runs_after_start(self, make_storefront) -> None:
        clock = FakeClock()
        storefront = make_storefront(tab_idle_timeout=5.0, sweep_interval=0.01, clock=clock)
        await storefront.start()
        storefront.open_tab()

        clock.now += 10
        for _ in range(100):
            if storefront.tab_count == 0:
                break
            await asyncio.sleep(0.01)

        assert storefront.tab_count == 0
        await storefront.close()
        assert storefront._sweeper is None

    @pytest.mark.asyncio
    async def test_sweeper_not_started_without_timeout(self, make_storefront) -> None:
        storefront = make_storefront()

        await storefront.start()

        assert storefront._sweeper is None
        await storefront.close()
