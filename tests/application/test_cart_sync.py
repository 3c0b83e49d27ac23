"""Tests for the cart synchronizer."""

import json

import pytest

from storefront.application.cart_sync import CartSynchronizer
from storefront.domain.cart import CartEntry
from storefront.domain.exceptions import InvalidQuantityError
from storefront.infrastructure.storage import MemoryStorage, StorageChannel, StorageEvent

KEY = "cartItems"


class TestCartSynchronizerLocal:
    """Tests for in-tab mutations."""

    def test_loads_stored_cart_on_construction(self, storage: MemoryStorage) -> None:
        storage.set_item(KEY, json.dumps({"p1": {"quantity": 2}}))

        sync = CartSynchronizer(storage, context_id="tab-1")

        assert sync.items == {"p1": CartEntry(quantity=2)}
        assert sync.item_count == 2

    def test_malformed_stored_cart_starts_empty(self, storage: MemoryStorage) -> None:
        storage.set_item(KEY, "{definitely not json")

        sync = CartSynchronizer(storage, context_id="tab-1")

        assert sync.items == {}

    def test_mutation_is_written_before_returning(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")

        sync.add_item("p1", 2, {"size": "M"})

        assert json.loads(storage.get_item(KEY)) == {"p1": {"quantity": 2, "size": "M"}}

    def test_add_item_merges_quantity_and_attributes(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.add_item("p1", 1, {"size": "M"})

        entry = sync.add_item("p1", 2, {"color": "negru"})

        assert entry == CartEntry(quantity=3, attributes={"size": "M", "color": "negru"})

    def test_set_quantity_zero_removes_line(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.add_item("p1", 1)
        sync.add_item("p2", 1)

        assert sync.set_quantity("p1", 0) is None
        assert set(sync.items) == {"p2"}

    def test_invalid_quantity_leaves_state_untouched(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.add_item("p1", 1)

        with pytest.raises(InvalidQuantityError):
            sync.set_quantity("p1", -3)

        assert sync.items["p1"].quantity == 1

    def test_remove_missing_item_returns_false(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        assert sync.remove_item("nope") is False

    def test_empty_cart_is_not_written_by_default(self, storage: MemoryStorage) -> None:
        """Storage keeps the last non-empty cart."""
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.add_item("p1", 1)
        stored = storage.get_item(KEY)

        sync.clear()

        assert sync.items == {}
        assert storage.get_item(KEY) == stored

    def test_fresh_empty_cart_writes_nothing(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.replace({})
        assert storage.get_item(KEY) is None

    def test_persist_empty_writes_empty_object(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1", persist_empty=True)
        sync.add_item("p1", 1)

        sync.clear()

        assert storage.get_item(KEY) == "{}"

    def test_listeners_notified(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        seen: list[int] = []
        unsubscribe = sync.subscribe(lambda items: seen.append(len(items)))

        sync.add_item("p1", 1)
        unsubscribe()
        sync.add_item("p2", 1)

        assert seen == [1]

    def test_quantity_attribute_does_not_override_line_quantity(
        self, storage: MemoryStorage
    ) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")

        entry = sync.set_quantity("p1", 2, {"quantity": 9, "product_id": "x"})

        assert entry == CartEntry(quantity=2, attributes={"product_id": "x"})
        assert json.loads(storage.get_item(KEY)) == {"p1": {"product_id": "x", "quantity": 2}}

    def test_failing_listener_does_not_stop_the_others(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        seen: list[int] = []

        def broken(items: object) -> None:
            raise RuntimeError("render failed")

        sync.subscribe(broken)
        sync.subscribe(lambda items: seen.append(len(items)))

        sync.add_item("p1", 1)

        assert seen == [1]
        assert json.loads(storage.get_item(KEY)) == {"p1": {"quantity": 1}}


class TestCartSynchronizerEvents:
    """Tests for adopting changes written by other tabs."""

    def test_adopts_value_without_writing_back(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        event = StorageEvent(key=KEY, old_value=None, new_value='{"p9":{"quantity":5}}', source="tab-2")

        assert sync.apply_event(event) is True

        assert sync.items == {"p9": CartEntry(quantity=5)}
        assert storage.get_item(KEY) is None

    def test_ignores_own_events_and_other_keys(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")

        own = StorageEvent(key=KEY, old_value=None, new_value='{"p1":1}', source="tab-1")
        other_key = StorageEvent(key="theme", old_value=None, new_value='{"p1":1}', source="tab-2")

        assert sync.apply_event(own) is False
        assert sync.apply_event(other_key) is False
        assert sync.items == {}

    def test_malformed_event_is_ignored(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.add_item("p1", 1)

        event = StorageEvent(key=KEY, old_value=None, new_value="[oops", source="tab-2")

        assert sync.apply_event(event) is False
        assert sync.items == {"p1": CartEntry(quantity=1)}

    def test_removed_key_empties_cart(self, storage: MemoryStorage) -> None:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.add_item("p1", 1)

        event = StorageEvent(key=KEY, old_value='{"p1":1}', new_value=None, source="tab-2")

        assert sync.apply_event(event) is True
        assert sync.items == {}

    @pytest.mark.asyncio
    async def test_write_in_one_tab_reaches_the_other(
        self, storage: MemoryStorage, channel: StorageChannel
    ) -> None:
        """Tab B sees tab A's write once the channel drains."""
        tab_a = CartSynchronizer(storage, context_id="tab-a")
        tab_b = CartSynchronizer(storage, context_id="tab-b")
        tab_a.start()
        tab_b.start()
        seen_by_a: list[int] = []
        tab_a.subscribe(lambda items: seen_by_a.append(len(items)))

        tab_a.add_item("p1", 2)
        await channel.join()

        assert tab_b.items == {"p1": CartEntry(quantity=2)}
        # The writer is not notified of its own write through the channel.
        assert seen_by_a == [1]

        await tab_a.close()
        await tab_b.close()
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_received_cart_replaces_local_state(
        self, storage: MemoryStorage, channel: StorageChannel
    ) -> None:
        """No merge: the last written cart wins wholesale."""
        tab_a = CartSynchronizer(storage, context_id="tab-a")
        tab_b = CartSynchronizer(storage, context_id="tab-b")
        tab_a.start()
        tab_b.start()

        tab_a.add_item("p1", 1)
        await channel.join()
        tab_b.replace({"p2": CartEntry(quantity=4)})
        await channel.join()

        assert tab_a.items == {"p2": CartEntry(quantity=4)}
        assert json.loads(storage.get_item(KEY)) == {"p2": {"quantity": 4}}

        await tab_a.close()
        await tab_b.close()

    @pytest.mark.asyncio
    async def test_unchanged_write_publishes_nothing(
        self, storage: MemoryStorage, channel: StorageChannel
    ) -> None:
        tab_a = CartSynchronizer(storage, context_id="tab-a")
        tab_b = CartSynchronizer(storage, context_id="tab-b")
        tab_b.start()
        tab_a.add_item("p1", 1)
        await channel.join()
        updates: list[int] = []
        tab_b.subscribe(lambda items: updates.append(len(items)))

        tab_a.replace(dict(tab_a.items))
        await channel.join()

        assert updates == []
        await tab_b.close()

    @pytest.mark.asyncio
    async def test_failing_listener_keeps_tab_in_sync(
        self, storage: MemoryStorage, channel: StorageChannel
    ) -> None:
        tab_a = CartSynchronizer(storage, context_id="tab-a")
        tab_b = CartSynchronizer(storage, context_id="tab-b")
        tab_b.start()

        def broken(items: object) -> None:
            raise RuntimeError("render failed")

        tab_b.subscribe(broken)

        tab_a.add_item("p1", 1)
        await channel.join()
        tab_a.add_item("p2", 1)
        await channel.join()

        assert set(tab_b.items) == {"p1", "p2"}
        assert tab_b._listen_task is not None
        assert not tab_b._listen_task.done()
        assert tab_b._subscription.pending == 0

        await tab_b.close()

    @pytest.mark.asyncio
    async def test_error_applying_event_does_not_stop_listening(
        self,
        storage: MemoryStorage,
        channel: StorageChannel,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        tab_a = CartSynchronizer(storage, context_id="tab-a")
        tab_b = CartSynchronizer(storage, context_id="tab-b")
        apply_event = tab_b.apply_event
        calls: list[str] = []

        def flaky(event: StorageEvent) -> bool:
            calls.append(event.new_value or "")
            if len(calls) == 1:
                raise ValueError("unexpected payload")
            return apply_event(event)

        monkeypatch.setattr(tab_b, "apply_event", flaky)
        tab_b.start()

        tab_a.add_item("p1", 1)
        await channel.join()
        tab_a.add_item("p2", 3)
        await channel.join()

        assert len(calls) == 2
        assert tab_b.items == {"p1": CartEntry(quantity=1), "p2": CartEntry(quantity=3)}

        await tab_b.close()
