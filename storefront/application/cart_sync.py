"""Cart synchronizer.

Owns one tab's cart state and keeps it consistent with durable storage
and with the other tabs:

- state is read from storage once, at construction;
- every in-tab mutation writes storage synchronously before returning
  (non-empty carts only, unless ``persist_empty`` is set);
- changes written by other tabs arrive as discrete events on the storage
  channel and replace local state wholesale (last write wins).

Two tabs mutating concurrently can lose an update; there is no
read-modify-write across tabs.
"""

import asyncio
from types import MappingProxyType
from typing import Any, Callable, Mapping

import structlog

from storefront.domain.cart import (
    CartEntry,
    CartItems,
    decode_cart,
    encode_cart,
    item_count,
    validate_quantity,
)
from storefront.domain.exceptions import MalformedCartError
from storefront.infrastructure.storage import (
    KeyValueStorage,
    StorageEvent,
    StorageSubscription,
)

logger = structlog.get_logger()

CartListener = Callable[[Mapping[str, CartEntry]], None]


class CartSynchronizer:
    """Cart state for one tab.

    Example usage:
        sync = CartSynchronizer(storage, context_id="tab-1")
        sync.start()               # begin listening for other tabs
        sync.add_item("p1", 2)     # storage already updated here
        await sync.close()
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        context_id: str,
        key: str = "cartItems",
        persist_empty: bool = False,
    ) -> None:
        """Initialize the synchronizer and load the stored cart.

        Args:
            storage: Shared durable storage.
            context_id: Id of the owning tab (writer id on the channel).
            key: Storage key holding the cart.
            persist_empty: Also write the empty cart to storage.
        """
        self.storage = storage
        self.context_id = context_id
        self.key = key
        self.persist_empty = persist_empty
        self._listeners: list[CartListener] = []
        self._subscription: StorageSubscription | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._items: CartItems = self._load()

    def _load(self) -> CartItems:
        raw = self.storage.get_item(self.key)
        try:
            return decode_cart(raw)
        except MalformedCartError as e:
            logger.warning(
                "Stored cart is malformed, starting empty",
                context_id=self.context_id,
                key=self.key,
                reason=e.details.get("reason"),
            )
            return {}

    # =========================================================================
    # State
    # =========================================================================

    @property
    def items(self) -> Mapping[str, CartEntry]:
        """Read-only view of the current cart."""
        return MappingProxyType(self._items)

    @property
    def item_count(self) -> int:
        return item_count(self._items)

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a listener called after every state change.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        view = self.items
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception(
                    "Cart listener failed",
                    context_id=self.context_id,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                )

    # =========================================================================
    # In-tab mutations
    # =========================================================================

    def replace(self, items: Mapping[str, CartEntry]) -> None:
        """Set the whole cart and persist it."""
        self._items = dict(items)
        self._persist()
        self._notify()

    def _line_attributes(
        self, product_id: str, attributes: Mapping[str, Any] | None
    ) -> dict[str, Any]:
        """Existing line attributes updated with ``attributes``.

        ``quantity`` is the line's own field and never stored as an attribute.
        """
        existing = self._items.get(product_id)
        merged = {**(existing.attributes if existing else {}), **(attributes or {})}
        merged.pop("quantity", None)
        return merged

    def add_item(
        self,
        product_id: str,
        quantity: int = 1,
        attributes: Mapping[str, Any] | None = None,
    ) -> CartEntry:
        """Add units of a product, merging attributes into an existing line.

        Args:
            product_id: Product to add.
            quantity: Units to add.
            attributes: Line metadata (size, color...), merged over existing.

        Returns:
            The resulting cart entry.
        """
        validate_quantity(quantity)
        existing = self._items.get(product_id)
        entry = CartEntry(
            quantity=quantity + (existing.quantity if existing else 0),
            attributes=self._line_attributes(product_id, attributes),
        )

        items = dict(self._items)
        items[product_id] = entry
        self.replace(items)
        return entry

    def set_quantity(
        self,
        product_id: str,
        quantity: int,
        attributes: Mapping[str, Any] | None = None,
    ) -> CartEntry | None:
        """Set the quantity of a line; zero removes it.

        Returns:
            The resulting entry, or None if the line was removed.
        """
        if quantity == 0:
            self.remove_item(product_id)
            return None

        validate_quantity(quantity)
        entry = CartEntry(
            quantity=quantity,
            attributes=self._line_attributes(product_id, attributes),
        )

        items = dict(self._items)
        items[product_id] = entry
        self.replace(items)
        return entry

    def remove_item(self, product_id: str) -> bool:
        """Remove a line.

        Returns:
            True if the product was in the cart.
        """
        if product_id not in self._items:
            return False
        items = dict(self._items)
        del items[product_id]
        self.replace(items)
        return True

    def clear(self) -> None:
        self.replace({})

    def _persist(self) -> None:
        if not self._items and not self.persist_empty:
            # Storage keeps the last non-empty cart.
            return
        self.storage.set_item(self.key, encode_cart(self._items), source=self.context_id)

    # =========================================================================
    # Cross-tab
    # =========================================================================

    def start(self) -> None:
        """Subscribe to the storage channel and start consuming events.

        Must be called from a running event loop. No-op without a channel.
        """
        if self._listen_task is not None or self.storage.channel is None:
            return
        self._subscription = self.storage.channel.subscribe(self.context_id)
        self._listen_task = asyncio.create_task(
            self._listen(self._subscription), name=f"cart-sync-{self.context_id}"
        )

    async def _listen(self, subscription: StorageSubscription) -> None:
        while True:
            event = await subscription.get()
            try:
                self.apply_event(event)
            except Exception:
                logger.exception(
                    "Failed to apply storage event",
                    context_id=self.context_id,
                    key=event.key,
                )
            finally:
                subscription.task_done()

    def apply_event(self, event: StorageEvent) -> bool:
        """Adopt a value written by another tab.

        No merge and no write-back: the received value becomes the cart.
        A removed key empties the cart; a malformed value is ignored.

        Returns:
            True if local state changed.
        """
        if event.key != self.key or event.source == self.context_id:
            return False
        try:
            items = decode_cart(event.new_value)
        except MalformedCartError as e:
            logger.warning(
                "Ignoring malformed cart from another tab",
                context_id=self.context_id,
                source=event.source,
                reason=e.details.get("reason"),
            )
            return False

        self._items = items
        logger.debug(
            "Adopted cart from another tab",
            context_id=self.context_id,
            source=event.source,
            lines=len(items),
        )
        self._notify()
        return True

    async def close(self) -> None:
        """Stop listening and leave the channel."""
        if self.storage.channel is not None and self._subscription is not None:
            self.storage.channel.unsubscribe(self.context_id)
        if self._listen_task is not None:
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
            self._listen_task = None
        self._subscription = None
