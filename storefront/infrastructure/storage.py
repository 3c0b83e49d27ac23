"""Durable key/value storage shared by every tab, plus the change channel.

Storage behaves like a browser's ``localStorage``: string keys, string
values, one store per origin. Every write that changes a value publishes a
``StorageEvent`` on the ``StorageChannel``; the channel delivers it to
every subscribed context except the writer.

Delivery is asynchronous: each subscriber owns a queue and consumes events
as discrete messages.
"""

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger()


# ============================================================================
# Channel
# ============================================================================


@dataclass(frozen=True)
class StorageEvent:
    """A storage mutation observed from another context.

    Attributes:
        key: Storage key that changed.
        old_value: Previous raw value (None if absent).
        new_value: New raw value (None if removed).
        source: Context id of the writer.
    """

    key: str
    old_value: str | None
    new_value: str | None
    source: str | None


class StorageSubscription:
    """One context's inbox on the channel."""

    def __init__(self, context_id: str) -> None:
        self.context_id = context_id
        self._queue: asyncio.Queue[StorageEvent] = asyncio.Queue()

    def deliver(self, event: StorageEvent) -> None:
        self._queue.put_nowait(event)

    async def get(self) -> StorageEvent:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every delivered event has been processed."""
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class StorageChannel:
    """Explicit pub/sub bus for cross-context storage changes."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, StorageSubscription] = {}

    def subscribe(self, context_id: str) -> StorageSubscription:
        """Open an inbox for a context.

        Args:
            context_id: Unique id of the subscribing context (tab).

        Returns:
            The subscription to consume events from.
        """
        subscription = StorageSubscription(context_id)
        self._subscriptions[context_id] = subscription
        return subscription

    def unsubscribe(self, context_id: str) -> None:
        self._subscriptions.pop(context_id, None)

    def publish(self, event: StorageEvent) -> int:
        """Deliver an event to every context except its source.

        Returns:
            Number of contexts the event was delivered to.
        """
        delivered = 0
        for context_id, subscription in list(self._subscriptions.items()):
            if context_id == event.source:
                continue
            subscription.deliver(event)
            delivered += 1
        logger.debug(
            "Storage event published",
            key=event.key,
            source=event.source,
            delivered=delivered,
        )
        return delivered

    async def join(self) -> None:
        """Wait until every subscriber has processed its pending events."""
        for subscription in list(self._subscriptions.values()):
            await subscription.join()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


# ============================================================================
# Storage
# ============================================================================


class KeyValueStorage(ABC):
    """Base class for durable string storage.

    Subclasses implement the raw read/write; this class handles change
    detection and publication.
    """

    def __init__(self, channel: StorageChannel | None = None) -> None:
        """Initialize storage.

        Args:
            channel: Channel to publish changes on (None disables publication).
        """
        self.channel = channel

    @abstractmethod
    def _read(self, key: str) -> str | None:
        """Read a raw value."""

    @abstractmethod
    def _write(self, key: str, value: str | None) -> None:
        """Write a raw value; None deletes the key."""

    def get_item(self, key: str) -> str | None:
        return self._read(key)

    def set_item(self, key: str, value: str, source: str | None = None) -> None:
        """Store a value, publishing a change event if it differs.

        Args:
            key: Storage key.
            value: Raw string value.
            source: Context id of the writer.
        """
        self._change(key, value, source)

    def remove_item(self, key: str, source: str | None = None) -> None:
        self._change(key, None, source)

    def _change(self, key: str, value: str | None, source: str | None) -> None:
        old_value = self._read(key)
        if old_value == value:
            return
        self._write(key, value)
        if self.channel is not None:
            self.channel.publish(
                StorageEvent(key=key, old_value=old_value, new_value=value, source=source)
            )


class MemoryStorage(KeyValueStorage):
    """In-process storage; lives as long as the process."""

    def __init__(self, channel: StorageChannel | None = None) -> None:
        super().__init__(channel)
        self._data: dict[str, str] = {}

    def _read(self, key: str) -> str | None:
        return self._data.get(key)

    def _write(self, key: str, value: str | None) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value


class FileStorage(KeyValueStorage):
    """Storage persisted as one JSON object in a file.

    Writes replace the file atomically. A missing or unreadable file reads
    as empty storage.
    """

    def __init__(self, path: str | Path, channel: StorageChannel | None = None) -> None:
        super().__init__(channel)
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Unreadable storage file", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage file is not an object", path=str(self.path))
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _read(self, key: str) -> str | None:
        return self._load().get(key)

    def _write(self, key: str, value: str | None) -> None:
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
