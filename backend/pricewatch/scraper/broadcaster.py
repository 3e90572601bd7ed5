"""Fan-out of price updates to subscriber channels."""

from __future__ import annotations

import asyncio
import itertools
import logging

from .errors import DeliveryFailure
from .models import PriceUpdate, normalize_symbol

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256

_CLOSED = object()  # Wakes a reader blocked in get() when the channel closes
_ids = itertools.count(1)


class Subscription:
    """A bounded delivery channel with an optional symbol filter.

    Consumers read with `await subscription.get()` or `async for`. Both end
    (None / StopAsyncIteration) once the subscription is closed.
    """

    def __init__(self, symbol: str | None = None, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.id = next(_ids)
        self.symbol = symbol
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def matches(self, update: PriceUpdate) -> bool:
        return self.symbol is None or self.symbol == update.symbol

    def deliver(self, update: PriceUpdate) -> None:
        """Enqueue without blocking. Raises DeliveryFailure if closed or full."""
        if self._closed:
            raise DeliveryFailure(f"Subscription {self.id} is closed")
        try:
            self._queue.put_nowait(update)
        except asyncio.QueueFull as e:
            raise DeliveryFailure(f"Subscription {self.id} is full ({self._queue.maxsize} pending)") from e

    async def get(self) -> PriceUpdate | None:
        """Next update in publish order, or None once closed."""
        if self._closed:
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass  # A full queue means nobody is blocked in get()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> PriceUpdate:
        update = await self.get()
        if update is None:
            raise StopAsyncIteration
        return update

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, symbol={self.symbol!r}, closed={self._closed})"


class Broadcaster:
    """Owns the set of live subscriptions and fans out each update.

    Writers: session controllers, through publish().
    Readers: transport endpoints, through their Subscription.

    A failing subscription is pruned; it never blocks or drops delivery to
    the others.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscriptions: dict[int, Subscription] = {}

    def subscribe(self, symbol: str | None = None) -> Subscription:
        """Register a channel. symbol=None receives every symbol."""
        if symbol is not None:
            symbol = normalize_symbol(symbol)
        subscription = Subscription(symbol=symbol, maxsize=self._queue_size)
        self._subscriptions[subscription.id] = subscription
        logger.info(
            "Subscriber %d connected (filter=%s, %d total)",
            subscription.id,
            symbol or "*",
            len(self._subscriptions),
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove and close a subscription. No-op if already gone."""
        subscription.close()
        if self._subscriptions.pop(subscription.id, None) is not None:
            logger.info(
                "Subscriber %d disconnected (%d remaining)",
                subscription.id,
                len(self._subscriptions),
            )

    def publish(self, update: PriceUpdate) -> int:
        """Deliver to every matching subscription. Returns the delivery count."""
        delivered = 0
        dead: list[Subscription] = []

        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(update):
                continue
            try:
                subscription.deliver(update)
                delivered += 1
            except DeliveryFailure as e:
                logger.warning("Dropping subscriber %d: %s", subscription.id, e)
                dead.append(subscription)

        for subscription in dead:
            self.unsubscribe(subscription)

        logger.debug("Broadcast %s=%s to %d subscribers", update.symbol, update.price, delivered)
        return delivered

    def close_all(self) -> None:
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, subscription: Subscription) -> bool:
        return subscription.id in self._subscriptions
