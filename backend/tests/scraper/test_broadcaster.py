"""Tests for Broadcaster and Subscription."""

import asyncio

import pytest

from pricewatch.scraper.broadcaster import Broadcaster, Subscription
from pricewatch.scraper.errors import DeliveryFailure
from pricewatch.scraper.models import PriceUpdate


def _update(symbol="BTCUSD", price="50000.12", ts=1707580800000):
    return PriceUpdate(symbol=symbol, price=price, observed_at_millis=ts)


@pytest.mark.asyncio
class TestBroadcaster:
    """Unit tests for fan-out and failure isolation."""

    async def test_publish_reaches_all_subscribers(self):
        broadcaster = Broadcaster()
        a = broadcaster.subscribe()
        b = broadcaster.subscribe()

        delivered = broadcaster.publish(_update())

        assert delivered == 2
        assert (await a.get()).price == "50000.12"
        assert (await b.get()).price == "50000.12"

    async def test_closed_subscriber_is_pruned(self):
        """A forcibly closed channel is dropped; the survivor still gets the update."""
        broadcaster = Broadcaster()
        survivor = broadcaster.subscribe()
        dead = broadcaster.subscribe()
        dead.close()

        delivered = broadcaster.publish(_update())  # Should not raise

        assert delivered == 1
        assert await survivor.get() == _update()
        assert dead not in broadcaster
        assert len(broadcaster) == 1

    async def test_full_subscriber_is_pruned(self):
        """A subscriber that cannot keep up is dropped without affecting others."""
        broadcaster = Broadcaster(queue_size=1)
        slow = broadcaster.subscribe()
        fast = broadcaster.subscribe()

        broadcaster.publish(_update(price="1.00"))
        await fast.get()
        broadcaster.publish(_update(price="2.00"))

        assert slow not in broadcaster
        assert slow.closed
        assert fast in broadcaster
        assert (await fast.get()).price == "2.00"

    async def test_symbol_filter(self):
        broadcaster = Broadcaster()
        eth_only = broadcaster.subscribe("ethusd")
        everything = broadcaster.subscribe()

        broadcaster.publish(_update(symbol="BTCUSD"))
        broadcaster.publish(_update(symbol="ETHUSD", price="3000.00"))

        assert eth_only.symbol == "ETHUSD"
        assert eth_only.pending == 1
        assert (await eth_only.get()).symbol == "ETHUSD"
        assert everything.pending == 2

    async def test_fifo_per_subscriber(self):
        """Updates for one symbol arrive in publish order."""
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()

        broadcaster.publish(_update(symbol="ETHUSD", price="3000.00", ts=1))
        broadcaster.publish(_update(symbol="ETHUSD", price="3010.50", ts=2))

        first = await subscription.get()
        second = await subscription.get()
        assert [first.price, second.price] == ["3000.00", "3010.50"]

    async def test_publish_without_subscribers(self):
        assert Broadcaster().publish(_update()) == 0

    async def test_unsubscribe_is_idempotent(self):
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()

        broadcaster.unsubscribe(subscription)
        broadcaster.unsubscribe(subscription)  # Should not raise

        assert len(broadcaster) == 0
        assert subscription.closed

    async def test_unsubscribe_wakes_reader(self):
        broadcaster = Broadcaster()
        subscription = broadcaster.subscribe()
        reader = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)

        broadcaster.unsubscribe(subscription)

        assert await asyncio.wait_for(reader, timeout=1.0) is None

    async def test_close_all(self):
        broadcaster = Broadcaster()
        subs = [broadcaster.subscribe() for _ in range(3)]

        broadcaster.close_all()

        assert len(broadcaster) == 0
        assert all(s.closed for s in subs)


@pytest.mark.asyncio
class TestSubscription:
    """Unit tests for the delivery channel."""

    async def test_deliver_after_close_raises(self):
        subscription = Subscription()
        subscription.close()
        with pytest.raises(DeliveryFailure):
            subscription.deliver(_update())

    async def test_deliver_when_full_raises(self):
        subscription = Subscription(maxsize=1)
        subscription.deliver(_update(price="1.00"))
        with pytest.raises(DeliveryFailure):
            subscription.deliver(_update(price="2.00"))

    async def test_async_iteration_ends_on_close(self):
        subscription = Subscription()
        subscription.deliver(_update(price="1.00"))
        subscription.deliver(_update(price="2.00"))

        received = []
        async for update in subscription:
            received.append(update.price)
            if len(received) == 2:
                subscription.close()

        assert received == ["1.00", "2.00"]

    async def test_matches(self):
        assert Subscription().matches(_update(symbol="X"))
        assert Subscription(symbol="BTCUSD").matches(_update(symbol="BTCUSD"))
        assert not Subscription(symbol="BTCUSD").matches(_update(symbol="ETHUSD"))

    async def test_ids_are_unique(self):
        assert Subscription().id != Subscription().id
