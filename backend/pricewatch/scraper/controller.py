"""Per-symbol watch session: open the page, poll for prices, tear down."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from .config import WatchSettings
from .detector import ChangeDetector
from .errors import PriceWatchError
from .extractor import PriceExtractor
from .heuristics import PRICE_CONTENT_SCRIPT, SET_TITLE_SCRIPT
from .models import PriceUpdate
from .surface import PageSurface

logger = logging.getLogger(__name__)

Publish = Callable[[PriceUpdate], Any]


class SessionState(str, Enum):
    OPENING = "opening"
    WAITING_FOR_CONTENT = "waiting_for_content"
    POLLING = "polling"
    CLOSED = "closed"


class SessionController:
    """Owns one symbol's page, polling task and last published price.

    State machine:
        OPENING -> WAITING_FOR_CONTENT -> POLLING -> CLOSED
    with OPENING -> CLOSED and WAITING_FOR_CONTENT -> CLOSED on failure.

    The controller never sees subscribers; accepted prices go out through the
    single injected `publish` callable.
    """

    def __init__(
        self,
        symbol: str,
        surface: PageSurface,
        publish: Publish,
        settings: WatchSettings | None = None,
        extractor: PriceExtractor | None = None,
        detector: ChangeDetector | None = None,
        on_closed: Callable[[SessionController], Awaitable[None]] | None = None,
    ) -> None:
        self.symbol = symbol
        self.last_published_price: str | None = None
        self._surface = surface
        self._publish: Publish | None = publish
        self._settings = settings or WatchSettings()
        self._extractor = extractor or PriceExtractor()
        self._detector = detector or ChangeDetector()
        self._on_closed = on_closed
        self._state = SessionState.OPENING
        self._task: asyncio.Task | None = None
        self._closing: asyncio.Task | None = None
        self._released = asyncio.Event()
        self._surface.on_close(self._handle_surface_closed)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    async def open(self) -> bool:
        """Navigate and wait for price-shaped content. Returns success.

        On failure or cancellation the surface is released and the state is
        CLOSED.
        """
        try:
            return await self._open()
        except asyncio.CancelledError:
            await asyncio.shield(self.close())
            raise

    async def _open(self) -> bool:
        url = self._settings.url_for(self.symbol)
        logger.info("Opening %s: %s", self.symbol, url)
        try:
            await self._surface.navigate(url, timeout=self._settings.navigation_timeout)
        except PriceWatchError as e:
            logger.warning("Navigation failed for %s: %s", self.symbol, e)
            await self.close()
            return False
        except Exception:
            logger.exception("Unexpected error opening %s", self.symbol)
            await self.close()
            return False

        if self.is_closed:
            return False
        self._state = SessionState.WAITING_FOR_CONTENT
        await self._set_title()

        try:
            await asyncio.sleep(self._settings.settle_delay)
            await self._surface.wait_for(PRICE_CONTENT_SCRIPT, timeout=self._settings.content_timeout)
        except PriceWatchError as e:
            logger.warning("No price content for %s: %s", self.symbol, e)
            await self.close()
            return False
        except Exception:
            logger.exception("Unexpected error waiting for content on %s", self.symbol)
            await self.close()
            return False

        if self.is_closed:
            return False
        self._state = SessionState.POLLING
        logger.info("Price content found for %s", self.symbol)
        return True

    def start(self) -> None:
        """Start the polling task. Only valid after a successful open()."""
        if self._state is not SessionState.POLLING or self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"watch-{self.symbol}")

    async def close(self) -> None:
        """Cancel polling and release the page. Idempotent.

        A second caller waits until the first has released the page.
        """
        if self._state is SessionState.CLOSED:
            await self._released.wait()
            return
        self._state = SessionState.CLOSED
        self._publish = None

        try:
            task, self._task = self._task, None
            if task and not task.done() and task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            try:
                await self._surface.close()
            except Exception as e:
                logger.warning("Error closing page for %s: %s", self.symbol, e)
        finally:
            self._released.set()
        logger.info("Session closed: %s", self.symbol)

    # --- Internal ---

    async def _set_title(self) -> None:
        try:
            await self._surface.evaluate(SET_TITLE_SCRIPT, f"{self.symbol} - Price Monitor")
        except Exception as e:
            logger.debug("Could not set tab title for %s: %s", self.symbol, e)

    async def _run(self) -> None:
        await self._bootstrap()
        while True:
            await asyncio.sleep(self._settings.poll_interval)
            await self._poll_once()

    async def _bootstrap(self) -> None:
        """First extraction, retried a bounded number of times."""
        attempts = self._settings.bootstrap_attempts
        for attempt in range(1, attempts + 1):
            logger.debug("Extracting initial price for %s (attempt %d/%d)", self.symbol, attempt, attempts)
            if await self._poll_once():
                return
            if attempt < attempts:
                await asyncio.sleep(self._settings.bootstrap_backoff)
        logger.warning("Could not extract initial price for %s after %d attempts", self.symbol, attempts)

    async def _poll_once(self) -> bool:
        """Execute one extraction. Returns True if a valid price was read."""
        try:
            price = await self._extractor.extract(self._surface)
        except Exception:
            logger.exception("Price extraction failed for %s", self.symbol)
            return False
        if price is None:
            logger.debug("No price found for %s this tick", self.symbol)
            return False
        self._accept(price)
        return True

    def _accept(self, price: str) -> None:
        # No await between the check and the publish: the pair is atomic on the loop.
        if self._publish is None or not self._detector.should_publish(self, price):
            return
        self.last_published_price = price
        update = PriceUpdate(symbol=self.symbol, price=price)
        logger.info("Price update: %s = %s", self.symbol, price)
        self._publish(update)

    def _handle_surface_closed(self) -> None:
        if self.is_closed:
            return
        logger.warning("Page for %s closed externally; ending session", self.symbol)
        self._closing = asyncio.get_running_loop().create_task(self._close_from_surface())

    async def _close_from_surface(self) -> None:
        await self.close()
        if self._on_closed is not None:
            await self._on_closed(self)
