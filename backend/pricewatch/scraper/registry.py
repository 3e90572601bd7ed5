"""Table of active watch sessions, keyed by symbol."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from .config import WatchSettings
from .controller import Publish, SessionController
from .detector import ChangeDetector
from .extractor import PriceExtractor
from .models import normalize_symbol
from .surface import PageSurface

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[], Awaitable[PageSurface]]


class SessionRegistry:
    """Single entry point for opening, closing and listing sessions.

    Mutations for the same symbol are serialized by a per-symbol lock, so
    there is never more than one session (or one in-flight add/remove) per
    symbol. Different symbols open and close concurrently. A lock lives only
    while some caller holds or waits for it.

    Lifecycle:
        registry = SessionRegistry(browser.new_surface, broadcaster.publish)
        await registry.add("BTCUSD")
        registry.list()   # ["BTCUSD"]
        await registry.remove("BTCUSD")
        await registry.shutdown()
    """

    def __init__(
        self,
        surface_factory: SurfaceFactory,
        publish: Publish,
        settings: WatchSettings | None = None,
        extractor: PriceExtractor | None = None,
        detector: ChangeDetector | None = None,
    ) -> None:
        self._surface_factory = surface_factory
        self._publish = publish
        self._settings = settings or WatchSettings()
        self._extractor = extractor or PriceExtractor()
        self._detector = detector or ChangeDetector()
        self._sessions: dict[str, SessionController] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._shutting_down = False

    async def add(self, symbol: str) -> bool:
        """Open a session for symbol. True if active afterwards (including already active)."""
        try:
            symbol = normalize_symbol(symbol)
        except ValueError:
            logger.warning("Rejected add for invalid symbol %r", symbol)
            return False

        async with self._locked(symbol):
            if self._shutting_down:
                logger.info("Rejected add for %s during shutdown", symbol)
                return False
            if symbol in self._sessions:
                logger.info("Symbol %s already being watched", symbol)
                return True

            try:
                surface = await self._surface_factory()
            except Exception:
                logger.exception("Could not open a page for %s", symbol)
                return False

            controller = SessionController(
                symbol,
                surface,
                publish=self._publish,
                settings=self._settings,
                extractor=self._extractor,
                detector=self._detector,
                on_closed=self._forget,
            )
            if not await controller.open():
                # open() has already released the surface
                return False

            if self._shutting_down:
                logger.info("Shutdown began while opening %s; discarding it", symbol)
                await controller.close()
                return False

            self._sessions[symbol] = controller
            controller.start()
            logger.info("Watching %s (%d sessions)", symbol, len(self._sessions))
            return True

    async def remove(self, symbol: str) -> bool:
        """Close the session for symbol. False if there was none."""
        try:
            symbol = normalize_symbol(symbol)
        except ValueError:
            return False

        async with self._locked(symbol):
            controller = self._sessions.get(symbol)
            if controller is None:
                logger.info("Symbol %s not found", symbol)
                return False
            await controller.close()
            self._sessions.pop(symbol, None)
            logger.info("Stopped watching %s (%d sessions remaining)", symbol, len(self._sessions))
            return True

    def list(self) -> list[str]:
        """Sorted snapshot of active symbols."""
        return sorted(self._sessions)

    def get(self, symbol: str) -> SessionController | None:
        try:
            return self._sessions.get(normalize_symbol(symbol))
        except ValueError:
            return None

    async def shutdown(self) -> None:
        """Close every session and refuse new ones. Used at process shutdown.

        An add() that is still opening its page when shutdown starts discards
        the page instead of registering it.
        """
        self._shutting_down = True
        logger.info("Shutting down %d sessions", len(self._sessions))
        for symbol in self.list():
            await self.remove(symbol)

    @asynccontextmanager
    async def _locked(self, symbol: str) -> AsyncIterator[None]:
        lock = self._locks.get(symbol)
        if lock is None:
            lock = self._locks[symbol] = asyncio.Lock()
        self._lock_users[symbol] = self._lock_users.get(symbol, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[symbol] -= 1
            if not self._lock_users[symbol]:
                del self._lock_users[symbol]
                del self._locks[symbol]

    async def _forget(self, controller: SessionController) -> None:
        """Drop a session whose page closed underneath it."""
        async with self._locked(controller.symbol):
            if self._sessions.get(controller.symbol) is controller:
                del self._sessions[controller.symbol]
                logger.info("Forgot %s after its page closed", controller.symbol)

    def __contains__(self, symbol: str) -> bool:
        return self.get(symbol) is not None

    def __len__(self) -> int:
        return len(self._sessions)
