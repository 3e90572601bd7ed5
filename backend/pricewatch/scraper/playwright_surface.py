"""Playwright-backed page surfaces: one Chromium browser, one tab per session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import ContentTimeout, NavigationFailure, PriceWatchError
from .heuristics import BODY_TEXT_SCRIPT
from .surface import ElementHandle, PageSurface

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--disable-blink-features=AutomationControlled",
    "--start-maximized",
)

DEFAULT_VIEWPORT: tuple[int, int] = (1280, 720)


class PlaywrightSurface(PageSurface):
    """PageSurface over a single Playwright page (browser tab).

    Playwright timeouts are in milliseconds; this adapter takes seconds like
    the rest of the package.
    """

    def __init__(self, page: Page) -> None:
        self._page = page

    async def navigate(self, url: str, timeout: float) -> None:
        try:
            await self._page.goto(url, wait_until="load", timeout=timeout * 1000)
        except PlaywrightError as e:
            raise NavigationFailure(url, str(e)) from e

    async def query_selector(self, selector: str) -> ElementHandle | None:
        return await self._page.query_selector(selector)

    async def text_content(self) -> str:
        text = await self._page.evaluate(BODY_TEXT_SCRIPT)
        return text or ""

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self._page.evaluate(script, arg)

    async def wait_for(self, predicate_script: str, timeout: float) -> None:
        try:
            await self._page.wait_for_function(predicate_script, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise ContentTimeout(f"Condition not met within {timeout:.1f}s") from e

    async def close(self) -> None:
        if self._page.is_closed():
            return
        await self._page.close()

    def on_close(self, callback: Callable[[], None]) -> None:
        # Playwright passes the page to "close" handlers; the contract does not.
        self._page.on("close", lambda _page: callback())

    @property
    def is_closed(self) -> bool:
        return self._page.is_closed()


class PlaywrightBrowser:
    """Owns one Chromium instance and hands out a new tab per session.

    Lifecycle:
        browser = PlaywrightBrowser(headless=True)
        await browser.start()
        surface = await browser.new_surface()
        # ... sessions run ...
        await browser.stop()
    """

    def __init__(
        self,
        headless: bool = True,
        viewport: tuple[int, int] = DEFAULT_VIEWPORT,
        launch_args: tuple[str, ...] = DEFAULT_LAUNCH_ARGS,
    ) -> None:
        self._headless = headless
        self._viewport = viewport
        self._launch_args = launch_args
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._headless,
            args=list(self._launch_args),
        )
        logger.info("Browser launched (headless=%s); each symbol gets its own tab", self._headless)

    async def new_surface(self) -> PlaywrightSurface:
        """Open a new tab. Raises PriceWatchError if the browser is not started."""
        if self._browser is None:
            raise PriceWatchError("Browser not started")
        width, height = self._viewport
        page = await self._browser.new_page(viewport={"width": width, "height": height})
        return PlaywrightSurface(page)

    async def stop(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.warning("Error closing browser: %s", e)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Browser stopped")
