"""Factories for the page surface provider and the broadcaster."""

from __future__ import annotations

import logging

from .broadcaster import Broadcaster
from .config import WatchSettings
from .playwright_surface import PlaywrightBrowser

logger = logging.getLogger(__name__)


def create_page_browser(settings: WatchSettings | None = None) -> PlaywrightBrowser:
    """Create the browser that hands out one page surface per session.

    - PRICEWATCH_HEADLESS unset or truthy → headless Chromium
    - PRICEWATCH_HEADLESS falsy → headed Chromium, one visible tab per symbol

    Returns an unstarted browser. Caller must await browser.start().
    """
    settings = settings or WatchSettings.from_env()

    if settings.headless:
        logger.info("Page surfaces: headless Chromium")
    else:
        logger.info("Page surfaces: headed Chromium (one visible tab per symbol)")
    return PlaywrightBrowser(headless=settings.headless)


def create_broadcaster(settings: WatchSettings | None = None) -> Broadcaster:
    """Create a broadcaster whose subscriber channels hold subscriber_queue_size updates."""
    settings = settings or WatchSettings.from_env()
    return Broadcaster(queue_size=settings.subscriber_queue_size)
