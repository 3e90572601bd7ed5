"""Fixtures for scraper tests.

FakeSurface stands in for a browser tab: it serves canned selector text,
visible-element candidates and body text, and records what the session did
to it. Nothing here starts a real browser.
"""

import asyncio

import pytest

from pricewatch.scraper.config import WatchSettings
from pricewatch.scraper.errors import ContentTimeout, NavigationFailure
from pricewatch.scraper.heuristics import SET_TITLE_SCRIPT, VISIBLE_CANDIDATES_SCRIPT
from pricewatch.scraper.surface import PageSurface

LAST_PRICE_SELECTOR = '[data-field="last_price"]'


class FakeElement:
    def __init__(self, text):
        self._text = text

    async def text_content(self):
        return self._text


class FakeSurface(PageSurface):
    def __init__(
        self,
        selectors=None,
        candidates=None,
        text="",
        navigate_error=None,
        ready=True,
        gate=None,
    ):
        self.selectors = dict(selectors or {})
        self.candidates = list(candidates or [])
        self.text = text
        self.navigate_error = navigate_error
        self.ready = ready
        self.gate = gate
        self.navigated = []
        self.titles = []
        self.queries = []
        self.close_calls = 0
        self._closed = False
        self._close_callbacks = []

    def set_price(self, text):
        """Put text under the primary last-price selector."""
        self.selectors[LAST_PRICE_SELECTOR] = text

    async def navigate(self, url, timeout):
        self.navigated.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.navigate_error is not None:
            raise self.navigate_error

    async def query_selector(self, selector):
        self.queries.append(selector)
        text = self.selectors.get(selector)
        return FakeElement(text) if text is not None else None

    async def text_content(self):
        return self.text

    async def evaluate(self, script, arg=None):
        if script == VISIBLE_CANDIDATES_SCRIPT:
            return self.candidates
        if script == SET_TITLE_SCRIPT:
            self.titles.append(arg)
        return None

    async def wait_for(self, predicate_script, timeout):
        if not self.ready:
            raise ContentTimeout("no price content")

    async def close(self):
        self.close_calls += 1
        self.close_externally()

    def close_externally(self):
        """Simulate the tab being closed, e.g. by a user or a crash."""
        if self._closed:
            return
        self._closed = True
        for callback in self._close_callbacks:
            callback()

    def on_close(self, callback):
        self._close_callbacks.append(callback)

    @property
    def is_closed(self):
        return self._closed


@pytest.fixture
def make_surface():
    """Build a FakeSurface with the given canned content."""
    return FakeSurface


@pytest.fixture
def navigation_error():
    return NavigationFailure("https://example.test", "net::ERR_NAME_NOT_RESOLVED")


@pytest.fixture
def fast_settings():
    """Settings with every delay shrunk to keep tests quick."""
    return WatchSettings(
        url_template="https://quotes.test/{symbol}",
        navigation_timeout=0.1,
        settle_delay=0,
        content_timeout=0.1,
        poll_interval=0.01,
        bootstrap_attempts=3,
        bootstrap_backoff=0.01,
    )


@pytest.fixture
def wait_until():
    """Await a condition, polling the event loop, or fail after `timeout`."""

    async def _wait_until(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.005)

    return _wait_until
