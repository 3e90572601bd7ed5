"""Abstract interface for the rendered page a session observes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol


class ElementHandle(Protocol):
    """The slice of a DOM element the extractor needs."""

    async def text_content(self) -> str | None: ...


class PageSurface(ABC):
    """Contract for one addressable render target (a browser tab).

    The core never talks to the rendering engine directly; sessions only use
    the capabilities below. One surface belongs to exactly one session.

    Lifecycle:
        surface = await browser.new_surface()
        await surface.navigate(url, timeout=30.0)
        await surface.wait_for(PRICE_CONTENT_SCRIPT, timeout=15.0)
        # ... poll with query_selector / evaluate / text_content ...
        await surface.close()
    """

    @abstractmethod
    async def navigate(self, url: str, timeout: float) -> None:
        """Load the given URL. Raises NavigationFailure on error or timeout."""

    @abstractmethod
    async def query_selector(self, selector: str) -> ElementHandle | None:
        """First element matching the CSS selector, or None."""

    @abstractmethod
    async def text_content(self) -> str:
        """Full text of the page body ('' when there is no body)."""

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Evaluate a script in the page and return its JSON-able result."""

    @abstractmethod
    async def wait_for(self, predicate_script: str, timeout: float) -> None:
        """Wait until the predicate script returns truthy.

        Raises ContentTimeout if it does not within `timeout` seconds.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the surface. Safe to call multiple times."""

    @abstractmethod
    def on_close(self, callback: Callable[[], None]) -> None:
        """Register a callback fired when the surface closes for any reason."""

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once the surface has been closed."""
