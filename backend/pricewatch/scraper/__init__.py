"""Scraped price watch subsystem.

Public API:
    PriceUpdate          - Immutable price observation (symbol, price text, ms timestamp)
    PageSurface          - Abstract interface for the rendered page a session observes
    PriceExtractor       - Ordered extraction strategies (selector, salience, full text)
    ChangeDetector       - Exact-string change filter
    SessionController    - One symbol's polling loop and teardown
    SessionRegistry      - Add / remove / list watched symbols
    Broadcaster          - Fan-out of updates to subscriber channels
    WatchSettings        - Timings and limits, loadable from the environment
    create_page_browser  - Factory for the Playwright page provider
    create_broadcaster   - Factory for a Broadcaster sized from settings
    create_stream_router - FastAPI router factory for ticker and SSE endpoints
"""

from .broadcaster import Broadcaster, Subscription
from .config import WatchSettings
from .controller import SessionController, SessionState
from .detector import ChangeDetector
from .errors import ContentTimeout, DeliveryFailure, NavigationFailure, PriceWatchError
from .extractor import PriceExtractor
from .factory import create_broadcaster, create_page_browser
from .models import PriceUpdate, normalize_symbol
from .registry import SessionRegistry
from .stream import create_stream_router
from .surface import PageSurface

__all__ = [
    "PriceUpdate",
    "normalize_symbol",
    "PageSurface",
    "PriceExtractor",
    "ChangeDetector",
    "SessionController",
    "SessionState",
    "SessionRegistry",
    "Broadcaster",
    "Subscription",
    "WatchSettings",
    "PriceWatchError",
    "NavigationFailure",
    "ContentTimeout",
    "DeliveryFailure",
    "create_broadcaster",
    "create_page_browser",
    "create_stream_router",
]
