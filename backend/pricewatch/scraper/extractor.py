"""Layered heuristics for reading a price off an arbitrary quote page."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

import numpy as np

from .heuristics import (
    CURRENCY_GLYPHS,
    DEFAULT_FONT_SIZE,
    MAX_CANDIDATE_TEXT_LENGTH,
    MAX_PLAUSIBLE_PRICE,
    MIN_PLAUSIBLE_PRICE,
    PRICE_SELECTORS,
    SALIENT_PRICE_RE,
    TEXT_PRICE_RE,
    VISIBLE_CANDIDATES_SCRIPT,
)
from .surface import PageSurface

logger = logging.getLogger(__name__)

_CURRENCY_RE = re.compile(f"[{re.escape(CURRENCY_GLYPHS)}]")
_NON_NUMERIC_RE = re.compile(r"[^\d.,-]")


def clean_price(text: str | None) -> str | None:
    """Reduce quote text to a bare decimal string.

    Currency glyphs and anything that is not a digit or separator are
    dropped. Commas are always treated as thousands separators, so
    comma-decimal locales are not supported. A leading minus is kept so that
    negative readings fail validation instead of flipping sign.

        >>> clean_price("$1,234.56")
        '1234.56'
    """
    if not text:
        return None
    stripped = text.strip()
    negative = stripped.startswith("-")
    cleaned = _NON_NUMERIC_RE.sub("", _CURRENCY_RE.sub("", stripped))
    cleaned = cleaned.replace("-", "").replace(",", "")
    if not cleaned:
        return None
    return f"-{cleaned}" if negative else cleaned


def is_valid_price(price: str | None) -> bool:
    """True if price parses as a number inside the plausible range (exclusive)."""
    if not price:
        return False
    try:
        value = float(price)
    except ValueError:
        return False
    return MIN_PLAUSIBLE_PRICE < value < MAX_PLAUSIBLE_PRICE


def select_most_salient(candidates: Iterable[dict]) -> str | None:
    """Pick the most visually prominent price-looking element.

    Each candidate is {text, fontSize, width, height} as produced by
    VISIBLE_CANDIDATES_SCRIPT. Score = fontSize * sqrt(width * height).
    Returns the cleaned text of the best in-range candidate, or None.
    """
    prices: list[str] = []
    font_sizes: list[float] = []
    areas: list[float] = []

    for candidate in candidates:
        match = SALIENT_PRICE_RE.match((candidate.get("text") or "").strip())
        if not match:
            continue
        price = clean_price(match.group(1))
        if not is_valid_price(price):
            continue
        width = float(candidate.get("width") or 0.0)
        height = float(candidate.get("height") or 0.0)
        if width <= 0 or height <= 0:
            continue
        prices.append(price)
        font_sizes.append(float(candidate.get("fontSize") or DEFAULT_FONT_SIZE))
        areas.append(width * height)

    if not prices:
        return None

    scores = np.asarray(font_sizes) * np.sqrt(np.asarray(areas))
    return prices[int(np.argmax(scores))]


class ExtractionStrategy(ABC):
    """One heuristic for locating the price. Returns None on a miss."""

    name: str = "strategy"

    @abstractmethod
    async def extract(self, surface: PageSurface) -> str | None: ...


class SelectorProbe(ExtractionStrategy):
    """Try structural selectors known to hold the quote, in order."""

    name = "selector"

    def __init__(self, selectors: Sequence[str] = PRICE_SELECTORS) -> None:
        self.selectors = tuple(selectors)

    async def extract(self, surface: PageSurface) -> str | None:
        for selector in self.selectors:
            try:
                element = await surface.query_selector(selector)
                if element is None:
                    continue
                price = clean_price(await element.text_content())
            except Exception as e:
                logger.debug("Selector %s failed: %s", selector, e)
                continue
            if is_valid_price(price):
                logger.debug("Selector %s matched %s", selector, price)
                return price
        return None


class VisualSalienceScan(ExtractionStrategy):
    """Pick the most prominent bare number among the visible elements."""

    name = "salience"

    def __init__(self, max_text_length: int = MAX_CANDIDATE_TEXT_LENGTH) -> None:
        self.max_text_length = max_text_length

    async def extract(self, surface: PageSurface) -> str | None:
        candidates = await surface.evaluate(VISIBLE_CANDIDATES_SCRIPT, self.max_text_length)
        return select_most_salient(candidates or [])


class FullTextFallback(ExtractionStrategy):
    """First plausible price-shaped substring anywhere in the page text."""

    name = "fulltext"

    async def extract(self, surface: PageSurface) -> str | None:
        text = await surface.text_content()
        for match in TEXT_PRICE_RE.finditer(text or ""):
            price = clean_price(match.group(1))
            if is_valid_price(price):
                return price
        return None


def default_strategies() -> list[ExtractionStrategy]:
    return [SelectorProbe(), VisualSalienceScan(), FullTextFallback()]


class PriceExtractor:
    """Runs an ordered list of strategies; the first hit wins.

    A strategy that raises is logged and counted as a miss, so extract()
    only returns a price string or None.
    """

    def __init__(self, strategies: Sequence[ExtractionStrategy] | None = None) -> None:
        self.strategies: list[ExtractionStrategy] = (
            list(strategies) if strategies is not None else default_strategies()
        )

    async def extract(self, surface: PageSurface) -> str | None:
        for strategy in self.strategies:
            try:
                price = await strategy.extract(surface)
            except Exception as e:
                logger.debug("Extraction strategy %s failed: %s", strategy.name, e)
                continue
            if price is not None and is_valid_price(price):
                logger.debug("Found price using %s strategy: %s", strategy.name, price)
                return price
        return None
