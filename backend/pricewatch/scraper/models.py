"""Data models for scraped price data."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


def now_millis() -> int:
    """Current Unix time in integer milliseconds."""
    return int(time.time() * 1000)


def normalize_symbol(symbol: str) -> str:
    """Normalize an instrument symbol to its canonical uppercase form.

    Raises ValueError for blank input.
    """
    normalized = (symbol or "").strip().upper()
    if not normalized:
        raise ValueError("symbol must not be empty")
    return normalized


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Immutable price observation for one symbol.

    The price is kept as the decimal text read from the page so that it is
    transported exactly as observed.
    """

    symbol: str
    price: str
    observed_at_millis: int = field(default_factory=now_millis)

    @property
    def numeric_price(self) -> float:
        """Price as a float, for display or arithmetic only."""
        return float(self.price)

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "observedAtMillis": self.observed_at_millis,
        }
