"""Runtime settings for watch sessions, read from PRICEWATCH_* variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from urllib.parse import quote

logger = logging.getLogger(__name__)

ENV_PREFIX = "PRICEWATCH_"

DEFAULT_URL_TEMPLATE = "https://www.tradingview.com/symbols/{symbol}/?exchange=BINANCE"

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}


@dataclass(frozen=True)
class WatchSettings:
    """Timings and limits for sessions and subscribers. Durations in seconds."""

    url_template: str = DEFAULT_URL_TEMPLATE
    navigation_timeout: float = 30.0
    settle_delay: float = 8.0
    content_timeout: float = 15.0
    poll_interval: float = 3.0
    bootstrap_attempts: int = 5
    bootstrap_backoff: float = 3.0
    subscriber_queue_size: int = 256
    headless: bool = True

    def url_for(self, symbol: str) -> str:
        return self.url_template.format(symbol=quote(symbol, safe=""))

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> WatchSettings:
        """Build settings from the environment; unparseable values keep the default."""
        env = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or not raw.strip():
                continue
            parsed = _parse(raw.strip(), type(getattr(cls, f.name)))
            if parsed is None:
                logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX, f.name.upper(), raw)
                continue
            values[f.name] = parsed
        return cls(**values)


def _parse(raw: str, kind: type):
    if kind is bool:
        lowered = raw.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        return None
    try:
        return kind(raw)
    except ValueError:
        return None
