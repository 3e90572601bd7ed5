"""Change detection for extracted prices."""

from __future__ import annotations

from typing import Protocol


class HasLastPrice(Protocol):
    last_published_price: str | None


class ChangeDetector:
    """Decides whether a freshly extracted price is worth publishing.

    Comparison is exact string inequality against the last published price:
    "100.0" and "100.00" count as different. Holds no state of its own; the
    last published price lives on the session.
    """

    def should_publish(self, session: HasLastPrice, candidate: str | None) -> bool:
        if not candidate:
            return False
        return candidate != session.last_published_price
