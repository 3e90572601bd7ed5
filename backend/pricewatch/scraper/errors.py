"""Exceptions raised by the price watch subsystem."""


class PriceWatchError(RuntimeError):
    """Base error for watch sessions and delivery."""


class NavigationFailure(PriceWatchError):
    """The instrument page could not be loaded within the timeout."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}" if reason else f"Navigation to {url} failed")


class ContentTimeout(PriceWatchError):
    """The page loaded but no price-shaped content appeared in time."""


class DeliveryFailure(PriceWatchError):
    """A subscriber channel rejected an update (closed or full)."""
