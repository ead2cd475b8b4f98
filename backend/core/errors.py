"""
Error taxonomy for the stock alerting core.

Input and state errors are raised to the caller. Channel delivery failures
are logged and recorded by the dispatcher and never escape it.
"""


class StockAlertError(Exception):
    """Base class for all domain errors."""


class InvalidRange(StockAlertError):
    """Threshold band is empty or inverted (min_stock >= max_stock)."""


class InvalidAmount(StockAlertError):
    """A quantity, stock level or cost is negative or otherwise unusable."""


class InvalidTransition(StockAlertError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, entity: str, current: str, requested: str):
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {entity} from '{current}' to '{requested}'")


class NotFound(StockAlertError):
    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class ChannelDeliveryFailure(StockAlertError):
    """A single channel failed to deliver a notification."""

    def __init__(self, channel: str, recipient: str | None, reason: str):
        self.channel = channel
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"{channel} delivery to {recipient or 'dashboard'} failed: {reason}")
