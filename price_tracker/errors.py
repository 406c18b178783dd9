"""Exceptions raised by the price tracker client."""


class PriceTrackerError(Exception):
    """Base class for price tracker errors."""


class BackendError(PriceTrackerError):
    """The backend could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FetchError(BackendError):
    """Reading a product snapshot failed."""


class CheckError(BackendError):
    """The price-check endpoint failed."""


class NotificationUnsupported(PriceTrackerError):
    """Desktop notifications are not available on this platform."""


class PermissionDenied(PriceTrackerError):
    """The user declined desktop notifications."""
