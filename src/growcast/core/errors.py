"""Exception taxonomy shared by the data and forecasting layers."""


class GrowcastError(Exception):
    """Base class for errors that make a single metric's forecast unanswerable."""

    pass


class InsufficientDataError(GrowcastError):
    """Raised when a series has fewer valid points than a component requires.

    Series are never padded to reach the minimum; the actual count is kept
    for diagnostics.
    """

    def __init__(self, count: int, minimum: int, what: str = "data points"):
        self.count = count
        self.minimum = minimum
        self.what = what
        super().__init__(f"Not enough {what}: {count} available, at least {minimum} required")


class DegenerateInputError(GrowcastError):
    """Raised when regression input is collinear, constant, or mismatched."""

    pass


class UpstreamFormatError(GrowcastError):
    """Raised when an upstream record or payload matches no known shape."""

    pass


class UpstreamAPIError(GrowcastError):
    """Non-timeout failure talking to the sensor API (HTTP status or transport)."""

    pass
