"""Exception types raised by termetheus."""


class TermetheusError(Exception):
    """Base class for all termetheus errors."""


class FetchError(TermetheusError):
    """The query_range request failed or returned an unusable body."""

    def __init__(self, message: str, reason: str = "unknown"):
        super().__init__(message)
        self.reason = reason


class ParseError(TermetheusError, ValueError):
    """A sample value or an RFC3339 instant could not be parsed."""


class EmptyDataError(TermetheusError):
    """There is nothing to plot: the query returned no points."""


class TerminalIOError(TermetheusError):
    """Entering, drawing to or leaving the terminal failed."""
