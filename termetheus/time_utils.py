"""Conversions between backend timestamps, RFC3339 instants and axis labels."""
import math
import re
from datetime import datetime, timedelta, timezone

from termetheus.errors import ParseError

CLOCK_FORMAT = "%H:%M"

_INSTANT_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})$"
)


def timestamp_to_clock(timestamp: float) -> str:
    """Format a Unix timestamp (integer or fractional) as UTC "HH:MM"."""
    fraction, whole = math.modf(float(timestamp))
    moment = datetime.fromtimestamp(int(whole), tz=timezone.utc)
    moment += timedelta(seconds=fraction)
    return moment.strftime(CLOCK_FORMAT)


def format_instant(moment: datetime) -> str:
    """
    Format a datetime the way Prometheus expects query boundaries.

    The result is RFC3339 in UTC with a `Z` suffix. Fractional seconds are
    only written when the instant has any.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)

    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}"
    return text + "Z"


def now_as_instant() -> str:
    """Current UTC time as an RFC3339 instant."""
    return format_instant(datetime.now(timezone.utc))


def parse_instant(instant: str) -> datetime:
    """
    Parse an RFC3339 instant into an aware UTC datetime.

    Sub-microsecond digits are truncated.

    Raises:
        ParseError: if `instant` is not RFC3339
    """
    match = _INSTANT_RE.match(instant.strip()) if isinstance(instant, str) else None
    if not match:
        raise ParseError(f"Not an RFC3339 instant: {instant!r}")

    date, clock, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    micros = (fraction or "").ljust(6, "0")[:6]

    try:
        parsed = datetime.fromisoformat(f"{date}T{clock}.{micros}{offset}")
    except ValueError as e:
        raise ParseError(f"Not an RFC3339 instant: {instant!r}") from e

    return parsed.astimezone(timezone.utc)


def one_hour_before(instant: str) -> str:
    """Return the RFC3339 instant exactly 60 minutes before `instant`."""
    return format_instant(parse_instant(instant) - timedelta(hours=1))
