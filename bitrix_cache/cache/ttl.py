"""
Bitrix Cache - TTL Resolution

Resolves the TTL forms accepted by Cache.set() into whole seconds:

- None: the facade default
- int seconds: unchanged (zero and negative included); float seconds truncated
- timedelta: its whole seconds
- relativedelta or ISO-8601 duration ("P1D", "P1M", "PT90S"): the seconds
  between now and now + interval, so calendar months keep their real length
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Union

from dateutil import tz
from dateutil.relativedelta import relativedelta

from ..errors import InvalidTTLError

TTLValue = Union[None, int, float, timedelta, relativedelta, str]

_DURATION_RE = re.compile(
    r"^(?P<sign>[-+])?P"
    r"(?:(?P<years>\d+)Y)?"
    r"(?:(?P<months>\d+)M)?"
    r"(?:(?P<weeks>\d+)W)?"
    r"(?:(?P<days>\d+)D)?"
    r"(?:T"
    r"(?:(?P<hours>\d+)H)?"
    r"(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+)S)?"
    r")?$"
)


def parse_duration(text: str) -> relativedelta:
    """
    Parse an ISO-8601 duration such as "P1Y2M10DT2H30M" into a relativedelta.

    Raises:
        InvalidTTLError: text is not a duration with at least one component
    """
    match = _DURATION_RE.match(text.strip().upper())
    if match is None or text.strip().upper().endswith("T"):
        raise InvalidTTLError(text)

    parts = {name: int(value) for name, value in match.groupdict().items() if name != "sign" and value}
    if not parts:
        raise InvalidTTLError(text)

    interval = relativedelta(**parts)  # type: ignore[arg-type]
    return -interval if match.group("sign") == "-" else interval


def interval_seconds(interval: relativedelta | timedelta, now: datetime | None = None) -> int:
    """Seconds spanned by interval when it starts at now."""
    if now is None:
        now = datetime.now(tz.tzlocal())
    return round((now + interval).timestamp() - now.timestamp())


def resolve_ttl(ttl: TTLValue, default_ttl: int, now: datetime | None = None) -> int:
    """
    Resolve a TTL expression to seconds.

    Args:
        ttl: None, seconds, timedelta, relativedelta or ISO-8601 duration
        default_ttl: Seconds used when ttl is None
        now: Reference instant for calendar intervals (default: local now)

    Returns:
        TTL in whole seconds, passed to the engine unvalidated

    Raises:
        InvalidTTLError: ttl has an unsupported type or format
    """
    if ttl is None:
        return default_ttl

    # bool is an int subclass but never a meaningful TTL
    if isinstance(ttl, bool):
        raise InvalidTTLError(ttl)

    if isinstance(ttl, int):
        return ttl

    if isinstance(ttl, float):
        # nan and inf have no int value
        try:
            return int(ttl)
        except (ValueError, OverflowError) as e:
            raise InvalidTTLError(ttl) from e

    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())

    if isinstance(ttl, relativedelta):
        return interval_seconds(ttl, now)

    if isinstance(ttl, str):
        return interval_seconds(parse_duration(ttl), now)

    raise InvalidTTLError(ttl)
