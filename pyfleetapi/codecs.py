# pyFleetAPI - Time and Duration Codecs
# -*- coding: utf-8 -*-
"""
 Most timestamps in the API are standard ISO-8601 and parse directly.
 Two encodings are not:

  * "start_time" uses a space delimited format with a numeric offset,
    e.g. "2024-01-02 15:04:05 -0700"
  * durations such as "up_time_seconds" are duration strings,
    e.g. "1541h38m20.998412s", rather than a number of seconds

 Functions:
    parse_non_iso_time(value) - str to aware datetime
    format_non_iso_time(value) - datetime to str
    parse_duration(value) - duration string to timedelta
    format_duration(value) - timedelta to duration string

 Types (pydantic):
    NonIsoTime - datetime field using the non-ISO encoding
    Duration - timedelta field using the duration string encoding
"""
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Union

from dateutil.parser import isoparse
from pydantic import BeforeValidator, PlainSerializer

NON_ISO_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %z"
NON_ISO_TIME_FORMAT_FRACTION = "%Y-%m-%d %H:%M:%S.%f %z"

# Microseconds per duration unit
DURATION_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),  # U+00B5 micro sign
    "μs": Decimal(1),  # U+03BC greek mu
    "ms": Decimal(1000),
    "s": Decimal(1000000),
    "m": Decimal(60000000),
    "h": Decimal(3600000000),
}
DURATION_TERM = re.compile(r"(\d*\.?\d*)(ns|us|µs|μs|ms|s|m|h)")


def parse_non_iso_time(value: Union[str, datetime]) -> datetime:
    """
    Parse a "2006-01-02 15:04:05 -0700" style timestamp.
    Standard ISO-8601 strings are accepted as well.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip().strip('"')
    for fmt in (NON_ISO_TIME_FORMAT, NON_ISO_TIME_FORMAT_FRACTION):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return isoparse(text)
    except ValueError as err:
        raise ValueError(f"Invalid timestamp: {value!r}") from err


def format_non_iso_time(value: datetime) -> str:
    """Naive values are taken as UTC"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime(NON_ISO_TIME_FORMAT)


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """
    Parse a duration string such as "300ms", "-1.5h" or "2h45m".
    Numbers are taken as seconds.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")
    text = value.strip().strip('"')
    orig = text
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"Invalid duration: {orig!r}")
    total = Decimal(0)
    pos = 0
    while pos < len(text):
        match = DURATION_TERM.match(text, pos)
        if not match or match.group(1) in ("", "."):
            raise ValueError(f"Invalid duration: {orig!r}")
        try:
            total += Decimal(match.group(1)) * DURATION_UNITS[match.group(2)]
        except InvalidOperation as err:
            raise ValueError(f"Invalid duration: {orig!r}") from err
        pos = match.end()
    return timedelta(microseconds=sign * int(total.to_integral_value()))


def _fraction(whole: int, frac: int, digits: int) -> str:
    if not frac:
        return str(whole)
    return f"{whole}." + f"{frac:0{digits}d}".rstrip("0")


def format_duration(value: timedelta) -> str:
    """Format a timedelta in compact form, e.g. "1h0m5s", "1.5ms", "0s" """
    micros = (value.days * 86400 + value.seconds) * 1000000 + value.microseconds
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1000000:
        return f"{sign}{_fraction(micros // 1000, micros % 1000, 3)}ms"
    secs, frac = divmod(micros, 1000000)
    hours, rem = divmod(secs, 3600)
    minutes, seconds = divmod(rem, 60)
    text = f"{_fraction(seconds, frac, 6)}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{text}"
    if minutes:
        return f"{sign}{minutes}m{text}"
    return f"{sign}{text}"


NonIsoTime = Annotated[
    datetime,
    BeforeValidator(parse_non_iso_time),
    PlainSerializer(format_non_iso_time, return_type=str, when_used="json"),
]

Duration = Annotated[
    timedelta,
    BeforeValidator(parse_duration),
    PlainSerializer(format_duration, return_type=str, when_used="json"),
]
