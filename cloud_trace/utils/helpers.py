"""Helper functions for id and timestamp formatting."""

from __future__ import annotations

import datetime


def format_trace_id(trace_id: int) -> str:
    """
    Format an OpenTelemetry trace_id (int128) to a hex string.

    Args:
        trace_id: trace id as generated by OpenTelemetry

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')


def parse_trace_id(hex_string: str) -> int:
    """
    Parse a hex string trace_id to an int.

    Args:
        hex_string: 32-character hex string

    Returns:
        trace_id as int
    """
    if not hex_string:
        return 0
    return int(hex_string, 16)


def format_timestamp(time_ns: int) -> str:
    """
    Format nanoseconds since the epoch as an RFC 3339 UTC timestamp.

    The trace API accepts nanosecond precision, so the fraction keeps nine
    digits.
    """
    seconds, nanos = divmod(time_ns, 1_000_000_000)
    base = datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    return f"{base.strftime('%Y-%m-%dT%H:%M:%S')}.{nanos:09d}Z"
