"""Utility functions for cloud_trace."""

from cloud_trace.utils.helpers import (
    format_timestamp,
    format_trace_id,
    parse_trace_id,
)

__all__ = [
    "format_timestamp",
    "format_trace_id",
    "parse_trace_id",
]
