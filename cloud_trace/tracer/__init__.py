"""Trace records and spans."""

from cloud_trace.tracer import label_key
from cloud_trace.tracer.span import SpanKind, TraceSpan
from cloud_trace.tracer.trace_record import TraceRecord

__all__ = [
    "label_key",
    "SpanKind",
    "TraceSpan",
    "TraceRecord",
]
