"""Context utilities for cloud_trace."""

from cloud_trace.context.context import (
    get_current_span,
    get_current_trace,
    in_span,
    pop_span,
    push_span,
    reset_current_trace,
    set_current_trace,
)
from cloud_trace.context.propagators import (
    TRACE_CONTEXT_ENVIRON_KEY,
    TRACE_CONTEXT_HEADER,
    CloudTracePropagator,
    extract_trace_context,
    format_trace_context,
    inject_trace_context,
    parse_trace_context,
)
from cloud_trace.context.trace_context import TraceContext, new_trace_id

__all__ = [
    "get_current_trace",
    "set_current_trace",
    "reset_current_trace",
    "get_current_span",
    "push_span",
    "pop_span",
    "in_span",
    "TRACE_CONTEXT_HEADER",
    "TRACE_CONTEXT_ENVIRON_KEY",
    "CloudTracePropagator",
    "extract_trace_context",
    "format_trace_context",
    "inject_trace_context",
    "parse_trace_context",
    "TraceContext",
    "new_trace_id",
]
