"""HTTP client helpers for context propagation."""

from __future__ import annotations

from typing import Dict

from cloud_trace.context import get_current_trace, inject_trace_context


def inject_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Add the trace context header for an outgoing request if a trace is active.

    The innermost open span becomes the parent of whatever the downstream
    service records. Returns the same headers mapping for convenience.
    """
    trace = get_current_trace()
    if trace is None:
        return headers
    context = trace.trace_context
    span = trace.current_span
    if span is not None:
        context = context.with_(span_id=span.span_id)
    inject_trace_context(headers, context)
    return headers
