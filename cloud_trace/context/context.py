"""Context helpers for the current trace and span - using OpenTelemetry's context API."""

from contextlib import contextmanager
from contextvars import Token
from typing import Iterator, Optional, TYPE_CHECKING

from opentelemetry import context as context_api

if TYPE_CHECKING:
    from cloud_trace.tracer.span import SpanKind, TraceSpan
    from cloud_trace.tracer.trace_record import TraceRecord

_TRACE_KEY = context_api.create_key("cloud-trace-record")
_SPAN_KEY = context_api.create_key("cloud-trace-span")


def get_current_trace() -> Optional["TraceRecord"]:
    """Return the trace record of the current request, if any."""
    return context_api.get_value(_TRACE_KEY)


def set_current_trace(trace: Optional["TraceRecord"]) -> Token:
    """
    Make ``trace`` the current trace record.

    Returns:
        Token needed to restore the previous state
    """
    ctx = context_api.set_value(_TRACE_KEY, trace)
    ctx = context_api.set_value(_SPAN_KEY, None, ctx)
    return context_api.attach(ctx)


def reset_current_trace(token: Token) -> None:
    """
    Restore the previous trace record using the provided token.

    Args:
        token: Token returned by set_current_trace()
    """
    context_api.detach(token)


def get_current_span() -> Optional["TraceSpan"]:
    """Return the innermost span entered in this context, if any."""
    return context_api.get_value(_SPAN_KEY)


def push_span(span: "TraceSpan") -> Token:
    """
    Make ``span`` the current span.

    Each thread and asyncio task works on its own copy of the context, so
    spans opened concurrently do not become each other's parents.

    Returns:
        Token needed to restore the previous state
    """
    return context_api.attach(context_api.set_value(_SPAN_KEY, span))


def pop_span(token: Token) -> None:
    """
    Restore the previous current span using the provided token.

    Args:
        token: Token returned by push_span()
    """
    context_api.detach(token)


@contextmanager
def in_span(name: str, kind: Optional["SpanKind"] = None, labels=None) -> Iterator[Optional["TraceSpan"]]:
    """
    Run a block inside a span of the current trace.

    Yields None, and records nothing, when no trace is active.
    """
    trace = get_current_trace()
    if trace is None:
        yield None
        return
    kwargs = {"labels": labels}
    if kind is not None:
        kwargs["kind"] = kind
    with trace.in_span(name, **kwargs) as span:
        yield span
