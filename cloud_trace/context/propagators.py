"""``X-Cloud-Trace-Context`` header propagation."""

from __future__ import annotations

from typing import Mapping, MutableMapping, Optional, Set

from opentelemetry import context as context_api
from opentelemetry.propagators.textmap import (
    CarrierT,
    Getter,
    Setter,
    TextMapPropagator,
    default_getter,
    default_setter,
)
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags
from opentelemetry.trace import get_current_span, set_span_in_context

from cloud_trace.context.trace_context import TraceContext
from cloud_trace.utils.helpers import format_trace_id, parse_trace_id

TRACE_CONTEXT_HEADER = "X-Cloud-Trace-Context"
# The same header as it appears in a WSGI environ.
TRACE_CONTEXT_ENVIRON_KEY = "HTTP_X_CLOUD_TRACE_CONTEXT"

_HEADER_LOWER = TRACE_CONTEXT_HEADER.lower()


def format_trace_context(context: TraceContext) -> str:
    """Format the header value for a trace context."""
    return context.to_string()


def parse_trace_context(header_value: Optional[str]) -> Optional[TraceContext]:
    """Parse a header value, returning None if it is missing or malformed."""
    return TraceContext.parse(header_value)


def get_header_value(headers: Mapping[str, str]) -> Optional[str]:
    """
    Look up the trace context header (case-insensitive).

    Accepts both HTTP header spelling and the WSGI environ key.
    """
    value = headers.get(TRACE_CONTEXT_ENVIRON_KEY)
    if value:
        return value
    for key, value in headers.items():
        if isinstance(key, str) and key.lower() == _HEADER_LOWER:
            return value
    return None


def extract_trace_context(headers: Mapping[str, str]) -> Optional[TraceContext]:
    """Extract and parse the trace context header from a header mapping."""
    return parse_trace_context(get_header_value(headers))


def inject_trace_context(headers: MutableMapping[str, str], context: TraceContext) -> None:
    """Write the trace context header into a header mapping."""
    headers[TRACE_CONTEXT_HEADER] = format_trace_context(context)


class CloudTracePropagator(TextMapPropagator):
    """
    OpenTelemetry propagator for the ``X-Cloud-Trace-Context`` format.

    Lets OpenTelemetry-instrumented code continue a trace started by the
    middleware, and propagate it on outgoing requests.
    """

    def extract(
        self,
        carrier: CarrierT,
        context: Optional[context_api.Context] = None,
        getter: Getter = default_getter,
    ) -> context_api.Context:
        if context is None:
            context = context_api.Context()

        values = getter.get(carrier, _HEADER_LOWER) or getter.get(carrier, TRACE_CONTEXT_HEADER)
        if not values:
            return context
        trace_context = parse_trace_context(values[0])
        if trace_context is None or trace_context.span_id is None:
            return context

        flags = TraceFlags.SAMPLED if trace_context.sampled else TraceFlags.DEFAULT
        span_context = SpanContext(
            trace_id=parse_trace_id(trace_context.trace_id),
            span_id=trace_context.span_id,
            is_remote=True,
            trace_flags=TraceFlags(flags),
        )
        if not span_context.is_valid:
            return context
        return set_span_in_context(NonRecordingSpan(span_context), context)

    def inject(
        self,
        carrier: CarrierT,
        context: Optional[context_api.Context] = None,
        setter: Setter = default_setter,
    ) -> None:
        span_context = get_current_span(context).get_span_context()
        if not span_context.is_valid:
            return
        trace_context = TraceContext(
            trace_id=format_trace_id(span_context.trace_id),
            span_id=span_context.span_id,
            sampled=span_context.trace_flags.sampled,
        )
        setter.set(carrier, TRACE_CONTEXT_HEADER, format_trace_context(trace_context))

    @property
    def fields(self) -> Set[str]:
        return {TRACE_CONTEXT_HEADER}
