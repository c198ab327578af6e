"""Per-request trace records."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from opentelemetry.sdk.trace.id_generator import RandomIdGenerator

from cloud_trace.context.context import get_current_span
from cloud_trace.context.trace_context import TraceContext
from cloud_trace.tracer.span import SpanKind, TraceSpan


class TraceRecord:
    """
    One trace: a root span plus the spans created while handling a request.

    A record belongs to a single request. Spans entered as context managers
    nest under the innermost span open in the current thread or asyncio
    task, so ``in_span`` calls build a tree without passing parents around.
    """

    def __init__(
        self,
        project_id: str,
        trace_context: Optional[TraceContext] = None,
        span_id_generator: Optional[Callable[[], int]] = None,
    ) -> None:
        self.project_id = project_id
        self.trace_context = trace_context or TraceContext.new()
        self._span_id_generator = span_id_generator or RandomIdGenerator().generate_span_id
        self._spans: List[TraceSpan] = []

    @property
    def trace_id(self) -> str:
        return self.trace_context.trace_id

    @property
    def sampled(self) -> bool:
        return bool(self.trace_context.sampled)

    @property
    def all_spans(self) -> List[TraceSpan]:
        return list(self._spans)

    @property
    def root_spans(self) -> List[TraceSpan]:
        return [span for span in self._spans if span.parent is None]

    @property
    def current_span(self) -> Optional[TraceSpan]:
        """The innermost span of this trace entered in the current context, if any."""
        span = get_current_span()
        if span is not None and span.trace is self:
            return span
        return None

    def create_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.UNSPECIFIED,
        parent: Optional[TraceSpan] = None,
        labels: Optional[Dict[str, str]] = None,
    ) -> TraceSpan:
        """
        Start a new span.

        Without an explicit parent the span becomes a root span whose parent
        id is the span id carried by the trace context, if any.
        """
        span = TraceSpan(
            self,
            self._next_span_id(),
            name=name,
            parent=parent,
            parent_span_id=None if parent else self.trace_context.span_id,
            kind=kind,
            labels=labels,
        )
        if parent is not None:
            parent.children.append(span)
        self._spans.append(span)
        return span

    @contextmanager
    def in_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.UNSPECIFIED,
        labels: Optional[Dict[str, str]] = None,
    ) -> Iterator[TraceSpan]:
        """Run a block inside a span nested under the current span."""
        span = self.create_span(name, kind=kind, parent=self.current_span, labels=labels)
        with span:
            yield span

    def to_json(self) -> Dict[str, Any]:
        """Encode as a v1 ``Trace`` resource."""
        return {
            "projectId": self.project_id,
            "traceId": self.trace_id,
            "spans": [span.to_json() for span in self._spans],
        }

    def _next_span_id(self) -> int:
        # The API rejects a zero span id.
        span_id = 0
        while not span_id:
            span_id = self._span_id_generator()
        return span_id

    def __repr__(self) -> str:
        return f"TraceRecord(trace_id={self.trace_id!r}, spans={len(self._spans)})"
