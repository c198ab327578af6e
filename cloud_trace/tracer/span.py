"""Span implementation for trace records."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from cloud_trace.context.context import pop_span, push_span
from cloud_trace.tracer import label_key
from cloud_trace.utils.helpers import format_timestamp

if TYPE_CHECKING:
    from cloud_trace.tracer.trace_record import TraceRecord


class SpanKind(Enum):
    UNSPECIFIED = "SPAN_KIND_UNSPECIFIED"
    RPC_SERVER = "RPC_SERVER"
    RPC_CLIENT = "RPC_CLIENT"


class TraceSpan:
    """
    A named, timed unit of work inside a ``TraceRecord``.

    Spans are created through ``TraceRecord.create_span`` or
    ``TraceSpan.create_span`` and start timing immediately. They may be used
    as context managers; leaving the block finishes the span.
    """

    def __init__(
        self,
        trace: "TraceRecord",
        span_id: int,
        name: str = "",
        parent: Optional["TraceSpan"] = None,
        parent_span_id: Optional[int] = None,
        kind: SpanKind = SpanKind.UNSPECIFIED,
        labels: Optional[Dict[str, str]] = None,
    ) -> None:
        self.trace = trace
        self.span_id = span_id
        self.name = name
        self.parent = parent
        if parent is not None:
            parent_span_id = parent.span_id
        self.parent_span_id = parent_span_id
        self.kind = kind
        self.labels: Dict[str, str] = dict(labels or {})
        self.children: List[TraceSpan] = []

        self.start_time_ns = time.time_ns()
        self.end_time_ns: Optional[int] = None
        self._context_token = None

    @property
    def finished(self) -> bool:
        return self.end_time_ns is not None

    @property
    def duration_ns(self) -> Optional[int]:
        """Get span duration in nanoseconds."""
        if self.end_time_ns is None:
            return None
        return self.end_time_ns - self.start_time_ns

    def create_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.UNSPECIFIED,
        labels: Optional[Dict[str, str]] = None,
    ) -> "TraceSpan":
        """Start a child span of this one."""
        return self.trace.create_span(name, kind=kind, parent=self, labels=labels)

    def set_label(self, key: str, value: Any) -> None:
        """Set a label if the span is still open. Values are stored as strings."""
        if self.finished or value is None:
            return
        self.labels[key] = str(value)

    def record_exception(self, error: BaseException) -> None:
        """Record the exception type and message as error labels."""
        self.set_label(label_key.ERROR_NAME, type(error).__name__)
        self.set_label(label_key.ERROR_MESSAGE, str(error))

    def finish(self) -> None:
        """End the span. Calling it more than once has no effect."""
        if self.finished:
            return
        self.end_time_ns = time.time_ns()

    def to_json(self) -> Dict[str, Any]:
        """Encode as a v1 ``TraceSpan`` resource."""
        data: Dict[str, Any] = {
            "spanId": str(self.span_id),
            "kind": self.kind.value,
            "name": self.name,
            "startTime": format_timestamp(self.start_time_ns),
            "endTime": format_timestamp(self.end_time_ns or self.start_time_ns),
        }
        if self.parent_span_id:
            data["parentSpanId"] = str(self.parent_span_id)
        if self.labels:
            data["labels"] = dict(self.labels)
        return data

    def __repr__(self) -> str:
        return f"TraceSpan(name={self.name!r}, span_id={self.span_id}, finished={self.finished})"

    # Context manager support
    def __enter__(self) -> "TraceSpan":
        """Enter context manager and make this the current span."""
        self._context_token = push_span(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        """Exit context manager."""
        try:
            if exc is not None:
                self.record_exception(exc)
            self.finish()
        finally:
            pop_span(self._context_token)
        return False
