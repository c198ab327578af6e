"""Immutable trace context and its ``X-Cloud-Trace-Context`` string form.

The header value has the shape ``TRACE_ID[/SPAN_ID][;o=OPTIONS]``:

- ``TRACE_ID`` is 32 hex digits.
- ``SPAN_ID`` is the parent span id as an unsigned decimal integer.
- ``OPTIONS`` is a bit field: bit 0 is the sampling decision, bit 1 asks for
  stack traces. Without ``o=`` the sampling decision is unknown.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Optional

from opentelemetry.sdk.trace.id_generator import RandomIdGenerator

from cloud_trace.utils.helpers import format_trace_id

_HEADER_RE = re.compile(r"^([0-9a-fA-F]{32})(?:/(\d+))?(?:;o=(\d+))?$")

_OPTION_SAMPLED = 1
_OPTION_CAPTURE_STACK = 2

_id_generator = RandomIdGenerator()


def new_trace_id() -> str:
    """Generate a random 32-character hex trace id."""
    return format_trace_id(_id_generator.generate_trace_id())


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    span_id: Optional[int] = None
    sampled: Optional[bool] = None  # None = no decision yet
    capture_stack: bool = False
    is_new: bool = False

    @classmethod
    def new(cls) -> "TraceContext":
        """A fresh context with a generated trace id and no sampling decision."""
        return cls(trace_id=new_trace_id(), is_new=True)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TraceContext"]:
        """
        Parse a header value, returning None if it is missing or malformed.
        """
        if not value:
            return None
        match = _HEADER_RE.match(value.strip())
        if match is None:
            return None
        trace_id, span_id, options = match.groups()
        if int(trace_id, 16) == 0:
            return None
        sampled = None
        capture_stack = False
        if options is not None:
            flags = int(options)
            sampled = bool(flags & _OPTION_SAMPLED)
            capture_stack = sampled and bool(flags & _OPTION_CAPTURE_STACK)
        return cls(
            trace_id=trace_id.lower(),
            span_id=int(span_id) if span_id is not None else None,
            sampled=sampled,
            capture_stack=capture_stack,
        )

    @classmethod
    def parse_or_new(cls, value: Optional[str]) -> "TraceContext":
        return cls.parse(value) or cls.new()

    def with_(self, **changes) -> "TraceContext":
        return dataclasses.replace(self, **changes)

    def to_string(self) -> str:
        value = self.trace_id
        if self.span_id is not None:
            value += f"/{self.span_id}"
        if self.sampled is not None:
            options = 0
            if self.sampled:
                options |= _OPTION_SAMPLED
                if self.capture_stack:
                    options |= _OPTION_CAPTURE_STACK
            value += f";o={options}"
        return value

    def __str__(self) -> str:
        return self.to_string()
