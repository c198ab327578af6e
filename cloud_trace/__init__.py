"""Request tracing for Python web apps, reported to Google Cloud Trace."""

from __future__ import annotations

from typing import Optional

from cloud_trace import runtime_config
from cloud_trace.context import (
    CloudTracePropagator,
    TraceContext,
    get_current_trace,
    in_span,
)
from cloud_trace.errors import CloudTraceError, ConfigError, ReportError
from cloud_trace.exporter import AsyncReporter, ConsoleReporter, TraceService
from cloud_trace.instrumentation import (
    TraceContextResolver,
    TraceMiddleware,
    install_http_middleware,
)
from cloud_trace.processors import ProbabilitySampler, RateSampler, Sampler
from cloud_trace.tracer import SpanKind, TraceRecord, TraceSpan
from cloud_trace.version import __version__


def configure(
    project_id: Optional[str] = None,
    sampler: Optional[Sampler] = None,
) -> None:
    """
    Set process-wide defaults. Call once at startup, before serving requests.

    Args:
        project_id: Default project for ``TraceMiddleware``
        sampler: Default sampler used when a middleware has none of its own
    """
    if project_id is not None:
        runtime_config.set_project_id(project_id)
    if sampler is not None:
        runtime_config.set_default_sampler(sampler)


__all__ = [
    "__version__",
    "configure",
    "get_current_trace",
    "in_span",
    "CloudTracePropagator",
    "TraceContext",
    "TraceContextResolver",
    "TraceMiddleware",
    "install_http_middleware",
    "TraceRecord",
    "TraceSpan",
    "SpanKind",
    "Sampler",
    "ProbabilitySampler",
    "RateSampler",
    "TraceService",
    "AsyncReporter",
    "ConsoleReporter",
    "CloudTraceError",
    "ConfigError",
    "ReportError",
]
