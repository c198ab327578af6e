"""
FastAPI middleware helpers for tracing HTTP requests.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from cloud_trace.context.context import reset_current_trace, set_current_trace
from cloud_trace.context.propagators import TRACE_CONTEXT_HEADER
from cloud_trace.instrumentation.http_server import (
    HttpRequestTracer,
    TraceContextResolver,
    resolve_service,
)
from cloud_trace.processors.sampler import Sampler
from cloud_trace.tracer.span import SpanKind


def install_http_middleware(
    app: Any,
    *,
    service=None,
    project_id: Optional[str] = None,
    path_exclusions=None,
    capture_stack: bool = False,
    sampler: Optional[Sampler] = None,
    default_sampler: Optional[Sampler] = None,
    span_id_generator: Optional[Callable[[], int]] = None,
    drop_parent_span: bool = True,
    logger: Optional[logging.Logger] = None,
) -> HttpRequestTracer:
    """
    Attach an HTTP middleware that records a trace for each FastAPI request.

    - Propagates incoming context from the ``X-Cloud-Trace-Context`` header
    - Records method/path/URL and response status code
    - Returns the trace context in the response headers
    - Reports sampled traces without blocking the event loop

    Takes the same options as ``TraceMiddleware``.
    """
    service = resolve_service(service, project_id)
    resolver = TraceContextResolver(
        path_exclusions=path_exclusions,
        capture_stack=capture_stack,
        sampler=sampler,
        default_sampler=default_sampler,
        drop_parent_span=drop_parent_span,
    )
    tracer = HttpRequestTracer(
        resolver,
        service,
        project_id=project_id,
        span_id_generator=span_id_generator,
        logger=logger,
    )

    @app.middleware("http")
    async def tracing_middleware(request, call_next: Callable[[Any], Awaitable[Any]]):  # type: ignore
        path = request.url.path
        trace = tracer.create_trace(dict(request.headers), path)
        token = set_current_trace(trace)
        try:
            with trace.create_span(path, kind=SpanKind.RPC_SERVER) as span:
                tracer.configure_span(
                    span,
                    host=request.headers.get("host") or request.url.hostname,
                    method=request.method,
                    protocol=f"HTTP/{request.scope.get('http_version', '1.1')}",
                    user_agent=request.headers.get("user-agent"),
                    url=str(request.url),
                )
                response = await call_next(request)
                status_code = getattr(response, "status_code", None)
                if status_code is not None:
                    response.headers[TRACE_CONTEXT_HEADER] = tracer.configure_result(span, status_code)
                return response
        finally:
            reset_current_trace(token)
            await asyncio.to_thread(tracer.send_trace, trace)

    return tracer
