"""
WSGI middleware that traces every request.

For each request it:

- reads the trace context from the ``X-Cloud-Trace-Context`` header, or
  starts a new trace;
- makes a sampling decision if the caller did not send one;
- records a root span covering the whole request, labelled with standard
  request data;
- makes the trace available to the app through
  ``cloud_trace.get_current_trace()`` so it can add spans;
- returns the trace context in the response headers;
- reports sampled traces to Cloud Trace.

Usage::

    from cloud_trace import TraceMiddleware

    app = TraceMiddleware(app, project_id="my-project")
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from cloud_trace.context.context import reset_current_trace, set_current_trace
from cloud_trace.context.propagators import TRACE_CONTEXT_HEADER
from cloud_trace.exporter.async_reporter import AsyncReporter
from cloud_trace.exporter.trace_service import TraceService
from cloud_trace.instrumentation.http_server import (
    HttpRequestTracer,
    TraceContextResolver,
    compile_path_exclusions,
    resolve_service,
)
from cloud_trace.processors.sampler import ProbabilitySampler, RateSampler, Sampler
from cloud_trace.tracer.span import SpanKind
from cloud_trace.tracer.trace_record import TraceRecord

WSGIApp = Callable[[Dict[str, Any], Callable], Iterable[bytes]]

_HEADER_LOWER = TRACE_CONTEXT_HEADER.lower()


def get_path(environ: Dict[str, Any]) -> str:
    path = f"{environ.get('SCRIPT_NAME', '')}{environ.get('PATH_INFO', '')}"
    if not path.startswith("/"):
        path = "/" + path
    return path


def get_host(environ: Dict[str, Any]) -> Optional[str]:
    return environ.get("HTTP_HOST") or environ.get("SERVER_NAME")


def get_url(environ: Dict[str, Any]) -> str:
    scheme = environ.get("wsgi.url_scheme", "http")
    url = f"{scheme}://{get_host(environ) or ''}{get_path(environ)}"
    query_string = environ.get("QUERY_STRING") or ""
    if query_string:
        url = f"{url}?{query_string}"
    return url


class TraceMiddleware:
    """WSGI middleware recording a trace for each request."""

    def __init__(
        self,
        app: WSGIApp,
        service=None,
        project_id: Optional[str] = None,
        path_exclusions=None,
        capture_stack: bool = False,
        sampler: Optional[Sampler] = None,
        default_sampler: Optional[Sampler] = None,
        span_id_generator: Optional[Callable[[], int]] = None,
        drop_parent_span: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            app: The WSGI application to wrap
            service: Reporting service with a ``patch_traces`` method.
                Built from ``project_id`` when omitted.
            project_id: Project to report to; defaults to the runtime
                project or ``GOOGLE_CLOUD_PROJECT``
            path_exclusions: Paths (strings or compiled patterns) that are
                never traced. Defaults to App Engine health checks.
            capture_stack: Record a stack trace on sampled root spans
            sampler: Sampler to use instead of the default sampler
            default_sampler: Overrides the process-wide default sampler
            span_id_generator: Callable returning new span ids
            drop_parent_span: Ignore the parent span id sent by the caller
            logger: Where to log reporting failures

        Raises:
            ConfigError: if no service is given and no project id is known
        """
        self.app = app
        self.service = resolve_service(service, project_id)
        self.resolver = TraceContextResolver(
            path_exclusions=path_exclusions,
            capture_stack=capture_stack,
            sampler=sampler,
            default_sampler=default_sampler,
            drop_parent_span=drop_parent_span,
        )
        self.tracer = HttpRequestTracer(
            self.resolver,
            self.service,
            project_id=project_id,
            span_id_generator=span_id_generator,
            logger=logger,
        )

    @classmethod
    def from_config(cls, app: WSGIApp, config=None, service=None, **kwargs) -> "TraceMiddleware":
        """Build the middleware from a ``TraceConfig`` (loaded if omitted)."""
        from cloud_trace.config import load_config

        config = config or load_config()
        if service is None:
            project_id = kwargs.get("project_id") or config.project_id
            service = resolve_service(None, project_id)
            if isinstance(service, TraceService):
                service.timeout = config.report_timeout
            if config.async_reporting:
                service = AsyncReporter(service, max_queue_size=config.max_queue_size)

        if config.sample_rate is not None:
            kwargs.setdefault("sampler", ProbabilitySampler(config.sample_rate))
        if config.qps is not None:
            kwargs.setdefault("default_sampler", RateSampler(config.qps))
        kwargs.setdefault("project_id", config.project_id)
        kwargs.setdefault("path_exclusions", compile_path_exclusions(config.path_exclusions))
        kwargs.setdefault("capture_stack", config.capture_stack)
        kwargs.setdefault("drop_parent_span", config.drop_parent_span)
        return cls(app, service=service, **kwargs)

    def __call__(self, environ: Dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        trace = self.create_trace(environ)
        token = set_current_trace(trace)
        try:
            with trace.create_span(get_path(environ), kind=SpanKind.RPC_SERVER) as span:
                self.tracer.configure_span(
                    span,
                    host=get_host(environ),
                    method=environ.get("REQUEST_METHOD"),
                    protocol=environ.get("SERVER_PROTOCOL"),
                    user_agent=environ.get("HTTP_USER_AGENT"),
                    url=get_url(environ),
                )

                def traced_start_response(status, headers, exc_info=None):
                    status_code = str(status).split(" ", 1)[0]
                    header_value = self.tracer.configure_result(span, status_code)
                    headers = [(k, v) for k, v in headers if k.lower() != _HEADER_LOWER]
                    headers.append((TRACE_CONTEXT_HEADER, header_value))
                    if exc_info is not None:
                        return start_response(status, headers, exc_info)
                    return start_response(status, headers)

                return self.app(environ, traced_start_response)
        finally:
            reset_current_trace(token)
            self.tracer.send_trace(trace)

    def create_trace(self, environ: Dict[str, Any]) -> TraceRecord:
        """Create the trace record for a request."""
        return self.tracer.create_trace(environ, get_path(environ))
