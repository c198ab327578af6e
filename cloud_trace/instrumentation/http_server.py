"""HTTP server helpers: trace context resolution, root span labels, reporting."""

from __future__ import annotations

import logging
import os
import re
import threading
from typing import Callable, Iterable, Mapping, Optional, Union

from cloud_trace import runtime_config
from cloud_trace.context.propagators import extract_trace_context, format_trace_context
from cloud_trace.context.trace_context import TraceContext
from cloud_trace.errors import ConfigError
from cloud_trace.exporter.trace_service import TraceService
from cloud_trace.processors.sampler import Sampler
from cloud_trace.tracer import label_key
from cloud_trace.tracer.span import TraceSpan
from cloud_trace.tracer.trace_record import TraceRecord
from cloud_trace.version import __version__

logger = logging.getLogger(__name__)

# App Engine flexible health checks.
DEFAULT_PATH_EXCLUSIONS = ("/_ah/health",)

AGENT_NAME = f"python cloud_trace {__version__}"

PathExclusion = Union[str, re.Pattern]


class TraceContextResolver:
    """
    Turns inbound request headers into a trace context with a sampling decision.

    The decision is taken once per request. An upstream decision carried in
    the header is kept; otherwise excluded paths are never sampled, then the
    configured sampler is asked, then the process-wide default sampler.
    """

    def __init__(
        self,
        path_exclusions: Optional[Iterable[PathExclusion]] = None,
        capture_stack: bool = False,
        sampler: Optional[Sampler] = None,
        default_sampler: Optional[Sampler] = None,
        drop_parent_span: bool = True,
    ) -> None:
        if path_exclusions is None:
            path_exclusions = DEFAULT_PATH_EXCLUSIONS
        self.path_exclusions = tuple(path_exclusions)
        self.capture_stack = capture_stack
        self.sampler = sampler
        self.default_sampler = default_sampler
        # TODO: stop dropping the parent span id once parented root spans
        # show up again in the trace viewer for App Engine flexible apps.
        self.drop_parent_span = drop_parent_span

    def is_excluded(self, path: str) -> bool:
        for exclusion in self.path_exclusions:
            if isinstance(exclusion, str):
                if exclusion == path:
                    return True
            elif exclusion.search(path):
                return True
        return False

    def resolve(self, headers: Mapping[str, str], path: str) -> TraceContext:
        context = extract_trace_context(headers) or TraceContext.new()

        if context.sampled is None:
            sampled = self._decide(path)
            context = context.with_(
                sampled=sampled,
                capture_stack=sampled and self.capture_stack,
            )

        if self.drop_parent_span:
            context = context.with_(span_id=None)
        return context

    @staticmethod
    def serialize(context: TraceContext) -> str:
        return format_trace_context(context)

    def _decide(self, path: str) -> bool:
        if self.is_excluded(path):
            return False
        if self.sampler is not None:
            return bool(self.sampler.check())
        default_sampler = self.default_sampler or runtime_config.get_default_sampler()
        return bool(default_sampler.check())


def compile_path_exclusions(entries: Iterable[str]) -> tuple:
    """
    Build exclusions from configuration strings.

    Entries of the form ``re:<pattern>`` become regular expressions; all
    others match the path exactly.
    """
    exclusions = []
    for entry in entries:
        if entry.startswith("re:"):
            try:
                exclusions.append(re.compile(entry[3:]))
            except re.error as e:
                raise ConfigError("Invalid path exclusion pattern", {"pattern": entry, "error": e}) from e
        else:
            exclusions.append(entry)
    return tuple(exclusions)


def resolve_service(service=None, project_id: Optional[str] = None):
    """
    Return the reporting service, building a ``TraceService`` if needed.

    Raises:
        ConfigError: if no service was given and either no project id is
            known or no default credentials can be found
    """
    if service is not None:
        return service
    project_id = project_id or runtime_config.get_project_id()
    if not project_id:
        raise ConfigError(
            "No trace service given and no project id found; "
            "pass service= or project_id=, or set GOOGLE_CLOUD_PROJECT"
        )
    return TraceService(project_id)


def _set_label(span: TraceSpan, key: str, value) -> None:
    if isinstance(value, str):
        span.labels[key] = value


class HttpRequestTracer:
    """
    Request lifecycle shared by the WSGI and FastAPI integrations.

    Creates the trace record for a request, labels its root span, adds the
    result to the span and the response, and reports sampled traces.
    """

    def __init__(
        self,
        resolver: TraceContextResolver,
        service,
        project_id: Optional[str] = None,
        span_id_generator: Optional[Callable[[], int]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.resolver = resolver
        self.service = service
        self.project_id = project_id or getattr(service, "project_id", None) or ""
        self.span_id_generator = span_id_generator
        self.logger = logger

    def create_trace(self, headers: Mapping[str, str], path: str) -> TraceRecord:
        trace_context = self.resolver.resolve(headers, path)
        return TraceRecord(
            self.project_id,
            trace_context,
            span_id_generator=self.span_id_generator,
        )

    def configure_span(
        self,
        span: TraceSpan,
        *,
        host: Optional[str] = None,
        method: Optional[str] = None,
        protocol: Optional[str] = None,
        user_agent: Optional[str] = None,
        url: Optional[str] = None,
    ) -> TraceSpan:
        """Set the standard request labels on a root span."""
        _set_label(span, label_key.AGENT, AGENT_NAME)
        _set_label(span, label_key.HTTP_HOST, host)
        _set_label(span, label_key.HTTP_METHOD, method)
        _set_label(span, label_key.HTTP_CLIENT_PROTOCOL, protocol)
        _set_label(span, label_key.HTTP_USER_AGENT, user_agent)
        _set_label(span, label_key.HTTP_URL, url)
        _set_label(span, label_key.PID, str(os.getpid()))
        _set_label(span, label_key.TID, str(threading.get_ident()))

        if span.trace.trace_context.capture_stack:
            label_key.set_stack_trace(span.labels, skip_frames=3)
        if os.getenv("GAE_SERVICE"):
            _set_label(span, label_key.GAE_APP_MODULE, os.getenv("GAE_SERVICE"))
            _set_label(span, label_key.GAE_APP_MODULE_VERSION, os.getenv("GAE_VERSION"))
        return span

    def configure_result(self, span: TraceSpan, status_code) -> str:
        """
        Record the response status on the span.

        Returns the header value to add to the response.
        """
        span.set_label(label_key.HTTP_STATUS_CODE, status_code)
        return self.resolver.serialize(span.trace.trace_context)

    def send_trace(self, trace: TraceRecord) -> None:
        """Report the trace if sampled. Failures are logged, never raised."""
        if self.service is None or not trace.sampled:
            return
        try:
            self.service.patch_traces(trace)
        except Exception as e:
            (self.logger or logger).error("Transmit to Cloud Trace failed: %r", e)
