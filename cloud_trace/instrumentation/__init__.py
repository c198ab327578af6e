"""HTTP server and client integrations."""

from cloud_trace.instrumentation.fastapi import install_http_middleware
from cloud_trace.instrumentation.http_client import inject_headers as inject_http_headers
from cloud_trace.instrumentation.http_server import (
    AGENT_NAME,
    DEFAULT_PATH_EXCLUSIONS,
    HttpRequestTracer,
    TraceContextResolver,
)
from cloud_trace.instrumentation.wsgi import TraceMiddleware

__all__ = [
    "AGENT_NAME",
    "DEFAULT_PATH_EXCLUSIONS",
    "HttpRequestTracer",
    "TraceContextResolver",
    "TraceMiddleware",
    "inject_http_headers",
    "install_http_middleware",
]
