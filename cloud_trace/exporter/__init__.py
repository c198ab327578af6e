"""Reporters for delivering traces to backends."""

from cloud_trace.exporter.async_reporter import AsyncReporter
from cloud_trace.exporter.console_exporter import ConsoleReporter
from cloud_trace.exporter.trace_service import TraceService

__all__ = ["AsyncReporter", "ConsoleReporter", "TraceService"]
