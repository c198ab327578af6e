"""Tests for trace reporters."""

import io
import unittest
from unittest import mock

import requests
from google.auth.credentials import AnonymousCredentials
from google.auth.exceptions import DefaultCredentialsError
from google.auth.transport.requests import AuthorizedSession

from cloud_trace.context import TraceContext
from cloud_trace.errors import ConfigError, ReportError
from cloud_trace.exporter import AsyncReporter, ConsoleReporter, TraceService
from cloud_trace.tracer import TraceRecord

TRACE_ID = "0af7651916cd43dd8448eb211c80319c"


def make_trace(name="/"):
    trace = TraceRecord("my-project", TraceContext(trace_id=TRACE_ID, sampled=True))
    with trace.create_span(name):
        pass
    return trace


class TestTraceService(unittest.TestCase):
    """Test the HTTP trace service client."""

    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.session.patch.return_value = mock.Mock(status_code=200, text="{}")

    def test_patch_traces_request(self):
        service = TraceService("my-project", session=self.session, access_token="tok", timeout=2.5)
        trace = make_trace("/items")
        service.patch_traces(trace)

        self.session.patch.assert_called_once()
        args, kwargs = self.session.patch.call_args
        self.assertEqual(args[0], "https://cloudtrace.googleapis.com/v1/projects/my-project/traces")
        self.assertEqual(kwargs["timeout"], 2.5)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        [body] = kwargs["json"]["traces"]
        self.assertEqual(body["projectId"], "my-project")
        self.assertEqual(body["traceId"], TRACE_ID)
        self.assertEqual(body["spans"][0]["name"], "/items")

    def test_explicit_credentials_build_authorized_session(self):
        credentials = AnonymousCredentials()
        with mock.patch("google.auth.default") as auth_default:
            service = TraceService("my-project", credentials=credentials)
        auth_default.assert_not_called()
        self.assertIsInstance(service.session, AuthorizedSession)
        self.assertIs(service.session.credentials, credentials)

    def test_missing_default_credentials_raise_config_error(self):
        with mock.patch("google.auth.default", side_effect=DefaultCredentialsError("none")):
            with self.assertRaises(ConfigError):
                TraceService("my-project")

    def test_patch_multiple_traces(self):
        service = TraceService("my-project", session=self.session)
        service.patch_traces([make_trace(), make_trace()])
        self.assertEqual(len(self.session.patch.call_args[1]["json"]["traces"]), 2)

    def test_empty_batch_is_skipped(self):
        service = TraceService("my-project", session=self.session)
        service.patch_traces([])
        self.session.patch.assert_not_called()

    def test_http_error_raises_report_error(self):
        self.session.patch.return_value = mock.Mock(status_code=403, text="permission denied")
        service = TraceService("my-project", session=self.session)
        with self.assertRaises(ReportError) as ctx:
            service.patch_traces(make_trace())
        self.assertEqual(ctx.exception.details["status"], 403)

    def test_transport_error_raises_report_error(self):
        self.session.patch.side_effect = requests.ConnectionError("unreachable")
        service = TraceService("my-project", session=self.session)
        with self.assertRaises(ReportError) as ctx:
            service.patch_traces(make_trace())
        self.assertIsInstance(ctx.exception.__cause__, requests.ConnectionError)


class TestAsyncReporter(unittest.TestCase):
    """Test queued background reporting."""

    def test_force_flush_delivers_traces(self):
        service = mock.Mock()
        reporter = AsyncReporter(service, schedule_delay_millis=60000)
        try:
            reporter.patch_traces(make_trace())
            reporter.patch_traces(make_trace())
            reporter.force_flush()
        finally:
            reporter.shutdown()

        delivered = [t for call in service.patch_traces.call_args_list for t in call[0][0]]
        self.assertEqual(len(delivered), 2)

    def test_service_failure_is_logged(self):
        service = mock.Mock()
        service.patch_traces.side_effect = ReportError("down")
        reporter = AsyncReporter(service, schedule_delay_millis=60000)
        try:
            with self.assertLogs("cloud_trace.exporter.async_reporter", level="ERROR"):
                reporter.patch_traces(make_trace())
                reporter.force_flush()
        finally:
            reporter.shutdown()

    def test_overflow_drops_oldest_by_default(self):
        service = mock.Mock()
        reporter = AsyncReporter(service, max_queue_size=1, schedule_delay_millis=60000)
        first, second = make_trace("/first"), make_trace("/second")
        # Keep the worker from draining between the two calls.
        with reporter._export_lock:
            with self.assertLogs("cloud_trace.exporter.async_reporter", level="WARNING"):
                reporter.patch_traces([first, second])
            self.assertEqual(list(reporter._queue), [second])
        self.assertEqual(reporter.dropped, 1)
        reporter.shutdown()

    def test_overflow_drops_newest_when_asked(self):
        service = mock.Mock()
        reporter = AsyncReporter(service, max_queue_size=1, schedule_delay_millis=60000, drop_newest=True)
        first, second = make_trace("/first"), make_trace("/second")
        with reporter._export_lock:
            with self.assertLogs("cloud_trace.exporter.async_reporter", level="WARNING"):
                reporter.patch_traces([first, second])
            self.assertEqual(list(reporter._queue), [first])
        self.assertEqual(reporter.dropped, 1)
        reporter.shutdown()

    def test_force_flush_zero_timeout_sends_one_batch(self):
        service = mock.Mock()
        reporter = AsyncReporter(service, max_batch_size=1, schedule_delay_millis=60000)
        # Keep the worker asleep so only force_flush delivers.
        with mock.patch.object(reporter._event, "set"):
            reporter.patch_traces([make_trace(), make_trace(), make_trace()])
            reporter.force_flush(timeout=0)
            self.assertEqual(service.patch_traces.call_count, 1)
        reporter.shutdown()
        self.assertEqual(service.patch_traces.call_count, 3)

    def test_project_id_from_service(self):
        service = mock.Mock(project_id="p1")
        reporter = AsyncReporter(service)
        self.assertEqual(reporter.project_id, "p1")
        reporter.shutdown()


class TestConsoleReporter(unittest.TestCase):
    def test_prints_spans(self):
        stream = io.StringIO()
        ConsoleReporter(stream=stream).patch_traces(make_trace("/hello"))
        output = stream.getvalue()
        self.assertIn("name=/hello", output)
        self.assertIn(TRACE_ID, output)


if __name__ == "__main__":
    unittest.main()
