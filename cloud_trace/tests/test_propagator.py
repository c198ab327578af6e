"""Tests for the OpenTelemetry propagator."""

import unittest

from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags
from opentelemetry.trace import get_current_span, set_span_in_context

from cloud_trace.context import CloudTracePropagator

TRACE_ID = "0af7651916cd43dd8448eb211c80319c"


class TestCloudTracePropagator(unittest.TestCase):

    def setUp(self):
        self.propagator = CloudTracePropagator()

    def test_extract(self):
        ctx = self.propagator.extract({"x-cloud-trace-context": f"{TRACE_ID}/12345;o=1"})
        span_context = get_current_span(ctx).get_span_context()
        self.assertEqual(format(span_context.trace_id, "032x"), TRACE_ID)
        self.assertEqual(span_context.span_id, 12345)
        self.assertTrue(span_context.is_remote)
        self.assertTrue(span_context.trace_flags.sampled)

    def test_extract_canonical_header_name(self):
        ctx = self.propagator.extract({"X-Cloud-Trace-Context": f"{TRACE_ID}/1;o=0"})
        span_context = get_current_span(ctx).get_span_context()
        self.assertTrue(span_context.is_valid)
        self.assertFalse(span_context.trace_flags.sampled)

    def test_extract_without_span_id_is_ignored(self):
        ctx = self.propagator.extract({"x-cloud-trace-context": TRACE_ID})
        self.assertFalse(get_current_span(ctx).get_span_context().is_valid)

    def test_extract_malformed(self):
        ctx = self.propagator.extract({"x-cloud-trace-context": "nope"})
        self.assertFalse(get_current_span(ctx).get_span_context().is_valid)

    def test_inject(self):
        span_context = SpanContext(
            trace_id=int(TRACE_ID, 16),
            span_id=42,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )
        carrier = {}
        self.propagator.inject(carrier, context=set_span_in_context(NonRecordingSpan(span_context)))
        self.assertEqual(carrier["X-Cloud-Trace-Context"], f"{TRACE_ID}/42;o=1")

    def test_inject_without_span(self):
        carrier = {}
        self.propagator.inject(carrier)
        self.assertEqual(carrier, {})

    def test_fields(self):
        self.assertEqual(self.propagator.fields, {"X-Cloud-Trace-Context"})


if __name__ == "__main__":
    unittest.main()
