"""Console reporter for developer visibility."""

from __future__ import annotations

import sys
from typing import Iterable, Union

from cloud_trace.tracer.trace_record import TraceRecord


class ConsoleReporter:
    """Simple reporter that prints spans to stdout (or provided stream)."""

    def __init__(self, stream=None, project_id: str = "console") -> None:
        self.stream = stream or sys.stdout
        self.project_id = project_id

    def patch_traces(self, traces: Union[TraceRecord, Iterable[TraceRecord]]) -> None:
        if isinstance(traces, TraceRecord):
            traces = [traces]
        for trace in traces:
            for span in trace.all_spans:
                line = (
                    f"[span] name={span.name} trace_id={trace.trace_id} "
                    f"span_id={span.span_id} parent={span.parent_span_id} "
                    f"duration_ns={span.duration_ns}"
                )
                if span.labels:
                    line += f" labels={span.labels}"
                print(line, file=self.stream)
