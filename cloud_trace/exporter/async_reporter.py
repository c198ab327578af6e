"""Asynchronous trace reporter with bounded queue and background flush."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Deque, Iterable, List, Optional, Union

from cloud_trace.tracer.trace_record import TraceRecord

logger = logging.getLogger(__name__)


class AsyncReporter:
    """
    Queues traces and forwards them to a service from a worker thread.

    Offers the same ``patch_traces`` method as ``TraceService`` but returns
    immediately, so reporting does not add to request latency. When the
    queue is full the oldest queued trace is dropped, or the incoming one
    when ``drop_newest`` is set.
    """

    def __init__(
        self,
        service,
        *,
        max_queue_size: int = 1000,
        max_batch_size: int = 100,
        schedule_delay_millis: int = 1000,
        drop_newest: bool = False,
    ) -> None:
        self.service = service
        self.max_queue_size = max_queue_size
        self.max_batch_size = max_batch_size
        self.schedule_delay = schedule_delay_millis / 1000.0
        self.drop_newest = drop_newest

        self._queue: Deque[TraceRecord] = deque()
        self._lock = threading.Lock()
        self._export_lock = threading.Lock()
        self._event = threading.Event()
        self._shutdown = False
        self._dropped = 0
        self._worker = threading.Thread(target=self._worker_loop, name="cloud-trace-reporter", daemon=True)
        self._worker.start()

    @property
    def project_id(self) -> Optional[str]:
        return getattr(self.service, "project_id", None)

    @property
    def dropped(self) -> int:
        return self._dropped

    def patch_traces(self, traces: Union[TraceRecord, Iterable[TraceRecord]]) -> None:
        """Queue traces for delivery."""
        if self._shutdown:
            return
        if isinstance(traces, TraceRecord):
            traces = [traces]

        with self._lock:
            for trace in traces:
                if len(self._queue) < self.max_queue_size:
                    self._queue.append(trace)
                    continue
                if self.drop_newest:
                    dropped = trace
                else:
                    dropped = self._queue.popleft()
                    self._queue.append(trace)
                self._dropped += 1
                logger.warning(
                    "Trace report queue full, dropped trace %s (total dropped: %d)",
                    dropped.trace_id,
                    self._dropped,
                )
        self._event.set()

    def force_flush(self, timeout: Optional[float] = None) -> None:
        """Deliver everything queued so far."""
        deadline = time.time() + timeout if timeout is not None else None
        while True:
            flushed_any = self._flush_once()
            if not flushed_any:
                return
            if deadline is not None and time.time() >= deadline:
                return

    def shutdown(self) -> None:
        """Stop the worker and deliver pending traces."""
        self._shutdown = True
        self._event.set()
        self._worker.join(timeout=self.schedule_delay * 2)
        self.force_flush()

    # Internal
    def _worker_loop(self) -> None:
        """Background worker that periodically flushes traces."""
        while not self._shutdown:
            self._event.wait(timeout=self.schedule_delay)
            self._event.clear()
            while self._flush_once():
                pass

    def _flush_once(self) -> bool:
        """Flush one batch of traces."""
        with self._export_lock:
            traces = self._drain_queue(self.max_batch_size)
            if not traces:
                return False
            self._export(traces)
            return True

    def _drain_queue(self, limit: int) -> List[TraceRecord]:
        """Drain traces from queue up to limit."""
        items: List[TraceRecord] = []
        with self._lock:
            while self._queue and len(items) < limit:
                items.append(self._queue.popleft())
        return items

    def _export(self, traces: List[TraceRecord]) -> None:
        try:
            self.service.patch_traces(traces)
        except Exception as e:
            # The caller is long gone; log and move on.
            logger.error("Transmit to Cloud Trace failed for %d trace(s): %s", len(traces), e)
