"""
Fan-out writer: one byte stream delivered to several independent sinks.
"""
import logging
import queue
import threading
from typing import BinaryIO, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

_CLOSE = object()


class _SinkWorker:
    """Drains one sink's queue on its own thread so a slow sink never stalls the others."""

    def __init__(self, sink: BinaryIO, name: str):
        self.sink = sink
        self.name = name
        self.queue: "queue.Queue[object]" = queue.Queue()
        self.error: Optional[BaseException] = None
        self.thread = threading.Thread(target=self._drain, name=f"fanout-{name}", daemon=True)
        self.thread.start()

    def _drain(self) -> None:
        while True:
            item = self.queue.get()
            if item is _CLOSE:
                return
            if self.error is not None:
                continue
            try:
                self.sink.write(item)
                self.sink.flush()
            except (OSError, ValueError) as e:
                # Later chunks are discarded; close() still needs the queue drained.
                self.error = e
                logger.warning("Output sink '%s' stopped accepting data: %s", self.name, e)


class FanoutWriter:
    """
    File-like writer that copies every chunk, in order, to each sink.

    Each sink is served by its own thread and unbounded queue, so ``write``
    never blocks on a sink. ``close`` waits until every sink has received
    everything written before it.
    """

    def __init__(self, sinks: Sequence[BinaryIO], names: Optional[Sequence[str]] = None):
        if not sinks:
            raise ValueError("at least one sink is required")
        if names is not None and len(names) != len(sinks):
            raise ValueError("names must match sinks")
        labels = names or [f"sink{i}" for i in range(len(sinks))]
        self._workers: List[_SinkWorker] = [_SinkWorker(s, n) for s, n in zip(sinks, labels)]
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed FanoutWriter")
        if data:
            chunk = bytes(data)
            for worker in self._workers:
                worker.queue.put(chunk)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for worker in self._workers:
            worker.queue.put(_CLOSE)
        for worker in self._workers:
            worker.thread.join()

    @property
    def errors(self) -> List[BaseException]:
        return [w.error for w in self._workers if w.error is not None]

    @property
    def failed_sinks(self) -> Dict[str, BaseException]:
        """Map each sink that stopped accepting data to the error that stopped it."""
        return {w.name: w.error for w in self._workers if w.error is not None}

    def __enter__(self) -> "FanoutWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
