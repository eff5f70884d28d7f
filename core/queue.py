"""
Closable in-memory queues used by the worker pool: one job source drained by
every worker and one result sink drained by the aggregator.
"""

import logging
import queue
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


@dataclass(frozen=True)
class ScanJob:
    host: str
    port: int


class ClosableQueue(Generic[T]):
    """
    Thread-safe FIFO that can be closed once by its producer side.

    Iterating yields items until the queue is closed and drained. A single
    close marker wakes every consumer: each one that sees it puts it back
    before leaving. With the default maxsize of 1, put() blocks until a
    consumer takes the previous item.
    """

    def __init__(self, maxsize: int = 1, name: str = "queue"):
        self._q: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self.name = name

    def put(self, item: T) -> None:
        self._q.put(item)

    def close(self) -> None:
        log.debug("close %s", self.name)
        self._q.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._q.get()
            if item is _CLOSED:
                self._q.put(_CLOSED)
                return
            yield item
