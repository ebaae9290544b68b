"""
Concurrency primitives shared by the search pipeline.

This module provides the bounded result streams that connect pipeline
stages, the outstanding-work counters used for termination detection,
the permit pool that caps open file handles, and the per-run context
object handed to every worker.
"""

import logging
import queue
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generic, Iterator, Optional, TypeVar

from ..models.config import SearchConfig
from .errors import ErrorChannel


logger = logging.getLogger(__name__)

T = TypeVar('T')

_CLOSED = object()


class StreamClosedError(RuntimeError):
    """Raised when writing to or closing an already closed stream."""
    pass


class ResultStream(Generic[T]):
    """
    Bounded, single-consumer, producer-closed stream.

    put() blocks while the buffer is full. Iterating yields items until the
    stream has been closed and drained. A stream is closed exactly once;
    iterating a drained stream again yields nothing.
    """

    def __init__(self, name: str, maxsize: int = 10):
        self.name = name
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def drained(self) -> bool:
        return self._drained

    def put(self, item: T) -> None:
        if self._closed:
            raise StreamClosedError(f"Stream '{self.name}' is closed")
        self._queue.put(item)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise StreamClosedError(f"Stream '{self.name}' closed twice")
            self._closed = True
        logger.debug(f"Closing stream '{self.name}'")
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        # The close marker is consumed once; later iterations end at once
        while not self._drained:
            item = self._queue.get()
            if item is _CLOSED:
                self._drained = True
                return
            yield item


class WorkCounter:
    """
    Outstanding-work counter for termination detection.

    The counter reaches zero exactly once. decrement() reports that
    transition to its caller so exactly one party performs the shutdown;
    wait_zero() blocks until it has happened.
    """

    def __init__(self, initial: int = 0):
        if initial < 0:
            raise ValueError("Initial count must be >= 0")
        self._count = initial
        self._cond = threading.Condition()
        self._finished = False

    @property
    def value(self) -> int:
        with self._cond:
            return self._count

    @property
    def finished(self) -> bool:
        with self._cond:
            return self._finished

    def increment(self) -> None:
        with self._cond:
            if self._finished:
                raise RuntimeError("Cannot add work after the counter reached zero")
            self._count += 1

    def decrement(self) -> bool:
        """
        Mark one unit of work as done.

        Returns:
            True for the single call that brought the counter to zero
        """
        with self._cond:
            if self._count <= 0:
                raise RuntimeError("Counter decremented below zero")
            self._count -= 1
            if self._count == 0:
                self._finished = True
                self._cond.notify_all()
                return True
            return False

    def wait_zero(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the counter is zero.

        Returns:
            False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class PermitPool:
    """
    Fixed-capacity pool of permits bounding concurrently open files.

    Use permit() as a context manager so the permit is released on every
    exit path. in_use and peak are tracked for observation in tests.
    """

    def __init__(self, capacity: int = 10):
        if capacity <= 0:
            raise ValueError("Permit pool capacity must be > 0")
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._in_use = 0
        self._peak = 0

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak

    def acquire(self) -> None:
        self._semaphore.acquire()
        with self._lock:
            self._in_use += 1
            self._peak = max(self._peak, self._in_use)

    def release(self) -> None:
        with self._lock:
            self._in_use -= 1
        self._semaphore.release()

    @contextmanager
    def permit(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()


@dataclass
class PipelineContext:
    """
    Per-run state handed to every pipeline task at spawn time.

    Attributes:
        config: Read-only search configuration
        errors: Error side channel
        permits: Permit pool bounding files open for content scanning
        walk_counter: Outstanding directory-expansion tasks, starts at 1 for the root
        scan_counter: Outstanding content-scan tasks plus the file-stream consumer
    """
    config: SearchConfig
    errors: ErrorChannel = field(default_factory=ErrorChannel)
    permits: Optional[PermitPool] = None
    walk_counter: WorkCounter = field(default_factory=lambda: WorkCounter(1))
    scan_counter: WorkCounter = field(default_factory=lambda: WorkCounter(1))

    def __post_init__(self):
        if self.permits is None:
            self.permits = PermitPool(self.config.limits.max_open_files)

    @property
    def aborted(self) -> bool:
        return self.errors.aborted

    def new_stream(self, name: str) -> ResultStream:
        """Create a stream sized by the configured buffer limit."""
        return ResultStream(name, maxsize=self.config.limits.stream_buffer)
