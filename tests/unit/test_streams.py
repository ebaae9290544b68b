"""
Unit tests for the pipeline concurrency primitives.

Tests result streams, outstanding-work counters, the permit pool and the
error side channel.
"""

import threading
import time
import pytest

from findgrep.models.config import SearchConfig
from findgrep.tools.errors import ErrorChannel, FatalSearchError
from findgrep.tools.streams import (
    PermitPool,
    PipelineContext,
    ResultStream,
    StreamClosedError,
    WorkCounter
)


class TestResultStream:
    """Test cases for ResultStream."""

    def test_iterates_until_closed(self):
        """Test that iteration yields every item then stops."""
        stream = ResultStream("test", maxsize=10)
        for i in range(3):
            stream.put(i)
        stream.close()

        assert list(stream) == [0, 1, 2]

    def test_iterate_drained_stream_again(self):
        """Test that a second pass over a drained stream ends immediately."""
        stream = ResultStream("test", maxsize=10)
        stream.put("a")
        stream.close()

        assert list(stream) == ["a"]
        assert stream.drained

        second = []
        thread = threading.Thread(target=lambda: second.extend(stream))
        thread.start()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert second == []

    def test_put_after_close(self):
        """Test that writing to a closed stream fails."""
        stream = ResultStream("test")
        stream.close()

        with pytest.raises(StreamClosedError):
            stream.put(1)

    def test_close_exactly_once(self):
        """Test that a second close is rejected."""
        stream = ResultStream("test")
        stream.close()

        with pytest.raises(StreamClosedError, match="closed twice"):
            stream.close()

    def test_bounded_producer_blocks(self):
        """Test that a full stream holds its producer until drained."""
        stream = ResultStream("test", maxsize=2)
        produced = []

        def producer():
            for i in range(5):
                stream.put(i)
                produced.append(i)
            stream.close()

        thread = threading.Thread(target=producer)
        thread.start()
        time.sleep(0.05)

        assert len(produced) <= 3

        assert list(stream) == [0, 1, 2, 3, 4]
        thread.join(timeout=5)
        assert not thread.is_alive()


class TestWorkCounter:
    """Test cases for WorkCounter."""

    def test_zero_transition_reported_once(self):
        """Test that only the call reaching zero returns True."""
        counter = WorkCounter(1)
        counter.increment()

        assert counter.decrement() is False
        assert counter.decrement() is True
        assert counter.finished is True

    def test_no_work_after_zero(self):
        """Test that finished counters accept no more work."""
        counter = WorkCounter(1)
        counter.decrement()

        with pytest.raises(RuntimeError):
            counter.increment()

    def test_no_decrement_below_zero(self):
        """Test that over-decrementing is an error."""
        counter = WorkCounter(0)

        with pytest.raises(RuntimeError):
            counter.decrement()

    def test_negative_initial_rejected(self):
        """Test initial value validation."""
        with pytest.raises(ValueError):
            WorkCounter(-1)

    def test_concurrent_updates(self):
        """Test that many threads reach zero exactly once."""
        counter = WorkCounter(1)
        zero_hits = []
        lock = threading.Lock()

        for _ in range(100):
            counter.increment()

        def worker():
            if counter.decrement():
                with lock:
                    zero_hits.append(1)

        threads = [threading.Thread(target=worker) for _ in range(100)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert counter.value == 1
        assert counter.decrement() is True
        assert zero_hits == []

    def test_wait_zero(self):
        """Test waiting for outstanding work to finish."""
        counter = WorkCounter(1)

        assert counter.wait_zero(timeout=0.01) is False

        threading.Timer(0.02, counter.decrement).start()
        assert counter.wait_zero(timeout=5) is True


class TestPermitPool:
    """Test cases for PermitPool."""

    def test_invalid_capacity(self):
        """Test capacity validation."""
        with pytest.raises(ValueError):
            PermitPool(0)

    def test_scoped_permit_released(self):
        """Test that permits are released on normal exit and on error."""
        pool = PermitPool(2)

        with pool.permit():
            assert pool.in_use == 1

        with pytest.raises(KeyError):
            with pool.permit():
                raise KeyError("boom")

        assert pool.in_use == 0
        assert pool.peak == 1

    def test_never_exceeds_capacity(self):
        """Test that concurrent holders never exceed the pool size."""
        pool = PermitPool(3)

        def worker():
            with pool.permit():
                time.sleep(0.01)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert 1 <= pool.peak <= 3
        assert pool.in_use == 0


class TestErrorChannel:
    """Test cases for ErrorChannel."""

    def test_recoverable_does_not_abort(self):
        """Test that recoverable errors are recorded without aborting."""
        errors = ErrorChannel()
        errors.report("Cannot open ./a")

        assert errors.aborted is False
        assert [e.message for e in errors.get_recoverable()] == ["Cannot open ./a"]
        errors.raise_if_fatal()

    def test_fatal_aborts(self):
        """Test that a fatal error sets the abort flag and raises on demand."""
        errors = ErrorChannel()
        errors.report("Cannot list directory ./x", fatal=True)
        errors.report("Cannot list directory ./y", fatal=True)

        assert errors.aborted is True
        assert len(errors.get_fatal()) == 2

        with pytest.raises(FatalSearchError, match="./x"):
            errors.raise_if_fatal()


class TestPipelineContext:
    """Test cases for PipelineContext."""

    def test_defaults_from_config(self):
        """Test that the permit pool is sized from the config."""
        config = SearchConfig(pattern=".", limits={'max_open_files': 4, 'stream_buffer': 3})
        context = PipelineContext(config=config)

        assert context.permits.capacity == 4
        assert context.walk_counter.value == 1
        assert context.scan_counter.value == 1
        assert context.aborted is False
        assert context.new_stream("x")._queue.maxsize == 3

    def test_contexts_are_independent(self):
        """Test that two contexts share no mutable state."""
        config = SearchConfig(pattern=".")
        first = PipelineContext(config=config)
        second = PipelineContext(config=config)

        first.errors.report("boom", fatal=True)

        assert first.aborted is True
        assert second.aborted is False
        assert first.permits is not second.permits
