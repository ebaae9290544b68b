"""
Pipeline controller for findgrep.

This module wires the tree walker to the dispatch/filter stage and exposes
the four result streams (directories, files, symlinks, content matches) to
the caller. It owns no filtering logic of its own.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Union

from ..models.config import SearchConfig, SearchSettings
from ..models.entries import Entry, EntryKind, MatchLine
from ..models.search_results import SearchResults
from .dispatcher import Dispatcher
from .errors import ErrorChannel
from .streams import PermitPool, PipelineContext, ResultStream
from .tree_walker import EntryStreams, TreeWalker


logger = logging.getLogger(__name__)

_DRAINED = object()


@dataclass
class SearchStreams:
    """
    The output streams of one run.

    Each stream is finite, single-pass and closed by its producer. Drain all
    four concurrently: a stream left unread eventually blocks the others.
    """
    directories: ResultStream
    files: ResultStream
    symlinks: ResultStream
    matches: ResultStream

    def all(self) -> List[ResultStream]:
        return [self.directories, self.files, self.symlinks, self.matches]


class SearchPipeline:
    """
    One find/grep run over a directory tree.

    Every pipeline builds its own context (counters, permit pool, error
    channel), so any number of pipelines can run side by side.
    """

    def __init__(
        self,
        config: SearchConfig,
        permits: Optional[PermitPool] = None,
        errors: Optional[ErrorChannel] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Compiled search configuration
            permits: Permit pool to use instead of one sized from the config
            errors: Error channel to report to instead of a fresh one
        """
        self.config = config
        self.context = PipelineContext(
            config=config,
            errors=errors or ErrorChannel(),
            permits=permits
        )
        self._streams: Optional[SearchStreams] = None
        self.walker: Optional[TreeWalker] = None
        self.dispatcher: Optional[Dispatcher] = None
        self._consumed = False

    @property
    def errors(self) -> ErrorChannel:
        return self.context.errors

    def start(self) -> SearchStreams:
        """
        Start the run and return its output streams.

        The walker is started before the dispatcher attaches to its streams.

        Raises:
            RuntimeError: If the pipeline was already started
        """
        if self._streams is not None:
            raise RuntimeError("Pipeline already started")

        context = self.context
        raw = EntryStreams.create(context, "raw")
        filtered = EntryStreams.create(context, "filtered")
        matches = context.new_stream("matches")

        logger.info(f"Starting search: {self.config}")

        self.walker = TreeWalker(context, raw)
        self.walker.start(self.config.root)

        self.dispatcher = Dispatcher(context, raw, filtered, matches)
        self.dispatcher.start()

        self._streams = SearchStreams(
            directories=filtered.directories,
            files=filtered.files,
            symlinks=filtered.symlinks,
            matches=matches
        )
        return self._streams

    def iter_results(self) -> Iterator[Union[Entry, MatchLine]]:
        """
        Drain all four streams concurrently and yield records as they arrive.

        Yields:
            Entry and MatchLine records in arrival order

        Raises:
            RuntimeError: If the results were already drained
            FatalSearchError: After draining, if the run was aborted
        """
        if self._consumed:
            raise RuntimeError("Pipeline already consumed")
        self._consumed = True
        return self._drain(self._streams or self.start())

    def _drain(self, streams: SearchStreams) -> Iterator[Union[Entry, MatchLine]]:
        merged: queue.Queue = queue.Queue()

        def drain(stream: ResultStream) -> None:
            try:
                for record in stream:
                    merged.put(record)
            finally:
                merged.put(_DRAINED)

        for stream in streams.all():
            threading.Thread(target=drain, args=(stream,), name=f"findgrep-drain-{stream.name}", daemon=True).start()

        remaining = len(streams.all())
        while remaining:
            record = merged.get()
            if record is _DRAINED:
                remaining -= 1
                continue
            yield record

        if self.dispatcher is not None:
            self.dispatcher.join()

        self.context.errors.raise_if_fatal()

    def collect(self) -> SearchResults:
        """
        Run to completion and gather every record.

        Returns:
            SearchResults holding all reported entries and matches

        Raises:
            FatalSearchError: If the run was aborted; no partial results are returned
        """
        start_time = time.time()
        results = SearchResults(pattern=self.config.pattern, root=self.config.root)

        buckets = {
            EntryKind.DIRECTORY: results.directories,
            EntryKind.FILE: results.files,
            EntryKind.SYMLINK: results.symlinks,
        }
        for record in self.iter_results():
            if isinstance(record, MatchLine):
                results.matches.append(record)
            else:
                buckets[record.kind].append(record.path)

        results.errors = [error.message for error in self.context.errors.get_recoverable()]
        results.execution_time = time.time() - start_time
        logger.info(f"Search finished: {results}")
        return results


def search(pattern: str, root: str = ".", ignore: Optional[str] = None, **options: Any) -> SearchResults:
    """
    Convenience function to run a search and collect its results.

    Args:
        pattern: Regex matched against entry names and file lines
        root: Directory where traversal starts
        ignore: Optional regex of names (and lines) to skip
        **options: 'scope' and 'limits' dictionaries, or individual scope flags

    Returns:
        SearchResults for the run

    Raises:
        FatalSearchError: If the run was aborted
        pydantic.ValidationError: If a pattern or option is invalid
    """
    scope = dict(options.pop('scope', {}))
    limits = options.pop('limits', {})
    scope.update(options)
    settings = SearchSettings(ignore=ignore, root=root, scope=scope, limits=limits)
    return SearchPipeline(settings.to_search_config(pattern)).collect()
