"""
Dispatch/filter stage for findgrep.

This module consumes the raw entry streams produced by the tree walker,
applies the name filter and scope flags, and schedules content scans for
files. Each raw category has its own consumer thread so a slow content
scan never stalls directory or symlink reporting.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List

from ..models.entries import Entry
from .content_scanner import ContentScanner
from .streams import PipelineContext, ResultStream
from .tree_walker import EntryStreams


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Filters raw entries and fans file entries out to content scans.

    The match stream is closed only after the raw file stream is exhausted
    and every scan task has completed. The scan counter starts at 1 on
    behalf of the file consumer itself, so it cannot reach zero while file
    entries are still arriving.
    """

    def __init__(
        self,
        context: PipelineContext,
        raw: EntryStreams,
        outputs: EntryStreams,
        matches: ResultStream
    ):
        """
        Initialize the dispatcher.

        Args:
            context: Pipeline context holding config, counters and error channel
            raw: Entry streams fed by the tree walker
            outputs: Filtered entry streams for the reporter
            matches: Stream receiving content-search hits
        """
        self.context = context
        self.config = context.config
        self.raw = raw
        self.outputs = outputs
        self.matches = matches
        self.scanner = ContentScanner(context, matches)
        self._scan_executor = ThreadPoolExecutor(
            max_workers=self.config.limits.scan_workers,
            thread_name_prefix="findgrep-scan"
        )
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        """Start one consumer thread per raw entry category."""
        consumers = [
            ("directories", self._consume_directories),
            ("files", self._consume_files),
            ("symlinks", self._consume_symlinks),
        ]
        for name, target in consumers:
            thread = threading.Thread(target=target, name=f"findgrep-dispatch-{name}", daemon=True)
            thread.start()
            self._threads.append(thread)

    def join(self) -> None:
        """Wait for all consumer threads to finish."""
        for thread in self._threads:
            thread.join()

    def _wants(self, entry: Entry, enabled: bool) -> bool:
        return enabled and not self.context.aborted and self.config.matches_name(entry.name)

    def _consume_directories(self) -> None:
        self._forward(self.raw.directories, self.outputs.directories, self.config.scope.directories)

    def _consume_symlinks(self) -> None:
        self._forward(self.raw.symlinks, self.outputs.symlinks, self.config.scope.symlinks)

    def _forward(self, source: ResultStream, target: ResultStream, enabled: bool) -> None:
        try:
            for entry in source:
                if self._wants(entry, enabled):
                    target.put(entry)
        finally:
            target.close()

    def _consume_files(self) -> None:
        scope = self.config.scope
        counter = self.context.scan_counter
        try:
            for entry in self.raw.files:
                if self._wants(entry, scope.files):
                    self.outputs.files.put(entry)

                # Name and content filters are independent
                if scope.content and not self.context.aborted:
                    counter.increment()
                    self._scan_executor.submit(self._scan, entry.path)
        finally:
            self.outputs.files.close()
            counter.decrement()
            counter.wait_zero()
            self._scan_executor.shutdown(wait=False)
            self.matches.close()
            logger.debug("Content scanning finished")

    def _scan(self, path: str) -> None:
        try:
            if not self.context.aborted:
                self.scanner.scan(path)
        except Exception as e:
            logger.exception(f"Unexpected error scanning {path}")
            self.context.errors.report(f"Error scanning {path}: {e}", fatal=True)
        finally:
            self.context.scan_counter.decrement()
