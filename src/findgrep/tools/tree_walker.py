"""
Tree walker for findgrep.

This module expands a directory tree concurrently. Every directory is
listed by its own task on a thread pool, and each listed subdirectory
schedules a further task, so the fan-out is bounded only by the tree.
Entries are emitted on one raw stream per category.

Termination is detected with an outstanding-work counter: it starts at 1
for the root, is incremented before each subdirectory task is scheduled,
and decremented when a task's own listing is finished. The task that brings
it to zero closes the raw streams.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional

from ..models.entries import Entry, EntryKind
from .streams import PipelineContext, ResultStream


logger = logging.getLogger(__name__)


@dataclass
class EntryStreams:
    """One stream per entry category."""
    directories: ResultStream
    files: ResultStream
    symlinks: ResultStream

    def for_kind(self, kind: EntryKind) -> ResultStream:
        if kind is EntryKind.DIRECTORY:
            return self.directories
        if kind is EntryKind.FILE:
            return self.files
        return self.symlinks

    def close(self) -> None:
        self.directories.close()
        self.files.close()
        self.symlinks.close()

    @classmethod
    def create(cls, context: PipelineContext, prefix: str) -> 'EntryStreams':
        return cls(
            directories=context.new_stream(f"{prefix}-directories"),
            files=context.new_stream(f"{prefix}-files"),
            symlinks=context.new_stream(f"{prefix}-symlinks")
        )


def classify(dir_entry: os.DirEntry) -> Optional[EntryKind]:
    """
    Classify a directory entry without following symbolic links.

    Args:
        dir_entry: Entry returned by os.scandir

    Returns:
        The entry kind, or None for devices, pipes, sockets and the like
    """
    if dir_entry.is_symlink():
        return EntryKind.SYMLINK
    if dir_entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY
    if dir_entry.is_file(follow_symlinks=False):
        return EntryKind.FILE
    return None


class TreeWalker:
    """
    Concurrent recursive directory expander.

    Listing failures are fatal: they are reported to the error channel,
    which aborts the run. Remaining tasks still finish their bookkeeping so
    the raw streams are always closed.
    """

    def __init__(self, context: PipelineContext, outputs: EntryStreams):
        """
        Initialize the tree walker.

        Args:
            context: Pipeline context holding config, counters and error channel
            outputs: Raw entry streams to emit on
        """
        self.context = context
        self.config = context.config
        self.outputs = outputs
        self.counter = context.walk_counter
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.limits.walk_workers,
            thread_name_prefix="findgrep-walk"
        )
        self._stats_lock = threading.Lock()
        self._stats = {
            'directories_listed': 0,
            'entries_emitted': 0,
            'entries_skipped': 0
        }

    def start(self, root: str) -> None:
        """
        Begin expanding the tree at root.

        The outstanding-work counter already accounts for the root task.
        """
        logger.info(f"Walking directory tree: {root}")
        self._executor.submit(self._expand, root)

    def _expand(self, directory: str) -> None:
        try:
            self._list_directory(directory)
        except Exception as e:
            logger.exception(f"Unexpected error expanding {directory}")
            self.context.errors.report(f"Error expanding {directory}: {e}", fatal=True)
        finally:
            if self.counter.decrement():
                self._finish()

    def _list_directory(self, directory: str) -> None:
        if self.context.aborted:
            return

        try:
            with os.scandir(directory) as it:
                children = list(it)
        except OSError as e:
            self.context.errors.report(f"Cannot list directory {directory}: {e}", fatal=True)
            return

        self._count('directories_listed')

        for child in children:
            if self.context.aborted:
                return

            name = child.name
            if self.config.is_hidden_name(name) or self.config.is_ignored_name(name):
                self._count('entries_skipped')
                continue

            kind = classify(child)
            if kind is None:
                continue

            # Single separator, paths keep the root's spelling
            path = directory.rstrip('/') + '/' + name
            self.outputs.for_kind(kind).put(Entry(path=path, kind=kind))
            self._count('entries_emitted')

            if kind is EntryKind.DIRECTORY:
                self.counter.increment()
                self._executor.submit(self._expand, path)

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def _finish(self) -> None:
        logger.debug(f"Tree walk finished: {self.get_stats()}")
        self.outputs.close()
        self._executor.shutdown(wait=False)

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the walk.

        Returns:
            Dictionary containing operation statistics
        """
        with self._stats_lock:
            return self._stats.copy()
