"""
Unit tests for the dispatch/filter stage.

Tests name filtering, scope flags, the independence of name and content
filters, and the shutdown ordering of the match stream.
"""

import os
import shutil
import tempfile
import threading
import time
from pathlib import Path

from findgrep.models.config import SearchConfig
from findgrep.models.entries import Entry, EntryKind
from findgrep.tools.dispatcher import Dispatcher
from findgrep.tools.streams import PipelineContext
from findgrep.tools.tree_walker import EntryStreams


class TestDispatcher:
    """Test cases for the Dispatcher class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir)
        (self.root / "notes.txt").write_text("alpha\nneedle here\n")
        (self.root / "needle.txt").write_text("nothing\n")
        (self.root / "other.md").write_text("needle\nneedle again\n")

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _entries(self):
        return [
            Entry(path=f"{self.temp_dir}/needle_dir", kind=EntryKind.DIRECTORY),
            Entry(path=f"{self.temp_dir}/plain_dir", kind=EntryKind.DIRECTORY),
            Entry(path=f"{self.temp_dir}/notes.txt", kind=EntryKind.FILE),
            Entry(path=f"{self.temp_dir}/needle.txt", kind=EntryKind.FILE),
            Entry(path=f"{self.temp_dir}/other.md", kind=EntryKind.FILE),
            Entry(path=f"{self.temp_dir}/needle_link", kind=EntryKind.SYMLINK),
            Entry(path=f"{self.temp_dir}/plain_link", kind=EntryKind.SYMLINK),
        ]

    def _dispatch(self, context=None, **options):
        options.setdefault('limits', {'stream_buffer': 1000})
        if context is None:
            config = SearchConfig(pattern="needle", root=self.temp_dir, **options)
            context = PipelineContext(config=config)

        raw = EntryStreams.create(context, "raw")
        outputs = EntryStreams.create(context, "filtered")
        matches = context.new_stream("matches")

        for entry in self._entries():
            raw.for_kind(entry.kind).put(entry)
        raw.close()

        dispatcher = Dispatcher(context, raw, outputs, matches)
        dispatcher.start()
        dispatcher.join()

        return {
            'directories': [e.name for e in outputs.directories],
            'files': [e.name for e in outputs.files],
            'symlinks': [e.name for e in outputs.symlinks],
            'matches': sorted((os.path.basename(m.path), m.line_number) for m in matches),
        }, context

    def test_name_filter(self):
        """Test that only matching names pass, for every category."""
        result, _ = self._dispatch()

        assert result['directories'] == ["needle_dir"]
        assert result['files'] == ["needle.txt"]
        assert result['symlinks'] == ["needle_link"]
        assert result['matches'] == []

    def test_scope_flags(self):
        """Test that disabled categories are not reported."""
        result, _ = self._dispatch(scope={'directories': False, 'symlinks': False})

        assert result['directories'] == []
        assert result['files'] == ["needle.txt"]
        assert result['symlinks'] == []

    def test_content_independent_of_name(self):
        """Test that every file is scanned whether or not its name matches."""
        result, _ = self._dispatch(scope={'content': True, 'files': False})

        assert result['files'] == []
        assert result['matches'] == [
            ("notes.txt", 2),
            ("other.md", 1),
            ("other.md", 2),
        ]

    def test_match_stream_waits_for_scans(self):
        """Test that the match stream closes only after slow scans finish."""
        config = SearchConfig(
            pattern="needle",
            root=self.temp_dir,
            scope={'content': True},
            limits={'stream_buffer': 1000}
        )
        context = PipelineContext(config=config)

        original_permit = context.permits.permit
        finished = []

        def slow_permit():
            time.sleep(0.05)
            finished.append(threading.current_thread().name)
            return original_permit()

        context.permits.permit = slow_permit

        result, _ = self._dispatch(context=context)

        assert len(finished) == 3
        assert len(result['matches']) == 3
        assert context.scan_counter.finished

    def test_aborted_run_emits_nothing(self):
        """Test that consumers drain but emit nothing after a fatal error."""
        config = SearchConfig(pattern="needle", root=self.temp_dir, scope={'content': True})
        context = PipelineContext(config=config)
        context.errors.report("Cannot list directory /x", fatal=True)

        result, _ = self._dispatch(context=context)

        assert result == {'directories': [], 'files': [], 'symlinks': [], 'matches': []}
