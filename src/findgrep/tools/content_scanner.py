"""
Content scanner for findgrep.

This module searches the contents of a single file for pattern matches.
Files are read through a read-only memory map and split into lines on the
line-feed byte. A short prefix of each file is inspected to classify it as
binary; binary files report at most one whole-file match.

Every scan holds a permit from the pipeline's permit pool while the file is
open, which bounds the number of file descriptors in use.
"""

import logging
import mmap
import os
from typing import Iterator, Tuple

from ..models.entries import MatchLine
from .streams import PipelineContext, ResultStream


logger = logging.getLogger(__name__)

BINARY_SAMPLE_SIZE = 256

# Bytes 0x00 - 0x08 are ASCII control codes that do not occur in text
_CONTROL_LIMIT = 0x09


def is_binary(sample: bytes) -> bool:
    """
    Check if a byte sample looks like binary content.

    Args:
        sample: Leading bytes of a file

    Returns:
        True if the sample contains a control byte below 0x09
    """
    return any(byte < _CONTROL_LIMIT for byte in sample)


def iter_lines(data) -> Iterator[Tuple[int, bytes]]:
    """
    Split a buffer into lines on the line-feed byte.

    A final line without a trailing line feed is still yielded; a trailing
    line feed does not produce an extra empty line.

    Args:
        data: bytes or mmap object

    Yields:
        (line_number, line_bytes) with 1-based line numbers
    """
    size = len(data)
    start = 0
    line_number = 0
    while start < size:
        end = data.find(b'\n', start)
        if end == -1:
            end = size
        line_number += 1
        yield line_number, data[start:end]
        start = end + 1


def decode_line(raw: bytes) -> str:
    """Decode a text line as UTF-8, falling back to Latin-1 byte for byte."""
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


class ContentScanner:
    """
    Searches file contents and emits MatchLine records.

    One scanner is shared by every scan task of a run; all per-file state
    lives on the stack of scan().
    """

    def __init__(self, context: PipelineContext, matches: ResultStream):
        """
        Initialize the content scanner.

        Args:
            context: Pipeline context holding config, permit pool and error channel
            matches: Stream receiving MatchLine records
        """
        self.context = context
        self.config = context.config
        self.matches = matches

    def scan(self, path: str) -> int:
        """
        Search one file and emit its matches.

        Open, stat and map failures are reported as recoverable errors and
        the file yields no matches.

        Args:
            path: Path of the file to search

        Returns:
            Number of MatchLine records emitted
        """
        with self.context.permits.permit():
            try:
                f = open(path, 'rb')
            except OSError as e:
                self.context.errors.report(f"Cannot open {path}: {e}")
                return 0

            with f:
                try:
                    size = os.fstat(f.fileno()).st_size
                except OSError as e:
                    self.context.errors.report(f"Cannot stat {path}: {e}")
                    return 0

                # Zero-length files cannot be mapped and have no lines
                if size == 0:
                    return 0

                try:
                    mapped = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
                except (OSError, ValueError) as e:
                    self.context.errors.report(f"Cannot map {path}: {e}")
                    return 0

                with mapped:
                    return self._scan_buffer(path, mapped)

    def _scan_buffer(self, path: str, data) -> int:
        binary = is_binary(data[:BINARY_SAMPLE_SIZE])
        if binary and not self.config.scope.binary:
            logger.debug(f"Skipping binary file: {path}")
            return 0

        emitted = 0
        for line_number, raw in iter_lines(data):
            if binary:
                # Latin-1 keeps every byte matchable
                if self.config.matches_line(raw.decode('latin-1')):
                    self.matches.put(MatchLine.binary(path))
                    return 1
                continue

            text = decode_line(raw)
            if text.endswith('\r'):
                text = text[:-1]
            if self.config.matches_line(text):
                self.matches.put(MatchLine(path=path, line_number=line_number, text=text))
                emitted += 1

        return emitted
