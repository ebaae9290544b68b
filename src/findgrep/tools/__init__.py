"""
Search pipeline components for findgrep.

This package contains the concurrent stages of a run: the tree walker,
the dispatch/filter stage, the content scanner, and the pipeline
controller that wires them together.
"""

from .errors import ErrorChannel, FatalSearchError, ReportedError
from .streams import PermitPool, PipelineContext, ResultStream, StreamClosedError, WorkCounter
from .content_scanner import ContentScanner, is_binary
from .tree_walker import EntryStreams, TreeWalker
from .dispatcher import Dispatcher
from .pipeline import SearchPipeline, SearchStreams, search

__all__ = [
    'ErrorChannel',
    'FatalSearchError',
    'ReportedError',
    'PermitPool',
    'PipelineContext',
    'ResultStream',
    'StreamClosedError',
    'WorkCounter',
    'ContentScanner',
    'is_binary',
    'EntryStreams',
    'TreeWalker',
    'Dispatcher',
    'SearchPipeline',
    'SearchStreams',
    'search'
]
