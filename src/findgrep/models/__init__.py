"""
Data models for findgrep.

This module contains the core data structures used throughout the pipeline.
"""

from .entries import Entry, EntryKind, MatchLine, WHOLE_FILE, BINARY_MATCH_MARKER
from .config import ScopeConfig, LimitsConfig, SearchSettings, SearchConfig
from .search_results import SearchResults

__all__ = [
    'Entry',
    'EntryKind',
    'MatchLine',
    'WHOLE_FILE',
    'BINARY_MATCH_MARKER',
    'ScopeConfig',
    'LimitsConfig',
    'SearchSettings',
    'SearchConfig',
    'SearchResults'
]
