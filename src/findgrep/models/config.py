"""
Configuration data models for findgrep.

This module defines the settings that drive a search run: which entry
categories are reported, whether file contents are searched, and the
limits that bound the concurrent pipeline. SearchConfig is built once
before traversal starts and is shared read-only by every worker.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


HIDDEN_MARKER = '.'


def _default_walk_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


class ScopeConfig(BaseModel):
    """
    Search scope flags.

    Attributes:
        directories: Report directories whose name matches the pattern
        files: Report regular files whose name matches the pattern
        symlinks: Report symbolic links whose name matches the pattern
        content: Search file contents line by line
        binary: Also search the contents of binary files
        hidden: Include entries whose name starts with a dot
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    directories: bool = Field(True, description="Report matching directories")
    files: bool = Field(True, description="Report matching files")
    symlinks: bool = Field(True, description="Report matching symbolic links")
    content: bool = Field(False, description="Search file contents")
    binary: bool = Field(False, description="Search binary file contents")
    hidden: bool = Field(False, description="Include hidden entries")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class LimitsConfig(BaseModel):
    """
    Resource limits for the search pipeline.

    Attributes:
        max_open_files: Size of the permit pool bounding files open for scanning
        stream_buffer: Capacity of each bounded result stream
        walk_workers: Threads expanding directories
        scan_workers: Threads running content scans
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    max_open_files: int = Field(10, gt=0, description="Maximum files open for content scanning")
    stream_buffer: int = Field(10, gt=0, description="Capacity of each result stream")
    walk_workers: int = Field(default_factory=_default_walk_workers, gt=0, description="Directory expansion threads")
    scan_workers: int = Field(16, gt=0, description="Content scanning threads")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


def _check_pattern(pattern: str, label: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid {label} pattern '{pattern}': {e}")
    return pattern


class SearchSettings(BaseModel):
    """
    Everything about a search except the pattern itself.

    This is what a configuration file holds; combine it with a pattern via
    to_search_config() to get a runnable SearchConfig.
    """

    model_config = ConfigDict(frozen=True)

    ignore: Optional[str] = Field(None, description="Regex of base names to skip")
    root: str = Field(".", min_length=1, description="Directory where traversal starts")
    scope: ScopeConfig = Field(default_factory=ScopeConfig, description="Search scope flags")
    limits: LimitsConfig = Field(default_factory=LimitsConfig, description="Pipeline limits")

    @field_validator('ignore')
    @classmethod
    def validate_ignore(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty ignore patterns as unset and reject invalid regexes."""
        if v is None or v == "":
            return None
        return _check_pattern(v, "ignore")

    @field_validator('root')
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Expand user paths but keep relative roots relative."""
        if v.startswith('~'):
            return str(Path(v).expanduser())
        return v

    def to_search_config(self, pattern: str) -> 'SearchConfig':
        """Create a SearchConfig for the given pattern from these settings."""
        data = self.model_dump()
        data['pattern'] = pattern
        return SearchConfig.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class SearchConfig(SearchSettings):
    """
    Complete, compiled configuration for one search run.

    Both the search pattern and the optional ignore pattern are compiled
    once after validation. An invalid pattern fails validation, which
    aborts the run before any traversal happens.

    Attributes:
        pattern: Regex matched against entry base names and file lines
    """

    pattern: str = Field(..., description="Regex matched against names and lines")

    _pattern: re.Pattern = PrivateAttr()
    _ignore: Optional[re.Pattern] = PrivateAttr(default=None)

    @field_validator('pattern')
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Reject patterns that do not compile."""
        return _check_pattern(v, "search")

    def model_post_init(self, __context) -> None:
        """Compile patterns for efficient matching."""
        self._pattern = re.compile(self.pattern)
        if self.ignore is not None:
            self._ignore = re.compile(self.ignore)

    @property
    def compiled_pattern(self) -> re.Pattern:
        return self._pattern

    @property
    def compiled_ignore(self) -> Optional[re.Pattern]:
        return self._ignore

    def matches_name(self, name: str) -> bool:
        """Check whether an entry base name matches the search pattern."""
        return self._pattern.search(name) is not None

    def is_ignored_name(self, name: str) -> bool:
        """Check whether an entry base name matches the ignore pattern."""
        return self._ignore is not None and self._ignore.search(name) is not None

    def is_hidden_name(self, name: str) -> bool:
        """Check whether a base name should be skipped as hidden."""
        return not self.scope.hidden and name.startswith(HIDDEN_MARKER)

    def matches_line(self, line: str) -> bool:
        """
        Check whether a line of file content is a hit.

        A line is a hit when it matches the search pattern and does not
        match the ignore pattern (if one is set).
        """
        if self._pattern.search(line) is None:
            return False
        if self._ignore is not None and self._ignore.search(line) is not None:
            return False
        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchConfig':
        """Create configuration from dictionary representation."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the configuration."""
        enabled = [name for name, on in self.scope.model_dump().items() if on]
        parts = [f"Pattern: '{self.pattern}'"]
        parts.append(f"Root: {self.root}")
        if self.ignore:
            parts.append(f"Ignore: '{self.ignore}'")
        parts.append(f"Scope: {', '.join(enabled) or 'none'}")
        parts.append(f"Max open files: {self.limits.max_open_files}")
        return " | ".join(parts)
