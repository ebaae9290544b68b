"""
Entry and match-line data models for findgrep.

This module defines the records that flow through the search pipeline:
typed filesystem entries produced by the tree walker and matched lines
produced by the content scanner.
"""

import posixpath
from enum import Enum
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Line number used for a whole-file hit in a binary file
WHOLE_FILE = 0

BINARY_MATCH_MARKER = "binary file matches"


class EntryKind(Enum):
    """Category tag of a filesystem entry."""
    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


class Entry(BaseModel):
    """
    One filesystem object discovered during traversal.

    Attributes:
        path: Path of the entry, built from the traversal root
        kind: Whether the entry is a directory, regular file or symlink
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path of the entry")
    kind: EntryKind = Field(..., description="Category of the entry")

    @field_validator('kind', mode='before')
    @classmethod
    def validate_kind(cls, v) -> EntryKind:
        """Accept the enum value as a plain string."""
        if isinstance(v, str):
            try:
                return EntryKind(v)
            except ValueError:
                raise ValueError(f"Invalid entry kind: {v}")
        return v

    @property
    def name(self) -> str:
        """Base name of the entry."""
        return posixpath.basename(self.path.rstrip('/')) or self.path

    def to_dict(self) -> Dict[str, Any]:
        """Convert entry to dictionary representation."""
        return {'path': self.path, 'kind': self.kind.value, 'name': self.name}

    def __str__(self) -> str:
        return self.path


class MatchLine(BaseModel):
    """
    A single content-search hit.

    For text files this is one matching line. For binary files a single
    record with line number WHOLE_FILE and the fixed marker text stands for
    the whole file.

    Attributes:
        path: Path of the file that matched
        line_number: 1-based line number, or WHOLE_FILE for binary hits
        text: Matched line text, or BINARY_MATCH_MARKER for binary hits
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path of the matching file")
    line_number: int = Field(..., ge=0, description="1-based line number, 0 for whole-file hits")
    text: str = Field(..., description="Matched line text")

    @classmethod
    def binary(cls, path: str) -> 'MatchLine':
        """Create the whole-file record for a binary match."""
        return cls(path=path, line_number=WHOLE_FILE, text=BINARY_MATCH_MARKER)

    @property
    def is_binary_match(self) -> bool:
        return self.line_number == WHOLE_FILE

    def to_dict(self) -> Dict[str, Any]:
        """Convert match line to dictionary representation."""
        data = self.model_dump()
        data['is_binary_match'] = self.is_binary_match
        return data

    def __str__(self) -> str:
        if self.is_binary_match:
            return f"{self.path}: {self.text}"
        return f"{self.path}:{self.line_number}: {self.text}"
