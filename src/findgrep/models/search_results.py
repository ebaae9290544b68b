"""
Search results data models for findgrep.

This module defines the collected outcome of a finished search run: the
filtered directories, files and symbolic links, the content matches, and
any recoverable errors reported along the way.
"""

from typing import Dict, List, Any
from datetime import datetime
from pydantic import BaseModel, Field

from .entries import MatchLine


class SearchResults(BaseModel):
    """
    Complete results from a search run.

    Entries arrive from many concurrent producers, so list order is arrival
    order only. Use the sort helpers for a stable display order.

    Attributes:
        pattern: The search pattern that produced these results
        root: Directory where traversal started
        directories: Paths of matching directories
        files: Paths of matching files
        symlinks: Paths of matching symbolic links
        matches: Content-search hits
        errors: Recoverable errors reported during the run
        execution_time: Time taken to run the search in seconds
        timestamp: When the search was executed
    """

    pattern: str = Field(..., description="The search pattern")
    root: str = Field(..., description="Traversal root")
    directories: List[str] = Field(default_factory=list, description="Matching directories")
    files: List[str] = Field(default_factory=list, description="Matching files")
    symlinks: List[str] = Field(default_factory=list, description="Matching symbolic links")
    matches: List[MatchLine] = Field(default_factory=list, description="Content-search hits")
    errors: List[str] = Field(default_factory=list, description="Recoverable errors")
    execution_time: float = Field(0.0, ge=0.0, description="Time taken to run the search")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the search was executed")

    def get_entry_count(self) -> int:
        """Get the number of reported directories, files and symlinks."""
        return len(self.directories) + len(self.files) + len(self.symlinks)

    def get_match_count(self) -> int:
        """Get the number of content matches."""
        return len(self.matches)

    def get_matched_files(self) -> List[str]:
        """Get the distinct paths that produced content matches, sorted."""
        return sorted({match.path for match in self.matches})

    def get_matches_for(self, path: str) -> List[MatchLine]:
        """Get the matches of one file in line order."""
        return sorted(
            (match for match in self.matches if match.path == path),
            key=lambda m: m.line_number
        )

    def has_errors(self) -> bool:
        """Check if any errors occurred during search."""
        return len(self.errors) > 0

    def sort_by_path(self) -> None:
        """Sort every result list by path (and line number for matches)."""
        self.directories.sort()
        self.files.sort()
        self.symlinks.sort()
        self.matches.sort(key=lambda m: (m.path, m.line_number))

    def to_dict(self) -> Dict[str, Any]:
        """Convert search results to dictionary representation."""
        data = self.model_dump()
        data['matches'] = [match.to_dict() for match in self.matches]
        data['timestamp'] = self.timestamp.isoformat()
        data['entry_count'] = self.get_entry_count()
        data['match_count'] = self.get_match_count()
        data['has_errors'] = self.has_errors()
        return data

    def __str__(self) -> str:
        """String representation of search results."""
        parts = [f"Dirs: {len(self.directories)}"]
        parts.append(f"Files: {len(self.files)}")
        parts.append(f"Symlinks: {len(self.symlinks)}")
        parts.append(f"Matches: {self.get_match_count()}")
        parts.append(f"Took {self.execution_time:.2f}s")

        if self.has_errors():
            parts.append(f"Errors: {len(self.errors)}")

        return " | ".join(parts)
