"""Data models for serialized patches."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class LineType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class PatchLine:
    """A single content line of a hunk, with its original line ending."""

    content: str
    line_type: LineType


@dataclass
class Hunk:
    """One contiguous replacement: ``old_count`` lines at ``old_start`` become the added lines."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[PatchLine] = field(default_factory=list)

    @property
    def removed(self) -> List[str]:
        return [pl.content for pl in self.lines if pl.line_type == LineType.REMOVED]

    @property
    def added(self) -> List[str]:
        return [pl.content for pl in self.lines if pl.line_type == LineType.ADDED]

    @property
    def base_index(self) -> int:
        """0-based index in the base text where the hunk starts."""
        # Unified ranges name the line *before* an empty range.
        return self.old_start - 1 if self.old_count else self.old_start
