"""Commit request and result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from diffchain.history.models import ChangeKind, ContentChange


@dataclass(frozen=True)
class IncomingFile:
    """A named blob submitted for commit."""

    path: str
    data: bytes


@dataclass(frozen=True)
class ProcessedFile:
    """The per-file record a commit produced."""

    path: str
    change_kind: ChangeKind
    is_code: bool
    is_binary: bool
    is_diff: bool
    content: str

    @property
    def payload(self) -> ContentChange:
        return ContentChange(
            content=self.content,
            is_code=self.is_code,
            is_binary=self.is_binary,
            is_diff=self.is_diff,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "change_kind": self.change_kind.label,
            "is_code": self.is_code,
            "is_binary": self.is_binary,
            "is_diff": self.is_diff,
            "content": self.content,
        }


@dataclass(frozen=True)
class CommitResult:
    commit_id: int
    commit_hash: str
    repository: str
    author: str
    message: str
    tags: List[str] = field(default_factory=list)
    files: List[ProcessedFile] = field(default_factory=list)
    branch: Optional[str] = None
