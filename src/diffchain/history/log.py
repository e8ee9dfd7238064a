"""Commit log and per-path history views."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from diffchain.history.models import ChangeKind, ChangeRecord, ContentChange
from diffchain.repositories import find_repository
from diffchain.store.database import Database
from diffchain.store.models import Commit, FileChange


@dataclass(frozen=True)
class CommitInfo:
    id: int
    commit_hash: str
    author: str
    message: str
    tags: List[str]
    created_at: datetime
    changes: List[ChangeRecord] = field(default_factory=list)


def to_change_record(change: FileChange, commit_hash: str) -> ChangeRecord:
    payload = ContentChange.from_json(change.content_changes)
    return ChangeRecord(
        change_id=change.id,
        commit_id=change.commit_id,
        commit_hash=commit_hash,
        path=change.file_path,
        change_kind=ChangeKind(change.change_type),
        is_code=payload.is_code,
        is_binary=payload.is_binary,
        is_diff=payload.is_diff,
        content=payload.content,
        seq=change.seq,
    )


def to_commit_info(commit: Commit, *, with_changes: bool = True) -> CommitInfo:
    changes = [to_change_record(c, commit.commit_hash) for c in commit.changes] if with_changes else []
    return CommitInfo(
        id=commit.id,
        commit_hash=commit.commit_hash,
        author=commit.author,
        message=commit.message,
        tags=list(commit.tags or []),
        created_at=commit.created_at,
        changes=changes,
    )


class CommitLog:
    def __init__(self, database: Database) -> None:
        self._db = database

    def entries(
        self,
        repository: str,
        *,
        owner: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[CommitInfo]:
        """Commits of *repository*, newest first, with their file changes."""
        with self._db.read() as session:
            repo = find_repository(session, repository, owner)
            stmt = (
                select(Commit)
                .where(Commit.repository_id == repo.id)
                .options(selectinload(Commit.changes))
                .order_by(Commit.created_at.desc(), Commit.id.desc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            return [to_commit_info(c) for c in session.execute(stmt).scalars()]

    def file_history(self, repository: str, path: str, *, owner: Optional[str] = None) -> List[ChangeRecord]:
        """Every stored link of the path's chain, newest first."""
        with self._db.read() as session:
            repo = find_repository(session, repository, owner)
            return self._chain(session, repo.id, path)

    @staticmethod
    def _chain(session: Session, repository_id: int, path: str) -> List[ChangeRecord]:
        rows = session.execute(
            select(FileChange, Commit.commit_hash)
            .join(Commit, FileChange.commit_id == Commit.id)
            .where(FileChange.repository_id == repository_id, FileChange.file_path == path)
            .order_by(FileChange.seq.desc())
        ).all()
        return [to_change_record(change, commit_hash) for change, commit_hash in rows]
