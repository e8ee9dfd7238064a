"""History reconstructor — materializes a path by walking its diff chain.

The walk follows explicit ``predecessor_id`` links, each step moving to a
row with a strictly smaller ``seq``, until it reaches a full snapshot. The
collected patches are then replayed oldest-first. Any break in the chain is
reported as ChainIntegrityError and never repaired.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from diffchain.diff.codec import apply_patch
from diffchain.diff.patch_parser import PatchError
from diffchain.errors import ChainIntegrityError, NotFoundError
from diffchain.history.models import ChangeKind, ContentChange, ResolvedFile
from diffchain.repositories import find_repository
from diffchain.store.database import Database
from diffchain.store.models import Commit, FileChange

logger = logging.getLogger(__name__)


def find_commit(session: Session, repository_id: int, commit_hash: str) -> Commit:
    """Exact hash first, then a unique prefix."""
    commit = session.execute(
        select(Commit).where(Commit.repository_id == repository_id, Commit.commit_hash == commit_hash)
    ).scalar_one_or_none()
    if commit is not None:
        return commit
    matches = session.execute(
        select(Commit)
        .where(Commit.repository_id == repository_id, Commit.commit_hash.startswith(commit_hash, autoescape=True))
        .limit(2)
    ).scalars().all()
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NotFoundError(f"commit '{commit_hash}' not found")
    raise NotFoundError(f"commit prefix '{commit_hash}' is ambiguous")


class HistoryReconstructor:
    def __init__(self, database: Database) -> None:
        self._db = database

    # ---- public entry point ----

    def resolve(
        self,
        repository: str,
        path: str,
        *,
        owner: Optional[str] = None,
        at: Optional[str] = None,
    ) -> ResolvedFile:
        """Current content of *path*, or its content as of commit *at*.

        Raises NotFoundError when the path has no history (or is deleted).
        """
        with self._db.read() as session:
            repo = find_repository(session, repository, owner)
            up_to = find_commit(session, repo.id, at).id if at else None
            change = self.latest_change(session, repo.id, path, up_to_commit_id=up_to)
            if change is None or change.change_type == ChangeKind.DELETED.value:
                raise NotFoundError(f"'{path}' not found in repository '{repository}'")
            return self.resolve_change(session, change)

    # ---- session-bound helpers (shared with the commit writer) ----

    def latest_change(
        self,
        session: Session,
        repository_id: int,
        path: str,
        *,
        up_to_commit_id: Optional[int] = None,
    ) -> Optional[FileChange]:
        """The newest chain row for (repository, path), deletions included."""
        stmt = select(FileChange).where(
            FileChange.repository_id == repository_id,
            FileChange.file_path == path,
        )
        if up_to_commit_id is not None:
            stmt = stmt.where(FileChange.commit_id <= up_to_commit_id)
        return session.execute(stmt.order_by(FileChange.seq.desc()).limit(1)).scalar_one_or_none()

    def resolve_in(self, session: Session, repository_id: int, path: str) -> Optional[ResolvedFile]:
        """Like :meth:`resolve` but inside the caller's session; None if absent."""
        change = self.latest_change(session, repository_id, path)
        if change is None or change.change_type == ChangeKind.DELETED.value:
            return None
        return self.resolve_change(session, change)

    def resolve_change(self, session: Session, change: FileChange) -> ResolvedFile:
        """Reconstruct the content stored by *change*."""
        if change.change_type == ChangeKind.DELETED.value:
            raise NotFoundError(f"'{change.file_path}' is deleted at change {change.id}")

        top = ContentChange.from_json(change.content_changes)
        payload = top
        current = change
        patches: List[str] = []

        while payload.is_diff:
            patches.append(payload.content)
            older = self._predecessor(session, current)
            current = older
            payload = ContentChange.from_json(current.content_changes)

        if patches and payload.is_binary:
            raise ChainIntegrityError(
                f"'{change.file_path}': diff change {current.id} sits on top of binary content"
            )

        content = payload.content
        # Replay oldest patch first.
        for patch in reversed(patches):
            try:
                content = apply_patch(content, patch)
            except PatchError as exc:
                logger.error("patch replay failed for %s (change %s): %s", change.file_path, change.id, exc)
                raise ChainIntegrityError(
                    f"'{change.file_path}': stored patch does not apply: {exc}"
                ) from exc

        commit = change.commit
        return ResolvedFile(
            path=change.file_path,
            content=content,
            is_code=top.is_code,
            is_binary=top.is_binary,
            commit_id=change.commit_id,
            commit_hash=commit.commit_hash,
            change_id=change.id,
            committed_at=commit.created_at,
        )

    @staticmethod
    def _predecessor(session: Session, current: FileChange) -> FileChange:
        if current.predecessor_id is None:
            raise ChainIntegrityError(
                f"'{current.file_path}': diff change {current.id} has no predecessor"
            )
        older = session.get(FileChange, current.predecessor_id)
        if (
            older is None
            or older.repository_id != current.repository_id
            or older.file_path != current.file_path
            or older.seq >= current.seq
        ):
            raise ChainIntegrityError(
                f"'{current.file_path}': change {current.id} points at an invalid predecessor"
            )
        if older.change_type == ChangeKind.DELETED.value:
            raise ChainIntegrityError(
                f"'{current.file_path}': diff change {current.id} follows a deletion"
            )
        return older
