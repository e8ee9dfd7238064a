"""Branch/commit graph — named, append-only commit sequences per repository.

A branch is Active until soft-deleted; an inactive branch is never
reactivated here, but its name becomes free for a new branch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from diffchain.errors import NotFoundError, ValidationError
from diffchain.history.log import CommitInfo, to_commit_info
from diffchain.history.reconstructor import find_commit
from diffchain.repositories import find_repository
from diffchain.store.database import Database
from diffchain.store.models import Branch, BranchCommit, Commit, Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchInfo:
    id: int
    name: str
    description: str
    created_at: datetime
    head_commit_id: Optional[int]
    is_active: bool
    commit_ids: List[int] = field(default_factory=list)


def _to_info(branch: Branch) -> BranchInfo:
    return BranchInfo(
        id=branch.id,
        name=branch.name,
        description=branch.description or "",
        created_at=branch.created_at,
        head_commit_id=branch.head_commit_id,
        is_active=branch.is_active,
        commit_ids=[entry.commit_id for entry in branch.entries],
    )


def _active_repository(session: Session, repository: str, owner: Optional[str]) -> Repository:
    repo = find_repository(session, repository, owner)
    if not repo.is_active:
        raise NotFoundError(f"repository '{repository}' is inactive")
    return repo


def find_active_branch(session: Session, repository_id: int, name: str) -> Branch:
    branch = session.execute(
        select(Branch).where(
            Branch.repository_id == repository_id,
            Branch.name == name,
            Branch.is_active.is_(True),
        )
    ).scalar_one_or_none()
    if branch is None:
        raise NotFoundError(f"branch '{name}' not found or is inactive")
    return branch


class BranchGraph:
    def __init__(self, database: Database) -> None:
        self._db = database

    # ---- lifecycle ----

    def create_branch(
        self,
        repository: str,
        name: str,
        description: Optional[str] = None,
        *,
        owner: Optional[str] = None,
    ) -> BranchInfo:
        name = name.strip()
        if not name:
            raise ValidationError("branch name is required")
        with self._db.transaction() as session:
            repo = _active_repository(session, repository, owner)
            clash = session.execute(
                select(Branch.id).where(
                    Branch.repository_id == repo.id,
                    Branch.name == name,
                    Branch.is_active.is_(True),
                )
            ).first()
            if clash is not None:
                raise ValidationError(f"branch '{name}' already exists")
            branch = Branch(
                repository_id=repo.id,
                name=name,
                description=description or f"Branch created on {date.today().isoformat()}",
            )
            session.add(branch)
            session.flush()
            info = _to_info(branch)
        logger.info("created branch %s in %s", name, repository)
        return info

    def delete_branch(self, repository: str, name: str, *, owner: Optional[str] = None) -> None:
        """Soft delete: Active -> Inactive."""
        with self._db.transaction() as session:
            repo = _active_repository(session, repository, owner)
            branch = find_active_branch(session, repo.id, name)
            branch.is_active = False
        logger.info("deleted branch %s in %s", name, repository)

    # ---- queries ----

    def get_branch(self, repository: str, name: str, *, owner: Optional[str] = None) -> BranchInfo:
        with self._db.read() as session:
            repo = _active_repository(session, repository, owner)
            return _to_info(find_active_branch(session, repo.id, name))

    def list_branches(
        self,
        repository: str,
        *,
        owner: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[BranchInfo]:
        with self._db.read() as session:
            repo = _active_repository(session, repository, owner)
            stmt = select(Branch).where(Branch.repository_id == repo.id)
            if not include_inactive:
                stmt = stmt.where(Branch.is_active.is_(True))
            stmt = stmt.order_by(Branch.created_at.desc(), Branch.id.desc())
            return [_to_info(b) for b in session.execute(stmt).scalars()]

    def list_commits(self, repository: str, branch: str, *, owner: Optional[str] = None) -> List[CommitInfo]:
        """Commits referenced by the branch, most recently appended first."""
        with self._db.read() as session:
            repo = _active_repository(session, repository, owner)
            found = find_active_branch(session, repo.id, branch)
            commits = session.execute(
                select(Commit)
                .join(BranchCommit, BranchCommit.commit_id == Commit.id)
                .where(BranchCommit.branch_id == found.id)
                .order_by(BranchCommit.position.desc())
            ).scalars().all()
            return [to_commit_info(c, with_changes=False) for c in commits]

    # ---- appends ----

    def append_commit(
        self,
        repository: str,
        branch: str,
        commit_hash: str,
        *,
        owner: Optional[str] = None,
    ) -> BranchInfo:
        """Append an existing commit to the branch and move its head."""
        with self._db.transaction() as session:
            repo = _active_repository(session, repository, owner)
            found = find_active_branch(session, repo.id, branch)
            commit = find_commit(session, repo.id, commit_hash)
            self.append_in(session, found, commit)
            session.flush()
            session.refresh(found)
            return _to_info(found)

    def append_in(self, session: Session, branch: Branch, commit: Commit) -> None:
        """Append inside the caller's transaction (used by the commit writer)."""
        if not branch.is_active:
            raise NotFoundError(f"branch '{branch.name}' is inactive")
        if commit.repository_id != branch.repository_id:
            raise ValidationError("commit belongs to a different repository")
        already = session.execute(
            select(BranchCommit.id).where(
                BranchCommit.branch_id == branch.id,
                BranchCommit.commit_id == commit.id,
            )
        ).first()
        if already is not None:
            raise ValidationError(f"commit {commit.commit_hash[:12]} is already on branch '{branch.name}'")

        last = session.execute(
            select(func.max(BranchCommit.position)).where(BranchCommit.branch_id == branch.id)
        ).scalar()
        session.add(BranchCommit(branch_id=branch.id, position=(last or 0) + 1, commit_id=commit.id))
        branch.head_commit_id = commit.id
