"""Access-control collaborator consulted before every commit."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from diffchain.store.models import Repository, RepositoryAccess


class AccessLevel(str, Enum):
    OWNER = "owner"
    WRITE = "write"
    READ = "read"
    NONE = "none"


def can_write(level: AccessLevel) -> bool:
    """Owner and an explicit write grant are equivalent; anything else is a rejection."""
    return level in (AccessLevel.OWNER, AccessLevel.WRITE)


class AccessControl(Protocol):
    def access_level(self, session: Session, repository: Repository, user: str) -> AccessLevel:
        ...


class StoreAccessControl:
    """Answers from the repository owner column and the repository_access table."""

    def access_level(self, session: Session, repository: Repository, user: str) -> AccessLevel:
        if repository.owner == user:
            return AccessLevel.OWNER
        level = session.execute(
            select(RepositoryAccess.access_level).where(
                RepositoryAccess.repository_id == repository.id,
                RepositoryAccess.user == user,
            )
        ).scalar_one_or_none()
        if level is None:
            return AccessLevel.NONE
        return AccessLevel(level)
