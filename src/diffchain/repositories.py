"""Repository bookkeeping — creation, lookup, grants and deactivation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from diffchain.access import AccessLevel
from diffchain.errors import NotFoundError, ValidationError
from diffchain.store.database import Database
from diffchain.store.models import Repository, RepositoryAccess

logger = logging.getLogger(__name__)

GRANTABLE_LEVELS = (AccessLevel.READ, AccessLevel.WRITE)


@dataclass(frozen=True)
class RepositoryInfo:
    id: int
    name: str
    owner: str
    description: str
    is_active: bool
    created_at: datetime
    access: AccessLevel = AccessLevel.OWNER


def _to_info(repo: Repository, access: AccessLevel = AccessLevel.OWNER) -> RepositoryInfo:
    return RepositoryInfo(
        id=repo.id,
        name=repo.name,
        owner=repo.owner,
        description=repo.description or "",
        is_active=repo.is_active,
        created_at=repo.created_at,
        access=access,
    )


def find_repository(session: Session, name: str, owner: Optional[str] = None) -> Repository:
    """Look a repository up by name (and owner, when names are ambiguous).

    Inactive repositories are returned too; callers decide what that means.
    """
    stmt = select(Repository).where(Repository.name == name)
    if owner is not None:
        stmt = stmt.where(Repository.owner == owner)
    matches = session.execute(stmt).scalars().all()

    if not matches:
        label = f"{owner}/{name}" if owner else name
        raise NotFoundError(f"repository '{label}' not found")
    if len(matches) > 1:
        active = [r for r in matches if r.is_active]
        if len(active) == 1:
            return active[0]
        raise ValidationError(f"repository name '{name}' is ambiguous; specify the owner")
    return matches[0]


class RepositoryService:
    def __init__(self, database: Database) -> None:
        self._db = database

    def create_repository(self, name: str, owner: str, description: str = "") -> RepositoryInfo:
        name = name.strip()
        if not name or "/" in name:
            raise ValidationError("repository name must be non-empty and contain no '/'")
        if not owner:
            raise ValidationError("repository owner is required")
        try:
            with self._db.transaction() as session:
                repo = Repository(name=name, owner=owner, description=description)
                session.add(repo)
                session.flush()
                info = _to_info(repo)
        except IntegrityError as exc:
            raise ValidationError(f"repository '{owner}/{name}' already exists") from exc
        logger.info("created repository %s/%s", owner, name)
        return info

    def get_repository(self, name: str, owner: Optional[str] = None) -> RepositoryInfo:
        with self._db.read() as session:
            return _to_info(find_repository(session, name, owner))

    def list_repositories(self, user: str) -> List[RepositoryInfo]:
        """Active repositories *user* owns or holds a grant on, newest first."""
        with self._db.read() as session:
            rows = session.execute(
                select(Repository, RepositoryAccess.access_level)
                .outerjoin(
                    RepositoryAccess,
                    (RepositoryAccess.repository_id == Repository.id) & (RepositoryAccess.user == user),
                )
                .where(Repository.is_active.is_(True))
                .where(or_(Repository.owner == user, RepositoryAccess.id.is_not(None)))
                .order_by(Repository.created_at.desc(), Repository.id.desc())
            ).all()
            return [
                _to_info(repo, AccessLevel.OWNER if repo.owner == user else AccessLevel(level))
                for repo, level in rows
            ]

    def grant_access(self, name: str, owner: str, user: str, level: AccessLevel | str) -> None:
        try:
            level = AccessLevel(level)
        except ValueError as exc:
            raise ValidationError(f"unknown access level: {level!r}") from exc
        if level not in GRANTABLE_LEVELS:
            raise ValidationError(f"access level must be one of: {', '.join(l.value for l in GRANTABLE_LEVELS)}")
        if user == owner:
            raise ValidationError("the owner already has full access")
        with self._db.transaction() as session:
            repo = find_repository(session, name, owner)
            grant = session.execute(
                select(RepositoryAccess).where(
                    RepositoryAccess.repository_id == repo.id,
                    RepositoryAccess.user == user,
                )
            ).scalar_one_or_none()
            if grant is None:
                session.add(RepositoryAccess(
                    repository_id=repo.id, user=user, access_level=level.value, granted_by=owner,
                ))
            else:
                grant.access_level = level.value
                grant.granted_by = owner
        logger.info("granted %s on %s/%s to %s", level.value, owner, name, user)

    def revoke_access(self, name: str, owner: str, user: str) -> None:
        with self._db.transaction() as session:
            repo = find_repository(session, name, owner)
            grant = session.execute(
                select(RepositoryAccess).where(
                    RepositoryAccess.repository_id == repo.id,
                    RepositoryAccess.user == user,
                )
            ).scalar_one_or_none()
            if grant is None:
                raise NotFoundError(f"no access found for '{user}' on '{owner}/{name}'")
            session.delete(grant)

    def deactivate_repository(self, name: str, owner: str) -> None:
        with self._db.transaction() as session:
            repo = find_repository(session, name, owner)
            if not repo.is_active:
                raise NotFoundError(f"repository '{owner}/{name}' is already inactive")
            repo.is_active = False
