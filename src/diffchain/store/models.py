"""ORM tables for repositories, branches, commits and per-file changes."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Repository(Base):
    __tablename__ = "repositories"
    __table_args__ = (UniqueConstraint("owner", "name", name="uq_repositories_owner_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    owner = Column(String(128), nullable=False)
    description = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    grants = relationship("RepositoryAccess", back_populates="repository", cascade="all, delete-orphan")


class RepositoryAccess(Base):
    __tablename__ = "repository_access"
    __table_args__ = (
        UniqueConstraint("repository_id", "user", name="uq_repository_access_user"),
        CheckConstraint("access_level IN ('read', 'write')", name="ck_access_level"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    user = Column(String(128), nullable=False)
    access_level = Column(String(16), nullable=False)
    granted_by = Column(String(128))
    granted_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    repository = relationship("Repository", back_populates="grants")


class Commit(Base):
    """Immutable once inserted."""

    __tablename__ = "commits"
    __table_args__ = (Index("ix_commits_repository_created", "repository_id", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    author = Column(String(128), nullable=False)
    commit_hash = Column(String(64), nullable=False, unique=True)
    message = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    changes = relationship("FileChange", back_populates="commit", order_by="FileChange.id")


class FileChange(Base):
    """One link of a (repository, path) diff chain.

    ``seq`` is the 1-based position in the chain and ``predecessor_id`` points
    at the previous link. The unique (repository_id, file_path, seq) triple is
    what makes two writers appending to the same chain collide.
    """

    __tablename__ = "file_changes"
    __table_args__ = (
        UniqueConstraint("repository_id", "file_path", "seq", name="uq_file_changes_chain"),
        CheckConstraint("change_type IN ('A', 'M', 'D')", name="ck_change_type"),
        Index("ix_file_changes_commit", "commit_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    commit_id = Column(Integer, ForeignKey("commits.id", ondelete="CASCADE"), nullable=False)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    file_path = Column(Text, nullable=False)
    change_type = Column(String(1), nullable=False)
    content_changes = Column(Text, nullable=False)  # JSON document
    predecessor_id = Column(Integer, ForeignKey("file_changes.id"))
    seq = Column(Integer, nullable=False)

    commit = relationship("Commit", back_populates="changes")


class Branch(Base):
    __tablename__ = "branches"
    __table_args__ = (Index("ix_branches_repository_name", "repository_id", "name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    repository_id = Column(Integer, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=False, default="")
    head_commit_id = Column(Integer, ForeignKey("commits.id", ondelete="SET NULL"))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    entries = relationship("BranchCommit", back_populates="branch", order_by="BranchCommit.position")


class BranchCommit(Base):
    """Append-only ordered membership of commits in a branch."""

    __tablename__ = "branch_commits"
    __table_args__ = (UniqueConstraint("branch_id", "position", name="uq_branch_commits_position"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    commit_id = Column(Integer, ForeignKey("commits.id", ondelete="CASCADE"), nullable=False)

    branch = relationship("Branch", back_populates="entries")
    commit = relationship("Commit")
