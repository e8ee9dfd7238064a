"""Transactional store — SQLAlchemy engine, sessions and ORM tables."""

from diffchain.store.database import Database
from diffchain.store.models import Base, Branch, BranchCommit, Commit, FileChange, Repository, RepositoryAccess

__all__ = [
    "Base",
    "Branch",
    "BranchCommit",
    "Commit",
    "Database",
    "FileChange",
    "Repository",
    "RepositoryAccess",
]
