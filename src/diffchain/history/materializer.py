"""Repository materializer — latest live content of every path."""

from __future__ import annotations

from typing import Dict, Optional

from sqlalchemy import func, select

from diffchain.history.models import ChangeKind, ResolvedFile
from diffchain.history.reconstructor import HistoryReconstructor
from diffchain.repositories import find_repository
from diffchain.store.database import Database
from diffchain.store.models import FileChange


class RepositoryMaterializer:
    """Read-only aggregate view; may be recomputed at any time."""

    def __init__(self, database: Database, reconstructor: Optional[HistoryReconstructor] = None) -> None:
        self._db = database
        self._reconstructor = reconstructor or HistoryReconstructor(database)

    def snapshot(self, repository: str, *, owner: Optional[str] = None) -> Dict[str, ResolvedFile]:
        """Map every live path to its reconstructed latest content.

        Paths whose most recent change is a deletion are left out.
        """
        with self._db.read() as session:
            repo = find_repository(session, repository, owner)

            ranked = (
                select(
                    FileChange.id.label("change_id"),
                    FileChange.change_type.label("change_type"),
                    func.row_number()
                    .over(partition_by=FileChange.file_path, order_by=FileChange.seq.desc())
                    .label("rn"),
                )
                .where(FileChange.repository_id == repo.id)
                .subquery()
            )
            latest_ids = session.execute(
                select(ranked.c.change_id)
                .where(ranked.c.rn == 1, ranked.c.change_type != ChangeKind.DELETED.value)
            ).scalars().all()
            if not latest_ids:
                return {}

            changes = session.execute(
                select(FileChange).where(FileChange.id.in_(latest_ids)).order_by(FileChange.file_path)
            ).scalars().all()
            return {
                change.file_path: self._reconstructor.resolve_change(session, change)
                for change in changes
            }
