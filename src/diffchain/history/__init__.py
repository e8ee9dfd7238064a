"""History — chain reconstruction, repository snapshots and commit log."""

from diffchain.history.log import CommitInfo, CommitLog
from diffchain.history.materializer import RepositoryMaterializer
from diffchain.history.models import ChangeKind, ChangeRecord, ContentChange, ResolvedFile
from diffchain.history.reconstructor import HistoryReconstructor

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "CommitInfo",
    "CommitLog",
    "ContentChange",
    "HistoryReconstructor",
    "RepositoryMaterializer",
    "ResolvedFile",
]
