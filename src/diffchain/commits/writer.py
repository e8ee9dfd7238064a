"""Commit writer — classify, diff and persist a multi-file commit atomically.

Pipeline per request:

1. validate the request (no store access),
2. take the repository's write lock,
3. in one transaction: check the repository and the author's access, plan
   every file (full snapshot vs. diff against the reconstructed prior
   version), then insert the commit, its file changes and the optional
   branch append,
4. commit, or roll everything back on any exception.

Two writers racing on the same path collide on the unique
(repository_id, file_path, seq) constraint; the loser's transaction is
rolled back and the whole commit is replanned against the new chain head.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from diffchain.access import AccessControl, StoreAccessControl, can_write
from diffchain.branches.graph import BranchGraph, find_active_branch
from diffchain.commits.hashing import DEFAULT_HASH_LENGTH, generate_commit_hash
from diffchain.commits.models import CommitResult, IncomingFile, ProcessedFile
from diffchain.config.schema import DiffchainConfig
from diffchain.content.classifier import decode_text, is_binary, normalize_code
from diffchain.content.registry import ExtensionRegistry, build_registry
from diffchain.diff.codec import compute_diff
from diffchain.errors import AuthorizationError, ConflictError, TransientStoreError, ValidationError
from diffchain.history.models import ChangeKind, encode_binary
from diffchain.history.reconstructor import HistoryReconstructor
from diffchain.repositories import find_repository
from diffchain.store.database import Database
from diffchain.store.models import Commit, FileChange

logger = logging.getLogger(__name__)

# Process-wide write sections, keyed by (database url, repository id).
_REPOSITORY_LOCKS: Dict[Tuple[str, int], threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _repository_lock(url: str, repository_id: int) -> threading.Lock:
    with _LOCKS_GUARD:
        return _REPOSITORY_LOCKS.setdefault((url, repository_id), threading.Lock())


def parse_tags(tags: Union[str, Sequence[str], None]) -> List[str]:
    """Accept a comma-separated string or a list; strip items, drop empties."""
    if tags is None:
        return []
    items: Iterable[str] = tags.split(",") if isinstance(tags, str) else tags
    return [t.strip() for t in items if t and t.strip()]


@dataclass(frozen=True)
class _PlannedChange:
    processed: ProcessedFile
    predecessor_id: Optional[int]
    seq: int


class CommitWriter:
    def __init__(
        self,
        database: Database,
        *,
        reconstructor: Optional[HistoryReconstructor] = None,
        access: Optional[AccessControl] = None,
        branches: Optional[BranchGraph] = None,
        registry: Optional[ExtensionRegistry] = None,
        hash_length: int = DEFAULT_HASH_LENGTH,
        max_retries: int = 3,
    ) -> None:
        self._db = database
        self._reconstructor = reconstructor or HistoryReconstructor(database)
        self._access = access or StoreAccessControl()
        self._branches = branches or BranchGraph(database)
        self._registry = registry or ExtensionRegistry()
        self._hash_length = hash_length
        self._max_retries = max_retries

    @classmethod
    def from_config(
        cls,
        database: Database,
        config: DiffchainConfig,
        root: Optional[Path] = None,
        **kwargs,
    ) -> "CommitWriter":
        return cls(
            database,
            registry=build_registry(config, root),
            hash_length=config.commit.hash_length,
            max_retries=config.commit.max_retries,
            **kwargs,
        )

    # ---- public entry point ----

    def commit(
        self,
        repository: str,
        author: str,
        message: str,
        files: Sequence[IncomingFile],
        *,
        tags: Union[str, Sequence[str], None] = None,
        owner: Optional[str] = None,
        branch: Optional[str] = None,
        deleted: Sequence[str] = (),
    ) -> CommitResult:
        """Write one commit. Either every file change lands or none does."""
        tag_list = parse_tags(tags)
        self._validate(repository, author, message, files, deleted)

        with self._db.read() as session:
            repository_id = find_repository(session, repository, owner).id

        last_conflict: Optional[Exception] = None
        with _repository_lock(self._db.url, repository_id):
            for attempt in range(1, self._max_retries + 2):
                try:
                    return self._commit_once(
                        repository, author, message, files, tag_list, owner, branch, deleted,
                    )
                except sa_exc.IntegrityError as exc:
                    last_conflict = exc
                    logger.warning(
                        "concurrent append on %s, retrying commit (attempt %d/%d)",
                        repository, attempt, self._max_retries + 1,
                    )
                except sa_exc.SQLAlchemyError as exc:
                    raise TransientStoreError(f"commit to '{repository}' failed: {exc}") from exc

        raise ConflictError(
            f"commit to '{repository}' kept conflicting with concurrent writers"
        ) from last_conflict

    # ---- validation ----

    @staticmethod
    def _validate(
        repository: str,
        author: str,
        message: str,
        files: Sequence[IncomingFile],
        deleted: Sequence[str],
    ) -> None:
        if not repository or not repository.strip():
            raise ValidationError("repository name is required")
        if not author:
            raise ValidationError("author is required")
        if not message or not message.strip():
            raise ValidationError("commit message is required")
        if not files and not deleted:
            raise ValidationError("no files provided")

        seen: set[str] = set()
        for path in [f.path for f in files] + list(deleted):
            if not path or "\x00" in path:
                raise ValidationError(f"invalid file path: {path!r}")
            if path in seen:
                raise ValidationError(f"'{path}' appears more than once in the commit")
            seen.add(path)

    # ---- transaction ----

    def _commit_once(
        self,
        repository: str,
        author: str,
        message: str,
        files: Sequence[IncomingFile],
        tags: List[str],
        owner: Optional[str],
        branch: Optional[str],
        deleted: Sequence[str],
    ) -> CommitResult:
        with self._db.transaction() as session:
            repo = find_repository(session, repository, owner)
            if not repo.is_active:
                raise AuthorizationError(f"repository '{repository}' is inactive")
            if not can_write(self._access.access_level(session, repo, author)):
                raise AuthorizationError(f"'{author}' has no write access to '{repository}'")
            target = find_active_branch(session, repo.id, branch) if branch else None

            # Every decision is made before the first insert.
            plan = [self._plan_file(session, repo.id, f) for f in files]
            plan.extend(self._plan_deletion(session, repo.id, p) for p in deleted)

            commit = Commit(
                repository_id=repo.id,
                author=author,
                commit_hash=generate_commit_hash(self._hash_length),
                message=message,
                tags=tags,
            )
            session.add(commit)
            session.flush()

            for planned in plan:
                session.add(FileChange(
                    commit_id=commit.id,
                    repository_id=repo.id,
                    file_path=planned.processed.path,
                    change_type=planned.processed.change_kind.value,
                    content_changes=planned.processed.payload.to_json(),
                    predecessor_id=planned.predecessor_id,
                    seq=planned.seq,
                ))
            if target is not None:
                self._branches.append_in(session, target, commit)
            session.flush()

            result = CommitResult(
                commit_id=commit.id,
                commit_hash=commit.commit_hash,
                repository=repo.name,
                author=author,
                message=message,
                tags=tags,
                files=[p.processed for p in plan],
                branch=target.name if target is not None else None,
            )

        logger.info(
            "commit %s on %s: %d file(s)", result.commit_hash[:12], repository, len(result.files),
        )
        return result

    # ---- per-file planning ----

    def _plan_file(self, session: Session, repository_id: int, incoming: IncomingFile) -> _PlannedChange:
        path = incoming.path
        latest = self._reconstructor.latest_change(session, repository_id, path)
        seq = latest.seq + 1 if latest is not None else 1
        predecessor_id = latest.id if latest is not None else None
        live = latest is not None and latest.change_type != ChangeKind.DELETED.value
        code = self._registry.is_code(path)

        if is_binary(incoming.data):
            processed = ProcessedFile(
                path=path,
                change_kind=ChangeKind.MODIFIED if live else ChangeKind.ADDED,
                is_code=code,
                is_binary=True,
                is_diff=False,
                content=encode_binary(incoming.data),
            )
            return _PlannedChange(processed, predecessor_id, seq)

        new_content = decode_text(incoming.data)
        if code:
            new_content = normalize_code(new_content)

        prior = self._reconstructor.resolve_change(session, latest) if live else None
        if prior is None:
            kind, content, diffed = ChangeKind.ADDED, new_content, False
        elif prior.is_binary:
            # A patch against base64 text would be meaningless; snapshot instead.
            kind, content, diffed = ChangeKind.MODIFIED, new_content, False
        else:
            kind, content, diffed = ChangeKind.MODIFIED, compute_diff(prior.content, new_content), True

        processed = ProcessedFile(
            path=path,
            change_kind=kind,
            is_code=code,
            is_binary=False,
            is_diff=diffed,
            content=content,
        )
        return _PlannedChange(processed, predecessor_id, seq)

    def _plan_deletion(self, session: Session, repository_id: int, path: str) -> _PlannedChange:
        latest = self._reconstructor.latest_change(session, repository_id, path)
        if latest is None or latest.change_type == ChangeKind.DELETED.value:
            raise ValidationError(f"cannot delete '{path}': it is not tracked")
        processed = ProcessedFile(
            path=path,
            change_kind=ChangeKind.DELETED,
            is_code=self._registry.is_code(path),
            is_binary=False,
            is_diff=False,
            content="",
        )
        return _PlannedChange(processed, latest.id, latest.seq + 1)
