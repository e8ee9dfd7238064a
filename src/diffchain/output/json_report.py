"""JSON reporter for scripts and pipelines."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from diffchain.branches.graph import BranchInfo
from diffchain.commits.models import CommitResult
from diffchain.history.log import CommitInfo
from diffchain.history.models import ChangeRecord, ResolvedFile
from diffchain.repositories import RepositoryInfo


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def commit_result_to_dict(result: CommitResult) -> Dict[str, Any]:
    return {
        "commit_id": result.commit_id,
        "commit_hash": result.commit_hash,
        "repository": result.repository,
        "author": result.author,
        "message": result.message,
        "tags": list(result.tags),
        "branch": result.branch,
        "files": [f.to_dict() for f in result.files],
    }


def commit_info_to_dict(info: CommitInfo) -> Dict[str, Any]:
    return {
        "id": info.id,
        "commit_hash": info.commit_hash,
        "author": info.author,
        "message": info.message,
        "tags": list(info.tags),
        "created_at": _ts(info.created_at),
        "changes": [c.to_dict() for c in info.changes],
    }


def branch_to_dict(info: BranchInfo) -> Dict[str, Any]:
    return {
        "id": info.id,
        "name": info.name,
        "description": info.description,
        "created_at": _ts(info.created_at),
        "head_commit_id": info.head_commit_id,
        "is_active": info.is_active,
        "commit_ids": list(info.commit_ids),
    }


def repository_to_dict(info: RepositoryInfo) -> Dict[str, Any]:
    return {
        "id": info.id,
        "name": info.name,
        "owner": info.owner,
        "description": info.description,
        "is_active": info.is_active,
        "access": info.access.value,
        "created_at": _ts(info.created_at),
    }


def resolved_to_dict(resolved: ResolvedFile) -> Dict[str, Any]:
    return {
        "path": resolved.path,
        "content": resolved.content,
        "is_code": resolved.is_code,
        "is_binary": resolved.is_binary,
        "commit_hash": resolved.commit_hash,
        "committed_at": _ts(resolved.committed_at),
    }


def snapshot_to_dict(repository: str, files: Mapping[str, ResolvedFile]) -> Dict[str, Any]:
    return {
        "repository": repository,
        "total_files": len(files),
        "files": [resolved_to_dict(files[path]) for path in sorted(files)],
    }


def history_to_list(records: Iterable[ChangeRecord]) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in records]


def render(payload: Any) -> str:
    """Return formatted JSON string."""
    return json.dumps(payload, indent=2)
