"""Stored payload, change kinds and materialized file models."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from diffchain.content.classifier import encode_text
from diffchain.errors import ChainIntegrityError


class ChangeKind(str, Enum):
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class ContentChange:
    """The JSON document persisted in ``file_changes.content_changes``.

    ``content`` is a patch when ``is_diff`` is set, the full body otherwise
    (base64 for binary files).
    """

    content: str
    is_code: bool = False
    is_binary: bool = False
    is_diff: bool = False

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "ContentChange":
        try:
            data = json.loads(raw)
            content = data["content"]
            flags = {k: data[k] for k in ("is_code", "is_binary", "is_diff")}
        except (TypeError, ValueError, KeyError) as exc:
            raise ChainIntegrityError(f"malformed stored payload: {exc}") from exc
        if not isinstance(content, str) or not all(isinstance(v, bool) for v in flags.values()):
            raise ChainIntegrityError("malformed stored payload: wrong field types")
        if flags["is_binary"] and flags["is_diff"]:
            raise ChainIntegrityError("malformed stored payload: binary content stored as a diff")
        return cls(content=content, **flags)


def encode_binary(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_binary(content: str) -> bytes:
    try:
        return base64.b64decode(content.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ChainIntegrityError(f"stored binary content is not valid base64: {exc}") from exc


@dataclass(frozen=True)
class ResolvedFile:
    """Materialized content of one path at one point in history."""

    path: str
    content: str
    is_code: bool
    is_binary: bool
    commit_id: int
    commit_hash: str
    change_id: int
    committed_at: Optional[datetime] = None

    @property
    def data(self) -> bytes:
        """The file body as bytes (decoded from base64 for binary files)."""
        if self.is_binary:
            return decode_binary(self.content)
        return encode_text(self.content)


@dataclass(frozen=True)
class ChangeRecord:
    """A stored FileChange row as seen by readers (content left as stored)."""

    change_id: int
    commit_id: int
    commit_hash: str
    path: str
    change_kind: ChangeKind
    is_code: bool
    is_binary: bool
    is_diff: bool
    content: str
    seq: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "change_kind": self.change_kind.label,
            "is_code": self.is_code,
            "is_binary": self.is_binary,
            "is_diff": self.is_diff,
            "content": self.content,
            "commit_hash": self.commit_hash,
            "seq": self.seq,
        }
