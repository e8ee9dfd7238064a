"""Commit writer, request/result models and hash generation."""

from diffchain.commits.hashing import generate_commit_hash
from diffchain.commits.models import CommitResult, IncomingFile, ProcessedFile
from diffchain.commits.writer import CommitWriter, parse_tags

__all__ = [
    "CommitResult",
    "CommitWriter",
    "IncomingFile",
    "ProcessedFile",
    "generate_commit_hash",
    "parse_tags",
]
