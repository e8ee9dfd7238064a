"""File classification and code normalization.

Binary detection is a zero-byte heuristic, not a content-type detector.
Code detection is an extension lookup. Normalization strips incidental
whitespace from code so that diffs between versions stay small.
"""

from __future__ import annotations

from typing import Optional

from diffchain.content.registry import ExtensionRegistry

_DEFAULT_REGISTRY = ExtensionRegistry()


def is_binary(data: bytes) -> bool:
    """Return True if *data* contains a zero byte."""
    return b"\x00" in data


def is_code(path: str, registry: Optional[ExtensionRegistry] = None) -> bool:
    """Return True if *path* has a registered source-code extension."""
    return (registry or _DEFAULT_REGISTRY).is_code(path)


def normalize_code(text: str) -> str:
    """Strip every line, drop the blank ones, rejoin with ``\\n``.

    Idempotent: ``normalize_code(normalize_code(s)) == normalize_code(s)``.
    """
    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def decode_text(data: bytes) -> str:
    """Decode non-binary file bytes; undecodable bytes survive as surrogates."""
    return data.decode("utf-8", errors="surrogateescape")


def encode_text(text: str) -> bytes:
    """Inverse of :func:`decode_text`."""
    return text.encode("utf-8", errors="surrogateescape")
