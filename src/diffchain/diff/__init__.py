"""Diff codec — patch computation, serialization and replay."""

from diffchain.diff.codec import apply_patch, compute_diff
from diffchain.diff.models import Hunk, LineType, PatchLine
from diffchain.diff.patch_parser import PatchError, PatchParser, split_lines

__all__ = [
    "Hunk",
    "LineType",
    "PatchError",
    "PatchLine",
    "PatchParser",
    "apply_patch",
    "compute_diff",
    "split_lines",
]
