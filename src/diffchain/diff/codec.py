"""Diff codec — compute a serialized line patch and replay it.

``apply_patch(old, compute_diff(old, new)) == new`` holds for every pair of
texts, including empty ones, CRLF line endings and a missing final newline.
"""

from __future__ import annotations

import difflib
from typing import List

from diffchain.diff.patch_parser import NO_NEWLINE_MARKER, PatchError, PatchParser, split_lines


def _format_range(start: int, stop: int) -> str:
    """Unified-diff range notation (same convention as difflib)."""
    beginning = start + 1
    length = stop - start
    if length == 1:
        return f"{beginning}"
    if not length:
        beginning -= 1
    return f"{beginning},{length}"


def _emit(prefix: str, lines: List[str], out: List[str]) -> None:
    for line in lines:
        if line.endswith("\n"):
            out.append(prefix + line)
        else:
            out.append(f"{prefix}{line}\n{NO_NEWLINE_MARKER}\n")


def compute_diff(old_text: str, new_text: str) -> str:
    """Return the patch transforming *old_text* into *new_text*.

    Identical inputs yield the empty patch.
    """
    a = split_lines(old_text)
    b = split_lines(new_text)
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)

    out: List[str] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        out.append(f"@@ -{_format_range(i1, i2)} +{_format_range(j1, j2)} @@\n")
        _emit("-", a[i1:i2], out)
        _emit("+", b[j1:j2], out)
    return "".join(out)


def apply_patch(base_text: str, patch: str) -> str:
    """Replay *patch* on *base_text*. Raises PatchError if it does not fit."""
    base = split_lines(base_text)
    result: List[str] = []
    cursor = 0

    for hunk in PatchParser(patch).parse():
        start = hunk.base_index
        if start < cursor or start + hunk.old_count > len(base):
            raise PatchError(
                f"hunk at line {hunk.old_start} is out of range "
                f"(base has {len(base)} lines)"
            )
        if base[start:start + hunk.old_count] != hunk.removed:
            raise PatchError(f"hunk at line {hunk.old_start} does not match the base text")

        result.extend(base[cursor:start])
        result.extend(hunk.added)
        cursor = start + hunk.old_count

    result.extend(base[cursor:])
    return "".join(result)
