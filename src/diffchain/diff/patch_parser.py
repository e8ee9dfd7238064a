"""Patch parser — turns serialized zero-context hunks back into Hunk objects.

The format is the hunk part of a unified diff: ``@@ -a,b +c,d @@`` headers
followed by ``-`` and ``+`` lines. A content line whose original text had
no trailing newline is followed by ``\\ No newline at end of file``.
"""

from __future__ import annotations

import re
from typing import Generator, List, Optional

from diffchain.diff.models import Hunk, LineType, PatchLine

_HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@$"
)
NO_NEWLINE_MARKER = "\\ No newline at end of file"


class PatchError(Exception):
    """Raised when a patch is malformed or does not apply to its base."""


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` only, keeping line endings.

    ``str.splitlines`` also breaks on ``\\r``, form feeds and Unicode
    separators, which would not round-trip.
    """
    parts = text.split("\n")
    lines = [p + "\n" for p in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


class PatchParser:
    """Parse patch text and yield Hunk objects.

    Usage::

        for hunk in PatchParser(patch_text).parse():
            ...
    """

    def __init__(self, patch_text: str) -> None:
        self._lines = patch_text.split("\n")
        # A well-formed patch ends with a newline, leaving one empty tail item.
        if self._lines and self._lines[-1] == "":
            self._lines.pop()

    def parse(self) -> Generator[Hunk, None, None]:
        idx = 0
        total = len(self._lines)
        current: Optional[Hunk] = None

        while idx < total:
            raw_line = self._lines[idx]

            # --- Hunk header ---
            hm = _HUNK_HEADER_RE.match(raw_line)
            if hm:
                if current is not None:
                    self._check_counts(current)
                    yield current
                current = Hunk(
                    old_start=int(hm.group(1)),
                    old_count=int(hm.group(2)) if hm.group(2) is not None else 1,
                    new_start=int(hm.group(3)),
                    new_count=int(hm.group(4)) if hm.group(4) is not None else 1,
                )
                idx += 1
                continue

            if current is None:
                raise PatchError(f"line {idx + 1}: content before the first hunk header")

            # --- Content lines ---
            if raw_line.startswith("-"):
                line_type = LineType.REMOVED
            elif raw_line.startswith("+"):
                line_type = LineType.ADDED
            else:
                raise PatchError(f"line {idx + 1}: unexpected patch line {raw_line[:40]!r}")

            content = raw_line[1:]
            if idx + 1 < total and self._lines[idx + 1] == NO_NEWLINE_MARKER:
                idx += 1
            else:
                content += "\n"
            current.lines.append(PatchLine(content=content, line_type=line_type))
            idx += 1

        if current is not None:
            self._check_counts(current)
            yield current

    @staticmethod
    def _check_counts(hunk: Hunk) -> None:
        if len(hunk.removed) != hunk.old_count or len(hunk.added) != hunk.new_count:
            raise PatchError(
                f"hunk @@ -{hunk.old_start},{hunk.old_count} "
                f"+{hunk.new_start},{hunk.new_count} @@ has "
                f"{len(hunk.removed)} removed / {len(hunk.added)} added lines"
            )
