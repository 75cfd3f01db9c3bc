"""Apply unified diffs to byte content.

Diffs are stored exactly as the diff-generation stage produced them: classic
unified format with optional ``---``/``+++`` file headers, one or more ``@@``
hunks and ``\\ No newline at end of file`` markers. Hunks must match the base
content at the line they name; there is no fuzz or offset search, a diff
computed against different content is rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final

from patchbatch.domain.errors import PatchError

_HUNK_HEADER: Final = re.compile(rb"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_NO_NEWLINE_MARKER: Final = b"\\"


@dataclass(slots=True)
class Hunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    old_lines: list[bytes] = field(default_factory=list[bytes])
    new_lines: list[bytes] = field(default_factory=list[bytes])

    @property
    def base_index(self) -> int:
        # a pure insertion names the line it follows, everything else the first line it touches
        if self.old_count == 0:
            return self.old_start
        return self.old_start - 1


def parse_hunks(diff: bytes) -> list[Hunk]:
    """Parse the hunks of a unified diff, raising ``PatchError`` on malformed input."""

    lines = diff.splitlines(keepends=True)
    hunks: list[Hunk] = []
    index = 0
    while index < len(lines):
        match = _HUNK_HEADER.match(lines[index])
        if match is None:
            if hunks:
                raise PatchError(f"Unexpected line {index + 1} after hunk: {lines[index]!r}")
            index += 1
            continue
        hunk = Hunk(
            old_start=int(match.group(1)),
            old_count=int(match.group(2) or b"1"),
            new_start=int(match.group(3)),
            new_count=int(match.group(4) or b"1"),
        )
        index = _read_hunk_body(lines, index + 1, hunk)
        hunks.append(hunk)
    return hunks


def _read_hunk_body(lines: list[bytes], index: int, hunk: Hunk) -> int:
    old_seen = 0
    new_seen = 0
    last_kind: bytes | None = None
    while index < len(lines):
        line = lines[index]
        kind = line[:1]
        if kind == _NO_NEWLINE_MARKER:
            _strip_last_newline(hunk, last_kind)
            index += 1
            continue
        if old_seen >= hunk.old_count and new_seen >= hunk.new_count:
            break
        if kind in {b"\n", b"\r"}:
            # some editors strip the leading space from blank context lines
            kind, payload = b" ", line
        else:
            payload = line[1:]
        if kind == b" ":
            hunk.old_lines.append(payload)
            hunk.new_lines.append(payload)
            old_seen += 1
            new_seen += 1
        elif kind == b"-":
            hunk.old_lines.append(payload)
            old_seen += 1
        elif kind == b"+":
            hunk.new_lines.append(payload)
            new_seen += 1
        else:
            raise PatchError(f"Invalid line in hunk at line {index + 1}: {line!r}")
        last_kind = kind
        index += 1

    if old_seen != hunk.old_count or new_seen != hunk.new_count:
        raise PatchError(
            f"Truncated hunk @@ -{hunk.old_start},{hunk.old_count} "
            f"+{hunk.new_start},{hunk.new_count} @@"
        )
    return index


def _strip_last_newline(hunk: Hunk, last_kind: bytes | None) -> None:
    if last_kind is None:
        raise PatchError("No-newline marker without a preceding line")
    targets: list[list[bytes]] = []
    if last_kind in {b" ", b"-"}:
        targets.append(hunk.old_lines)
    if last_kind in {b" ", b"+"}:
        targets.append(hunk.new_lines)
    for target in targets:
        target[-1] = target[-1].rstrip(b"\r\n")


def apply_patch(content: bytes, diff: bytes) -> bytes:
    """Return ``content`` with ``diff`` applied.

    An empty diff leaves the content untouched. Anything else must contain at
    least one hunk and every hunk must match the base content exactly.
    """

    if not diff.strip():
        return content

    hunks = parse_hunks(diff)
    if not hunks:
        raise PatchError("Diff contains no hunks")

    source = content.splitlines(keepends=True)
    output: list[bytes] = []
    cursor = 0
    for number, hunk in enumerate(hunks, start=1):
        start = hunk.base_index
        if start < cursor:
            raise PatchError(f"Hunk {number} overlaps the previous hunk")
        end = start + len(hunk.old_lines)
        if end > len(source) or source[start:end] != hunk.old_lines:
            raise PatchError(f"Hunk {number} does not match the base content at line {start + 1}")
        output.extend(source[cursor:start])
        output.extend(hunk.new_lines)
        cursor = end
    output.extend(source[cursor:])
    return b"".join(output)
