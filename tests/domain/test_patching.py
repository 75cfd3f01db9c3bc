from __future__ import annotations

import pytest

from patchbatch.domain.errors import PatchError
from patchbatch.domain.patching import apply_patch, parse_hunks
from tests.helpers.fakes import make_diff

BASE = "<dc>\n  <title>Old title</title>\n  <creator>Someone</creator>\n</dc>\n"


def test_apply_patch_replaces_changed_lines() -> None:
    updated = BASE.replace("Old title", "New title")

    result = apply_patch(BASE.encode(), make_diff(BASE, updated))

    assert result == updated.encode()


def test_apply_patch_handles_multiple_hunks() -> None:
    base = "".join(f"line {number}\n" for number in range(1, 31))
    updated = base.replace("line 2\n", "line two\n").replace("line 28\n", "")

    diff = make_diff(base, updated)

    assert len(parse_hunks(diff)) == 2
    assert apply_patch(base.encode(), diff) == updated.encode()


def test_apply_patch_inserts_into_empty_content() -> None:
    diff = make_diff("", "first\nsecond\n")

    assert apply_patch(b"", diff) == b"first\nsecond\n"


def test_apply_patch_respects_no_newline_marker() -> None:
    diff = b"--- a\n+++ b\n@@ -1 +1 @@\n-old\n\\ No newline at end of file\n+new\n"

    assert apply_patch(b"old", diff) == b"new\n"


def test_empty_diff_is_a_no_op() -> None:
    assert apply_patch(b"unchanged\n", b"") == b"unchanged\n"


def test_apply_patch_rejects_mismatched_base() -> None:
    diff = make_diff(BASE, BASE.replace("Old title", "New title"))
    drifted = BASE.replace("Old title", "Edited elsewhere")

    with pytest.raises(PatchError, match="does not match"):
        apply_patch(drifted.encode(), diff)


def test_apply_patch_rejects_diff_without_hunks() -> None:
    with pytest.raises(PatchError, match="no hunks"):
        apply_patch(b"content\n", b"this is not a diff\n")


def test_apply_patch_rejects_truncated_hunk() -> None:
    diff = b"@@ -1,3 +1,3 @@\n line\n-old\n"

    with pytest.raises(PatchError, match="Truncated"):
        apply_patch(b"line\nold\nmore\n", diff)


def test_apply_patch_rejects_garbage_inside_hunk() -> None:
    diff = b"@@ -1,2 +1,2 @@\n line\n?old\n+new\n"

    with pytest.raises(PatchError, match="Invalid line"):
        apply_patch(b"line\nold\n", diff)


def test_apply_patch_rejects_overlapping_hunks() -> None:
    diff = b"@@ -2,1 +2,1 @@\n-b\n+B\n@@ -1,1 +1,1 @@\n-a\n+A\n"

    with pytest.raises(PatchError, match="overlaps"):
        apply_patch(b"a\nb\n", diff)
