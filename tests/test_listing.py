# -*- coding: utf-8 -*-
"""
Unit tests for the listing module.

This module tests folder listing, index lookups and the scan used by
navigation.
"""

from pathlib import Path

import pytest

from imgtriage.config import MARKS_FILENAME
from imgtriage.exceptions.triage_errors import EntryNotFound, SourceUnavailable
from imgtriage.listing import EntryIndex, list_entries


def test_list_entries_keeps_name_order_and_flags_directories(tmp_image_dir: Path):
    """Entries come back in name order, hidden files skipped, directories flagged."""
    (tmp_image_dir / ".hidden.jpg").touch()

    entries = list_entries(tmp_image_dir)

    assert [e.name for e in entries] == ["a.jpg", "b.jpg", "c.jpg", "notes.txt", "sub"]
    assert [e.is_directory for e in entries] == [False, False, False, False, True]
    assert all(e.path.is_absolute() for e in entries)


def test_list_entries_reads_stored_marks(tmp_image_dir: Path):
    (tmp_image_dir / MARKS_FILENAME).write_text("b.jpg\tA\n", encoding="utf-8")

    entries = {e.name: e.tag for e in list_entries(tmp_image_dir)}

    assert entries["b.jpg"] == "A"
    assert entries["a.jpg"] is None


def test_build_missing_folder_raises_source_unavailable(tmp_path: Path):
    with pytest.raises(SourceUnavailable):
        EntryIndex.build(tmp_path / "does_not_exist")


def test_build_counts_only_images(tmp_image_dir: Path):
    index = EntryIndex.build(tmp_image_dir)

    assert len(index) == 5
    assert index.image_count() == 3
    assert [p.name for p in index.images()] == ["a.jpg", "b.jpg", "c.jpg"]


def test_locate_searches_forward_then_from_start(make_index):
    index = make_index("a.jpg", "b.jpg", "c.jpg", "d.jpg")

    assert index.locate(Path("/photos/c.jpg")) == 2
    # The cursor now sits on c.jpg; an earlier entry is found by the second pass
    assert index.locate(Path("/photos/a.jpg")) == 0
    assert index.locate(Path("/photos/d.jpg")) == 3


def test_locate_unknown_path_raises(make_index):
    index = make_index("a.jpg")

    with pytest.raises(EntryNotFound):
        index.locate(Path("/photos/zzz.jpg"))


def test_scan_skips_non_images(make_index):
    index = make_index("a.jpg", "notes.txt", "sub/", "b.png", "c.jpg")

    assert index.scan(0, 1) == Path("/photos/b.png")
    assert index.scan(0, 2) == Path("/photos/c.jpg")
    assert index.scan(4, -2) == Path("/photos/a.jpg")


def test_scan_from_boundaries(make_index):
    index = make_index("notes.txt", "a.jpg", "b.jpg")

    assert index.scan(-1, 1) == Path("/photos/a.jpg")
    assert index.scan(len(index), -1) == Path("/photos/b.jpg")
    assert index.first_image() == Path("/photos/a.jpg")


@pytest.mark.parametrize("start", [0, 1, 2])
def test_scan_past_remaining_images_reports_end(make_index, start):
    """A delta at least as large as the images left never clamps."""
    index = make_index("a.jpg", "b.jpg", "c.jpg")
    remaining = len(index) - 1 - start

    assert index.scan(start, remaining + 1) is None
    assert index.scan(start, -(start + 1)) is None


def test_scan_skips_gone_entries(make_index):
    index = make_index("a.jpg", "b.jpg", "c.jpg")
    index.mark_gone(Path("/photos/b.jpg"))

    assert index.scan(0, 1) == Path("/photos/c.jpg")
    assert index.image_count() == 2


def test_rename_entry_keeps_position_and_tag(make_index):
    index = make_index("a.jpg", "b.jpg")
    index.entries[1].tag = "A"

    entry = index.rename_entry(Path("/photos/b.jpg"), Path("/photos/x_b.jpg"))

    assert index.locate(Path("/photos/x_b.jpg")) == 1
    assert entry.tag == "A"
    assert not index.contains(Path("/photos/b.jpg"))
