from __future__ import annotations
"""
Folder Listing and Entry Index Module.

This module is responsible for reading the entries of an image folder (the
listing provider) and for the `EntryIndex`, the ordered, immutable view of
that listing a session navigates through.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from .config import IMAGE_NAME_PATTERN
from .exceptions.triage_errors import EntryNotFound, SourceUnavailable
from .tags import load_marks

logger = logging.getLogger(__name__)


@dataclass
class Entry:
    """One record of a folder listing. Identity is the absolute path."""
    path: Path
    is_directory: bool = False
    tag: str | None = None
    # Set once the file was moved away or deleted during the session.
    gone: bool = False

    @property
    def name(self) -> str:
        return self.path.name


def image_name_predicate(pattern: re.Pattern[str] = IMAGE_NAME_PATTERN) -> Callable[[Entry], bool]:
    """
    Build an entry predicate that accepts files whose name matches `pattern`.

    Directories are never valid images.
    """
    def is_image(entry: Entry) -> bool:
        return not entry.is_directory and pattern.match(entry.name) is not None
    return is_image


def list_entries(source: Path) -> list[Entry]:
    """
    Read the entries of a folder in name order.

    Hidden entries are skipped. Each entry carries the mark previously stored
    for it in the folder's marks file, if any.

    Args:
        source: The folder to list.

    Returns:
        The entries of the folder, directories included and flagged as such.

    Raises:
        SourceUnavailable: If the folder does not exist or cannot be read.
    """
    source = Path(source).expanduser().resolve()
    try:
        with os.scandir(source) as it:
            raw = [(item.name, item.is_dir()) for item in it if not item.name.startswith('.')]
    except OSError as e:
        raise SourceUnavailable(f"Cannot list '{source}': {e.strerror or e}") from e

    marks = load_marks(source)
    entries = [
        Entry(path=source / name, is_directory=is_dir, tag=marks.get(name))
        for name, is_dir in sorted(raw)
    ]
    logger.info(f"Listed {len(entries)} entries in '{source}'.")
    return entries


class EntryIndex:
    """
    Ordered view of one folder listing, shared by the sessions that use it.

    Membership and order are fixed when the index is built. Only an entry's
    tag, its path after a rename, and its gone flag change afterwards.
    """

    def __init__(self, entries: Iterable[Entry], is_valid: Callable[[Entry], bool] | None = None,
                 source: Path | None = None):
        self.entries: list[Entry] = list(entries)
        self.is_valid = is_valid or image_name_predicate()
        self.source = source
        self._cursor = 0

    @classmethod
    def build(cls, source: Path | str, is_valid: Callable[[Entry], bool] | None = None) -> 'EntryIndex':
        """Copy the listing of `source` as it is now. Raises SourceUnavailable."""
        source = Path(source).expanduser().resolve()
        index = cls(list_entries(source), is_valid=is_valid, source=source)
        logger.info(f"Index for '{source}' holds {index.image_count()} images.")
        return index

    def __len__(self) -> int:
        return len(self.entries)

    def navigable(self, entry: Entry) -> bool:
        """An image entry whose file is still expected on disk."""
        return not entry.gone and self.is_valid(entry)

    def image_count(self) -> int:
        return sum(1 for entry in self.entries if self.navigable(entry))

    def images(self) -> list[Path]:
        return [entry.path for entry in self.entries if self.navigable(entry)]

    def mark_gone(self, path: Path) -> None:
        """Record that the file at `path` left the folder; navigation skips it from now on."""
        self.entry(path).gone = True

    def first_image(self) -> Path | None:
        return self.scan(-1, 1)

    def contains(self, path: Path | str) -> bool:
        """Membership test that leaves the cursor alone."""
        path = Path(path)
        return any(entry.path == path for entry in self.entries)

    def locate(self, path: Path | str) -> int:
        """
        Find the position of `path`.

        The search runs from the cursor to the end first and then once more
        from the start, so repeated lookups around the current position stay
        cheap. The cursor moves to the hit.

        Raises:
            EntryNotFound: If the path is not part of the index.
        """
        path = Path(path)
        for start, stop in ((self._cursor, len(self.entries)), (0, self._cursor)):
            for position in range(start, stop):
                if self.entries[position].path == path:
                    self._cursor = position
                    return position
        raise EntryNotFound(str(path))

    def entry(self, path: Path | str) -> Entry:
        return self.entries[self.locate(path)]

    def scan(self, from_position: int, delta: int) -> Path | None:
        """
        Move `abs(delta)` valid entries away from `from_position`.

        Entries rejected by the validity predicate, and entries whose file
        left the folder, are skipped. `from_position`
        may be -1 or len(self) to start from a boundary.

        Returns:
            The path reached, the entry at `from_position` when delta is 0,
            or None when the index boundary is hit first (end of sequence).
        """
        if delta == 0:
            if 0 <= from_position < len(self.entries):
                return self.entries[from_position].path
            return None

        direction = 1 if delta > 0 else -1
        remaining = abs(delta)
        position = from_position
        while remaining:
            position += direction
            if not 0 <= position < len(self.entries):
                return None
            if self.navigable(self.entries[position]):
                remaining -= 1
        return self.entries[position].path

    def rename_entry(self, old_path: Path, new_path: Path) -> Entry:
        """Re-register the entry at `old_path` under `new_path`, keeping its position and tag."""
        entry = self.entry(old_path)
        entry.path = Path(new_path)
        logger.debug(f"Index entry '{old_path.name}' is now '{entry.name}' (tag {entry.tag!r}).")
        return entry
