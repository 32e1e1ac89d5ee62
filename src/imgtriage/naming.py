from __future__ import annotations
"""
Prefix naming: "<prefix>_<name>" labels on file names.

A prefix gives a file a human readable category without losing its original
name. This module parses and applies prefixes, renames files on disk while
keeping the index in sync, and keeps the cache of prefixes used so far.
"""

import logging
import os
import re
import threading
from pathlib import Path
from typing import Iterable

from .config import IMAGE_NAME_PATTERN
from .exceptions.triage_errors import RenameFailed
from .listing import EntryIndex

logger = logging.getLogger(__name__)

PREFIX_TOKEN = r'[^_\s]+'
PREFIX_PATTERN = re.compile(rf'^(?P<prefix>{PREFIX_TOKEN})_(?P<base>.+)$')


def parse_prefix(filename: str) -> tuple[str, str]:
    """Split "token_rest" into ("token", "rest"); other names give ("", filename)."""
    match = PREFIX_PATTERN.match(filename)
    if match is None:
        return '', filename
    return match.group('prefix'), match.group('base')


def apply_prefix(filename: str, prefix: str) -> str:
    """
    Replace the prefix of `filename` with `prefix`.

    An empty prefix strips the existing one. A prefix must be a single token
    without underscores, whitespace or path separators, so that `parse_prefix`
    reads it back.
    """
    prefix = prefix.strip()
    if prefix and (re.fullmatch(PREFIX_TOKEN, prefix) is None or os.sep in prefix):
        raise ValueError(f"Invalid prefix {prefix!r}")
    _, base = parse_prefix(filename)
    return f"{prefix}_{base}" if prefix else base


def rename_with_prefix(index: EntryIndex, path: Path, prefix: str) -> Path:
    """
    Rename `path` on disk to carry `prefix` and re-register it in `index`.

    The entry keeps its position and its tag. Existing files are never
    overwritten.

    Returns:
        The new path (unchanged if the name already carries the prefix).

    Raises:
        EntryNotFound: If `path` is not in the index.
        RenameFailed: On a name collision or a filesystem error.
    """
    path = Path(path)
    index.locate(path)
    try:
        new_name = apply_prefix(path.name, prefix)
    except ValueError as e:
        raise RenameFailed(path, str(e)) from e

    new_path = path.with_name(new_name)
    if new_path == path:
        return path
    if new_path.exists():
        raise RenameFailed(path, f"'{new_name}' already exists")
    try:
        os.rename(path, new_path)
    except OSError as e:
        raise RenameFailed(path, e.strerror or str(e)) from e

    index.rename_entry(path, new_path)
    logger.info(f"Renamed '{path.name}' to '{new_name}'.")
    return new_path


class PrefixCache:
    """
    Prefixes used so far, offered as completions when naming files.

    Seeded once from the files found in the known destination directories and
    grown with every prefix entered afterwards. Nothing is ever evicted.
    """

    def __init__(self):
        self._prefixes: set[str] = set()
        self._seeded = False
        self._lock = threading.Lock()

    @property
    def seeded(self) -> bool:
        return self._seeded

    def seed(self, directories: Iterable[Path]) -> None:
        """Collect prefixes from image names in `directories`. Only the first call scans."""
        with self._lock:
            if self._seeded:
                return
            self._seeded = True
            for directory in directories:
                try:
                    names = [p.name for p in Path(directory).iterdir() if p.is_file()]
                except OSError as e:
                    logger.debug(f"Skipping '{directory}' while seeding prefixes: {e}")
                    continue
                for name in names:
                    prefix, _ = parse_prefix(name)
                    if prefix and IMAGE_NAME_PATTERN.match(name):
                        self._prefixes.add(prefix)
        logger.debug(f"Prefix cache seeded with {len(self._prefixes)} prefixes.")

    def add(self, prefix: str) -> None:
        if prefix:
            with self._lock:
                self._prefixes.add(prefix)

    def complete(self, text: str = '') -> list[str]:
        with self._lock:
            return sorted(p for p in self._prefixes if p.startswith(text))

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._prefixes

    def __len__(self) -> int:
        return len(self._prefixes)


# Process-wide cache shared by every session.
prefix_cache = PrefixCache()
