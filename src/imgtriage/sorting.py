from __future__ import annotations
"""
Sort destination resolution and bulk file moves.

Tagged files are grouped by the directory their tag resolves to, then moved
there in one pass. A failing file never stops the rest of the batch: errors
are collected in a `SortReport` and reported once the pass is over.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from .config import DELETE_MARK, SORT_MARK
from .exceptions.triage_errors import EntryNotFound, MoveFailed
from .naming import parse_prefix
from .tags import TagStore

logger = logging.getLogger(__name__)


class SortDestinationMap:
    """
    Tag to destination directory mapping.

    Alongside the explicit mapping it keeps the names of every known
    destination directory and of their direct subdirectories, used to resolve
    the generic sort mark through a file's name prefix. That table is a
    snapshot, rebuilt by `update`.
    """

    def __init__(self, mapping: Mapping[str, str | Path] | None = None):
        self.mapping: dict[str, Path] = {}
        self.known: dict[str, Path] = {}
        self.update(mapping or {})

    def update(self, mapping: Mapping[str, str | Path]) -> None:
        self.mapping = {tag: Path(directory).expanduser() for tag, directory in mapping.items()}
        known: dict[str, Path] = {}
        for directory in self.mapping.values():
            known.setdefault(directory.name, directory)
        for directory in self.mapping.values():
            try:
                children = sorted(p for p in directory.iterdir() if p.is_dir())
            except OSError:
                continue
            for child in children:
                known.setdefault(child.name, child)
        self.known = known
        logger.debug(f"Sort destinations: {len(self.mapping)} mapped tags, {len(self.known)} known directories.")

    def directories(self) -> list[Path]:
        """Every known destination directory, mapped ones first."""
        seen = list(dict.fromkeys(self.mapping.values()))
        return seen + [d for d in self.known.values() if d not in seen]

    def resolve(self, tag: str, filename: str) -> Path | None:
        """
        Destination directory for a file tagged `tag`, or None to leave it alone.

        An explicit mapping wins. Otherwise the generic sort mark resolves to
        the known directory named like the file's prefix.
        """
        if tag in self.mapping:
            return self.mapping[tag]
        if tag == SORT_MARK:
            prefix, _ = parse_prefix(filename)
            if prefix:
                return self.known.get(prefix)
        return None


@dataclass
class SortReport:
    """Outcome of a bulk pass: what was done and which files failed."""
    done: list[tuple[Path, Path | None]] = field(default_factory=list)
    failures: list[MoveFailed] = field(default_factory=list)
    action: str = "moved"

    @property
    def total(self) -> int:
        return len(self.done) + len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        if not self.failures:
            return f"{len(self.done)} files processed."
        details = "; ".join(f"{f.path.name} ({f.reason})" for f in self.failures)
        return f"{len(self.failures)} of {self.total} files could not be {self.action}: {details}"


def plan(tagged: Iterable[tuple[Path, str]], destinations: SortDestinationMap) -> tuple[dict[Path, set[Path]], int]:
    """
    Group tagged files by destination directory.

    Files whose tag does not resolve are left out and not counted.

    Returns:
        The groups and the number of files they hold.
    """
    groups: dict[Path, set[Path]] = {}
    total = 0
    for path, tag in tagged:
        destination = destinations.resolve(tag, Path(path).name)
        if destination is None:
            continue
        groups.setdefault(destination, set()).add(Path(path))
        total += 1
    logger.info(f"Sort plan: {total} files into {len(groups)} directories.")
    return groups, total


def _move(path: Path, directory: Path) -> Path:
    target = directory / path.name
    if target.exists():
        raise MoveFailed(path, f"'{target}' already exists")
    try:
        directory.mkdir(parents=True, exist_ok=True)
        shutil.move(str(path), str(target))
    except OSError as e:
        raise MoveFailed(path, e.strerror or str(e)) from e
    return target


def execute(groups: Mapping[Path, Iterable[Path]]) -> SortReport:
    """
    Move every grouped file into its directory, creating directories as needed.

    Base names are kept and existing files are never overwritten. A failure
    is recorded and the pass goes on with the next file.
    """
    report = SortReport()
    for directory, paths in groups.items():
        for path in sorted(paths):
            try:
                target = _move(path, directory)
            except MoveFailed as e:
                logger.error(str(e))
                report.failures.append(e)
                continue
            logger.debug(f"Moved '{path.name}' to '{directory}'.")
            report.done.append((path, target))
    if report.failures:
        logger.warning(report.summary())
    else:
        logger.info(f"Moved {len(report.done)} files.")
    return report


def move_to_category(path: Path, directory: Path) -> Path:
    """Move one file into `directory` right away. Raises MoveFailed."""
    target = _move(Path(path), Path(directory).expanduser())
    logger.info(f"Moved '{target.name}' to '{target.parent}'.")
    return target


def sort_session(store: TagStore, destinations: SortDestinationMap) -> SortReport:
    """Plan and run the sort pass for a session; moved files lose their tag and leave navigation."""
    groups, _ = plan(store.tagged(), destinations)
    report = execute(groups)
    for source, _ in report.done:
        try:
            store.unmark(source)
            store.index.mark_gone(source)
        except EntryNotFound:
            logger.debug(f"'{source}' left the index during the sort pass.")
    return report


def delete_flagged(store: TagStore) -> SortReport:
    """Delete every file flagged with the deletion mark, collecting failures."""
    report = SortReport(action="deleted")
    for path, tag in store.tagged():
        if tag != DELETE_MARK:
            continue
        try:
            path.unlink()
        except OSError as e:
            failure = MoveFailed(path, e.strerror or str(e))
            logger.error(f"Cannot delete '{path}': {failure.reason}")
            report.failures.append(failure)
            continue
        store.unmark(path)
        store.index.mark_gone(path)
        report.done.append((path, None))
        logger.info(f"Deleted '{path.name}'.")
    return report
