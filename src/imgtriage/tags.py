"""
Manages the marks (tags) applied to images during a session.

Tags live on the entries of the session's index; `TagStore` only enforces the
write policy on top of them. Between runs, marks are kept in a small text
file within the image folder, one "name<TAB>tag" pair per line.
"""

import logging
from pathlib import Path
from typing import Dict, List, Tuple, TYPE_CHECKING

from .config import DELETE_MARK, MARKS_FILENAME
from .exceptions.triage_errors import EntryNotFound

if TYPE_CHECKING:
    from .listing import EntryIndex

# Get a logger instance for this module
logger = logging.getLogger(__name__)


def validate_tag(tag: str) -> str:
    """Return `tag` if it is a single character, raise ValueError otherwise."""
    if not isinstance(tag, str) or len(tag) != 1 or tag.isspace():
        raise ValueError(f"A tag must be a single visible character, got {tag!r}")
    return tag


class TagStore:
    """
    Tag write policy over an `EntryIndex`.

    The first tag applied to an entry wins: later `mark` calls are ignored
    unless forced, so automatic tagging never clobbers a manual choice.
    """

    def __init__(self, index: 'EntryIndex'):
        self.index = index

    def mark(self, path: Path, tag: str, force: bool = False) -> bool:
        """
        Tag the entry at `path`.

        Args:
            path: The file to tag.
            tag: A single character.
            force: Overwrite an existing tag.

        Returns:
            True if the tag was written, False if an existing tag was kept.

        Raises:
            EntryNotFound: If `path` is not in the index. Nothing is changed.
        """
        validate_tag(tag)
        entry = self.index.entry(path)
        if entry.tag is not None and not force:
            logger.debug(f"'{entry.name}' keeps tag {entry.tag!r}, ignoring {tag!r}.")
            return False
        entry.tag = tag
        logger.info(f"Marked '{entry.name}' with {tag!r}.")
        return True

    def unmark(self, path: Path) -> None:
        entry = self.index.entry(path)
        if entry.tag is not None:
            logger.info(f"Removed tag {entry.tag!r} from '{entry.name}'.")
        entry.tag = None

    def flag_for_deletion(self, path: Path) -> bool:
        return self.mark(path, DELETE_MARK, force=True)

    def tag_of(self, path: Path) -> str | None:
        try:
            return self.index.entry(path).tag
        except EntryNotFound:
            return None

    def tagged(self) -> List[Tuple[Path, str]]:
        """All tagged entries as (path, tag) pairs, in index order."""
        return [(entry.path, entry.tag) for entry in self.index.entries if entry.tag is not None]

    def counts(self) -> Dict[str, int]:
        result: Dict[str, int] = {}
        for _, tag in self.tagged():
            result[tag] = result.get(tag, 0) + 1
        return result


def load_marks(image_folder: Path) -> Dict[str, str]:
    """
    Loads stored marks from the marks file in the image folder.

    Malformed lines are skipped.

    Args:
        image_folder (Path): The folder the marks file belongs to.

    Returns:
        Dict[str, str]: File name to tag. Empty if the file doesn't exist.
    """
    marks_file = image_folder / MARKS_FILENAME
    if not marks_file.exists():
        logger.debug(f"Marks file not found: {marks_file}. No marks to load.")
        return {}

    marks: Dict[str, str] = {}
    try:
        with open(marks_file, 'r', encoding='utf-8') as f:
            for line in f:
                name, sep, tag = line.rstrip('\n').rpartition('\t')
                if not sep or not name or len(tag) != 1:
                    logger.warning(f"Skipping malformed line in '{marks_file}': {line.rstrip()!r}")
                    continue
                marks[name] = tag
    except OSError as e:
        logger.error(f"Error loading marks from '{marks_file}': {e}")
        return {}

    logger.info(f"Loaded {len(marks)} marks from {marks_file}.")
    return marks


def save_marks(image_folder: Path, store: TagStore) -> None:
    """
    Saves the marks of every tagged entry still inside `image_folder`.

    An empty store removes a stale marks file.

    Args:
        image_folder (Path): The folder the marks file belongs to.
        store (TagStore): The session's tag store.
    """
    marks_file = image_folder / MARKS_FILENAME
    lines = [
        f"{path.name}\t{tag}\n"
        for path, tag in store.tagged()
        if path.parent == image_folder
    ]
    try:
        if not lines:
            if marks_file.exists():
                marks_file.unlink()
                logger.info(f"No marks left, removed {marks_file}.")
            return
        with open(marks_file, 'w', encoding='utf-8') as f:
            f.writelines(lines)
        logger.info(f"Saved {len(lines)} marks to {marks_file}.")
    except OSError as e:
        logger.error(f"Error saving marks to '{marks_file}': {e}")
