from __future__ import annotations
"""
Slideshow session state machine.

A `Slideshow` owns the navigation state of one triage session: the current
entry, the step size, loop and pause flags, optional tag-on-advance and the
auto-advance delay. How images actually get on screen is delegated to a
backend chosen when the session is created: `LocalBackend` drives an
in-process display surface, `imgtriage.feh.FehBackend` drives an external
viewer process.

States: CREATED -> RUNNING <-> PAUSED -> INACTIVE. INACTIVE is terminal.
"""

import enum
import logging
import threading
from pathlib import Path
from typing import Callable, Protocol, TYPE_CHECKING

from .config import DEFAULT_STEP
from .exceptions.triage_errors import EmptyIndex, EntryNotFound
from .listing import Entry, EntryIndex
from .tags import TagStore
from .timer import AutoAdvanceTimer, Scheduler, ThreadScheduler

if TYPE_CHECKING:
    from .registry import ActiveSessionRegistry

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    CREATED = 'created'
    RUNNING = 'running'
    PAUSED = 'paused'
    INACTIVE = 'inactive'


class DisplaySurface(Protocol):
    def show_image(self, path: Path) -> None: ...

    def close_if_open_elsewhere(self, path: Path) -> None: ...

    def is_live(self) -> bool: ...


class Backend(Protocol):
    # Whether the core's auto-advance timer drives this backend.
    uses_timer: bool

    def show(self, session: 'Slideshow', path: Path) -> None: ...

    def advance(self, session: 'Slideshow', delta: int) -> Path | None: ...

    def set_paused(self, session: 'Slideshow', paused: bool) -> None: ...

    def is_live(self) -> bool: ...

    def close(self) -> None: ...


def scan_with_loop(index: EntryIndex, position: int, delta: int, loop: bool) -> Path | None:
    """
    Scan `delta` images from `position`, wrapping around when `loop` is set.

    On wrap the scan restarts from the opposite boundary with the same delta.
    A delta larger than the number of images is reduced modulo that number,
    so a looping scan never runs off the end while one image exists.
    """
    path = index.scan(position, delta)
    if path is not None or not loop:
        return path
    boundary = -1 if delta > 0 else len(index)
    path = index.scan(boundary, delta)
    if path is None:
        count = index.image_count()
        if not count:
            return None
        reduced = (abs(delta) - 1) % count + 1
        path = index.scan(boundary, reduced if delta > 0 else -reduced)
    return path


class LocalBackend:
    """Shows images on an in-process display surface; the core timer advances."""

    uses_timer = True

    def __init__(self, display: DisplaySurface):
        self.display = display

    def show(self, session: 'Slideshow', path: Path) -> None:
        self.display.close_if_open_elsewhere(path)
        self.display.show_image(path)

    def advance(self, session: 'Slideshow', delta: int) -> Path | None:
        position = session.index.locate(session.current)
        path = scan_with_loop(session.index, position, delta, session.loop)
        if path is not None:
            self.show(session, path)
        return path

    def set_paused(self, session: 'Slideshow', paused: bool) -> None:
        pass

    def is_live(self) -> bool:
        return self.display.is_live()

    def close(self) -> None:
        pass


class Slideshow:
    """
    One triage session over a shared `EntryIndex`.

    The lock guards `current`, `paused` and the auto-advance handle. Every
    foreground action cancels the pending auto-advance before it mutates
    anything and re-arms it afterwards when appropriate.
    """

    def __init__(
        self,
        index: EntryIndex,
        backend: Backend,
        *,
        tags: TagStore | None = None,
        step: int = DEFAULT_STEP,
        loop: bool = False,
        paused: bool = False,
        tag_on_advance: str | None = None,
        delay: float | None = None,
        start_at: Path | None = None,
        scheduler: Scheduler | None = None,
        registry: 'ActiveSessionRegistry | None' = None,
    ):
        self.index = index
        self.backend = backend
        self.tags = tags or TagStore(index)
        self.step = step
        self.loop = loop
        self.paused = paused
        self.tag_on_advance = tag_on_advance
        self.delay = delay
        self.start_at = Path(start_at) if start_at is not None else None
        self.registry = registry

        self.lock = threading.RLock()
        self.state = SessionState.CREATED
        self._entry: Entry | None = None
        self._observers: list[Callable[[Path], None]] = []
        self._end_handlers: list[Callable[['Slideshow'], None]] = []
        self.timer = AutoAdvanceTimer(self, scheduler or ThreadScheduler()) if backend.uses_timer else None

    @property
    def current(self) -> Path | None:
        return self._entry.path if self._entry is not None else None

    def bind(self, observer: Callable[[Path], None]) -> None:
        """Call `observer` with the new path after every move."""
        self._observers.append(observer)

    def on_end(self, handler: Callable[['Slideshow'], None]) -> None:
        """Call `handler` when navigation runs off the end of the index."""
        self._end_handlers.append(handler)

    def _notify(self, path: Path) -> None:
        for observer in self._observers:
            observer(path)

    def _start_path(self) -> Path:
        if self.start_at is not None:
            try:
                position = self.index.locate(self.start_at)
            except EntryNotFound:
                logger.warning(f"'{self.start_at}' is not part of the listing, starting at the first image.")
            else:
                path = self.index.scan(position, 0)
                if not self.index.navigable(self.index.entries[position]):
                    path = self.index.scan(position, 1) or self.index.scan(position, -1)
                if path is not None:
                    return path
        path = self.index.first_image()
        if path is None:
            raise EmptyIndex(f"No images to show in '{self.index.source}'.")
        return path

    def begin(self) -> Path:
        """
        Show the first image and start the session.

        The start position is resolved without moving: the requested start
        file, else the first image of the index.

        Raises:
            EmptyIndex: If the index holds no image entries.
        """
        with self.lock:
            if self.state is not SessionState.CREATED:
                raise RuntimeError(f"Session already {self.state.value}")
            path = self._start_path()
            self._entry = self.index.entry(path)
            self.backend.show(self, path)
            self.state = SessionState.PAUSED if self.paused else SessionState.RUNNING
            logger.info(f"Session started at '{path.name}' ({self.index.image_count()} images).")
            self._notify(path)
            self._rearm()
        if self.registry is not None:
            self.registry.register(self)
        return path

    def navigate(self, delta: int | None = None) -> Path | None:
        """
        Move `delta` images (the session step by default).

        Returns:
            The new current path, the unchanged current path for a delta of 0,
            or None when the slideshow has nothing more to show. In that case
            auto-advance stops and the end handlers run.
        """
        with self.lock:
            if delta is None:
                delta = self.step
            if delta == 0 or self._entry is None:
                return self.current
            if self.state is SessionState.INACTIVE:
                logger.debug("Ignoring navigation on an inactive session.")
                return None

            if self.timer is not None:
                self.timer.cancel()
            self._tag_left_behind()

            path = self.backend.advance(self, delta)
            if path is None:
                logger.info("Reached the end of the slideshow.")
                self.paused = True
                if self.state is SessionState.RUNNING:
                    self.state = SessionState.PAUSED
                for handler in self._end_handlers:
                    handler(self)
                return None

            self._entry = self.index.entry(path)
            logger.info(f"Showing '{path.name}'.")
            self._notify(path)
            self._rearm()
            return path

    def follow(self, path: Path) -> Path | None:
        """
        Adopt `path` as the current image after the backend moved on its own.

        Nothing is shown; the image left behind is tagged as on a manual move.

        Raises:
            EntryNotFound: If `path` is not part of the index.
        """
        with self.lock:
            if self.state is SessionState.INACTIVE or self._entry is None:
                return None
            entry = self.index.entry(path)
            if entry is self._entry:
                return entry.path
            self._tag_left_behind()
            self._entry = entry
            logger.info(f"Viewer moved to '{entry.path.name}'.")
            self._notify(entry.path)
            return entry.path

    def goto(self, path: Path) -> Path:
        """
        Make `path` the current image and show it.

        Raises:
            EntryNotFound: If `path` is not an image of the index.
        """
        with self.lock:
            entry = self.index.entry(path)
            if not self.index.navigable(entry):
                raise EntryNotFound(f"'{path}' is not an image")
            if self.timer is not None:
                self.timer.cancel()
            self._entry = entry
            self.backend.show(self, entry.path)
            self._notify(entry.path)
            self._rearm()
            return entry.path

    def refresh(self) -> Path | None:
        """Show the current image again, e.g. after a rename."""
        with self.lock:
            if self._entry is None:
                return None
            self.backend.show(self, self._entry.path)
            self._notify(self._entry.path)
            return self._entry.path

    def _tag_left_behind(self) -> None:
        if not self.tag_on_advance or self._entry.gone:
            return
        try:
            self.tags.mark(self.current, self.tag_on_advance)
        except EntryNotFound:
            logger.warning(f"'{self.current}' left the index, not tagging it.")

    def _rearm(self) -> None:
        if (
            self.timer is not None
            and not self.paused
            and self.delay
            and self.state in (SessionState.RUNNING, SessionState.PAUSED)
        ):
            self.timer.arm(self.delay)

    def pause(self) -> None:
        with self.lock:
            if self.timer is not None:
                self.timer.cancel()
            self.paused = True
            if self.state is SessionState.RUNNING:
                self.state = SessionState.PAUSED
            if self.state is SessionState.PAUSED:
                self.backend.set_paused(self, True)
            logger.info("Slideshow paused.")

    def resume(self) -> None:
        with self.lock:
            if self.state is SessionState.INACTIVE:
                logger.debug("Cannot resume an inactive session.")
                return
            self.paused = False
            if self.state is SessionState.PAUSED:
                self.state = SessionState.RUNNING
                self.backend.set_paused(self, False)
            self._rearm()
            logger.info("Slideshow resumed.")

    def toggle_pause(self) -> bool:
        """Flip the pause flag and return the new value."""
        with self.lock:
            if self.paused:
                self.resume()
            else:
                self.pause()
            return self.paused

    def set_delay(self, delay: float | None) -> None:
        with self.lock:
            self.delay = delay
            if self.timer is not None:
                self.timer.cancel()
            self._rearm()
            logger.info(f"Auto-advance delay set to {delay if delay else 'manual'}.")

    def is_active(self) -> bool:
        """True while the session has begun and its backing surface is still open."""
        with self.lock:
            if self.state in (SessionState.CREATED, SessionState.INACTIVE):
                return False
            if not self.backend.is_live():
                logger.info("Backing display is gone, session becomes inactive.")
                self._deactivate()
                return False
            return True

    def _deactivate(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        self.paused = True
        self.state = SessionState.INACTIVE

    def deactivate(self) -> None:
        """End the session for good and release its backend."""
        with self.lock:
            if self.state is SessionState.INACTIVE:
                return
            self._deactivate()
            self.backend.close()
            logger.info("Session closed.")
