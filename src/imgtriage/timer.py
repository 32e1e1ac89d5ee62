from __future__ import annotations
"""
Auto-advance scheduling.

A slideshow with a delay advances on its own through a single-shot callback,
re-armed every time an image is shown. Schedulers abstract where that
callback runs: the tkinter event loop for the GUI, a timer thread otherwise.
"""

import logging
import threading
from typing import Any, Callable, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    import tkinter as tk
    from .session import Slideshow

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class TkScheduler:
    """Runs callbacks on the tkinter event loop through `after`."""

    def __init__(self, window: 'tk.Misc'):
        self.window = window

    def schedule(self, delay: float, callback: Callable[[], None]) -> str:
        return self.window.after(int(delay * 1000), callback)

    def cancel(self, handle: str) -> None:
        self.window.after_cancel(handle)


class ThreadScheduler:
    """Runs callbacks on daemon `threading.Timer` threads."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()


class AutoAdvanceTimer:
    """
    The one pending auto-advance callback of a session.

    Arming always cancels the previous callback first, so at most one is
    pending at any time. Each callback also carries the generation it was
    armed with and does nothing once a newer one exists: a callback that was
    already running when a manual action cancelled it cannot move the
    cursor a second time.

    All methods must be called with the session lock held; the callback
    takes it itself.
    """

    def __init__(self, session: 'Slideshow', scheduler: Scheduler):
        self.session = session
        self.scheduler = scheduler
        self._handle: Any = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None

    def arm(self, delay: float) -> None:
        self.cancel()
        generation = self._generation
        self._handle = self.scheduler.schedule(delay, lambda: self._fire(generation))
        logger.debug(f"Auto-advance armed for {delay:.1f}s (generation {generation}).")

    def _fire(self, generation: int) -> None:
        session = self.session
        with session.lock:
            if generation != self._generation:
                logger.debug(f"Dropping stale auto-advance callback (generation {generation}).")
                return
            self._handle = None
            if not session.is_active():
                logger.info("Display surface is gone, pausing the slideshow.")
                session.pause()
                return
            if session.paused:
                return
            session.navigate()
