from __future__ import annotations
"""
Main application class for the image triage tool.

This module defines the `ImageTriageApp` class, the Tkinter front end of a
triage session. It owns the main window and wires the session engine
(index, tags, slideshow) to the display surface, the HUD and the user
controls.
"""

import tkinter as tk
from tkinter import messagebox
import logging
from pathlib import Path

from . import controls, hud, naming, sorting
from .display import TkDisplay
from .exceptions.triage_errors import EmptyIndex, EntryNotFound, MoveFailed, RenameFailed
from .listing import EntryIndex
from .presets import Preset
from .registry import ActiveSessionRegistry
from .session import LocalBackend, Slideshow, scan_with_loop
from .tags import TagStore, save_marks
from .timer import TkScheduler

logger = logging.getLogger(__name__)


class ImageTriageApp:
    """
    The main application class for the triage slideshow.
    """

    def __init__(
        self,
        window: tk.Tk,
        image_folder: str | Path,
        preset: Preset,
        destinations: sorting.SortDestinationMap,
        registry: ActiveSessionRegistry,
        start_at: Path | None = None,
    ):
        self.window = window
        self.destinations = destinations
        self.registry = registry
        self.show_full_hud = True
        self.showing_summary = False
        self._resize_job: str | None = None

        # Raises SourceUnavailable before any window content exists
        self.index = EntryIndex.build(image_folder)
        self.image_folder = self.index.source
        self.tags = TagStore(self.index)

        self.canvas = tk.Canvas(self.window, bg='black', highlightthickness=0)
        self.canvas.pack(fill=tk.BOTH, expand=True)
        self.display = TkDisplay(self.canvas)

        self.session = Slideshow(
            self.index,
            LocalBackend(self.display),
            tags=self.tags,
            step=preset.step,
            loop=preset.loop,
            paused=preset.paused,
            tag_on_advance=preset.mark,
            delay=preset.delay,
            start_at=start_at,
            scheduler=TkScheduler(self.window),
            registry=self.registry,
        )
        self.session.bind(self._on_moved)
        self.session.on_end(lambda session: self.show_summary())

    def setup(self) -> None:
        """
        Bind the controls and show the first image.

        Raises:
            EmptyIndex: If the folder holds no images. The user is told first.
        """
        self.window.title(f"Image Triage - {self.image_folder.name}")
        self.is_fullscreen = True
        self.window.attributes('-fullscreen', self.is_fullscreen)
        controls.bind_controls(self)
        try:
            self.session.begin()
        except EmptyIndex:
            messagebox.showerror("Error", "No images to show in the specified folder.")
            raise

    def _on_moved(self, path: Path) -> None:
        self.showing_summary = False
        hud.update_hud(self)

    def show_summary(self) -> None:
        self.showing_summary = True
        hud.show_summary(self)

    def navigate(self, delta: int) -> Path | None:
        if self.showing_summary and delta < 0 and self.session.current is not None:
            # Leaving the summary view goes back to the last image shown.
            if self.index.navigable(self.index.entry(self.session.current)):
                return self.session.goto(self.session.current)
        path = self.session.navigate(delta)
        if path is None:
            self.show_summary()
        return path

    def toggle_pause(self) -> None:
        self.session.toggle_pause()
        hud.update_hud(self)

    def mark_current(self, tag: str) -> None:
        with self.session.lock:
            current = self.session.current
            if current is None:
                return
            try:
                self.tags.mark(current, tag, force=True)
            except EntryNotFound:
                logger.warning(f"'{current}' is no longer part of the session, not marking it.")
            except ValueError as e:
                logger.warning(f"Not marking '{current.name}': {e}")
        hud.update_hud(self)

    def unmark_current(self) -> None:
        with self.session.lock:
            current = self.session.current
            if current is None:
                return
            try:
                self.tags.unmark(current)
            except EntryNotFound:
                logger.warning(f"'{current}' is no longer part of the session, not unmarking it.")
        hud.update_hud(self)

    def flag_current_for_deletion(self) -> None:
        with self.session.lock:
            current = self.session.current
            if current is None:
                return
            try:
                self.tags.flag_for_deletion(current)
            except EntryNotFound:
                logger.warning(f"'{current}' is no longer part of the session, not flagging it.")
        hud.update_hud(self)

    def rename_current(self, prefix: str) -> None:
        current = self.session.current
        if current is None:
            return
        with self.session.lock:
            try:
                new_path = naming.rename_with_prefix(self.index, current, prefix)
            except (RenameFailed, EntryNotFound) as e:
                logger.error(str(e))
                messagebox.showerror("Rename", str(e), parent=self.window)
                return
            naming.prefix_cache.add(prefix)
            self.display.close_if_open_elsewhere(current)
            self.session.refresh()
        logger.debug(f"Current image is now '{new_path.name}'.")

    def _leave_current(self) -> None:
        """Advance past a file that just left the folder, or show the summary."""
        step = abs(self.session.step)
        position = self.index.locate(self.session.current)
        # Falling back to the previous image is not the end of the slideshow
        target = scan_with_loop(self.index, position, step, self.session.loop) or self.index.scan(position, -step)
        if target is None:
            self.session.pause()
            self.show_summary()
        else:
            self.session.goto(target)

    def move_current(self, directory: Path) -> None:
        current = self.session.current
        if current is None:
            return
        with self.session.lock:
            try:
                sorting.move_to_category(current, directory)
            except MoveFailed as e:
                logger.error(str(e))
                messagebox.showerror("Move", str(e), parent=self.window)
                return
            self.tags.unmark(current)
            self.index.mark_gone(current)
            self._leave_current()

    def delete_current(self) -> None:
        current = self.session.current
        if current is None:
            return
        with self.session.lock:
            try:
                current.unlink()
            except OSError as e:
                logger.error(f"Cannot delete '{current}': {e}")
                messagebox.showerror("Delete", f"Cannot delete {current.name}: {e}", parent=self.window)
                return
            logger.info(f"Deleted '{current.name}'.")
            self.tags.unmark(current)
            self.index.mark_gone(current)
            self._leave_current()

    def _after_bulk_pass(self, title: str, report: sorting.SortReport) -> None:
        if report.ok:
            messagebox.showinfo(title, report.summary(), parent=self.window)
        else:
            messagebox.showwarning(title, report.summary(), parent=self.window)
        current = self.session.current
        if current is not None and not self.index.navigable(self.index.entry(current)):
            self._leave_current()
        elif self.showing_summary:
            self.show_summary()
        else:
            hud.update_hud(self)

    def sort_tagged(self) -> None:
        """Move every tagged file to its resolved destination."""
        with self.session.lock:
            self.session.pause()
            report = sorting.sort_session(self.tags, self.destinations)
            self._after_bulk_pass("Sort", report)

    def delete_flagged(self) -> None:
        with self.session.lock:
            self.session.pause()
            report = sorting.delete_flagged(self.tags)
            self._after_bulk_pass("Delete Flagged", report)

    def open_file(self, path: Path) -> None:
        """Jump to an image opened from outside, if it belongs to this session."""
        session = self.registry.find_session(path)
        if session is not self.session:
            logger.warning(f"'{path}' is not part of the current slideshow.")
            messagebox.showinfo("Open", f"{path.name} is not part of this slideshow.", parent=self.window)
            return
        try:
            session.goto(path.expanduser().resolve())
        except EntryNotFound as e:
            logger.warning(f"Cannot open '{path}': {e}")

    def on_resize(self, event: tk.Event) -> None:
        """
        Handle the window resize event.

        To avoid excessive updates during resizing, it schedules the image
        to be re-rendered after a short delay once resizing has stopped.
        """
        if event.widget == self.window:
            if self._resize_job:
                self.window.after_cancel(self._resize_job)
            if event.width > 50 and event.height > 50:
                self._resize_job = self.window.after(250, self._redraw)

    def _redraw(self) -> None:
        self._resize_job = None
        if self.showing_summary:
            self.show_summary()
        else:
            self.display.render()
            hud.update_hud(self)

    def quit(self) -> None:
        """Cleanly shut down the application."""
        logger.info("Quit command received. Saving marks and closing.")
        save_marks(self.image_folder, self.tags)
        self.session.deactivate()
        if self._resize_job:
            self.window.after_cancel(self._resize_job)
        self.window.destroy()

    def run(self) -> None:
        """Start the Tkinter main loop."""
        self.window.mainloop()
