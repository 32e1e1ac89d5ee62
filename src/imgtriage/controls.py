from __future__ import annotations
"""
User Input and Event Handling Module.

This module is responsible for binding all user controls (keyboard shortcuts,
mouse events) to their corresponding actions within the application, and for
the small dialogs some of those actions need.
"""

import tkinter as tk
import logging
from pathlib import Path
from tkinter import filedialog, messagebox, simpledialog
from typing import TYPE_CHECKING

from . import hud
from .config import DELETE_MARK, JUMP_STEP, SORT_MARK
from .naming import parse_prefix, prefix_cache
from .tags import validate_tag

if TYPE_CHECKING:
    from .app import ImageTriageApp

logger = logging.getLogger(__name__)


def bind_controls(app: 'ImageTriageApp'):
    """
    Binds all keyboard shortcuts and mouse events to their handler functions.

    Args:
        app (ImageTriageApp): The main application instance.
    """
    # Playback and Navigation
    app.window.bind('<space>', lambda e: app.toggle_pause())
    app.window.bind('<Right>', lambda e: app.navigate(abs(app.session.step)))
    app.window.bind('<Left>', lambda e: app.navigate(-abs(app.session.step)))
    app.window.bind('<Up>', lambda e: app.navigate(JUMP_STEP))
    app.window.bind('<Down>', lambda e: app.navigate(-JUMP_STEP))
    app.window.bind('<MouseWheel>', lambda e: on_scroll(app, e))
    app.window.bind('<Button-4>', lambda e: on_scroll(app, e))
    app.window.bind('<Button-5>', lambda e: on_scroll(app, e))

    # Application Control
    app.window.bind('q', lambda e: app.quit())
    app.window.bind('Q', lambda e: app.quit())
    app.window.bind('<Escape>', lambda e: app.quit())

    # Slideshow Parameters
    app.window.bind('=', lambda e: decrease_speed(app))
    app.window.bind('+', lambda e: decrease_speed(app))
    app.window.bind('-', lambda e: increase_speed(app))
    app.window.bind('b', lambda e: toggle_loop(app))

    # Marks
    app.window.bind('m', lambda e: app.mark_current(SORT_MARK))
    app.window.bind('t', lambda e: tag_with_prompt(app))
    app.window.bind('u', lambda e: app.unmark_current())
    app.window.bind('d', lambda e: app.flag_current_for_deletion())

    # File Actions
    app.window.bind('r', lambda e: rename_with_prompt(app))
    app.window.bind('c', lambda e: move_with_prompt(app))
    app.window.bind('<Delete>', lambda e: delete_with_confirm(app))
    app.window.bind('o', lambda e: open_with_prompt(app))
    app.window.bind('S', lambda e: app.sort_tagged())
    app.window.bind('X', lambda e: delete_flagged_with_confirm(app))

    # Display
    app.window.bind(']', lambda e: app.display.rotate(90))
    app.window.bind('[', lambda e: app.display.rotate(-90))
    app.window.bind('f', lambda e: app.display.toggle_fit())
    app.window.bind('h', lambda e: toggle_show_full_hud(app))

    # Window Resize Event
    app.window.bind('<Configure>', app.on_resize)


def on_scroll(app: 'ImageTriageApp', event: tk.Event):
    if event.delta > 0 or event.num == 4:
        app.navigate(-abs(app.session.step))
    elif event.delta < 0 or event.num == 5:
        app.navigate(abs(app.session.step))


def increase_speed(app: 'ImageTriageApp'):
    delay = max(0.5, (app.session.delay or 3.5) - 0.5)
    app.session.set_delay(delay)
    hud.update_hud(app)


def decrease_speed(app: 'ImageTriageApp'):
    app.session.set_delay((app.session.delay or 2.5) + 0.5)
    hud.update_hud(app)


def toggle_loop(app: 'ImageTriageApp'):
    app.session.loop = not app.session.loop
    logger.info(f"Slideshow loop {'enabled' if app.session.loop else 'disabled'}.")
    hud.update_hud(app)


def toggle_show_full_hud(app: 'ImageTriageApp'):
    app.show_full_hud = not app.show_full_hud
    hud.update_hud(app)


def tag_with_prompt(app: 'ImageTriageApp'):
    tag = simpledialog.askstring("Tag Image", "Tag (one character):", parent=app.window)
    if not tag:
        return
    try:
        validate_tag(tag)
    except ValueError:
        messagebox.showerror("Invalid Input", "A tag is a single visible character.", parent=app.window)
        return
    app.mark_current(tag)


def rename_with_prompt(app: 'ImageTriageApp'):
    current = app.session.current
    if current is None:
        return
    prefix_cache.seed(app.destinations.directories())
    known = prefix_cache.complete()
    hint = f"\nKnown: {', '.join(known[:15])}" if known else ""
    prefix = simpledialog.askstring(
        "Prefix Name",
        f"Prefix for {current.name} (empty to strip):{hint}",
        initialvalue=parse_prefix(current.name)[0],
        parent=app.window,
    )
    if prefix is None:
        return
    app.rename_current(prefix.strip())


def move_with_prompt(app: 'ImageTriageApp'):
    if app.session.current is None:
        return
    directories = app.destinations.directories()
    directory = filedialog.askdirectory(
        title="Move to category",
        initialdir=str(directories[0].parent if directories else app.image_folder),
        parent=app.window,
    )
    if directory:
        app.move_current(Path(directory))


def open_with_prompt(app: 'ImageTriageApp'):
    filename = filedialog.askopenfilename(title="Open image", initialdir=str(app.image_folder), parent=app.window)
    if filename:
        app.open_file(Path(filename))


def delete_with_confirm(app: 'ImageTriageApp'):
    current = app.session.current
    if current is None:
        return
    if messagebox.askyesno("Delete", f"Delete {current.name} now?", parent=app.window):
        app.delete_current()


def delete_flagged_with_confirm(app: 'ImageTriageApp'):
    count = app.tags.counts().get(DELETE_MARK, 0)
    if not count:
        messagebox.showinfo("Delete Flagged", "No files are flagged for deletion.", parent=app.window)
        return
    if messagebox.askyesno("Delete Flagged", f"Delete {count} flagged files?", parent=app.window):
        app.delete_flagged()
