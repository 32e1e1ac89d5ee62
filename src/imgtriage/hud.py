from __future__ import annotations
"""
Heads-Up Display (HUD) Module.

This module renders the on-screen status line (position, mark, playback
state, keyboard shortcuts) and the summary view shown once the slideshow has
nothing more to show.
"""

import tkinter as tk
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .app import ImageTriageApp

# Get a logger instance for this module
logger = logging.getLogger(__name__)

MAX_NAME_LEN_HUD = 40


def get_hud_shortcut_text() -> str:
    """
    Generates the help text string containing keyboard shortcuts.

    Returns:
        str: A formatted string listing the available keyboard shortcuts.
    """
    shortcuts = [
        "Shortcuts (h to toggle):",
        "  Play/Pause: Space | Next/Prev: →/←, Scroll | Jump +/-10: ↑/↓ | Speed +/-: -/=",
        "  Mark: m | Tag: t | Unmark: u | Flag delete: d | Delete now: Del",
        "  Prefix rename: r | Move to category: c | Open file: o | Rotate: [ ] | Fit: f",
        "  Loop: b | Sort tagged: S | Delete flagged: X | Quit: q, Esc",
    ]
    return "\n".join(shortcuts)


def status_lines(app: 'ImageTriageApp') -> list[str]:
    session = app.session
    if session.current is None:
        return ["No image"]

    images = session.index.images()
    position = images.index(session.current) + 1 if session.current in images else 0
    name = session.current.name
    if len(name) > MAX_NAME_LEN_HUD:
        name = name[:MAX_NAME_LEN_HUD - 3] + "..."
    tag = app.tags.tag_of(session.current)

    play_status = "Paused" if session.paused else "Playing"
    delay_str = f"Delay: {session.delay:.1f}s" if session.delay else "Delay: manual"
    return [
        f"{play_status} | {position}/{len(images)} - {name}{f' [{tag}]' if tag else ''}",
        f"{delay_str} | Step: {session.step} | Loop: {'On' if session.loop else 'Off'}"
        f" | Auto-mark: {session.tag_on_advance or 'Off'}",
    ]


def update_hud(app: 'ImageTriageApp') -> None:
    """
    Updates and redraws the Heads-Up Display (HUD) on the canvas.

    Args:
        app (ImageTriageApp): The main application instance.
    """
    canvas = app.canvas
    canvas.delete("hud_bg", "hud_text")

    canvas_width = canvas.winfo_width()
    canvas_height = canvas.winfo_height()
    if canvas_width < 200 or canvas_height < 60:
        logger.debug(f"Canvas too small ({canvas_width}x{canvas_height}) to draw HUD.")
        return

    hud_lines = status_lines(app)
    if app.show_full_hud:
        hud_lines.append(get_hud_shortcut_text())
    final_hud_text = "\n".join(hud_lines)

    padding = 8
    hud_font = ("Helvetica", 10, "bold")

    # Use a temporary text object to measure the required bounding box
    temp_text_item = canvas.create_text(0, 0, text=final_hud_text, font=hud_font, anchor='sw', tags="temp")
    x1, y1, x2, y2 = canvas.bbox(temp_text_item)
    canvas.delete(temp_text_item)

    text_width = x2 - x1
    text_height = y2 - y1

    rect_x1 = (canvas_width - text_width) / 2 - padding
    rect_y1 = canvas_height - text_height - (2 * padding)
    rect_x2 = (canvas_width + text_width) / 2 + padding
    rect_y2 = canvas_height

    canvas.create_rectangle(
        rect_x1, rect_y1, rect_x2, rect_y2,
        fill="black", outline="", stipple="gray50", tags="hud_bg"
    )
    canvas.create_text(
        rect_x1 + padding, rect_y2 - padding,
        text=final_hud_text, anchor='sw', fill="white", font=hud_font, tags="hud_text"
    )


def summary_text(app: 'ImageTriageApp') -> str:
    """Text of the end-of-slideshow view: the listing with its marks."""
    index = app.session.index
    counts = app.tags.counts()
    lines = [f"End of slideshow - {index.source}", ""]
    if counts:
        lines.append("Marks: " + ", ".join(f"{tag} x{count}" for tag, count in sorted(counts.items())))
    else:
        lines.append("No marks.")
    lines.append("")
    for entry in index.entries:
        if entry.gone:
            continue
        marker = entry.tag or ' '
        suffix = '/' if entry.is_directory else ''
        lines.append(f"{marker} {entry.name}{suffix}")
    lines += ["", "←: back to the images | S: sort tagged | X: delete flagged | q: quit"]
    return "\n".join(lines)


def show_summary(app: 'ImageTriageApp') -> None:
    """Replace the image with the summary view."""
    canvas = app.canvas
    canvas.delete("image", "summary", "message", "hud_bg", "hud_text")
    canvas.create_text(
        20, 20, text=summary_text(app), fill="white",
        font=("Courier", 11), anchor=tk.NW, tags="summary"
    )
    logger.info("Showing the session summary.")
