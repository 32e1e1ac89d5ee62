# -*- coding: utf-8 -*-
"""
Configuration and fixtures for pytest.

This module defines shared fixtures used across the test suite for the triage
application. Fixtures include temporary image folders, in-memory indexes,
a fake display surface, a manual scheduler standing in for the auto-advance
timer, and mocking of GUI components (Tkinter).
"""

import logging
from pathlib import Path
from typing import Callable, Iterator

import pytest
from PIL import Image

from imgtriage.listing import Entry, EntryIndex
from imgtriage.session import LocalBackend, Slideshow


class FakeDisplay:
    """Display surface recording what it was asked to show."""

    def __init__(self):
        self.shown: list[Path] = []
        self.closed: list[Path] = []
        self.live = True

    def show_image(self, path: Path) -> None:
        self.shown.append(path)

    def close_if_open_elsewhere(self, path: Path) -> None:
        self.closed.append(path)

    def is_live(self) -> bool:
        return self.live


class ManualScheduler:
    """Scheduler whose callbacks only run when a test fires them."""

    def __init__(self):
        self.pending: dict[int, Callable[[], None]] = {}
        self.delays: list[float] = []
        self._next = 0

    def schedule(self, delay: float, callback: Callable[[], None]) -> int:
        self._next += 1
        self.pending[self._next] = callback
        self.delays.append(delay)
        return self._next

    def cancel(self, handle: int) -> None:
        self.pending.pop(handle, None)

    def fire(self) -> None:
        """Run every pending callback once."""
        callbacks = list(self.pending.values())
        self.pending.clear()
        for callback in callbacks:
            callback()


@pytest.fixture
def tmp_image_dir(tmp_path: Path) -> Iterator[Path]:
    """
    Create a temporary 'photos' folder holding three small JPEG images,
    a text file and a subdirectory.

    Yields:
        Path: The path to the folder.
    """
    data_dir = tmp_path / "photos"
    data_dir.mkdir()
    for name, color in (("a.jpg", "red"), ("b.jpg", "green"), ("c.jpg", "blue")):
        Image.new('RGB', (40, 30), color=color).save(data_dir / name, 'JPEG')
    (data_dir / "notes.txt").write_text("not an image")
    (data_dir / "sub").mkdir()
    yield data_dir.resolve()


@pytest.fixture
def make_index() -> Callable[..., EntryIndex]:
    """
    Build an in-memory index under /photos. Names ending with '/' are directories.
    """
    def _make(*names: str) -> EntryIndex:
        root = Path("/photos")
        entries = [
            Entry(path=root / name.rstrip('/'), is_directory=name.endswith('/'))
            for name in names
        ]
        return EntryIndex(entries, source=root)
    return _make


@pytest.fixture
def fake_display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_session(fake_display, manual_scheduler) -> Callable[..., Slideshow]:
    """Create a local-backend session over an index, driven by the manual scheduler."""
    def _make(index: EntryIndex, **kwargs) -> Slideshow:
        kwargs.setdefault('scheduler', manual_scheduler)
        return Slideshow(index, LocalBackend(fake_display), **kwargs)
    return _make


@pytest.fixture
def patch_tk(mocker):
    """
    Patch the Tkinter module to avoid GUI instantiation during tests.

    Returns:
        dict: A dictionary containing the mocked 'Tk' and 'Canvas' classes.
    """
    mock_tk = mocker.patch('tkinter.Tk', autospec=True)
    mock_canvas = mocker.patch('tkinter.Canvas', autospec=True)
    return {
        "Tk": mock_tk,
        "Canvas": mock_canvas,
    }


@pytest.fixture
def dummy_canvas(patch_tk):
    """
    Provide a dummy Tkinter Canvas instance sized 800x600.
    """
    canvas = patch_tk["Canvas"].return_value
    canvas.winfo_width.return_value = 800
    canvas.winfo_height.return_value = 600
    canvas.winfo_exists.return_value = True
    return canvas


@pytest.fixture
def caplog_info(caplog):
    """
    Set the logging level to INFO for the duration of a test.
    """
    caplog.set_level(logging.INFO)
    return caplog
