"""
Tests for the controls module.

This module tests the following cases:
- Key bindings
- Scroll events
- Speed adjustments and loop toggling
- The tag, rename, move and delete prompts
"""

import tkinter as tk
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from imgtriage import controls
from imgtriage.config import DELETE_MARK, JUMP_STEP, SORT_MARK

# Mock the main app instance for testing controls
@pytest.fixture
def mock_app():
    """Fixture to create a mock application instance for testing controls."""
    app = MagicMock()
    app.window = MagicMock()
    app.canvas = MagicMock()
    app.session.step = 1
    app.session.delay = 5.0
    app.session.loop = False
    app.session.current = Path("/photos/old_beach.jpg")
    app.show_full_hud = False
    app.image_folder = Path("/photos")
    app.destinations.directories.return_value = [Path("/sorted/vacation")]
    return app

# Mock the event instance for testing scroll events
@pytest.fixture
def mock_event():
    """Fixture to create a mock event instance."""
    event = MagicMock(spec=tk.Event)
    event.delta = 0
    event.num = 0
    return event

def _bound(app):
    """Map each bound sequence to its handler."""
    return {c.args[0]: c.args[1] for c in app.window.bind.call_args_list}

def test_bind_controls_routes_keys(mock_app):
    controls.bind_controls(mock_app)
    handlers = _bound(mock_app)

    handlers['<Up>'](None)
    mock_app.navigate.assert_called_with(JUMP_STEP)
    handlers['<Left>'](None)
    mock_app.navigate.assert_called_with(-1)
    handlers['m'](None)
    mock_app.mark_current.assert_called_once_with(SORT_MARK)
    handlers['d'](None)
    mock_app.flag_current_for_deletion.assert_called_once_with()
    handlers[']'](None)
    mock_app.display.rotate.assert_called_once_with(90)
    assert handlers['<Configure>'] is mock_app.on_resize

# Test cases for on_scroll function
@pytest.mark.parametrize(
    "delta, num, expected_delta",
    [
        (120, 0, -1),  # Scroll up (Windows/macOS)
        (-120, 0, 1),  # Scroll down (Windows/macOS)
        (0, 4, -1),    # Scroll up (Linux)
        (0, 5, 1),     # Scroll down (Linux)
    ],
)
def test_on_scroll(mock_app, mock_event, delta, num, expected_delta):
    """
    Test that on_scroll navigates by the session step in the right direction.
    """
    mock_event.delta = delta
    mock_event.num = num

    controls.on_scroll(mock_app, mock_event)

    mock_app.navigate.assert_called_once_with(expected_delta)

# Test cases for speed control functions
def test_increase_speed(mock_app):
    """
    Test that increase_speed shortens the delay.
    """
    with patch("imgtriage.controls.hud.update_hud") as mock_update_hud:
        controls.increase_speed(mock_app)
        mock_app.session.set_delay.assert_called_once_with(4.5)
        mock_update_hud.assert_called_once_with(mock_app)

def test_increase_speed_at_minimum_delay(mock_app):
    mock_app.session.delay = 0.5
    with patch("imgtriage.controls.hud.update_hud"):
        controls.increase_speed(mock_app)
        mock_app.session.set_delay.assert_called_once_with(0.5)

def test_decrease_speed_from_manual(mock_app):
    """
    Test that slowing down a manual slideshow starts auto-advance at 3 seconds.
    """
    mock_app.session.delay = None
    with patch("imgtriage.controls.hud.update_hud"):
        controls.decrease_speed(mock_app)
        mock_app.session.set_delay.assert_called_once_with(3.0)

def test_toggle_loop(mock_app):
    with patch("imgtriage.controls.hud.update_hud") as mock_update_hud:
        controls.toggle_loop(mock_app)
        assert mock_app.session.loop is True
        mock_update_hud.assert_called_once_with(mock_app)

def test_toggle_show_full_hud(mock_app):
    with patch("imgtriage.controls.hud.update_hud") as mock_update_hud:
        controls.toggle_show_full_hud(mock_app)
        assert mock_app.show_full_hud is True
        mock_update_hud.assert_called_once_with(mock_app)

# Prompts
@patch("imgtriage.controls.messagebox")
@patch("imgtriage.controls.simpledialog.askstring")
def test_tag_with_prompt(mock_ask, mock_messagebox, mock_app):
    mock_ask.return_value = "A"
    controls.tag_with_prompt(mock_app)
    mock_app.mark_current.assert_called_once_with("A")

    mock_ask.return_value = "AB"
    controls.tag_with_prompt(mock_app)
    mock_messagebox.showerror.assert_called_once()
    assert mock_app.mark_current.call_count == 1

    mock_ask.return_value = " "
    controls.tag_with_prompt(mock_app)
    assert mock_messagebox.showerror.call_count == 2
    assert mock_app.mark_current.call_count == 1

@patch("imgtriage.controls.prefix_cache")
@patch("imgtriage.controls.simpledialog.askstring", return_value=" vacation ")
def test_rename_with_prompt_seeds_cache_and_renames(mock_ask, mock_cache, mock_app):
    mock_cache.complete.return_value = ["vacation", "work"]

    controls.rename_with_prompt(mock_app)

    mock_cache.seed.assert_called_once_with([Path("/sorted/vacation")])
    assert mock_ask.call_args.kwargs["initialvalue"] == "old"
    assert "Known: vacation, work" in mock_ask.call_args.args[1]
    mock_app.rename_current.assert_called_once_with("vacation")

@patch("imgtriage.controls.prefix_cache")
@patch("imgtriage.controls.simpledialog.askstring", return_value=None)
def test_rename_with_prompt_cancelled(mock_ask, mock_cache, mock_app):
    mock_cache.complete.return_value = []
    controls.rename_with_prompt(mock_app)
    mock_app.rename_current.assert_not_called()

@patch("imgtriage.controls.filedialog.askdirectory", return_value="/sorted/work")
def test_move_with_prompt(mock_askdirectory, mock_app):
    controls.move_with_prompt(mock_app)

    assert mock_askdirectory.call_args.kwargs["initialdir"] == "/sorted"
    mock_app.move_current.assert_called_once_with(Path("/sorted/work"))

@patch("imgtriage.controls.filedialog.askopenfilename", return_value="/photos/b.jpg")
def test_open_with_prompt(mock_askopen, mock_app):
    controls.open_with_prompt(mock_app)
    mock_app.open_file.assert_called_once_with(Path("/photos/b.jpg"))

@patch("imgtriage.controls.messagebox.askyesno", return_value=False)
def test_delete_with_confirm_declined(mock_askyesno, mock_app):
    controls.delete_with_confirm(mock_app)
    mock_askyesno.assert_called_once()
    mock_app.delete_current.assert_not_called()

@patch("imgtriage.controls.messagebox")
def test_delete_flagged_with_confirm(mock_messagebox, mock_app):
    mock_app.tags.counts.return_value = {}
    controls.delete_flagged_with_confirm(mock_app)
    mock_messagebox.showinfo.assert_called_once()
    mock_app.delete_flagged.assert_not_called()

    mock_app.tags.counts.return_value = {DELETE_MARK: 2}
    mock_messagebox.askyesno.return_value = True
    controls.delete_flagged_with_confirm(mock_app)
    assert "Delete 2 flagged files?" in mock_messagebox.askyesno.call_args.args[1]
    mock_app.delete_flagged.assert_called_once_with()
