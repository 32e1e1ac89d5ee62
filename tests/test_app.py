# -*- coding: utf-8 -*-
"""
Unit tests for the main application class, ImageTriageApp.
"""

import pytest
from unittest.mock import MagicMock
from pathlib import Path

from imgtriage.app import ImageTriageApp
from imgtriage.config import MARKS_FILENAME
from imgtriage.exceptions.triage_errors import EmptyIndex
from imgtriage.presets import Preset
from imgtriage.registry import ActiveSessionRegistry
from imgtriage.session import SessionState
from imgtriage.sorting import SortDestinationMap

# --- Fixtures ---

@pytest.fixture
def mock_app_dependencies(mocker):
    """Mocks the GUI side of ImageTriageApp: display surface, HUD, controls and dialogs."""
    surface = MagicMock()
    surface.is_live.return_value = True
    mocks = {
        "display": surface,
        "TkDisplay": mocker.patch('imgtriage.app.TkDisplay', return_value=surface),
        "hud": mocker.patch('imgtriage.app.hud'),
        "controls": mocker.patch('imgtriage.app.controls'),
        "messagebox": mocker.patch('imgtriage.app.messagebox'),
        "prefix_cache": mocker.patch('imgtriage.app.naming.prefix_cache'),
    }
    return mocks

@pytest.fixture
def make_app(mock_app_dependencies, patch_tk, tmp_image_dir, tmp_path):
    """Build and set up an app over the temporary image folder."""
    def _make(folder=None, start_at=None, destinations=None, **preset):
        window = patch_tk['Tk']()
        app = ImageTriageApp(
            window,
            folder or tmp_image_dir,
            Preset(**preset),
            SortDestinationMap(destinations or {"A": str(tmp_path / "keep")}),
            ActiveSessionRegistry(),
            start_at=start_at,
        )
        app.setup()
        return app
    return _make

# --- Tests for setup ---

def test_setup_shows_first_image(make_app, mock_app_dependencies, tmp_image_dir):
    app = make_app()

    assert app.session.current == tmp_image_dir / "a.jpg"
    mock_app_dependencies["display"].show_image.assert_called_once_with(tmp_image_dir / "a.jpg")
    mock_app_dependencies["controls"].bind_controls.assert_called_once_with(app)
    app.window.attributes.assert_called_with('-fullscreen', True)
    assert app.registry.sessions() == [app.session]

def test_setup_without_images_tells_the_user(make_app, mock_app_dependencies, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()

    with pytest.raises(EmptyIndex):
        make_app(folder=empty)

    mock_app_dependencies["messagebox"].showerror.assert_called_once()

# --- Navigation ---

def test_navigate_past_the_end_shows_summary(make_app, mock_app_dependencies, tmp_image_dir):
    app = make_app(start_at=tmp_image_dir / "c.jpg")

    assert app.navigate(1) is None

    assert app.showing_summary
    mock_app_dependencies["hud"].show_summary.assert_called_with(app)

def test_back_from_summary_returns_to_last_image(make_app, tmp_image_dir):
    app = make_app(start_at=tmp_image_dir / "c.jpg")
    app.navigate(1)

    assert app.navigate(-1) == tmp_image_dir / "c.jpg"
    assert not app.showing_summary

# --- Marks and file actions ---

def test_mark_and_flag_current(make_app, tmp_image_dir):
    app = make_app()

    app.mark_current("A")
    assert app.tags.tag_of(tmp_image_dir / "a.jpg") == "A"

    app.flag_current_for_deletion()
    assert app.tags.tag_of(tmp_image_dir / "a.jpg") == "D"

    app.unmark_current()
    assert app.tags.tag_of(tmp_image_dir / "a.jpg") is None

def test_tag_changes_hold_the_session_lock(make_app, mocker):
    app = make_app()
    lock = mocker.MagicMock()
    app.session.lock = lock

    app.mark_current("A")
    app.flag_current_for_deletion()
    app.unmark_current()

    assert lock.__enter__.call_count == 3
    assert lock.__exit__.call_count == 3

def test_mark_current_rejects_a_blank_tag(make_app, tmp_image_dir, caplog):
    app = make_app()

    app.mark_current(" ")

    assert app.tags.tag_of(tmp_image_dir / "a.jpg") is None
    assert "Not marking 'a.jpg'" in caplog.text

def test_rename_current_updates_session(make_app, mock_app_dependencies, tmp_image_dir):
    app = make_app()

    app.rename_current("keep")

    assert app.session.current == tmp_image_dir / "keep_a.jpg"
    assert (tmp_image_dir / "keep_a.jpg").exists()
    mock_app_dependencies["prefix_cache"].add.assert_called_once_with("keep")

def test_rename_collision_is_reported(make_app, mock_app_dependencies, tmp_image_dir):
    (tmp_image_dir / "keep_a.jpg").write_bytes(b"other")
    app = make_app()

    app.rename_current("keep")

    mock_app_dependencies["messagebox"].showerror.assert_called_once()
    assert app.session.current == tmp_image_dir / "a.jpg"

def test_move_current_advances_past_moved_file(make_app, tmp_image_dir, tmp_path):
    app = make_app()

    app.move_current(tmp_path / "cats")

    assert (tmp_path / "cats" / "a.jpg").exists()
    assert app.session.current == tmp_image_dir / "b.jpg"
    assert tmp_image_dir / "a.jpg" not in app.index.images()

def test_delete_last_image_steps_back(make_app, tmp_image_dir):
    app = make_app(start_at=tmp_image_dir / "c.jpg")

    app.delete_current()

    assert not (tmp_image_dir / "c.jpg").exists()
    assert app.session.current == tmp_image_dir / "b.jpg"

def test_delete_last_image_keeps_auto_advance_running(make_app, mock_app_dependencies, tmp_image_dir):
    app = make_app(start_at=tmp_image_dir / "c.jpg", delay=2.0)

    app.delete_current()

    assert app.session.current == tmp_image_dir / "b.jpg"
    assert app.session.paused is False
    assert app.session.state is SessionState.RUNNING
    assert app.session.timer.pending
    assert not app.showing_summary
    mock_app_dependencies["hud"].show_summary.assert_not_called()

def test_delete_only_image_pauses_on_summary(make_app, mock_app_dependencies, tmp_path):
    folder = tmp_path / "single"
    folder.mkdir()
    (folder / "only.jpg").write_bytes(b"")
    app = make_app(folder=folder, delay=2.0)

    app.delete_current()

    assert app.session.paused is True
    assert not app.session.timer.pending
    assert app.showing_summary

def test_sort_tagged_moves_files_and_reports(make_app, mock_app_dependencies, tmp_image_dir, tmp_path):
    app = make_app()
    app.tags.mark(tmp_image_dir / "b.jpg", "A")

    app.sort_tagged()

    assert (tmp_path / "keep" / "b.jpg").exists()
    assert app.session.paused
    mock_app_dependencies["messagebox"].showinfo.assert_called_once()
    assert app.session.current == tmp_image_dir / "a.jpg"

def test_delete_flagged_leaves_deleted_current_image(make_app, tmp_image_dir):
    app = make_app()
    app.flag_current_for_deletion()

    app.delete_flagged()

    assert not (tmp_image_dir / "a.jpg").exists()
    assert app.session.current == tmp_image_dir / "b.jpg"

def test_open_file_jumps_within_session(make_app, mock_app_dependencies, tmp_image_dir):
    app = make_app()

    app.open_file(tmp_image_dir / "c.jpg")
    assert app.session.current == tmp_image_dir / "c.jpg"

    app.open_file(Path("/elsewhere/x.jpg"))
    mock_app_dependencies["messagebox"].showinfo.assert_called_once()
    assert app.session.current == tmp_image_dir / "c.jpg"

# --- Shutdown ---

def test_quit_saves_marks_and_closes(make_app, tmp_image_dir):
    app = make_app()
    app.mark_current("A")

    app.quit()

    assert (tmp_image_dir / MARKS_FILENAME).read_text(encoding="utf-8") == "a.jpg\tA\n"
    assert app.session.state is SessionState.INACTIVE
    app.window.destroy.assert_called_once()
