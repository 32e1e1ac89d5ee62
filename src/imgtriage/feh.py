from __future__ import annotations
"""
External viewer backend built on feh.

feh shows the images and runs its own slideshow timer; this module starts it
on the session's file list, sends it navigation keys through xdotool and
reads the current file back from its window title. The title is the only
state feh exposes, so its format is a contract:

    <label> <filename>[ [Paused]]

When the viewer exits the session pauses, since nothing can be delivered to
it anymore.
"""

import logging
import os
import re
import subprocess
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TYPE_CHECKING

from .config import FEH_POLL_INTERVAL, FEH_TITLE_LABEL, SUBPROCESS_TIMEOUT
from .exceptions.triage_errors import EntryNotFound, ViewerProcessLost

if TYPE_CHECKING:
    from .session import Slideshow

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r'^(?P<label>\S+) (?P<filename>.+?)(?P<paused> \[Paused\])?$')

# xdotool key names understood by feh
KEY_NEXT = 'Right'
KEY_PREVIOUS = 'Left'
KEY_PAUSE = 'h'


@dataclass
class ViewerState:
    filename: str
    paused: bool


@dataclass
class FehOptions:
    scale: str = 'fit'  # 'fit', 'fill' or 'none'
    delay: float | None = None
    loop: bool = False
    reverse: bool = False
    paused: bool = False


def parse_title(title: str, label: str = FEH_TITLE_LABEL) -> ViewerState:
    """
    Recover the current file and pause flag from a viewer window title.

    Raises:
        ValueError: If the title does not follow the "<label> <filename>[ [Paused]]" format.
    """
    match = TITLE_PATTERN.match(title.strip('\n'))
    if match is None or match.group('label') != label:
        raise ValueError(f"Unexpected viewer title: {title!r}")
    return ViewerState(filename=match.group('filename'), paused=match.group('paused') is not None)


def build_command(file_list: Path, start_at: Path, options: FehOptions, label: str = FEH_TITLE_LABEL) -> list[str]:
    command = [
        'feh',
        '--filelist', str(file_list),
        '--start-at', str(start_at),
        '--title', f'{label} %f',
        '--on-last-slide', 'resume' if options.loop else 'quit',
    ]
    if options.scale == 'fit':
        command += ['--scale-down', '--auto-zoom']
    elif options.scale == 'fill':
        command += ['--zoom', 'fill']
    if options.delay:
        # feh starts a slideshow with a negative delay paused
        delay = -options.delay if options.paused else options.delay
        command += ['--slideshow-delay', f'{delay:g}']
    if options.reverse:
        command.append('--reverse')
    return command


class FehViewer:
    """A running feh process and the xdotool calls that talk to its window."""

    def __init__(self, label: str = FEH_TITLE_LABEL, timeout: float = SUBPROCESS_TIMEOUT):
        self.label = label
        self.timeout = timeout
        self.process: subprocess.Popen | None = None
        self._window_id: str | None = None
        self._exit_handlers: list[Callable[[], None]] = []

    def spawn(self, file_list: Path, start_at: Path, options: FehOptions) -> subprocess.Popen:
        command = build_command(file_list, start_at, options, self.label)
        logger.debug(f"Starting viewer: {' '.join(command)}")
        try:
            self.process = subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
        except FileNotFoundError as e:
            raise ViewerProcessLost("The 'feh' command was not found.") from e
        self._window_id = None
        threading.Thread(target=self._watch, args=(self.process,), daemon=True).start()
        logger.info(f"Viewer started (pid {self.process.pid}) at '{start_at.name}'.")
        return self.process

    def _watch(self, process: subprocess.Popen) -> None:
        returncode = process.wait()
        logger.info(f"Viewer (pid {process.pid}) exited with status {returncode}.")
        if process is not self.process:
            return
        for handler in self._exit_handlers:
            handler()

    def on_exit(self, handler: Callable[[], None]) -> None:
        self._exit_handlers.append(handler)

    def is_alive(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def _xdotool(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ['xdotool', *args], capture_output=True, text=True, check=True, timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise ViewerProcessLost("The 'xdotool' command was not found.") from e
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise ViewerProcessLost(f"xdotool {args[0]} failed: {e}") from e
        return result.stdout.strip()

    def window_id(self) -> str:
        if not self.is_alive():
            raise ViewerProcessLost("The viewer is not running.")
        if self._window_id is None:
            output = self._xdotool('search', '--sync', '--pid', str(self.process.pid))
            if not output:
                raise ViewerProcessLost(f"No window found for viewer pid {self.process.pid}.")
            self._window_id = output.splitlines()[0]
        return self._window_id

    def send_key(self, key: str) -> None:
        self._xdotool('key', '--window', self.window_id(), key)

    def read_state(self) -> ViewerState:
        title = self._xdotool('getwindowname', self.window_id())
        try:
            return parse_title(title, self.label)
        except ValueError as e:
            raise ViewerProcessLost(str(e)) from e

    def terminate(self) -> None:
        """Stop the viewer without running the exit handlers."""
        process, self.process = self.process, None
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Viewer (pid {process.pid}) did not stop, killing it.")
            process.kill()


class FehBackend:
    """Session backend delegating display and timing to a feh process."""

    uses_timer = False

    def __init__(self, viewer: FehViewer | None = None, scale: str = 'fit', reverse: bool = False):
        self.viewer = viewer or FehViewer()
        self.scale = scale
        self.reverse = reverse
        self.file_list: Path | None = None
        self._paused = False
        self._session: 'Slideshow | None' = None
        self.viewer.on_exit(self._viewer_exited)

    def _write_file_list(self, session: 'Slideshow') -> Path:
        if self.file_list is None:
            fd, name = tempfile.mkstemp(prefix='imgtriage-', suffix='.list')
            os.close(fd)
            self.file_list = Path(name)
        self.file_list.write_text(''.join(f"{path}\n" for path in session.index.images()), encoding='utf-8')
        return self.file_list

    def show(self, session: 'Slideshow', path: Path) -> None:
        self._session = session
        self.viewer.terminate()
        options = FehOptions(
            scale=self.scale,
            delay=session.delay,
            loop=session.loop,
            reverse=self.reverse,
            paused=session.paused,
        )
        self._paused = session.paused
        self.viewer.spawn(self._write_file_list(session), path, options)

    def sync(self) -> Path | None:
        """Current file as reported by the viewer, None once it has exited."""
        try:
            state = self.viewer.read_state()
        except ViewerProcessLost:
            if not self.viewer.is_alive():
                return None
            raise
        self._paused = state.paused
        return Path(state.filename)

    def advance(self, session: 'Slideshow', delta: int) -> Path | None:
        key = KEY_NEXT if delta > 0 else KEY_PREVIOUS
        try:
            for _ in range(abs(delta)):
                self.viewer.send_key(key)
        except ViewerProcessLost:
            if not self.viewer.is_alive():
                return None
            raise
        return self.sync()

    def set_paused(self, session: 'Slideshow', paused: bool) -> None:
        if self._paused == paused or not self.viewer.is_alive():
            return
        self.viewer.send_key(KEY_PAUSE)
        self._paused = paused

    def _viewer_exited(self) -> None:
        session = self._session
        if session is None:
            return
        logger.warning(f"{ViewerProcessLost.__name__}: the viewer is gone, pausing the session.")
        session.pause()

    def is_live(self) -> bool:
        return self.viewer.is_alive()

    def close(self) -> None:
        self.viewer.terminate()
        if self.file_list is not None:
            self.file_list.unlink(missing_ok=True)
            self.file_list = None


def follow_viewer(session: 'Slideshow', backend: FehBackend, interval: float = FEH_POLL_INTERVAL) -> None:
    """
    Keep `session` in step with the viewer until the viewer exits.

    feh navigates on its own keys and timer. Its title is read every
    `interval` seconds and the session follows the file it names, tagging
    the images it leaves behind. Images shown for less than `interval` may be
    skipped.
    """
    while backend.viewer.is_alive():
        try:
            path = backend.sync()
        except ViewerProcessLost as e:
            # The window may not be mapped yet
            logger.debug(f"Cannot read the viewer title: {e}")
            path = None
        if path is not None:
            try:
                session.follow(path)
            except EntryNotFound:
                logger.warning(f"The viewer shows '{path}', which is not part of the session.")
        time.sleep(interval)
