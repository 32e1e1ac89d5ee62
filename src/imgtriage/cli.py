"""
Command-Line Interface for the image triage application.

This module handles parsing of command-line arguments, sets up logging,
and runs either the interactive slideshow (Tkinter or feh backed) or one of
the non-interactive bulk passes.
"""

import argparse
import tkinter as tk
import logging
import coloredlogs
import sys
import importlib.metadata
from pathlib import Path

from .app import ImageTriageApp
from . import config
from .exceptions.triage_errors import TriageError
from .feh import FehBackend, follow_viewer
from .listing import EntryIndex
from .presets import Preset, load_settings, save_settings
from .registry import ActiveSessionRegistry
from .session import Slideshow
from .sorting import SortDestinationMap, delete_flagged, sort_session
from .tags import TagStore, save_marks, validate_tag

# Setup a dedicated logger for this application
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Step through a folder of images, tag them, and sort them into directories.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {importlib.metadata.version('imgtriage')}",
        help="Show the version number and exit."
    )
    parser.add_argument(
        "image_folder",
        type=str,
        help="The folder containing images to triage."
    )
    parser.add_argument(
        "-d", "--delay",
        type=float,
        default=None,
        help="Auto-advance delay in seconds. Default: manual navigation."
    )
    parser.add_argument(
        "--step",
        type=int,
        default=None,
        help=f"Number of images to move on each advance. Default: {config.DEFAULT_STEP}"
    )
    parser.add_argument(
        "--loop",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Wrap around at either end of the folder."
    )
    parser.add_argument(
        "--paused",
        action="store_true",
        default=None,
        help="Start with auto-advance paused."
    )
    parser.add_argument(
        "--mark",
        type=str,
        default=None,
        metavar='CHAR',
        help="Tag each image with CHAR when leaving it (existing tags are kept)."
    )
    parser.add_argument(
        "--start-at",
        type=str,
        default=None,
        metavar='FILE',
        help="Start the slideshow at FILE instead of the first image."
    )
    parser.add_argument(
        "--preset",
        type=str,
        default=config.DEFAULT_PRESET,
        help=f"Named preset supplying the defaults above. Default: {config.DEFAULT_PRESET}"
    )
    parser.add_argument(
        "--save-preset",
        type=str,
        default=None,
        metavar='NAME',
        help="Store the effective session options as preset NAME and continue."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=config.DEFAULT_CONFIG_PATH,
        help=f"Configuration file. Default: {config.DEFAULT_CONFIG_PATH}"
    )
    parser.add_argument(
        "--feh",
        action="store_true",
        help="Show images in an external feh window instead of the built-in viewer."
    )
    parser.add_argument(
        "--sort",
        action="store_true",
        help="Do not open a viewer: move the stored tagged files to their destinations and exit."
    )
    parser.add_argument(
        "--delete-flagged",
        action="store_true",
        help=f"Do not open a viewer: delete the files flagged with '{config.DELETE_MARK}' and exit."
    )
    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default=config.DEFAULT_LOG_LEVEL,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help=f"Set the logging level. Default: {config.DEFAULT_LOG_LEVEL}"
    )
    return parser


def setup_logging(level: str) -> None:
    log_level_upper = level.upper()
    # Configure root logger
    logging.basicConfig(level=getattr(logging, log_level_upper, logging.INFO))
    # Install coloredlogs for the package loggers
    coloredlogs.install(
        level=log_level_upper,
        logger=logging.getLogger('imgtriage'),
        fmt='%(asctime)s %(levelname)-8s %(name)s: %(message)s'
    )
    logging.getLogger().setLevel(getattr(logging, log_level_upper, logging.INFO))


def effective_preset(args: argparse.Namespace, base: Preset) -> Preset:
    """Combine a stored preset with the flags given on the command line."""
    preset = Preset(step=base.step, loop=base.loop, paused=base.paused, delay=base.delay, mark=base.mark)
    if args.step is not None:
        preset.step = args.step
    if args.loop is not None:
        preset.loop = args.loop
    if args.paused is not None:
        preset.paused = args.paused
    if args.delay is not None:
        preset.delay = args.delay if args.delay > 0 else None
    if args.mark is not None:
        preset.mark = validate_tag(args.mark)
    return preset


def run_bulk_passes(args: argparse.Namespace, destinations: SortDestinationMap) -> int:
    """Run the requested non-interactive passes on the stored marks. Returns the exit status."""
    index = EntryIndex.build(args.image_folder)
    store = TagStore(index)
    status = 0
    if args.sort:
        report = sort_session(store, destinations)
        logger.info(f"Sort: {report.summary()}")
        status |= 0 if report.ok else 2
    if args.delete_flagged:
        report = delete_flagged(store)
        logger.info(f"Delete: {report.summary()}")
        status |= 0 if report.ok else 2
    save_marks(index.source, store)
    return status


def run_feh(args: argparse.Namespace, preset: Preset, registry: ActiveSessionRegistry) -> None:
    index = EntryIndex.build(args.image_folder)
    backend = FehBackend()
    session = Slideshow(
        index,
        backend,
        step=preset.step,
        loop=preset.loop,
        paused=preset.paused,
        tag_on_advance=preset.mark,
        delay=preset.delay,
        start_at=Path(args.start_at).expanduser().resolve() if args.start_at else None,
        registry=registry,
    )
    session.begin()
    try:
        # feh handles navigation itself; the session follows it as long as its window lives
        follow_viewer(session, backend)
    finally:
        session.deactivate()
        save_marks(index.source, session.tags)


def main():
    """
    The main entry point for the application.

    Parses command-line arguments, sets up logging, and runs the requested
    mode. Session-fatal errors are logged and end the process with status 1.
    """
    args = build_parser().parse_args()
    setup_logging(args.log_level)

    try:
        settings = load_settings(args.config)
        preset = effective_preset(args, settings.preset(args.preset))
        if args.save_preset:
            settings.presets[args.save_preset] = preset
            save_settings(settings, args.config)
        destinations = SortDestinationMap(settings.destinations)
        registry = ActiveSessionRegistry()

        if args.sort or args.delete_flagged:
            sys.exit(run_bulk_passes(args, destinations))

        if args.feh:
            if preset.mark:
                logger.warning(
                    f"With --feh, images shown for less than {config.FEH_POLL_INTERVAL:g}s "
                    f"may be skipped when tagging with '{preset.mark}'."
                )
            run_feh(args, preset, registry)
            return

        root = tk.Tk()
        # Hide the main window until the first image is ready
        root.withdraw()
        app = ImageTriageApp(
            window=root,
            image_folder=args.image_folder,
            preset=preset,
            destinations=destinations,
            registry=registry,
            start_at=Path(args.start_at).expanduser().resolve() if args.start_at else None,
        )
        root.deiconify()
        app.setup()
        app.run()

    except (TriageError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.critical(f"An unexpected error occurred: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
