"""
Entry point and main loop for beatcli.

A single thread services both event sources: input lines from stdin and
the periodic tick that polls the device for track completion. ``select``
waits on stdin for at most one tick interval, so neither source can
starve the other and no command ever runs in the middle of a tick.
"""
import select
import signal
import sys
from functools import partial
from pathlib import Path
from typing import Any, List, Optional, TextIO

from beatcli import __version__, __description__
from beatcli.audio import open_audio_device
from beatcli.commands import Command, CommandKind, CommandRouter
from beatcli.config import load_config
from beatcli.logging_config import setup_logging, get_logger, BeatCliError, DeviceError
from beatcli.playlist import Playlist
from beatcli.scanner import scan_folder
from beatcli.session import PlaybackSession
from beatcli.ui import StatusView

logger = get_logger('app')

USAGE = """\
Usage:
  beatcli [FOLDER]          Start the player, optionally scanning FOLDER
  beatcli --config PATH     Use an alternative config file
  beatcli --debug           Log debug output to stderr
  beatcli --version         Show version info
  beatcli --help            Show this help
"""


def run(
    session: PlaybackSession,
    router: CommandRouter,
    view: StatusView,
    stdin: TextIO = sys.stdin,
    tick_interval: float = 0.2,
) -> int:
    """Service input and ticks until /quit or end of input.

    Returns:
        Process exit status
    """
    view.refresh(session.snapshot(), force=True)
    while True:
        session.tick()
        view.refresh(session.snapshot())

        ready, _, _ = select.select([stdin], [], [], tick_interval)
        if not ready:
            continue

        line = stdin.readline()
        if not line:
            logger.info("End of input")
            return 0
        if not line.strip():
            view.refresh(session.snapshot(), force=True)
            continue
        if not router.handle_line(line):
            return 0


def _exit_now(signum: Optional[int] = None, frame: Any = None) -> None:
    """Turn termination signals into a normal exit so cleanup runs."""
    raise SystemExit(0)


def _parse_args(argv: List[str]) -> dict:
    options = {"folder": None, "config": None, "debug": False}
    args = iter(argv)
    for arg in args:
        if arg == "--debug":
            options["debug"] = True
        elif arg == "--config":
            options["config"] = next(args, None)
            if options["config"] is None:
                raise SystemExit("--config needs a path")
        elif arg.startswith("-"):
            raise SystemExit(f"Unknown option: {arg}\n\n{USAGE}")
        else:
            options["folder"] = arg
    return options


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the music player."""
    argv = sys.argv[1:] if argv is None else argv

    if "--version" in argv or "-v" in argv:
        print(f"beatcli {__version__}")
        print(__description__)
        return 0
    if "--help" in argv or "-h" in argv:
        print(f"beatcli {__version__}\n")
        print(USAGE)
        return 0

    options = _parse_args(argv)
    try:
        manager = load_config(Path(options["config"]) if options["config"] else None)
    except BeatCliError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    config = manager.config
    setup_logging("DEBUG" if options["debug"] else config.log_level, config.log_file)

    for signum in (signal.SIGTERM, signal.SIGHUP):
        signal.signal(signum, _exit_now)

    try:
        with open_audio_device(config.audio_player) as device:
            session = PlaybackSession(
                device,
                Playlist(mode=manager.get_default_mode()),
                volume=config.default_volume,
            )
            view = StatusView(
                use_colors=config.use_colors and sys.stdout.isatty(),
                clear_screen=config.clear_screen and sys.stdout.isatty(),
                show_lyrics=config.show_lyrics,
            )
            router = CommandRouter(
                session, view, scanner=partial(scan_folder, read_tags=config.read_tags)
            )

            folder = options["folder"]
            if folder is None and config.scan_on_start and manager.get_music_directory_path().is_dir():
                folder = str(manager.get_music_directory_path())
            if folder is not None:
                router.execute(Command(CommandKind.FOLDER, folder))
            else:
                view.show_help()

            try:
                return run(session, router, view, tick_interval=config.tick_interval)
            except KeyboardInterrupt:
                return 0
            finally:
                session.close()
                print("\nBye!")
    except DeviceError as e:
        logger.error(f"Audio backend unavailable: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
