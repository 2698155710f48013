"""
Command parsing and routing for beatcli.

One command per input line, e.g. ``/play 3`` or ``/mode shuffle``.
Keywords are case-insensitive and arguments are space separated.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from beatcli.logging_config import (
    get_logger,
    BeatCliError,
    InvalidArgumentError,
    NotPlayingError,
)
from beatcli.playlist import PlaybackMode, Track
from beatcli.scanner import scan_folder
from beatcli.session import PlaybackSession, TransportState
from beatcli.ui import FlashLevel, StatusView

logger = get_logger('commands')


class CommandKind(Enum):
    HELP = "help"
    QUIT = "quit"
    FOLDER = "folder"
    LIST = "list"
    SEARCH = "search"
    PLAY = "play"
    PAUSE = "pause"
    RESUME = "resume"
    NEXT = "next"
    PREV = "prev"
    MODE = "mode"
    VOLUME = "volume"
    NOW = "now"
    LYRICS = "lyrics"
    LYRICS_MODE = "lmode"


KEYWORDS: Dict[str, CommandKind] = {
    "help": CommandKind.HELP,
    "quit": CommandKind.QUIT,
    "exit": CommandKind.QUIT,
    "q": CommandKind.QUIT,
    "e": CommandKind.QUIT,
    "folder": CommandKind.FOLDER,
    "f": CommandKind.FOLDER,
    "list": CommandKind.LIST,
    "ls": CommandKind.LIST,
    "search": CommandKind.SEARCH,
    "play": CommandKind.PLAY,
    "pause": CommandKind.PAUSE,
    "resume": CommandKind.RESUME,
    "next": CommandKind.NEXT,
    "prev": CommandKind.PREV,
    "back": CommandKind.PREV,
    "mode": CommandKind.MODE,
    "m": CommandKind.MODE,
    "volume": CommandKind.VOLUME,
    "vol": CommandKind.VOLUME,
    "now": CommandKind.NOW,
    "lyrics": CommandKind.LYRICS,
    "lrc": CommandKind.LYRICS,
    "lmode": CommandKind.LYRICS_MODE,
    "lm": CommandKind.LYRICS_MODE,
}


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    argument: Any = None


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise InvalidArgumentError(f"Invalid {what}: {text!r}, expected a whole number")


def parse_command(line: str) -> Command:
    """Parse one line of user input into a Command.

    Raises:
        InvalidArgumentError: For non-commands, unknown keywords and
            malformed arguments
        InvalidModeError: For an unrecognized ``/mode`` literal
    """
    text = line.strip()
    if not text.startswith("/"):
        raise InvalidArgumentError(f"Unknown input: {text!r}, type /help for commands")

    parts = text[1:].split()
    if not parts:
        raise InvalidArgumentError("Empty command, type /help for commands")
    keyword, args = parts[0].lower(), parts[1:]

    kind = KEYWORDS.get(keyword)
    if kind is None:
        raise InvalidArgumentError(f"Unknown command: /{keyword}, type /help for commands")

    if kind is CommandKind.FOLDER:
        # Paths may contain spaces
        path = text[1:].strip()[len(parts[0]):].strip()
        if not path:
            raise InvalidArgumentError("/folder needs a path, e.g. /folder ~/Music")
        return Command(kind, path)

    if kind is CommandKind.SEARCH:
        if not args:
            raise InvalidArgumentError("/search needs a keyword, e.g. /search love")
        return Command(kind, " ".join(args))

    if kind is CommandKind.PLAY:
        return Command(kind, _parse_int(args[0], "track number") if args else 1)

    if kind is CommandKind.MODE:
        if not args:
            raise InvalidArgumentError("/mode needs one of: sequential, repeatone, shuffle")
        return Command(kind, PlaybackMode.parse(args[0]))

    if kind is CommandKind.VOLUME:
        if not args:
            raise InvalidArgumentError("/volume needs a value, e.g. /volume 80")
        return Command(kind, _parse_int(args[0], "volume"))

    return Command(kind)


class CommandRouter:
    """Dispatches parsed commands to the session and reports the outcome.

    This is where every ``BeatCliError`` raised below is caught and shown
    to the user; the session is left as it was before the failed command.
    """

    def __init__(
        self,
        session: PlaybackSession,
        view: StatusView,
        scanner: Callable[[str], List[Track]] = scan_folder,
    ) -> None:
        self.session = session
        self.view = view
        self.scanner = scanner
        self._handlers: Dict[CommandKind, Callable[[Command], None]] = {
            CommandKind.HELP: self._help,
            CommandKind.FOLDER: self._folder,
            CommandKind.LIST: self._list,
            CommandKind.SEARCH: self._search,
            CommandKind.PLAY: self._play,
            CommandKind.PAUSE: self._pause,
            CommandKind.RESUME: self._resume,
            CommandKind.NEXT: self._next,
            CommandKind.PREV: self._prev,
            CommandKind.MODE: self._mode,
            CommandKind.VOLUME: self._volume,
            CommandKind.NOW: self._now,
            CommandKind.LYRICS: self._lyrics,
            CommandKind.LYRICS_MODE: self._lyrics_mode,
        }

    def handle_line(self, line: str) -> bool:
        """Parse and execute one input line.

        Returns:
            False when the user asked to quit, True otherwise
        """
        try:
            command = parse_command(line)
        except BeatCliError as e:
            self._report(e)
            return True
        return self.execute(command)

    def execute(self, command: Command) -> bool:
        if command.kind is CommandKind.QUIT:
            logger.info("Quit requested")
            return False
        try:
            self._handlers[command.kind](command)
        except BeatCliError as e:
            self._report(e)
        return True

    def _report(self, error: BeatCliError) -> None:
        logger.info(f"{type(error).__name__}: {error}")
        self.view.flash(str(error), FlashLevel.ERROR)

    def _help(self, command: Command) -> None:
        self.view.show_help()

    def _folder(self, command: Command) -> None:
        tracks = self.scanner(command.argument)
        count = self.session.load_tracks(tracks)
        self.view.flash(f"Found {count} tracks in {command.argument}", FlashLevel.OK)

    def _list(self, command: Command) -> None:
        self.view.show_list(self.session.snapshot())

    def _search(self, command: Command) -> None:
        results = self.session.playlist.search(command.argument)
        if not results:
            self.view.flash(f"No tracks matching {command.argument!r}", FlashLevel.INFO)
            return
        lines = [f"Results for {command.argument!r}:"]
        lines.extend(f"  {number}. {track.display_name}" for number, track in results)
        lines.append("Use /play <N> to play a track")
        self.view.flash("\n".join(lines), FlashLevel.INFO)

    def _play(self, command: Command) -> None:
        track = self.session.play(command.argument)
        self.view.flash(f"Playing: {track.display_name}", FlashLevel.OK)

    def _pause(self, command: Command) -> None:
        if self.session.pause():
            self.view.flash("Paused", FlashLevel.OK)
        else:
            self.view.flash("Already paused", FlashLevel.INFO)

    def _resume(self, command: Command) -> None:
        if self.session.resume():
            self.view.flash("Resumed", FlashLevel.OK)
        else:
            self.view.flash("Already playing", FlashLevel.INFO)

    def _next(self, command: Command) -> None:
        track = self.session.next()
        if track is None:
            self.view.flash("Playlist is empty", FlashLevel.INFO)
        else:
            self.view.flash(f"Playing: {track.display_name}", FlashLevel.OK)

    def _prev(self, command: Command) -> None:
        track = self.session.prev()
        if track is None:
            self.view.flash("Playlist is empty", FlashLevel.INFO)
        else:
            self.view.flash(f"Playing: {track.display_name}", FlashLevel.OK)

    def _mode(self, command: Command) -> None:
        mode = command.argument
        if self.session.mode is mode:
            self.view.flash(f"Already in {mode.label} mode", FlashLevel.INFO)
            return
        self.session.set_mode(mode)
        self.view.flash(f"Switched to {mode.label} mode", FlashLevel.OK)

    def _volume(self, command: Command) -> None:
        volume = self.session.set_volume(command.argument)
        self.view.flash(f"Volume set to {volume}%", FlashLevel.OK)

    def _now(self, command: Command) -> None:
        self.view.flash(self.view.render_now(self.session.snapshot()), FlashLevel.INFO)

    def _lyrics(self, command: Command) -> None:
        if self.view.toggle_lyrics():
            self.view.flash("Lyrics shown", FlashLevel.OK)
        else:
            self.view.flash("Lyrics hidden", FlashLevel.OK)

    def _lyrics_mode(self, command: Command) -> None:
        if self.session.state is TransportState.STOPPED:
            raise NotPlayingError("Nothing is playing, lyrics mode unchanged")
        if self.view.toggle_clear_screen():
            self.view.flash("Lyrics mode: clear screen", FlashLevel.OK)
        else:
            self.view.flash("Lyrics mode: stream", FlashLevel.OK)
