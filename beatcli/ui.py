"""
Terminal status view for beatcli.

The view never touches the session directly: it renders whatever
``Snapshot`` it is handed, plus any pending flash message and the lyrics
window for the current track.
"""
import re
import sys
import unicodedata
from enum import Enum
from functools import lru_cache
from typing import List, Optional, TextIO, Tuple

from beatcli.logging_config import get_logger
from beatcli.lyrics import Lyrics
from beatcli.session import Snapshot, TransportState

logger = get_logger('ui')

COLOR_MAP = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "gray": "\033[90m",
    "bold": "\033[1m",
    "reverse": "\033[7m",
    "reset": "\033[0m",
}

BANNER_WIDTH: int = 50
CLEAR_SCREEN: str = "\033[2J\033[H"
PROMPT: str = ">>: "


class FlashLevel(Enum):
    INFO = "Info"
    OK = "OK"
    ERROR = "Error"


_FLASH_COLORS = {
    FlashLevel.INFO: "blue",
    FlashLevel.OK: "green",
    FlashLevel.ERROR: "red",
}

_STATE_ICONS = {
    TransportState.PLAYING: "▶",
    TransportState.PAUSED: "⏸",
    TransportState.STOPPED: "■",
}

HELP_SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    (
        "Library",
        [
            ("/folder <path>", "Scan a folder for audio files"),
            ("/list", "Show the playlist"),
            ("/search <text>", "Find tracks by name"),
        ],
    ),
    (
        "Playback",
        [
            ("/play [N]", "Play track N (default 1)"),
            ("/pause", "Pause"),
            ("/resume", "Resume"),
            ("/next", "Next track"),
            ("/prev", "Previous track"),
            ("/mode <m>", "Sequential, RepeatOne or Shuffle"),
            ("/volume <0..100>", "Set volume"),
        ],
    ),
    (
        "Other",
        [
            ("/now", "Show what is playing"),
            ("/lyrics", "Toggle lyrics display"),
            ("/lmode", "Switch lyrics between redraw and stream"),
            ("/help", "Show this help"),
            ("/quit", "Quit"),
        ],
    ),
]


def _strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text for accurate length calculation."""
    return re.sub(r"\x1b\[[0-?]*[ -/]*[@-~]", "", text)


@lru_cache(maxsize=4096)
def _char_display_width(ch: str) -> int:
    """Return display width of a single Unicode character (0, 1 or 2)."""
    if not ch:
        return 0
    cat = unicodedata.category(ch)
    if cat in ("Mn", "Me", "Cf"):
        return 0
    ea = unicodedata.east_asian_width(ch)
    if ea in ("F", "W"):
        return 2
    return 1


def _display_width(text: str) -> int:
    """Return the visible terminal width of `text`, ignoring ANSI escapes."""
    return sum(_char_display_width(ch) for ch in _strip_ansi(text))


def _truncate_to_width(text: str, max_width: int, ellipsis: str = "...") -> str:
    """Truncate `text` (plain text) to fit in `max_width` display columns."""
    if max_width <= 0:
        return ""
    if _display_width(text) <= max_width:
        return text

    e_width = _display_width(ellipsis)
    target = max_width if e_width >= max_width else max_width - e_width

    out = []
    cur = 0
    for ch in text:
        w = _char_display_width(ch)
        if cur + w > target:
            break
        out.append(ch)
        cur += w

    if e_width >= max_width:
        return "".join(out)
    return "".join(out) + ellipsis


def _format_duration(seconds: float) -> str:
    """Format duration in MM:SS format."""
    mins = int(seconds) // 60
    secs = int(seconds) % 60
    return f"{mins:02d}:{secs:02d}"


class StatusView:
    """Renders session snapshots and user-facing messages to a stream."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        use_colors: bool = True,
        clear_screen: bool = True,
        show_lyrics: bool = True,
        width: int = 72,
    ) -> None:
        self.stream = stream or sys.stdout
        self.use_colors = use_colors
        self.clear_screen = clear_screen
        self.show_lyrics = show_lyrics
        self.width = width
        self.flash_message: Optional[Tuple[str, FlashLevel]] = None
        self.lyrics: Optional[Lyrics] = None
        self._lyrics_path: Optional[str] = None
        self._last_key: Optional[tuple] = None

    def _c(self, color: str, text: str) -> str:
        if not self.use_colors:
            return text
        return f"{COLOR_MAP[color]}{text}{COLOR_MAP['reset']}"

    def flash(self, message: str, level: FlashLevel = FlashLevel.INFO) -> None:
        """Queue a message shown once on the next redraw."""
        self.flash_message = (message, level)

    def show_help(self) -> None:
        self.flash(self.help_text(), FlashLevel.INFO)

    def show_list(self, snapshot: Snapshot) -> None:
        self.flash(self.render_list(snapshot), FlashLevel.INFO)

    def toggle_lyrics(self) -> bool:
        self.show_lyrics = not self.show_lyrics
        return self.show_lyrics

    def toggle_clear_screen(self) -> bool:
        """Switch between redrawing the screen and streaming updates below."""
        self.clear_screen = not self.clear_screen
        return self.clear_screen

    def help_text(self) -> str:
        lines = [self._c("bold", "Commands")]
        key_width = max(len(key) for _, items in HELP_SECTIONS for key, _ in items)
        for section, items in HELP_SECTIONS:
            lines.append(f"  {self._c('gray', section)}")
            for key, description in items:
                lines.append(f"    {self._c('bold', f'{key:<{key_width}}')}  {description}")
        return "\n".join(lines)

    def render_list(self, snapshot: Snapshot) -> str:
        if not snapshot.list_with_cursor:
            return "(empty playlist)\nUse /folder <path> to choose a music folder"

        digits = len(str(snapshot.track_count))
        lines = [f"Playlist ({snapshot.track_count} tracks):"]
        for number, track, is_current in snapshot.list_with_cursor:
            marker = ">" if is_current else " "
            name = _truncate_to_width(track.display_name, self.width - digits - 6)
            if is_current:
                name = self._c("reverse", name)
            lines.append(f"  {marker}{number:>{digits}}. {name}")
        return "\n".join(lines)

    def render_now(self, snapshot: Snapshot) -> str:
        if snapshot.current_track is None:
            return "Nothing selected"
        state = snapshot.transport_state
        lines = [
            f"{_STATE_ICONS[state]} {state.value.capitalize()}: "
            f"{snapshot.current_track.display_name} "
            f"({snapshot.cursor + 1}/{snapshot.track_count})",
            f"Elapsed: {_format_duration(snapshot.elapsed)}",
            f"Up next: {snapshot.next_track.display_name if snapshot.next_track else '(none)'}",
            f"Mode: {snapshot.mode.label}    Volume: {snapshot.volume}%",
        ]
        return "\n".join(lines)

    def render(self, snapshot: Snapshot) -> str:
        """Build the full status screen for a snapshot."""
        rule = "=" * BANNER_WIDTH
        out = [rule, self._c("bold", "BeatCLI - Console Music Player".center(BANNER_WIDTH)), rule]

        if snapshot.current_track is not None:
            state = snapshot.transport_state
            now_name = _truncate_to_width(snapshot.current_track.display_name, self.width - 16)
            next_name = (
                _truncate_to_width(snapshot.next_track.display_name, self.width - 16)
                if snapshot.next_track else "(none)"
            )
            status = f"{_STATE_ICONS[state]} {state.value.capitalize()}"
            if state is not TransportState.STOPPED:
                status += f"  {_format_duration(snapshot.elapsed)}"
            out.append(f"Now playing: {self._c('bold', now_name)}")
            out.append(f"Up next:     {next_name}")
            out.append("")
            out.append(
                f"{status}    Mode: {snapshot.mode.label}    "
                f"Volume: {snapshot.volume}%    Playlist: {snapshot.track_count} tracks"
            )
            out.append(rule)
            out.extend(self._render_lyrics(snapshot))
        else:
            out.append("Type /help for commands, /folder <path> to pick a music folder")

        if self.flash_message:
            message, level = self.flash_message
            out.append("")
            out.append(f"{self._c(_FLASH_COLORS[level], f'[{level.value}]')} {message}")

        return "\n".join(out) + "\n\n" + PROMPT

    def _render_lyrics(self, snapshot: Snapshot) -> List[str]:
        if not self.show_lyrics or not self.lyrics:
            return []
        lines = [""]
        for text, is_current in self.lyrics.window(int(snapshot.elapsed * 1000)):
            lines.append(self._c("green", f"> {text}") if is_current else f"  {text}")
        return lines

    def _sync_lyrics(self, snapshot: Snapshot) -> None:
        path = snapshot.current_track.path if snapshot.current_track else None
        if path != self._lyrics_path:
            self._lyrics_path = path
            self.lyrics = Lyrics.load_for(path) if path else None

    def _redraw_key(self, snapshot: Snapshot) -> tuple:
        lyric_line = None
        if self.show_lyrics and self.lyrics and snapshot.transport_state is TransportState.PLAYING:
            lyric_line = self.lyrics.current_line_index(int(snapshot.elapsed * 1000))
        return (
            snapshot.current_track,
            snapshot.next_track,
            snapshot.mode,
            snapshot.volume,
            snapshot.transport_state,
            snapshot.track_count,
            self.show_lyrics,
            lyric_line,
        )

    def refresh(self, snapshot: Snapshot, force: bool = False) -> bool:
        """Redraw if the snapshot changed or a message is pending.

        Returns:
            True if the screen was redrawn
        """
        self._sync_lyrics(snapshot)
        key = self._redraw_key(snapshot)
        if not force and self.flash_message is None and key == self._last_key:
            return False

        screen = self.render(snapshot)
        if self.clear_screen:
            screen = CLEAR_SCREEN + screen
        self.stream.write(screen)
        self.stream.flush()
        self.flash_message = None
        self._last_key = key
        return True
