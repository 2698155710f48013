"""
Playlist storage and order-aware navigation for beatcli.
"""
import os
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from beatcli.logging_config import get_logger, InvalidModeError, OutOfRangeError

logger = get_logger('playlist')

# Seeded once per process; playlists share it unless given their own.
_shuffle_rng = random.Random()


class PlaybackMode(Enum):
    """Order in which the playlist advances."""

    SEQUENTIAL = "sequential"
    REPEAT_ONE = "repeatone"
    SHUFFLE = "shuffle"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]

    @classmethod
    def parse(cls, literal: str) -> "PlaybackMode":
        """Parse a user supplied mode name.

        Accepts the full names and the short forms ``seq``, ``one`` and
        ``shu``, case-insensitively.

        Raises:
            InvalidModeError: If the literal names no mode
        """
        key = (literal or "").strip().lower().replace("_", "").replace("-", "")
        mode = _MODE_ALIASES.get(key)
        if mode is None:
            raise InvalidModeError(
                f"Unknown playback mode: {literal!r} "
                "(expected sequential, repeatone or shuffle)"
            )
        return mode


_MODE_ALIASES = {
    "sequential": PlaybackMode.SEQUENTIAL,
    "seq": PlaybackMode.SEQUENTIAL,
    "repeatone": PlaybackMode.REPEAT_ONE,
    "one": PlaybackMode.REPEAT_ONE,
    "shuffle": PlaybackMode.SHUFFLE,
    "shu": PlaybackMode.SHUFFLE,
}

_MODE_LABELS = {
    PlaybackMode.SEQUENTIAL: "Sequential",
    PlaybackMode.REPEAT_ONE: "RepeatOne",
    PlaybackMode.SHUFFLE: "Shuffle",
}


@dataclass(frozen=True)
class Track:
    """One audio file entry in the playlist."""

    path: str
    display_name: str

    @property
    def file_name(self) -> str:
        return os.path.basename(self.path)


class Playlist:
    """Ordered track list with a cursor and a playback mode.

    The cursor is ``None`` exactly when the playlist is empty, otherwise
    it is a valid index into the entries.
    """

    def __init__(
        self,
        tracks: Iterable[Track] = (),
        mode: PlaybackMode = PlaybackMode.SEQUENTIAL,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._entries: List[Track] = []
        self._cursor: Optional[int] = None
        self._mode = mode
        self._rng = rng or _shuffle_rng
        # Shuffle pick for the current cursor, drawn on first request so
        # the "next" shown to the user is the one that actually plays.
        self._shuffle_pick: Optional[int] = None
        self.load(tracks)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[Track, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    @property
    def mode(self) -> PlaybackMode:
        return self._mode

    def load(self, tracks: Iterable[Track]) -> None:
        """Replace all entries, resetting the cursor to the first track."""
        self._entries = list(tracks)
        self._move_cursor(0 if self._entries else None)
        logger.debug(f"Playlist loaded with {len(self._entries)} tracks")

    def current(self) -> Optional[Track]:
        if self._cursor is None:
            return None
        return self._entries[self._cursor]

    def get(self, index: Optional[int]) -> Optional[Track]:
        if index is None or not 0 <= index < len(self._entries):
            return None
        return self._entries[index]

    def jump(self, number: int) -> Track:
        """Move the cursor to a 1-based track number.

        Raises:
            OutOfRangeError: If the number is not in ``1..len``
        """
        if not self._entries:
            raise OutOfRangeError("Playlist is empty, use /folder <path> to add tracks")
        if number < 1 or number > len(self._entries):
            raise OutOfRangeError(
                f"Track number {number} is out of range (1-{len(self._entries)})"
            )
        self._move_cursor(number - 1)
        return self._entries[self._cursor]

    def next_index(self, mode: Optional[PlaybackMode] = None) -> Optional[int]:
        """Index that follows the cursor under ``mode``.

        Sequential wraps from the last track to the first, RepeatOne stays
        put and Shuffle picks uniformly among the other tracks. Repeated
        calls return the same shuffle pick until the cursor moves.
        """
        if not self._entries:
            return None
        mode = mode or self._mode
        if mode is PlaybackMode.SEQUENTIAL:
            return (self._cursor + 1) % len(self._entries)
        if mode is PlaybackMode.REPEAT_ONE:
            return self._cursor
        if self._shuffle_pick is None:
            self._shuffle_pick = self._draw_shuffle()
        return self._shuffle_pick

    def advance(self, mode: Optional[PlaybackMode] = None) -> Optional[Track]:
        if not self._entries:
            return None
        target = self.next_index(mode)
        self._move_cursor(target, keep_pick=target == self._cursor)
        return self.current()

    def prev(self) -> Optional[Track]:
        """Step to the physical predecessor, wrapping to the last track.

        This ignores the mode; shuffle history is not replayed.
        """
        if not self._entries:
            return None
        self._move_cursor((self._cursor - 1) % len(self._entries))
        return self.current()

    def set_mode(self, mode: PlaybackMode) -> None:
        self._mode = mode
        self._shuffle_pick = None

    def search(self, query: str) -> List[Tuple[int, Track]]:
        """Case-insensitive substring search returning 1-based numbers."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            (index + 1, track)
            for index, track in enumerate(self._entries)
            if needle in track.display_name.lower() or needle in track.file_name.lower()
        ]

    def _draw_shuffle(self) -> int:
        count = len(self._entries)
        if count == 1:
            return self._cursor
        pick = self._rng.randrange(count - 1)
        # Skip over the cursor so every other index is equally likely.
        return pick + 1 if pick >= self._cursor else pick

    def _move_cursor(self, index: Optional[int], keep_pick: bool = False) -> None:
        self._cursor = index
        if not keep_pick:
            self._shuffle_pick = None
