"""
Playback session: the transport state machine between the playlist and
the audio device.

Every public method takes the session lock for the whole transition, so
user commands and the periodic tick never interleave halfway through a
stop/load/play sequence. Snapshots are assembled under the same lock
and returned as immutable copies.
"""
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from beatcli.audio import AudioDevice
from beatcli.logging_config import get_logger, DeviceError, NotPausedError, NotPlayingError
from beatcli.playlist import PlaybackMode, Playlist, Track

logger = get_logger('session')

VOLUME_MIN: int = 0
VOLUME_MAX: int = 100
DEFAULT_VOLUME: int = 50


def clamp_volume(volume: int) -> int:
    return max(VOLUME_MIN, min(VOLUME_MAX, int(volume)))


class TransportState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time, read-only view of the session for rendering."""

    current_track: Optional[Track]
    next_track: Optional[Track]
    mode: PlaybackMode
    volume: int
    transport_state: TransportState
    cursor: Optional[int]
    list_with_cursor: Tuple[Tuple[int, Track, bool], ...]
    elapsed: float = 0.0

    @property
    def track_count(self) -> int:
        return len(self.list_with_cursor)


class PlaybackSession:
    """Owns one audio device and one playlist.

    Attributes:
        state: Current transport state
        volume: Stored volume, always within 0-100
    """

    def __init__(
        self,
        device: AudioDevice,
        playlist: Optional[Playlist] = None,
        volume: int = DEFAULT_VOLUME,
    ) -> None:
        self._device = device
        self._playlist = playlist if playlist is not None else Playlist()
        self._state = TransportState.STOPPED
        self._volume = clamp_volume(volume)
        self._lock = threading.RLock()
        # Tracks that failed in a row; reset whenever one plays to the end
        self._failures = 0
        self._device.set_volume(self._volume)

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def volume(self) -> int:
        return self._volume

    @property
    def mode(self) -> PlaybackMode:
        return self._playlist.mode

    @property
    def playlist(self) -> Playlist:
        return self._playlist

    def load_tracks(self, tracks: Iterable[Track]) -> int:
        """Replace the playlist, stopping whatever is loaded first."""
        with self._lock:
            self._stop()
            self._failures = 0
            self._playlist.load(tracks)
            logger.info(f"Playlist replaced with {len(self._playlist)} tracks")
            return len(self._playlist)

    def play(self, number: int) -> Track:
        """Play the track with the given 1-based number.

        Raises:
            OutOfRangeError: If the number is invalid; nothing changes
            DeviceError: If the track cannot be played; state is Stopped
        """
        with self._lock:
            self._playlist.jump(number)
            self._failures = 0
            return self._start_current()

    def pause(self) -> bool:
        """Pause playback. Returns False if already paused.

        A track that ended before the pause reached the device is handled
        like a tick would: the session advances and the next track is
        paused instead.

        Raises:
            NotPlayingError: If the session is stopped, or stops because
                no further track can be played
        """
        with self._lock:
            if self._state is TransportState.STOPPED:
                raise NotPlayingError("Nothing is playing")
            if self._state is TransportState.PAUSED:
                return False
            if not self._device.pause():
                if not self._track_ended():
                    raise DeviceError("Audio player did not accept pause")
                logger.info("Track ended before pause, advancing")
                if self._advance_after_end() is None:
                    raise NotPlayingError("Nothing is playing")
                if not self._device.pause():
                    raise DeviceError("Audio player did not accept pause")
            self._state = TransportState.PAUSED
            logger.info("Playback paused")
            return True

    def resume(self) -> bool:
        """Resume paused playback. Returns False if already playing.

        Raises:
            NotPausedError: If the session is stopped
        """
        with self._lock:
            if self._state is TransportState.STOPPED:
                raise NotPausedError("Playback is not paused")
            if self._state is TransportState.PLAYING:
                return False
            self._device.resume()
            self._state = TransportState.PLAYING
            logger.info("Playback resumed")
            return True

    def next(self) -> Optional[Track]:
        """Advance under the current mode and play. No-op when empty."""
        with self._lock:
            if not len(self._playlist):
                return None
            self._failures = 0
            self._playlist.advance()
            return self._start_current()

    def prev(self) -> Optional[Track]:
        """Step to the previous track and play. No-op when empty."""
        with self._lock:
            if not len(self._playlist):
                return None
            self._failures = 0
            self._playlist.prev()
            return self._start_current()

    def tick(self) -> Optional[Track]:
        """Poll the device and auto-advance when the track has finished.

        Only a playing session is polled. Tracks that fail to load or that
        the player gives up on are skipped under the current mode. After
        one pass over the playlist without a track playing to the end, the
        session stops.

        Returns:
            The newly started track, or None if nothing changed
        """
        with self._lock:
            if self._state is not TransportState.PLAYING:
                return None
            if not self._track_ended():
                return None
            return self._advance_after_end()

    def set_volume(self, volume: int) -> int:
        """Clamp and apply a volume level, returning the stored value."""
        with self._lock:
            self._volume = clamp_volume(volume)
            try:
                self._device.set_volume(self._volume)
            except DeviceError:
                self._stop()
                raise
            logger.debug(f"Volume set to {self._volume}")
            return self._volume

    def set_mode(self, mode: PlaybackMode) -> None:
        """Change the playback mode; it applies from the next advance."""
        with self._lock:
            self._playlist.set_mode(mode)
            logger.info(f"Playback mode set to {mode.label}")

    def snapshot(self) -> Snapshot:
        with self._lock:
            playlist = self._playlist
            cursor = playlist.cursor
            stopped = self._state is TransportState.STOPPED
            return Snapshot(
                current_track=playlist.current(),
                next_track=playlist.get(playlist.next_index()),
                mode=playlist.mode,
                volume=self._volume,
                transport_state=self._state,
                cursor=cursor,
                list_with_cursor=tuple(
                    (index + 1, track, index == cursor)
                    for index, track in enumerate(playlist.entries)
                ),
                elapsed=0.0 if stopped else self._device.elapsed(),
            )

    def close(self) -> None:
        with self._lock:
            self._stop()

    def _track_ended(self) -> bool:
        """Poll the device. A track that failed counts against the skip budget."""
        try:
            if not self._device.is_finished():
                return False
        except DeviceError as e:
            logger.warning(f"Track failed during playback: {e}")
            self._failures += 1
            return True
        self._failures = 0
        return True

    def _advance_after_end(self) -> Optional[Track]:
        logger.debug("Track ended, advancing")
        while self._failures < len(self._playlist):
            self._playlist.advance()
            try:
                return self._start_current()
            except DeviceError as e:
                logger.warning(f"Skipping unplayable track: {e}")
                self._failures += 1

        logger.warning("No playable track in playlist, stopping")
        self._failures = 0
        self._stop()
        return None

    def _start_current(self) -> Optional[Track]:
        track = self._playlist.current()
        if track is None:
            self._stop()
            return None

        self._device.stop()
        try:
            self._device.load(track.path)
            self._device.play()
        except DeviceError:
            self._stop()
            raise
        self._state = TransportState.PLAYING
        logger.info(f"Now playing: {track.display_name}")
        return track

    def _stop(self) -> None:
        self._device.stop()
        self._state = TransportState.STOPPED
