"""
Audio output backends for beatcli.

The session only talks to the ``AudioDevice`` interface. The concrete
devices drive an external player process (mpg123 or ffplay) the same
way: one process per loaded track, running in its own process group so
it can be paused with SIGSTOP and torn down with SIGTERM/SIGKILL.
"""
import os
import shutil
import signal
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from beatcli.logging_config import get_logger, DeviceError

logger = get_logger('audio')

SUPPORTED_PLAYERS: List[str] = ["mpg123", "ffplay"]

# mpg123 decodes MPEG audio at 44.1kHz in 1152-sample frames.
MPG123_FRAMES_PER_SECOND: float = 44100 / 1152

# External command cache
_command_cache: Dict[str, Optional[str]] = {}


def _find_command(cmd: str) -> Optional[str]:
    """Find an external command in PATH with caching."""
    if cmd in _command_cache:
        return _command_cache[cmd]
    result = shutil.which(cmd)
    _command_cache[cmd] = result
    return result


class AudioDevice:
    """Base class for audio devices.

    A device holds at most one loaded track. ``load`` replaces whatever
    was loaded before, ``play`` starts it from the beginning and
    ``is_finished`` is a non-blocking poll for natural completion.
    """

    def load(self, path: str) -> None:
        """Load an audio file, replacing any loaded track."""
        raise NotImplementedError("Subclasses must implement load()")

    def play(self) -> None:
        """Start playback of the loaded track."""
        raise NotImplementedError("Subclasses must implement play()")

    def pause(self) -> bool:
        """Pause audio playback.

        Returns False if the track had already ended and nothing was paused.
        """
        raise NotImplementedError("Subclasses must implement pause()")

    def resume(self) -> None:
        """Resume audio playback."""
        raise NotImplementedError("Subclasses must implement resume()")

    def stop(self) -> None:
        """Stop playback and unload the track. Safe to call at any time."""
        raise NotImplementedError("Subclasses must implement stop()")

    def set_volume(self, volume: int) -> None:
        """Set volume level (0-100)."""
        raise NotImplementedError("Subclasses must implement set_volume()")

    def is_finished(self) -> bool:
        """Return True once the loaded track has played to the end.

        Raises:
            DeviceError: If playback ended because the track could not be
                decoded
        """
        raise NotImplementedError("Subclasses must implement is_finished()")

    def elapsed(self) -> float:
        """Seconds of the loaded track played so far, pauses excluded."""
        return 0.0


class SubprocessDevice(AudioDevice):
    """Audio device backed by an external player process.

    Attributes:
        extensions: File suffixes the player can decode, None for any
    """

    extensions: Optional[Set[str]] = None

    def __init__(self, executable: str, volume: int = 100):
        self.executable = executable
        self.volume = max(0, min(100, volume))
        self.process: Optional[subprocess.Popen] = None
        self.current_file: Optional[str] = None
        self.paused = False
        self._started_at: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._paused_total = 0.0
        self._start_offset = 0.0

    def build_command(self, file_path: str, start_pos: float) -> List[str]:
        raise NotImplementedError("Subclasses must implement build_command()")

    def can_play(self, path: str) -> bool:
        return self.extensions is None or Path(path).suffix.lower() in self.extensions

    def load(self, path: str) -> None:
        self.stop()
        file_path = Path(path)
        if not file_path.is_file():
            raise DeviceError(f"File not found: {file_path.name}")
        if not os.access(file_path, os.R_OK):
            raise DeviceError(f"File is not readable: {file_path.name}")
        if not self.can_play(path):
            raise DeviceError(f"{Path(self.executable).name} cannot decode {file_path.name}")
        self.current_file = str(file_path)
        logger.debug(f"Loaded {self.current_file}")

    def play(self) -> None:
        if not self.current_file:
            raise DeviceError("No track loaded")
        self._spawn(0.0)

    def _spawn(self, start_pos: float) -> None:
        cmd = self.build_command(self.current_file, start_pos)
        try:
            self.process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                preexec_fn=os.setsid
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start {self.executable}: {e}")
            self.process = None
            raise DeviceError(f"Failed to start audio player: {e}")

        self.paused = False
        self._started_at = time.monotonic()
        self._paused_at = None
        self._paused_total = 0.0
        self._start_offset = start_pos
        logger.info(f"Started playback: {self.current_file}")

    def pause(self) -> bool:
        if not self._signal(signal.SIGSTOP):
            return False
        self.paused = True
        self._paused_at = time.monotonic()
        return True

    def resume(self) -> None:
        if self._signal(signal.SIGCONT):
            self.paused = False
            if self._paused_at is not None:
                self._paused_total += time.monotonic() - self._paused_at
                self._paused_at = None

    def _signal(self, signum: int) -> bool:
        if not self.process or self.process.poll() is not None:
            return False
        try:
            os.killpg(os.getpgid(self.process.pid), signum)
            return True
        except (ProcessLookupError, PermissionError) as e:
            logger.warning(f"Could not signal audio process: {e}")
            return False

    def stop(self) -> None:
        self._terminate()
        self.current_file = None

    def _terminate(self) -> None:
        if self.process and self.process.poll() is None:
            try:
                pgid = os.getpgid(self.process.pid)
                os.killpg(pgid, signal.SIGTERM)
                if self.paused:
                    # A stopped process only acts on SIGTERM once continued
                    os.killpg(pgid, signal.SIGCONT)
                logger.info(f"Stopping audio process: {self.process.pid}")
                self.process.wait(timeout=1.0)
            except (ProcessLookupError, PermissionError) as e:
                logger.warning(f"Process termination error: {e}")
            except subprocess.TimeoutExpired:
                try:
                    os.killpg(os.getpgid(self.process.pid), signal.SIGKILL)
                    logger.warning(f"Force killed audio process: {self.process.pid}")
                    self.process.wait(timeout=0.5)
                except (ProcessLookupError, PermissionError, subprocess.TimeoutExpired) as e:
                    logger.warning(f"Force kill failed: {e}")
        self.process = None
        self.paused = False
        self._started_at = None
        self._paused_at = None
        self._paused_total = 0.0
        self._start_offset = 0.0

    def set_volume(self, volume: int) -> None:
        """Set volume level (0-100).

        The player processes take their volume on the command line, so a
        live process is restarted at its current position.
        """
        volume = max(0, min(100, volume))
        if volume == self.volume:
            return
        self.volume = volume
        if not self.process or self.process.poll() is not None:
            return

        position = self.elapsed()
        was_paused = self.paused
        self._terminate()
        self._spawn(position)
        if was_paused:
            self.pause()
        logger.info(f"Volume set to {volume}%")

    def is_finished(self) -> bool:
        if self.process is None:
            return False
        returncode = self.process.poll()
        if returncode is None:
            return False
        if returncode != 0:
            raise DeviceError(
                f"{Path(self.executable).name} exited with status {returncode} "
                f"playing {Path(self.current_file or '').name}"
            )
        return True

    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        until = self._paused_at if self._paused_at is not None else time.monotonic()
        return self._start_offset + until - self._started_at - self._paused_total


class MPG123Device(SubprocessDevice):
    """mpg123 audio device, MPEG audio only."""

    extensions = {".mp3"}

    def __init__(self, volume: int = 100):
        super().__init__(_find_command("mpg123") or "mpg123", volume)

    def build_command(self, file_path: str, start_pos: float) -> List[str]:
        # -f is a linear output scale where 32768 is unity gain
        cmd = [self.executable, "-q", "--no-control", "-f", str(int(self.volume * 327.68))]
        if start_pos > 0:
            frame_skip = int(start_pos * MPG123_FRAMES_PER_SECOND)
            cmd.extend(["-k", str(max(1, frame_skip))])
        cmd.append(file_path)
        return cmd


class FFPlayDevice(SubprocessDevice):
    """ffplay audio device, decodes every scanned format."""

    def __init__(self, volume: int = 100):
        super().__init__(_find_command("ffplay") or "ffplay", volume)

    def build_command(self, file_path: str, start_pos: float) -> List[str]:
        cmd = [
            self.executable, "-nodisp", "-autoexit",
            "-loglevel", "quiet",
            "-volume", str(self.volume),
        ]
        if start_pos > 0:
            cmd.extend(["-ss", f"{start_pos:.2f}"])
        cmd.append(file_path)
        return cmd


class RoutingDevice(AudioDevice):
    """Hands each track to the first backend that can decode it.

    With mpg123 and ffplay both installed, MP3 files go to mpg123 and
    every other format to ffplay. Only one backend holds a track at a time.
    """

    def __init__(self, devices: List[SubprocessDevice]):
        self.devices = devices
        self.active: Optional[SubprocessDevice] = None

    def load(self, path: str) -> None:
        self.stop()
        for device in self.devices:
            if device.can_play(path):
                device.load(path)
                self.active = device
                return
        raise DeviceError(f"No installed player can decode {Path(path).name}")

    def play(self) -> None:
        if self.active is None:
            raise DeviceError("No track loaded")
        self.active.play()

    def pause(self) -> bool:
        return self.active is not None and self.active.pause()

    def resume(self) -> None:
        if self.active is not None:
            self.active.resume()

    def stop(self) -> None:
        for device in self.devices:
            device.stop()
        self.active = None

    def set_volume(self, volume: int) -> None:
        for device in self.devices:
            device.set_volume(volume)

    def is_finished(self) -> bool:
        return self.active is not None and self.active.is_finished()

    def elapsed(self) -> float:
        return self.active.elapsed() if self.active is not None else 0.0


_DEVICES = {
    "mpg123": MPG123Device,
    "ffplay": FFPlayDevice,
}


def detect_available_players() -> List[str]:
    """Return the supported players found in PATH, in order of preference."""
    return [player for player in SUPPORTED_PLAYERS if _find_command(player)]


def detect_available_player() -> Optional[str]:
    """Return the first supported player found in PATH."""
    players = detect_available_players()
    if players:
        return players[0]

    logger.warning("No supported audio player found")
    return None


@contextmanager
def open_audio_device(player_type: str = "auto", volume: int = 100) -> Iterator[AudioDevice]:
    """Yield an audio device and stop it when the block exits.

    ``auto`` uses every installed backend, routing tracks by format.

    Raises:
        DeviceError: If the requested backend is unknown or unavailable
    """
    if player_type == "auto":
        players = detect_available_players()
        if not players:
            raise DeviceError(
                "No audio backend available, install one of: " + ", ".join(SUPPORTED_PLAYERS)
            )
    elif player_type not in _DEVICES:
        raise DeviceError(f"Unsupported audio player: {player_type}")
    elif not _find_command(player_type):
        raise DeviceError(f"Audio player not found in PATH: {player_type}")
    else:
        players = [player_type]

    devices = [_DEVICES[player](volume) for player in players]
    device = devices[0] if len(devices) == 1 else RoutingDevice(devices)
    logger.info(f"Using audio backend: {', '.join(players)}")
    try:
        yield device
    finally:
        device.stop()
