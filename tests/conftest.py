import io
import logging
import random
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from beatcli.audio import AudioDevice
from beatcli.logging_config import DeviceError
from beatcli.playlist import Playlist, Track
from beatcli.session import PlaybackSession
from beatcli.ui import StatusView


class FakeDevice(AudioDevice):
    """Audio device that records every call instead of making sound."""

    def __init__(self):
        self.calls = []
        self.loaded = None
        self.playing = False
        self.finished = False
        self.volume = None
        self.unplayable = set()
        self.failed = False
        self.volume_error = None

    def load(self, path):
        self.calls.append(("load", path))
        if path in self.unplayable:
            raise DeviceError(f"Cannot decode {path}")
        self.loaded = path
        self.finished = False
        self.failed = False

    def play(self):
        self.calls.append(("play",))
        self.playing = True

    def pause(self):
        self.calls.append(("pause",))
        if self.loaded is None or self.finished or self.failed:
            return False
        self.playing = False
        return True

    def resume(self):
        self.calls.append(("resume",))
        self.playing = True

    def stop(self):
        self.calls.append(("stop",))
        self.loaded = None
        self.playing = False
        self.finished = False
        self.failed = False

    def set_volume(self, volume):
        self.calls.append(("set_volume", volume))
        self.volume = volume
        if self.volume_error is not None:
            raise DeviceError(self.volume_error)

    def is_finished(self):
        if self.failed:
            raise DeviceError(f"Player exited with status 1 playing {self.loaded}")
        return self.finished

    def elapsed(self):
        return 0.0

    def finish(self):
        """Simulate the loaded track reaching its end."""
        self.playing = False
        self.finished = True

    def fail(self):
        """Simulate the player giving up on the loaded track."""
        self.playing = False
        self.failed = True

    def loads(self):
        return [call[1] for call in self.calls if call[0] == "load"]


def make_tracks(*names):
    return [Track(f"/music/{name}.mp3", name) for name in names]


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging during a test."""
    yield
    logger = logging.getLogger("beatcli")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def tracks():
    return make_tracks("A", "B", "C")


@pytest.fixture
def session(device, tracks):
    """A stopped session holding [A, B, C] with a seeded shuffle."""
    playlist = Playlist(tracks, rng=random.Random(1234))
    return PlaybackSession(device, playlist, volume=50)


@pytest.fixture
def empty_session(device):
    return PlaybackSession(device, Playlist(rng=random.Random(1234)))


@pytest.fixture
def view():
    return StatusView(stream=io.StringIO(), use_colors=False, clear_screen=False)


@pytest.fixture
def temp_music_dir():
    """Create a temporary music directory with test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        music_dir = Path(tmpdir) / "music"
        music_dir.mkdir()

        (music_dir / "subdir").mkdir()

        (music_dir / "test1.mp3").touch()
        (music_dir / "test2.flac").touch()
        (music_dir / "test3.ogg").touch()
        (music_dir / "test4.txt").touch()

        (music_dir / "subdir" / "nested.mp3").touch()

        yield music_dir
