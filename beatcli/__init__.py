"""
BeatCLI - Console music player.
"""

__version__ = "0.1.0"
__author__ = "BeatCLI Team"
__description__ = "A console music player with playlist modes, volume control and synced lyrics."

from . import logging_config
from . import playlist
from . import audio
from . import session
from . import scanner
from . import lyrics
from . import config

from .audio import (
    AudioDevice,
    MPG123Device,
    FFPlayDevice,
    RoutingDevice,
    open_audio_device,
    detect_available_player,
)
from .config import AppConfig, ConfigManager, load_config
from .playlist import PlaybackMode, Playlist, Track
from .scanner import scan_folder
from .session import PlaybackSession, Snapshot, TransportState

__all__ = [
    # Audio
    'AudioDevice',
    'MPG123Device',
    'FFPlayDevice',
    'RoutingDevice',
    'open_audio_device',
    'detect_available_player',

    # Playlist
    'PlaybackMode',
    'Playlist',
    'Track',
    'scan_folder',

    # Session
    'PlaybackSession',
    'Snapshot',
    'TransportState',

    # Config
    'AppConfig',
    'ConfigManager',
    'load_config',
]
