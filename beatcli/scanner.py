"""
Folder scanning for beatcli.
"""
import os
from pathlib import Path
from typing import List, Optional, Set, Union

from mutagen import File as MutagenFile
from mutagen import MutagenError

from beatcli.logging_config import get_logger, ScanError
from beatcli.playlist import Track

logger = get_logger('scanner')

# Audio file extensions
AUDIO_EXTENSIONS: Set[str] = {".mp3", ".wav", ".flac", ".ogg", ".m4a", ".aac"}


def is_audio(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in AUDIO_EXTENSIONS


def _first_tag(tags, key: str) -> Optional[str]:
    value = tags.get(key)
    if not value:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
    text = str(value).strip() if value is not None else ""
    return text or None


def read_display_name(path: str) -> str:
    """Build a display name from the file's tags.

    Returns "Artist - Title" when both tags are present, the title alone
    when only it is, and the file name otherwise.
    """
    file_name = os.path.basename(path)
    try:
        audio = MutagenFile(path, easy=True)
    except (MutagenError, OSError, ValueError) as e:
        logger.debug(f"Could not read tags from {path}: {e}")
        return file_name
    if audio is None or audio.tags is None:
        return file_name

    title = _first_tag(audio.tags, "title")
    artist = _first_tag(audio.tags, "artist")
    if artist and title:
        return f"{artist} - {title}"
    return title or file_name


def scan_folder(folder: Union[str, Path], read_tags: bool = True) -> List[Track]:
    """Recursively collect the audio files below ``folder``.

    Directories and files are visited in sorted order so a rescan of an
    unchanged folder yields the same playlist.

    Raises:
        ScanError: If the folder does not exist, is not a directory, cannot
            be read, or holds no audio files
    """
    root = Path(folder).expanduser()
    if not root.exists():
        raise ScanError(f"Path does not exist: {folder}")
    if not root.is_dir():
        raise ScanError(f"Path is not a folder: {folder}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise ScanError(f"Folder is not readable: {folder}")

    def _on_error(error: OSError) -> None:
        if Path(error.filename or "") == root:
            raise ScanError(f"Failed to read folder {folder}: {error.strerror}")
        logger.warning(f"Skipping unreadable entry: {error.filename}")

    tracks: List[Track] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            if not is_audio(name):
                continue
            full_path = os.path.join(dirpath, name)
            display_name = read_display_name(full_path) if read_tags else name
            tracks.append(Track(full_path, display_name))

    if not tracks:
        raise ScanError(f"No supported audio files found in {folder}")

    logger.info(f"Scanned {len(tracks)} tracks from {root}")
    return tracks
