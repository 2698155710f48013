import os
from pathlib import Path

import pytest

import beatcli.scanner as scanner
from beatcli.logging_config import ScanError
from beatcli.scanner import AUDIO_EXTENSIONS, is_audio, read_display_name, scan_folder


class FakeAudio:
    def __init__(self, tags):
        self.tags = tags


class TestIsAudio:
    """Tests for extension filtering."""

    @pytest.mark.parametrize("name", [
        "song.mp3", "song.MP3", "song.flac", "song.wav", "song.ogg", "song.m4a", "song.aac",
    ])
    def test_supported(self, name):
        assert is_audio(name)

    @pytest.mark.parametrize("name", ["notes.txt", "cover.jpg", "song.lrc", "mp3"])
    def test_unsupported(self, name):
        assert not is_audio(name)

    def test_extension_set(self):
        assert AUDIO_EXTENSIONS == {".mp3", ".wav", ".flac", ".ogg", ".m4a", ".aac"}


class TestScanFolder:
    """Tests for recursive folder scanning."""

    def test_scan_finds_audio_files(self, temp_music_dir):
        """Test that scanning finds audio files recursively in sorted order."""
        tracks = scan_folder(temp_music_dir, read_tags=False)

        relative = [os.path.relpath(t.path, temp_music_dir) for t in tracks]
        assert relative == [
            "test1.mp3",
            "test2.flac",
            "test3.ogg",
            os.path.join("subdir", "nested.mp3"),
        ]

    def test_scan_uses_file_names_without_tags(self, temp_music_dir):
        tracks = scan_folder(temp_music_dir, read_tags=False)

        assert [t.display_name for t in tracks] == [
            "test1.mp3", "test2.flac", "test3.ogg", "nested.mp3",
        ]

    def test_scan_is_deterministic(self, temp_music_dir):
        """Test that rescanning an unchanged folder gives the same list."""
        assert scan_folder(temp_music_dir, read_tags=False) == scan_folder(
            temp_music_dir, read_tags=False
        )

    def test_scan_accepts_string_path(self, temp_music_dir):
        assert len(scan_folder(str(temp_music_dir), read_tags=False)) == 4

    def test_scan_missing_folder(self, tmp_path):
        with pytest.raises(ScanError, match="does not exist"):
            scan_folder(tmp_path / "nope")

    def test_scan_file_instead_of_folder(self, temp_music_dir):
        with pytest.raises(ScanError, match="not a folder"):
            scan_folder(temp_music_dir / "test1.mp3")

    def test_scan_without_audio(self, tmp_path):
        """Test that a folder without audio files is an error."""
        (tmp_path / "readme.txt").touch()

        with pytest.raises(ScanError, match="No supported audio files"):
            scan_folder(tmp_path)

    def test_scan_reads_tags(self, temp_music_dir, monkeypatch):
        """Test that tag-based names are used when tags are present."""
        def fake_file(path, easy=False):
            if path.endswith("test1.mp3"):
                return FakeAudio({"artist": ["Band"], "title": ["Opening"]})
            return None

        monkeypatch.setattr(scanner, "MutagenFile", fake_file)

        tracks = scan_folder(temp_music_dir)

        assert tracks[0].display_name == "Band - Opening"
        assert tracks[1].display_name == "test2.flac"


class TestReadDisplayName:
    """Tests for building display names from tags."""

    def test_artist_and_title(self, monkeypatch):
        monkeypatch.setattr(
            scanner, "MutagenFile",
            lambda path, easy=False: FakeAudio({"artist": ["A"], "title": ["T"]}),
        )

        assert read_display_name("/music/x.mp3") == "A - T"

    def test_title_only(self, monkeypatch):
        monkeypatch.setattr(
            scanner, "MutagenFile",
            lambda path, easy=False: FakeAudio({"title": ["  Only Title "]}),
        )

        assert read_display_name("/music/x.mp3") == "Only Title"

    def test_blank_tags_fall_back(self, monkeypatch):
        monkeypatch.setattr(
            scanner, "MutagenFile",
            lambda path, easy=False: FakeAudio({"artist": ["A"], "title": [""]}),
        )

        assert read_display_name("/music/x.mp3") == "x.mp3"

    def test_no_tags(self, monkeypatch):
        monkeypatch.setattr(scanner, "MutagenFile", lambda path, easy=False: FakeAudio(None))

        assert read_display_name("/music/x.mp3") == "x.mp3"

    def test_unreadable_file(self, monkeypatch):
        def broken(path, easy=False):
            raise scanner.MutagenError("bad header")

        monkeypatch.setattr(scanner, "MutagenFile", broken)

        assert read_display_name(str(Path("/music") / "broken.flac")) == "broken.flac"
