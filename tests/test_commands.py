import pytest

from beatcli.commands import Command, CommandKind, CommandRouter, parse_command
from beatcli.logging_config import InvalidArgumentError, InvalidModeError, ScanError
from beatcli.playlist import PlaybackMode
from beatcli.session import TransportState
from beatcli.ui import FlashLevel

from conftest import make_tracks


class TestParseCommand:
    """Tests for turning input lines into commands."""

    @pytest.mark.parametrize("line,kind", [
        ("/help", CommandKind.HELP),
        ("/quit", CommandKind.QUIT),
        ("/exit", CommandKind.QUIT),
        ("/q", CommandKind.QUIT),
        ("/list", CommandKind.LIST),
        ("/ls", CommandKind.LIST),
        ("/pause", CommandKind.PAUSE),
        ("/resume", CommandKind.RESUME),
        ("/next", CommandKind.NEXT),
        ("/prev", CommandKind.PREV),
        ("/back", CommandKind.PREV),
        ("/now", CommandKind.NOW),
        ("/lyrics", CommandKind.LYRICS),
        ("/lmode", CommandKind.LYRICS_MODE),
        ("/LM", CommandKind.LYRICS_MODE),
        ("  /NEXT  \n", CommandKind.NEXT),
    ])
    def test_simple_keywords(self, line, kind):
        """Test keywords, aliases, case and surrounding whitespace."""
        assert parse_command(line) == Command(kind)

    def test_play_with_number(self):
        assert parse_command("/play 3") == Command(CommandKind.PLAY, 3)

    def test_play_defaults_to_first(self):
        assert parse_command("/play") == Command(CommandKind.PLAY, 1)

    def test_play_not_a_number(self):
        with pytest.raises(InvalidArgumentError):
            parse_command("/play three")

    def test_folder_keeps_spaces(self):
        """Test folder paths may contain spaces."""
        command = parse_command("/folder ~/My Music/Jazz ")

        assert command == Command(CommandKind.FOLDER, "~/My Music/Jazz")

    def test_folder_alias(self):
        assert parse_command("/f /music") == Command(CommandKind.FOLDER, "/music")

    def test_folder_without_path(self):
        with pytest.raises(InvalidArgumentError):
            parse_command("/folder")

    def test_search_joins_words(self):
        assert parse_command("/search love  song") == Command(CommandKind.SEARCH, "love song")

    def test_search_without_keyword(self):
        with pytest.raises(InvalidArgumentError):
            parse_command("/search")

    @pytest.mark.parametrize("line,mode", [
        ("/mode shuffle", PlaybackMode.SHUFFLE),
        ("/mode RepeatOne", PlaybackMode.REPEAT_ONE),
        ("/m seq", PlaybackMode.SEQUENTIAL),
    ])
    def test_mode(self, line, mode):
        assert parse_command(line) == Command(CommandKind.MODE, mode)

    def test_mode_invalid(self):
        with pytest.raises(InvalidModeError):
            parse_command("/mode random")

    def test_mode_missing(self):
        with pytest.raises(InvalidArgumentError):
            parse_command("/mode")

    @pytest.mark.parametrize("line,value", [
        ("/volume 80", 80),
        ("/vol 150", 150),
        ("/volume -5", -5),
    ])
    def test_volume_keeps_raw_value(self, line, value):
        """Test volume is parsed as given and clamped later."""
        assert parse_command(line) == Command(CommandKind.VOLUME, value)

    @pytest.mark.parametrize("line", ["/volume", "/volume loud", "/volume 5.5"])
    def test_volume_invalid(self, line):
        with pytest.raises(InvalidArgumentError):
            parse_command(line)

    @pytest.mark.parametrize("line", ["hello", "/", "/dance", "play 1"])
    def test_unknown_input(self, line):
        with pytest.raises(InvalidArgumentError):
            parse_command(line)


@pytest.fixture
def router(session, view):
    return CommandRouter(session, view, scanner=lambda folder: make_tracks("X", "Y", "Z", "W"))


def flash_text(view):
    message, level = view.flash_message
    return message, level


class TestCommandRouter:
    """Tests for dispatching commands and reporting results."""

    def test_quit_returns_false(self, router):
        assert router.handle_line("/quit") is False

    def test_other_commands_return_true(self, router):
        assert router.handle_line("/help") is True
        assert router.handle_line("/bogus") is True

    def test_parse_error_is_reported(self, router, view):
        router.handle_line("/bogus")

        message, level = flash_text(view)
        assert level is FlashLevel.ERROR
        assert "/bogus" in message

    def test_folder_replaces_playlist(self, router, session, view):
        router.handle_line("/folder /somewhere")

        assert len(session.playlist) == 4
        message, level = flash_text(view)
        assert level is FlashLevel.OK
        assert message == "Found 4 tracks in /somewhere"

    def test_folder_scan_error_keeps_playlist(self, session, view, tracks):
        """Test a failed scan leaves the old playlist in place."""
        def failing_scanner(folder):
            raise ScanError(f"No audio files found in {folder}")

        router = CommandRouter(session, view, scanner=failing_scanner)
        session.play(2)

        router.handle_line("/folder /empty")

        assert list(session.playlist.entries) == tracks
        assert session.state is TransportState.PLAYING
        message, level = flash_text(view)
        assert level is FlashLevel.ERROR
        assert "/empty" in message

    def test_play_reports_track(self, router, session, view):
        router.handle_line("/play 2")

        assert session.playlist.cursor == 1
        assert flash_text(view) == ("Playing: B", FlashLevel.OK)

    def test_play_out_of_range(self, router, session, view):
        router.handle_line("/play 9")

        assert session.state is TransportState.STOPPED
        message, level = flash_text(view)
        assert level is FlashLevel.ERROR
        assert "1-3" in message

    def test_play_on_empty_playlist(self, empty_session, view):
        router = CommandRouter(empty_session, view)

        router.handle_line("/play 1")

        assert flash_text(view)[1] is FlashLevel.ERROR
        assert empty_session.state is TransportState.STOPPED

    def test_pause_when_stopped(self, router, view):
        router.handle_line("/pause")

        assert flash_text(view)[1] is FlashLevel.ERROR

    def test_pause_and_resume(self, router, session, view):
        router.handle_line("/play")
        router.handle_line("/pause")
        assert flash_text(view) == ("Paused", FlashLevel.OK)

        router.handle_line("/pause")
        assert flash_text(view) == ("Already paused", FlashLevel.INFO)

        router.handle_line("/resume")
        assert flash_text(view) == ("Resumed", FlashLevel.OK)
        assert session.state is TransportState.PLAYING

        router.handle_line("/resume")
        assert flash_text(view) == ("Already playing", FlashLevel.INFO)

    def test_resume_when_stopped(self, router, view):
        router.handle_line("/resume")

        assert flash_text(view)[1] is FlashLevel.ERROR

    def test_next_and_prev(self, router, session, view):
        router.handle_line("/play 1")

        router.handle_line("/next")
        assert flash_text(view) == ("Playing: B", FlashLevel.OK)

        router.handle_line("/prev")
        router.handle_line("/prev")
        assert flash_text(view) == ("Playing: C", FlashLevel.OK)

    def test_next_on_empty_playlist(self, empty_session, view):
        router = CommandRouter(empty_session, view)

        router.handle_line("/next")

        assert flash_text(view) == ("Playlist is empty", FlashLevel.INFO)

    def test_mode_switch(self, router, session, view):
        router.handle_line("/mode shuffle")
        assert session.mode is PlaybackMode.SHUFFLE
        assert flash_text(view) == ("Switched to Shuffle mode", FlashLevel.OK)

        router.handle_line("/mode shuffle")
        assert flash_text(view) == ("Already in Shuffle mode", FlashLevel.INFO)

    def test_invalid_mode_keeps_mode(self, router, session, view):
        router.handle_line("/mode loop")

        assert session.mode is PlaybackMode.SEQUENTIAL
        assert flash_text(view)[1] is FlashLevel.ERROR

    @pytest.mark.parametrize("line,expected", [
        ("/volume 150", 100),
        ("/volume -5", 0),
        ("/volume 35", 35),
    ])
    def test_volume_is_clamped(self, router, session, device, view, line, expected):
        router.handle_line(line)

        assert session.volume == expected
        assert device.volume == expected
        assert flash_text(view) == (f"Volume set to {expected}%", FlashLevel.OK)

    def test_search_lists_matches(self, router, view):
        router.handle_line("/search b")

        message, level = flash_text(view)
        assert level is FlashLevel.INFO
        assert "2. B" in message

    def test_search_without_matches(self, router, view):
        router.handle_line("/search nothing")

        assert flash_text(view) == ("No tracks matching 'nothing'", FlashLevel.INFO)

    def test_list_shows_playlist(self, router, view):
        router.handle_line("/list")

        message, _ = flash_text(view)
        assert message.startswith("Playlist (3 tracks):")

    def test_now(self, router, view):
        router.handle_line("/play 3")
        router.handle_line("/now")

        message, _ = flash_text(view)
        assert "C" in message
        assert "Up next: A" in message

    def test_lyrics_toggle(self, router, view):
        router.handle_line("/lyrics")
        assert flash_text(view) == ("Lyrics hidden", FlashLevel.OK)
        assert view.show_lyrics is False

        router.handle_line("/lrc")
        assert flash_text(view) == ("Lyrics shown", FlashLevel.OK)

    def test_lyrics_mode_toggles_redraw(self, router, view):
        router.handle_line("/play 1")

        router.handle_line("/lmode")
        assert view.clear_screen is True
        assert flash_text(view) == ("Lyrics mode: clear screen", FlashLevel.OK)

        router.handle_line("/lm")
        assert view.clear_screen is False
        assert flash_text(view) == ("Lyrics mode: stream", FlashLevel.OK)

    def test_lyrics_mode_needs_playback(self, router, view):
        router.handle_line("/lmode")

        assert view.clear_screen is False
        assert flash_text(view)[1] is FlashLevel.ERROR

    def test_volume_device_error_reported(self, router, session, device, view):
        router.handle_line("/play 1")
        device.volume_error = "Failed to start audio player"

        router.handle_line("/volume 10")

        assert session.state is TransportState.STOPPED
        assert flash_text(view) == ("Failed to start audio player", FlashLevel.ERROR)
