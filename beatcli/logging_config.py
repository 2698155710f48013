"""
Logging configuration for beatcli.
"""
import logging
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""
    
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }
    
    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{reset}"
        return super().format(record)


def setup_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """Setup logging configuration for beatcli.
    
    Console output goes to stderr so it never interleaves with the
    status view drawn on stdout.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger('beatcli')
    logger.setLevel(logging.DEBUG if log_file else numeric_level)
    logger.propagate = False
    
    # Clear existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_formatter = ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)
    
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.
    
    Args:
        name: Module name
        
    Returns:
        Logger instance
    """
    return logging.getLogger(f'beatcli.{name}')


# Custom exceptions. Everything below BeatCliError is recovered by the
# command router and reported to the user.
class BeatCliError(Exception):
    """Base exception for beatcli."""
    pass


class OutOfRangeError(BeatCliError):
    """Track number outside the playlist."""
    pass


class NotPlayingError(BeatCliError):
    """Pause requested while nothing is playing."""
    pass


class NotPausedError(BeatCliError):
    """Resume requested while playback is not paused."""
    pass


class InvalidModeError(BeatCliError):
    """Unrecognized playback mode literal."""
    pass


class InvalidArgumentError(BeatCliError):
    """Malformed command or command argument."""
    pass


class ScanError(BeatCliError):
    """Folder missing, unreadable or without audio files."""
    pass


class DeviceError(BeatCliError):
    """Audio backend failed to load or play a track."""
    pass


class ConfigurationError(BeatCliError):
    """Configuration related errors."""
    pass
