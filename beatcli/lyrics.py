"""
Synced lyrics (.lrc) support for beatcli.
"""
import re
from bisect import bisect_right
from pathlib import Path
from typing import List, Optional, Tuple, Union

from beatcli.logging_config import get_logger

logger = get_logger('lyrics')

_TS_RE = re.compile(r"\[(\d+):(\d{1,2})(?:[.:](\d{1,3}))?\]")
_METADATA_RE = re.compile(r"^\[(ar|ti|al|by|au|offset|length|re|ve):", re.IGNORECASE)


def _ts_to_ms(mm: str, ss: str, frac: Optional[str]) -> int:
    if not frac:
        ms = 0
    elif len(frac) == 1:
        ms = int(frac) * 100
    elif len(frac) == 2:
        ms = int(frac) * 10
    else:
        ms = int(frac[:3])
    return (int(mm) * 60 + int(ss)) * 1000 + ms


def parse_lrc(lrc_text: str) -> List[Tuple[int, str]]:
    """Return ``(time_ms, text)`` pairs sorted by time.

    Lines may carry several timestamps; metadata tags such as ``[ar:]``
    are skipped.
    """
    out: List[Tuple[int, str]] = []
    for raw_line in lrc_text.splitlines():
        line = raw_line.strip()
        if not line or _METADATA_RE.match(line):
            continue

        matches = list(_TS_RE.finditer(line))
        if not matches:
            continue

        text = _TS_RE.sub("", line).strip()
        for m in matches:
            out.append((_ts_to_ms(m.group(1), m.group(2), m.group(3)), text))

    out.sort(key=lambda x: x[0])
    return out


class Lyrics:
    """Time-stamped lyric lines for one track."""

    def __init__(self, lines: List[Tuple[int, str]]):
        self.lines = lines
        self._times = [ms for ms, _ in lines]

    def __len__(self) -> int:
        return len(self.lines)

    def current_line_index(self, millis: int) -> int:
        """Index of the last line starting at or before ``millis``."""
        return max(0, bisect_right(self._times, millis) - 1)

    def window(self, millis: int, before: int = 3, after: int = 3) -> List[Tuple[str, bool]]:
        """Lines around the current one, each flagged if it is current."""
        if not self.lines:
            return []
        current = self.current_line_index(millis)
        start = max(0, current - before)
        end = min(len(self.lines), current + after + 1)
        return [(self.lines[i][1], i == current) for i in range(start, end)]

    @classmethod
    def load_for(cls, audio_path: Union[str, Path]) -> Optional["Lyrics"]:
        """Load the ``.lrc`` file sitting next to an audio file, if any."""
        lrc_path = Path(audio_path).with_suffix(".lrc")
        if not lrc_path.is_file():
            return None
        try:
            text = lrc_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read lyrics {lrc_path}: {e}")
            return None
        lines = parse_lrc(text)
        logger.debug(f"Loaded {len(lines)} lyric lines from {lrc_path}")
        return cls(lines)
