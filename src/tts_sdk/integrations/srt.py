from __future__ import annotations

import re
from typing import List, Optional

from tts_sdk.integrations.tts import TimeSegment

_BLOCK_SPLIT = re.compile(r"\n\s*\n")
_TIMESTAMP = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})$")
_TAG = re.compile(r"<[^>]+>")


def parse_srt(text: str) -> List[TimeSegment]:
    """
    Parse SubRip subtitles into timed segments.

    Blocks are separated by blank lines; the second line of a block holds
    `HH:MM:SS,mmm --> HH:MM:SS,mmm` (comma or dot), the rest is caption text.
    Malformed blocks are skipped.
    """
    segments: List[TimeSegment] = []
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    for block in _BLOCK_SPLIT.split(normalized):
        lines = [line.strip() for line in block.strip().split("\n")]
        if len(lines) < 3 or "-->" not in lines[1]:
            continue

        start_raw, _, end_raw = lines[1].partition("-->")
        start = _to_ms(start_raw.strip())
        # Cue settings may follow the end time ("00:00:01,000 X1:40").
        end_parts = end_raw.strip().split()
        end = _to_ms(end_parts[0]) if end_parts else None
        if start is None or end is None or end < start:
            continue

        caption = _TAG.sub("", " ".join(lines[2:])).strip()
        segments.append(TimeSegment(text=caption, start_ms=start, end_ms=end))
    return segments


def _to_ms(value: str) -> Optional[int]:
    m = _TIMESTAMP.match(value)
    if not m:
        return None
    h, mi, s, ms = m.groups()
    # "5" after the separator means 500ms, not 5ms.
    millis = int(ms.ljust(3, "0"))
    return int(h) * 3_600_000 + int(mi) * 60_000 + int(s) * 1_000 + millis
