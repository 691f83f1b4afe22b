# subburn/srt_utils.py

import re
import logging # Import logging
from dataclasses import dataclass

# --- Logging Setup ---
logger = logging.getLogger(__name__)

# Milliseconds are matched but discarded; cues keep whole seconds only
TIME_LINE_PATTERN = re.compile(r"(\d{2}:\d{2}:\d{2}),\d{3} --> (\d{2}:\d{2}:\d{2}),\d{3}")
_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")


@dataclass
class Cue:
    start: str  # hh:mm:ss
    end: str    # hh:mm:ss
    text: str


# --- parse_srt: SRT文字列を解析して Cue のリストとして返す関数 ---
def parse_srt(content: str):
    """
    Parses SRT content into cues, keeping source order.

    Blocks need an index line, a time line and at least one text line.
    Anything else is skipped rather than failing the whole file.
    """
    cues = []
    normalized = content.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return cues

    for block in _BLOCK_SEPARATOR.split(normalized):
        lines = block.strip().split("\n")
        if len(lines) < 3:
            logger.debug(f"Skipping short SRT block: {block!r}")
            continue

        time_match = TIME_LINE_PATTERN.search(lines[1])
        if not time_match:
            logger.debug(f"Skipping SRT block without a time range: {block!r}")
            continue

        cues.append(
            Cue(
                start=time_match.group(1),
                end=time_match.group(2),
                text="\n".join(lines[2:]).strip(),
            )
        )

    logger.info(f"Parsed {len(cues)} cues from SRT content")
    return cues


def decode_subtitle_bytes(data: bytes) -> str:
    """SRT uploads are UTF-8; a BOM is dropped if present."""
    return data.decode("utf-8-sig", errors="replace")
