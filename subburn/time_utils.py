# subburn/time_utils.py

import time
import logging

from subburn.errors import FormatError

# --- Logging Setup ---
logger = logging.getLogger(__name__)

FINISHING_MESSAGE = "Finishing up..."


# --- parse_timestamp: hh:mm:ss 形式の文字列を秒数に変換する関数 ---
def parse_timestamp(timestamp: str) -> int:
    """Converts an hh:mm:ss timestamp to whole seconds."""
    parts = str(timestamp).split(":")
    if len(parts) != 3:
        raise FormatError(f"Invalid timestamp format '{timestamp}'. Use hh:mm:ss")
    try:
        hours, minutes, seconds = (int(p) for p in parts)
    except ValueError as e:
        raise FormatError(f"Invalid timestamp format '{timestamp}'. Use hh:mm:ss") from e
    return hours * 3600 + minutes * 60 + seconds


# --- format_ass_time: 整数秒を ASS の h:mm:ss.00 に変換 ---
def format_ass_time(seconds: int) -> str:
    # cue times are whole seconds, so centiseconds are always 00
    total = int(seconds)
    return f"{total // 3600}:{total % 3600 // 60:02d}:{total % 60:02d}.00"


def srt_to_ass_time(timestamp: str) -> str:
    """hh:mm:ss (from an SRT cue) -> h:mm:ss.00"""
    return format_ass_time(parse_timestamp(timestamp))


# --- estimate_remaining: 経過時間と進捗率から残り時間の表示文字列を作る ---
def estimate_remaining(start_time, progress, now=None) -> str:
    """
    Linear estimate of the time left in a render.

    Args:
        start_time: time.time() value recorded when the render began, or None.
        progress: Current progress in percent.
        now: Override for the current time (seconds since the epoch).

    Returns:
        "M:SS remaining", "Finishing up..." when the estimate is negative,
        or "" when there is nothing sensible to show.
    """
    if not start_time or progress <= 0 or progress >= 100:
        return ""

    now = time.time() if now is None else now
    elapsed = now - start_time
    estimated_total = 100 * elapsed / progress
    remaining = estimated_total - elapsed

    if remaining < 0:
        return FINISHING_MESSAGE

    minutes = int(remaining // 60)
    seconds = int(remaining % 60)
    return f"{minutes}:{seconds:02d} remaining"
