# subburn/font_catalog.py
import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontOption:
    name: str
    url: str       # relative to Settings.font_base_url, or absolute
    filename: str  # name inside the engine's font directory


# --- Preload the catalog once for performance ---
_CATALOG_FILE = Path(__file__).with_name("fonts.json")
_CACHED_FONTS = []
try:
    with open(_CATALOG_FILE, "r", encoding="utf-8") as _f:
        _CACHED_FONTS = [FontOption(**entry) for entry in json.load(_f)]
        logger.info(f"Successfully preloaded {len(_CACHED_FONTS)} fonts from {_CATALOG_FILE}")
except Exception as _e:
    logger.error(f"Failed to preload fonts from {_CATALOG_FILE}: {_e}")

DEFAULT_FONT_INDEX = 0


# --- load_fonts: フォントカタログを返す関数 ---
def load_fonts():
    """
    Returns the ordered font catalog. Index 0 is the default selection.
    """
    return list(_CACHED_FONTS)


def get_font(index: int) -> FontOption:
    """Catalog entry at index; IndexError when out of range."""
    if not 0 <= index < len(_CACHED_FONTS):
        raise IndexError(f"Font index {index} out of range (0-{len(_CACHED_FONTS) - 1})")
    return _CACHED_FONTS[index]
