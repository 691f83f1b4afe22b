"""
Utility: style_utils.py
-----------------------
Style parameters for both burn-in modes, the encoders that turn them into
FFmpeg's subtitle-filter syntax, and the two quality presets.
"""

import re
import logging
from dataclasses import dataclass

from subburn.errors import ValidationError
from subburn.font_catalog import get_font, DEFAULT_FONT_INDEX

logger = logging.getLogger(__name__)

# numpad-style alignment codes used by both force_style and ASS
ALIGNMENT_MAP = {
    "top": "8",
    "bottom": "2",
    "center": "5",
}

_HEX_COLOR = re.compile(r"[0-9a-fA-F]{6}")


@dataclass
class SubtitleStyle:
    """Styling for SRT burn-in (passed to FFmpeg via force_style)."""
    font_index: int = DEFAULT_FONT_INDEX
    font_size: int = 24
    is_bold: bool = False
    position: str = "bottom"

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Re-checks the fields; styles are mutable, so callers validate before use."""
        if not isinstance(self.font_size, int) or self.font_size <= 0:
            raise ValidationError(f"Font size must be positive, got {self.font_size}")
        if self.position not in ALIGNMENT_MAP:
            raise ValidationError(f"Unknown position '{self.position}'. Use top, bottom or center")


@dataclass
class AssSubtitleStyle(SubtitleStyle):
    """Styling for ASS burn-in; everything ends up in the script's Style line."""
    font_size: int = 70
    text_color: str = "#ffff7f"
    stroke_color: str = "#000000"
    stroke_size: int = 2
    shadow_blur: int = 0
    # Accepted and range-checked, but the Style line has no slot for it yet
    shadow_opacity: int = 0
    subtitle_position_y: int = 140
    subtitle_center_x: int = 960

    def validate(self):
        super().validate()
        if not isinstance(self.shadow_blur, int) or not 0 <= self.shadow_blur <= 20:
            raise ValidationError(f"Shadow blur must be within 0-20, got {self.shadow_blur}")
        if not isinstance(self.shadow_opacity, int) or not 0 <= self.shadow_opacity <= 100:
            raise ValidationError(f"Shadow opacity must be within 0-100, got {self.shadow_opacity}")


@dataclass(frozen=True)
class QualityPreset:
    preset: str
    crf: str
    audio_bitrate: str


HIGH_QUALITY = QualityPreset(preset="veryslow", crf="18", audio_bitrate="320k")
PREVIEW_QUALITY = QualityPreset(preset="ultrafast", crf="28", audio_bitrate="128k")


def get_quality_preset(mode: str = "preview") -> QualityPreset:
    return HIGH_QUALITY if mode == "high" else PREVIEW_QUALITY


def alignment_code(position: str) -> str:
    if position not in ALIGNMENT_MAP:
        raise ValidationError(f"Unknown position '{position}'. Use top, bottom or center")
    return ALIGNMENT_MAP[position]


def font_name(font_index: int) -> str:
    try:
        return get_font(font_index).name
    except IndexError as e:
        raise ValidationError(str(e)) from e


# --- encode_simple_style: force_style 用のスタイル文字列を組み立てる ---
def encode_simple_style(font_index: int, font_size: int, is_bold: bool, position: str) -> str:
    """
    Builds the force_style value for the `subtitles` filter.

    Example:
        >>> encode_simple_style(0, 24, True, "top")
        'Fontname=Roboto,FontSize=24,Bold=-1,Alignment=8'
    """
    bold_style = ",Bold=-1" if is_bold else ""
    return f"Fontname={font_name(font_index)},FontSize={font_size}{bold_style},Alignment={alignment_code(position)}"


# --- encode_color: RRGGBB を ASS の BBGGRR に変換する ---
def encode_color(hex_color: str) -> str:
    """Converts RRGGBB (optionally '#'-prefixed) to ASS BBGGRR."""
    hex_value = str(hex_color)
    if hex_value.startswith("#"):
        hex_value = hex_value[1:]
    if not _HEX_COLOR.fullmatch(hex_value):
        raise ValidationError(f"Invalid hex color format: {hex_color}. Expected RRGGBB format.")

    r = int(hex_value[0:2], 16)
    g = int(hex_value[2:4], 16)
    b = int(hex_value[4:6], 16)
    return f"{b:02x}{g:02x}{r:02x}"
