import logging # Import logging

from subburn.srt_utils import parse_srt
from subburn.style_utils import alignment_code, encode_color, font_name
from subburn.time_utils import srt_to_ass_time

# --- Logging Setup ---
logger = logging.getLogger(__name__)

STYLE_NAME = "Default"

STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, "
    "Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, "
    "Alignment, MarginL, MarginR, MarginV, Encoding"
)
EVENT_FORMAT = "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"


# --- escape_ass_text: ASS の制御文字 { } \ をエスケープする ---
def escape_ass_text(text):
    """Prefixes '{', '}' and '\\' with a backslash."""
    escaped = []
    for ch in text:
        if ch in "{}\\":
            escaped.append("\\")
        escaped.append(ch)
    return "".join(escaped)


# --- generate_style_line: AssSubtitleStyle から Style 行を生成する ---
def generate_style_line(style):
    """Builds the single 23-field Style line for the script."""
    fields = [
        STYLE_NAME,
        font_name(style.font_index),
        str(style.font_size),
        f"&H{encode_color(style.text_color)}",
        "&H000000",
        f"&H{encode_color(style.stroke_color)}",
        "&H000000",
        "1" if style.is_bold else "0",
        "0",  # Italic
        "0",  # Underline
        "0",  # StrikeOut
        "100",
        "100",
        "0",
        "0",
        "1",  # BorderStyle: outline + drop shadow
        str(style.stroke_size),
        str(style.shadow_blur),
        alignment_code(style.position),
        "0",
        "0",
        str(style.subtitle_position_y),
        "1",
    ]
    return "Style: " + ",".join(fields)


# --- generate_ass_header: [Script Info] と [V4+ Styles] と [Events] の見出しを生成する ---
def generate_ass_header(style):
    """Generates everything up to (and including) the Events Format line."""
    style_line = generate_style_line(style)
    logger.debug(f"Generated Style Line: {style_line}")

    header = f"""[Script Info]
Title: Generated Subtitles
ScriptType: v4.00+
WrapStyle: 0
ScaledBorderAndShadow: yes
YCbCr Matrix: None

[V4+ Styles]
{STYLE_FORMAT}
{style_line}

[Events]
{EVENT_FORMAT}
"""
    return header


# --- generate_ass_dialogue: Cue のリストから Dialogue 行を生成する ---
def generate_ass_dialogue(cues, style_name=STYLE_NAME):
    """
    Generates ASS Dialogue lines from parsed SRT cues.

    Args:
        cues: Iterable of Cue objects with hh:mm:ss start/end.
        style_name (str): The ASS style name to apply.

    Returns:
        str: One Dialogue line per cue, each terminated by a newline.
    """
    dialogue_lines = []
    for cue in cues:
        start_time = srt_to_ass_time(cue.start)
        end_time = srt_to_ass_time(cue.end)
        # Multi-line cues use the ASS hard line break
        text = escape_ass_text(cue.text).replace("\n", "\\N")
        dialogue_lines.append(f"Dialogue: 0,{start_time},{end_time},{style_name},,0,0,0,,{text}\n")
    return "".join(dialogue_lines)


def render_ass(cues, style):
    """Complete ASS script for the given cues. An empty list gives a header-only script."""
    cues = list(cues)
    script = generate_ass_header(style) + generate_ass_dialogue(cues)
    logger.info(f"Rendered ASS script with {len(cues)} dialogue lines")
    return script


def generate_ass_file(style, srt_content=None):
    """SRT text -> ASS script styled with the given AssSubtitleStyle."""
    cues = parse_srt(srt_content) if srt_content else []
    return render_ass(cues, style)
