"""
Utility: burn_utils.py
----------------------
Burns subtitles into a video through the engine session: stages the font,
video and subtitle files, runs ffmpeg for a single preview frame or a full
render, hands back the result and always removes the staged files.

All four operations report through ProcessingState and never raise.
"""

import logging
from dataclasses import dataclass

from subburn.ass_utils import generate_ass_file
from subburn.errors import MissingInputError, FormatError, ValidationError
from subburn.font_catalog import get_font
from subburn.session import FONTS_DIR, font_staging_path
from subburn.srt_utils import decode_subtitle_bytes
from subburn.state import OperationResult, OutputHandle
from subburn.style_utils import AssSubtitleStyle, encode_simple_style, get_quality_preset
from subburn.time_utils import parse_timestamp

logger = logging.getLogger(__name__)

SRT_NAME = "subtitles.srt"
ASS_NAME = "subtitles.ass"
PREVIEW_NAME = "preview.png"
OUTPUT_NAME = "output.mp4"


@dataclass(frozen=True)
class _Operation:
    label: str
    preview: bool
    rich: bool
    start_message: str
    burn_message: str = ""


_FRAME_PREVIEW = _Operation("Frame preview", True, False, "Rendering frame preview...")
_ASS_FRAME_PREVIEW = _Operation("ASS frame preview", True, True, "Rendering ASS frame preview...")
_PROCESS = _Operation("Processing", False, False, "Processing video...", "Burning subtitles to video")
_ASS_PROCESS = _Operation(
    "ASS processing", False, True, "Processing video with ASS subtitles...", "Burning ASS subtitles to video"
)


# --- remove_files_ignoring_errors: ステージしたファイルを可能な限り削除する ---
async def remove_files_ignoring_errors(engine, names):
    """
    Deletes every name from the engine filesystem. A failure on one file is
    logged and skipped so the rest are still removed.

    Returns:
        list[str]: Names that could not be removed.
    """
    failed = []
    for name in names:
        try:
            await engine.delete_file(name)
        except Exception as e:
            logger.debug(f"Ignoring failed removal of '{name}': {e}")
            failed.append(name)
    return failed


def build_subtitles_filter(style, subtitle_name=SRT_NAME):
    force_style = encode_simple_style(style.font_index, style.font_size, style.is_bold, style.position)
    return f"subtitles={subtitle_name}:fontsdir={FONTS_DIR}:force_style='{force_style}'"


def build_ass_filter(subtitle_name=ASS_NAME):
    return f"ass='{subtitle_name}':fontsdir={FONTS_DIR}"


def build_preview_args(video_name, timestamp_seconds, vf_filter, output_name=PREVIEW_NAME):
    return [
        "-i", video_name,
        "-ss", str(timestamp_seconds),
        "-avoid_negative_ts", "make_zero",
        "-vf", vf_filter,
        "-frames:v", "1",
        "-update", "1",
        "-y", output_name,
    ]


def build_render_args(video_name, vf_filter, quality, output_name=OUTPUT_NAME):
    return [
        "-i", video_name,
        "-vf", vf_filter,
        "-c:v", "libx264",
        "-preset", quality.preset,
        "-crf", quality.crf,
        "-pix_fmt", "yuv420p",
        "-c:a", "aac",
        "-b:a", quality.audio_bitrate,
        "-y", output_name,
    ]


def _check_inputs(state):
    if state.video_file is None or state.subtitle_file is None:
        raise MissingInputError("Please upload both video and SRT files")


def _preview_seconds(timestamp):
    seconds = parse_timestamp(timestamp)
    if seconds < 0:
        raise ValidationError("Timestamp must be positive")
    return seconds


def _subtitle_payload(state, op):
    """(engine file name, bytes) for the subtitle track."""
    if not op.rich:
        return SRT_NAME, state.subtitle_file.data
    if not isinstance(state.style, AssSubtitleStyle):
        raise ValidationError("ASS burn-in needs an AssSubtitleStyle")
    ass_content = generate_ass_file(state.style, decode_subtitle_bytes(state.subtitle_file.data))
    return ASS_NAME, ass_content.encode("utf-8")


async def _run(state, session, op):
    # --- validation: no engine interaction before this passes ---
    try:
        _check_inputs(state)
    except MissingInputError as e:
        state.set_error(str(e))
        return None

    try:
        state.style.validate()
        seek_seconds = _preview_seconds(state.preview_timestamp) if op.preview else None
        subtitle_name, subtitle_bytes = _subtitle_payload(state, op)
        vf_filter = build_ass_filter(subtitle_name) if op.rich else build_subtitles_filter(state.style, subtitle_name)
    except (FormatError, ValidationError) as e:
        if op.preview:
            state.fail_preview(str(e), f"{op.label} failed")
        else:
            state.fail_processing(str(e), f"{op.label} failed")
        return None

    # --- engine + font ---
    engine = await session.ensure_ready(state)
    if engine is None:
        return None
    if not await session.ensure_font_staged(engine, state.style.font_index, state):
        return None

    if op.preview:
        state.begin_preview(op.start_message)
        state.release_preview()
    else:
        state.begin_processing(op.start_message)
        state.release_output()

    video_name = f"input.{state.video_file.extension}"
    output_name = PREVIEW_NAME if op.preview else OUTPUT_NAME
    staged = [video_name, subtitle_name, font_staging_path(get_font(state.style.font_index).filename), output_name]

    error = None
    try:
        if not op.preview:
            state.set_message("Loading video file")
        await engine.write_file(video_name, state.video_file.data)
        logger.info(f"Wrote video file: {video_name}")
        if op.rich and not op.preview:
            state.set_message("Generating ASS subtitle file")
        await engine.write_file(subtitle_name, subtitle_bytes)
        logger.info(f"Wrote subtitle file: {subtitle_name}")

        if op.preview:
            await engine.exec(build_preview_args(video_name, seek_seconds, vf_filter))
        else:
            state.set_message(op.burn_message)
            quality = get_quality_preset(state.quality_mode)
            await engine.exec(build_render_args(video_name, vf_filter, quality))
            state.set_message("Generating output")

        data = await engine.read_file(output_name)
        mime_type = "image/png" if op.preview else "video/mp4"
        handle = OutputHandle.create(
            data, mime_type, session.settings.output_dir, ".png" if op.preview else ".mp4"
        )
    except Exception as e:
        logger.exception(f"{op.label} failed")
        error = e
    finally:
        await remove_files_ignoring_errors(engine, staged)

    if error is not None:
        if op.preview:
            state.fail_preview(f"{op.label} failed: {error}", f"{op.label} failed")
        else:
            state.fail_processing(f"{op.label} failed: {error}", f"{op.label} failed")
        return None

    if op.preview:
        message = f"{op.label} rendered at {state.preview_timestamp}"
        result = OperationResult(data=data, mime_type=mime_type, message=message)
        state.finish_preview(handle, message)
    else:
        message = "ASS subtitle processing complete!" if op.rich else "Processing complete!"
        result = OperationResult(data=data, mime_type=mime_type, message=message)
        state.finish_processing(result, handle)
    return result


async def _run_serialized(state, session, op):
    # one operation per session: the engine filesystem uses fixed names
    async with session.lock:
        return await _run(state, session, op)


async def render_frame_preview(state, session):
    """Renders one PNG frame at state.preview_timestamp with force_style subtitles."""
    return await _run_serialized(state, session, _FRAME_PREVIEW)


async def process_subtitles(state, session):
    """Burns the SRT into the whole video using state.quality_mode."""
    return await _run_serialized(state, session, _PROCESS)


async def render_ass_frame_preview(state, session):
    """Renders one PNG frame using a generated ASS script."""
    return await _run_serialized(state, session, _ASS_FRAME_PREVIEW)


async def process_ass_subtitles(state, session):
    """Burns a generated ASS script into the whole video."""
    return await _run_serialized(state, session, _ASS_PROCESS)
