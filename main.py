"""
Streamlit front-end for subburn.
UI のみを保持し、処理ロジックは subburn.burn_utils に委譲します。
"""

# ── Imports ──────────────────────────────────────────────────────────
import asyncio
import logging

import streamlit as st

from subburn.burn_utils import (
    render_frame_preview,
    process_subtitles,
    render_ass_frame_preview,
    process_ass_subtitles,
)
from subburn.config import load_settings
from subburn.font_catalog import load_fonts
from subburn.session import EngineSession
from subburn.state import MediaInput, create_initial_state, download_name, reset_output
from subburn.style_utils import AssSubtitleStyle, SubtitleStyle
from subburn.errors import ValidationError
from subburn.time_utils import estimate_remaining

# ── Initial Setup ────────────────────────────────────────────────────
st.set_page_config(page_title="Subtitle Burner", page_icon="🎬", layout="wide")
settings = load_settings()

logging.basicConfig(
    filename=settings.log_file,
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

FONTS = load_fonts()
POSITIONS = ["bottom", "top", "center"]


# ── Helper UI class ─────────────────────────────────────────────────
class ProgressManager:
    """Renders ProcessingState changes into a Streamlit progress bar."""
    def __init__(self, state):
        self.bar = st.progress(0)
        self.text = st.empty()
        self.state = state
        self.unsubscribe = state.subscribe(self.update)

    def update(self, state):
        self.bar.progress(int(max(0, min(100, state.progress))))
        remaining = estimate_remaining(state.processing_start_time, state.progress) if state.is_processing else ""
        self.text.text(f"{state.message}  {remaining}".strip())

    def close(self):
        self.unsubscribe()


# ── Session State ────────────────────────────────────────────────────
# One engine per Streamlit session; it is loaded on first use and reused
if "engine_session" not in st.session_state:
    st.session_state.engine_session = EngineSession(settings)
if "srt_state" not in st.session_state:
    st.session_state.srt_state = create_initial_state(SubtitleStyle())
if "ass_state" not in st.session_state:
    st.session_state.ass_state = create_initial_state(AssSubtitleStyle())


def run_operation(operation, state):
    prog = ProgressManager(state)
    try:
        asyncio.run(operation(state, st.session_state.engine_session))
    finally:
        prog.close()


def show_results(state):
    if state.error_message:
        st.error(state.error_message)
    if state.preview_handle is not None:
        st.image(state.preview_handle.read_bytes(), caption=state.message)
    if state.output_handle is not None:
        st.success(state.message)
        st.download_button(
            label="ダウンロード: 字幕付き動画",
            data=state.output_handle.read_bytes(),
            file_name=download_name(state.video_file.name if state.video_file else None),
            mime=state.output_handle.mime_type,
        )


def input_section(state, key):
    video = st.file_uploader("動画ファイル", type=["mp4", "mov", "mkv", "avi", "webm"], key=f"{key}_video")
    subtitle = st.file_uploader("字幕ファイル (SRT)", type=["srt"], key=f"{key}_srt")
    state.set_inputs(
        MediaInput(video.name, video.getvalue()) if video else None,
        MediaInput(subtitle.name, subtitle.getvalue()) if subtitle else None,
    )

    col1, col2 = st.columns(2)
    with col1:
        state.preview_timestamp = st.text_input("プレビュー位置 (hh:mm:ss)", state.preview_timestamp, key=f"{key}_ts")
    with col2:
        state.quality_mode = st.selectbox(
            "画質",
            ["preview", "high"],
            index=0 if state.quality_mode == "preview" else 1,
            key=f"{key}_quality",
        )


def font_select(state, key):
    return st.selectbox(
        "フォント",
        range(len(FONTS)),
        index=state.style.font_index,
        format_func=lambda i: FONTS[i].name,
        key=f"{key}_font",
    )


def action_buttons(state, key, preview_op, process_op):
    ready = state.video_file is not None and state.subtitle_file is not None
    busy = state.is_processing or state.is_rendering_preview
    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("プレビュー", disabled=not ready or busy, key=f"{key}_preview"):
            run_operation(preview_op, state)
    with col2:
        if st.button("焼き込み開始", disabled=not ready or busy, key=f"{key}_burn"):
            run_operation(process_op, state)
    with col3:
        if st.button("リセット", key=f"{key}_reset"):
            reset_output(state)
    show_results(state)


# ── UI Tabs ──────────────────────────────────────────────────────────
tab_srt, tab_ass = st.tabs(["🔥 SRT スタイル", "🎨 ASS スタイル"])

# ─────────────────────────────────────────────────────────────────────
# Tab 1 – force_style burn-in
# ─────────────────────────────────────────────────────────────────────
with tab_srt:
    state = st.session_state.srt_state
    input_section(state, "srt")

    col1, col2, col3 = st.columns(3)
    with col1:
        font_index = font_select(state, "srt")
    with col2:
        font_size = st.number_input("フォントサイズ", 1, 200, state.style.font_size, key="srt_size")
    with col3:
        position = st.selectbox("位置", POSITIONS, index=POSITIONS.index(state.style.position), key="srt_pos")
    is_bold = st.checkbox("太字", value=state.style.is_bold, key="srt_bold")
    state.style = SubtitleStyle(font_index=font_index, font_size=int(font_size), is_bold=is_bold, position=position)

    action_buttons(state, "srt", render_frame_preview, process_subtitles)

# ─────────────────────────────────────────────────────────────────────
# Tab 2 – ASS burn-in
# ─────────────────────────────────────────────────────────────────────
with tab_ass:
    state = st.session_state.ass_state
    input_section(state, "ass")
    style = state.style

    col1, col2, col3 = st.columns(3)
    with col1:
        font_index = font_select(state, "ass")
        font_size = st.number_input("フォントサイズ", 1, 300, style.font_size, key="ass_size")
    with col2:
        text_color = st.color_picker("文字色", style.text_color, key="ass_text_color")
        stroke_color = st.color_picker("縁取り色", style.stroke_color, key="ass_stroke_color")
    with col3:
        shadow_blur = st.slider("影のぼかし", 0, 20, style.shadow_blur, key="ass_shadow_blur")
        shadow_opacity = st.slider("影の不透明度", 0, 100, style.shadow_opacity, key="ass_shadow_opacity")
    position_y = st.number_input("下からの位置 (px)", 0, 2160, style.subtitle_position_y, key="ass_pos_y")

    try:
        state.style = AssSubtitleStyle(
            font_index=font_index,
            font_size=int(font_size),
            text_color=text_color,
            stroke_color=stroke_color,
            stroke_size=style.stroke_size,
            shadow_blur=shadow_blur,
            shadow_opacity=shadow_opacity,
            subtitle_position_y=int(position_y),
            subtitle_center_x=style.subtitle_center_x,
        )
    except ValidationError as e:
        st.error(str(e))

    action_buttons(state, "ass", render_ass_frame_preview, process_ass_subtitles)
