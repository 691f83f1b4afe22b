"""End-to-end orchestration against a recording fake engine."""
import asyncio
from pathlib import Path

import pytest
from conftest import FakeEngine

from subburn.burn_utils import (
    process_ass_subtitles,
    process_subtitles,
    remove_files_ignoring_errors,
    render_ass_frame_preview,
    render_frame_preview,
)
from subburn.session import EngineSession
from subburn.state import MediaInput, create_initial_state, download_name, reset_output
from subburn.style_utils import AssSubtitleStyle


def _exec_args(engine):
    return [c[1] for c in engine.calls if c[0] == "exec"]


def test_process_subtitles_end_to_end(srt_state, session, fake_engine):
    srt_state.quality_mode = "preview"
    seen_progress = []
    srt_state.subscribe(lambda s: seen_progress.append(s.progress))

    result = asyncio.run(process_subtitles(srt_state, session))

    assert result.mime_type == "video/mp4"
    assert result.data == b"OUT:VIDEO-BYTES"
    assert srt_state.progress == 100
    assert srt_state.message == "Processing complete!"
    assert srt_state.error_message is None
    assert srt_state.is_processing is False
    assert 50 in seen_progress
    assert Path(srt_state.output_handle.path).read_bytes() == b"OUT:VIDEO-BYTES"
    # nothing left behind in the engine filesystem
    assert fake_engine.files == {}

    [argv] = _exec_args(fake_engine)
    assert argv[:2] == ["-i", "input.mov"]
    assert argv[argv.index("-vf") + 1] == (
        "subtitles=subtitles.srt:fontsdir=fonts:force_style='Fontname=Roboto,FontSize=24,Alignment=2'"
    )
    assert argv[argv.index("-preset") + 1] == "ultrafast"
    assert argv[argv.index("-crf") + 1] == "28"
    assert argv[argv.index("-b:a") + 1] == "128k"
    assert argv[-1] == "output.mp4"


def test_high_quality_render_uses_slow_preset(srt_state, session, fake_engine):
    srt_state.quality_mode = "high"
    asyncio.run(process_subtitles(srt_state, session))
    [argv] = _exec_args(fake_engine)
    assert argv[argv.index("-preset") + 1] == "veryslow"
    assert argv[argv.index("-crf") + 1] == "18"
    assert argv[argv.index("-b:a") + 1] == "320k"


def test_srt_bytes_are_staged_verbatim(srt_state, session, fake_engine):
    staged = {}
    original_exec = fake_engine.exec

    async def capture(argv):
        staged.update(fake_engine.files)
        await original_exec(argv)

    fake_engine.exec = capture
    asyncio.run(process_subtitles(srt_state, session))
    assert staged["subtitles.srt"] == srt_state.subtitle_file.data
    assert staged["fonts/Roboto.ttf"] == b"roboto-font"
    assert staged["input.mov"] == b"VIDEO-BYTES"


def test_frame_preview(srt_state, session, fake_engine):
    srt_state.preview_timestamp = "00:01:05"
    result = asyncio.run(render_frame_preview(srt_state, session))

    assert result.mime_type == "image/png"
    assert srt_state.message == "Frame preview rendered at 00:01:05"
    assert srt_state.is_rendering_preview is False
    assert srt_state.preview_handle is not None
    assert srt_state.output_handle is None
    [argv] = _exec_args(fake_engine)
    assert argv[argv.index("-ss") + 1] == "65"
    assert argv[argv.index("-frames:v") + 1] == "1"
    assert argv[-1] == "preview.png"
    assert fake_engine.files == {}


def test_ass_render_writes_script_and_uses_ass_filter(ass_state, session, fake_engine):
    staged = {}
    original_exec = fake_engine.exec

    async def capture(argv):
        staged.update(fake_engine.files)
        await original_exec(argv)

    fake_engine.exec = capture
    result = asyncio.run(process_ass_subtitles(ass_state, session))

    assert result.mime_type == "video/mp4"
    assert ass_state.message == "ASS subtitle processing complete!"
    script = staged["subtitles.ass"].decode("utf-8")
    assert "Dialogue: 0,0:00:00.00,0:00:02.00,Default,,0,0,0,,Hello \\{world\\}" in script
    assert "Dialogue: 0,0:00:03.00,0:00:05.00,Default,,0,0,0,,Second line" in script
    [argv] = _exec_args(fake_engine)
    vf = argv[argv.index("-vf") + 1]
    assert vf == "ass='subtitles.ass':fontsdir=fonts"
    assert "force_style" not in vf
    assert fake_engine.files == {}


def test_ass_frame_preview(ass_state, session, fake_engine):
    result = asyncio.run(render_ass_frame_preview(ass_state, session))
    assert result.mime_type == "image/png"
    assert ass_state.message == "ASS frame preview rendered at 00:00:05"


def test_missing_inputs_touch_nothing(session, fake_engine):
    state = create_initial_state()
    state.set_inputs(MediaInput("clip.mp4", b"v"), None)
    assert asyncio.run(process_subtitles(state, session)) is None
    assert state.error_message == "Please upload both video and SRT files"
    assert fake_engine.calls == []


def test_negative_preview_timestamp_is_rejected_before_engine(srt_state, session, fake_engine):
    srt_state.preview_timestamp = "-01:00:00"
    assert asyncio.run(render_frame_preview(srt_state, session)) is None
    assert srt_state.error_message == "Timestamp must be positive"
    assert srt_state.is_rendering_preview is False
    assert fake_engine.calls == []


def test_malformed_preview_timestamp(srt_state, session, fake_engine):
    srt_state.preview_timestamp = "5s"
    assert asyncio.run(render_frame_preview(srt_state, session)) is None
    assert "Invalid timestamp format" in srt_state.error_message
    assert fake_engine.calls == []


def test_bad_colour_is_rejected_before_engine(ass_state, session, fake_engine):
    ass_state.style.text_color = "#zzzzzz"
    assert asyncio.run(process_ass_subtitles(ass_state, session)) is None
    assert "Invalid hex color format" in ass_state.error_message
    assert fake_engine.calls == []


def test_mutated_ass_position_is_rejected_before_engine(ass_state, session, fake_engine):
    ass_state.style.position = "left"
    assert asyncio.run(process_ass_subtitles(ass_state, session)) is None
    assert "Unknown position" in ass_state.error_message
    assert ass_state.output_handle is None
    assert fake_engine.calls == []


@pytest.mark.parametrize("field, value", [("shadow_blur", 99), ("shadow_opacity", 500), ("font_size", 0)])
def test_mutated_ass_style_values_are_rejected(ass_state, session, fake_engine, field, value):
    setattr(ass_state.style, field, value)
    assert asyncio.run(render_ass_frame_preview(ass_state, session)) is None
    assert ass_state.error_message
    assert ass_state.is_rendering_preview is False
    assert fake_engine.calls == []


def test_exec_failure_cleans_up_and_keeps_engine(srt_state, settings):
    engine = FakeEngine(fail_exec=True)
    session = EngineSession(settings, engine_factory=lambda: engine)

    assert asyncio.run(process_subtitles(srt_state, session)) is None
    assert srt_state.error_message == "Processing failed: ffmpeg exited with code 1"
    assert srt_state.message == "Processing failed"
    assert srt_state.progress == 0
    assert srt_state.is_processing is False
    assert srt_state.processing_start_time is None
    assert engine.files == {}
    assert session.engine is engine

    # the same engine is reused for the next attempt
    engine.fail_exec = False
    assert asyncio.run(process_subtitles(srt_state, session)) is not None
    assert [c[0] for c in engine.calls].count("load") == 1


def test_cleanup_runs_before_failure_is_reported(srt_state, settings):
    engine = FakeEngine(fail_exec=True)
    session = EngineSession(settings, engine_factory=lambda: engine)
    files_when_failed = []

    def on_change(state):
        if state.error_message and state.error_message.startswith("Processing failed"):
            files_when_failed.append(dict(engine.files))

    srt_state.subscribe(on_change)
    asyncio.run(process_subtitles(srt_state, session))
    assert files_when_failed and files_when_failed[0] == {}


def test_missing_output_is_a_failure(srt_state, settings):
    engine = FakeEngine(produce_output=False)
    session = EngineSession(settings, engine_factory=lambda: engine)
    assert asyncio.run(render_frame_preview(srt_state, session)) is None
    assert srt_state.error_message.startswith("Frame preview failed:")
    assert srt_state.is_rendering_preview is False
    assert engine.files == {}


def test_font_failure_aborts_without_staging(srt_state, session, fake_engine):
    srt_state.style.font_index = 3  # Cairo.ttf is not in the test font directory
    assert asyncio.run(process_subtitles(srt_state, session)) is None
    assert srt_state.error_message.startswith("Failed to load font Cairo")
    assert _exec_args(fake_engine) == []
    assert not any(c[0] == "write" for c in fake_engine.calls)


def test_previous_handle_released_on_repeat(srt_state, session):
    asyncio.run(process_subtitles(srt_state, session))
    first = srt_state.output_handle
    asyncio.run(process_subtitles(srt_state, session))
    second = srt_state.output_handle

    assert first is not second
    assert first.released
    assert not first.path.exists()
    assert second.path.exists()


def test_remove_files_ignoring_errors_continues_past_failures():
    engine = FakeEngine(fail_delete={"b"})
    engine.files = {"a": b"1", "b": b"2", "c": b"3"}
    failed = asyncio.run(remove_files_ignoring_errors(engine, ["a", "b", "missing", "c"]))
    assert failed == ["b", "missing"]
    assert engine.files == {"b": b"2"}


def test_concurrent_operations_serialize(settings):
    engine = FakeEngine()
    session = EngineSession(settings, engine_factory=lambda: engine)

    def make_state(video):
        state = create_initial_state(AssSubtitleStyle())
        state.set_inputs(MediaInput("clip.mp4", video), MediaInput("clip.srt", b""))
        return state

    first, second = make_state(b"FIRST"), make_state(b"SECOND")

    async def scenario():
        return await asyncio.gather(
            process_ass_subtitles(first, session),
            process_ass_subtitles(second, session),
        )

    r1, r2 = asyncio.run(scenario())
    assert r1.data == b"OUT:FIRST"
    assert r2.data == b"OUT:SECOND"

    kinds = [c[0] for c in engine.calls]
    exec_positions = [i for i, k in enumerate(kinds) if k == "exec"]
    assert len(exec_positions) == 2
    # every call of the first operation (cleanup included) precedes the second's writes
    last_delete_of_first = max(i for i in range(exec_positions[1]) if kinds[i] == "delete")
    first_write_of_second = min(i for i in range(last_delete_of_first, len(kinds)) if kinds[i] == "write")
    assert last_delete_of_first < first_write_of_second < exec_positions[1]
    assert engine.files == {}


def test_reset_output_and_download_name(srt_state, session):
    asyncio.run(process_subtitles(srt_state, session))
    handle = srt_state.output_handle
    assert download_name(srt_state.video_file.name) == "subtitled-clip.mp4"
    assert download_name(None) == "subtitled-video.mp4"

    reset_output(srt_state)
    assert handle.released
    assert srt_state.output_handle is None
    assert srt_state.video_file is None
    assert srt_state.message == "Ready to process"
    assert srt_state.progress == 0
