# tests/conftest.py
import pytest

from subburn.config import Settings
from subburn.engine import Engine
from subburn.errors import ExecutionError
from subburn.session import EngineSession
from subburn.state import MediaInput, create_initial_state
from subburn.style_utils import AssSubtitleStyle, SubtitleStyle

SAMPLE_SRT = b"""1
00:00:00,000 --> 00:00:02,000
Hello {world}

2
00:00:03,500 --> 00:00:05,000
Second line
"""


class FakeEngine(Engine):
    """In-memory engine that records every call in order."""

    def __init__(self, fail_exec=False, produce_output=True, fail_delete=()):
        super().__init__()
        self.files = {}
        self.calls = []
        self.loaded = False
        self.fail_exec = fail_exec
        self.produce_output = produce_output
        self.fail_delete = set(fail_delete)

    async def load(self, core_path, probe_path):
        self.calls.append(("load", core_path, probe_path))
        self.loaded = True

    async def write_file(self, name, data):
        self.calls.append(("write", name))
        self.files[name] = bytes(data)

    async def read_file(self, name):
        self.calls.append(("read", name))
        if name not in self.files:
            raise FileNotFoundError(name)
        return self.files[name]

    async def delete_file(self, name):
        self.calls.append(("delete", name))
        if name in self.fail_delete:
            raise OSError(f"cannot delete {name}")
        if name not in self.files:
            raise FileNotFoundError(name)
        del self.files[name]

    async def exec(self, argv):
        self.calls.append(("exec", list(argv)))
        self._emit("log", {"message": "ffmpeg version fake"})
        self._emit("progress", {"progress": 0.5})
        if self.fail_exec:
            raise ExecutionError("ffmpeg exited with code 1")
        self._emit("progress", {"progress": 1.0})
        if self.produce_output:
            output = argv[-1]
            video = argv[argv.index("-i") + 1]
            self.files[output] = b"OUT:" + self.files[video]


@pytest.fixture
def font_dir(tmp_path):
    fonts = tmp_path / "fonts"
    fonts.mkdir()
    (fonts / "Roboto.ttf").write_bytes(b"roboto-font")
    (fonts / "OpenSans.ttf").write_bytes(b"opensans-font")
    return fonts


@pytest.fixture
def settings(tmp_path, font_dir):
    ffmpeg_bin = tmp_path / "ffmpeg"
    ffprobe_bin = tmp_path / "ffprobe"
    ffmpeg_bin.write_text("#!/bin/sh\n")
    ffprobe_bin.write_text("#!/bin/sh\n")
    return Settings(
        ffmpeg_location=str(ffmpeg_bin),
        ffprobe_location=str(ffprobe_bin),
        cache_dir=str(tmp_path / "cache"),
        font_base_url=str(font_dir),
        output_dir=str(tmp_path / "out"),
    )


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def session(settings, fake_engine):
    return EngineSession(settings, engine_factory=lambda: fake_engine)


def _with_inputs(state):
    state.set_inputs(
        MediaInput("clip.mov", b"VIDEO-BYTES"),
        MediaInput("clip.srt", SAMPLE_SRT),
    )
    return state


@pytest.fixture
def srt_state():
    return _with_inputs(create_initial_state(SubtitleStyle()))


@pytest.fixture
def ass_state():
    return _with_inputs(create_initial_state(AssSubtitleStyle()))
