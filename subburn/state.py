"""
Utility: state.py
-----------------
Explicit processing state shared between the orchestrator and the UI.
Every change goes through a named method so the invariants are checked
where the change happens, and listeners (the Streamlit progress widgets)
are notified after each one.
"""

import os
import time
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from subburn.style_utils import SubtitleStyle

logger = logging.getLogger(__name__)

READY_MESSAGE = "Ready to process"


@dataclass
class MediaInput:
    """An uploaded file: original name plus its bytes."""
    name: str
    data: bytes

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lstrip(".") or "mp4"


@dataclass
class OperationResult:
    data: bytes
    mime_type: str
    message: str


class OutputHandle:
    """
    Caller-facing handle for a rendered payload, backed by a file in the
    output directory. The owner must release() it before replacing it.
    """

    def __init__(self, path, mime_type):
        self.path = Path(path)
        self.mime_type = mime_type
        self.released = False

    @classmethod
    def create(cls, data: bytes, mime_type, out_dir, suffix):
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        fd, path = tempfile.mkstemp(prefix="subburn-", suffix=suffix, dir=out_dir)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        logger.info(f"Created output handle {path} ({mime_type}, {len(data)} bytes)")
        return cls(path, mime_type)

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def release(self):
        if self.released:
            return
        self.released = True
        try:
            self.path.unlink()
            logger.info(f"Released output handle {self.path}")
        except FileNotFoundError:
            pass

    def __repr__(self):
        return f"OutputHandle({str(self.path)!r}, {self.mime_type!r}, released={self.released})"


@dataclass
class ProcessingState:
    is_processing: bool = False
    is_rendering_preview: bool = False
    progress: int = 0
    output: Optional[OperationResult] = None
    output_handle: Optional[OutputHandle] = None
    preview_handle: Optional[OutputHandle] = None
    message: str = READY_MESSAGE
    error_message: Optional[str] = None
    processing_start_time: Optional[float] = None
    quality_mode: str = "preview"
    style: SubtitleStyle = field(default_factory=SubtitleStyle)
    preview_timestamp: str = "00:00:05"
    video_file: Optional[MediaInput] = None
    subtitle_file: Optional[MediaInput] = None
    _listeners: List[Callable] = field(default_factory=list, repr=False, compare=False)

    # --- listeners ---
    def subscribe(self, listener):
        """listener(state) is called after every mutation."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _changed(self):
        for listener in list(self._listeners):
            listener(self)

    # --- single-field updates ---
    def set_message(self, message):
        self.message = message
        logger.info(message)
        self._changed()

    def set_error(self, error_message):
        self.error_message = error_message
        logger.error(error_message)
        self._changed()

    def set_progress(self, progress):
        self.progress = max(0, min(100, int(progress)))
        self._changed()

    def set_inputs(self, video_file=None, subtitle_file=None):
        self.video_file = video_file
        self.subtitle_file = subtitle_file
        self._changed()

    # --- operation lifecycle ---
    def begin_preview(self, message):
        self.is_rendering_preview = True
        self.progress = 0
        self.error_message = None
        self.message = message
        self._changed()

    def begin_processing(self, message):
        self.is_processing = True
        self.processing_start_time = time.time()
        self.progress = 0
        self.error_message = None
        self.message = message
        self.output = None
        self._changed()

    def release_preview(self):
        if self.preview_handle is not None:
            self.preview_handle.release()
            self.preview_handle = None

    def release_output(self):
        if self.output_handle is not None:
            self.output_handle.release()
            self.output_handle = None

    def finish_preview(self, handle, message):
        if self.preview_handle is not None and self.preview_handle is not handle:
            self.preview_handle.release()
        self.preview_handle = handle
        self.is_rendering_preview = False
        self.progress = 100
        self.message = message
        self._changed()

    def finish_processing(self, result, handle):
        if self.output_handle is not None and self.output_handle is not handle:
            self.output_handle.release()
        self.output = result
        self.output_handle = handle
        self.is_processing = False
        self.progress = 100
        self.message = result.message
        self._changed()

    def fail_preview(self, error_message, message):
        self.error_message = error_message
        self.message = message
        self.is_rendering_preview = False
        self.progress = 0
        logger.error(error_message)
        self._changed()

    def fail_processing(self, error_message, message):
        self.error_message = error_message
        self.message = message
        self.is_processing = False
        self.processing_start_time = None
        self.progress = 0
        logger.error(error_message)
        self._changed()


def create_initial_state(style=None) -> ProcessingState:
    return ProcessingState(style=style if style is not None else SubtitleStyle())


# --- reset_output: 出力と入力をクリアして初期表示に戻す ---
def reset_output(state: ProcessingState):
    state.release_output()
    state.release_preview()
    state.output = None
    state.error_message = None
    state.progress = 0
    state.message = READY_MESSAGE
    state.video_file = None
    state.subtitle_file = None
    state._changed()


def download_name(video_name=None) -> str:
    """subtitled-<stem>.mp4, or subtitled-video.mp4 without a source name."""
    stem = Path(video_name).stem if video_name else ""
    return f"subtitled-{stem or 'video'}.mp4"
