# subburn/session.py

import asyncio
import logging
from enum import Enum

import requests

from subburn.config import Settings
from subburn.engine import FFmpegEngine, PROGRESS_EVENT, LOG_EVENT
from subburn.errors import EngineInitError, AssetLoadError
from subburn.fetch_utils import fetch_bytes, join_location, resolve_executable
from subburn.font_catalog import get_font

logger = logging.getLogger(__name__)

# Directory inside the engine filesystem that holds staged fonts
FONTS_DIR = "fonts"


class EngineStatus(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def font_staging_path(filename):
    return f"{FONTS_DIR}/{filename}"


class EngineSession:
    """
    Owns the one engine instance for the process.

    The engine is created lazily on the first ensure_ready() and reused from
    then on. A failed load leaves the session uninitialized so that the next
    call starts from scratch.
    """

    def __init__(self, settings=None, engine_factory=FFmpegEngine):
        self.settings = settings or Settings()
        self.engine_factory = engine_factory
        self.engine = None
        self.status = EngineStatus.UNINITIALIZED
        # Held by the orchestrator for a whole operation
        self.lock = asyncio.Lock()
        self._load_lock = asyncio.Lock()
        self._state = None

    # --- engine event routing ---
    def _on_progress(self, event):
        if self._state is not None:
            self._state.set_progress(round(event["progress"] * 100))

    def _on_log(self, event):
        # technical output goes to the log file only
        logger.debug(f"FFmpeg log: {event['message']}")

    async def _bootstrap(self, state):
        settings = self.settings
        try:
            state.set_message("Fetching FFmpeg core")
            core_path, probe_path = await asyncio.gather(
                asyncio.to_thread(resolve_executable, settings.ffmpeg_location, settings.cache_dir, settings.request_timeout),
                asyncio.to_thread(resolve_executable, settings.ffprobe_location, settings.cache_dir, settings.request_timeout),
            )
        except (requests.RequestException, OSError) as e:
            raise EngineInitError(f"Could not fetch engine core: {e}") from e

        state.set_message("Loading FFmpeg core")
        try:
            engine = self.engine_factory()
            engine.on(PROGRESS_EVENT, self._on_progress)
            engine.on(LOG_EVENT, self._on_log)
            await engine.load(core_path, probe_path)
        except EngineInitError:
            raise
        except Exception as e:
            raise EngineInitError(f"Engine load failed: {e}") from e
        return engine

    # --- ensure_ready: エンジンを読み込み済みにして返す ---
    async def ensure_ready(self, state):
        """
        Returns the ready engine, loading it on first use.

        Returns None when loading failed; the error has already been written
        to state and the session is back to UNINITIALIZED.
        """
        self._state = state
        async with self._load_lock:
            if self.status is EngineStatus.READY and self.engine is not None:
                return self.engine

            self.status = EngineStatus.LOADING
            try:
                self.engine = await self._bootstrap(state)
            except EngineInitError as e:
                self.status = EngineStatus.FAILED
                logger.error(f"Failed to load FFmpeg: {e}")
                state.set_error("Failed to initialize FFmpeg")
                state.set_message("FFmpeg load failed")
                self.engine = None
                self.status = EngineStatus.UNINITIALIZED
                return None

            self.status = EngineStatus.READY
            state.set_message("FFmpeg loaded successfully")
            return self.engine

    # --- ensure_font_staged: 選択フォントをエンジンの fonts/ に書き込む ---
    async def ensure_font_staged(self, engine, font_index, state) -> bool:
        """
        Fetches the catalog font and writes it to fonts/<filename>.

        Returns False (with the error recorded on state) if the font cannot
        be fetched or written; the caller must abort the operation.
        """
        if engine is None:
            return False

        font_label = str(font_index)
        try:
            try:
                font = get_font(font_index)
            except IndexError as e:
                raise AssetLoadError(str(e)) from e
            font_label = font.name

            state.set_message(f"Loading font: {font.name}")
            location = join_location(self.settings.font_base_url, font.url)
            try:
                font_bytes = await asyncio.to_thread(fetch_bytes, location, self.settings.request_timeout)
            except (requests.RequestException, OSError) as e:
                raise AssetLoadError(f"Failed to fetch font: {e}") from e

            try:
                await engine.write_file(font_staging_path(font.filename), font_bytes)
            except Exception as e:
                raise AssetLoadError(f"Failed to stage font: {e}") from e
        except AssetLoadError as e:
            state.set_error(f"Failed to load font {font_label}: {e}")
            state.set_message("Font load failed")
            return False

        logger.info(f"Font {font.name} staged to {FONTS_DIR}/")
        return True
