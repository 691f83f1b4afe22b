# subburn/config.py

import os
import tempfile
import logging
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Bundled fonts live next to the repository root
DEFAULT_FONT_BASE = str(Path(__file__).resolve().parent.parent / "fonts")


@dataclass
class Settings:
    """Runtime configuration, read from the environment (and .env)."""
    ffmpeg_location: str = "ffmpeg"
    ffprobe_location: str = "ffprobe"
    cache_dir: str = str(Path.home() / ".cache" / "subburn")
    font_base_url: str = DEFAULT_FONT_BASE
    output_dir: str = str(Path(tempfile.gettempdir()) / "subburn-output")
    request_timeout: float = 30.0
    log_file: str = "app.log"


# --- load_settings: .env を読み込んで Settings を生成する ---
def load_settings(dotenv_path=None) -> Settings:
    """Loads .env (if any) and builds Settings from SUBBURN_* variables."""
    load_dotenv(dotenv_path)
    defaults = Settings()

    timeout_raw = os.getenv("SUBBURN_REQUEST_TIMEOUT")
    try:
        timeout = float(timeout_raw) if timeout_raw else defaults.request_timeout
    except ValueError:
        logger.warning(f"Invalid SUBBURN_REQUEST_TIMEOUT '{timeout_raw}', using {defaults.request_timeout}")
        timeout = defaults.request_timeout

    settings = Settings(
        ffmpeg_location=os.getenv("SUBBURN_FFMPEG", defaults.ffmpeg_location),
        ffprobe_location=os.getenv("SUBBURN_FFPROBE", defaults.ffprobe_location),
        cache_dir=os.getenv("SUBBURN_CACHE_DIR", defaults.cache_dir),
        font_base_url=os.getenv("SUBBURN_FONT_BASE_URL", defaults.font_base_url),
        output_dir=os.getenv("SUBBURN_OUTPUT_DIR", defaults.output_dir),
        request_timeout=timeout,
        log_file=os.getenv("SUBBURN_LOG_FILE", defaults.log_file),
    )
    logger.debug(f"Loaded settings: {settings}")
    return settings
