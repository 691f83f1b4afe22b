# subburn/fetch_utils.py

import os
import shutil
import stat
import logging
import hashlib
from pathlib import Path
from urllib.parse import urlparse, urljoin

import requests

logger = logging.getLogger(__name__)


def is_valid_url(url):
    """Checks if a string is a valid HTTP/HTTPS URL."""
    if not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def join_location(base, relative):
    """Resolves a catalog entry against a base URL or directory."""
    if is_valid_url(relative) or os.path.isabs(relative):
        return relative
    if is_valid_url(base):
        return urljoin(base.rstrip("/") + "/", relative)
    return str(Path(base) / relative)


# --- fetch_bytes: URL またはローカルパスからバイト列を取得する関数 ---
def fetch_bytes(location, timeout=30.0) -> bytes:
    """
    Downloads an http(s) resource with requests, or reads a local file.

    Raises:
        requests.RequestException: On network or HTTP status failure.
        OSError: When a local file cannot be read.
    """
    if is_valid_url(location):
        logger.info(f"Fetching {location}")
        response = requests.get(location, timeout=timeout)
        response.raise_for_status()
        return response.content

    logger.info(f"Reading local resource {location}")
    return Path(location).read_bytes()


# --- resolve_executable: エンジン本体の実行ファイルを解決する関数 ---
def resolve_executable(location, cache_dir, timeout=30.0) -> str:
    """
    Turns an engine-core location into a runnable path.

    http(s) locations are downloaded once into cache_dir and marked
    executable; anything else must be an existing file or a command on PATH.
    """
    if is_valid_url(location):
        digest = hashlib.sha1(location.encode("utf-8")).hexdigest()[:12]
        name = Path(urlparse(location).path).name or "engine"
        target = Path(cache_dir) / f"{digest}_{name}"
        if not target.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
            data = fetch_bytes(location, timeout=timeout)
            tmp = target.with_suffix(target.suffix + ".part")
            tmp.write_bytes(data)
            tmp.replace(target)
            logger.info(f"Cached engine resource {location} -> {target}")
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(target)

    if os.path.isfile(location):
        return location

    found = shutil.which(location)
    if found:
        return found
    raise FileNotFoundError(f"Engine resource not found: {location}")
