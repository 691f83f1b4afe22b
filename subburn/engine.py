"""
Utility: engine.py
------------------
The transcoding engine the orchestrator drives. `Engine` is the capability
the rest of the package depends on (load / write / exec / read / delete plus
progress and log events); `FFmpegEngine` implements it by running the ffmpeg
executable inside a private scratch directory that acts as the engine's
virtual filesystem.
"""

import asyncio
import shutil
import logging
import tempfile
import weakref
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path

import ffmpeg

from subburn.errors import EngineInitError, ExecutionError

logger = logging.getLogger(__name__)

PROGRESS_EVENT = "progress"
LOG_EVENT = "log"


class Engine(ABC):
    """Capability interface for the external transcoder."""

    def __init__(self):
        self._listeners = {PROGRESS_EVENT: [], LOG_EVENT: []}

    def on(self, event, callback):
        """Subscribes to "progress" ({"progress": 0..1}) or "log" ({"message": str})."""
        if event not in self._listeners:
            raise ValueError(f"Unknown engine event: {event}")
        self._listeners[event].append(callback)

    def _emit(self, event, payload):
        for callback in list(self._listeners[event]):
            callback(payload)

    @abstractmethod
    async def load(self, core_path, probe_path):
        ...

    @abstractmethod
    async def write_file(self, name, data: bytes):
        ...

    @abstractmethod
    async def read_file(self, name) -> bytes:
        ...

    @abstractmethod
    async def delete_file(self, name):
        ...

    @abstractmethod
    async def exec(self, argv):
        ...


class FFmpegEngine(Engine):
    """Runs ffmpeg as a subprocess with its working directory as the filesystem root."""

    def __init__(self, root=None):
        super().__init__()
        if root is None:
            root = tempfile.mkdtemp(prefix="subburn-engine-")
            weakref.finalize(self, shutil.rmtree, root, True)
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._ffmpeg = None
        self._ffprobe = None

    @property
    def loaded(self):
        return self._ffmpeg is not None

    def _path(self, name) -> Path:
        path = (self.root / str(name).lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Path escapes the engine filesystem: {name}")
        return path

    async def load(self, core_path, probe_path):
        try:
            proc = await asyncio.create_subprocess_exec(
                core_path, "-hide_banner", "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as e:
            raise EngineInitError(f"Could not start {core_path}: {e}") from e

        if proc.returncode != 0:
            raise EngineInitError(
                f"{core_path} -version exited with {proc.returncode}: "
                f"{stderr.decode('utf-8', errors='ignore').strip()}"
            )

        banner = stdout.decode("utf-8", errors="ignore").splitlines()
        logger.info(f"Engine loaded: {banner[0] if banner else core_path}")
        self._ffmpeg = core_path
        self._ffprobe = probe_path

    async def write_file(self, name, data: bytes):
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, bytes(data))
        logger.debug(f"Wrote {len(data)} bytes to {name}")

    async def read_file(self, name) -> bytes:
        return await asyncio.to_thread(self._path(name).read_bytes)

    async def delete_file(self, name):
        self._path(name).unlink()

    def _probe_duration(self, argv):
        """Duration (seconds) of the first -i input, or None if it cannot be probed."""
        try:
            input_name = argv[list(argv).index("-i") + 1]
        except (ValueError, IndexError):
            return None
        try:
            info = ffmpeg.probe(str(self._path(input_name)), cmd=self._ffprobe)
            return float(info["format"]["duration"])
        except (ffmpeg.Error, KeyError, ValueError, OSError) as e:
            logger.warning(f"Could not probe duration of '{input_name}': {e}")
            return None

    async def exec(self, argv):
        if not self.loaded:
            raise ExecutionError("Engine is not loaded")

        duration = await asyncio.to_thread(self._probe_duration, argv)
        cmd = [self._ffmpeg, "-hide_banner", "-nostdin", "-nostats", "-progress", "pipe:1", *argv]
        logger.info(f"Running: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self.root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExecutionError(f"Could not start ffmpeg: {e}") from e

        stderr_tail = deque(maxlen=20)

        async def read_progress():
            async for raw_line in proc.stdout:
                line = raw_line.decode("utf-8", errors="replace").strip()
                if line.startswith(("out_time_us=", "out_time_ms=")) and duration:
                    # both keys carry microseconds
                    try:
                        time_s = int(line.split("=", 1)[1]) / 1_000_000
                    except ValueError:
                        continue
                    self._emit(PROGRESS_EVENT, {"progress": max(0.0, min(1.0, time_s / duration))})
                elif line == "progress=end":
                    self._emit(PROGRESS_EVENT, {"progress": 1.0})

        async def read_log():
            async for raw_line in proc.stderr:
                line = raw_line.decode("utf-8", errors="replace").rstrip()
                if not line:
                    continue
                stderr_tail.append(line)
                self._emit(LOG_EVENT, {"message": line})

        await asyncio.gather(read_progress(), read_log())
        returncode = await proc.wait()
        if returncode != 0:
            raise ExecutionError(f"ffmpeg exited with code {returncode}: " + "\n".join(stderr_tail))
