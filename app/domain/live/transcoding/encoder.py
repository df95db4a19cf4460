"""ffmpeg HLS encoder driven as a subprocess.

Each running encode reports its lifecycle through an event channel
(an asyncio.Queue): STARTED, PROGRESS*, then exactly one of COMPLETED or FAILED.
"""

import asyncio
import os
from collections import deque
from collections.abc import AsyncIterator
from enum import Enum
from typing import Protocol

from loguru import logger
from pydantic import BaseModel

STDERR_TAIL_LINES = 20


class EncodeOptions(BaseModel):
    """Everything ffmpeg needs to produce one HLS rendition."""

    input_url: str
    output_dir: str
    output_name: str

    width: int
    height: int
    video_bitrate_kbps: int
    audio_bitrate_kbps: int = 128
    frame_rate: int = 30
    preset: str = "veryfast"

    segment_seconds: int = 4
    list_size: int = 10
    hls_flags: str = "delete_segments+append_list"
    audio_sample_rate: int = 48000
    audio_channels: int = 2

    @property
    def playlist_path(self) -> str:
        return os.path.join(self.output_dir, f"{self.output_name}.m3u8")

    @property
    def segment_pattern(self) -> str:
        return os.path.join(self.output_dir, f"{self.output_name}_%03d.ts")


def build_ffmpeg_args(ffmpeg_path: str, options: EncodeOptions) -> list[str]:
    """Build the ffmpeg command line for one rendition (H.264 main 3.1 + AAC, HLS)."""
    return [
        ffmpeg_path,
        "-hide_banner",
        "-nostats",
        "-y",
        "-i",
        options.input_url,
        "-c:v",
        "libx264",
        "-b:v",
        f"{options.video_bitrate_kbps}k",
        "-s",
        f"{options.width}x{options.height}",
        "-r",
        str(options.frame_rate),
        "-preset",
        options.preset or "veryfast",
        "-profile:v",
        "main",
        "-level",
        "3.1",
        "-c:a",
        "aac",
        "-b:a",
        f"{options.audio_bitrate_kbps}k",
        "-ar",
        str(options.audio_sample_rate),
        "-ac",
        str(options.audio_channels),
        "-f",
        "hls",
        "-hls_time",
        str(options.segment_seconds),
        "-hls_list_size",
        str(options.list_size),
        "-hls_flags",
        options.hls_flags,
        "-hls_segment_filename",
        options.segment_pattern,
        "-progress",
        "pipe:1",
        options.playlist_path,
    ]


class EncodeEventKind(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    FAILED = "failed"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


class EncodeEvent(BaseModel):
    kind: EncodeEventKind
    percent: int | None = None
    error: str | None = None
    output_path: str | None = None

    @property
    def is_final(self) -> bool:
        return self.kind in (EncodeEventKind.FAILED, EncodeEventKind.COMPLETED)


class EncodeHandle(Protocol):
    """A running encode as seen by the scheduler."""

    def events(self) -> AsyncIterator[EncodeEvent]: ...

    def kill(self) -> None: ...


class Encoder(Protocol):
    async def start(self, options: EncodeOptions, duration_seconds: float | None = None) -> EncodeHandle: ...


def parse_progress_line(line: str, duration_seconds: float | None) -> int | None:
    """
    Parse one `-progress` line into a percentage.

    ffmpeg reports `out_time_ms=<microseconds>`. Without a known source duration
    (live input) no percentage can be derived.
    """
    if not duration_seconds or duration_seconds <= 0:
        return None
    if not line.startswith("out_time_ms="):
        return None
    try:
        position_us = int(line.split("=", 1)[1])
    except (ValueError, IndexError):
        return None
    if position_us < 0:
        return None
    return min(100, int(position_us / 1_000_000 / duration_seconds * 100))


class EncodeProcess:
    """Watches one ffmpeg subprocess and feeds its event channel."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        options: EncodeOptions,
        duration_seconds: float | None = None,
    ):
        self.process = process
        self.options = options
        self.duration_seconds = duration_seconds
        self.killed = False
        self._events: asyncio.Queue[EncodeEvent] = asyncio.Queue()
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._watcher = asyncio.create_task(self._watch())

    @property
    def pid(self) -> int | None:
        return self.process.pid

    def kill(self) -> None:
        """Kill the subprocess (SIGKILL). The FAILED event follows from the watcher.

        A process that already exited keeps its own result.
        """
        if self.process.returncode is None:
            self.killed = True
            try:
                self.process.kill()
            except (ProcessLookupError, OSError):
                # Process already exited
                pass

    async def events(self) -> AsyncIterator[EncodeEvent]:
        while True:
            event = await self._events.get()
            yield event
            if event.is_final:
                return

    async def _read_progress(self) -> None:
        assert self.process.stdout is not None
        last_percent = -1
        while True:
            line = await self.process.stdout.readline()
            if not line:
                break
            percent = parse_progress_line(line.decode("utf-8", errors="ignore").strip(), self.duration_seconds)
            if percent is not None and percent > last_percent:
                last_percent = percent
                self._events.put_nowait(EncodeEvent(kind=EncodeEventKind.PROGRESS, percent=percent))

    async def _drain_stderr(self) -> None:
        # stderr must be drained or a chatty ffmpeg blocks on a full pipe
        assert self.process.stderr is not None
        while True:
            line = await self.process.stderr.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="ignore").strip()
            if text:
                self._stderr_tail.append(text)

    async def _watch(self) -> None:
        self._events.put_nowait(EncodeEvent(kind=EncodeEventKind.STARTED))
        try:
            await asyncio.gather(self._read_progress(), self._drain_stderr())
            returncode = await self.process.wait()
        except Exception as exc:
            logger.exception(f"Encoder watcher failed for {self.options.playlist_path}")
            self.kill()
            self._events.put_nowait(EncodeEvent(kind=EncodeEventKind.FAILED, error=f"encoder watcher failed: {exc}"))
            return

        if returncode == 0 and not self.killed:
            self._events.put_nowait(
                EncodeEvent(kind=EncodeEventKind.COMPLETED, output_path=self.options.playlist_path)
            )
            return

        if self.killed:
            error = "encode stopped"
        else:
            error = f"ffmpeg exited with code {returncode}"
            if self._stderr_tail:
                error = f"{error}: {self._stderr_tail[-1]}"
        self._events.put_nowait(EncodeEvent(kind=EncodeEventKind.FAILED, error=error))


class FfmpegEncoder:
    """Spawns ffmpeg subprocesses for HLS renditions."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    async def start(self, options: EncodeOptions, duration_seconds: float | None = None) -> EncodeProcess:
        """
        Spawn ffmpeg for one rendition.

        Raises:
            OSError: If the ffmpeg binary cannot be executed
        """
        os.makedirs(options.output_dir, exist_ok=True)
        args = build_ffmpeg_args(self.ffmpeg_path, options)
        logger.debug(f"Spawning ffmpeg: {' '.join(args)}")

        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        logger.info(f"ffmpeg started pid={process.pid} output={options.playlist_path}")
        return EncodeProcess(process, options, duration_seconds)
