"""Tests for the ffmpeg encoder wrapper."""

import asyncio
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.domain.live.transcoding.encoder import (
    EncodeEventKind,
    EncodeOptions,
    EncodeProcess,
    FfmpegEncoder,
    build_ffmpeg_args,
    parse_progress_line,
)


@pytest.fixture
def options(tmp_path) -> EncodeOptions:
    return EncodeOptions(
        input_url="rtmp://localhost:1935/live/abc123",
        output_dir=str(tmp_path / "s1"),
        output_name="720p",
        width=1280,
        height=720,
        video_bitrate_kbps=2800,
        audio_bitrate_kbps=128,
        frame_rate=30,
    )


async def spawn_python(code: str) -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_exec(
        sys.executable,
        "-c",
        code,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )


async def collect(process: EncodeProcess) -> list:
    return [event async for event in process.events()]


class TestBuildFfmpegArgs:
    def test_rendition_flags(self, options: EncodeOptions):
        args = build_ffmpeg_args("/usr/bin/ffmpeg", options)

        def value_of(flag: str) -> str:
            return args[args.index(flag) + 1]

        assert args[0] == "/usr/bin/ffmpeg"
        assert value_of("-i") == options.input_url
        assert value_of("-c:v") == "libx264"
        assert value_of("-b:v") == "2800k"
        assert value_of("-s") == "1280x720"
        assert value_of("-r") == "30"
        assert value_of("-preset") == "veryfast"
        assert value_of("-profile:v") == "main"
        assert value_of("-level") == "3.1"
        assert value_of("-c:a") == "aac"
        assert value_of("-b:a") == "128k"
        assert value_of("-ar") == "48000"
        assert value_of("-ac") == "2"
        assert value_of("-f") == "hls"
        assert value_of("-hls_time") == "4"
        assert value_of("-hls_list_size") == "10"
        assert value_of("-hls_flags") == "delete_segments+append_list"
        assert value_of("-hls_segment_filename").endswith("720p_%03d.ts")
        assert args[-1] == options.playlist_path
        assert options.playlist_path.endswith("s1/720p.m3u8")


class TestParseProgressLine:
    def test_percent_from_out_time(self):
        assert parse_progress_line("out_time_ms=30000000", 60) == 50

    def test_capped_at_100(self):
        assert parse_progress_line("out_time_ms=90000000", 60) == 100

    def test_unknown_duration(self):
        assert parse_progress_line("out_time_ms=30000000", None) is None

    @pytest.mark.parametrize("line", ["frame=10", "out_time_ms=N/A", "progress=continue"])
    def test_ignored_lines(self, line):
        assert parse_progress_line(line, 60) is None


class TestEncodeProcess:
    async def test_clean_exit_completes(self, options: EncodeOptions):
        process = await spawn_python(
            "print('out_time_ms=10000000'); print('out_time_ms=20000000'); print('progress=end')"
        )
        encode = EncodeProcess(process, options, duration_seconds=40)

        events = await collect(encode)

        kinds = [e.kind for e in events]
        assert kinds[0] == EncodeEventKind.STARTED
        assert [e.percent for e in events if e.kind == EncodeEventKind.PROGRESS] == [25, 50]
        assert kinds[-1] == EncodeEventKind.COMPLETED
        assert events[-1].output_path == options.playlist_path

    async def test_non_zero_exit_fails_with_stderr(self, options: EncodeOptions):
        process = await spawn_python(
            "import sys; sys.stderr.write('rtmp://x: Connection refused\\n'); sys.exit(1)"
        )
        encode = EncodeProcess(process, options)

        events = await collect(encode)

        assert events[-1].kind == EncodeEventKind.FAILED
        assert events[-1].error == "ffmpeg exited with code 1: rtmp://x: Connection refused"

    async def test_kill_fails_the_encode(self, options: EncodeOptions):
        process = await spawn_python("import time; time.sleep(30)")
        encode = EncodeProcess(process, options)

        encode.kill()
        events = await asyncio.wait_for(collect(encode), timeout=10)

        assert events[-1].kind == EncodeEventKind.FAILED
        assert events[-1].error == "encode stopped"


class TestFfmpegEncoder:
    async def test_missing_binary_raises(self, options: EncodeOptions, tmp_path):
        encoder = FfmpegEncoder(str(tmp_path / "no-ffmpeg"))

        with pytest.raises(OSError):
            await encoder.start(options)


def exited_process(returncode: int) -> MagicMock:
    """A subprocess stand-in whose pipes are closed and which already exited."""
    process = MagicMock()
    process.pid = 4242
    process.returncode = returncode
    process.wait = AsyncMock(return_value=returncode)
    for name in ("stdout", "stderr"):
        reader = asyncio.StreamReader()
        reader.feed_eof()
        setattr(process, name, reader)
    return process


class TestKillAfterExit:
    async def test_kill_after_clean_exit_keeps_completion(self, options: EncodeOptions):
        """Test a stop arriving after ffmpeg exited 0 does not turn the result into a failure."""
        process = exited_process(0)
        encode = EncodeProcess(process, options)

        encode.kill()
        events = await asyncio.wait_for(collect(encode), timeout=5)

        assert not encode.killed
        process.kill.assert_not_called()
        assert events[-1].kind == EncodeEventKind.COMPLETED
