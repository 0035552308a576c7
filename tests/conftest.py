"""Shared pytest fixtures for HLSMux tests."""

import json
import time
from pathlib import Path

import pytest

from hlsmux.config import Config, ProcessingConfig, StorageConfig
from hlsmux.core.engine import FFmpegEngine, TranscodeRequest
from hlsmux.exceptions import ProbeError, TranscodeError


def ffprobe_stream(index, codec_type, codec_name, language=None, title=None):
    """Build one ffprobe stream entry."""
    stream = {"index": index, "codec_type": codec_type, "codec_name": codec_name}
    tags = {}
    if language:
        tags["language"] = language
    if title:
        tags["title"] = title
    if tags:
        stream["tags"] = tags
    return stream


@pytest.fixture
def probe_data():
    """ffprobe output for a typical MKV: 1 video, 2 audio, 2 subtitles, 1 attachment."""
    return {
        "streams": [
            ffprobe_stream(0, "video", "h264"),
            ffprobe_stream(1, "audio", "aac", language="eng"),
            ffprobe_stream(2, "audio", "ac3", language="jpn"),
            ffprobe_stream(3, "subtitle", "ass", language="eng"),
            ffprobe_stream(4, "subtitle", "hdmv_pgs_subtitle", language="jpn"),
            ffprobe_stream(5, "attachment", "ttf"),
        ],
        "format": {"format_name": "matroska,webm", "duration": "1425.360000"},
    }


@pytest.fixture
def probe_output(probe_data):
    """probe_data serialized the way ffprobe prints it."""
    return json.dumps(probe_data)


class FakeEngine(FFmpegEngine):
    """Engine double that records requests and writes placeholder files."""

    def __init__(self, probe_data=None, fail_streams=(), delays=None, probe_error=None):
        super().__init__()
        self.probe_data = probe_data or {"streams": []}
        self.fail_streams = set(fail_streams)
        self.delays = delays or {}
        self.probe_error = probe_error
        self.probe_calls = []
        self.requests: list[TranscodeRequest] = []

    def probe(self, file_path: Path):
        self.probe_calls.append(file_path)
        if self.probe_error:
            raise ProbeError(self.probe_error, path=str(file_path))
        return self.probe_data

    def transcode(self, request: TranscodeRequest) -> None:
        self.requests.append(request)
        time.sleep(self.delays.get(request.stream_index, 0))
        if request.stream_index in self.fail_streams:
            # ffmpeg leaves the segments it managed to write
            if request.output_format == "hls":
                Path(str(request.segment_pattern).replace("%03d", "000")).write_bytes(b"\x47")
            raise TranscodeError(
                "ffmpeg exited with status 1",
                stream_index=request.stream_index,
                stream_type=request.stream_type.value,
            )
        if request.output_format == "hls":
            for sequence in range(2):
                segment = str(request.segment_pattern).replace("%03d", f"{sequence:03d}")
                Path(segment).write_bytes(b"\x47" * 188)
            request.output.write_text("#EXTM3U\n#EXT-X-ENDLIST\n")
        else:
            request.output.write_text("WEBVTT\n")

    def request_for(self, stream_index):
        return next(r for r in self.requests if r.stream_index == stream_index)


@pytest.fixture
def fake_engine(probe_data):
    """Engine double loaded with the sample probe data."""
    return FakeEngine(probe_data)


@pytest.fixture
def source_file(tmp_path):
    """A placeholder container file."""
    path = tmp_path / "uploads" / "movie.mkv"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x1a\x45\xdf\xa3")
    return path


@pytest.fixture
def test_config(tmp_path):
    """Configuration rooted in a temporary directory."""
    return Config(
        storage=StorageConfig(
            upload_dir=str(tmp_path / "uploads"),
            output_dir=str(tmp_path / "output"),
        ),
        processing=ProcessingConfig(worker_count=2),
    )


@pytest.fixture
def make_engine():
    """Factory for engine doubles with custom probe data or failures."""
    return FakeEngine
