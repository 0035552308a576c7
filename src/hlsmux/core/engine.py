"""ffprobe/ffmpeg driver used by the analyzer and segment generator."""

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from hlsmux.config import EngineConfig
from hlsmux.exceptions import ProbeError, TranscodeError
from hlsmux.models.stream import StreamType
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)

# ffmpeg per-type codec option
_CODEC_FLAGS = {
    StreamType.VIDEO: "-c:v",
    StreamType.AUDIO: "-c:a",
    StreamType.SUBTITLE: "-c:s",
}


@dataclass
class TranscodeRequest:
    """One ffmpeg invocation producing output for a single mapped stream."""

    source: Path
    stream_index: int
    stream_type: StreamType
    codec: str  # "copy" or an encoder name
    output: Path
    output_format: str  # "hls" or "webvtt"
    segment_pattern: Optional[Path] = None
    segment_duration: Optional[int] = None
    list_size: int = 0


class FFmpegEngine:
    """Run ffprobe and ffmpeg as subprocesses.

    Every failure mode of the external tools (missing binary, non-zero exit,
    timeout, unparsable output) is turned into `ProbeError` or
    `TranscodeError` here, so the rest of the pipeline never sees
    subprocess exceptions.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """Initialize the engine.

        Args:
            config: Engine configuration (binaries and timeouts)
        """
        self.config = config or EngineConfig()

    def probe(self, file_path: Path) -> dict[str, Any]:
        """Return ffprobe's JSON description of a container.

        Args:
            file_path: Path to the container

        Returns:
            Parsed ffprobe output with ``streams`` and ``format`` keys

        Raises:
            ProbeError: If the file is missing or ffprobe fails
        """
        if not file_path.exists():
            raise ProbeError(f"File not found: {file_path}", path=str(file_path))

        cmd = [
            self.config.ffprobe_binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_streams",
            "-show_format",
            str(file_path),
        ]

        logger.debug("Executing ffprobe", file=str(file_path), command=cmd)
        timeout = self.config.probe_timeout_seconds

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=True, timeout=timeout
            )
        except FileNotFoundError as e:
            logger.error("ffprobe not available", binary=self.config.ffprobe_binary)
            raise ProbeError(
                f"ffprobe not found: {self.config.ffprobe_binary}", path=str(file_path)
            ) from e
        except subprocess.TimeoutExpired as e:
            logger.error("ffprobe timeout", file=str(file_path), timeout=timeout)
            raise ProbeError(f"ffprobe timed out after {timeout}s", path=str(file_path)) from e
        except subprocess.CalledProcessError as e:
            logger.error(
                "ffprobe failed",
                file=str(file_path),
                returncode=e.returncode,
                stderr=e.stderr,
            )
            raise ProbeError(
                f"ffprobe exited with status {e.returncode}", path=str(file_path)
            ) from e

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse ffprobe output", file=str(file_path), error=str(e))
            raise ProbeError("Unparsable ffprobe output", path=str(file_path)) from e

        if not isinstance(data, dict) or not isinstance(data.get("streams"), list):
            raise ProbeError("ffprobe reported no stream list", path=str(file_path))

        return data

    def build_command(self, request: TranscodeRequest) -> list[str]:
        """Build the ffmpeg command for a transcode request.

        Args:
            request: Stream, codec and output parameters

        Returns:
            Command list for subprocess
        """
        cmd = [
            self.config.ffmpeg_binary,
            "-nostdin",
            "-v",
            "error",
            "-y",
            "-i",
            str(request.source),
            "-map",
            f"0:{request.stream_index}",
            _CODEC_FLAGS[request.stream_type],
            request.codec,
            "-f",
            request.output_format,
        ]

        if request.output_format == "hls":
            cmd.extend(
                [
                    "-hls_time",
                    str(request.segment_duration),
                    "-hls_list_size",
                    str(request.list_size),
                    "-hls_playlist_type",
                    "vod",
                    "-hls_segment_filename",
                    str(request.segment_pattern),
                ]
            )

        cmd.append(str(request.output))
        return cmd

    def transcode(self, request: TranscodeRequest) -> None:
        """Run ffmpeg for one stream.

        Args:
            request: Stream, codec and output parameters

        Raises:
            TranscodeError: If ffmpeg is missing, fails or times out
        """
        cmd = self.build_command(request)
        timeout = self.config.transcode_timeout_seconds
        context = {
            "file": str(request.source),
            "stream_index": request.stream_index,
            "stream_type": request.stream_type.value,
        }

        logger.debug("Executing ffmpeg", command=cmd, **context)

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as e:
            logger.error("ffmpeg not available", binary=self.config.ffmpeg_binary)
            raise TranscodeError(
                f"ffmpeg not found: {self.config.ffmpeg_binary}",
                stream_index=request.stream_index,
                stream_type=request.stream_type.value,
            ) from e
        except subprocess.TimeoutExpired as e:
            logger.error("ffmpeg timeout", timeout=timeout, **context)
            raise TranscodeError(
                f"ffmpeg timed out after {timeout}s",
                stream_index=request.stream_index,
                stream_type=request.stream_type.value,
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or "")[:500]
            logger.error("ffmpeg failed", returncode=result.returncode, stderr=stderr, **context)
            raise TranscodeError(
                f"ffmpeg exited with status {result.returncode}",
                stream_index=request.stream_index,
                stream_type=request.stream_type.value,
                stderr=stderr,
            )

        if not request.output.exists():
            logger.error("ffmpeg did not create output file", output=str(request.output), **context)
            raise TranscodeError(
                f"ffmpeg did not create {request.output.name}",
                stream_index=request.stream_index,
                stream_type=request.stream_type.value,
            )
