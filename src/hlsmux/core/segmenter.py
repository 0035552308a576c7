"""Per-stream HLS segment generation."""

import math
from pathlib import Path
from typing import Optional

from hlsmux.config import ManifestConfig, SegmentConfig
from hlsmux.core.engine import FFmpegEngine, TranscodeRequest
from hlsmux.exceptions import AssemblyError
from hlsmux.models.segment import SegmentOutput, StreamAction, StreamDecision
from hlsmux.models.stream import StreamDescriptor, StreamType
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)

# File name prefix per stream type
PREFIXES = {
    StreamType.VIDEO: "video",
    StreamType.AUDIO: "audio",
    StreamType.SUBTITLE: "sub",
}


class SegmentGenerator:
    """Drive the media engine to produce the output of one stream."""

    def __init__(
        self,
        engine: Optional[FFmpegEngine] = None,
        segments: Optional[SegmentConfig] = None,
        manifest: Optional[ManifestConfig] = None,
    ):
        self.engine = engine or FFmpegEngine()
        self.segments = segments or SegmentConfig()
        self.playlist_version = (manifest or ManifestConfig()).version

    def generate(
        self,
        source_path: Path,
        descriptor: StreamDescriptor,
        decision: StreamDecision,
        type_index: int,
        output_dir: Path,
        duration: Optional[float] = None,
    ) -> SegmentOutput:
        """Produce the segmented output for one stream.

        Video and audio streams become an HLS media playlist plus ``.ts``
        segments. Subtitle streams become a single WebVTT file wrapped in a
        one-segment playlist written here rather than by ffmpeg.

        Args:
            source_path: Container being processed
            descriptor: Stream to map
            decision: Passthrough or transcode decision for the stream
            type_index: Position of the stream within its type bucket
            output_dir: Job output directory
            duration: Container duration, used for subtitle playlists

        Returns:
            SegmentOutput describing the written files

        Raises:
            ValueError: If called with a skip decision
            TranscodeError: If the media engine fails
            AssemblyError: If the subtitle playlist can't be written
        """
        if decision.is_skip:
            raise ValueError(f"Stream {descriptor.index} is marked skip; nothing to generate")

        logger.info(
            "Generating stream",
            file=str(source_path),
            stream_index=descriptor.index,
            stream_type=descriptor.stream_type.value,
            type_index=type_index,
            action=decision.action.value,
            codec=descriptor.codec,
            target_codec=decision.target_codec,
        )

        if descriptor.stream_type == StreamType.SUBTITLE:
            return self._generate_subtitle(
                source_path, descriptor, decision, type_index, output_dir, duration
            )
        return self._generate_segmented(source_path, descriptor, decision, type_index, output_dir)

    def discard(self, stream_type: StreamType, type_index: int, output_dir: Path) -> list[Path]:
        """Remove whatever a failed `generate` call left behind for one stream.

        Args:
            stream_type: Type of the failed stream
            type_index: Position of the stream within its type bucket
            output_dir: Job output directory

        Returns:
            Paths that were removed
        """
        base = f"{PREFIXES[stream_type]}_{type_index}"
        candidates = [output_dir / f"{base}.m3u8", output_dir / f"{base}.vtt"]
        candidates.extend(output_dir.glob(f"{base}_*.ts"))

        removed = []
        for path in candidates:
            if not path.exists():
                continue
            try:
                path.unlink()
                removed.append(path)
            except OSError as e:
                logger.warning("Failed to cleanup file", file=str(path), error=str(e))

        if removed:
            logger.debug("Partial stream output removed", stream=base, files=len(removed))
        return removed

    def _generate_segmented(
        self,
        source_path: Path,
        descriptor: StreamDescriptor,
        decision: StreamDecision,
        type_index: int,
        output_dir: Path,
    ) -> SegmentOutput:
        base = f"{PREFIXES[descriptor.stream_type]}_{type_index}"
        playlist = output_dir / f"{base}.m3u8"

        request = TranscodeRequest(
            source=source_path,
            stream_index=descriptor.index,
            stream_type=descriptor.stream_type,
            codec="copy" if decision.action == StreamAction.PASSTHROUGH else decision.target_codec,
            output=playlist,
            output_format="hls",
            segment_pattern=output_dir / f"{base}_%03d.ts",
            segment_duration=self.segments.target_duration,
            list_size=self.segments.list_size,
        )
        self.engine.transcode(request)

        segments = sorted(output_dir.glob(f"{base}_*.ts"))
        logger.debug(
            "Segments written",
            playlist=playlist.name,
            segment_count=len(segments),
        )

        return SegmentOutput(
            stream_type=descriptor.stream_type,
            type_index=type_index,
            stream_index=descriptor.index,
            language=descriptor.language,
            playlist=playlist.name,
            decision=decision,
            files=[playlist, *segments],
        )

    def _generate_subtitle(
        self,
        source_path: Path,
        descriptor: StreamDescriptor,
        decision: StreamDecision,
        type_index: int,
        output_dir: Path,
        duration: Optional[float],
    ) -> SegmentOutput:
        base = f"{PREFIXES[StreamType.SUBTITLE]}_{type_index}"
        track = output_dir / f"{base}.vtt"
        playlist = output_dir / f"{base}.m3u8"

        request = TranscodeRequest(
            source=source_path,
            stream_index=descriptor.index,
            stream_type=StreamType.SUBTITLE,
            codec=decision.target_codec,
            output=track,
            output_format=decision.target_codec,
        )
        self.engine.transcode(request)

        content = self.subtitle_playlist(track.name, duration)
        try:
            playlist.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write subtitle playlist", playlist=str(playlist), error=str(e))
            raise AssemblyError(f"Could not write {playlist.name}: {e}") from e

        return SegmentOutput(
            stream_type=StreamType.SUBTITLE,
            type_index=type_index,
            stream_index=descriptor.index,
            language=descriptor.language,
            playlist=playlist.name,
            decision=decision,
            files=[track, playlist],
        )

    def subtitle_playlist(self, track_name: str, duration: Optional[float]) -> str:
        """Build a single-segment VOD playlist covering the whole track.

        Args:
            track_name: File name of the WebVTT track
            duration: Container duration in seconds, if known

        Returns:
            Playlist text
        """
        seconds = math.ceil(duration) if duration else self.segments.subtitle_fallback_duration
        lines = [
            "#EXTM3U",
            f"#EXT-X-VERSION:{self.playlist_version}",
            f"#EXT-X-TARGETDURATION:{seconds}",
            "#EXT-X-MEDIA-SEQUENCE:0",
            "#EXT-X-PLAYLIST-TYPE:VOD",
            f"#EXTINF:{seconds},",
            track_name,
            "#EXT-X-ENDLIST",
        ]
        return "\n".join(lines) + "\n"
