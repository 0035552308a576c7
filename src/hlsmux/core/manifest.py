"""Master playlist assembly."""

import os
from pathlib import Path
from typing import Iterable, Optional

from hlsmux.config import ManifestConfig
from hlsmux.exceptions import AssemblyError
from hlsmux.models.job import MASTER_PLAYLIST
from hlsmux.models.segment import SegmentOutput
from hlsmux.models.stream import StreamType
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)

# Renditions are declared before the variants that reference their groups
_ORDER = (StreamType.AUDIO, StreamType.SUBTITLE, StreamType.VIDEO)


def _quoted(value: str) -> str:
    """Make a value safe inside a quoted-string attribute."""
    cleaned = value.replace('"', "'").replace("\r", " ").replace("\n", " ")
    return f'"{cleaned}"'


def _rendition_names(bucket: list[SegmentOutput]) -> list[str]:
    """NAME per rendition: the language, numbered from the second repeat on."""
    seen: dict[str, int] = {}
    names = []
    for fragment in bucket:
        seen[fragment.language] = seen.get(fragment.language, 0) + 1
        count = seen[fragment.language]
        names.append(fragment.language if count == 1 else f"{fragment.language} {count}")
    return names


class ManifestAssembler:
    """Build and publish the multi-variant playlist of a job."""

    def __init__(self, config: Optional[ManifestConfig] = None):
        self.config = config or ManifestConfig()

    def assemble(self, fragments: Iterable[SegmentOutput]) -> str:
        """Render the master playlist text.

        Lines are ordered audio, subtitles, video, each by type-local index,
        whatever order the fragments arrive in. The first audio and the first
        subtitle rendition are the defaults.

        Args:
            fragments: Outputs of every generated stream

        Returns:
            Playlist text
        """
        by_type: dict[StreamType, list[SegmentOutput]] = {t: [] for t in _ORDER}
        for fragment in fragments:
            by_type[fragment.stream_type].append(fragment)
        for bucket in by_type.values():
            bucket.sort(key=lambda f: f.type_index)

        lines = ["#EXTM3U", f"#EXT-X-VERSION:{self.config.version}"]

        for media_type, group, stream_type in (
            ("AUDIO", self.config.audio_group, StreamType.AUDIO),
            ("SUBTITLES", self.config.subtitle_group, StreamType.SUBTITLE),
        ):
            bucket = by_type[stream_type]
            for position, (fragment, name) in enumerate(zip(bucket, _rendition_names(bucket))):
                lines.append(self.media_line(media_type, group, fragment, position == 0, name))

        has_audio = bool(by_type[StreamType.AUDIO])
        has_subtitles = bool(by_type[StreamType.SUBTITLE])
        for fragment in by_type[StreamType.VIDEO]:
            lines.append(self.variant_line(has_audio, has_subtitles))
            lines.append(fragment.playlist)

        return "\n".join(lines) + "\n"

    def media_line(
        self,
        media_type: str,
        group: str,
        fragment: SegmentOutput,
        default: bool,
        name: Optional[str] = None,
    ) -> str:
        """Render an EXT-X-MEDIA rendition line. NAME defaults to the language."""
        attributes = [
            f"TYPE={media_type}",
            f"GROUP-ID={_quoted(group)}",
            f"LANGUAGE={_quoted(fragment.language)}",
            f"NAME={_quoted(name or fragment.language)}",
            "AUTOSELECT=YES",
            f"DEFAULT={'YES' if default else 'NO'}",
            f"URI={_quoted(fragment.playlist)}",
        ]
        return "#EXT-X-MEDIA:" + ",".join(attributes)

    def variant_line(self, has_audio: bool, has_subtitles: bool) -> str:
        """Render an EXT-X-STREAM-INF line.

        Group references are only emitted for groups that have renditions.
        """
        attributes = [f"BANDWIDTH={self.config.bandwidth}"]
        if has_audio:
            attributes.append(f"AUDIO={_quoted(self.config.audio_group)}")
        if has_subtitles:
            attributes.append(f"SUBTITLES={_quoted(self.config.subtitle_group)}")
        return "#EXT-X-STREAM-INF:" + ",".join(attributes)

    def write(self, output_dir: Path, content: str) -> Path:
        """Publish the master playlist atomically.

        The text goes to a temporary file first and is renamed into place, so
        readers see either no playlist or the complete one.

        Args:
            output_dir: Job output directory
            content: Playlist text

        Returns:
            Path of the published playlist

        Raises:
            AssemblyError: If the playlist can't be written
        """
        target = output_dir / MASTER_PLAYLIST
        temp_file = output_dir / f"{MASTER_PLAYLIST}.tmp"

        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, target)
        except OSError as e:
            logger.error("Failed to write master playlist", output=str(target), error=str(e))
            try:
                temp_file.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(
                    "Failed to cleanup file", file=str(temp_file), error=str(cleanup_error)
                )
            raise AssemblyError(f"Could not write {target}: {e}") from e

        logger.info("Master playlist written", output=str(target), lines=content.count("\n"))
        return target
