"""Elementary stream data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class StreamType(str, Enum):
    """Elementary stream types the pipeline handles."""

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"


@dataclass(frozen=True)
class StreamDescriptor:
    """One elementary stream reported by ffprobe."""

    index: int  # Container-native stream index
    stream_type: StreamType
    codec: str  # Codec name (e.g., "h264", "ac3", "ass")
    language: str = "und"  # ISO 639-2 language tag
    title: Optional[str] = None

    def __str__(self) -> str:
        """Human-readable representation."""
        title_part = f" ({self.title})" if self.title else ""
        return f"Stream {self.index}: {self.stream_type.value} {self.codec} [{self.language}]{title_part}"


@dataclass
class StreamInventory:
    """Streams of one container, bucketed by type in container order."""

    video: list[StreamDescriptor] = field(default_factory=list)
    audio: list[StreamDescriptor] = field(default_factory=list)
    subtitle: list[StreamDescriptor] = field(default_factory=list)
    duration: Optional[float] = None  # Container duration in seconds

    def streams_of(self, stream_type: StreamType) -> list[StreamDescriptor]:
        """Return the bucket for a stream type."""
        if stream_type == StreamType.VIDEO:
            return self.video
        if stream_type == StreamType.AUDIO:
            return self.audio
        return self.subtitle

    @property
    def total(self) -> int:
        return len(self.video) + len(self.audio) + len(self.subtitle)

    def __str__(self) -> str:
        return (
            f"{len(self.video)} video, {len(self.audio)} audio, "
            f"{len(self.subtitle)} subtitle streams"
        )
