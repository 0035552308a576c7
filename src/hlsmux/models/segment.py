"""Codec decision and segment output models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from hlsmux.models.stream import StreamType


class StreamAction(str, Enum):
    """What to do with a stream."""

    PASSTHROUGH = "passthrough"  # Remux without re-encoding
    TRANSCODE = "transcode"
    SKIP = "skip"  # Unsupported, omitted from output


@dataclass(frozen=True)
class StreamDecision:
    """Result of the codec policy for one stream."""

    action: StreamAction
    target_codec: Optional[str] = None  # Only set when transcoding

    @property
    def is_skip(self) -> bool:
        return self.action == StreamAction.SKIP


@dataclass
class SegmentOutput:
    """Artifacts written for one stream.

    `playlist` is the stream-local playlist file name, relative to the job
    directory, and doubles as the URI in the master playlist.
    """

    stream_type: StreamType
    type_index: int  # Position within its type bucket
    stream_index: int  # Container-native index
    language: str
    playlist: str
    decision: StreamDecision
    files: list[Path] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.playlist} ({self.decision.action.value}, {len(self.files)} files)"
