"""Codec compatibility policy."""

from typing import Optional

from hlsmux.config import CodecsConfig
from hlsmux.models.segment import StreamAction, StreamDecision
from hlsmux.models.stream import StreamType


class CodecPolicy:
    """Map a stream's type and codec to a passthrough/transcode/skip decision.

    Pure: no I/O and no state beyond the configured codec table.
    """

    def __init__(self, config: Optional[CodecsConfig] = None):
        """Initialize the policy.

        Args:
            config: Codec configuration (defaults to H.264/AAC/WebVTT)
        """
        config = config or CodecsConfig()
        self.video_passthrough = config.video_passthrough.lower()
        self.video_encoder = config.video_encoder
        self.audio_passthrough = config.audio_passthrough.lower()
        self.audio_encoder = config.audio_encoder
        self.subtitle_format = config.subtitle_format
        self.unsupported_subtitles = frozenset(c.lower() for c in config.unsupported_subtitles)

    def decide(self, stream_type: StreamType, codec: str) -> StreamDecision:
        """Decide what to do with a stream.

        Rules:
        1. Video: copy the baseline codec, re-encode anything else
        2. Audio: copy the target codec, re-encode anything else
        3. Subtitle: skip unsupported codecs, convert the rest to WebVTT

        Args:
            stream_type: Type of the stream
            codec: Codec name reported by ffprobe

        Returns:
            StreamDecision
        """
        codec = (codec or "").lower()

        if stream_type == StreamType.VIDEO:
            if codec == self.video_passthrough:
                return StreamDecision(StreamAction.PASSTHROUGH)
            return StreamDecision(StreamAction.TRANSCODE, self.video_encoder)

        if stream_type == StreamType.AUDIO:
            if codec == self.audio_passthrough:
                return StreamDecision(StreamAction.PASSTHROUGH)
            return StreamDecision(StreamAction.TRANSCODE, self.audio_encoder)

        if stream_type == StreamType.SUBTITLE:
            if codec in self.unsupported_subtitles:
                return StreamDecision(StreamAction.SKIP)
            return StreamDecision(StreamAction.TRANSCODE, self.subtitle_format)

        raise ValueError(f"Unsupported stream type: {stream_type}")


_DEFAULT_POLICY = CodecPolicy()


def decide(stream_type: StreamType, codec: str) -> StreamDecision:
    """Decide with the default codec table."""
    return _DEFAULT_POLICY.decide(stream_type, codec)
