"""Stream inventory extraction using ffprobe."""

from pathlib import Path
from typing import Any, Optional

from hlsmux.core.engine import FFmpegEngine
from hlsmux.models.stream import StreamDescriptor, StreamInventory, StreamType
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)

_TYPES = {t.value: t for t in StreamType}


class StreamAnalyzer:
    """Classify the elementary streams of a container."""

    def __init__(self, engine: Optional[FFmpegEngine] = None):
        self.engine = engine or FFmpegEngine()

    def inspect(self, file_path: Path) -> StreamInventory:
        """Probe a container once and bucket its streams by type.

        Data, attachment and other stream types are dropped. Within each
        bucket streams keep their container order.

        Args:
            file_path: Path to the container

        Returns:
            StreamInventory

        Raises:
            ProbeError: If the container can't be probed
        """
        logger.debug("Analyzing streams", file=str(file_path))

        data = self.engine.probe(file_path)
        inventory = StreamInventory(duration=_parse_duration(data.get("format", {})))

        for position, stream in enumerate(data["streams"]):
            codec_type = stream.get("codec_type")
            stream_type = _TYPES.get(codec_type)
            index = stream.get("index", position)

            if stream_type is None:
                logger.debug(
                    "Ignoring stream",
                    file=str(file_path),
                    stream_index=index,
                    codec_type=codec_type,
                )
                continue

            tags = stream.get("tags") or {}
            descriptor = StreamDescriptor(
                index=index,
                stream_type=stream_type,
                codec=stream.get("codec_name", "unknown"),
                language=tags.get("language") or "und",
                title=tags.get("title"),
            )
            inventory.streams_of(stream_type).append(descriptor)

        for bucket in (inventory.video, inventory.audio, inventory.subtitle):
            bucket.sort(key=lambda d: d.index)

        logger.info(
            "Streams analyzed",
            file=str(file_path),
            video=[d.codec for d in inventory.video],
            audio=[d.codec for d in inventory.audio],
            subtitle=[d.codec for d in inventory.subtitle],
            languages=[d.language for d in inventory.audio],
            duration=inventory.duration,
        )

        return inventory


def _parse_duration(fmt: Any) -> Optional[float]:
    """Read ``format.duration``; ffprobe reports it as a string."""
    if not isinstance(fmt, dict):
        return None
    try:
        duration = float(fmt.get("duration"))
    except (TypeError, ValueError):
        return None
    return duration if duration > 0 else None
