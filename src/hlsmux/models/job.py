"""Job identity and result models."""

import re
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

MASTER_PLAYLIST = "master.m3u8"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_JOB_ID = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


class JobState(str, Enum):
    """Pipeline states of one job."""

    ANALYZING = "analyzing"
    GENERATING_VIDEO = "generating_video"
    GENERATING_AUDIO = "generating_audio"
    GENERATING_SUBTITLES = "generating_subtitles"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED)


def sanitize_name(name: str) -> str:
    """Reduce an uploaded file name to a safe directory-name fragment."""
    stem = Path(name).stem
    cleaned = _UNSAFE_CHARS.sub("_", stem).strip("._")
    return cleaned or "media"


def new_job_id(original_name: str) -> str:
    """Derive a unique job identifier from submission time and file name.

    Format: ``<epoch-ms>-<8 hex chars>-<sanitized stem>``. The random part
    keeps two submissions within the same millisecond apart.
    """
    millis = int(time.time() * 1000)
    return f"{millis}-{secrets.token_hex(4)}-{sanitize_name(original_name)}"


def validate_job_id(job_id: str) -> str:
    """Check that a caller-supplied job id is a single safe path component.

    Raises:
        ValueError: If the id is empty, starts with a dot or holds a separator
    """
    if not _JOB_ID.fullmatch(job_id):
        raise ValueError(f"Invalid job id {job_id!r}: use letters, digits, '.', '_' or '-'")
    return job_id


@dataclass(frozen=True)
class SourceMedia:
    """One submitted container."""

    path: Path
    job_id: str

    @classmethod
    def from_path(cls, path: Path, job_id: Optional[str] = None) -> "SourceMedia":
        """Wrap a file path, deriving a fresh job id unless one is given."""
        if job_id is None:
            job_id = new_job_id(Path(path).name)
        return cls(path=Path(path), job_id=validate_job_id(job_id))

    @property
    def manifest_location(self) -> str:
        """Master playlist path relative to the output root."""
        return f"{self.job_id}/{MASTER_PLAYLIST}"


@dataclass
class ProcessResult:
    """Outcome of processing one container."""

    job_id: str
    state: JobState
    manifest: Optional[str] = None  # Relative path of master playlist
    video_count: int = 0
    audio_count: int = 0
    subtitle_count: int = 0
    skipped_streams: list[int] = field(default_factory=list)
    failed_streams: list[int] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state == JobState.DONE

    def __str__(self) -> str:
        """Human-readable representation."""
        if self.success:
            counts = f"{self.video_count}v/{self.audio_count}a/{self.subtitle_count}s"
            skipped = f", {len(self.skipped_streams)} skipped" if self.skipped_streams else ""
            failed = f", {len(self.failed_streams)} failed" if self.failed_streams else ""
            return f"✓ {self.manifest} ({counts}{skipped}{failed})"
        return f"✗ {self.job_id}: Failed ({self.error})"
