"""
Exception types raised by the HLSMux pipeline.

Every stage of a job raises its own error type so the orchestration layer can
log which stage and which stream failed. The controller wraps whatever reached
it in a single `ProcessingError` before handing it to callers; the original
error stays available as `__cause__`.
"""

from typing import Optional


class HLSMuxError(Exception):
    """Base class for all HLSMux errors."""

    pass


class ProbeError(HLSMuxError):
    """Raised when a container cannot be read or is not a valid media file."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TranscodeError(HLSMuxError):
    """Raised when the media engine fails (or times out) for one stream."""

    def __init__(
        self,
        message: str,
        stream_index: Optional[int] = None,
        stream_type: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message)
        self.stream_index = stream_index
        self.stream_type = stream_type
        self.stderr = stderr


class AssemblyError(HLSMuxError):
    """Raised when a playlist cannot be written to output storage."""

    pass


class ProcessingError(HLSMuxError):
    """
    Aggregate failure of one job, surfaced to the caller.

    `state` is the pipeline state the job was in when it failed.
    """

    def __init__(self, message: str, job_id: str, state: Optional[str] = None):
        super().__init__(message)
        self.job_id = job_id
        self.state = state
