"""Configuration management for HLSMux."""

import os
import re
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class StorageConfig(BaseModel):
    """Root directories for uploads and generated renditions."""

    upload_dir: str = Field(default="./uploads", description="Where uploaded containers are stored")
    output_dir: str = Field(default="./output", description="Root of per-job HLS output directories")

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir)

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)


class EngineConfig(BaseModel):
    """Media engine (ffmpeg/ffprobe) configuration."""

    ffmpeg_binary: str = Field(default="ffmpeg", description="ffmpeg executable")
    ffprobe_binary: str = Field(default="ffprobe", description="ffprobe executable")
    probe_timeout_seconds: int = Field(default=30, description="Timeout for a single probe")
    transcode_timeout_seconds: int = Field(
        default=3600, description="Timeout for a single stream transcode/remux"
    )

    @field_validator("probe_timeout_seconds", "transcode_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Timeouts must be positive."""
        if v <= 0:
            raise ValueError("Timeout must be greater than zero")
        return v


class SegmentConfig(BaseModel):
    """HLS segmenting parameters."""

    target_duration: int = Field(default=10, description="Segment target duration (seconds)")
    list_size: int = Field(default=0, description="Playlist size, 0 keeps every segment (VOD)")
    subtitle_fallback_duration: int = Field(
        default=86400,
        description="Subtitle playlist duration when the container duration is unknown",
    )

    @field_validator("target_duration", "subtitle_fallback_duration")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("Duration must be greater than zero")
        return v


class CodecsConfig(BaseModel):
    """Codec compatibility policy."""

    video_passthrough: str = Field(default="h264", description="Video codec copied as-is")
    video_encoder: str = Field(default="libx264", description="Encoder for other video codecs")
    audio_passthrough: str = Field(default="aac", description="Audio codec copied as-is")
    audio_encoder: str = Field(default="aac", description="Encoder for other audio codecs")
    subtitle_format: str = Field(default="webvtt", description="Output subtitle format")
    unsupported_subtitles: List[str] = Field(
        default=["hdmv_pgs_subtitle", "subrip", "dvd_subtitle", "dvb_subtitle", "xsub"],
        description="Subtitle codecs that are skipped entirely",
    )


class ManifestConfig(BaseModel):
    """Master playlist configuration."""

    bandwidth: int = Field(default=4_000_000, description="Nominal BANDWIDTH of every variant")
    audio_group: str = Field(default="audio", description="GROUP-ID for audio renditions")
    subtitle_group: str = Field(default="subs", description="GROUP-ID for subtitle renditions")
    version: int = Field(default=3, description="EXT-X-VERSION written to playlists")

    @field_validator("bandwidth")
    @classmethod
    def validate_bandwidth(cls, v: int) -> int:
        """Bandwidth must be present and non-zero."""
        if v <= 0:
            raise ValueError("Bandwidth must be greater than zero")
        return v


class ProcessingConfig(BaseModel):
    """Processing configuration."""

    worker_count: int = Field(default=2, description="Streams generated concurrently per type")
    isolate_stream_failures: bool = Field(
        default=False,
        description="Drop failed streams instead of failing the job",
    )

    @field_validator("worker_count")
    @classmethod
    def validate_worker_count(cls, v: int) -> int:
        """At least one worker is required."""
        if v < 1:
            raise ValueError("worker_count must be at least 1")
        return v


class APIConfig(BaseModel):
    """API server configuration."""

    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=3000, description="API port")
    streams_prefix: str = Field(default="/streams", description="URL prefix of the output tree")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="info", description="Log level")
    output: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class Config(BaseModel):
    """Main configuration model."""

    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage roots")
    engine: EngineConfig = Field(default_factory=EngineConfig, description="Media engine")
    segments: SegmentConfig = Field(default_factory=SegmentConfig, description="Segmenting")
    codecs: CodecsConfig = Field(default_factory=CodecsConfig, description="Codec policy")
    manifest: ManifestConfig = Field(default_factory=ManifestConfig, description="Master playlist")
    processing: ProcessingConfig = Field(
        default_factory=ProcessingConfig, description="Processing configuration"
    )
    api: APIConfig = Field(default_factory=APIConfig, description="API configuration")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        raw_config = cls._substitute_env_vars(raw_config)

        return cls(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively replace ${VAR_NAME} with os.environ['VAR_NAME']."""
        if isinstance(obj, dict):
            return {key: Config._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [Config._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            pattern = r"\$\{([^}]+)\}"

            def replace_var(match):
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable '{var_name}' not found "
                        f"(referenced in configuration)"
                    )
                return value

            return re.sub(pattern, replace_var, obj)
        else:
            return obj

    @classmethod
    def from_defaults(cls) -> "Config":
        """Create configuration with default values."""
        return cls()


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config.from_defaults()

    return Config.from_yaml(path)
