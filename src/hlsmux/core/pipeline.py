"""Transcoding orchestration pipeline."""

import asyncio
import contextvars
import time
from pathlib import Path
from typing import Optional

import structlog

from hlsmux.config import Config
from hlsmux.core.analyzer import StreamAnalyzer
from hlsmux.core.decision import CodecPolicy
from hlsmux.core.engine import FFmpegEngine
from hlsmux.core.manifest import ManifestAssembler
from hlsmux.core.segmenter import SegmentGenerator
from hlsmux.core.worker_pool import WorkerPool
from hlsmux.exceptions import AssemblyError, HLSMuxError, ProcessingError
from hlsmux.models.job import JobState, ProcessResult, SourceMedia
from hlsmux.models.segment import SegmentOutput
from hlsmux.models.stream import StreamInventory, StreamType
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)

# Generation phases, in the order they run
_PHASES = (
    (JobState.GENERATING_VIDEO, StreamType.VIDEO),
    (JobState.GENERATING_AUDIO, StreamType.AUDIO),
    (JobState.GENERATING_SUBTITLES, StreamType.SUBTITLE),
)


class TranscodePipeline:
    """Orchestrates analysis, per-stream generation and playlist assembly."""

    def __init__(self, config: Config, engine: Optional[FFmpegEngine] = None):
        """Initialize the pipeline with configuration.

        Args:
            config: Application configuration
            engine: Media engine (defaults to ffmpeg/ffprobe from config)
        """
        self.config = config
        self.output_root = config.storage.output_path
        self.isolate_failures = config.processing.isolate_stream_failures

        self.engine = engine or FFmpegEngine(config.engine)
        self.analyzer = StreamAnalyzer(self.engine)
        self.policy = CodecPolicy(config.codecs)
        self.generator = SegmentGenerator(self.engine, config.segments, config.manifest)
        self.assembler = ManifestAssembler(config.manifest)
        self.pool = WorkerPool(config.processing.worker_count)

    async def process(self, source_path: Path, job_id: Optional[str] = None) -> str:
        """Process a container into an HLS rendition.

        Pipeline steps:
        1. Analysis (one probe, stream inventory)
        2. Output directory creation
        3. Video, audio, then subtitle generation
        4. Master playlist assembly

        Args:
            source_path: Container to process
            job_id: Output directory name (derived from the file name if None)

        Returns:
            Master playlist path relative to the output root

        Raises:
            ProcessingError: If any step fails
            ValueError: If job_id is not a safe directory name
        """
        result = await self._execute(SourceMedia.from_path(source_path, job_id))
        return result.manifest

    async def run(self, source_path: Path, job_id: Optional[str] = None) -> ProcessResult:
        """Like `process`, but report failure in the result instead of raising."""
        source = SourceMedia.from_path(source_path, job_id)
        try:
            return await self._execute(source)
        except ProcessingError as e:
            return ProcessResult(
                job_id=source.job_id,
                state=JobState.FAILED,
                error=str(e.__cause__ or e),
            )

    async def _execute(self, source: SourceMedia) -> ProcessResult:
        # Every log line of the job, worker threads included, carries job_id
        with structlog.contextvars.bound_contextvars(job_id=source.job_id):
            return await self._run_job(source)

    async def _run_job(self, source: SourceMedia) -> ProcessResult:
        start_time = time.time()
        log = logger.bind(file=str(source.path))
        result = ProcessResult(job_id=source.job_id, state=JobState.ANALYZING)

        log.info("Processing file")

        try:
            loop = asyncio.get_running_loop()
            inventory = await loop.run_in_executor(
                None, contextvars.copy_context().run, self.analyzer.inspect, source.path
            )

            # Only created once the probe has succeeded
            output_dir = self.output_root / source.job_id
            try:
                output_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise AssemblyError(f"Could not create {output_dir}: {e}") from e

            fragments: list[SegmentOutput] = []
            for state, stream_type in _PHASES:
                self._transition(log, result, state)
                fragments.extend(
                    await self._generate_type(source, inventory, stream_type, output_dir, result, log)
                )

            if not fragments and result.failed_streams:
                raise ProcessingError(
                    "No usable streams", job_id=source.job_id, state=result.state.value
                )

            self._transition(log, result, JobState.ASSEMBLING)
            content = self.assembler.assemble(fragments)
            self.assembler.write(output_dir, content)

        except ProcessingError as e:
            log.error("Job failed", state=result.state.value, error=str(e))
            result.state = JobState.FAILED
            raise
        except Exception as e:
            log.error(
                "Job failed",
                state=result.state.value,
                error=str(e),
                error_type=type(e).__name__,
                stream_index=getattr(e, "stream_index", None),
                stream_type=getattr(e, "stream_type", None),
                exc_info=not isinstance(e, HLSMuxError),
            )
            failed_state = result.state.value
            result.state = JobState.FAILED
            raise ProcessingError(
                f"Processing failed during {failed_state}: {e}",
                job_id=source.job_id,
                state=failed_state,
            ) from e

        result.manifest = source.manifest_location
        result.video_count = sum(1 for f in fragments if f.stream_type == StreamType.VIDEO)
        result.audio_count = sum(1 for f in fragments if f.stream_type == StreamType.AUDIO)
        result.subtitle_count = sum(1 for f in fragments if f.stream_type == StreamType.SUBTITLE)
        self._transition(log, result, JobState.DONE)

        log.info(
            "File processed successfully",
            manifest=result.manifest,
            video=result.video_count,
            audio=result.audio_count,
            subtitle=result.subtitle_count,
            skipped=result.skipped_streams,
            failed=result.failed_streams,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return result

    async def _generate_type(
        self,
        source: SourceMedia,
        inventory: StreamInventory,
        stream_type: StreamType,
        output_dir: Path,
        result: ProcessResult,
        log,
    ) -> list[SegmentOutput]:
        """Generate every stream of one type.

        Outputs are slotted by type-local index, so their order never depends
        on which engine call finished first.
        """
        descriptors = inventory.streams_of(stream_type)
        slots: list[Optional[SegmentOutput]] = [None] * len(descriptors)
        planned = []

        for type_index, descriptor in enumerate(descriptors):
            decision = self.policy.decide(stream_type, descriptor.codec)
            if decision.is_skip:
                log.warning(
                    "Skipping unsupported stream",
                    stream_index=descriptor.index,
                    stream_type=stream_type.value,
                    codec=descriptor.codec,
                )
                result.skipped_streams.append(descriptor.index)
                continue
            planned.append((type_index, descriptor, decision))

        def _generate(item):
            type_index, descriptor, decision = item
            return self.generator.generate(
                source.path, descriptor, decision, type_index, output_dir, inventory.duration
            )

        outcomes = await self.pool.map(_generate, planned, stop_on_error=not self.isolate_failures)

        for (type_index, descriptor, _), outcome in zip(planned, outcomes):
            if isinstance(outcome, Exception):
                if not self.isolate_failures:
                    raise outcome
                removed = self.generator.discard(stream_type, type_index, output_dir)
                log.warning(
                    "Dropping failed stream",
                    stream_index=descriptor.index,
                    stream_type=stream_type.value,
                    error=str(outcome),
                    removed_files=len(removed),
                )
                result.failed_streams.append(descriptor.index)
            elif outcome is not None:
                slots[type_index] = outcome

        return [output for output in slots if output is not None]

    @staticmethod
    def _transition(log, result: ProcessResult, state: JobState) -> None:
        log.debug("Job state changed", previous=result.state.value, state=state.value)
        result.state = state
