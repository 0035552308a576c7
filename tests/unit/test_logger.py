"""Unit tests for logging setup."""

import json
import logging

import pytest
import structlog

from hlsmux.config import LoggingConfig
from hlsmux.core.worker_pool import WorkerPool
from hlsmux.utils.logger import get_logger, setup_logging


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "hlsmux.log"
    setup_logging(LoggingConfig(format="json", level="info", output=str(path)))
    yield path
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    for handler in logging.getLogger().handlers:
        handler.close()
    logging.getLogger().handlers.clear()


def read_events(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestSetupLogging:
    """Test setup_logging."""

    def test_writes_json_to_file(self, log_file):
        get_logger("tests.logger.file").info("Stream generated", stream_index=3)

        events = read_events(log_file)
        assert events[-1]["event"] == "Stream generated"
        assert events[-1]["stream_index"] == 3
        assert events[-1]["level"] == "info"

    def test_level_filters_debug(self, log_file):
        get_logger("tests.logger.level").debug("Segments written")

        assert not log_file.exists() or read_events(log_file) == []

    @pytest.mark.asyncio
    async def test_job_context_reaches_worker_threads(self, log_file):
        worker_log = get_logger("tests.logger.worker")

        def work(stream_index):
            worker_log.info("Generating stream", stream_index=stream_index)

        with structlog.contextvars.bound_contextvars(job_id="job-7"):
            await WorkerPool(worker_count=2).map(work, [0, 1])

        events = [e for e in read_events(log_file) if e["event"] == "Generating stream"]
        assert len(events) == 2
        assert {e["job_id"] for e in events} == {"job-7"}

    def test_no_file_handler_without_output(self):
        setup_logging(LoggingConfig(level="debug"))
        try:
            handlers = logging.getLogger().handlers
            assert not any(isinstance(h, logging.FileHandler) for h in handlers)
            assert logging.getLogger().level == logging.DEBUG
        finally:
            structlog.reset_defaults()
            logging.getLogger().handlers.clear()
