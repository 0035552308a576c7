"""HTTP server runner for HLSMux."""

import sys
from typing import Any, Optional

import uvicorn

from hlsmux.api.app import create_app
from hlsmux.config import Config
from hlsmux.core.pipeline import TranscodePipeline
from hlsmux.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class ServerRunner:
    """Serves the upload endpoint, the job listing and the HLS output."""

    def __init__(self, config: Config, pipeline: Optional[TranscodePipeline] = None):
        """Initialize the runner.

        Args:
            config: Application configuration
            pipeline: Pipeline shared by all uploads (built from config if None)
        """
        self.config = config
        self.app = create_app(config, pipeline)

    def uvicorn_options(self) -> dict[str, Any]:
        """Keyword arguments passed to uvicorn."""
        return {
            "host": self.config.api.host,
            "port": self.config.api.port,
            "log_level": self.config.logging.level,
            # Uploads are logged by RequestLoggingMiddleware; segment fetches are not logged
            "access_log": False,
            # Keep the handlers installed by setup_logging
            "log_config": None,
        }

    def run(self) -> None:
        """Serve until interrupted."""
        options = self.uvicorn_options()
        logger.info(
            "Starting server",
            host=options["host"],
            port=options["port"],
            output_dir=self.config.storage.output_dir,
            streams_prefix=self.config.api.streams_prefix,
            worker_count=self.config.processing.worker_count,
        )

        try:
            uvicorn.run(self.app, **options)
        except KeyboardInterrupt:
            logger.info("Server interrupted by user")
        except Exception as e:
            logger.exception("Server error", error=str(e))
            sys.exit(1)
        finally:
            logger.info("Server stopped")


def start_server(config: Config) -> None:
    """Configure logging and serve.

    Args:
        config: Application configuration
    """
    setup_logging(config.logging)
    ServerRunner(config).run()
