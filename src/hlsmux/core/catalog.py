"""Listing of completed jobs in output storage."""

from dataclasses import dataclass
from pathlib import Path
from typing import List

from hlsmux.models.job import MASTER_PLAYLIST
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    """A completed job with a published master playlist."""

    name: str
    url: str


class JobCatalog:
    """Scan the output root for job directories holding a master playlist."""

    def __init__(self, output_root: Path, url_prefix: str = "/streams"):
        """Initialize the catalog.

        Args:
            output_root: Root of per-job output directories
            url_prefix: URL prefix the output root is served under
        """
        self.output_root = Path(output_root)
        self.url_prefix = url_prefix.rstrip("/")

    def scan(self) -> List[CatalogEntry]:
        """List completed jobs.

        Directories still being processed have no master playlist yet and are
        left out.

        Returns:
            Entries sorted by job name
        """
        if not self.output_root.exists():
            logger.debug("Output root does not exist yet", path=str(self.output_root))
            return []

        entries = []
        for path in sorted(self.output_root.iterdir()):
            if not path.is_dir():
                continue
            if not (path / MASTER_PLAYLIST).is_file():
                logger.debug("Skipping incomplete job directory", job_id=path.name)
                continue
            entries.append(
                CatalogEntry(name=path.name, url=f"{self.url_prefix}/{path.name}/{MASTER_PLAYLIST}")
            )

        logger.debug("Catalog scanned", path=str(self.output_root), job_count=len(entries))
        return entries
