"""API routes for uploads and stream listing."""

import shutil
import time
from pathlib import Path
from typing import List

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from hlsmux import __version__
from hlsmux.api.models import HealthResponse, UploadResponse, VideoEntry
from hlsmux.exceptions import ProcessingError
from hlsmux.models.job import new_job_id
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

UPLOAD_FORM = """
<h2>Upload MKV File</h2>
<form method="POST" enctype="multipart/form-data" action="/upload">
  <input type="file" name="video" />
  <button type="submit">Upload</button>
</form>
"""


def _store_upload(upload: UploadFile, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with open(destination, "wb") as f:
        shutil.copyfileobj(upload.file, f)


@router.get("/", response_class=HTMLResponse)
async def upload_form():
    """Minimal upload form."""
    return UPLOAD_FORM


@router.post("/upload", response_model=UploadResponse)
async def upload(request: Request, video: UploadFile = File(...)):
    """Store an uploaded container and process it into an HLS rendition.

    Args:
        request: FastAPI request
        video: Uploaded container file

    Returns:
        Message and URL of the master playlist
    """
    app_state = request.app.state.hlsmux
    config = app_state.config

    if not video.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    job_id = new_job_id(video.filename)
    destination = config.storage.upload_path / f"{job_id}{Path(video.filename).suffix.lower()}"

    try:
        await run_in_threadpool(_store_upload, video, destination)
    except OSError as e:
        logger.error("Failed to store upload", job_id=job_id, error=str(e))
        raise HTTPException(status_code=500, detail="Error storing upload.")
    finally:
        await video.close()

    logger.info(
        "Upload stored",
        job_id=job_id,
        original_name=video.filename,
        path=str(destination),
    )

    try:
        manifest = await app_state.pipeline.process(destination, job_id)
    except ProcessingError as e:
        logger.error(
            "Upload processing failed",
            job_id=job_id,
            state=e.state,
            error=str(e.__cause__ or e),
        )
        raise HTTPException(status_code=500, detail="Error processing video.")

    return UploadResponse(
        message="Video processed with all streams.",
        stream_url=f"{config.api.streams_prefix}/{manifest}",
        job_id=job_id,
    )


@router.get("/videos", response_model=List[VideoEntry])
async def list_videos(request: Request):
    """List every job with a published master playlist."""
    catalog = request.app.state.hlsmux.catalog
    try:
        entries = await run_in_threadpool(catalog.scan)
    except OSError as e:
        logger.error("Failed to list videos", error=str(e))
        raise HTTPException(status_code=500, detail="Error listing videos")
    return [VideoEntry(name=entry.name, url=entry.url) for entry in entries]


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Health check endpoint."""
    app_state = request.app.state.hlsmux
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=round(time.time() - app_state.start_time, 2),
    )
