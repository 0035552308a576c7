"""Integration tests for the HTTP API."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from hlsmux.api.app import create_app
from hlsmux.core.pipeline import TranscodePipeline

PROBE_DATA = {
    "streams": [
        {"index": 0, "codec_type": "video", "codec_name": "h264"},
        {"index": 1, "codec_type": "audio", "codec_name": "aac", "tags": {"language": "eng"}},
        {"index": 2, "codec_type": "subtitle", "codec_name": "ass", "tags": {"language": "eng"}},
    ],
    "format": {"duration": "60.0"},
}


@pytest.fixture
def engine(make_engine):
    return make_engine(PROBE_DATA)


@pytest.fixture
def test_client(test_config, engine):
    """Create a test client wired to an engine double."""
    app = create_app(test_config, TranscodePipeline(test_config, engine=engine))
    with TestClient(app) as client:
        yield client


def upload(client, name="movie.mkv"):
    return client.post(
        "/upload",
        files={"video": (name, b"\x1a\x45\xdf\xa3" * 16, "video/x-matroska")},
    )


class TestUpload:
    """Tests for POST /upload."""

    def test_upload_success(self, test_client, test_config, engine):
        response = upload(test_client)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Video processed with all streams."
        assert data["streamUrl"] == f"/streams/{data['jobId']}/master.m3u8"
        assert data["jobId"].endswith("-movie")

        stored = Path(test_config.storage.upload_dir) / f"{data['jobId']}.mkv"
        assert stored.exists()
        assert engine.probe_calls == [stored]

    def test_uploads_of_same_file_get_distinct_jobs(self, test_client):
        first = upload(test_client).json()
        second = upload(test_client).json()

        assert first["jobId"] != second["jobId"]

    def test_playlist_is_served(self, test_client):
        stream_url = upload(test_client).json()["streamUrl"]

        response = test_client.get(stream_url)

        assert response.status_code == 200
        assert response.text.startswith("#EXTM3U\n")
        assert 'TYPE=SUBTITLES,GROUP-ID="subs"' in response.text
        assert "video_0.m3u8" in response.text

    def test_segment_files_are_served(self, test_client):
        job_id = upload(test_client).json()["jobId"]

        response = test_client.get(f"/streams/{job_id}/video_0_000.ts")

        assert response.status_code == 200

    def test_processing_failure_returns_500(self, test_client, engine, test_config):
        engine.probe_error = "Invalid data found when processing input"

        response = upload(test_client)

        assert response.status_code == 500
        assert response.json() == {"detail": "Error processing video."}
        assert list(Path(test_config.storage.output_dir).iterdir()) == []

    def test_missing_file_field(self, test_client):
        response = test_client.post("/upload", data={"other": "x"})

        assert response.status_code == 422


class TestListing:
    """Tests for GET /videos."""

    def test_empty(self, test_client):
        response = test_client.get("/videos")

        assert response.status_code == 200
        assert response.json() == []

    def test_lists_processed_videos(self, test_client):
        job_id = upload(test_client).json()["jobId"]

        response = test_client.get("/videos")

        assert response.json() == [{"name": job_id, "url": f"/streams/{job_id}/master.m3u8"}]

    def test_failed_jobs_are_not_listed(self, test_client, engine):
        engine.fail_streams = {1}

        assert upload(test_client).status_code == 500
        assert test_client.get("/videos").json() == []


class TestMisc:
    """Form and health endpoints."""

    def test_upload_form(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert 'name="video"' in response.text

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
