"""Test the HTTP layer with a fake orchestrator."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from summarizer.api.deps import get_orchestrator
from summarizer.core.exceptions import JobNotFoundError, PrerequisiteMissingError
from summarizer.main import create_app
from summarizer.services.summarizer_service import CAPABILITIES


@pytest.fixture
def orchestrator():
    fake = Mock()
    fake.summarizer.capabilities.return_value = CAPABILITIES
    return fake


@pytest.fixture
def client(settings, orchestrator):
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    # No context manager: startup would open the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_routes_are_registered(settings):
    app = create_app()
    paths = {getattr(route, "path", None) for route in app.routes}

    for path in (
        "/upload",
        "/jobs",
        "/validate/{job_id}",
        "/extract-audio/{job_id}",
        "/transcribe/{job_id}",
        "/analyze-moments/{job_id}",
        "/moments/{job_id}",
        "/process-full",
        "/create-summary/{job_id}",
        "/quick-summary/{job_id}",
        "/summary-options",
        "/process-and-summarize",
        "/summary/{job_id}",
        "/cleanup/{job_id}",
        "/cleanup",
        "/file-stats",
        "/logs/{job_id}",
        "/status/{job_id}",
    ):
        assert path in paths, f"{path} should be registered"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["ai_services"]["transcription"] == "configured"


def test_request_id_header(client):
    response = client.get("/", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


def test_logs(client, orchestrator):
    orchestrator.get_logs = AsyncMock(return_value={
        "message": "Job logs retrieved",
        "jobId": "job-1",
        "logs": [{"id": 1, "activity": "processing_started"}],
        "totalEntries": 1,
    })

    response = client.get("/logs/job-1")

    assert response.status_code == 200
    body = response.json()
    assert body["jobId"] == "job-1"
    assert body["totalEntries"] == 1
    orchestrator.get_logs.assert_awaited_once_with("job-1")


def test_status(client, orchestrator):
    orchestrator.get_status = AsyncMock(return_value={
        "jobId": "job-1",
        "status": "transcribed",
        "lastActivity": "transcription_completed",
        "lastEventId": 5,
        "error": None,
        "updatedAt": "2026-01-01T00:00:00+00:00",
    })

    response = client.get("/status/job-1")

    assert response.status_code == 200
    assert response.json()["status"] == "transcribed"
    assert response.json()["lastActivity"] == "transcription_completed"


def test_status_unknown_job_is_404(client, orchestrator):
    orchestrator.get_status = AsyncMock(side_effect=JobNotFoundError("missing"))

    response = client.get("/status/missing")

    assert response.status_code == 404
    assert response.json() == {"error": "No job found for job: missing", "status_code": 404}


def test_missing_prerequisite_is_409(client, orchestrator):
    orchestrator.extract_audio = AsyncMock(
        side_effect=PrerequisiteMissingError("job-1", "metadata_extracted", "Validate the video first")
    )

    response = client.post("/extract-audio/job-1")

    assert response.status_code == 409
    body = response.json()
    assert body["missing_activity"] == "metadata_extracted"
    assert body["job_id"] == "job-1"
    assert "Validate the video first" in body["error"]


def test_transcribe_passes_options(client, orchestrator):
    orchestrator.transcribe = AsyncMock(return_value={"jobId": "job-1"})

    response = client.post("/transcribe/job-1", json={"language": "de", "prompt": "A demo"})

    assert response.status_code == 200
    orchestrator.transcribe.assert_awaited_once_with("job-1", "de", "A demo")


def test_create_summary_accepts_camel_case_options(client, orchestrator):
    orchestrator.create_summary = AsyncMock(return_value={"jobId": "job-1"})

    response = client.post(
        "/create-summary/job-1",
        json={"maxMoments": 3, "minImportance": 6, "composition": {"qualityPreset": "fast"}},
    )

    assert response.status_code == 200
    options = orchestrator.create_summary.call_args.args[1]
    assert options.max_moments == 3
    assert options.composition.quality_preset.value == "fast"


def test_create_summary_rejects_bad_options(client, orchestrator):
    orchestrator.create_summary = AsyncMock()

    response = client.post("/create-summary/job-1", json={"minImportance": 42})

    assert response.status_code == 422
    orchestrator.create_summary.assert_not_awaited()


def test_summary_options(client):
    response = client.get("/summary-options")

    assert response.status_code == 200
    body = response.json()
    assert "filtering" in body["capabilities"]
    assert "quickPreview" in body["examples"]


def test_start_job_rejects_path_in_filename(client, orchestrator):
    orchestrator.start_job = AsyncMock()

    response = client.post("/jobs", json={"filename": "../secret.mp4"})

    assert response.status_code == 422
    orchestrator.start_job.assert_not_awaited()


def test_upload_stores_file(client, settings):
    response = client.post("/upload", files={"video": ("demo.mp4", b"fake video", "video/mp4")})

    assert response.status_code == 200
    stored = response.json()["file"]
    assert stored["originalName"] == "demo.mp4"
    assert stored["size"] == len(b"fake video")
    assert (settings.uploads_dir / stored["filename"]).exists()


def test_upload_rejects_unknown_extension(client, settings):
    response = client.post("/upload", files={"video": ("notes.txt", b"text", "text/plain")})

    assert response.status_code == 400
    assert "Invalid file type" in response.json()["error"]


def test_upload_rejects_oversized_file(client, settings):
    settings.max_upload_size_mb = 0

    response = client.post("/upload", files={"video": ("demo.mp4", b"fake video", "video/mp4")})

    assert response.status_code == 400
    assert list(settings.uploads_dir.iterdir()) == []


def test_process_and_summarize_rejects_bad_options_json(client, orchestrator):
    orchestrator.process_and_summarize = AsyncMock()

    response = client.post(
        "/process-and-summarize",
        files={"video": ("demo.mp4", b"fake video", "video/mp4")},
        data={"options": "{\"maxMoments\": 0}"},
    )

    assert response.status_code == 400
    orchestrator.process_and_summarize.assert_not_awaited()


def test_temp_cleanup(client, settings):
    settings.temp_dir.mkdir(parents=True, exist_ok=True)
    (settings.temp_dir / "stale.mp3").write_bytes(b"x")

    response = client.post("/cleanup", json={"maxAgeHours": 0})

    assert response.status_code == 200
    assert response.json()["result"]["filesRemoved"] == 1
