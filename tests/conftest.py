"""
Shared fixtures: an isolated working directory per test, a SQLite-backed
job log, and fake collaborators.
"""
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Importing summarizer.main builds the app, which creates the working
# directories; keep that out of the checkout.
os.environ.setdefault("WORK_DIR", tempfile.mkdtemp(prefix="summarizer-tests-"))

project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root))

from summarizer.api.deps import reset_dependencies  # noqa: E402
from summarizer.core.config import Settings, reset_settings  # noqa: E402
from summarizer.database.base import Base  # noqa: E402
from summarizer.services.job_log import JobLog, reset_job_log  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    """Settings rooted at a fresh tmp_path, installed as the global instance."""
    test_settings = Settings(
        work_dir=tmp_path,
        job_log_mirror_jsonl=True,
        transcription_api_key="test-key",
        detection_api_key="test-key",
    )
    reset_settings(test_settings)
    reset_job_log()
    reset_dependencies()
    yield test_settings
    reset_settings()
    reset_job_log()
    reset_dependencies()


@pytest.fixture
async def job_log(settings):
    """JobLog over a throwaway SQLite database with the JSONL mirror in logs/."""
    import summarizer.database.models  # noqa: F401

    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(f"sqlite+aiosqlite:///{settings.logs_dir / 'test_job_log.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield JobLog(factory, mirror_dir=settings.logs_dir)

    await engine.dispose()


@pytest.fixture
def moment_client():
    client = Mock()
    client.model = "test-detector"
    return client


@pytest.fixture
def transcription_client():
    return Mock()


@pytest.fixture
def summarizer():
    return Mock()


@pytest.fixture
def sample_transcription():
    """Raw transcription result as returned by TranscriptionClient.transcribe."""
    segments = [
        {"start": 0.0, "end": 20.0, "text": " Opening the dashboard to check the numbers.", "avg_logprob": -0.2},
        {"start": 20.0, "end": 45.0, "text": " Now we can see the report for last week.", "avg_logprob": -0.3},
        {"start": 45.0, "end": 80.0, "text": " Next I switch to the settings page.", "avg_logprob": -0.25},
        {"start": 80.0, "end": 120.0, "text": " Finally we decide on the new schedule.", "avg_logprob": -0.1},
    ]
    text = " ".join(s["text"].strip() for s in segments)
    return {
        "success": True,
        "text": text,
        "language": "en",
        "duration": 120.0,
        "segments": segments,
        "words": [],
        "wordCount": len(text.split(" ")),
        "confidence": 78.75,
        "timestamp": "2026-01-01T00:00:00+00:00",
    }
