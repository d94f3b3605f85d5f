"""
File API endpoints: uploads, video inspection and temp maintenance.
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile

from summarizer.api.deps import get_app_settings, get_orchestrator
from summarizer.core.config import Settings
from summarizer.core.exceptions import ValidationError
from summarizer.models.pipeline_schemas import TempCleanupRequest
from summarizer.services.file_manager import (
    cleanup_temp_files,
    format_bytes,
    generate_unique_filename,
    get_directory_stats,
)
from summarizer.services.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

CHUNK_SIZE = 1024 * 1024


def _write_upload(upload: UploadFile, target: Path, max_bytes: int) -> int:
    written = 0
    try:
        with open(target, "wb") as out:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise ValidationError(f"File too large (max: {max_bytes // (1024 * 1024)}MB)")
                out.write(chunk)
    except Exception:
        if target.exists():
            target.unlink()
        raise
    return written


async def save_upload(upload: Optional[UploadFile], settings: Settings) -> dict:
    """
    Store an uploaded video in uploads/ under a unique name.

    Raises:
        ValidationError: Missing file, unsupported extension, or over the size limit
    """
    if upload is None or not upload.filename:
        raise ValidationError("No video file uploaded")

    original_name = Path(upload.filename).name
    extension = Path(original_name).suffix.lower()
    if extension not in settings.get_allowed_extensions():
        raise ValidationError(
            f"Invalid file type '{extension}'. Allowed: {', '.join(sorted(settings.get_allowed_extensions()))}"
        )

    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    filename = generate_unique_filename(original_name, prefix="video-")
    target = settings.uploads_dir / filename

    size = await asyncio.to_thread(_write_upload, upload, target, settings.max_upload_size_mb * 1024 * 1024)
    logger.info(f"Stored upload {original_name} as {filename} ({format_bytes(size)})")

    return {
        "filename": filename,
        "originalName": original_name,
        "size": size,
        "path": str(target),
        "sizeFormatted": format_bytes(size),
    }


@router.post("/upload")
async def upload_video(
    video: UploadFile = File(...),
    settings: Settings = Depends(get_app_settings),
):
    """Upload a screen recording."""
    stored = await save_upload(video, settings)
    filename = stored["filename"]
    return {
        "message": "File uploaded successfully",
        "file": stored,
        "nextSteps": [
            f"Visit /video-info/{filename} to get video metadata",
            f"POST /jobs with {{\"filename\": \"{filename}\"}} to start a job",
            "Use /process-full endpoint for complete AI analysis pipeline",
            "Use /process-and-summarize for complete pipeline including video summary",
        ],
    }


@router.get("/video-info/{filename}")
async def video_info(filename: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    """Validate an uploaded video and report its metadata."""
    return await orchestrator.get_video_info(Path(filename).name)


@router.get("/file-stats")
async def file_stats():
    stats = await asyncio.to_thread(get_directory_stats)
    return {
        "message": "File system statistics",
        "directories": stats,
        "cleanup": {
            "lastCleanup": "Manual cleanup available at /cleanup endpoint",
            "recommendation": "Run cleanup daily to free disk space",
        },
    }


@router.post("/cleanup")
async def cleanup_temp(request: Optional[TempCleanupRequest] = Body(default=None)):
    """Delete temp files older than maxAgeHours (default 24)."""
    request = request or TempCleanupRequest()
    result = await asyncio.to_thread(cleanup_temp_files, request.max_age_hours)
    return {"message": "Cleanup completed", "result": result}
