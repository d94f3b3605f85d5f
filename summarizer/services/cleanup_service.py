"""
Per-job artifact cleanup.

Removes everything a job wrote to disk and reports how many files were
deleted per category. Events in the job log are never touched, so a second
run reports zeros.
"""
import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Set

from summarizer.core.config import get_settings
from summarizer.models.domain import ActivityKind, StageEvent
from summarizer.services.file_manager import cleanup_file
from summarizer.services.job_log import JobLog
from summarizer.services.media.composition_service import output_filename, preview_job_id
from summarizer.services.media.segment_service import cleanup_segments

logger = logging.getLogger(__name__)

# details keys that name job-owned temp files
_TEMP_PATH_KEYS = {
    ActivityKind.PROCESSING_STARTED: "tempPath",
    ActivityKind.AUDIO_EXTRACTION_COMPLETED: "audioPath",
}


def _remove_tree(directory: Path) -> int:
    if not directory.exists():
        return 0
    count = sum(1 for p in directory.rglob("*") if p.is_file())
    shutil.rmtree(directory)
    return count


class CleanupCoordinator:
    """Deletes a job's segments, thumbnails, outputs and temp files."""

    def __init__(self, job_log: JobLog):
        self.job_log = job_log

    def job_temp_files(self, job_id: str, events: List[StageEvent]) -> List[Path]:
        """Temp files owned by a job, resolved from its events."""
        temp_dir = get_settings().temp_dir.resolve()
        paths: Set[Path] = {
            temp_dir / f"concat_{job_id}.txt",
            temp_dir / f"concat_{preview_job_id(job_id)}.txt",
        }
        for event in events:
            key = _TEMP_PATH_KEYS.get(event.activity)
            value = event.details.get(key) if key else None
            if not value:
                continue
            path = Path(value).resolve()
            if temp_dir in path.parents:
                paths.add(path)
            else:
                logger.warning(f"Job {job_id}: ignoring temp path outside {temp_dir}: {path}")
        return sorted(paths)

    def remove_job_files(self, job_id: str, events: List[StageEvent]) -> Dict[str, int]:
        settings = get_settings()

        output_files = [
            settings.output_dir / output_filename(job_id),
            settings.output_dir / output_filename(preview_job_id(job_id)),
        ]

        return {
            "segments": cleanup_segments(job_id, settings.segments_dir),
            "thumbnails": _remove_tree(settings.thumbnails_dir / job_id),
            "output": sum(1 for path in output_files if cleanup_file(path)),
            "temp": sum(1 for path in self.job_temp_files(job_id, events) if cleanup_file(path)),
        }

    async def cleanup(self, job_id: str) -> Dict[str, Any]:
        """
        Remove all artifacts of a job.

        Returns:
            {jobId, results: {category: count}, totalDeleted, message}
        """
        events = await self.job_log.query(job_id)
        results = await asyncio.to_thread(self.remove_job_files, job_id, events)
        total = sum(results.values())
        logger.info(f"Cleanup for job {job_id}: {results}")
        return {
            "jobId": job_id,
            "results": results,
            "totalDeleted": total,
            "message": f"Cleanup completed for job {job_id}",
        }
