"""
Stage dependency resolution.

Every stage reads its inputs from the latest event of the stage it depends
on. A missing prerequisite is an error for the caller to correct; nothing is
logged for the attempted stage.
"""
import logging
from typing import Optional

from summarizer.core.exceptions import PrerequisiteMissingError
from summarizer.models.domain import ActivityKind, StageEvent
from summarizer.services.job_log import JobLog

logger = logging.getLogger(__name__)

_HINTS = {
    ActivityKind.PROCESSING_STARTED: "Start the job from an uploaded file first",
    ActivityKind.METADATA_EXTRACTED: "Validate the video first",
    ActivityKind.AUDIO_EXTRACTION_COMPLETED: "Extract audio first",
    ActivityKind.TRANSCRIPTION_COMPLETED: "Transcribe the audio first",
    ActivityKind.MOMENT_ANALYSIS_COMPLETED: "Analyze moments first",
}


class StageDependencyResolver:
    """Resolves a stage's prerequisite events from the job log."""

    def __init__(self, job_log: JobLog):
        self.job_log = job_log

    async def resolve(self, job_id: str, activity: ActivityKind) -> Optional[StageEvent]:
        """Latest event of `activity`, or None."""
        return await self.job_log.find_latest(job_id, activity)

    async def require(self, job_id: str, activity: ActivityKind) -> StageEvent:
        """
        Latest event of `activity`.

        Raises:
            PrerequisiteMissingError: If the job has no such event
        """
        event = await self.job_log.find_latest(job_id, activity)
        if event is None:
            logger.warning(f"Job {job_id}: prerequisite {activity.value} missing")
            raise PrerequisiteMissingError(job_id, activity.value, _HINTS.get(activity))
        return event
