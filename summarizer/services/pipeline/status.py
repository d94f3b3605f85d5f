"""
Job status derivation.

A job's status is the status implied by its latest status-bearing event.
`*_started` events carry no status; a later completion supersedes an
earlier failure.
"""
from typing import Any, Dict, Iterable, Optional

from summarizer.models.domain import ActivityKind, JobStatus, StageEvent

_ACTIVITY_STATUS = {
    ActivityKind.PROCESSING_STARTED: JobStatus.CREATED,
    ActivityKind.METADATA_EXTRACTED: JobStatus.VALIDATED,
    ActivityKind.AUDIO_EXTRACTION_COMPLETED: JobStatus.AUDIO_EXTRACTED,
    ActivityKind.TRANSCRIPTION_COMPLETED: JobStatus.TRANSCRIBED,
    ActivityKind.MOMENT_ANALYSIS_COMPLETED: JobStatus.ANALYZED,
    ActivityKind.VIDEO_SUMMARIZATION_COMPLETED: JobStatus.SUMMARIZED,
    ActivityKind.QUICK_SUMMARY_COMPLETED: JobStatus.SUMMARIZED,
    ActivityKind.CLEANUP_COMPLETED: JobStatus.CLEANED,
    ActivityKind.AUDIO_EXTRACTION_FAILED: JobStatus.FAILED,
    ActivityKind.TRANSCRIPTION_FAILED: JobStatus.FAILED,
    ActivityKind.MOMENT_ANALYSIS_FAILED: JobStatus.FAILED,
    ActivityKind.VIDEO_SUMMARIZATION_FAILED: JobStatus.FAILED,
    ActivityKind.FULL_PIPELINE_FAILED: JobStatus.FAILED,
}

# Activities that point at a produced summary, newest wins
SUMMARY_ACTIVITIES = (
    ActivityKind.VIDEO_SUMMARIZATION_COMPLETED,
    ActivityKind.QUICK_SUMMARY_COMPLETED,
    ActivityKind.FULL_PIPELINE_COMPLETED,
)


def status_for(activity: ActivityKind, details: Optional[Dict[str, Any]] = None) -> Optional[JobStatus]:
    """
    Status implied by a single event, or None if the event carries no status.

    full_pipeline_completed implies SUMMARIZED only when it carries a summary;
    the analysis-only flow leaves the job ANALYZED.
    """
    if activity == ActivityKind.FULL_PIPELINE_COMPLETED:
        if details and details.get("summary"):
            return JobStatus.SUMMARIZED
        return JobStatus.ANALYZED
    return _ACTIVITY_STATUS.get(activity)


def derive_status(events: Iterable[StageEvent]) -> Optional[JobStatus]:
    """Status of a job given its events in append order. None for no events."""
    status = None
    for event in events:
        implied = status_for(event.activity, event.details)
        if implied is not None:
            status = implied
    return status


def is_failure(activity: ActivityKind) -> bool:
    return status_for(activity) == JobStatus.FAILED
