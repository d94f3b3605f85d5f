"""
Domain models for business logic.
These are internal representations separate from API schemas. Their
to_dict() forms are what gets stored in job event details.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum


class ActivityKind(str, Enum):
    """Kinds of events recorded in the job log."""
    PROCESSING_STARTED = "processing_started"
    METADATA_EXTRACTED = "metadata_extracted"
    AUDIO_EXTRACTION_COMPLETED = "audio_extraction_completed"
    AUDIO_EXTRACTION_FAILED = "audio_extraction_failed"
    TRANSCRIPTION_STARTED = "transcription_started"
    TRANSCRIPTION_COMPLETED = "transcription_completed"
    TRANSCRIPTION_FAILED = "transcription_failed"
    MOMENT_ANALYSIS_STARTED = "moment_analysis_started"
    MOMENT_ANALYSIS_COMPLETED = "moment_analysis_completed"
    MOMENT_ANALYSIS_FAILED = "moment_analysis_failed"
    VIDEO_SUMMARIZATION_STARTED = "video_summarization_started"
    VIDEO_SUMMARIZATION_COMPLETED = "video_summarization_completed"
    VIDEO_SUMMARIZATION_FAILED = "video_summarization_failed"
    QUICK_SUMMARY_COMPLETED = "quick_summary_completed"
    FULL_PIPELINE_STARTED = "full_pipeline_started"
    FULL_PIPELINE_COMPLETED = "full_pipeline_completed"
    FULL_PIPELINE_FAILED = "full_pipeline_failed"
    CLEANUP_COMPLETED = "cleanup_completed"


class JobStatus(str, Enum):
    """Job status derived from the latest status-bearing event."""
    CREATED = "created"
    VALIDATED = "validated"
    AUDIO_EXTRACTED = "audio_extracted"
    TRANSCRIBED = "transcribed"
    ANALYZED = "analyzed"
    SUMMARIZED = "summarized"
    CLEANED = "cleaned"
    FAILED = "failed"


@dataclass(frozen=True)
class StageEvent:
    """One immutable entry of the job log."""
    id: int
    job_id: str
    activity: ActivityKind
    details: Dict[str, Any]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "jobId": self.job_id,
            "activity": self.activity.value,
            "details": self.details,
        }


@dataclass
class JobStateInfo:
    """Snapshot of a job's explicit state record."""
    job_id: str
    status: JobStatus
    last_activity: ActivityKind
    last_event_id: int
    error: Optional[str]
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "lastActivity": self.last_activity.value,
            "lastEventId": self.last_event_id,
            "error": self.error,
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class Moment:
    """A salient time range of the source video."""
    title: str
    start_time: float
    end_time: float
    description: str = ""
    importance: int = 5
    category: str = "workflow_phase"
    reason: str = ""
    workflow_context: str = ""

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def is_valid(self, video_duration: float) -> bool:
        """Check 0 <= start < end <= video_duration."""
        return 0 <= self.start_time < self.end_time <= video_duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "importance": self.importance,
            "category": self.category,
            "reason": self.reason,
            "workflowContext": self.workflow_context,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Moment':
        return cls(
            title=data.get("title") or "Untitled moment",
            description=data.get("description") or "",
            start_time=float(data["startTime"]),
            end_time=float(data["endTime"]),
            importance=int(data.get("importance", 5)),
            category=data.get("category") or "workflow_phase",
            reason=data.get("reason") or "",
            workflow_context=data.get("workflowContext") or "",
        )


@dataclass
class Segment:
    """A clip cut from the source video for one moment."""
    index: int
    title: str
    original_start_time: float
    original_end_time: float
    filename: str
    path: str
    file_size: int = 0
    description: str = ""
    category: str = "workflow_phase"
    importance: int = 5
    thumbnail: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.original_end_time - self.original_start_time

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "index": self.index,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "importance": self.importance,
            "originalStartTime": self.original_start_time,
            "originalEndTime": self.original_end_time,
            "duration": self.duration,
            "filename": self.filename,
            "path": self.path,
            "fileSize": self.file_size,
        }
        if self.thumbnail:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Segment':
        return cls(
            index=int(data["index"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            category=data.get("category", "workflow_phase"),
            importance=int(data.get("importance", 5)),
            original_start_time=float(data["originalStartTime"]),
            original_end_time=float(data["originalEndTime"]),
            filename=data["filename"],
            path=data["path"],
            file_size=int(data.get("fileSize", 0)),
            thumbnail=data.get("thumbnail"),
        )


@dataclass
class CompositionPlan:
    """Deterministic description of how segments are composed."""
    total_segments: int
    estimated_duration: float
    transitions: Dict[str, Any] = field(default_factory=dict)
    intro: Dict[str, Any] = field(default_factory=dict)
    speed: Dict[str, Any] = field(default_factory=dict)
    quality: Dict[str, Any] = field(default_factory=dict)
    audio: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSegments": self.total_segments,
            "estimatedDuration": self.estimated_duration,
            "transitions": dict(self.transitions),
            "intro": dict(self.intro),
            "speed": dict(self.speed),
            "quality": dict(self.quality),
            "audio": dict(self.audio),
        }


def moments_to_dicts(moments: List[Moment]) -> List[Dict[str, Any]]:
    return [m.to_dict() for m in moments]
