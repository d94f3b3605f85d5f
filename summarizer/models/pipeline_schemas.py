"""
Pydantic models for pipeline option and request/response validation.

Field names are snake_case in Python and camelCase on the wire.
"""
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class MomentSortOrder(str, Enum):
    """Final ordering applied to filtered moments."""
    CHRONOLOGICAL = "chronological"
    IMPORTANCE = "importance"
    DURATION = "duration"


class SegmentSortPolicy(str, Enum):
    """Ordering applied to segments before composition."""
    ORDER = "order"
    IMPORTANCE = "importance"
    DURATION = "duration"
    CHRONOLOGICAL = "chronological"


class QualityPreset(str, Enum):
    """x264 encoder presets."""
    ULTRAFAST = "ultrafast"
    SUPERFAST = "superfast"
    VERYFAST = "veryfast"
    FASTER = "faster"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"
    SLOWER = "slower"
    VERYSLOW = "veryslow"


class FilterOptions(CamelModel):
    """Moment filtering options. Unset fields do not filter."""
    min_importance: Optional[int] = Field(default=None, ge=1, le=10)
    include_categories: Optional[List[str]] = None
    max_moment_duration: Optional[float] = Field(default=None, gt=0)
    max_moments: Optional[int] = Field(default=None, ge=1)
    sort_moments_by: MomentSortOrder = MomentSortOrder.CHRONOLOGICAL


class CompositionOptions(CamelModel):
    """Options controlling how segments are concatenated into the summary."""
    enable_transitions: bool = True
    transition_type: str = "fade"
    transition_duration: float = Field(default=0.5, ge=0)
    enable_intro: bool = False
    intro_duration: float = Field(default=2.0, ge=0)
    intro_text: str = "Key Moments Summary"
    enable_speed_adjustment: bool = False
    speed_factor: float = Field(default=1.0, gt=0)
    quality_preset: QualityPreset = QualityPreset.MEDIUM
    crf: int = Field(default=23, ge=0, le=51)
    include_audio: bool = True
    normalize_audio: bool = True
    sort_by: SegmentSortPolicy = SegmentSortPolicy.ORDER


class SummaryOptions(FilterOptions):
    """Filtering plus composition options for a summary run."""
    composition: CompositionOptions = Field(default_factory=CompositionOptions)
    create_thumbnails: bool = False
    create_preview: bool = False


class StartJobRequest(CamelModel):
    """Register an uploaded file as a new job."""
    filename: str = Field(min_length=1)
    job_id: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("filename must not contain path separators")
        return v


class TranscribeRequest(CamelModel):
    """Transcription options."""
    language: Optional[str] = None
    prompt: Optional[str] = None


class AnalyzeRequest(CamelModel):
    """Moment analysis options."""
    options: Dict[str, Any] = Field(default_factory=dict)


class TempCleanupRequest(CamelModel):
    """Age-based temp cleanup request."""
    max_age_hours: float = Field(default=24.0, ge=0)


class JobLogResponse(CamelModel):
    """Job log listing."""
    message: str = "Job logs retrieved"
    job_id: str
    logs: List[Dict[str, Any]]
    total_entries: int


class JobStatusResponse(CamelModel):
    """Job status as derived from the log."""
    job_id: str
    status: Optional[str]
    last_activity: Optional[str] = None
    error: Optional[str] = None
    updated_at: Optional[str] = None
