"""
Strict schema for the moment detection service's JSON document.
"""
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

Number = Union[StrictInt, StrictFloat]


class DetectedMoment(BaseModel):
    """One entry of keyMoments as returned by the detector."""
    model_config = ConfigDict(extra="ignore")

    title: str = "Untitled moment"
    description: str = ""
    startTime: Number
    endTime: Number
    importance: Optional[Number] = None
    category: str = "workflow_phase"
    reason: str = ""
    workflowContext: str = ""

    @field_validator("title", "description", "category", "reason", "workflowContext", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v


class DetectionDocument(BaseModel):
    """Top-level detector response."""
    model_config = ConfigDict(extra="ignore")

    keyMoments: List[DetectedMoment]
    summary: Optional[str] = None
    totalOriginalDuration: Optional[Number] = None
    recommendedApproach: Optional[str] = None
    contentType: Optional[str] = None
    workflowPhases: List[Any] = Field(default_factory=list)
