"""
Summary API endpoints: summary videos, options and the full pipeline.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from pydantic import ValidationError as PydanticValidationError

from summarizer.api.deps import get_app_settings, get_orchestrator, get_summarizer
from summarizer.api.endpoints.files import save_upload
from summarizer.core.config import Settings
from summarizer.core.exceptions import ValidationError
from summarizer.models.pipeline_schemas import SummaryOptions
from summarizer.services.pipeline.orchestrator import PipelineOrchestrator
from summarizer.services.summarizer_service import VideoSummarizer

logger = logging.getLogger(__name__)

router = APIRouter()

OPTION_EXAMPLES = {
    "basicSummary": {
        "maxMoments": 5,
        "minImportance": 6,
        "composition": {"enableTransitions": False, "qualityPreset": "medium"},
    },
    "highQualitySummary": {
        "minImportance": 7,
        "composition": {
            "enableTransitions": True,
            "transitionDuration": 0.5,
            "qualityPreset": "slow",
            "crf": 20,
        },
        "createThumbnails": True,
    },
    "quickPreview": {
        "maxMoments": 3,
        "composition": {"qualityPreset": "ultrafast", "crf": 28},
    },
}


def parse_options_form(raw: Optional[str]) -> Optional[SummaryOptions]:
    """SummaryOptions from a JSON form field; empty means defaults."""
    if not raw:
        return None
    try:
        return SummaryOptions.model_validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid summary options: {e.error_count()} error(s)")


@router.post("/create-summary/{job_id}")
async def create_summary(
    job_id: str,
    options: Optional[SummaryOptions] = Body(default=None),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.create_summary(job_id, options)


@router.post("/quick-summary/{job_id}")
async def quick_summary(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.quick_summary(job_id)


@router.get("/summary-options")
async def summary_options(summarizer: VideoSummarizer = Depends(get_summarizer)):
    return {
        "message": "Video summarization options and capabilities",
        "capabilities": summarizer.capabilities(),
        "examples": OPTION_EXAMPLES,
    }


@router.post("/process-and-summarize")
async def process_and_summarize(
    video: UploadFile = File(...),
    options: Optional[str] = Form(default=None),
    language: Optional[str] = Form(default=None),
    prompt: Optional[str] = Form(default=None),
    settings: Settings = Depends(get_app_settings),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Upload a video and run every stage through the summary video."""
    summary_options = parse_options_form(options)
    stored = await save_upload(video, settings)
    return await orchestrator.process_and_summarize(
        stored["filename"],
        options=summary_options,
        language=language,
        prompt=prompt,
    )


@router.get("/summary/{job_id}")
async def get_summary(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.get_summary(job_id)
