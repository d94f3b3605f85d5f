"""
Job API endpoints: discrete pipeline stages, the analysis-only pipeline,
job logs, status and per-job cleanup.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile

from summarizer.api.deps import get_app_settings, get_orchestrator
from summarizer.api.endpoints.files import save_upload
from summarizer.core.config import Settings
from summarizer.models.pipeline_schemas import (
    AnalyzeRequest,
    JobLogResponse,
    JobStatusResponse,
    StartJobRequest,
    TranscribeRequest,
)
from summarizer.services.pipeline.orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/jobs")
async def start_job(request: StartJobRequest, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    """Open a job for a file previously stored by /upload."""
    return await orchestrator.start_job(request.filename, request.job_id)


@router.post("/validate/{job_id}")
async def validate(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.validate(job_id)


@router.post("/extract-audio/{job_id}")
async def extract_audio(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.extract_audio(job_id)


@router.post("/transcribe/{job_id}")
async def transcribe(
    job_id: str,
    request: Optional[TranscribeRequest] = Body(default=None),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    request = request or TranscribeRequest()
    return await orchestrator.transcribe(job_id, request.language, request.prompt)


@router.post("/analyze-moments/{job_id}")
async def analyze_moments(
    job_id: str,
    request: Optional[AnalyzeRequest] = Body(default=None),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    request = request or AnalyzeRequest()
    return await orchestrator.analyze_moments(job_id, request.options)


@router.get("/moments/{job_id}")
async def get_moments(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.get_moments(job_id)


@router.post("/process-full")
async def process_full(
    video: UploadFile = File(...),
    language: Optional[str] = Form(default=None),
    prompt: Optional[str] = Form(default=None),
    settings: Settings = Depends(get_app_settings),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Upload a video and run it through moment analysis in one call."""
    stored = await save_upload(video, settings)
    return await orchestrator.process_full(stored["filename"], language=language, prompt=prompt)


@router.post("/cleanup/{job_id}")
async def cleanup_job(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.cleanup(job_id)


@router.get("/logs/{job_id}", response_model=JobLogResponse, response_model_by_alias=True)
async def get_logs(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.get_logs(job_id)


@router.get("/status/{job_id}", response_model=JobStatusResponse, response_model_by_alias=True)
async def get_status(job_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.get_status(job_id)
