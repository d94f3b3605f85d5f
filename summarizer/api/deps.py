"""
Dependency injection for FastAPI endpoints.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from summarizer.core.config import Settings, get_settings
from summarizer.services.job_log import get_job_log
from summarizer.services.pipeline.orchestrator import PipelineOrchestrator
from summarizer.services.summarizer_service import VideoSummarizer

_orchestrator: Optional[PipelineOrchestrator] = None


@lru_cache()
def get_app_settings() -> Settings:
    return get_settings()


def get_orchestrator() -> PipelineOrchestrator:
    """Orchestrator singleton bound to the application job log."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = PipelineOrchestrator(get_job_log())
    return _orchestrator


def get_summarizer(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)) -> VideoSummarizer:
    return orchestrator.summarizer


def reset_dependencies() -> None:
    global _orchestrator
    _orchestrator = None
    get_app_settings.cache_clear()
