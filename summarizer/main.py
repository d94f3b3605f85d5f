import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from summarizer.core.config import get_settings
from summarizer.core.logging import setup_logging
from summarizer.database.session import close_db, init_db
from summarizer.middleware.logging import RequestLoggingMiddleware
from summarizer.middleware.error_handling import ErrorHandlingMiddleware
from summarizer.api.endpoints import files, jobs, summaries
from summarizer.services.file_manager import ensure_directories

logger = logging.getLogger(__name__)

ENDPOINTS = {
    "health": "/health",
    "upload": "/upload (POST)",
    "video_info": "/video-info/{filename} (GET)",
    "start_job": "/jobs (POST)",
    "validate": "/validate/{jobId} (POST)",
    "extract_audio": "/extract-audio/{jobId} (POST)",
    "transcribe": "/transcribe/{jobId} (POST)",
    "analyze_moments": "/analyze-moments/{jobId} (POST)",
    "get_moments": "/moments/{jobId} (GET)",
    "process_full": "/process-full (POST)",
    "create_summary": "/create-summary/{jobId} (POST)",
    "quick_summary": "/quick-summary/{jobId} (POST)",
    "summary_options": "/summary-options (GET)",
    "process_and_summarize": "/process-and-summarize (POST)",
    "get_summary": "/summary/{jobId} (GET)",
    "cleanup_job": "/cleanup/{jobId} (POST)",
    "cleanup": "/cleanup (POST)",
    "file_stats": "/file-stats (GET)",
    "logs": "/logs/{jobId} (GET)",
    "status": "/status/{jobId} (GET)",
}


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(log_level=settings.log_level, log_dir=settings.logs_dir)
    directories = ensure_directories()

    app = FastAPI(title=settings.app_name, version=settings.app_version)

    # Last added runs first
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(files.router, tags=["files"])
    app.include_router(jobs.router, tags=["jobs"])
    app.include_router(summaries.router, tags=["summaries"])

    app.mount("/output", StaticFiles(directory=str(directories["output"])), name="output")
    app.mount("/segments", StaticFiles(directory=str(directories["segments"])), name="segments")
    app.mount("/thumbnails", StaticFiles(directory=str(directories["thumbnails"])), name="thumbnails")

    @app.get("/")
    async def root():
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "endpoints": ENDPOINTS,
        }

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.app_version,
            "ai_services": {
                "transcription": "configured" if settings.transcription_api_key else "missing",
                "moment_detection": "configured" if settings.detection_api_key else "missing",
            },
        }

    @app.on_event("startup")
    async def startup_event():
        await init_db()
        logger.info(f"{settings.app_name} started, working directory {settings.work_dir.resolve()}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await close_db()

    return app


app = create_app()
