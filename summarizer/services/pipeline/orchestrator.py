"""
Pipeline orchestrator -- runs each stage of a job against the job log.

Every stage follows the same shape:

    1. resolve prerequisites from the latest events (PrerequisiteMissingError,
       nothing logged, when one is missing)
    2. call the collaborator in a worker thread
    3. append exactly one *_completed event with the result, or one *_failed
       event with the message before the error propagates

Convenience flows run every stage for a fresh upload and record each
intermediate completion, so discrete calls can resume from any point.
"""
import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from summarizer.core.config import get_settings
from summarizer.core.exceptions import (
    CollaboratorError,
    FileNotFoundInWorkspaceError,
    JobNotFoundError,
    SummarizerException,
    ValidationError,
)
from summarizer.core.logging import set_job_id
from summarizer.models.domain import ActivityKind, Moment, StageEvent
from summarizer.models.pipeline_schemas import CompositionOptions, QualityPreset, SummaryOptions
from summarizer.services.ai.moment_analysis import analyze_moments
from summarizer.services.ai.moment_client import MomentDetectionClient, get_moment_client
from summarizer.services.ai.transcription_client import (
    TranscriptionClient,
    get_transcription_client,
    process_transcription_for_analysis,
    validate_transcription,
)
from summarizer.services.cleanup_service import CleanupCoordinator
from summarizer.services.file_manager import cleanup_file, get_file_info, move_to_processing
from summarizer.services.job_log import JobLog
from summarizer.services.media.audio_service import (
    extract_audio,
    get_optimal_settings,
    validate_audio_for_transcription,
)
from summarizer.services.media.video_service import estimate_processing_time, validate_video
from summarizer.services.pipeline.dependencies import StageDependencyResolver
from summarizer.services.pipeline.status import SUMMARY_ACTIVITIES
from summarizer.services.summarizer_service import VideoSummarizer

logger = logging.getLogger(__name__)

DEFAULT_PIPELINE_SUMMARY_OPTIONS = SummaryOptions(
    max_moments=6,
    min_importance=5,
    composition=CompositionOptions(
        enable_transitions=False,
        quality_preset=QualityPreset.MEDIUM,
    ),
)


def generate_job_id() -> str:
    """{millis}-{8 hex chars}"""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def error_details(error: Exception) -> Dict[str, Any]:
    """details payload for a *_failed event."""
    if isinstance(error, SummarizerException):
        details = {"error": error.message}
        if isinstance(error, CollaboratorError) and error.classification:
            details["classification"] = error.classification
        return details
    return {"error": str(error)}


class PipelineOrchestrator:
    """Stage runner over the job log."""

    def __init__(
        self,
        job_log: JobLog,
        transcription_client: Optional[TranscriptionClient] = None,
        moment_client: Optional[MomentDetectionClient] = None,
        summarizer: Optional[VideoSummarizer] = None,
    ):
        self.job_log = job_log
        self.resolver = StageDependencyResolver(job_log)
        self.cleanup_coordinator = CleanupCoordinator(job_log)
        self._transcription_client = transcription_client
        self._moment_client = moment_client
        self._summarizer = summarizer

    @property
    def transcription_client(self) -> TranscriptionClient:
        if self._transcription_client is None:
            self._transcription_client = get_transcription_client()
        return self._transcription_client

    @property
    def moment_client(self) -> MomentDetectionClient:
        if self._moment_client is None:
            self._moment_client = get_moment_client()
        return self._moment_client

    @property
    def summarizer(self) -> VideoSummarizer:
        if self._summarizer is None:
            self._summarizer = VideoSummarizer()
        return self._summarizer

    async def _processing_file(self, job_id: str) -> Path:
        started = await self.resolver.require(job_id, ActivityKind.PROCESSING_STARTED)
        return Path(started.details["tempPath"])

    # ------------------------------------------------------------------
    # Discrete stages
    # ------------------------------------------------------------------

    async def start_job(self, filename: str, job_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Move uploads/{filename} into temp/ and open a job for it.

        Raises:
            FileNotFoundInWorkspaceError: If the upload does not exist
        """
        source = get_settings().uploads_dir / filename
        if not source.exists():
            raise FileNotFoundInWorkspaceError(filename, "uploads")

        job_id = job_id or generate_job_id()
        set_job_id(job_id)

        moved = await asyncio.to_thread(move_to_processing, source, filename)
        await self.job_log.append(job_id, ActivityKind.PROCESSING_STARTED, {
            "originalName": filename,
            "filename": moved["filename"],
            "tempPath": moved["tempPath"],
            "size": Path(moved["tempPath"]).stat().st_size,
        })

        return {
            "message": "Job created",
            "jobId": job_id,
            "processingFile": moved["filename"],
            "nextSteps": [
                f"Use /validate/{job_id} to validate the video and extract metadata",
                "Or use /process-full or /process-and-summarize for the complete pipeline",
            ],
        }

    async def validate(self, job_id: str) -> Dict[str, Any]:
        """
        Validate the job's video and record its metadata.

        Failures propagate without logging, whether the video is rejected
        (ValidationError) or ffprobe fails (CollaboratorError); the job stays created.
        """
        set_job_id(job_id)
        video_path = await self._processing_file(job_id)

        result = await asyncio.to_thread(validate_video, video_path)
        metadata = result["metadata"]
        await self.job_log.append(job_id, ActivityKind.METADATA_EXTRACTED, {"metadata": metadata})

        return {
            "message": result["message"],
            "jobId": job_id,
            "validation": {"valid": True},
            "metadata": metadata,
            "processing": {
                "estimatedTime": estimate_processing_time(metadata["duration"]),
                "recommendedSettings": get_optimal_settings(metadata),
            },
        }

    async def extract_audio(self, job_id: str) -> Dict[str, Any]:
        set_job_id(job_id)
        await self.resolver.require(job_id, ActivityKind.METADATA_EXTRACTED)
        video_path = await self._processing_file(job_id)

        result = None
        try:
            result = await asyncio.to_thread(extract_audio, video_path, get_settings().temp_dir)
            audio_validation = await asyncio.to_thread(
                validate_audio_for_transcription, Path(result["audioPath"])
            )
        except Exception as e:
            if result is not None:
                await asyncio.to_thread(cleanup_file, Path(result["audioPath"]))
            await self.job_log.append(job_id, ActivityKind.AUDIO_EXTRACTION_FAILED, error_details(e))
            raise

        await self.job_log.append(job_id, ActivityKind.AUDIO_EXTRACTION_COMPLETED, {
            **result,
            "audioFile": result["filename"],
            "validation": audio_validation,
        })

        return {
            "message": "Audio extraction completed successfully",
            "jobId": job_id,
            "audio": result,
            "validation": audio_validation,
            "nextSteps": [f"Use /transcribe/{job_id} for speech-to-text conversion"],
        }

    async def transcribe(
        self,
        job_id: str,
        language: Optional[str] = None,
        prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        set_job_id(job_id)
        audio_event = await self.resolver.require(job_id, ActivityKind.AUDIO_EXTRACTION_COMPLETED)
        audio_path = Path(audio_event.details["audioPath"])

        await self.job_log.append(job_id, ActivityKind.TRANSCRIPTION_STARTED, {
            "audioFile": audio_event.details.get("audioFile"),
            "language": language,
        })

        try:
            raw = await asyncio.to_thread(self.transcription_client.transcribe, audio_path, language, prompt)
            processed = process_transcription_for_analysis(raw)
            validation = validate_transcription(raw)
        except Exception as e:
            await self.job_log.append(job_id, ActivityKind.TRANSCRIPTION_FAILED, error_details(e))
            raise

        await self.job_log.append(job_id, ActivityKind.TRANSCRIPTION_COMPLETED, {
            "transcription": processed,
            "validation": validation,
            "wordCount": raw["wordCount"],
            "confidence": raw["confidence"],
        })

        return {
            "message": "Transcription completed successfully",
            "jobId": job_id,
            "transcription": raw,
            "processed": processed,
            "validation": validation,
            "nextSteps": [f"Use /analyze-moments/{job_id} to identify key moments"],
        }

    async def analyze_moments(self, job_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        set_job_id(job_id)
        transcript_event = await self.resolver.require(job_id, ActivityKind.TRANSCRIPTION_COMPLETED)
        video_path = await self._processing_file(job_id)
        metadata_event = await self.resolver.resolve(job_id, ActivityKind.METADATA_EXTRACTED)
        video_duration = (
            metadata_event.details.get("metadata", {}).get("duration") if metadata_event else None
        )

        await self.job_log.append(job_id, ActivityKind.MOMENT_ANALYSIS_STARTED, {"options": options or {}})

        try:
            result = await asyncio.to_thread(
                analyze_moments,
                transcript_event.details["transcription"],
                video_duration,
                video_path,
                self.moment_client,
                options,
            )
        except Exception as e:
            await self.job_log.append(job_id, ActivityKind.MOMENT_ANALYSIS_FAILED, error_details(e))
            raise

        await self.job_log.append(job_id, ActivityKind.MOMENT_ANALYSIS_COMPLETED, {
            "analysis": result["analysis"],
            "validation": result["validation"],
            "provider": result["provider"],
        })

        return {
            "message": "Moment analysis completed successfully",
            "jobId": job_id,
            "analysis": result["analysis"],
            "validation": result["validation"],
            "provider": result["provider"],
            "nextSteps": [
                f"Use /moments/{job_id} to review the key moments",
                f"Use /create-summary/{job_id} or /quick-summary/{job_id} to build the summary video",
            ],
        }

    async def get_moments(self, job_id: str) -> Dict[str, Any]:
        """
        Raises:
            JobNotFoundError: If the job has no completed analysis
        """
        moment_event = await self.job_log.find_latest(job_id, ActivityKind.MOMENT_ANALYSIS_COMPLETED)
        if moment_event is None:
            raise JobNotFoundError(job_id, "moment analysis")
        transcript_event = await self.job_log.find_latest(job_id, ActivityKind.TRANSCRIPTION_COMPLETED)

        analysis = moment_event.details.get("analysis") or {}
        return {
            "message": "Key moments retrieved successfully",
            "jobId": job_id,
            "moments": {
                "moments": analysis.get("keyMoments", []),
                "summary": analysis.get("summary") or "No summary available",
                "totalOriginalDuration": analysis.get("totalOriginalDuration", 0),
                "recommendedSummaryDuration": analysis.get("recommendedSummaryDuration", 0),
                "compressionRatio": analysis.get("compressionRatio", 0),
                "momentCount": analysis.get("momentCount", 0),
                "contentType": analysis.get("contentType") or "unknown",
                "recommendedApproach": analysis.get("recommendedApproach") or "No recommendations available",
            },
            "provider": moment_event.details.get("provider"),
            "validation": moment_event.details.get("validation"),
            "transcription": transcript_event.details.get("transcription") if transcript_event else None,
            "summary": {
                "totalMoments": analysis.get("momentCount", 0),
                "originalDuration": analysis.get("totalOriginalDuration", 0),
                "summaryDuration": analysis.get("recommendedSummaryDuration", 0),
                "compressionRatio": f"{analysis.get('compressionRatio', 0)}%",
            },
        }

    async def _summary_inputs(self, job_id: str) -> Tuple[Path, List[Moment]]:
        moment_event = await self.resolver.require(job_id, ActivityKind.MOMENT_ANALYSIS_COMPLETED)
        video_path = await self._processing_file(job_id)
        raw = (moment_event.details.get("analysis") or {}).get("keyMoments") or []
        if not raw:
            raise ValidationError("No moments available for summarization")
        return video_path, [Moment.from_dict(m) for m in raw]

    async def create_summary(self, job_id: str, options: Optional[SummaryOptions] = None) -> Dict[str, Any]:
        set_job_id(job_id)
        options = options or SummaryOptions()
        video_path, moments = await self._summary_inputs(job_id)

        await self.job_log.append(job_id, ActivityKind.VIDEO_SUMMARIZATION_STARTED, {
            "momentsCount": len(moments),
            "options": options.to_wire(),
        })

        try:
            result = await asyncio.to_thread(self.summarizer.create_summary, video_path, moments, options, job_id)
        except Exception as e:
            await self.job_log.append(job_id, ActivityKind.VIDEO_SUMMARIZATION_FAILED, error_details(e))
            raise

        await self.job_log.append(job_id, ActivityKind.VIDEO_SUMMARIZATION_COMPLETED, {"result": result})

        filename = result["output"]["finalVideo"]["filename"]
        return {
            "message": "Video summary created successfully",
            "jobId": job_id,
            "summary": result,
            "nextSteps": [
                f"Download your summary video from /output/{filename}",
                "Review individual segments if needed",
                f"Use /cleanup/{job_id} to remove temporary files",
            ],
        }

    async def quick_summary(self, job_id: str) -> Dict[str, Any]:
        """Summary with the fixed quick options; failures are logged as video_summarization_failed."""
        set_job_id(job_id)
        video_path, moments = await self._summary_inputs(job_id)

        try:
            result = await asyncio.to_thread(self.summarizer.quick_summary, video_path, moments, job_id)
        except Exception as e:
            details = error_details(e)
            details["mode"] = "quick"
            await self.job_log.append(job_id, ActivityKind.VIDEO_SUMMARIZATION_FAILED, details)
            raise

        await self.job_log.append(job_id, ActivityKind.QUICK_SUMMARY_COMPLETED, {"result": result})

        return {
            "message": "Quick summary created successfully",
            "jobId": job_id,
            "summary": result,
            "processingNote": "Quick summary uses top 5 moments with fast processing",
        }

    async def get_summary(self, job_id: str) -> Dict[str, Any]:
        """
        Latest produced summary of a job.

        Raises:
            JobNotFoundError: If no summary has been produced
        """
        events = await self.job_log.query(job_id)
        summary_event: Optional[StageEvent] = None
        for event in reversed(events):
            if event.activity in SUMMARY_ACTIVITIES and (
                event.details.get("result") or event.details.get("summary")
            ):
                summary_event = event
                break
        if summary_event is None:
            raise JobNotFoundError(job_id, "summary")

        data = summary_event.details.get("result") or summary_event.details.get("summary")
        final_video = (data.get("output") or {}).get("finalVideo")
        return {
            "message": "Summary retrieved successfully",
            "jobId": job_id,
            "summary": data,
            "created": summary_event.timestamp.isoformat(),
            "downloadUrl": f"/output/{final_video['filename']}" if final_video else None,
        }

    # ------------------------------------------------------------------
    # Convenience flows
    # ------------------------------------------------------------------

    async def _analyze_upload(
        self,
        job_id: str,
        language: Optional[str],
        prompt: Optional[str],
    ) -> Dict[str, Any]:
        validation = await self.validate(job_id)
        audio = await self.extract_audio(job_id)
        transcription = await self.transcribe(job_id, language, prompt)
        analysis = await self.analyze_moments(job_id)
        return {
            "validation": validation,
            "audio": audio,
            "transcription": transcription,
            "analysis": analysis,
        }

    async def process_full(
        self,
        filename: str,
        job_id: Optional[str] = None,
        language: Optional[str] = None,
        prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a job for an upload and run it through moment analysis."""
        started_at = time.time()
        job = await self.start_job(filename, job_id)
        job_id = job["jobId"]

        try:
            stages = await self._analyze_upload(job_id, language, prompt)
        except Exception as e:
            await self.job_log.append(job_id, ActivityKind.FULL_PIPELINE_FAILED, error_details(e))
            raise

        metadata = stages["validation"]["metadata"]
        analysis = stages["analysis"]["analysis"]
        processing_time = round(time.time() - started_at, 2)

        await self.job_log.append(job_id, ActivityKind.FULL_PIPELINE_COMPLETED, {
            "processingTime": processing_time,
            "momentCount": analysis["momentCount"],
        })

        return {
            "message": "Full AI processing completed successfully",
            "jobId": job_id,
            "processing": {
                "metadata": metadata,
                "audio": stages["audio"]["audio"],
                "transcription": stages["transcription"]["transcription"],
                "moments": analysis["keyMoments"],
                "provider": stages["analysis"]["provider"],
            },
            "summary": {
                "originalDuration": metadata["duration"],
                "summaryDuration": analysis["recommendedSummaryDuration"],
                "compressionRatio": f"{analysis['compressionRatio']}%",
                "momentCount": analysis["momentCount"],
                "transcriptionWords": stages["transcription"]["transcription"]["wordCount"],
                "processingTime": processing_time,
            },
            "nextSteps": [
                f"Use /moments/{job_id} to get detailed key moments",
                f"Create video summary with /create-summary/{job_id}",
                f"Or use /quick-summary/{job_id} for fast results",
            ],
        }

    async def process_and_summarize(
        self,
        filename: str,
        options: Optional[SummaryOptions] = None,
        job_id: Optional[str] = None,
        language: Optional[str] = None,
        prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a job for an upload and run every stage through the summary video."""
        started_at = time.time()
        options = options or DEFAULT_PIPELINE_SUMMARY_OPTIONS
        job = await self.start_job(filename, job_id)
        job_id = job["jobId"]

        await self.job_log.append(job_id, ActivityKind.FULL_PIPELINE_STARTED, {
            "originalFile": filename,
            "options": options.to_wire(),
        })

        try:
            stages = await self._analyze_upload(job_id, language, prompt)
            analysis = stages["analysis"]["analysis"]
            if not analysis["keyMoments"]:
                raise ValidationError("No moments detected for summarization")
            summary = await self.create_summary(job_id, options)
        except Exception as e:
            await self.job_log.append(job_id, ActivityKind.FULL_PIPELINE_FAILED, error_details(e))
            raise

        result = summary["summary"]
        processing_time = round(time.time() - started_at, 2)
        await self.job_log.append(job_id, ActivityKind.FULL_PIPELINE_COMPLETED, {
            "processingTime": processing_time,
            "summary": result,
        })

        metadata = stages["validation"]["metadata"]
        moments = analysis["keyMoments"]
        final_video = result["output"]["finalVideo"]
        compression = result["statistics"]["compression"]

        return {
            "message": "Complete video processing and summarization finished successfully",
            "jobId": job_id,
            "processingTime": processing_time,
            "analysis": {
                "metadata": metadata,
                "transcription": {
                    "wordCount": stages["transcription"]["transcription"]["wordCount"],
                    "confidence": stages["transcription"]["transcription"]["confidence"],
                    "language": stages["transcription"]["transcription"]["language"],
                },
                "moments": {
                    "detected": len(moments),
                    "provider": stages["analysis"]["provider"],
                    "categories": sorted({m["category"] for m in moments}),
                },
            },
            "summary": result,
            "results": {
                "originalDuration": metadata["duration"],
                "finalDuration": final_video["metadata"].get("duration"),
                "compressionRatio": f"{compression['compressionRatio']}%",
                "momentsUsed": compression["usedMoments"],
                "outputVideo": final_video["filename"],
            },
            "nextSteps": [
                f"Download your summary video: {final_video['filename']}",
                "Review the processing details above",
                f"Use /cleanup/{job_id} when finished to remove temporary files",
            ],
        }

    # ------------------------------------------------------------------
    # Maintenance and inspection
    # ------------------------------------------------------------------

    async def cleanup(self, job_id: str) -> Dict[str, Any]:
        """Delete a job's artifacts and record the report. Safe to repeat."""
        set_job_id(job_id)
        report = await self.cleanup_coordinator.cleanup(job_id)
        await self.job_log.append(job_id, ActivityKind.CLEANUP_COMPLETED, {
            "results": report["results"],
            "totalDeleted": report["totalDeleted"],
        })
        return {"message": "Cleanup completed successfully", **report}

    async def get_logs(self, job_id: str) -> Dict[str, Any]:
        events = await self.job_log.query(job_id)
        return {
            "message": "Job logs retrieved",
            "jobId": job_id,
            "logs": [event.to_dict() for event in events],
            "totalEntries": len(events),
        }

    async def get_status(self, job_id: str) -> Dict[str, Any]:
        """
        Raises:
            JobNotFoundError: If the job has no events
        """
        state = await self.job_log.get_state(job_id)
        if state is None:
            raise JobNotFoundError(job_id)
        return state.to_dict()

    async def get_video_info(self, filename: str) -> Dict[str, Any]:
        """
        Validate an uploaded file and describe it without opening a job.

        Raises:
            FileNotFoundInWorkspaceError: If the upload does not exist
            ValidationError: If the video cannot be processed
        """
        path = get_settings().uploads_dir / filename
        if not path.exists():
            raise FileNotFoundInWorkspaceError(filename, "uploads")

        result = await asyncio.to_thread(validate_video, path)
        metadata = result["metadata"]
        return {
            "message": "Video information retrieved successfully",
            "validation": {"valid": True, "message": result["message"]},
            "metadata": metadata,
            "fileInfo": get_file_info(path),
            "processing": {
                "estimatedTime": estimate_processing_time(metadata["duration"]),
                "recommendedSettings": get_optimal_settings(metadata),
            },
        }
