"""
Video summarization -- turns analyzed moments into the final summary video.

Flow: validate inputs -> filter moments -> extract one clip per moment ->
(optional) thumbnails -> compose -> final report -> (optional) preview.
All work here is blocking subprocess I/O; async callers run it in a thread.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from summarizer.core.config import get_settings
from summarizer.core.exceptions import CollaboratorError, ValidationError
from summarizer.core.logging import log_operation_start, log_operation_complete, log_operation_error
from summarizer.models.domain import Moment, Segment
from summarizer.models.pipeline_schemas import CompositionOptions, MomentSortOrder, QualityPreset, SummaryOptions
from summarizer.services.composition.planner import composition_stats
from summarizer.services.media.composition_service import compose_segments, create_preview
from summarizer.services.media.segment_service import (
    cleanup_segments,
    create_segment_thumbnail,
    extract_moment_clips,
    generate_segment_summary,
)
from summarizer.services.moments.filtering import filter_moments

logger = logging.getLogger(__name__)

QUICK_SUMMARY_OPTIONS = SummaryOptions(
    max_moments=5,
    min_importance=6,
    sort_moments_by=MomentSortOrder.IMPORTANCE,
    composition=CompositionOptions(
        enable_transitions=False,
        enable_intro=False,
        quality_preset=QualityPreset.FAST,
        crf=25,
    ),
    create_thumbnails=False,
    create_preview=False,
)

CAPABILITIES = {
    "filtering": {
        "minImportance": "Filter moments by minimum importance score (1-10)",
        "includeCategories": 'Array of categories to include (e.g., ["decision", "data_review"])',
        "maxMomentDuration": "Maximum duration per moment in seconds",
        "maxMoments": "Maximum number of moments to include",
        "sortMomentsBy": 'Sort order: "chronological", "importance", or "duration"',
    },
    "composition": {
        "enableTransitions": "Add transitions between segments (true/false)",
        "transitionType": 'Type of transition: "fade", "slide", etc.',
        "transitionDuration": "Transition duration in seconds",
        "enableIntro": "Add intro title card (true/false)",
        "introText": "Custom intro text",
        "enableSpeedAdjustment": "Adjust playback speed (true/false)",
        "speedFactor": "Playback speed multiplier",
        "qualityPreset": 'FFmpeg preset: "ultrafast", "fast", "medium", "slow"',
        "crf": "Quality level: 18 (high) to 28 (lower)",
        "sortBy": 'Segment order: "order", "importance", "duration", or "chronological"',
    },
    "output": {
        "createThumbnails": "Generate thumbnail images for segments",
        "createPreview": "Create low-quality preview version",
        "includeAudio": "Include audio in final video (true/false)",
    },
}


def validate_inputs(video_path: Path, moments: List[Moment]) -> None:
    if not video_path or not video_path.exists():
        raise ValidationError(f"Video file not found: {video_path}")
    if not moments:
        raise ValidationError("No moments provided for summarization")
    for moment in moments:
        if moment.start_time < 0 or moment.start_time >= moment.end_time:
            raise ValidationError(
                f"Invalid moment timing: '{moment.title}' {moment.start_time}-{moment.end_time}"
            )


class VideoSummarizer:
    """Segment extraction, composition and reporting for one job at a time."""

    def __init__(
        self,
        segments_root: Optional[Path] = None,
        thumbnails_root: Optional[Path] = None,
        output_dir: Optional[Path] = None,
        temp_dir: Optional[Path] = None,
    ):
        settings = get_settings()
        self.segments_root = segments_root or settings.segments_dir
        self.thumbnails_root = thumbnails_root or settings.thumbnails_dir
        self.output_dir = output_dir or settings.output_dir
        self.temp_dir = temp_dir or settings.temp_dir

    def create_summary(
        self,
        video_path: Path,
        moments: List[Moment],
        options: Optional[SummaryOptions],
        job_id: str,
    ) -> Dict[str, Any]:
        """
        Produce output/summary_{job_id}.mp4 from the given moments.

        On failure the job's segment directory is removed before the error
        propagates; composition removes its own partial output.

        Raises:
            ValidationError: Missing video, no moments, or nothing left after filtering
            CollaboratorError: If ffmpeg fails
        """
        operation = "video_summarization"
        options = options or SummaryOptions()
        start = datetime.now(timezone.utc)

        validate_inputs(video_path, moments)
        filtered = filter_moments(moments, options)
        if not filtered:
            raise ValidationError("No moments match the summary options")

        log_operation_start(
            logger=__name__,
            operation=operation,
            message=f"Summarizing job {job_id}",
            context={"job_id": job_id, "moments": len(moments), "filtered": len(filtered)},
        )

        try:
            segment_result = extract_moment_clips(video_path, filtered, job_id, segments_root=self.segments_root)
            segments: List[Segment] = segment_result["segments"]

            if options.create_thumbnails:
                self.create_segment_thumbnails(segments, job_id)

            composition_result = compose_segments(
                segments,
                options.composition,
                job_id,
                output_dir=self.output_dir,
                temp_dir=self.temp_dir,
            )
        except Exception as e:
            removed = cleanup_segments(job_id, self.segments_root)
            log_operation_error(
                logger=__name__,
                operation=operation,
                error=e,
                message="Video summarization failed",
                context={"job_id": job_id, "segments_removed": removed},
            )
            raise

        summary = self.generate_final_summary(segment_result, composition_result, moments, options)

        if options.create_preview:
            summary["preview"] = create_preview(
                segments, job_id, output_dir=self.output_dir, temp_dir=self.temp_dir
            )

        log_operation_complete(
            logger=__name__,
            operation=operation,
            message=f"Summary video ready: {composition_result['filename']}",
            context={"job_id": job_id, "segments": len(segments)},
            duration=(datetime.now(timezone.utc) - start).total_seconds(),
        )
        return summary

    def quick_summary(self, video_path: Path, moments: List[Moment], job_id: str) -> Dict[str, Any]:
        """Top five moments of importance 6+, fast preset, no transitions."""
        return self.create_summary(video_path, moments, QUICK_SUMMARY_OPTIONS, job_id)

    def create_segment_thumbnails(self, segments: List[Segment], job_id: str) -> List[Segment]:
        """Attach a thumbnail path to each segment; failures leave it None."""
        thumb_dir = self.thumbnails_root / job_id
        thumb_dir.mkdir(parents=True, exist_ok=True)

        for segment in segments:
            thumb_path = thumb_dir / Path(segment.filename).with_suffix(".jpg").name
            try:
                create_segment_thumbnail(Path(segment.path), thumb_path, segment.duration)
                segment.thumbnail = str(thumb_path)
            except CollaboratorError as e:
                logger.warning(f"Failed to create thumbnail for segment {segment.index}: {e.message}")
                segment.thumbnail = None
        return segments

    def get_composition_stats(self, segments: List[Segment], metadata: Dict[str, Any]) -> Dict[str, Any]:
        video = metadata.get("video") or {}
        resolution = f"{video.get('width')}x{video.get('height')}" if video else None
        stats = composition_stats(
            segments,
            final_duration=metadata.get("duration") or 0,
            file_size=metadata.get("fileSize") or 0,
            quality={
                "bitRate": metadata.get("bitRate"),
                "resolution": resolution,
                "fps": video.get("fps"),
            },
        )
        stats["fileSizeMB"] = metadata.get("fileSizeMB", 0)
        return stats

    def generate_final_summary(
        self,
        segment_result: Dict[str, Any],
        composition_result: Dict[str, Any],
        moments: List[Moment],
        options: SummaryOptions,
    ) -> Dict[str, Any]:
        segments: List[Segment] = segment_result["segments"]
        metadata = composition_result["metadata"]
        plan = composition_result["compositionPlan"]
        stats = self.get_composition_stats(segments, metadata)
        filename = composition_result["filename"]

        return {
            "success": True,
            "jobId": composition_result["jobId"],
            "output": {
                "finalVideo": {
                    "path": composition_result["outputPath"],
                    "filename": filename,
                    "url": f"/output/{filename}",
                    "metadata": metadata,
                },
                "segments": [
                    {
                        "title": s.title,
                        "filename": s.filename,
                        "duration": s.duration,
                        "importance": s.importance,
                        "category": s.category,
                        "thumbnail": s.thumbnail,
                    }
                    for s in segments
                ],
                "segmentDirectory": segment_result["outputDirectory"],
            },
            "statistics": {
                "processing": stats,
                "segments": generate_segment_summary(segments),
                "compression": {
                    "originalMoments": len(moments),
                    "usedMoments": segment_result["totalSegments"],
                    "originalTotalDuration": sum(m.duration for m in moments),
                    "finalDuration": metadata.get("duration"),
                    "compressionRatio": stats["compressionRatio"],
                    "timeReduction": round(stats["originalDuration"] - stats["finalDuration"], 2),
                },
            },
            "processing": {
                "options": options.to_wire(),
                "compositionPlan": plan,
                "momentsFiltered": len(moments) - segment_result["totalSegments"],
                "processingTime": datetime.now(timezone.utc).isoformat(),
                "quality": {
                    "preset": plan["quality"]["preset"],
                    "crf": plan["quality"]["crf"],
                    "finalBitrate": metadata.get("bitRate"),
                },
            },
            "nextSteps": [
                f"Download the summary video: {filename}",
                "Review individual segments if needed",
                "Share or integrate the condensed video",
                "Clean up temporary files when done",
            ],
        }

    def capabilities(self) -> Dict[str, Any]:
        return CAPABILITIES
