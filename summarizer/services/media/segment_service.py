"""
Segment extraction -- cuts one clip per moment into segments/{job_id}/.

    segments/
    └── {job_id}/
        ├── 01_opening_the_dashboard.mp4
        └── 02_reviewing_the_report.mp4
"""
import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ValidationError
from summarizer.models.domain import Moment, Segment
from summarizer.services.media.ffmpeg import run_command

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = "320x180"


def sanitize_filename(title: str) -> str:
    """Keep letters, digits, whitespace, '-' and '_'; spaces become '_'; max 50 chars; lowercase."""
    cleaned = re.sub(r"[^a-zA-Z0-9\s\-_]", "", title)
    cleaned = re.sub(r"\s+", "_", cleaned)
    return cleaned[:50].lower()


def segment_filename(index: int, title: str) -> str:
    """{NN}_{sanitized title}.mp4 with a 0-based index."""
    safe_title = sanitize_filename(title) or f"moment_{index + 1}"
    return f"{index + 1:02d}_{safe_title}.mp4"


def get_job_segments_dir(job_id: str, segments_root: Optional[Path] = None) -> Path:
    root = segments_root if segments_root is not None else get_settings().segments_dir
    return root / job_id


def extract_single_moment(video_path: Path, moment: Moment, index: int, output_dir: Path) -> Segment:
    """
    Cut one moment out of the source video.

    Raises:
        CollaboratorError: If ffmpeg fails
    """
    settings = get_settings()
    filename = segment_filename(index, moment.title)
    output_path = output_dir / filename
    duration = moment.end_time - moment.start_time

    cmd = [
        settings.ffmpeg_binary,
        "-ss", str(moment.start_time),
        "-i", str(video_path),
        "-t", str(duration),
        "-c:v", "libx264",
        "-c:a", "aac",
        "-preset", settings.segment_preset,
        "-crf", str(settings.segment_crf),
        "-movflags", "+faststart",
        "-avoid_negative_ts", "make_zero",
        "-y",
        str(output_path),
    ]

    logger.info(
        f"Extracting segment {index + 1} '{moment.title}': "
        f"{moment.start_time:.1f}s-{moment.end_time:.1f}s ({duration:.1f}s)"
    )
    run_command(cmd, timeout=settings.ffmpeg_timeout)

    return Segment(
        index=index + 1,
        title=moment.title,
        description=moment.description,
        category=moment.category,
        importance=moment.importance,
        original_start_time=moment.start_time,
        original_end_time=moment.end_time,
        filename=filename,
        path=str(output_path),
        file_size=output_path.stat().st_size if output_path.exists() else 0,
    )


def extract_moment_clips(
    video_path: Path,
    moments: List[Moment],
    job_id: str,
    segments_root: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Extract every moment as a separate clip, in list order.

    Returns:
        Dict with the Segment list, the output directory and total duration

    Raises:
        ValidationError: Missing video or empty moment list
        CollaboratorError: If any extraction fails
    """
    if not video_path.exists():
        raise ValidationError(f"Video file not found: {video_path.name}")
    if not moments:
        raise ValidationError("No moments provided for segmentation")

    job_dir = get_job_segments_dir(job_id, segments_root)
    job_dir.mkdir(parents=True, exist_ok=True)

    segments = [
        extract_single_moment(video_path, moment, i, job_dir)
        for i, moment in enumerate(moments)
    ]

    logger.info(f"Extracted {len(segments)} segments for job {job_id} into {job_dir}")

    return {
        "success": True,
        "jobId": job_id,
        "totalSegments": len(segments),
        "segments": segments,
        "outputDirectory": str(job_dir),
        "totalDuration": sum(s.duration for s in segments),
    }


def create_segment_thumbnail(segment_path: Path, output_path: Path, duration: float) -> Path:
    """Grab a 320x180 frame at the middle of a segment."""
    settings = get_settings()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        settings.ffmpeg_binary,
        "-ss", str(max(0.0, duration / 2)),
        "-i", str(segment_path),
        "-frames:v", "1",
        "-s", THUMBNAIL_SIZE,
        "-y",
        str(output_path),
    ]
    run_command(cmd, timeout=settings.ffprobe_timeout)
    return output_path


def generate_segment_summary(segments: List[Segment]) -> Dict[str, Any]:
    """Aggregate statistics over extracted segments."""
    if not segments:
        return {
            "totalSegments": 0,
            "totalDuration": 0,
            "totalFileSizeMB": 0,
            "categoryCounts": {},
            "importanceStats": {"min": None, "max": None, "avg": None},
            "averageDuration": 0,
            "segments": [],
        }

    total_duration = sum(s.duration for s in segments)
    total_size = sum(s.file_size for s in segments)

    category_counts: Dict[str, int] = {}
    for s in segments:
        category_counts[s.category] = category_counts.get(s.category, 0) + 1

    importances = [s.importance for s in segments]

    return {
        "totalSegments": len(segments),
        "totalDuration": round(total_duration, 2),
        "totalFileSizeMB": round(total_size / (1024 * 1024), 2),
        "categoryCounts": category_counts,
        "importanceStats": {
            "min": min(importances),
            "max": max(importances),
            "avg": sum(importances) / len(importances),
        },
        "averageDuration": round(total_duration / len(segments), 2),
        "segments": [
            {
                "index": s.index,
                "title": s.title,
                "duration": s.duration,
                "importance": s.importance,
                "category": s.category,
            }
            for s in segments
        ],
    }


def cleanup_segments(job_id: str, segments_root: Optional[Path] = None) -> int:
    """
    Delete a job's segment files and directory.

    Returns:
        Number of files deleted (0 when nothing was there)
    """
    job_dir = get_job_segments_dir(job_id, segments_root)
    if not job_dir.exists():
        return 0

    deleted = sum(1 for p in job_dir.rglob("*") if p.is_file())
    shutil.rmtree(job_dir)
    logger.info(f"Cleaned up {deleted} segment files for job {job_id}")
    return deleted
