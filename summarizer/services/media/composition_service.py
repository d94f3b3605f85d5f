"""
Composition -- concatenates segments into output/summary_{job_id}.mp4 using
the ffmpeg concat demuxer.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ValidationError
from summarizer.models.domain import CompositionPlan, Segment
from summarizer.models.pipeline_schemas import CompositionOptions, QualityPreset
from summarizer.services.composition.planner import create_composition_plan, sort_segments
from summarizer.services.media.ffmpeg import find_stream, format_duration, parse_fps, probe, run_command, to_float, to_int

logger = logging.getLogger(__name__)

PREVIEW_OPTIONS = CompositionOptions(
    enable_transitions=False,
    enable_intro=False,
    quality_preset=QualityPreset.ULTRAFAST,
    crf=28,
)


def output_filename(job_id: str) -> str:
    return f"summary_{job_id}.mp4"


def preview_job_id(job_id: str) -> str:
    return f"{job_id}_preview"


def validate_segments(segments: List[Segment]) -> None:
    if not segments:
        raise ValidationError("No segments provided for composition")
    for segment in segments:
        if not segment.path or not Path(segment.path).exists():
            raise ValidationError(f"Segment file not found: {segment.path}")


def create_concat_file(segments: List[Segment], concat_path: Path) -> Path:
    """Write an ffmpeg concat list with one absolute `file` line per segment."""
    lines = []
    for segment in segments:
        resolved = str(Path(segment.path).resolve()).replace("'", "'\\''")
        lines.append(f"file '{resolved}'")
    concat_path.parent.mkdir(parents=True, exist_ok=True)
    concat_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return concat_path


def get_final_video_metadata(video_path: Path) -> Dict[str, Any]:
    """Probe the composed output."""
    data = probe(video_path)
    fmt = data.get("format", {})
    video = find_stream(data, "video")
    audio = find_stream(data, "audio")
    size = video_path.stat().st_size
    duration = to_float(fmt.get("duration"))

    return {
        "filename": video_path.name,
        "duration": duration,
        "durationFormatted": format_duration(duration),
        "fileSize": size,
        "fileSizeMB": round(size / (1024 * 1024), 2),
        "bitRate": to_int(fmt.get("bit_rate")),
        "format": fmt.get("format_name"),
        "video": {
            "codec": video.get("codec_name"),
            "width": video.get("width"),
            "height": video.get("height"),
            "fps": parse_fps(video.get("r_frame_rate")),
        } if video else None,
        "audio": {
            "codec": audio.get("codec_name"),
            "sampleRate": to_int(audio.get("sample_rate")),
            "channels": audio.get("channels"),
        } if audio else None,
    }


def create_composed_video(
    segments: List[Segment],
    plan: CompositionPlan,
    job_id: str,
    output_dir: Optional[Path] = None,
    temp_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Run ffmpeg over the concat list. The concat list is removed whether or
    not ffmpeg succeeds; a partial output file is removed on failure.
    """
    settings = get_settings()
    output_dir = output_dir if output_dir is not None else settings.output_dir
    temp_dir = temp_dir if temp_dir is not None else settings.temp_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    filename = output_filename(job_id)
    output_path = output_dir / filename
    concat_path = temp_dir / f"concat_{job_id}.txt"

    cmd = [
        settings.ffmpeg_binary,
        "-f", "concat",
        "-safe", "0",
        "-i", str(concat_path),
        "-c:v", "libx264",
        "-preset", plan.quality["preset"],
        "-crf", str(plan.quality["crf"]),
    ]
    if plan.audio.get("enabled", True):
        cmd += ["-c:a", "aac"]
    else:
        cmd += ["-an"]
    cmd += [
        "-movflags", "+faststart",
        "-r", str(settings.output_frame_rate),
        "-y",
        str(output_path),
    ]

    try:
        create_concat_file(segments, concat_path)
        logger.info(f"Composing {len(segments)} segments into {output_path}")
        run_command(cmd, timeout=settings.ffmpeg_timeout)
    except Exception:
        if output_path.exists():
            logger.warning(f"Removing partial composition output: {output_path}")
            output_path.unlink()
        raise
    finally:
        if concat_path.exists():
            concat_path.unlink()

    metadata = get_final_video_metadata(output_path)

    return {
        "success": True,
        "jobId": job_id,
        "outputPath": str(output_path),
        "filename": filename,
        "metadata": metadata,
        "compositionPlan": plan.to_dict(),
        "segments": [
            {"title": s.title, "duration": s.duration, "importance": s.importance}
            for s in segments
        ],
    }


def compose_segments(
    segments: List[Segment],
    options: Optional[CompositionOptions],
    job_id: str,
    output_dir: Optional[Path] = None,
    temp_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """Validate, order and compose segments into the final summary video."""
    options = options or CompositionOptions()
    validate_segments(segments)
    ordered = sort_segments(segments, options.sort_by)
    plan = create_composition_plan(ordered, options)
    logger.debug(f"Composition plan for job {job_id}: {plan.to_dict()}")
    return create_composed_video(ordered, plan, job_id, output_dir=output_dir, temp_dir=temp_dir)


def create_preview(
    segments: List[Segment],
    job_id: str,
    output_dir: Optional[Path] = None,
    temp_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """Low-quality preview written to output/summary_{job_id}_preview.mp4."""
    return compose_segments(
        segments,
        PREVIEW_OPTIONS,
        preview_job_id(job_id),
        output_dir=output_dir,
        temp_dir=temp_dir,
    )
