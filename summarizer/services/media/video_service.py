"""
Video metadata extraction and validation.
"""
import logging
import math
from pathlib import Path
from typing import Any, Dict

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ValidationError
from summarizer.services.media.ffmpeg import (
    find_stream,
    format_duration,
    parse_fps,
    probe,
    to_float,
    to_int,
)

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"mp4", "avi", "mov", "mkv", "webm", "flv", "wmv"}


def get_video_metadata(file_path: Path) -> Dict[str, Any]:
    """
    Extract metadata from a video file using ffprobe.

    Returns:
        Dict with file, video stream, audio stream and derived fields
    """
    data = probe(file_path)
    fmt = data.get("format", {})
    video = find_stream(data, "video")
    audio = find_stream(data, "audio")

    duration = to_float(fmt.get("duration"))
    filesize = to_int(fmt.get("size")) or (file_path.stat().st_size if file_path.exists() else 0)

    aspect_ratio = None
    if video and video.get("width") and video.get("height"):
        aspect_ratio = round(video["width"] / video["height"], 2)

    return {
        "filename": file_path.name,
        "filesize": filesize,
        "duration": duration,
        "bitrate": to_int(fmt.get("bit_rate")),
        "format": fmt.get("format_name"),
        "video": {
            "codec": video.get("codec_name"),
            "width": video.get("width"),
            "height": video.get("height"),
            "fps": parse_fps(video.get("r_frame_rate")),
            "bitrate": to_int(video.get("bit_rate")),
            "pixelFormat": video.get("pix_fmt"),
        } if video else None,
        "audio": {
            "codec": audio.get("codec_name"),
            "sampleRate": to_int(audio.get("sample_rate")),
            "channels": audio.get("channels"),
            "bitrate": to_int(audio.get("bit_rate")),
            "channelLayout": audio.get("channel_layout"),
        } if audio else None,
        "aspectRatio": aspect_ratio,
        "durationFormatted": format_duration(duration),
        "filesizeMB": round(filesize / (1024 * 1024), 2),
    }


def validate_video(file_path: Path) -> Dict[str, Any]:
    """
    Check that a video can be processed.

    Raises:
        ValidationError: Missing file, too large, no video stream, or
            duration outside the configured bounds
    """
    settings = get_settings()

    if not file_path.exists():
        raise ValidationError(f"Video file does not exist: {file_path.name}")

    size = file_path.stat().st_size
    max_bytes = settings.max_video_size_mb * 1024 * 1024
    if size > max_bytes:
        raise ValidationError(
            f"File too large: {size / (1024 * 1024):.2f}MB (max: {settings.max_video_size_mb}MB)"
        )

    metadata = get_video_metadata(file_path)

    if not metadata["video"]:
        raise ValidationError("File does not contain video stream")
    if metadata["duration"] < settings.min_video_duration:
        raise ValidationError(f"Video too short (minimum: {settings.min_video_duration:g} second)")
    if metadata["duration"] > settings.max_video_duration:
        raise ValidationError(
            f"Video too long (maximum: {settings.max_video_duration / 60:g} minutes)"
        )

    logger.info(f"Validated {file_path.name}: {metadata['durationFormatted']}, {metadata['filesizeMB']}MB")
    return {"valid": True, "metadata": metadata, "message": "Video validation successful"}


def is_format_supported(filename: str) -> bool:
    return Path(filename).suffix.lower().lstrip(".") in SUPPORTED_FORMATS


def estimate_processing_time(duration: float) -> int:
    """Rough processing time estimate in seconds."""
    base_time = duration * 2.5
    audio_extraction_time = 10
    ai_processing_time = duration * 0.5
    return math.ceil(base_time + audio_extraction_time + ai_processing_time)
