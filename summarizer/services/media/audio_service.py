import logging
import time
from pathlib import Path
from typing import Any, Dict

from summarizer.core.config import get_settings
from summarizer.core.exceptions import CollaboratorError, ValidationError
from summarizer.core.logging import (
    log_event,
    log_operation_start,
    log_operation_complete,
    log_operation_error,
)
from summarizer.services.media.ffmpeg import find_stream, probe, run_command, to_float, to_int

logger = logging.getLogger(__name__)

AUDIO_FORMAT = "mp3"


def build_audio_filename(video_path: Path) -> str:
    """{stem}-audio-{millis}.mp3"""
    return f"{video_path.stem}-audio-{int(time.time() * 1000)}.{AUDIO_FORMAT}"


def extract_audio(video_path: Path, output_dir: Path) -> Dict[str, Any]:
    """
    Extract a mono 16 kHz mp3 track suitable for speech transcription.

    A partially written output file is removed before the error propagates.

    Args:
        video_path: Path to the local video file
        output_dir: Directory for the audio file

    Returns:
        Dict describing the extracted audio

    Raises:
        ValidationError: If the video file is missing
        CollaboratorError: If ffmpeg fails
    """
    operation = "audio_extraction"
    settings = get_settings()
    start_time = time.time()

    if not video_path.exists():
        raise ValidationError(f"Video file not found: {video_path.name}")

    output_dir.mkdir(parents=True, exist_ok=True)
    output_filename = build_audio_filename(video_path)
    output_path = output_dir / output_filename

    log_operation_start(
        logger=__name__,
        operation=operation,
        message="Starting audio extraction",
        context={"video_path": str(video_path), "output_path": str(output_path)},
    )

    # -vn: no video, mono, 16 kHz, 128k mp3
    cmd = [
        settings.ffmpeg_binary,
        "-i", str(video_path),
        "-vn",
        "-acodec", settings.audio_codec,
        "-ar", str(settings.audio_sample_rate),
        "-ac", str(settings.audio_channels),
        "-b:a", settings.audio_bitrate,
        "-f", AUDIO_FORMAT,
        "-y",
        str(output_path),
    ]

    try:
        run_command(cmd, timeout=settings.ffmpeg_timeout)
        if not output_path.exists():
            raise CollaboratorError("ffmpeg", "audio file was not created")
    except Exception as e:
        if output_path.exists():
            logger.warning(f"Removing partial audio file: {output_path}")
            output_path.unlink()
        log_operation_error(
            logger=__name__,
            operation=operation,
            error=e,
            message="Audio extraction failed",
            context={"video_path": str(video_path)},
        )
        raise

    size = output_path.stat().st_size
    elapsed = time.time() - start_time

    log_operation_complete(
        logger=__name__,
        operation=operation,
        message="Successfully extracted audio",
        context={"output_path": str(output_path), "file_size_bytes": size},
        duration=elapsed,
    )

    return {
        "success": True,
        "audioPath": str(output_path),
        "filename": output_filename,
        "size": size,
        "sizeMB": round(size / (1024 * 1024), 2),
        "format": AUDIO_FORMAT,
        "sampleRate": settings.audio_sample_rate,
        "channels": settings.audio_channels,
        "message": "Audio extraction completed successfully",
    }


def validate_audio_for_transcription(audio_path: Path) -> Dict[str, Any]:
    """
    Check an audio file's suitability for speech recognition.

    Returns:
        Dict with valid flag, issues, recommendations and probed metadata

    Raises:
        CollaboratorError: If ffprobe fails or finds no audio stream
    """
    data = probe(audio_path)
    stream = find_stream(data, "audio")
    if stream is None:
        raise CollaboratorError("ffprobe", f"no audio stream found in {audio_path.name}")

    issues = []
    recommendations = []

    sample_rate = to_int(stream.get("sample_rate"))
    if sample_rate < 8000:
        issues.append(f"Low sample rate: {sample_rate}Hz (minimum recommended: 8kHz)")
    if sample_rate < 16000:
        recommendations.append("Consider using 16kHz sample rate for better transcription accuracy")

    duration = to_float(data.get("format", {}).get("duration"))
    if duration < 1:
        issues.append("Audio too short for reliable transcription")
    if duration > 1800:
        recommendations.append("Long audio files may need to be chunked for processing")

    channels = stream.get("channels") or 0
    if channels > 1:
        recommendations.append("Mono audio often provides better transcription results")

    if issues:
        log_event(
            level="WARNING",
            logger=__name__,
            operation="audio_validation",
            event="audio_quality_issues",
            message=f"Audio quality issues in {audio_path.name}",
            context={"issues": issues},
        )

    return {
        "valid": not issues,
        "issues": issues,
        "recommendations": recommendations,
        "metadata": {
            "duration": duration,
            "sampleRate": sample_rate,
            "channels": channels,
            "codec": stream.get("codec_name"),
            "bitrate": to_int(stream.get("bit_rate")),
        },
    }


def get_optimal_settings(video_metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Recommended extraction settings for a video."""
    settings = {"format": AUDIO_FORMAT, "channels": 1, "bitrate": "128k", "sampleRate": 16000}

    audio = video_metadata.get("audio") or {}
    original_rate = audio.get("sampleRate") or 0
    if 0 < original_rate < 16000:
        # Don't upsample low-quality audio
        settings["sampleRate"] = original_rate

    if (video_metadata.get("duration") or 0) > 600:
        settings["bitrate"] = "96k"

    return settings
