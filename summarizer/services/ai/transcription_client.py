"""
Speech-to-text client for OpenAI-compatible /audio/transcriptions endpoints,
plus the helpers that turn a raw transcript into the form moment analysis
consumes.
"""
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ValidationError
from summarizer.core.logging import log_operation_start, log_operation_complete, log_operation_error
from summarizer.services.ai.base_client import BaseAIClient

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = (
    "This is a screen recording with user interactions, UI descriptions, and technical content."
)


class TranscriptionClient(BaseAIClient):
    """Client for the transcription service."""

    def __init__(self):
        settings = get_settings()
        super().__init__(
            service_name="transcription",
            url=settings.get_transcription_url(),
            api_key=settings.transcription_api_key,
            timeout=settings.transcription_timeout,
            max_retries=0,
        )
        self.model = settings.transcription_model
        self.max_file_mb = settings.transcription_max_file_mb
        self.default_language = settings.transcription_language

    def transcribe(
        self,
        audio_path: Path,
        language: Optional[str] = None,
        prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Transcribe an audio file with word and segment timestamps.

        Args:
            audio_path: Local audio file
            language: Language hint (defaults to the configured language)
            prompt: Context prompt (defaults to a screen recording description)

        Returns:
            Dict with text, language, duration, segments, words, wordCount
            and confidence

        Raises:
            ValidationError: If the file is missing or exceeds the size limit
            CollaboratorError: If the service call fails
        """
        operation = "transcription"
        start_time = time.time()

        if not audio_path.exists():
            raise ValidationError(f"Audio file not found: {audio_path.name}")

        size_mb = audio_path.stat().st_size / (1024 * 1024)
        if size_mb > self.max_file_mb:
            raise ValidationError(
                f"Audio file too large: {size_mb:.2f}MB (max: {self.max_file_mb}MB)"
            )

        form = [
            ("model", self.model),
            ("response_format", "verbose_json"),
            ("timestamp_granularities[]", "word"),
            ("timestamp_granularities[]", "segment"),
            ("language", language or self.default_language),
            ("prompt", prompt or DEFAULT_PROMPT),
        ]

        log_operation_start(
            logger=__name__,
            operation=operation,
            message=f"Transcribing {audio_path.name}",
            context={"audio_path": str(audio_path), "size_mb": round(size_mb, 2)},
        )

        def send() -> requests.Response:
            with open(audio_path, "rb") as f:
                return requests.post(
                    self.url,
                    data=form,
                    files={"file": (audio_path.name, f, "audio/mpeg")},
                    headers=self._headers(json_body=False),
                    timeout=self.timeout,
                )

        try:
            data = self._send(send)
        except Exception as e:
            log_operation_error(
                logger=__name__,
                operation=operation,
                error=e,
                message="Transcription failed",
                context={"audio_path": str(audio_path)},
            )
            raise

        result = build_transcription_result(data)

        log_operation_complete(
            logger=__name__,
            operation=operation,
            message="Transcription completed",
            context={
                "word_count": result["wordCount"],
                "segment_count": len(result["segments"]),
                "confidence": result["confidence"],
            },
            duration=time.time() - start_time,
        )
        return result


def calculate_confidence(segments: List[Dict[str, Any]]) -> float:
    """Map the mean segment avg_logprob onto 0..100."""
    if not segments:
        return 0.0
    avg_logprob = sum(s.get("avg_logprob") or 0 for s in segments) / len(segments)
    return max(0.0, min(100.0, (avg_logprob + 1) * 100))


def build_transcription_result(data: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a verbose_json response."""
    text = data.get("text") or ""
    segments = data.get("segments") or []
    return {
        "success": True,
        "text": text,
        "language": data.get("language"),
        "duration": data.get("duration"),
        "segments": segments,
        "words": data.get("words") or [],
        "wordCount": len(text.split(" ")) if text else 0,
        "confidence": calculate_confidence(segments),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def process_transcription_for_analysis(transcription: Dict[str, Any]) -> Dict[str, Any]:
    """Reshape a transcription result into timestamped segments for analysis."""
    segments = transcription.get("segments") or []
    return {
        "fullText": transcription.get("text") or "",
        "timestampedSegments": [
            {
                "start": seg.get("start", 0),
                "end": seg.get("end", 0),
                "text": (seg.get("text") or "").strip(),
                "confidence": seg.get("avg_logprob") or 0,
                "wordCount": len((seg.get("text") or "").split()),
            }
            for seg in segments
        ],
        "totalDuration": transcription.get("duration"),
        "language": transcription.get("language"),
        "wordLevelTimestamps": transcription.get("words") or [],
    }


def calculate_quality_score(transcription: Dict[str, Any]) -> int:
    score = min(50.0, transcription.get("confidence") or 0)

    text_length = len(transcription.get("text") or "")
    if 50 < text_length < 10000:
        score += 20
    if transcription.get("words"):
        score += 15
    if len(transcription.get("segments") or []) > 1:
        score += 15

    return int(min(100, round(score)))


def validate_transcription(transcription: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check whether a transcript is usable for moment analysis.

    Returns:
        Dict with valid flag, issues, recommendations, confidence and qualityScore
    """
    issues = []
    recommendations = []

    text = (transcription.get("text") or "").strip()
    if len(text) < 10:
        issues.append("Transcription text is too short or empty")

    confidence = transcription.get("confidence") or 0
    if confidence < 30:
        issues.append(f"Low transcription confidence: {confidence:.1f}%")
        recommendations.append("Consider improving audio quality or reducing background noise")

    words = text.lower().split()
    if words and len(set(words)) / len(words) < 0.3:
        recommendations.append("Transcription has high word repetition, which may indicate audio issues")

    language = (transcription.get("language") or "").lower()
    if language and language not in ("en", "english"):
        recommendations.append(f"Detected language '{language}'; analysis prompts are tuned for English")

    return {
        "valid": not issues,
        "issues": issues,
        "recommendations": recommendations,
        "confidence": confidence,
        "qualityScore": calculate_quality_score(transcription),
    }


_client: Optional[TranscriptionClient] = None


def get_transcription_client() -> TranscriptionClient:
    global _client
    if _client is None:
        _client = TranscriptionClient()
    return _client
