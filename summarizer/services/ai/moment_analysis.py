"""
Moment analysis: ask the detection model for key moments, decode its reply
against a strict schema, and fall back to transcript heuristics when the
reply cannot be used.

Outcomes:
    - detector reply decodes and yields valid moments -> provider = model name
    - reply is unreadable or fails to decode (ParseError) or yields no valid moments
      -> heuristic fallback, provider = "liberal-fallback"
    - detector call itself fails -> CollaboratorError propagates
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ParseError
from summarizer.models.analysis_schemas import DetectedMoment, DetectionDocument
from summarizer.models.domain import Moment, moments_to_dicts
from summarizer.services.ai.moment_client import MomentDetectionClient, get_moment_client
from summarizer.services.ai.prompt_builder import build_moment_prompt
from summarizer.services.ai.utils import clean_model_output
from summarizer.services.moments.filtering import normalize_timestamps

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "liberal-fallback"

TOPIC_INDICATORS = [
    "look at", "we can see", "going to look", "can also look",
    "check", "checking", "review", "reviewing",
    "move to", "moving to", "switch to", "go to",
    "here we have", "this shows", "you can see",
    "another", "also", "next", "now",
]

# Seconds of silence that close a moment
GAP_THRESHOLD = 15
MIN_MOMENT_LENGTH = 5
MIN_FINAL_LENGTH = 10

# (keywords, title) checked in order
TITLE_KEYWORDS = [
    (("dashboard",), "Dashboard Review"),
    (("email", "inbox"), "Email Check"),
    (("setting", "config"), "Settings Configuration"),
    (("report",), "Report Review"),
    (("search",), "Search"),
    (("code", "function", "file"), "Code Walkthrough"),
    (("error", "bug", "issue"), "Issue Investigation"),
    (("decide", "decision", "choose"), "Decision Point"),
    (("plan", "schedule"), "Planning"),
    (("chart", "graph", "data", "table"), "Data Review"),
    (("page", "tab", "menu", "click"), "Navigation"),
]


def generate_moment_title(segments: List[Dict[str, Any]], start_time: float, end_time: float) -> str:
    """Keyword-based title for the transcript text inside [start_time, end_time]."""
    relevant = [
        s for s in segments
        if (s.get("start") or 0) >= start_time and (s.get("end") or 0) <= end_time
    ]
    if not relevant:
        return "Workflow Segment"

    text = " ".join((s.get("text") or "") for s in relevant).lower()
    for keywords, title in TITLE_KEYWORDS:
        if any(k in text for k in keywords):
            return title
    return "Workflow Activity"


def transcript_view(transcript: Dict[str, Any]) -> Tuple[str, List[Dict[str, Any]], Optional[float]]:
    """
    (full text, segments, duration) from either the raw transcription result
    or the processed form with fullText/timestampedSegments/totalDuration.
    """
    if "timestampedSegments" in transcript or "fullText" in transcript:
        text = transcript.get("fullText") or ""
        segments = transcript.get("timestampedSegments") or []
        duration = transcript.get("totalDuration")
    else:
        text = transcript.get("text") or ""
        segments = transcript.get("segments") or []
        duration = transcript.get("duration")
    return text, segments, (float(duration) if duration else None)


def parse_detection_response(content: str) -> DetectionDocument:
    """
    Decode the detector's reply.

    Raises:
        ParseError: If no JSON object is found or it does not match the schema
    """
    cleaned = clean_model_output(content)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError("moment_detection", f"invalid JSON: {e}")
    if not isinstance(data, dict):
        raise ParseError("moment_detection", "expected a JSON object")
    try:
        return DetectionDocument.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError("moment_detection", f"schema mismatch: {e.error_count()} error(s)")


def clamp_importance(value: Optional[float]) -> int:
    if value is None:
        return 5
    return max(1, min(10, int(round(value))))


def to_moment(detected: DetectedMoment) -> Moment:
    return Moment(
        title=detected.title or "Untitled moment",
        description=detected.description,
        start_time=float(detected.startTime),
        end_time=float(detected.endTime),
        importance=clamp_importance(detected.importance),
        category=detected.category or "workflow_phase",
        reason=detected.reason,
        workflow_context=detected.workflowContext,
    )


def create_liberal_fallback(
    segments: List[Dict[str, Any]],
    duration: float,
    ai_summary: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build moments from transcript patterns alone.

    A topic indicator phrase or a silence gap opens a new moment once the
    current one is at least MIN_MOMENT_LENGTH long; whatever remains at the
    end becomes a final moment. Videos over a minute that end up with fewer
    than three moments (and any video with none) are split into three equal
    phases instead.
    """
    moments: List[Moment] = []
    current_start = 0.0
    last_end = 0.0

    for seg in segments:
        seg_start = float(seg.get("start") or 0)
        text = (seg.get("text") or "").lower()
        has_indicator = any(indicator in text for indicator in TOPIC_INDICATORS)

        if has_indicator or seg_start - last_end > GAP_THRESHOLD:
            if last_end < seg_start - MIN_MOMENT_LENGTH:
                end = min(duration, seg_start)
                title = generate_moment_title(segments, int(current_start), int(seg_start))
                moments.append(Moment(
                    title=title,
                    description=f"Workflow segment: {title.lower()}",
                    start_time=max(0.0, current_start),
                    end_time=end,
                    importance=6,
                    category="workflow_phase",
                    reason="Natural workflow transition point identified",
                    workflow_context="Part of continuous user workflow",
                ))
                current_start = seg_start
                last_end = seg_start

    if current_start < duration - MIN_FINAL_LENGTH:
        title = generate_moment_title(segments, int(current_start), int(duration))
        moments.append(Moment(
            title=title,
            description=f"Final workflow segment: {title.lower()}",
            start_time=current_start,
            end_time=duration,
            importance=6,
            category="workflow_phase",
            reason="Final workflow segment",
            workflow_context="Conclusion of user workflow",
        ))

    moments = [m for m in moments if m.is_valid(duration)]

    if duration > 0 and (not moments or (len(moments) < 3 and duration > 60)):
        phase_length = duration / 3
        moments = []
        for i in range(3):
            start = i * phase_length
            end = duration if i == 2 else min((i + 1) * phase_length, duration)
            title = generate_moment_title(segments, int(start), int(end))
            moments.append(Moment(
                title=title,
                description=f"Workflow phase {i + 1}: {title.lower()}",
                start_time=start,
                end_time=end,
                importance=5 + i,
                category="workflow_phase",
                reason="Temporal workflow division",
                workflow_context=f"Phase {i + 1} of user workflow",
            ))

    logger.info(f"Liberal fallback produced {len(moments)} moments for {duration:.1f}s video")

    return {
        "keyMoments": moments_to_dicts(moments),
        "summary": ai_summary or (
            f"Liberal analysis of {round(duration)}s workflow recording with {len(moments)} phases identified"
        ),
        "totalOriginalDuration": duration,
        "recommendedApproach": "Preserve all workflow phases with liberal moment detection",
        "contentType": "screen_recording",
        "workflowPhases": f"{len(moments)} workflow phases identified through liberal analysis",
    }


def validate_analysis(analysis: Optional[Dict[str, Any]], duration: float) -> Dict[str, Any]:
    """Quality report over an analysis' key moments."""
    if not analysis or analysis.get("keyMoments") is None:
        return {
            "valid": False,
            "issues": ["No analysis data provided"],
            "recommendations": ["Retry analysis with different parameters"],
            "confidence": 0,
            "qualityScore": 0,
            "coverage": 0,
            "momentCount": 0,
        }

    moments = analysis["keyMoments"]
    issues = []
    recommendations = []
    confidence = 0
    quality_score = 0.0

    if not moments:
        issues.append("No key moments identified")
        recommendations.append("Consider lowering moment detection threshold")
    else:
        confidence = min(100, len(moments) * 15)
        avg_importance = sum(m.get("importance") or 5 for m in moments) / len(moments)
        quality_score = min(100, len(moments) * 12 + avg_importance * 8)

    timestamp_issues = 0
    for i, moment in enumerate(moments, start=1):
        start = moment.get("startTime")
        end = moment.get("endTime")
        if start is None or end is None:
            issues.append(f"Moment {i} missing timestamps")
            timestamp_issues += 1
        elif start >= end:
            issues.append(f"Moment {i} has invalid time range")
            timestamp_issues += 1
        elif end > duration:
            issues.append(f"Moment {i} exceeds video duration")
            timestamp_issues += 1

    total = sum(
        (m.get("endTime") or 0) - (m.get("startTime") or 0)
        for m in moments
    )
    coverage_ratio = total / duration if duration > 0 else 0

    if coverage_ratio < 0.3 and duration > 60:
        recommendations.append("Consider including more content to improve coverage")
    if len(moments) < 3 and duration > 90:
        recommendations.append("Consider identifying more moments for longer videos")

    if timestamp_issues == 0 and moments:
        quality_score = max(quality_score, 70)

    return {
        "valid": not issues,
        "issues": issues,
        "recommendations": recommendations,
        "confidence": confidence,
        "qualityScore": round(quality_score),
        "coverage": round(coverage_ratio * 100),
        "momentCount": len(moments),
    }


def finalize_analysis(analysis: Dict[str, Any], duration: float) -> Dict[str, Any]:
    """Add the derived summary-duration fields."""
    moments = analysis.get("keyMoments") or []
    total = sum(m["endTime"] - m["startTime"] for m in moments)
    analysis["recommendedSummaryDuration"] = round(total)
    analysis["compressionRatio"] = round(total / duration * 100) if duration > 0 else 0
    analysis["momentCount"] = len(moments)
    return analysis


def analyze_moments(
    transcript: Dict[str, Any],
    video_duration: Optional[float] = None,
    video_path: Optional[Path] = None,
    client: Optional[MomentDetectionClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Detect key moments for a transcript.

    Args:
        transcript: Raw or processed transcription result
        video_duration: Source duration from probed metadata, if known
        video_path: Source video, attached when the client is configured to
        client: Detection client (defaults to the global one)
        options: Optional {"instructions": str} appended to the prompt

    Returns:
        {success, provider, analysis, validation}

    Raises:
        CollaboratorError: If the detection service call fails; an unreadable
            reply falls back to transcript heuristics instead
    """
    settings = get_settings()
    client = client or get_moment_client()
    options = options or {}

    full_text, segments, transcript_duration = transcript_view(transcript)
    known_duration = transcript_duration or video_duration

    prompt = build_moment_prompt(
        full_text,
        segments,
        known_duration,
        extra_instructions=options.get("instructions"),
    )
    try:
        content = client.complete(prompt, video_path=video_path)
        document = parse_detection_response(content)
    except ParseError as e:
        logger.warning(f"Falling back to transcript heuristics: {e.message}")
        duration = known_duration or settings.default_video_duration
        analysis = create_liberal_fallback(segments, duration)
        provider = FALLBACK_PROVIDER
    else:
        duration = (
            known_duration
            or (float(document.totalOriginalDuration) if document.totalOriginalDuration else None)
            or settings.default_video_duration
        )
        raw = [to_moment(m) for m in document.keyMoments]
        valid, discarded = normalize_timestamps(raw, duration)
        if discarded:
            logger.info(f"Discarded {len(discarded)} moments outside 0..{duration:.1f}s")

        if valid:
            analysis = {
                "keyMoments": moments_to_dicts(valid),
                "summary": document.summary or "",
                "totalOriginalDuration": duration,
                "recommendedApproach": document.recommendedApproach or "",
                "contentType": document.contentType or "screen_recording",
                "workflowPhases": document.workflowPhases,
            }
            provider = client.model
        else:
            logger.warning("Detector returned no valid moments, using transcript heuristics")
            analysis = create_liberal_fallback(segments, duration, ai_summary=document.summary)
            provider = FALLBACK_PROVIDER

    analysis = finalize_analysis(analysis, duration)
    validation = validate_analysis(analysis, duration)

    logger.info(
        f"Moment analysis via {provider}: {analysis['momentCount']} moments, "
        f"quality {validation['qualityScore']}"
    )

    return {
        "success": True,
        "provider": provider,
        "analysis": analysis,
        "validation": validation,
    }
