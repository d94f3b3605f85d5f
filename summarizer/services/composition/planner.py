"""
Composition planning: the deterministic plan, segment ordering before
concatenation, and compression statistics.
"""
from typing import Any, Dict, List, Optional

from summarizer.models.domain import CompositionPlan, Segment
from summarizer.models.pipeline_schemas import CompositionOptions, SegmentSortPolicy


def create_composition_plan(segments: List[Segment], options: Optional[CompositionOptions] = None) -> CompositionPlan:
    """
    Build the plan for composing `segments`.

    estimated duration = sum of segment durations, divided by the speed
    factor when speed adjustment is on, plus one transition between each
    pair of segments and the intro when enabled.
    """
    options = options or CompositionOptions()

    estimated = sum(s.duration for s in segments)

    if options.enable_speed_adjustment and options.speed_factor != 1:
        estimated = estimated / options.speed_factor

    if options.enable_transitions and len(segments) > 1:
        estimated += (len(segments) - 1) * options.transition_duration

    if options.enable_intro:
        estimated += options.intro_duration

    return CompositionPlan(
        total_segments=len(segments),
        estimated_duration=estimated,
        transitions={
            "enabled": options.enable_transitions,
            "type": options.transition_type,
            "duration": options.transition_duration,
        },
        intro={
            "enabled": options.enable_intro,
            "duration": options.intro_duration,
            "text": options.intro_text,
        },
        speed={
            "enabled": options.enable_speed_adjustment,
            "factor": options.speed_factor,
        },
        quality={
            "preset": options.quality_preset.value,
            "crf": options.crf,
        },
        audio={
            "enabled": options.include_audio,
            "normalize": options.normalize_audio,
        },
    )


def sort_segments(segments: List[Segment], policy: SegmentSortPolicy = SegmentSortPolicy.ORDER) -> List[Segment]:
    """Stable sort of segments by policy; `order` is extraction index."""
    if policy == SegmentSortPolicy.IMPORTANCE:
        return sorted(segments, key=lambda s: s.importance, reverse=True)
    if policy == SegmentSortPolicy.DURATION:
        return sorted(segments, key=lambda s: s.duration, reverse=True)
    if policy == SegmentSortPolicy.CHRONOLOGICAL:
        return sorted(segments, key=lambda s: s.original_start_time)
    return sorted(segments, key=lambda s: s.index)


def compression_ratio(original_duration: float, final_duration: float) -> float:
    """
    Percentage of the original duration removed, rounded to 2 decimals.
    Negative when the output is longer than the input.
    """
    if original_duration <= 0:
        return 0.0
    return round((original_duration - final_duration) / original_duration * 100, 2)


def composition_stats(
    segments: List[Segment],
    final_duration: float,
    file_size: int = 0,
    quality: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Statistics about a finished composition."""
    original = sum(s.duration for s in segments)
    return {
        "originalDuration": original,
        "finalDuration": final_duration,
        "compressionRatio": compression_ratio(original, final_duration),
        "segmentCount": len(segments),
        "averageSegmentDuration": original / len(segments) if segments else 0,
        "fileSize": file_size,
        "quality": quality or {},
    }
