"""
Moment filtering, ranking and timestamp normalization.

Filtering is a pure function of (moments, options): applied in a fixed order,
stable, and idempotent.
"""
import logging
from typing import List, Optional, Tuple

from summarizer.models.domain import Moment
from summarizer.models.pipeline_schemas import FilterOptions, MomentSortOrder

logger = logging.getLogger(__name__)

# Detector output in (1, 10) is taken as minutes
MINUTES_LOWER_BOUND = 1.0
MINUTES_UPPER_BOUND = 10.0


def normalize_timestamp(value: float) -> float:
    """Convert a suspected minutes value to seconds."""
    if MINUTES_LOWER_BOUND < value < MINUTES_UPPER_BOUND:
        return value * 60
    return value


def normalize_timestamps(
    moments: List[Moment],
    video_duration: float,
) -> Tuple[List[Moment], List[Moment]]:
    """
    Correct degenerate timestamps, then drop moments outside the video.

    Args:
        moments: Raw detector moments
        video_duration: Source video duration in seconds

    Returns:
        (valid moments, discarded moments), both in input order
    """
    valid: List[Moment] = []
    discarded: List[Moment] = []

    for moment in moments:
        start = normalize_timestamp(moment.start_time)
        end = normalize_timestamp(moment.end_time)
        if start != moment.start_time or end != moment.end_time:
            logger.debug(
                f"Converted minute timestamps for '{moment.title}': "
                f"{moment.start_time}-{moment.end_time} -> {start}-{end}"
            )
        corrected = Moment(
            title=moment.title,
            description=moment.description,
            start_time=start,
            end_time=end,
            importance=moment.importance,
            category=moment.category,
            reason=moment.reason,
            workflow_context=moment.workflow_context,
        )
        if corrected.is_valid(video_duration):
            valid.append(corrected)
        else:
            discarded.append(corrected)

    if discarded:
        logger.warning(
            f"Discarded {len(discarded)} moment(s) outside 0-{video_duration}s: "
            + ", ".join(f"{m.start_time}-{m.end_time}" for m in discarded)
        )

    return valid, discarded


def sort_moments(moments: List[Moment], sort_by: MomentSortOrder) -> List[Moment]:
    """Stable sort by the given order."""
    if sort_by == MomentSortOrder.IMPORTANCE:
        return sorted(moments, key=lambda m: m.importance, reverse=True)
    if sort_by == MomentSortOrder.DURATION:
        return sorted(moments, key=lambda m: m.duration, reverse=True)
    return sorted(moments, key=lambda m: m.start_time)


def filter_moments(moments: List[Moment], options: Optional[FilterOptions] = None) -> List[Moment]:
    """
    Apply filtering options in fixed order:

    1. drop importance < min_importance
    2. keep only include_categories (when non-empty)
    3. drop duration > max_moment_duration
    4. keep the max_moments most important
    5. final sort by sort_moments_by

    Empty input or output is not an error.
    """
    options = options or FilterOptions()
    filtered = list(moments)

    if options.min_importance is not None:
        filtered = [m for m in filtered if m.importance >= options.min_importance]

    if options.include_categories:
        categories = set(options.include_categories)
        filtered = [m for m in filtered if m.category in categories]

    if options.max_moment_duration is not None:
        filtered = [m for m in filtered if m.duration <= options.max_moment_duration]

    if options.max_moments is not None and len(filtered) > options.max_moments:
        filtered = sorted(filtered, key=lambda m: m.importance, reverse=True)[:options.max_moments]

    filtered = sort_moments(filtered, options.sort_moments_by)

    logger.info(f"Filtered {len(moments)} moments down to {len(filtered)}")
    return filtered
