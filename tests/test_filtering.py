"""Test moment filtering, ranking and timestamp normalization."""

import pytest

from summarizer.models.domain import Moment
from summarizer.models.pipeline_schemas import FilterOptions, MomentSortOrder
from summarizer.services.moments.filtering import (
    filter_moments,
    normalize_timestamp,
    normalize_timestamps,
    sort_moments,
)


def make_moment(start, end, importance=5, category="workflow_phase", title=None):
    return Moment(
        title=title or f"Moment {start}",
        start_time=start,
        end_time=end,
        importance=importance,
        category=category,
    )


class TestNormalizeTimestamps:
    """Test minute-to-second correction and range validation."""

    def test_values_strictly_between_one_and_ten_are_minutes(self):
        assert normalize_timestamp(1.5) == 90
        assert normalize_timestamp(3.2) == pytest.approx(192)

    def test_boundary_values_are_left_alone(self):
        assert normalize_timestamp(1.0) == 1.0
        assert normalize_timestamp(10.0) == 10.0
        assert normalize_timestamp(0.5) == 0.5
        assert normalize_timestamp(45.0) == 45.0

    def test_minute_moment_is_converted_and_kept(self):
        valid, discarded = normalize_timestamps([make_moment(1.5, 3.2)], 300)

        assert discarded == []
        assert len(valid) == 1
        assert valid[0].start_time == 90
        assert valid[0].end_time == pytest.approx(192)

    def test_out_of_range_moments_are_discarded(self):
        moments = [
            make_moment(10, 30),
            make_moment(50, 40),
            make_moment(100, 400),
            make_moment(-5, 20),
        ]

        valid, discarded = normalize_timestamps(moments, 300)

        assert [(m.start_time, m.end_time) for m in valid] == [(10, 30)]
        assert len(discarded) == 3

    def test_input_moments_are_not_mutated(self):
        original = make_moment(2.0, 4.0)

        normalize_timestamps([original], 600)

        assert original.start_time == 2.0
        assert original.end_time == 4.0


class TestFilterMoments:
    """Test the fixed-order filter pipeline."""

    def test_importance_threshold_then_cap_then_sort(self):
        importances = [9, 3, 7, 8, 2, 6, 5, 4]
        moments = [make_moment(i * 10, i * 10 + 5, importance=imp) for i, imp in enumerate(importances)]
        options = FilterOptions(min_importance=5, max_moments=3, sort_moments_by=MomentSortOrder.IMPORTANCE)

        result = filter_moments(moments, options)

        assert [m.importance for m in result] == [9, 8, 7]

    def test_cap_keeps_most_important_then_sorts_chronologically(self):
        moments = [
            make_moment(0, 10, importance=4),
            make_moment(20, 30, importance=9),
            make_moment(40, 50, importance=7),
            make_moment(60, 70, importance=8),
        ]

        result = filter_moments(moments, FilterOptions(max_moments=2))

        assert [m.start_time for m in result] == [20, 60]

    def test_category_filter(self):
        moments = [
            make_moment(0, 10, category="decision"),
            make_moment(20, 30, category="navigation"),
            make_moment(40, 50, category="data_review"),
        ]

        result = filter_moments(moments, FilterOptions(include_categories=["decision", "data_review"]))

        assert [m.category for m in result] == ["decision", "data_review"]

    def test_empty_category_list_does_not_filter(self):
        moments = [make_moment(0, 10, category="decision"), make_moment(20, 30, category="navigation")]

        result = filter_moments(moments, FilterOptions(include_categories=[]))

        assert len(result) == 2

    def test_max_duration_filter(self):
        moments = [make_moment(0, 10), make_moment(20, 80), make_moment(100, 130)]

        result = filter_moments(moments, FilterOptions(max_moment_duration=30))

        assert [m.duration for m in result] == [10, 30]

    def test_sort_by_duration(self):
        moments = [make_moment(0, 10), make_moment(20, 80), make_moment(100, 130)]

        result = filter_moments(moments, FilterOptions(sort_moments_by=MomentSortOrder.DURATION))

        assert [m.duration for m in result] == [60, 30, 10]

    def test_default_options_only_sort_chronologically(self):
        moments = [make_moment(50, 60), make_moment(0, 10), make_moment(20, 30)]

        result = filter_moments(moments)

        assert [m.start_time for m in result] == [0, 20, 50]

    def test_empty_input_and_empty_output_are_not_errors(self):
        assert filter_moments([], FilterOptions(min_importance=5)) == []
        assert filter_moments([make_moment(0, 10, importance=2)], FilterOptions(min_importance=5)) == []

    def test_filtering_is_idempotent(self):
        importances = [9, 3, 7, 8, 2, 6, 5, 4]
        moments = [make_moment(i * 10, i * 10 + 5, importance=imp) for i, imp in enumerate(importances)]
        options = FilterOptions(min_importance=4, max_moments=4, sort_moments_by=MomentSortOrder.IMPORTANCE)

        once = filter_moments(moments, options)
        twice = filter_moments(once, options)

        assert once == twice

    def test_importance_sort_is_stable(self):
        moments = [
            make_moment(0, 10, importance=7, title="first"),
            make_moment(20, 30, importance=7, title="second"),
            make_moment(40, 50, importance=9, title="third"),
        ]

        result = sort_moments(moments, MomentSortOrder.IMPORTANCE)

        assert [m.title for m in result] == ["third", "first", "second"]
