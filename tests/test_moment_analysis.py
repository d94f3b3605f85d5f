"""Test detector response parsing, the transcript fallback and analysis validation."""

import json
from unittest.mock import Mock, patch

import pytest

from summarizer.core.exceptions import CollaboratorError, ParseError
from summarizer.services.ai.moment_analysis import (
    FALLBACK_PROVIDER,
    analyze_moments,
    clamp_importance,
    create_liberal_fallback,
    generate_moment_title,
    parse_detection_response,
    transcript_view,
    validate_analysis,
)
from summarizer.services.ai.moment_client import MomentDetectionClient
from summarizer.services.ai.prompt_builder import build_moment_prompt, format_timestamp
from summarizer.services.ai.transcription_client import process_transcription_for_analysis
from summarizer.services.ai.utils import clean_model_output, find_json_in_text, strip_think_tags


def detection_reply(moments, **extra):
    document = {"keyMoments": moments, "summary": "A short session", **extra}
    return json.dumps(document)


class TestResponseCleaning:
    """Test think-block and fence stripping."""

    def test_strip_think_tags(self):
        assert strip_think_tags("<think>hmm {}</think>{\"a\": 1}") == '{"a": 1}'

    def test_fenced_json_is_unwrapped(self):
        content = "```json\n{\"keyMoments\": []}\n```"

        assert clean_model_output(content) == '{"keyMoments": []}'

    def test_json_is_isolated_from_surrounding_prose(self):
        content = 'Here you go: {"title": "a {b}"} hope that helps'

        assert clean_model_output(content) == '{"title": "a {b}"}'

    def test_find_json_array(self):
        assert find_json_in_text("result: [1, [2, 3]] done", "array") == "[1, [2, 3]]"

    def test_find_json_unbalanced(self):
        assert find_json_in_text('{"a": 1', "object") is None

    def test_find_json_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            find_json_in_text("{}", "string")


class TestParseDetectionResponse:
    """Test strict decoding of the detector document."""

    def test_valid_document(self):
        reply = "<think>planning</think>```json\n" + detection_reply(
            [{"title": "Open dashboard", "startTime": 0, "endTime": 20, "importance": 8}]
        ) + "\n```"

        document = parse_detection_response(reply)

        assert len(document.keyMoments) == 1
        assert document.keyMoments[0].title == "Open dashboard"
        assert document.summary == "A short session"

    def test_not_json_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_detection_response("I could not find any moments, sorry.")

    def test_string_timestamps_are_rejected(self):
        reply = detection_reply([{"title": "x", "startTime": "0:10", "endTime": "0:20"}])

        with pytest.raises(ParseError):
            parse_detection_response(reply)

    def test_missing_key_moments_is_rejected(self):
        with pytest.raises(ParseError):
            parse_detection_response('{"summary": "nothing"}')

    def test_clamp_importance(self):
        assert clamp_importance(None) == 5
        assert clamp_importance(12) == 10
        assert clamp_importance(0) == 1
        assert clamp_importance(7.4) == 7


class TestLiberalFallback:
    """Test transcript-only moment generation."""

    def test_no_segments_splits_into_three_phases(self):
        analysis = create_liberal_fallback([], 90)
        moments = analysis["keyMoments"]

        assert len(moments) == 3
        assert [m["importance"] for m in moments] == [5, 6, 7]
        assert moments[0]["startTime"] == 0
        assert moments[-1]["endTime"] == 90
        assert all(m["title"] == "Workflow Segment" for m in moments)

    def test_short_video_with_one_moment_is_not_split(self):
        segments = [{"start": 0, "end": 40, "text": "working quietly"}]

        analysis = create_liberal_fallback(segments, 40)

        assert len(analysis["keyMoments"]) == 1
        assert analysis["keyMoments"][0]["endTime"] == 40

    def test_all_moments_fall_inside_the_video(self, sample_transcription):
        processed = process_transcription_for_analysis(sample_transcription)

        analysis = create_liberal_fallback(processed["timestampedSegments"], 120)

        assert analysis["keyMoments"]
        for moment in analysis["keyMoments"]:
            assert 0 <= moment["startTime"] < moment["endTime"] <= 120

    def test_ai_summary_is_preserved(self):
        analysis = create_liberal_fallback([], 30, ai_summary="Detector summary")

        assert analysis["summary"] == "Detector summary"

    def test_title_from_keywords(self):
        segments = [{"start": 0, "end": 10, "text": "Let me open the dashboard"}]

        assert generate_moment_title(segments, 0, 10) == "Dashboard Review"
        assert generate_moment_title(segments, 20, 30) == "Workflow Segment"


class TestValidateAnalysis:
    """Test the analysis quality report."""

    def test_missing_analysis(self):
        report = validate_analysis(None, 100)

        assert report["valid"] is False
        assert report["qualityScore"] == 0

    def test_zero_start_time_is_not_missing(self):
        analysis = {"keyMoments": [{"startTime": 0, "endTime": 30, "importance": 6}]}

        report = validate_analysis(analysis, 60)

        assert report["valid"] is True
        assert report["coverage"] == 50

    def test_bad_ranges_are_reported(self):
        analysis = {
            "keyMoments": [
                {"startTime": 40, "endTime": 20},
                {"startTime": 10, "endTime": 200},
                {"startTime": None, "endTime": 5},
            ]
        }

        report = validate_analysis(analysis, 100)

        assert report["valid"] is False
        assert report["issues"] == [
            "Moment 1 has invalid time range",
            "Moment 2 exceeds video duration",
            "Moment 3 missing timestamps",
        ]


class TestPromptBuilder:
    """Test prompt rendering."""

    def test_format_timestamp(self):
        assert format_timestamp(75.5) == "1:15.5"
        assert format_timestamp(5) == "0:05.0"

    def test_prompt_includes_transcript_and_duration(self, sample_transcription):
        processed = process_transcription_for_analysis(sample_transcription)

        prompt = build_moment_prompt(
            processed["fullText"],
            processed["timestampedSegments"],
            120.0,
            extra_instructions="Focus on decisions",
        )

        assert "Opening the dashboard" in prompt
        assert "Focus on decisions" in prompt
        assert "120" in prompt


class TestAnalyzeMoments:
    """Test the detector call with its fallback paths."""

    def test_transcript_view_accepts_both_forms(self, sample_transcription):
        processed = process_transcription_for_analysis(sample_transcription)

        raw_view = transcript_view(sample_transcription)
        processed_view = transcript_view(processed)

        assert raw_view[0] == processed_view[0]
        assert raw_view[2] == processed_view[2] == 120.0
        assert len(processed_view[1]) == 4

    def test_detector_moments_are_used(self, settings, moment_client, sample_transcription):
        moment_client.complete.return_value = detection_reply([
            {"title": "Open dashboard", "startTime": 0, "endTime": 20, "importance": 8, "category": "navigation"},
            {"title": "Settings", "startTime": 45, "endTime": 80, "importance": 6},
        ])

        result = analyze_moments(sample_transcription, client=moment_client)

        assert result["provider"] == "test-detector"
        analysis = result["analysis"]
        assert analysis["momentCount"] == 2
        assert analysis["recommendedSummaryDuration"] == 55
        assert analysis["compressionRatio"] == 46
        assert analysis["keyMoments"][0]["category"] == "navigation"

    def test_minute_timestamps_are_converted(self, settings, moment_client, sample_transcription):
        transcript = dict(sample_transcription, duration=300.0)
        moment_client.complete.return_value = detection_reply([
            {"title": "Report", "startTime": 1.5, "endTime": 3.2, "importance": 7},
        ])

        result = analyze_moments(transcript, client=moment_client)

        moment = result["analysis"]["keyMoments"][0]
        assert moment["startTime"] == 90
        assert moment["endTime"] == pytest.approx(192)

    def test_unparseable_reply_falls_back(self, settings, moment_client, sample_transcription):
        moment_client.complete.return_value = "Sorry, I cannot help with that."

        result = analyze_moments(sample_transcription, client=moment_client)

        assert result["provider"] == FALLBACK_PROVIDER
        assert result["analysis"]["momentCount"] >= 1

    def test_no_valid_moments_falls_back(self, settings, moment_client, sample_transcription):
        moment_client.complete.return_value = detection_reply([
            {"title": "Past the end", "startTime": 500, "endTime": 600},
        ])

        result = analyze_moments(sample_transcription, client=moment_client)

        assert result["provider"] == FALLBACK_PROVIDER
        assert result["analysis"]["summary"] == "A short session"
        for moment in result["analysis"]["keyMoments"]:
            assert moment["endTime"] <= 120

    def test_duration_falls_back_to_video_metadata(self, settings, moment_client):
        transcript = {"text": "hello there", "segments": [], "duration": None}
        moment_client.complete.return_value = detection_reply([
            {"title": "Late moment", "startTime": 150, "endTime": 170},
        ])

        result = analyze_moments(transcript, video_duration=200.0, client=moment_client)

        assert result["analysis"]["totalOriginalDuration"] == 200.0
        assert result["provider"] == "test-detector"

    def test_detector_failure_propagates(self, settings, moment_client, sample_transcription):
        moment_client.complete.side_effect = CollaboratorError(
            "moment_detection", "HTTP 429: Rate limit exceeded", classification="rate_limited"
        )

        with pytest.raises(CollaboratorError) as exc_info:
            analyze_moments(sample_transcription, client=moment_client)

        assert exc_info.value.classification == "rate_limited"

    def test_empty_detector_content_falls_back(self, settings, sample_transcription):
        response = Mock(status_code=200, text="")
        response.json.return_value = {"choices": [{"message": {"content": ""}}]}

        with patch("requests.post", return_value=response):
            result = analyze_moments(sample_transcription, client=MomentDetectionClient())

        assert result["provider"] == FALLBACK_PROVIDER
        assert result["analysis"]["momentCount"] >= 1

    def test_non_json_detector_body_falls_back(self, settings, sample_transcription):
        response = Mock(status_code=200, text="<html>gateway</html>")
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")

        with patch("requests.post", return_value=response):
            result = analyze_moments(sample_transcription, client=MomentDetectionClient())

        assert result["provider"] == FALLBACK_PROVIDER
        assert result["analysis"]["momentCount"] >= 1

    def test_instructions_reach_the_prompt(self, settings, sample_transcription):
        client = Mock()
        client.model = "test-detector"
        client.complete.return_value = detection_reply([{"title": "a", "startTime": 0, "endTime": 10}])

        analyze_moments(sample_transcription, client=client, options={"instructions": "Only decisions"})

        prompt = client.complete.call_args.args[0]
        assert "Only decisions" in prompt
