"""Test VideoSummarizer with the ffmpeg-backed steps replaced."""

from unittest.mock import Mock

import pytest

from summarizer.core.exceptions import CollaboratorError, ValidationError
from summarizer.models.domain import Moment, Segment
from summarizer.models.pipeline_schemas import SummaryOptions
from summarizer.services import summarizer_service
from summarizer.services.summarizer_service import QUICK_SUMMARY_OPTIONS, VideoSummarizer, validate_inputs


def make_moments():
    return [
        Moment(title="Open dashboard", start_time=0, end_time=20, importance=8, category="navigation"),
        Moment(title="Read report", start_time=30, end_time=60, importance=4, category="data_review"),
        Moment(title="Decide", start_time=70, end_time=90, importance=9, category="decision"),
    ]


@pytest.fixture
def video(tmp_path):
    path = tmp_path / "proc-demo.mp4"
    path.write_bytes(b"video")
    return path


@pytest.fixture
def fake_ffmpeg(monkeypatch, settings):
    """Record clip extraction and composition calls instead of running ffmpeg."""
    calls = {}

    def extract_moment_clips(video_path, moments, job_id, segments_root=None):
        job_dir = segments_root / job_id
        job_dir.mkdir(parents=True, exist_ok=True)
        segments = []
        for i, moment in enumerate(moments):
            path = job_dir / f"{i + 1:02d}.mp4"
            path.write_bytes(b"clip")
            segments.append(Segment(
                index=i + 1,
                title=moment.title,
                original_start_time=moment.start_time,
                original_end_time=moment.end_time,
                filename=path.name,
                path=str(path),
                importance=moment.importance,
                category=moment.category,
            ))
        calls["moments"] = moments
        return {
            "success": True,
            "jobId": job_id,
            "totalSegments": len(segments),
            "segments": segments,
            "outputDirectory": str(job_dir),
            "totalDuration": sum(s.duration for s in segments),
        }

    def compose_segments(segments, options, job_id, output_dir=None, temp_dir=None):
        calls["composition"] = options
        filename = f"summary_{job_id}.mp4"
        return {
            "success": True,
            "jobId": job_id,
            "outputPath": str(output_dir / filename),
            "filename": filename,
            "metadata": {
                "duration": 20.0,
                "fileSize": 4096,
                "fileSizeMB": 0.0,
                "bitRate": 1000,
                "video": {"width": 1280, "height": 720, "fps": 30},
            },
            "compositionPlan": {"quality": {"preset": options.quality_preset.value, "crf": options.crf}},
            "segments": [],
        }

    monkeypatch.setattr(summarizer_service, "extract_moment_clips", extract_moment_clips)
    monkeypatch.setattr(summarizer_service, "compose_segments", compose_segments)
    return calls


class TestValidateInputs:
    """Test input checks before any work starts."""

    def test_missing_video(self, tmp_path):
        with pytest.raises(ValidationError):
            validate_inputs(tmp_path / "missing.mp4", make_moments())

    def test_no_moments(self, video):
        with pytest.raises(ValidationError):
            validate_inputs(video, [])

    def test_inverted_moment(self, video):
        with pytest.raises(ValidationError):
            validate_inputs(video, [Moment(title="bad", start_time=30, end_time=10)])


class TestVideoSummarizer:
    """Test filtering, reporting and failure cleanup."""

    def test_create_summary_filters_and_reports(self, settings, video, fake_ffmpeg):
        summarizer = VideoSummarizer()
        options = SummaryOptions(min_importance=5)

        result = summarizer.create_summary(video, make_moments(), options, "job-1")

        assert [m.title for m in fake_ffmpeg["moments"]] == ["Open dashboard", "Decide"]
        assert result["output"]["finalVideo"]["filename"] == "summary_job-1.mp4"
        assert result["output"]["finalVideo"]["url"] == "/output/summary_job-1.mp4"
        compression = result["statistics"]["compression"]
        assert compression["originalMoments"] == 3
        assert compression["usedMoments"] == 2
        assert compression["compressionRatio"] == 50.0
        assert result["statistics"]["processing"]["quality"]["resolution"] == "1280x720"
        assert result["processing"]["momentsFiltered"] == 1
        assert result["processing"]["options"]["minImportance"] == 5

    def test_nothing_left_after_filtering(self, settings, video, fake_ffmpeg):
        with pytest.raises(ValidationError, match="No moments match"):
            VideoSummarizer().create_summary(video, make_moments(), SummaryOptions(min_importance=10), "job-1")

        assert "moments" not in fake_ffmpeg

    def test_quick_summary_uses_fixed_options(self, settings, video, fake_ffmpeg):
        VideoSummarizer().quick_summary(video, make_moments(), "job-1")

        assert [m.title for m in fake_ffmpeg["moments"]] == ["Decide", "Open dashboard"]
        assert fake_ffmpeg["composition"] == QUICK_SUMMARY_OPTIONS.composition
        assert fake_ffmpeg["composition"].enable_transitions is False

    def test_composition_failure_removes_segments(self, settings, video, fake_ffmpeg, monkeypatch):
        monkeypatch.setattr(
            summarizer_service,
            "compose_segments",
            Mock(side_effect=CollaboratorError("ffmpeg", "exit code 1")),
        )

        with pytest.raises(CollaboratorError):
            VideoSummarizer().create_summary(video, make_moments(), SummaryOptions(), "job-1")

        assert not (settings.segments_dir / "job-1").exists()

    def test_thumbnail_failure_leaves_thumbnail_empty(self, settings, monkeypatch):
        monkeypatch.setattr(
            summarizer_service,
            "create_segment_thumbnail",
            Mock(side_effect=CollaboratorError("ffmpeg", "no frame")),
        )
        segment = Segment(index=1, title="a", original_start_time=0, original_end_time=10,
                          filename="01_a.mp4", path="/tmp/01_a.mp4")

        VideoSummarizer().create_segment_thumbnails([segment], "job-1")

        assert segment.thumbnail is None

    def test_capabilities(self, settings):
        capabilities = VideoSummarizer().capabilities()

        assert set(capabilities) == {"filtering", "composition", "output"}
