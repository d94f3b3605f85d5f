"""Test working-directory bookkeeping, segment naming and per-job cleanup."""

import os
import time
from pathlib import Path

import pytest

from summarizer.core.exceptions import CollaboratorError, ValidationError
from summarizer.models.domain import ActivityKind, Segment
from summarizer.services.cleanup_service import CleanupCoordinator
from summarizer.services.file_manager import (
    cleanup_temp_files,
    ensure_directories,
    format_bytes,
    generate_unique_filename,
    get_directory_stats,
    move_to_processing,
)
from summarizer.services.media import composition_service
from summarizer.services.media.composition_service import create_concat_file, output_filename
from summarizer.services.media.segment_service import (
    cleanup_segments,
    generate_segment_summary,
    sanitize_filename,
    segment_filename,
)


class TestFileManager:
    """Test directory layout and temp maintenance."""

    def test_ensure_directories(self, settings):
        directories = ensure_directories()

        assert set(directories) == {"uploads", "temp", "segments", "output", "logs", "thumbnails"}
        assert all(path.is_dir() for path in directories.values())
        assert directories["uploads"] == settings.work_dir / "uploads"

    def test_unique_filename_keeps_stem_and_extension(self):
        first = generate_unique_filename("screen capture.mov", prefix="video-")
        second = generate_unique_filename("screen capture.mov", prefix="video-")

        assert first.startswith("video-screen capture-")
        assert first.endswith(".mov")
        assert first != second

    def test_move_to_processing(self, settings):
        settings.uploads_dir.mkdir(parents=True)
        upload = settings.uploads_dir / "video-demo.mp4"
        upload.write_bytes(b"data")

        result = move_to_processing(upload, "video-demo.mp4")

        assert not upload.exists()
        assert result["filename"].startswith("proc-video-demo-")
        assert (settings.temp_dir / result["filename"]).read_bytes() == b"data"

    def test_move_missing_file(self, settings):
        with pytest.raises(ValidationError):
            move_to_processing(settings.uploads_dir / "missing.mp4")

    def test_cleanup_temp_files_respects_age(self, settings):
        settings.temp_dir.mkdir(parents=True)
        old_file = settings.temp_dir / "old.mp3"
        new_file = settings.temp_dir / "new.mp3"
        old_file.write_bytes(b"x" * 100)
        new_file.write_bytes(b"y" * 10)
        two_days_ago = time.time() - 48 * 3600
        os.utime(old_file, (two_days_ago, two_days_ago))

        result = cleanup_temp_files(max_age_hours=24)

        assert result["filesRemoved"] == 1
        assert result["bytesFreed"] == 100
        assert not old_file.exists()
        assert new_file.exists()

    def test_cleanup_temp_files_zero_age_removes_everything(self, settings):
        settings.temp_dir.mkdir(parents=True)
        (settings.temp_dir / "a.txt").write_text("a")
        (settings.temp_dir / "b.txt").write_text("b")

        result = cleanup_temp_files(max_age_hours=0)

        assert result["filesRemoved"] == 2
        assert list(settings.temp_dir.iterdir()) == []

    def test_cleanup_temp_files_without_temp_dir(self, settings):
        assert cleanup_temp_files()["filesRemoved"] == 0

    def test_directory_stats(self, settings):
        ensure_directories()
        (settings.output_dir / "summary_a.mp4").write_bytes(b"x" * 2048)

        stats = get_directory_stats()

        assert stats["output"]["fileCount"] == 1
        assert stats["output"]["totalSizeFormatted"] == "2 KB"
        assert stats["uploads"]["fileCount"] == 0

    def test_format_bytes(self):
        assert format_bytes(0) == "0 Bytes"
        assert format_bytes(512) == "512 Bytes"
        assert format_bytes(1536) == "1.5 KB"
        assert format_bytes(5 * 1024 * 1024) == "5 MB"


class TestSegmentFiles:
    """Test segment naming and bookkeeping."""

    def test_sanitize_filename(self):
        assert sanitize_filename("Review: Q3 Report (final)!") == "review_q3_report_final"
        assert len(sanitize_filename("x" * 80)) == 50

    def test_segment_filename(self):
        assert segment_filename(0, "Opening the Dashboard") == "01_opening_the_dashboard.mp4"
        assert segment_filename(11, "???") == "12_moment_12.mp4"

    def test_concat_file_lists_segments_in_order(self, tmp_path):
        segments = [
            Segment(index=1, title="a", original_start_time=0, original_end_time=5,
                    filename="01_a.mp4", path=str(tmp_path / "01_a.mp4")),
            Segment(index=2, title="b", original_start_time=10, original_end_time=15,
                    filename="02_b.mp4", path=str(tmp_path / "02_b.mp4")),
        ]

        concat = create_concat_file(segments, tmp_path / "concat_job.txt")

        lines = concat.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("file ")
        assert "01_a.mp4" in lines[0]
        assert "02_b.mp4" in lines[1]

    def test_segment_summary(self):
        segments = [
            Segment(index=1, title="a", original_start_time=0, original_end_time=10,
                    filename="01_a.mp4", path="/tmp/01_a.mp4", category="decision", importance=8),
            Segment(index=2, title="b", original_start_time=20, original_end_time=25,
                    filename="02_b.mp4", path="/tmp/02_b.mp4", category="decision", importance=4),
        ]

        summary = generate_segment_summary(segments)

        assert summary["totalSegments"] == 2
        assert summary["totalDuration"] == 15
        assert summary["categoryCounts"] == {"decision": 2}
        assert summary["importanceStats"] == {"min": 4, "max": 8, "avg": 6}

    def test_cleanup_segments(self, settings):
        job_dir = settings.segments_dir / "job-1"
        job_dir.mkdir(parents=True)
        (job_dir / "01_a.mp4").write_bytes(b"a")
        (job_dir / "02_b.mp4").write_bytes(b"b")

        assert cleanup_segments("job-1", settings.segments_dir) == 2
        assert not job_dir.exists()
        assert cleanup_segments("job-1", settings.segments_dir) == 0

    def test_failed_composition_removes_partial_output(self, settings, tmp_path, monkeypatch):
        segments = []
        for i, title in enumerate(["a", "b"], start=1):
            path = tmp_path / f"0{i}_{title}.mp4"
            path.write_bytes(b"clip")
            segments.append(Segment(index=i, title=title, original_start_time=i * 10, original_end_time=i * 10 + 5,
                                    filename=path.name, path=str(path)))
        output_dir = tmp_path / "output"
        temp_dir = tmp_path / "temp"
        seen = {}

        def half_written(cmd, timeout, tool="ffmpeg"):
            seen["concat"] = (temp_dir / "concat_job-1.txt").exists()
            Path(cmd[-1]).write_bytes(b"partial")
            raise CollaboratorError("ffmpeg", "exit code 1")

        monkeypatch.setattr(composition_service, "run_command", half_written)

        with pytest.raises(CollaboratorError):
            composition_service.compose_segments(segments, None, "job-1", output_dir=output_dir, temp_dir=temp_dir)

        assert seen["concat"] is True
        assert not (output_dir / output_filename("job-1")).exists()
        assert not (temp_dir / "concat_job-1.txt").exists()


class TestCleanupCoordinator:
    """Test per-job artifact removal."""

    async def test_cleanup_removes_job_artifacts_and_is_idempotent(self, settings, job_log):
        ensure_directories()
        temp_copy = settings.temp_dir / "proc-demo.mp4"
        audio = settings.temp_dir / "proc-demo.mp3"
        other_job_file = settings.temp_dir / "proc-other.mp4"
        for path in (temp_copy, audio, other_job_file):
            path.write_bytes(b"data")
        (settings.segments_dir / "job-1").mkdir()
        (settings.segments_dir / "job-1" / "01_a.mp4").write_bytes(b"a")
        (settings.thumbnails_dir / "job-1").mkdir()
        (settings.thumbnails_dir / "job-1" / "01_a.jpg").write_bytes(b"t")
        (settings.output_dir / output_filename("job-1")).write_bytes(b"summary")

        await job_log.append("job-1", ActivityKind.PROCESSING_STARTED, {"tempPath": str(temp_copy)})
        await job_log.append("job-1", ActivityKind.AUDIO_EXTRACTION_COMPLETED, {"audioPath": str(audio)})
        coordinator = CleanupCoordinator(job_log)

        first = await coordinator.cleanup("job-1")
        second = await coordinator.cleanup("job-1")

        assert first["results"] == {"segments": 1, "thumbnails": 1, "output": 1, "temp": 2}
        assert first["totalDeleted"] == 5
        assert second["results"] == {"segments": 0, "thumbnails": 0, "output": 0, "temp": 0}
        assert second["totalDeleted"] == 0
        assert other_job_file.exists()
        assert len(await job_log.query("job-1")) == 2

    async def test_paths_outside_temp_are_ignored(self, settings, job_log, tmp_path):
        ensure_directories()
        outside = tmp_path / "uploads" / "keep.mp4"
        outside.write_bytes(b"keep")
        await job_log.append("job-1", ActivityKind.PROCESSING_STARTED, {"tempPath": str(outside)})

        report = await CleanupCoordinator(job_log).cleanup("job-1")

        assert report["results"]["temp"] == 0
        assert outside.exists()
