"""Tests for data models."""

import pytest
from srt_batch_translator.models import SubtitleEntry, FileJob, JobStatus


class TestSubtitleEntry:

    def test_creation(self):
        entry = SubtitleEntry(1, "00:00:01,000", "00:00:03,500", "Hello world")
        assert entry.id == 1
        assert entry.text == "Hello world"

    def test_timecode_property(self):
        entry = SubtitleEntry(1, "00:00:01,000", "00:00:03,500", "Test")
        assert entry.timecode == "00:00:01,000 --> 00:00:03,500"

    def test_to_srt(self):
        entry = SubtitleEntry(7, "00:00:01,000", "00:00:03,500", "Hello")
        assert entry.to_srt() == "7\n00:00:01,000 --> 00:00:03,500\nHello\n"
        assert entry.to_srt(2).startswith("2\n")

    def test_copy(self):
        entry = SubtitleEntry(1, "00:00:01,000", "00:00:03,500", "Hello")
        copied = entry.copy(text="World", end="00:00:05,000")

        # Original unchanged
        assert entry.text == "Hello"
        assert entry.end == "00:00:03,500"

        assert copied.text == "World"
        assert copied.end == "00:00:05,000"
        assert copied.start == entry.start
        assert copied.id == entry.id


class TestFileJob:

    def test_defaults(self):
        job = FileJob("movie.srt", (SubtitleEntry(1, "00:00:01,000", "00:00:02,000", "Hi"),))
        assert job.status is JobStatus.IDLE
        assert job.progress == 0
        assert job.error is None
        assert job.translated_entries == []
        assert job.is_translatable
        assert job.is_prompt_editable

    def test_unique_ids(self):
        a = FileJob("a.srt", ())
        b = FileJob("a.srt", ())
        assert a.file_id != b.file_id

    @pytest.mark.parametrize("status,editable", [
        (JobStatus.IDLE, True),
        (JobStatus.FAILED, True),
        (JobStatus.PROCESSING, False),
        (JobStatus.COMPLETED, False),
    ])
    def test_prompt_editable(self, status, editable):
        job = FileJob("a.srt", (), status=status)
        assert job.is_prompt_editable is editable
