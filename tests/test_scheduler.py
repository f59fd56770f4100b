"""Tests for the batch scheduler."""

import asyncio

import pytest

from srt_batch_translator.errors import RateLimited, TranslationFailed
from srt_batch_translator.models import SubtitleEntry
from srt_batch_translator.scheduler import (
    BATCH_SIZE,
    CONCURRENCY,
    PACING_DELAY,
    WAVE_COOLDOWN,
    BatchScheduler,
    chunk_entries,
    progress_for,
)


def make_entries(count):
    return [
        SubtitleEntry(i, f"00:00:{i % 60:02d},000", f"00:00:{i % 60:02d},500", f"line {i}")
        for i in range(1, count + 1)
    ]


class RecordingSleep:

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeTranslator:
    """Upper-cases text; optionally fails or skips ids."""

    def __init__(self, fail_on=None, skip_ids=(), slow_first=False):
        self.fail_on = fail_on
        self.skip_ids = set(skip_ids)
        self.slow_first = slow_first
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, chunk, style_hint):
        self.calls.append(([e.id for e in chunk], style_hint))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            rounds = 10 if self.slow_first and chunk[0].id == 1 else 3
            for _ in range(rounds):
                await asyncio.sleep(0)
            if self.fail_on is not None and chunk[0].id == self.fail_on:
                raise RateLimited()
            return {e.id: e.text.upper() for e in chunk if e.id not in self.skip_ids}
        finally:
            self.in_flight -= 1


def run(scheduler, entries, hint="", progress=None):
    return asyncio.run(scheduler.run(entries, hint, progress.append if progress is not None else None))


class TestHelpers:

    def test_constants(self):
        assert BATCH_SIZE == 50
        assert CONCURRENCY == 2
        assert PACING_DELAY == 0.5
        assert WAVE_COOLDOWN == 1.0

    def test_chunk_entries(self):
        chunks = chunk_entries(make_entries(120))
        assert [len(c) for c in chunks] == [50, 50, 20]
        assert chunks[1][0].id == 51

    def test_progress_for(self):
        assert progress_for(0, 120) == 5
        assert progress_for(100, 120) == 83
        assert progress_for(120, 120) == 99


class TestBatchScheduler:

    def test_empty_input(self):
        translator = FakeTranslator()
        sleep = RecordingSleep()
        assert run(BatchScheduler(translator, sleep), []) == []
        assert translator.calls == []
        assert sleep.delays == []

    def test_120_entries_in_two_waves(self):
        translator = FakeTranslator()
        sleep = RecordingSleep()
        progress = []
        entries = make_entries(120)

        result = run(BatchScheduler(translator, sleep), entries, "casual", progress)

        assert [len(ids) for ids, _ in translator.calls] == [50, 50, 20]
        assert all(hint == "casual" for _, hint in translator.calls)
        assert translator.max_in_flight == 2
        # pacing for the second chunk of wave 1, then one cooldown between waves
        assert sleep.delays == [PACING_DELAY, WAVE_COOLDOWN]
        assert progress == [44, 83, 99]
        assert [e.text for e in result] == [f"LINE {i}" for i in range(1, 121)]
        assert [e.id for e in result] == list(range(1, 121))

    def test_originals_not_mutated(self):
        entries = make_entries(3)
        run(BatchScheduler(FakeTranslator(), RecordingSleep()), entries)
        assert [e.text for e in entries] == ["line 1", "line 2", "line 3"]

    def test_missing_id_keeps_original_text(self):
        translator = FakeTranslator(skip_ids={7})
        result = run(BatchScheduler(translator, RecordingSleep()), make_entries(10))
        assert result[6].text == "line 7"
        assert result[5].text == "LINE 6"
        assert result[7].text == "LINE 8"

    def test_completion_order_does_not_matter(self):
        translator = FakeTranslator(slow_first=True)
        progress = []
        result = run(BatchScheduler(translator, RecordingSleep()), make_entries(100), progress=progress)
        assert [e.text for e in result] == [f"LINE {i}" for i in range(1, 101)]
        assert progress == [52, 99]

    def test_ids_outside_chunk_ignored(self):
        async def translate(chunk, hint):
            return {999: "ghost", chunk[0].id: "first"}

        result = run(BatchScheduler(translate, RecordingSleep()), make_entries(2))
        assert [e.text for e in result] == ["first", "line 2"]

    def test_failure_aborts_run(self):
        translator = FakeTranslator(fail_on=101)
        progress = []
        with pytest.raises(TranslationFailed) as exc_info:
            run(BatchScheduler(translator, RecordingSleep()), make_entries(160), progress=progress)

        assert isinstance(exc_info.value.cause, RateLimited)
        assert str(exc_info.value) == RateLimited.default_message
        # both chunks of wave 2 started before the failure surfaced
        assert [ids[0] for ids, _ in translator.calls] == [1, 51, 101, 151]
        assert progress[:2] == [34, 63]
        assert max(progress) < 100

    def test_failure_in_first_chunk_cancels_sibling(self):
        translator = FakeTranslator(fail_on=1)
        with pytest.raises(TranslationFailed):
            run(BatchScheduler(translator, RecordingSleep()), make_entries(150))
        assert all(ids[0] != 101 for ids, _ in translator.calls)
