"""Concurrency-limited batch scheduling of translation requests."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from .errors import TranslationFailed
from .models import SubtitleEntry

logger = logging.getLogger(__name__)

# Tuned to stay under typical free-tier rate limits
BATCH_SIZE = 50
CONCURRENCY = 2
PACING_DELAY = 0.5      # seconds between chunk starts inside a wave
WAVE_COOLDOWN = 1.0     # seconds between waves

INITIAL_PROGRESS = 5
PROGRESS_SPAN = 94

TranslateFn = Callable[[Sequence[SubtitleEntry], str], Awaitable[Dict[int, str]]]
ProgressFn = Callable[[int], None]


def chunk_entries(
    entries: Sequence[SubtitleEntry],
    size: int = BATCH_SIZE,
) -> List[List[SubtitleEntry]]:
    """Split entries into order-preserving chunks; the last may be short."""
    return [list(entries[i:i + size]) for i in range(0, len(entries), size)]


def progress_for(completed: int, total: int) -> int:
    """Progress percentage after ``completed`` of ``total`` entries are done."""
    if total <= 0:
        return INITIAL_PROGRESS
    return INITIAL_PROGRESS + (PROGRESS_SPAN * completed) // total


class BatchScheduler:
    """
    Runs one file's entries through the translator in paced waves.

    Chunks of BATCH_SIZE entries are grouped into waves of CONCURRENCY.
    Inside a wave, every chunk after the first starts PACING_DELAY late and
    waves are separated by WAVE_COOLDOWN. Results are merged by id
    into a working copy, so the order in which chunks finish is irrelevant.
    """

    def __init__(
        self,
        translate: TranslateFn,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._translate = translate
        self._sleep = sleep

    async def run(
        self,
        entries: Sequence[SubtitleEntry],
        style_hint: str,
        on_progress: Optional[ProgressFn] = None,
    ) -> List[SubtitleEntry]:
        """
        Translate ``entries`` and return them in their original order.

        Progress is reported after each chunk and stops short of 100;
        the caller sets 100 once the whole run has succeeded.

        Raises:
            TranslationFailed: any chunk failed; the partial result is discarded
        """
        working = [e.copy() for e in entries]
        if not working:
            return working

        positions = {e.id: i for i, e in enumerate(working)}
        chunks = chunk_entries(entries)
        waves = [chunks[i:i + CONCURRENCY] for i in range(0, len(chunks), CONCURRENCY)]
        total = len(working)
        completed = 0
        sem = asyncio.Semaphore(CONCURRENCY)

        def report(count: int) -> None:
            nonlocal completed
            completed += count
            if on_progress:
                on_progress(progress_for(completed, total))

        async def run_chunk(chunk: List[SubtitleEntry], slot: int) -> None:
            if slot > 0:
                await self._sleep(PACING_DELAY)
            async with sem:
                logger.debug(f"Translating chunk of {len(chunk)} (ids {chunk[0].id}-{chunk[-1].id})")
                translated = await self._translate(chunk, style_hint)
            self._merge(working, positions, chunk, translated)
            report(len(chunk))

        logger.info(f"Translating {total} entries in {len(chunks)} chunks / {len(waves)} waves")

        for wave_idx, wave in enumerate(waves):
            tasks = [
                asyncio.ensure_future(run_chunk(chunk, slot))
                for slot, chunk in enumerate(wave)
            ]
            try:
                await asyncio.gather(*tasks)
            except Exception as e:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                logger.error(f"Wave {wave_idx + 1}/{len(waves)} failed: {e}")
                raise TranslationFailed(e) from e

            if wave_idx < len(waves) - 1:
                await self._sleep(WAVE_COOLDOWN)

        return working

    @staticmethod
    def _merge(
        working: List[SubtitleEntry],
        positions: Dict[int, int],
        chunk: Sequence[SubtitleEntry],
        translated: Dict[int, str],
    ) -> None:
        # 未返回的 id 保留原文
        for entry in chunk:
            text = translated.get(entry.id)
            if text is None:
                continue
            idx = positions[entry.id]
            working[idx] = working[idx].copy(text=text)
