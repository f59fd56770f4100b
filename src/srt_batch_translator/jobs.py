"""Job queue controller: owns file jobs and runs them one at a time."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Callable, Iterable, List, Optional, Tuple

from .config import OUTPUT_PREFIX
from .errors import JobNotFound, JobStateError, ParseError, TranslationFailed
from .models import FileJob, JobStatus
from .parser import decode_subtitle_bytes, format_srt, parse_subtitle_file
from .scheduler import BatchScheduler, INITIAL_PROGRESS, TranslateFn

logger = logging.getLogger(__name__)


class JobQueueController:
    """
    Manages the job table and processes jobs strictly sequentially.

    Only this class changes job state. The scheduler reports progress
    through a callback and hands back the merged entries on success.
    """

    def __init__(
        self,
        translate: TranslateFn,
        scheduler_factory: Callable[[TranslateFn], BatchScheduler] = BatchScheduler,
        output_prefix: str = OUTPUT_PREFIX,
    ):
        self._translate = translate
        self._scheduler_factory = scheduler_factory
        self.output_prefix = output_prefix
        self._jobs: "OrderedDict[str, FileJob]" = OrderedDict()
        self._running = False
        self._queued: set[str] = set()
        self._active: set[str] = set()
        # 任何时刻只有一个任务在翻译
        self._run_lock = asyncio.Lock()

        # Callbacks
        self.on_job_updated: Optional[Callable[[FileJob], None]] = None

    # ── Job table ─────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    def upload(self, file_name: str, data: bytes | str) -> FileJob:
        """
        Parse one file into a new job.

        A file without valid entries still produces a job, already FAILED.
        """
        content = data if isinstance(data, str) else decode_subtitle_bytes(data)
        try:
            report = parse_subtitle_file(file_name, content)
        except ParseError as e:
            job = FileJob(
                file_name=file_name,
                original_entries=(),
                status=JobStatus.FAILED,
                error=str(e),
            )
            logger.warning(job.error)
        else:
            job = FileJob(
                file_name=file_name,
                original_entries=tuple(report.entries),
                dropped_blocks=report.dropped_blocks,
            )
            logger.info(f"Added {file_name} ({len(report.entries)} entries) as job {job.file_id}")

        self._jobs[job.file_id] = job
        self._notify(job)
        return job

    def upload_many(self, files: Iterable[Tuple[str, bytes | str]]) -> List[FileJob]:
        """Add several files; each parses independently."""
        return [self.upload(name, data) for name, data in files]

    def list_jobs(self) -> List[FileJob]:
        return list(self._jobs.values())

    def get_job(self, job_id: str) -> FileJob:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise JobNotFound(job_id) from None

    def update_prompt(self, job_id: str, prompt: str) -> None:
        job = self.get_job(job_id)
        if not job.is_prompt_editable:
            raise JobStateError(
                f"Cannot change prompt of {job.file_name} while {job.status.value}"
            )
        job.prompt = prompt
        self._notify(job)

    def remove(self, job_id: str) -> FileJob:
        job = self.get_job(job_id)
        if job.status is JobStatus.PROCESSING or job_id in self._active:
            raise JobStateError(f"Cannot remove {job.file_name} while it is processing")
        self._queued.discard(job_id)
        del self._jobs[job_id]
        logger.info(f"Removed job {job_id} ({job.file_name})")
        return job

    def download(self, job_id: str) -> bytes:
        """Serialized translated SRT for a completed job."""
        job = self.get_job(job_id)
        if job.status is not JobStatus.COMPLETED:
            raise JobStateError(f"{job.file_name} is not translated yet ({job.status.value})")
        return format_srt(job.translated_entries).encode("utf-8")

    def output_name(self, job_id: str) -> str:
        """File name for the downloaded translation."""
        return f"{self.output_prefix}{self.get_job(job_id).file_name}"

    # ── Processing ────────────────────────────────────────────────────

    async def start_queue(self) -> List[FileJob]:
        """
        Process every job not yet COMPLETED, one after another.

        Returns the jobs that were run. A call made while a run is already
        active does nothing and returns an empty list. A job being retried
        when the queue starts is left out, and the queue waits for that
        retry to finish before running anything else.
        """
        if self._running:
            logger.info("Queue already running, ignoring start request")
            return []

        self._running = True
        processed: List[FileJob] = []
        try:
            pending = [job for job in self._jobs.values() if self._is_runnable(job)]
            self._queued = {job.file_id for job in pending}
            logger.info(f"Starting queue with {len(pending)} job(s)")

            for job in pending:
                async with self._run_lock:
                    # 等待期间可能被移除或已由重试完成
                    if job.file_id not in self._queued or not self._is_runnable(job):
                        self._queued.discard(job.file_id)
                        continue
                    try:
                        await self._process(job)
                    except TranslationFailed:
                        logger.warning(f"Job {job.file_name} failed, continuing with next job")
                    finally:
                        self._queued.discard(job.file_id)
                processed.append(job)
        finally:
            self._queued = set()
            self._running = False

        done = sum(1 for job in processed if job.status is JobStatus.COMPLETED)
        logger.info(f"Queue finished: {done}/{len(processed)} job(s) completed")
        return processed

    async def retry(self, job_id: str) -> FileJob:
        """
        Re-run a single job from its original entries outside the queue.

        A failed run leaves the job FAILED with its error; it is not raised.

        Raises:
            JobStateError: a queue run or another job's run is in progress
        """
        job = self.get_job(job_id)
        if job.status is JobStatus.PROCESSING or job_id in self._active:
            raise JobStateError(f"{job.file_name} is already processing")
        if self._running:
            raise JobStateError(f"Cannot retry {job.file_name} while the queue is running")
        if self._active:
            raise JobStateError(f"Cannot retry {job.file_name} while another job is processing")
        if not job.is_translatable:
            logger.info(f"Job {job.file_name} has no entries to translate")
            return job

        async with self._run_lock:
            try:
                await self._process(job)
            except TranslationFailed:
                pass
        return job

    def _is_runnable(self, job: FileJob) -> bool:
        return (
            job.is_translatable
            and job.status not in (JobStatus.COMPLETED, JobStatus.PROCESSING)
            and job.file_id not in self._active
        )

    async def _process(self, job: FileJob) -> None:
        self._active.add(job.file_id)
        job.status = JobStatus.PROCESSING
        job.progress = INITIAL_PROGRESS
        job.error = None
        job.translated_entries = []
        self._notify(job)
        logger.info(f"Processing {job.file_name} ({len(job.original_entries)} entries)")

        def on_progress(percent: int) -> None:
            if percent > job.progress:
                job.progress = percent
                self._notify(job)

        scheduler = self._scheduler_factory(self._translate)
        try:
            translated = await scheduler.run(job.original_entries, job.prompt, on_progress)
        except TranslationFailed as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.error(f"Job {job.file_name} failed: {e}")
            self._notify(job)
            raise
        except asyncio.CancelledError:
            job.status = JobStatus.FAILED
            job.error = "Translation was cancelled"
            self._notify(job)
            raise
        finally:
            self._active.discard(job.file_id)

        job.translated_entries = translated
        job.status = JobStatus.COMPLETED
        job.progress = 100
        self._notify(job)
        logger.info(f"Completed {job.file_name}")

    def _notify(self, job: FileJob) -> None:
        if self.on_job_updated:
            self.on_job_updated(job)
