"""Command-line interface for the batch subtitle translator."""

from __future__ import annotations

import asyncio
import argparse
import functools
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from .config import TranslatorConfig, DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_TARGET_LANGUAGE
from .jobs import JobQueueController
from .llm_client import create_client
from .models import FileJob, JobStatus
from .parser import validate_srt_file
from .translator import translate_batch


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Batch LLM subtitle translator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s a.srt b.srt                       # Translate both files in turn
  %(prog)s a.srt -p "casual, keep slang"     # Style hint for every file
  %(prog)s *.srt -o out/                     # Write results into out/
  %(prog)s a.srt --target-language French
        """
    )

    parser.add_argument("input_paths", nargs='+', help="Input SRT files")
    parser.add_argument("-o", "--output-dir", dest="output_dir", default=None,
                        help="Output directory (default: beside each input)")
    parser.add_argument("-p", "--prompt", default="", help="Style hint for the translation")

    # API options
    parser.add_argument("--api-key", help="API key (or set SUBTITLE_API_KEY)")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    parser.add_argument("--model", dest="model_name", default=DEFAULT_MODEL)
    parser.add_argument("--target-language", dest="target_language", default=DEFAULT_TARGET_LANGUAGE)
    parser.add_argument("--timeout", type=float, default=60.0, help="Request timeout in seconds")

    # Misc
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    return parser.parse_args(argv)


class ProgressBars:
    """One tqdm bar per job, driven by controller updates."""

    def __init__(self):
        self._bars: Dict[str, tqdm] = {}

    def __call__(self, job: FileJob) -> None:
        if job.status is not JobStatus.PROCESSING and job.file_id not in self._bars:
            return
        bar = self._bars.get(job.file_id)
        if bar is None:
            bar = tqdm(total=100, desc=job.file_name, unit="%", position=len(self._bars), leave=True)
            self._bars[job.file_id] = bar
        bar.update(job.progress - bar.n)
        if job.status is JobStatus.FAILED:
            bar.set_postfix_str("failed")
        elif job.status is JobStatus.COMPLETED:
            bar.set_postfix_str("done")

    def close(self) -> None:
        for bar in self._bars.values():
            bar.close()


def write_outputs(
    controller: JobQueueController,
    jobs: List[FileJob],
    sources: Dict[str, Path],
    output_dir: Optional[Path],
) -> int:
    """Write completed jobs to disk and report failures. Returns failure count."""
    logger = logging.getLogger(__name__)
    failures = 0

    for job in jobs:
        if job.status is not JobStatus.COMPLETED:
            failures += 1
            logger.error(f"{job.file_name}: {job.error or job.status.value}")
            continue

        target_dir = output_dir or sources[job.file_id].parent
        out_path = target_dir / controller.output_name(job.file_id)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(controller.download(job.file_id))
        logger.info(f"Saved {len(job.translated_entries)} entries to {out_path}")

    return failures


async def main_async(args: argparse.Namespace) -> int:
    """Main async workflow."""
    logger = logging.getLogger(__name__)
    config = TranslatorConfig.from_args(args)

    error = config.validate()
    if error:
        logger.error(error)
        return 1

    client = create_client(config.api_key, config.base_url, config.timeout)
    translate = functools.partial(
        translate_batch,
        client=client,
        model=config.model_name,
        target_language=config.target_language,
        temperature=config.temperature,
    )
    controller = JobQueueController(translate, output_prefix=config.output_prefix)

    sources: Dict[str, Path] = {}
    invalid = 0
    for raw in args.input_paths:
        in_path = Path(raw).expanduser().resolve()
        error = validate_srt_file(in_path)
        if error:
            logger.error(error)
            invalid += 1
            continue
        job = controller.upload(in_path.name, in_path.read_bytes())
        sources[job.file_id] = in_path
        if job.is_prompt_editable and args.prompt:
            controller.update_prompt(job.file_id, args.prompt)

    jobs = controller.list_jobs()
    if not jobs:
        logger.error("No input files to translate")
        return 1

    bars = ProgressBars()
    controller.on_job_updated = bars
    try:
        await controller.start_queue()
    finally:
        bars.close()

    output_dir = Path(args.output_dir).expanduser().resolve() if args.output_dir else None
    failures = write_outputs(controller, jobs, sources, output_dir)

    done = len(jobs) - failures
    logger.info(f"Done! {done}/{len(jobs)} file(s) translated")
    return 1 if failures or invalid else 0


def main() -> None:
    """CLI entry point."""
    args = parse_arguments()
    setup_logging(args.verbose)

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(130)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
