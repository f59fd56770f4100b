"""
SRT Batch Translator - queue-based LLM subtitle translation.

Features:
- Lenient SRT parsing that tolerates missing ids and "." separators
- Paced, concurrency-limited batch translation against an LLM API
- Sequential multi-file job queue with per-file failure isolation
- Strict SRT export with sequential numbering
"""

__version__ = "1.0.0"

from .models import SubtitleEntry, FileJob, JobStatus
from .parser import (
    parse_srt,
    parse_srt_report,
    parse_subtitle_file,
    format_srt,
    save_srt,
    validate_srt_file,
    ParseReport,
)
from .translator import translate_batch, TranslatedLine
from .scheduler import BatchScheduler, BATCH_SIZE, CONCURRENCY
from .jobs import JobQueueController
from .config import TranslatorConfig
from .errors import (
    SubtitleTranslatorError,
    ParseError,
    TranslationError,
    TranslationErrorKind,
    RateLimited,
    Unauthorized,
    MalformedResponse,
    UnknownTranslationError,
    TranslationFailed,
    JobNotFound,
    JobStateError,
)

__all__ = [
    # Models
    "SubtitleEntry",
    "FileJob",
    "JobStatus",
    "TranslatedLine",
    "TranslatorConfig",
    "ParseReport",
    # Codec
    "parse_srt",
    "parse_srt_report",
    "parse_subtitle_file",
    "format_srt",
    "save_srt",
    "validate_srt_file",
    # Translation
    "translate_batch",
    "BatchScheduler",
    "BATCH_SIZE",
    "CONCURRENCY",
    "JobQueueController",
    # Errors
    "SubtitleTranslatorError",
    "ParseError",
    "TranslationError",
    "TranslationErrorKind",
    "RateLimited",
    "Unauthorized",
    "MalformedResponse",
    "UnknownTranslationError",
    "TranslationFailed",
    "JobNotFound",
    "JobStateError",
]
