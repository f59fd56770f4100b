"""SRT parsing and serialization utilities."""

from __future__ import annotations

import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Optional, Set

from .errors import ParseError
from .models import SubtitleEntry

logger = logging.getLogger(__name__)

# H:MM:SS with "." or "," and 2-3 fractional digits on both sides of "-->"
TIMELINE_PATTERN = re.compile(
    r"(\d{1,2}:\d{2}:\d{2}[.,]\d{2,3})\s*-->\s*(\d{1,2}:\d{2}:\d{2}[.,]\d{2,3})"
)
BLOCK_SEPARATOR = re.compile(r"\n\s*\n")
LEADING_INT = re.compile(r"\s*([+-]?\d+)")

SUPPORTED_EXTENSIONS = {".srt", ".txt"}
MAX_FILE_SIZE = 50 * 1024 * 1024


@dataclass
class ParseReport:
    """Entries accepted from a file plus the number of blocks thrown away."""
    entries: List[SubtitleEntry] = field(default_factory=list)
    dropped_blocks: int = 0


def _parse_id(line: str) -> Optional[int]:
    """Leading integer of an id line, or None when the block has no id line."""
    if TIMELINE_PATTERN.search(line):
        return None
    match = LEADING_INT.match(line)
    return int(match.group(1)) if match else None


def _next_id(entries: List[SubtitleEntry], seen: Set[int]) -> int:
    candidate = len(entries) + 1
    if candidate in seen:
        candidate = max(seen) + 1
    return candidate


def parse_srt_report(content: str) -> ParseReport:
    """
    Parse SRT content leniently, counting discarded blocks.

    Blocks need at least three non-blank lines. The first line is the id
    when it starts with an integer (so "12." or "12 abc" give 12). A block
    whose first line is already a timeline has no id line and gets a
    sequential id. Blocks with a bad timeline or no text are dropped.
    """
    report = ParseReport()
    if not content:
        return report

    # 预处理：去掉 BOM，标准化换行符
    content = content.lstrip('\ufeff')
    content = content.replace('\r\n', '\n').replace('\r', '\n').strip()
    if not content:
        return report

    seen: Set[int] = set()
    for block in BLOCK_SEPARATOR.split(content):
        lines = [line for line in block.strip().split('\n') if line.strip()]
        if len(lines) < 3:
            report.dropped_blocks += 1
            continue

        entry_id = _parse_id(lines[0])
        timeline_idx = 1
        if entry_id is None:
            timeline_idx = 0
        if entry_id is None or entry_id < 1 or entry_id in seen:
            entry_id = _next_id(report.entries, seen)

        match = TIMELINE_PATTERN.search(lines[timeline_idx])
        text = " ".join(line.strip() for line in lines[timeline_idx + 1:]).strip()
        if not match or not text:
            report.dropped_blocks += 1
            continue

        start, end = match.groups()
        seen.add(entry_id)
        report.entries.append(SubtitleEntry(
            entry_id, start.replace('.', ','), end.replace('.', ','), text
        ))

    return report


def parse_srt(content: str) -> List[SubtitleEntry]:
    """
    Parse SRT file content into a list of SubtitleEntry objects.

    An empty result is not an error here; callers decide whether a file
    without entries is invalid.
    """
    report = parse_srt_report(content)
    if report.dropped_blocks:
        logger.warning(f"Dropped {report.dropped_blocks} malformed subtitle block(s)")
    if not report.entries:
        logger.warning("No valid SRT entries found in content")
    return report.entries


def decode_subtitle_bytes(data: bytes) -> str:
    """Decode uploaded bytes as UTF-8, tolerating a BOM and bad bytes."""
    return data.decode("utf-8-sig", errors="replace")


def format_srt(entries: Sequence[SubtitleEntry]) -> str:
    """Serialize entries to strict SRT, renumbering ids 1..N."""
    return "\n".join(e.to_srt(new_id) for new_id, e in enumerate(entries, 1))


def validate_srt_file(path: Path) -> Optional[str]:
    """
    Validate a subtitle file before processing.

    Returns:
        Error message if invalid, None if valid
    """
    if not path.exists():
        return f"File not found: {path}"

    if not path.is_file():
        return f"Not a file: {path}"

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        return f"Invalid file extension: {suffix} (expected .srt or .txt)"

    size = path.stat().st_size
    if size == 0:
        return "File is empty"
    if size > MAX_FILE_SIZE:
        return f"File too large: {size / 1024 / 1024:.1f}MB (max 50MB)"

    return None


def save_srt(entries: Sequence[SubtitleEntry], path: Path) -> None:
    """
    Save entries to an SRT file.

    Args:
        entries: Sequence of SubtitleEntry objects to save
        path: Output file path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_srt(entries), encoding="utf-8")
    logger.info(f"Saved {len(entries)} entries to {path}")


def parse_subtitle_file(file_name: str, content: str) -> ParseReport:
    """
    Parse an uploaded file, rejecting it if nothing usable is inside.

    Raises:
        ParseError: the file yields zero valid entries
    """
    report = parse_srt_report(content)
    if not report.entries:
        raise ParseError(f"No subtitle entries found in {file_name}")
    if report.dropped_blocks:
        logger.warning(f"{file_name}: dropped {report.dropped_blocks} malformed block(s)")
    return report
