"""Data models for subtitle entries and translation jobs."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass
class SubtitleEntry:
    """Represents a single subtitle cue in SRT format."""

    id: int
    start: str
    end: str
    text: str

    @property
    def timecode(self) -> str:
        """Return the timecode line in SRT format."""
        return f"{self.start} --> {self.end}"

    def to_srt(self, new_id: int | None = None) -> str:
        """Render the entry as one SRT block (no trailing separator)."""
        idx = new_id if new_id is not None else self.id
        return f"{idx}\n{self.timecode}\n{self.text}\n"

    def copy(self, **changes) -> "SubtitleEntry":
        """Create a copy with optional field changes."""
        return SubtitleEntry(
            id=changes.get('id', self.id),
            start=changes.get('start', self.start),
            end=changes.get('end', self.end),
            text=changes.get('text', self.text),
        )


class JobStatus(Enum):
    """Lifecycle states of a file job."""
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def new_file_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class FileJob:
    """One uploaded subtitle file moving through parse, translate and export."""

    file_name: str
    original_entries: tuple[SubtitleEntry, ...]
    file_id: str = field(default_factory=new_file_id)
    translated_entries: List[SubtitleEntry] = field(default_factory=list)
    prompt: str = ""
    status: JobStatus = JobStatus.IDLE
    progress: int = 0
    error: Optional[str] = None
    dropped_blocks: int = 0

    @property
    def is_translatable(self) -> bool:
        return bool(self.original_entries)

    @property
    def is_prompt_editable(self) -> bool:
        return self.status in (JobStatus.IDLE, JobStatus.FAILED)
