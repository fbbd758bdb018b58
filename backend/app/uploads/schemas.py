"""Data models for staged multipart uploads.

- UploadedFile: one received part, staged to local disk
- FileState: lifecycle of a staged file (staged → uploaded | discarded)
- FileGroup: field name → ordered list of UploadedFile
- ValidationOutcome: either a FileGroup or a single error string
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

# Per-part size limit enforced while staging: 5 MiB
MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png"})

FILE_TOO_LARGE = "File too large"


class FileState(str, Enum):
    """Where a staged file is in its lifecycle."""
    STAGED = "staged"
    UPLOADED = "uploaded"
    DISCARDED = "discarded"


@dataclass
class UploadedFile:
    """A multipart part whose bytes have been written to the staging directory."""
    field_name: str
    temp_path: Path
    mime_type: str
    size: int
    original_name: str
    state: FileState = FileState.STAGED

    @property
    def is_staged(self) -> bool:
        return self.state == FileState.STAGED


FileGroup = Dict[str, List[UploadedFile]]


def group_by_field(files: List[UploadedFile]) -> FileGroup:
    """Group files by field name, preserving first-seen key order and file order."""
    grouped: FileGroup = {}
    for f in files:
        grouped.setdefault(f.field_name, []).append(f)
    return grouped


@dataclass
class ValidationOutcome:
    """Result of running a request through the upload gate.

    Exactly one of ``files`` and ``error`` is set. ``received`` holds every
    part that was staged, including the discarded ones, so that a single
    cleanup pass can reclaim them.
    """
    files: Optional[FileGroup] = None
    error: Optional[str] = None
    received: List[UploadedFile] = field(default_factory=list)

    @classmethod
    def accepted(cls, files: FileGroup, received: List[UploadedFile]) -> "ValidationOutcome":
        return cls(files=files, received=received)

    @classmethod
    def rejected(cls, error: str, received: List[UploadedFile]) -> "ValidationOutcome":
        return cls(error=error, received=received)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def discarded(self) -> List[UploadedFile]:
        return [f for f in self.received if f.state == FileState.DISCARDED]

    def get(self, field_name: str) -> List[UploadedFile]:
        """Files for *field_name*; empty when rejected or absent."""
        if self.files is None:
            return []
        return list(self.files.get(field_name, []))
