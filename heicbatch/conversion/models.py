"""Conversion task and outcome models."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from heicbatch.config import HEIC_INPUT_EXTENSIONS, JPEG_INPUT_EXTENSIONS, TARGET_EXTENSIONS


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TargetFormat(str, Enum):
    HEIC = "heic"
    JPEG = "jpeg"

    @classmethod
    def from_name(cls, name: str) -> "TargetFormat":
        """Parse a user-supplied format selector ("heic", "jpeg", "jpg")."""
        key = (name or "").strip().lower()
        if key == "jpg":
            key = "jpeg"
        return cls(key)

    @property
    def extension(self) -> str:
        return TARGET_EXTENSIONS[self.value]

    @property
    def input_extensions(self) -> set[str]:
        if self is TargetFormat.JPEG:
            return JPEG_INPUT_EXTENSIONS
        return HEIC_INPUT_EXTENSIONS


class FailureKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    DISK_FULL = "disk_full"
    CORRUPT_INPUT = "corrupt_input"
    FINALIZE_FAILED = "finalize_failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Task:
    """One file to convert. Immutable once the task list is built."""

    index: int
    source_path: Path
    final_output_path: Path


@dataclass(frozen=True)
class ConversionOutcome:
    status: TaskStatus
    kind: Optional[FailureKind] = None
    detail: str = ""
    raw_code: Optional[str] = None

    @classmethod
    def success(cls) -> "ConversionOutcome":
        return cls(status=TaskStatus.SUCCEEDED)

    @classmethod
    def failure(cls, kind: FailureKind, detail: str = "", raw_code: Optional[str] = None) -> "ConversionOutcome":
        return cls(status=TaskStatus.FAILED, kind=kind, detail=detail, raw_code=raw_code)

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.SUCCEEDED

    @property
    def label(self) -> str:
        """Human-readable status used on progress lines."""
        if self.succeeded:
            return "OK"
        if self.kind == FailureKind.PERMISSION_DENIED:
            return "FAILED (Permission Denied)"
        if self.kind == FailureKind.DISK_FULL:
            return "FAILED (Disk Full)"
        if self.kind == FailureKind.CORRUPT_INPUT:
            return "FAILED (Corrupt Input File)"
        if self.kind == FailureKind.FINALIZE_FAILED:
            return f"FAILED (Finalize Error: {self.detail})"
        return f"FAILED (Code: {self.raw_code or 'unknown'})"
