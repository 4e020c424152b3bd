#!/usr/bin/env python3
"""Pydantic models for diff data structures."""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field, field_validator

FileStatus = Literal[
    "added",
    "modified",
    "removed",
    "renamed",
    "copied",
    "changed",
    "unchanged",
    "other",
]

KNOWN_STATUSES = {"added", "modified", "removed", "renamed", "copied", "changed", "unchanged"}

ChangeType = Literal["docs", "test", "fix", "feat"]


class ChangedFile(BaseModel):
    """One file touched by the diff; patch is None for binary or oversized files."""

    path: str = Field(..., min_length=1)
    status: FileStatus = "modified"
    patch: Optional[str] = None
    previous_path: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if value is None:
            return "modified"
        low = str(value).strip().lower()
        return low if low in KNOWN_STATUSES else "other"

    @property
    def extension(self) -> str:
        name = self.path.rsplit("/", 1)[-1]
        if "." not in name:
            return ""
        return name.rsplit(".", 1)[-1]


class LineCounts(BaseModel):
    added: int = 0
    deleted: int = 0

    def __add__(self, other: "LineCounts") -> "LineCounts":
        return LineCounts(added=self.added + other.added, deleted=self.deleted + other.deleted)


class ChangeSet(BaseModel):
    """Filtered, capped file list considered for summarization."""

    files: List[ChangedFile] = Field(default_factory=list)
    total_files: int = 0
    ignored_files: int = 0
    truncated: bool = False
    diagnostics: List[str] = Field(default_factory=list)
