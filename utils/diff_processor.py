#!/usr/bin/env python3
"""Diff analysis for summary generation.

Counts added/removed lines per patch, classifies the overall change type from
file names, derives the dominant scope, and turns a raw file list into a
filtered, capped ChangeSet.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import List, Optional, Sequence

from utils.diff_models import ChangedFile, ChangeSet, ChangeType, LineCounts
from utils.path_filter import CompiledMatcher, matches
from configs.config import Config

logger = logging.getLogger(__name__)

_HEADER_PREFIXES = ("+++", "---", "@@")

_DOCS_RE = re.compile(r"(^|/)docs?/", re.IGNORECASE)
_README_RE = re.compile(r"README\.md$", re.IGNORECASE)
_TEST_RE = re.compile(r"test|spec|_test\.(js|ts|go|py)$", re.IGNORECASE)
_FIX_RE = re.compile(r"fix|hotfix|bug", re.IGNORECASE)

_CORE_SEGMENTS = {"src", "pkg", "lib"}


def count_lines(patch: Optional[str]) -> LineCounts:
    if not patch:
        return LineCounts()
    added = 0
    deleted = 0
    for line in patch.split("\n"):
        # File headers and hunk markers start with +/- too
        if line.startswith(_HEADER_PREFIXES):
            continue
        if line.startswith("+"):
            added += 1
        elif line.startswith("-"):
            deleted += 1
    return LineCounts(added=added, deleted=deleted)


def count_change_set(files: Sequence[ChangedFile]) -> LineCounts:
    total = LineCounts()
    for f in files:
        total = total + count_lines(f.patch)
    return total


def infer_change_type(files: Sequence[ChangedFile]) -> ChangeType:
    names = [f.path for f in files]
    if any(_DOCS_RE.search(n) or _README_RE.search(n) for n in names):
        return "docs"
    if any(_TEST_RE.search(n) for n in names):
        return "test"
    if any(_FIX_RE.search(n) for n in names):
        return "fix"
    return "feat"


def infer_scope(files: Sequence[ChangedFile]) -> str:
    counts: Counter = Counter()
    for f in files:
        top = f.path.split("/")[0] or "root"
        if top in _CORE_SEGMENTS:
            top = "core"
        counts[top] += 1
    if not counts:
        return "core"
    # most_common keeps insertion order among equal counts
    return counts.most_common(1)[0][0]


class DiffProcessor:
    def __init__(self, *, ignore: CompiledMatcher = (), max_files: Optional[int] = None) -> None:
        self.ignore = ignore
        self.max_files = max_files if max_files is not None else Config.DEFAULT_MAX_FILES
        if self.max_files < 1:
            raise ValueError("max_files must be at least 1")

    def process(self, files: Sequence[ChangedFile]) -> ChangeSet:
        diagnostics: List[str] = []
        kept = [f for f in files if not matches(f.path, self.ignore)]
        ignored = len(files) - len(kept)
        if ignored:
            diagnostics.append(f"ignored {ignored} file(s) by pattern")

        truncated = False
        total = len(kept)
        if total > self.max_files:
            diagnostics.append(f"file cap hit: {total} > {self.max_files}")
            kept = kept[: self.max_files]
            truncated = True

        change_set = ChangeSet(
            files=kept,
            total_files=total,
            ignored_files=ignored,
            truncated=truncated,
            diagnostics=diagnostics,
        )
        logger.info(
            f"Processed diff: files={len(kept)}, ignored={ignored}, truncated={truncated}"
        )
        return change_set
