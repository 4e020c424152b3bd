#!/usr/bin/env python3
"""Glob-based ignore rules for changed paths.

Patterns are matched segment by segment with fnmatch, so `*` and `?` never
cross a `/` while `**` spans any number of segments (including none). Leading
dots are not special: `*` matches `.env` the same way it matches `app.py`.
"""

from __future__ import annotations

import fnmatch
from typing import Iterable, List, Sequence, Tuple, Union

CompiledPattern = Tuple[str, ...]
CompiledMatcher = Tuple[CompiledPattern, ...]


def parse_ignore_csv(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Split a comma-separated (or list) ignore value into trimmed patterns."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else [str(p) for p in raw]
    return [p.strip() for p in items if p and p.strip()]


def compile_patterns(patterns: Union[str, Sequence[str], None]) -> CompiledMatcher:
    compiled: List[CompiledPattern] = []
    for pattern in parse_ignore_csv(patterns):
        # Collapse repeated globstars; they match the same paths
        segments: List[str] = []
        for seg in pattern.strip("/").split("/"):
            if seg == "**" and segments and segments[-1] == "**":
                continue
            segments.append(seg)
        compiled.append(tuple(segments))
    return tuple(compiled)


def _match_segments(parts: Sequence[str], segs: Sequence[str]) -> bool:
    if not segs:
        return not parts
    head = segs[0]
    if head == "**":
        rest = segs[1:]
        # ** consumes zero or more path segments
        return any(_match_segments(parts[i:], rest) for i in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatch.fnmatchcase(parts[0], head) and _match_segments(parts[1:], segs[1:])


def matches(path: str, matcher: CompiledMatcher) -> bool:
    """Return True if path satisfies any compiled pattern."""
    if not path or not matcher:
        return False
    parts = path.strip("/").split("/")
    return any(_match_segments(parts, segs) for segs in matcher)
