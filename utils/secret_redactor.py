#!/usr/bin/env python3
"""Secret redaction for patch text.

Patches are scrubbed before they are counted, logged or sent to a remote
model. Matchers run in a fixed order (built-ins, then user patterns) and every
match is replaced with a single placeholder.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Tuple

from utils.diff_models import ChangedFile
from utils.summary_models import RedactionOutcome
from configs.config import Config

logger = logging.getLogger(__name__)

PLACEHOLDER = Config.REDACTION_PLACEHOLDER
_PLACEHOLDER_RE = re.escape(PLACEHOLDER)

BUILTIN_PATTERNS: Tuple[Tuple[str, str, int], ...] = (
    ("github_token", r"\bgh[pousr]_[A-Za-z0-9]{36,}\b", 0),
    ("github_pat", r"\bgithub_pat_[A-Za-z0-9_]{22,}\b", 0),
    ("slack_token", r"\bxox[abposr]-[A-Za-z0-9-]{10,}", 0),
    ("sk_api_key", r"\bsk-(?:ant-|proj-)?[A-Za-z0-9_-]{20,}", 0),
    ("google_api_key", r"\bAIza[0-9A-Za-z_-]{35}", 0),
    ("aws_access_key_id", r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b", 0),
    (
        "private_key_block",
        r"-----BEGIN [A-Z0-9 ]*PRIVATE KEY-----[\s\S]*?-----END [A-Z0-9 ]*PRIVATE KEY-----",
        0,
    ),
    ("jwt", r"\beyJ[A-Za-z0-9_-]{5,}\.[A-Za-z0-9_-]{5,}\.[A-Za-z0-9_-]{5,}", 0),
    (
        "generic_assignment",
        r"\b[\w.-]*(?:secret|api[_-]?key|access[_-]?key|password|passwd|pwd|token)[\w.-]*"
        r"[\"']?\s*[:=]\s*(?!\s*[\"']?" + _PLACEHOLDER_RE + r")[\"']?[^\s\"',;]{6,}[\"']?",
        re.IGNORECASE,
    ),
)


def build_matchers(user_patterns: Optional[Sequence[str]] = None) -> List[re.Pattern[str]]:
    """Compile built-in matchers followed by user-supplied regex sources.

    Invalid user patterns are skipped with a warning.
    """
    matchers: List[re.Pattern[str]] = [re.compile(src, flags) for _, src, flags in BUILTIN_PATTERNS]
    for src in user_patterns or []:
        if not isinstance(src, str) or not src:
            continue
        try:
            matchers.append(re.compile(src))
        except re.error as e:
            logger.warning(f"Skipping invalid redaction pattern {src!r}: {e}")
    return matchers


def redact(patch: Optional[str], matchers: Sequence[re.Pattern[str]]) -> RedactionOutcome:
    if not patch:
        return RedactionOutcome(redacted_text=patch, match_count=0)
    text = patch
    total = 0
    for rx in matchers:
        text, n = rx.subn(PLACEHOLDER, text)
        total += n
    return RedactionOutcome(redacted_text=text, match_count=total)


def redact_files(files: Sequence[ChangedFile], matchers: Sequence[re.Pattern[str]]) -> int:
    """Redact every patch in place and return the aggregate match count."""
    total = 0
    for f in files:
        outcome = redact(f.patch, matchers)
        if outcome.match_count:
            f.patch = outcome.redacted_text
            total += outcome.match_count
    if total:
        logger.info(f"Redacted {total} secret-like match(es) across {len(files)} file(s)")
    return total
