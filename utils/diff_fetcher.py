#!/usr/bin/env python3
"""Diff sources: the GitHub compare API and local unified diffs.

Both produce an ordered list of ChangedFile. Raises DiffFetchError with typed
codes when the remote diff cannot be retrieved.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from clients.github_client import GithubApiError, GithubAuthError, GithubClient
from utils.diff_models import ChangedFile

logger = logging.getLogger(__name__)


class DiffFetchError(Exception):
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Exception | None = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


_DIFF_GIT_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$", flags=re.MULTILINE)


def to_changed_file(f: Dict[str, Any]) -> Optional[ChangedFile]:
    filename = f.get("filename") or ""
    if not filename:
        return None
    patch = f.get("patch")
    return ChangedFile(
        path=filename,
        status=f.get("status") or "modified",
        patch=str(patch) if patch else None,
        previous_path=f.get("previous_filename"),
    )


class DiffFetcher:
    def __init__(self, client: GithubClient) -> None:
        self.client = client

    def fetch(self, owner: str, repo: str, base_sha: str, head_sha: str) -> List[ChangedFile]:
        if not base_sha or not head_sha:
            raise DiffFetchError("Missing base/head SHA to compute diff", code="NOT_FOUND")
        try:
            files_json = self.client.compare(owner, repo, base_sha, head_sha)
        except GithubAuthError as e:
            raise DiffFetchError(f"Failed to compare revisions: {e}", code="UNAUTHORIZED", cause=e)
        except GithubApiError as e:
            code = "NOT_FOUND" if e.status == 404 else "UNKNOWN"
            raise DiffFetchError(f"Failed to compare revisions: {e}", code=code, cause=e)

        files: List[ChangedFile] = []
        for f in files_json:
            cf = to_changed_file(f)
            if cf is not None:
                files.append(cf)
        logger.info(f"Fetched {len(files)} changed files for {owner}/{repo}")
        return files


def _status_from_header(header: str) -> str:
    if re.search(r"^new file mode", header, flags=re.MULTILINE):
        return "added"
    if re.search(r"^deleted file mode", header, flags=re.MULTILINE):
        return "removed"
    if re.search(r"^rename from ", header, flags=re.MULTILINE):
        return "renamed"
    if re.search(r"^copy from ", header, flags=re.MULTILINE):
        return "copied"
    return "modified"


def parse_unified_diff(unified_text: str) -> List[ChangedFile]:
    """Split `git diff` output into per-file ChangedFile entries.

    The patch keeps everything from the first hunk marker on; files without
    hunks (binary, pure renames, mode changes) get no patch.
    """
    files: List[ChangedFile] = []
    if not unified_text:
        return files

    matches = list(_DIFF_GIT_RE.finditer(unified_text))
    for i, m in enumerate(matches):
        start = m.end()
        end = matches[i + 1].start() if i + 1 < len(matches) else len(unified_text)
        section = unified_text[start:end].strip("\n")
        old_path = m.group(1).strip()
        new_path = m.group(2).strip()

        hunk_at = re.search(r"^@@", section, flags=re.MULTILINE)
        header = section[: hunk_at.start()] if hunk_at else section
        patch = section[hunk_at.start():] if hunk_at else None
        status = _status_from_header(header)

        files.append(
            ChangedFile(
                path=old_path if status == "removed" else new_path,
                status=status,
                patch=patch or None,
                previous_path=old_path if status in ("renamed", "copied") else None,
            )
        )
    return files
