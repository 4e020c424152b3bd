#!/usr/bin/env python3
from __future__ import annotations

import re
from typing import List, Sequence

from utils.diff_models import ChangedFile
from utils.diff_processor import infer_change_type, infer_scope
from configs.config import Config

_HINT_PUNCT_RE = re.compile(r"[._-]")

CHECKLIST = (
	"- [ ] Tests added/updated",
	"- [ ] Docs updated",
	"- [ ] Breaking changes noted",
	"- [ ] Linked issue(s)",
)


def _hint(files: Sequence[ChangedFile]) -> str:
	names = [f.path.split("/")[-1] for f in files[: Config.TITLE_HINT_FILES]]
	return ", ".join(_HINT_PUNCT_RE.sub(" ", n) for n in names)


def build_title(files: Sequence[ChangedFile]) -> str:
	"""Conventional-Commit style title from file names, capped at 72 chars."""
	change_type = infer_change_type(files)
	scope = infer_scope(files)
	hint = _hint(files)
	tail = f"update {hint}" if hint else "update"
	return f"{change_type}({scope}): {tail}"[: Config.TITLE_MAX_CHARS]


def build_body(files: Sequence[ChangedFile], added: int, deleted: int) -> str:
	lines: List[str] = []
	lines.append("### Summary")
	lines.append(f"- Files changed: {len(files)}")
	lines.append(f"- Lines: +{added} / -{deleted}")
	lines.append("")
	lines.append("### Highlights")
	for f in files[: Config.HIGHLIGHTS_MAX_FILES]:
		lines.append(f"- {f.status.upper()} {f.path}")
	lines.append("")
	lines.append("### Checklist")
	lines.extend(CHECKLIST)
	return "\n".join(lines)

