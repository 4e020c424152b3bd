#!/usr/bin/env python3
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from utils.diff_models import ChangedFile
from utils.pr_models import PRInfo
from configs.config import Config

NO_PATCH_PLACEHOLDER = "(no patch available: binary or too large)"

SYSTEM_PROMPT = (
	"You are an expert software engineer who writes pull request titles and descriptions.\n"
	"Rules:\n"
	"- Title: Conventional Commits style (type(scope): summary), at most 72 characters, no trailing period.\n"
	"- Description: Markdown with the sections '### Summary', '### Changes' and '### Notes'.\n"
	"- Base every statement on the diff; do not invent behaviour that is not shown.\n"
	"- Respond with strict JSON only, no prose and no code fences, shaped as:\n"
	'  {"title": "...", "description": "..."}'
)


def _truncate(text: str, budget: int) -> str:
	if len(text) <= budget:
		return text
	return text[:budget] + "\n... (truncated)"


def _file_block(idx: int, f: ChangedFile, budget: int) -> str:
	ext = f" ({f.extension})" if f.extension else ""
	header = f"### File {idx}: {f.status.upper()} {f.path}{ext}"
	body = _truncate(f.patch, budget) if f.patch else NO_PATCH_PLACEHOLDER
	return f"{header}\n{body}"


def build_prompt(
	files: Sequence[ChangedFile],
	max_files: int,
	added: int,
	deleted: int,
	*,
	repo: Optional[str] = None,
	pr: Optional[PRInfo] = None,
	patch_char_budget: Optional[int] = None,
) -> Tuple[str, Dict[str, Any]]:
	"""Build the user content for a remote summarization call.

	Returns the prompt text and meta info for logging.
	"""
	budget = patch_char_budget if patch_char_budget is not None else Config.PATCH_CHAR_BUDGET
	selected = list(files[: max(0, max_files)])
	truncated = len(files) > len(selected)

	lines: List[str] = []
	if repo:
		lines.append(f"Repository: {repo}")
	if pr is not None:
		lines.append(f"Pull request: #{pr.number} {pr.title}".rstrip())
		if pr.base_ref and pr.head_ref:
			lines.append(f"Branches: {pr.head_ref} -> {pr.base_ref}")
	lines.append(f"Files changed: {len(files)}")
	if truncated:
		lines.append(f"Truncated: yes, showing the first {len(selected)} files")
	else:
		lines.append("Truncated: no")
	lines.append(f"Lines: +{added} / -{deleted}")

	blocks = [_file_block(i, f, budget) for i, f in enumerate(selected, start=1)]
	prompt = "\n".join(lines) + "\n\n" + "\n\n".join(blocks)
	meta = {
		"repo": repo,
		"pr": pr.number if pr is not None else None,
		"files_in_prompt": len(selected),
		"truncated": truncated,
		"prompt_len": len(prompt),
	}
	return prompt, meta
