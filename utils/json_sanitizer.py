#!/usr/bin/env python3
from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from utils.summary_models import SummaryResult
from configs.config import Config


class JSONSanitizerError(Exception):
	def __init__(self, message: str, code: str = "PARSE_ERROR") -> None:
		super().__init__(message)
		self.code = code


# --- Private helpers ---

def _strip_fences(text: str) -> str:
	# Only an outer fence pair; fences inside JSON strings are content
	text = re.sub(r"^```[\w-]*[ \t]*\n?", "", text)
	return re.sub(r"\n?```\s*$", "", text)


def _first_braced_span(text: str) -> str | None:
	first = text.find('{')
	last = text.rfind('}')
	if first == -1 or last <= first:
		return None
	return text[first:last+1]


def _clean_title(title: str) -> str:
	title = " ".join(title.split())
	title = title.rstrip(".").rstrip()
	return title[: Config.TITLE_MAX_CHARS].rstrip().rstrip(".")


# --- Public API ---

def extract_json_object(raw_text: str) -> Dict[str, Any]:
	"""Parse raw_text as JSON, then retry without an outer code fence, then on the first {...} span."""
	if not raw_text or not raw_text.strip():
		raise JSONSanitizerError("Empty model output")
	text = raw_text.strip()
	cands: List[str] = [text]
	unfenced = _strip_fences(text).strip()
	if unfenced != text:
		cands.append(unfenced)
	span = _first_braced_span(unfenced)
	if span and span not in cands:
		cands.append(span)
	last_error: Exception | None = None
	for cand in cands:
		try:
			data = json.loads(cand)
		except json.JSONDecodeError as e:
			last_error = e
			continue
		if isinstance(data, dict):
			return data
		last_error = JSONSanitizerError("JSON value is not an object")
	raise JSONSanitizerError(f"No JSON object in model output: {last_error}")


def parse_summary_response(raw_text: str) -> SummaryResult:
	data = extract_json_object(raw_text)
	title = data.get("title")
	description = data.get("description")
	if description is None:
		description = data.get("body")
	if not isinstance(title, str) or not title.strip():
		raise JSONSanitizerError("Model output has no usable title", code="INCOMPLETE")
	if not isinstance(description, str) or not description.strip():
		raise JSONSanitizerError("Model output has no usable description", code="INCOMPLETE")
	title = _clean_title(title)
	if not title:
		raise JSONSanitizerError("Model title is empty after cleanup", code="INCOMPLETE")
	return SummaryResult(title=title, body=description.strip(), source="llm")
