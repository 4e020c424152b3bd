#!/usr/bin/env python3
"""Summary, redaction and settings models.

These models define the contract between the heuristic path, the LLM
providers and the agent that publishes the result.
"""
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, confloat, conint

SummarySource = Literal["heuristic", "llm"]


class _FrozenModel(BaseModel):
	model_config = ConfigDict(frozen=True, extra="forbid")


class SummaryResult(_FrozenModel):
	"""Final title/body pair; exactly one is published per run."""

	title: str = Field(..., max_length=72)
	body: str
	source: SummarySource = "heuristic"


class RedactionOutcome(_FrozenModel):
	redacted_text: Optional[str] = None
	match_count: conint(ge=0) = 0


class LLMSettings(_FrozenModel):
	"""Remote summarization settings."""

	provider: str = "openai"
	model: str = "gpt-4o-mini"
	temperature: confloat(ge=0.0, le=2.0) = 0.2
	timeout_ms: conint(gt=0) = 20000
	max_files: conint(ge=1) = 30
	endpoint: Optional[str] = None
	api_version: Optional[str] = None
	deployment: Optional[str] = None
	region: Optional[str] = None

	@property
	def timeout_s(self) -> float:
		return self.timeout_ms / 1000.0


class ActionInputs(_FrozenModel):
	"""Caller-supplied settings before repository overrides are applied."""

	update_title: bool = True
	update_body: bool = True
	max_files: conint(ge=1) = 60
	ignore: str = ""
	use_llm: bool = False
	config_path: str = ".github/pr-summarizer.yml"
	llm: LLMSettings = Field(default_factory=LLMSettings)
