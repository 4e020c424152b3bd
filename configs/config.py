import os
from typing import Dict, Any, Mapping, Optional

from utils.summary_models import ActionInputs, LLMSettings


def _first_env(*names: str) -> Optional[str]:
	for name in names:
		value = os.getenv(name)
		if value:
			return value
	return None


class Config:
	"""Static settings for the PR summarizer."""

	# GitHub REST configuration
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	GITHUB_TOKEN = _first_env("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT")
	GITHUB_API_VERSION = "2022-11-28"
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))

	# Repository-level config file
	REPO_CONFIG_PATH = os.getenv("PR_SUMMARIZER_CONFIG", ".github/pr-summarizer.yml")

	# Defaults for action inputs
	DEFAULT_MAX_FILES = 60
	DEFAULT_LLM_PROVIDER = "openai"
	DEFAULT_LLM_MODELS = {
		"openai": "gpt-4o-mini",
		"azure": "gpt-4o-mini",
		"anthropic": "claude-3-5-haiku-latest",
		"bedrock": "anthropic.claude-3-haiku-20240307-v1:0",
	}
	DEFAULT_LLM_TEMPERATURE = 0.2
	DEFAULT_LLM_TIMEOUT_MS = 20000
	DEFAULT_LLM_MAX_FILES = 30
	DEFAULT_USE_LLM = bool(int(os.getenv("PR_SUMMARIZER_USE_LLM", "0")))

	# Summary shape
	TITLE_MAX_CHARS = 72
	TITLE_HINT_FILES = 3
	HIGHLIGHTS_MAX_FILES = 12
	PATCH_CHAR_BUDGET = int(os.getenv("PATCH_CHAR_BUDGET", "3000"))
	LLM_MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "800"))
	# Hard cap on streamed LLM response bodies
	LLM_MAX_RESPONSE_BYTES = 2 * 1024 * 1024

	# Redaction
	REDACTION_PLACEHOLDER = "[REDACTED]"

	# Provider credentials, first non-empty variable wins
	LLM_KEY_ENV = {
		"openai": ("OPENAI_API_KEY", "LLM_API_KEY"),
		"azure": ("AZURE_OPENAI_API_KEY", "AZURE_OPENAI_KEY", "LLM_API_KEY"),
		"anthropic": ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY", "LLM_API_KEY"),
	}

	# Provider endpoints
	OPENAI_ENDPOINT = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip('/')
	ANTHROPIC_ENDPOINT = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1").rstrip('/')
	ANTHROPIC_VERSION = "2023-06-01"
	AZURE_OPENAI_ENDPOINT = os.getenv("AZURE_OPENAI_ENDPOINT", "")
	AZURE_OPENAI_API_VERSION = os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN or _first_env("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT"),
			"timeout_s": cls.HTTP_TIMEOUT_S,
			"api_version": cls.GITHUB_API_VERSION,
		}


# --- Action inputs ---

def _raw_input(environ: Mapping[str, str], name: str) -> Optional[str]:
	# Actions exports inputs as INPUT_<NAME> with hyphens preserved
	upper = name.upper()
	for key in (f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}"):
		value = environ.get(key)
		if value is not None and value.strip() != "":
			return value.strip()
	return None


def _bool_input(environ: Mapping[str, str], name: str, default: bool) -> bool:
	raw = _raw_input(environ, name)
	if raw is None:
		return default
	low = raw.lower()
	if low in ("true", "1", "yes", "on"):
		return True
	if low in ("false", "0", "no", "off"):
		return False
	raise ValueError(f"Input '{name}' must be a boolean, got '{raw}'")


def _int_input(environ: Mapping[str, str], name: str, default: int) -> int:
	raw = _raw_input(environ, name)
	if raw is None:
		return default
	try:
		return int(raw, 10)
	except ValueError:
		raise ValueError(f"Input '{name}' must be an integer, got '{raw}'")


def _float_input(environ: Mapping[str, str], name: str, default: float) -> float:
	raw = _raw_input(environ, name)
	if raw is None:
		return default
	try:
		return float(raw)
	except ValueError:
		raise ValueError(f"Input '{name}' must be a number, got '{raw}'")


def read_action_inputs(environ: Optional[Mapping[str, str]] = None) -> ActionInputs:
	"""Read caller-supplied settings from the workflow environment.

	Args:
		environ: Environment mapping (defaults to os.environ)

	Returns:
		ActionInputs with defaults applied for anything unset

	Raises:
		ValueError: If an input cannot be coerced to its type
	"""
	env = os.environ if environ is None else environ
	provider = (_raw_input(env, "llm-provider") or Config.DEFAULT_LLM_PROVIDER).lower()
	endpoint = _raw_input(env, "llm-endpoint")
	if endpoint is None and provider == "azure":
		endpoint = Config.AZURE_OPENAI_ENDPOINT or None
	llm = LLMSettings(
		provider=provider,
		model=_raw_input(env, "llm-model") or Config.DEFAULT_LLM_MODELS.get(provider, "gpt-4o-mini"),
		temperature=_float_input(env, "llm-temperature", Config.DEFAULT_LLM_TEMPERATURE),
		timeout_ms=_int_input(env, "llm-timeout-ms", Config.DEFAULT_LLM_TIMEOUT_MS),
		max_files=_int_input(env, "llm-max-files", Config.DEFAULT_LLM_MAX_FILES),
		endpoint=endpoint,
		api_version=_raw_input(env, "llm-api-version") or (Config.AZURE_OPENAI_API_VERSION if provider == "azure" else None),
		deployment=_raw_input(env, "llm-deployment"),
		region=_raw_input(env, "llm-region") or Config.AWS_REGION,
	)
	return ActionInputs(
		update_title=_bool_input(env, "update-title", True),
		update_body=_bool_input(env, "update-body", True),
		max_files=_int_input(env, "max-files", Config.DEFAULT_MAX_FILES),
		ignore=_raw_input(env, "ignore") or "",
		use_llm=_bool_input(env, "use-llm", Config.DEFAULT_USE_LLM),
		config_path=_raw_input(env, "config-path") or Config.REPO_CONFIG_PATH,
		llm=llm,
	)
