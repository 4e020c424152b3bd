#!/usr/bin/env python3
"""Remote summarization providers.

Each provider sends one request built from the shared system instruction and
the prompt text, extracts the model's text from its own response envelope,
and parses it into a SummaryResult. Every runtime failure is raised as
LLMProviderError; misconfiguration is raised as LLMConfigError before any
network traffic.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

import boto3
import requests
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
	BotoCoreError,
	ClientError,
	ConnectTimeoutError,
	EndpointConnectionError,
	ReadTimeoutError,
)
from langsmith.run_helpers import traceable

from configs.config import Config
from utils.json_sanitizer import JSONSanitizerError, parse_summary_response
from utils.prompt_builder import SYSTEM_PROMPT
from utils.summary_models import LLMSettings, SummaryResult

logger = logging.getLogger(__name__)


class LLMConfigError(Exception):
	"""Provider cannot be used as configured (unknown name, missing credential)."""


class UnsupportedProviderError(LLMConfigError):
	"""The llm-provider input names no known provider."""


class LLMProviderError(Exception):
	"""A provider attempt failed; `.code` says how."""
	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code


class SummaryProvider:
	name = ""

	def __init__(self, settings: LLMSettings) -> None:
		self.settings = settings
		self.timeout_s = settings.timeout_s

	def complete(self, prompt: str) -> str:
		raise NotImplementedError

	def _timed_out(self) -> LLMProviderError:
		return LLMProviderError(f"{self.name}: timed out after {self.settings.timeout_ms}ms", code="TIMEOUT")

	def _abort(self) -> None:
		"""Release transport resources once the deadline has passed."""

	def _within_deadline(self, fn: Callable[..., Any], *args: Any) -> Any:
		"""Run fn on a daemon worker and give up after the configured timeout.

		Client timeouts bound each socket read, not the whole exchange.
		"""
		box: Dict[str, Any] = {}

		def target() -> None:
			try:
				box["result"] = fn(*args)
			except Exception as e:
				box["error"] = e

		worker = threading.Thread(target=target, name=f"{self.name}-summary", daemon=True)
		worker.start()
		worker.join(self.timeout_s)
		if worker.is_alive():
			self._abort()
			raise self._timed_out()
		if "error" in box:
			raise box["error"]
		return box["result"]

	def summarize(self, prompt: str) -> SummaryResult:
		raw = self.complete(prompt)
		try:
			return parse_summary_response(raw)
		except JSONSanitizerError as e:
			raise LLMProviderError(f"{self.name}: {e}", code=e.code) from e


class HTTPSummaryProvider(SummaryProvider):
	"""Provider reached with a single JSON POST through requests."""

	def __init__(self, settings: LLMSettings, api_key: str, session: Optional[requests.Session] = None) -> None:
		super().__init__(settings)
		self.api_key = api_key
		self.session = session or requests.Session()
		self._response: Optional[requests.Response] = None

	def url(self) -> str:
		raise NotImplementedError

	def headers(self) -> Dict[str, str]:
		raise NotImplementedError

	def payload(self, prompt: str) -> Dict[str, Any]:
		raise NotImplementedError

	def extract_text(self, data: Dict[str, Any]) -> str:
		raise NotImplementedError

	def _read_body(self, resp: requests.Response, deadline: float) -> bytes:
		chunks = []
		size = 0
		for chunk in resp.iter_content(chunk_size=8192):
			if time.monotonic() > deadline:
				raise self._timed_out()
			size += len(chunk)
			if size > Config.LLM_MAX_RESPONSE_BYTES:
				raise LLMProviderError(f"{self.name}: response too large", code="PARSE_ERROR")
			chunks.append(chunk)
		return b"".join(chunks)

	def _exchange(self, prompt: str, deadline: float) -> Tuple[int, bytes]:
		resp = None
		try:
			resp = self.session.post(
				self.url(),
				headers={"Content-Type": "application/json", **self.headers()},
				data=json.dumps(self.payload(prompt)),
				timeout=(self.timeout_s, self.timeout_s),
				stream=True,
			)
			self._response = resp
			return resp.status_code, self._read_body(resp, deadline)
		except requests.Timeout as e:
			raise self._timed_out() from e
		except requests.RequestException as e:
			raise LLMProviderError(f"{self.name}: network error: {e}", code="NETWORK") from e
		finally:
			if resp is not None:
				resp.close()

	def _abort(self) -> None:
		if self._response is not None:
			self._response.close()
		self.session.close()

	def complete(self, prompt: str) -> str:
		deadline = time.monotonic() + self.timeout_s
		status, raw = self._within_deadline(self._exchange, prompt, deadline)
		if status < 200 or status >= 300:
			snippet = raw[:200].decode("utf-8", errors="replace")
			raise LLMProviderError(f"{self.name}: HTTP {status}: {snippet}", code="HTTP_ERROR")
		try:
			data = json.loads(raw.decode("utf-8", errors="replace"))
			text = self.extract_text(data)
		except (ValueError, KeyError, IndexError, TypeError) as e:
			raise LLMProviderError(f"{self.name}: unexpected response envelope: {e}", code="PARSE_ERROR") from e
		if not isinstance(text, str) or not text.strip():
			raise LLMProviderError(f"{self.name}: empty text content in response", code="PARSE_ERROR")
		return text


class OpenAIProvider(HTTPSummaryProvider):
	name = "openai"

	def url(self) -> str:
		base = (self.settings.endpoint or Config.OPENAI_ENDPOINT).rstrip("/")
		return f"{base}/chat/completions"

	def headers(self) -> Dict[str, str]:
		return {"Authorization": f"Bearer {self.api_key}"}

	def payload(self, prompt: str) -> Dict[str, Any]:
		return {
			"model": self.settings.model,
			"temperature": self.settings.temperature,
			"messages": [
				{"role": "system", "content": SYSTEM_PROMPT},
				{"role": "user", "content": prompt},
			],
		}

	def extract_text(self, data: Dict[str, Any]) -> str:
		return data["choices"][0]["message"]["content"]


class AzureOpenAIProvider(OpenAIProvider):
	name = "azure"

	def __init__(self, settings: LLMSettings, api_key: str, session: Optional[requests.Session] = None) -> None:
		if not settings.endpoint:
			raise LLMConfigError("Azure OpenAI requires an endpoint (llm-endpoint or AZURE_OPENAI_ENDPOINT)")
		super().__init__(settings, api_key, session)
		self.deployment = settings.deployment or settings.model

	def url(self) -> str:
		base = self.settings.endpoint.rstrip("/")
		version = self.settings.api_version or Config.AZURE_OPENAI_API_VERSION
		return f"{base}/openai/deployments/{self.deployment}/chat/completions?api-version={version}"

	def headers(self) -> Dict[str, str]:
		return {"api-key": self.api_key}


class AnthropicProvider(HTTPSummaryProvider):
	name = "anthropic"

	def url(self) -> str:
		base = (self.settings.endpoint or Config.ANTHROPIC_ENDPOINT).rstrip("/")
		return f"{base}/messages"

	def headers(self) -> Dict[str, str]:
		return {
			"x-api-key": self.api_key,
			"anthropic-version": self.settings.api_version or Config.ANTHROPIC_VERSION,
		}

	def payload(self, prompt: str) -> Dict[str, Any]:
		return {
			"model": self.settings.model,
			"max_tokens": Config.LLM_MAX_OUTPUT_TOKENS,
			"temperature": self.settings.temperature,
			"system": SYSTEM_PROMPT,
			"messages": [{"role": "user", "content": prompt}],
		}

	def extract_text(self, data: Dict[str, Any]) -> str:
		return data["content"][0]["text"]


class BedrockProvider(SummaryProvider):
	"""Anthropic models on AWS Bedrock; credentials come from the AWS chain."""

	name = "bedrock"

	def __init__(self, settings: LLMSettings, client: Any = None) -> None:
		super().__init__(settings)
		self.region = settings.region or Config.AWS_REGION
		if client is None:
			session = boto3.Session(region_name=self.region)
			if session.get_credentials() is None:
				raise LLMConfigError("No AWS credentials found for the bedrock provider")
			boto_cfg = BotoConfig(
				connect_timeout=self.timeout_s,
				read_timeout=self.timeout_s,
				retries={"total_max_attempts": 1, "mode": "standard"},
			)
			client = session.client("bedrock-runtime", config=boto_cfg)
		self._runtime = client

	def _invoke(self, body: bytes) -> Any:
		try:
			response = self._runtime.invoke_model(
				modelId=self.settings.model,
				contentType="application/json",
				accept="application/json",
				body=body,
			)
			payload = response.get("body")
			return payload.read() if hasattr(payload, "read") else payload
		except (ReadTimeoutError, ConnectTimeoutError) as e:
			raise LLMProviderError(f"bedrock: timed out: {e}", code="TIMEOUT") from e
		except EndpointConnectionError as e:
			raise LLMProviderError(f"bedrock: network error: {e}", code="NETWORK") from e
		except ClientError as e:
			err = e.response.get("Error", {}) if hasattr(e, "response") else {}
			raise LLMProviderError(f"bedrock: {err.get('Code', 'ClientError')}: {err.get('Message', e)}", code="HTTP_ERROR") from e
		except BotoCoreError as e:
			raise LLMProviderError(f"bedrock: {e}", code="NETWORK") from e

	def complete(self, prompt: str) -> str:
		body = {
			"anthropic_version": "bedrock-2023-05-31",
			"max_tokens": Config.LLM_MAX_OUTPUT_TOKENS,
			"temperature": self.settings.temperature,
			"system": SYSTEM_PROMPT,
			"messages": [
				{"role": "user", "content": [{"type": "text", "text": prompt}]}
			],
		}
		raw = self._within_deadline(self._invoke, json.dumps(body).encode("utf-8"))
		try:
			data = json.loads(raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw)
			text = data["content"][0]["text"]
		except (ValueError, KeyError, IndexError, TypeError) as e:
			raise LLMProviderError(f"bedrock: unexpected response envelope: {e}", code="PARSE_ERROR") from e
		if not isinstance(text, str) or not text.strip():
			raise LLMProviderError("bedrock: empty text content in response", code="PARSE_ERROR")
		return text


HTTP_PROVIDERS: Dict[str, Type[HTTPSummaryProvider]] = {
	"openai": OpenAIProvider,
	"azure": AzureOpenAIProvider,
	"anthropic": AnthropicProvider,
}

SUPPORTED_PROVIDERS = tuple(HTTP_PROVIDERS) + ("bedrock",)


def resolve_api_key(provider: str, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
	env = os.environ if environ is None else environ
	for name in Config.LLM_KEY_ENV.get(provider, ()):
		value = env.get(name)
		if value:
			return value
	return None


def build_provider(
	settings: LLMSettings,
	*,
	environ: Optional[Mapping[str, str]] = None,
	session: Optional[requests.Session] = None,
	bedrock_client: Any = None,
) -> SummaryProvider:
	"""Select and configure the provider named in settings.

	Raises:
		UnsupportedProviderError: Unknown provider name
		LLMConfigError: Missing credential or endpoint
	"""
	name = (settings.provider or "").strip().lower()
	if name not in SUPPORTED_PROVIDERS:
		raise UnsupportedProviderError(
			f"Unsupported llm-provider '{settings.provider}' (expected one of: {', '.join(SUPPORTED_PROVIDERS)})"
		)
	if name == "bedrock":
		return BedrockProvider(settings, client=bedrock_client)
	api_key = resolve_api_key(name, environ)
	if not api_key:
		expected = " or ".join(Config.LLM_KEY_ENV[name])
		raise LLMConfigError(f"Missing API key for llm-provider '{name}' (set {expected})")
	return HTTP_PROVIDERS[name](settings, api_key, session)


@traceable(name="pr_summary_llm", run_type="llm")
def dispatch_summary(provider: SummaryProvider, prompt: str) -> SummaryResult:
	logger.info(f"Requesting summary from {provider.name} (model={provider.settings.model}, timeout={provider.settings.timeout_ms}ms)")
	t0 = time.perf_counter()
	result = provider.summarize(prompt)
	logger.info(f"{provider.name} summary received in {time.perf_counter() - t0:.2f}s")
	return result
