#!/usr/bin/env python3
"""PR summary agent.

Drafts a pull request title and description from the PR diff: filters and
caps the changed files, redacts secrets, computes a heuristic summary and,
when enabled, asks an LLM provider for a better one, falling back to the
heuristic result on any provider failure.
"""

import json
import logging
import sys
import os
from typing import Any, Callable, Mapping, Optional, Sequence

from dotenv import load_dotenv

from clients.github_client import GithubApiError, GithubAuthError, GithubClient
from clients.llm_providers import (
	LLMConfigError,
	LLMProviderError,
	SummaryProvider,
	UnsupportedProviderError,
	build_provider,
	dispatch_summary,
)
from configs.config import Config, read_action_inputs
from configs.repo_config import EffectiveConfig, RepoConfigLoader, load_local_config, merge_config
from utils.action_io import EventContextError, load_event, pull_request_from_event, set_failed, set_output
from utils.diff_fetcher import DiffFetchError, DiffFetcher, parse_unified_diff
from utils.diff_models import ChangedFile, ChangeSet, LineCounts
from utils.diff_processor import DiffProcessor, count_change_set
from utils.heuristic_summary import build_body, build_title
from utils.path_filter import compile_patterns
from utils.pr_models import PRInfo, RepoRef
from utils.prompt_builder import build_prompt
from utils.secret_redactor import build_matchers, redact_files
from utils.summary_models import ActionInputs, SummaryResult

# Set up logging
logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., SummaryProvider]


class PRSummaryAgent:
	"""Agent that turns a PR diff into a title/body pair."""

	def __init__(
		self,
		inputs: ActionInputs,
		*,
		github_client: Optional[GithubClient] = None,
		environ: Optional[Mapping[str, str]] = None,
		provider_factory: ProviderFactory = build_provider,
	):
		"""Initialize the agent.

		Args:
			inputs: Caller-supplied settings
			github_client: GitHub client; only needed by run()
			environ: Environment used to resolve provider credentials
			provider_factory: Builds the LLM provider from LLMSettings
		"""
		self.inputs = inputs
		self.github_client = github_client
		self.environ = os.environ if environ is None else environ
		self.provider_factory = provider_factory

	def summarize_files(
		self,
		files: Sequence[ChangedFile],
		config: EffectiveConfig,
		*,
		repo: Optional[str] = None,
		pr: Optional[PRInfo] = None,
	) -> SummaryResult:
		"""Run the diff-to-summary pipeline on an already fetched file list."""
		processor = DiffProcessor(ignore=compile_patterns(config.ignore_patterns), max_files=config.max_files)
		change_set = processor.process(files)

		if config.redaction_enabled:
			matchers = build_matchers(config.extra_redaction_patterns)
			redact_files(change_set.files, matchers)
		else:
			logger.info("Redaction disabled by repository config")

		counts = count_change_set(change_set.files)
		heuristic = SummaryResult(
			title=build_title(change_set.files),
			body=build_body(change_set.files, counts.added, counts.deleted),
			source="heuristic",
		)
		logger.debug(f"Heuristic title: {heuristic.title}")

		if not self.inputs.use_llm:
			return heuristic
		return self._try_llm(change_set, counts, heuristic, repo=repo, pr=pr)

	def _try_llm(
		self,
		change_set: ChangeSet,
		counts: LineCounts,
		heuristic: SummaryResult,
		*,
		repo: Optional[str],
		pr: Optional[PRInfo],
	) -> SummaryResult:
		"""Attempt remote summarization; any failure returns the heuristic result.

		An unknown provider name is an input error and propagates.
		"""
		settings = self.inputs.llm
		try:
			provider = self.provider_factory(settings, environ=self.environ)
			prompt, meta = build_prompt(
				change_set.files, settings.max_files, counts.added, counts.deleted, repo=repo, pr=pr
			)
			logger.debug(f"LLM prompt meta: {meta}")
			result = dispatch_summary(provider, prompt)
		except UnsupportedProviderError:
			raise
		except LLMConfigError as e:
			logger.warning(f"LLM disabled for this run: {e}; using heuristic summary")
			return heuristic
		except LLMProviderError as e:
			logger.info(f"LLM summary failed ({e.code}): {e}; using heuristic summary")
			return heuristic
		logger.info(f"Using LLM summary from {settings.provider}")
		return result

	def load_effective_config(self, repo: RepoRef, ref: str) -> EffectiveConfig:
		file_config = None
		if self.github_client is not None and self.inputs.config_path:
			loader = RepoConfigLoader(self.github_client)
			file_config = loader.load(repo.owner, repo.name, self.inputs.config_path, ref)
		return merge_config(self.inputs, file_config)

	def run(self, repo: RepoRef, pr: PRInfo, *, dry_run: bool = False) -> SummaryResult:
		"""Summarize a pull request and update it as configured.

		Raises:
			DiffFetchError: If the diff cannot be fetched
			GithubApiError: If the PR update fails
		"""
		if self.github_client is None:
			raise GithubAuthError("GitHub client is required to summarize a pull request")
		config = self.load_effective_config(repo, pr.head_sha)

		files = DiffFetcher(self.github_client).fetch(repo.owner, repo.name, pr.base_sha, pr.head_sha)
		result = self.summarize_files(files, config, repo=repo.full_name, pr=pr)

		if dry_run:
			logger.info("Dry run: not updating the pull request")
		elif config.update_title or config.update_body:
			self.github_client.update_pull_request(
				repo.owner,
				repo.name,
				pr.number,
				title=result.title if config.update_title else None,
				body=result.body if config.update_body else None,
			)
		logger.info(f"Title: {result.title}")
		logger.info(f"Body (first 120 chars): {result.body[:120]}...")
		return result

	def close(self) -> None:
		if self.github_client:
			self.github_client.close()


def _apply_cli_overrides(inputs: ActionInputs, args: Any) -> ActionInputs:
	llm_updates = {}
	if getattr(args, "provider", None):
		llm_updates["provider"] = args.provider.lower()
	if getattr(args, "model", None):
		llm_updates["model"] = args.model
	updates = {}
	if llm_updates:
		updates["llm"] = inputs.llm.model_copy(update=llm_updates)
	if getattr(args, "use_llm", None) is not None:
		updates["use_llm"] = args.use_llm
	return inputs.model_copy(update=updates) if updates else inputs


def _emit(result: SummaryResult, as_json: bool) -> None:
	if as_json:
		print(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
	else:
		print(result.title)
		print()
		print(result.body)


def _run_action(args: Any, inputs: ActionInputs) -> int:
	event = load_event()
	pr = PRInfo.from_api(pull_request_from_event(event))
	repo_name = os.getenv("GITHUB_REPOSITORY") or ((event.get("repository") or {}).get("full_name") or "")
	repo = RepoRef.parse(repo_name)

	token = Config.get_github_config()["token"]
	if not token:
		set_failed("Missing GITHUB_TOKEN in env (provided automatically by GitHub).")
		return 1

	agent = PRSummaryAgent(inputs, github_client=GithubClient(token))
	try:
		result = agent.run(repo, pr, dry_run=args.dry_run)
	finally:
		agent.close()

	set_output("title", result.title)
	set_output("body", result.body)
	if args.json:
		_emit(result, as_json=True)
	return 0


def _run_local(args: Any, inputs: ActionInputs) -> int:
	if args.diff_file == "-":
		diff_text = sys.stdin.read()
	else:
		with open(args.diff_file, "r", encoding="utf-8", errors="replace") as f:
			diff_text = f.read()

	file_config = load_local_config(args.config) if args.config else None

	agent = PRSummaryAgent(inputs)
	result = agent.summarize_files(parse_unified_diff(diff_text), merge_config(inputs, file_config))
	_emit(result, as_json=args.json)
	return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
	"""CLI entry point for the PR summary agent."""
	import argparse

	parser = argparse.ArgumentParser(
		description="PR Summarizer - Draft a pull request title and description from its diff",
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""
Examples:
  python -m agents.pr_summary_agent run
  python -m agents.pr_summary_agent run --dry-run --use-llm --provider anthropic
  git diff main... | python -m agents.pr_summary_agent summarize-diff --diff-file - --json
		"""
	)

	def add_common(p):
		p.add_argument("--json", action="store_true", help="Print the result as JSON")
		p.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
		p.add_argument("--use-llm", dest="use_llm", action="store_true", default=None)
		p.add_argument("--no-llm", dest="use_llm", action="store_false")
		p.add_argument("--provider", help="LLM provider (openai, azure, anthropic, bedrock)")
		p.add_argument("--model", help="LLM model or deployment name")

	sub = parser.add_subparsers(dest="command")
	run = sub.add_parser("run", help="Summarize the pull request of the current workflow event")
	add_common(run)
	run.add_argument("--dry-run", action="store_true", help="Compute outputs without updating the PR")

	local = sub.add_parser("summarize-diff", help="Summarize a local unified diff")
	add_common(local)
	local.add_argument("--diff-file", required=True, help="Path to a git diff, or - for stdin")
	local.add_argument("--config", help="Optional local YAML config with repository overrides")

	argv = list(sys.argv[1:] if argv is None else argv)
	# `run` is the default command
	if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
		argv = ["run", *argv]
	args = parser.parse_args(argv)

	load_dotenv()

	# Set up logging
	log_level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(
		level=log_level,
		format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
	)

	# Suppress verbose logs from libraries unless in debug mode
	if not args.verbose:
		logging.getLogger("urllib3").setLevel(logging.WARNING)
		logging.getLogger("botocore").setLevel(logging.WARNING)
		logging.getLogger("langsmith").setLevel(logging.WARNING)

	try:
		inputs = _apply_cli_overrides(read_action_inputs(), args)
		if args.command == "summarize-diff":
			return _run_local(args, inputs)
		return _run_action(args, inputs)

	except EventContextError as e:
		set_failed(str(e))
		return 1

	except DiffFetchError as e:
		set_failed(f"Failed to fetch the pull request diff ({e.code}): {e}")
		if args.verbose:
			logger.exception("Detailed error information:")
		return 1

	except (GithubAuthError, GithubApiError) as e:
		set_failed(f"GitHub API error: {e}")
		if args.verbose:
			logger.exception("Detailed error information:")
		return 1

	except LLMConfigError as e:
		set_failed(f"Invalid LLM configuration: {e}")
		return 1

	except KeyboardInterrupt:
		print("\nOperation cancelled by user", file=sys.stderr)
		return 1

	except Exception as e:
		# Unexpected error
		set_failed(str(e) or e.__class__.__name__)
		if args.verbose:
			logger.exception("Detailed error information:")
		return 1


if __name__ == "__main__":
	sys.exit(main())
