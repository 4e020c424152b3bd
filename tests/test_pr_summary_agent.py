import json
import logging

import pytest

from agents.pr_summary_agent import PRSummaryAgent, main
from clients.github_client import GithubApiError
from clients.llm_providers import LLMProviderError, SummaryProvider, UnsupportedProviderError, build_provider
from configs.config import Config
from configs.repo_config import merge_config
from utils.diff_fetcher import DiffFetchError
from utils.diff_models import ChangedFile
from utils.diff_processor import count_change_set
from utils.heuristic_summary import build_body, build_title
from utils.pr_models import PRInfo, RepoRef
from utils.summary_models import ActionInputs, LLMSettings

LLM_REPLY = json.dumps({"title": "feat(core): add request retries", "description": "### Summary\n- retries"})


def _go_file():
    return ChangedFile(path="pkg/api/handler.go", status="modified", patch="@@ -1,2 +1,4 @@\n+a\n+b\n+c\n-d")


def _heuristic(files):
    counts = count_change_set(files)
    return build_title(files), build_body(files, counts.added, counts.deleted)


class ScriptedProvider(SummaryProvider):
    name = "scripted"

    def __init__(self, settings, reply=LLM_REPLY, error=None):
        super().__init__(settings)
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def _agent(use_llm=False, provider=None, **kwargs):
    inputs = ActionInputs(use_llm=use_llm, llm=LLMSettings(provider="openai"))
    if provider is not None:
        kwargs["provider_factory"] = lambda settings, environ=None: provider
    return PRSummaryAgent(inputs, **kwargs)


def test_heuristic_only():
    agent = _agent()
    result = agent.summarize_files([_go_file()], merge_config(agent.inputs))
    assert result.source == "heuristic"
    assert result.title == "feat(core): update handler go"
    assert "Lines: +3 / -1" in result.body


def test_llm_result_is_used_and_sees_redacted_patches():
    provider = ScriptedProvider(LLMSettings())
    agent = _agent(use_llm=True, provider=provider)
    files = [ChangedFile(path="deploy/env.sh", patch="@@ -0,0 +1 @@\n+export AWS_KEY=AKIA1234567890ABCDEF")]

    result = agent.summarize_files(files, merge_config(agent.inputs), repo="octo/widgets")
    assert result.source == "llm"
    assert result.title == "feat(core): add request retries"
    assert "AKIA1234567890ABCDEF" not in provider.prompts[0]
    assert "[REDACTED]" in provider.prompts[0]
    assert "Repository: octo/widgets" in provider.prompts[0]


def test_redaction_can_be_disabled_by_repo_config():
    provider = ScriptedProvider(LLMSettings())
    agent = _agent(use_llm=True, provider=provider)
    files = [ChangedFile(path="deploy/env.sh", patch="@@ -0,0 +1 @@\n+export AWS_KEY=AKIA1234567890ABCDEF")]
    agent.summarize_files(files, merge_config(agent.inputs, {"redaction": False}))
    assert "AKIA1234567890ABCDEF" in provider.prompts[0]


def test_http_500_falls_back_to_heuristic():
    files = [ChangedFile(path="docs/guide.md", patch="@@ -1 +1 @@\n-a\n+b"), ChangedFile(path="src/app.js")]
    provider = ScriptedProvider(LLMSettings(), error=LLMProviderError("HTTP 500", code="HTTP_ERROR"))
    agent = _agent(use_llm=True, provider=provider)

    result = agent.summarize_files(files, merge_config(agent.inputs))
    title, body = _heuristic(files)
    assert result.source == "heuristic"
    assert (result.title, result.body) == (title, body)
    assert result.title.startswith("docs(docs):")


def test_unparseable_reply_falls_back_to_heuristic():
    provider = ScriptedProvider(LLMSettings(), reply="I would rather not.")
    agent = _agent(use_llm=True, provider=provider)
    assert agent.summarize_files([_go_file()], merge_config(agent.inputs)).source == "heuristic"


def test_missing_credential_falls_back_without_network(caplog):
    def factory(settings, environ=None):
        return build_provider(settings, environ=environ, session=object())

    agent = PRSummaryAgent(
        ActionInputs(use_llm=True, llm=LLMSettings(provider="openai")),
        environ={},
        provider_factory=factory,
    )
    with caplog.at_level(logging.WARNING):
        result = agent.summarize_files([_go_file()], merge_config(agent.inputs))
    assert result.source == "heuristic"
    assert result.title == "feat(core): update handler go"
    assert "OPENAI_API_KEY" in caplog.text


def test_file_cap_and_ignore_shape_the_summary():
    files = [ChangedFile(path=f"src/m{i}.py", patch="@@\n+x") for i in range(5)] + [ChangedFile(path="yarn.lock", patch="@@\n+y")]
    agent = _agent()
    result = agent.summarize_files(files, merge_config(agent.inputs, {"ignore": "*.lock", "max-files": 3}))
    assert "Files changed: 3" in result.body
    assert "yarn.lock" not in result.body


class StubGithub:
    def __init__(self, files=None, config=None, compare_error=None):
        self.files = files if files is not None else [
            {"filename": "pkg/api/handler.go", "status": "modified", "patch": "@@ -1 +1,3 @@\n+a\n+b\n+c\n-d"}
        ]
        self.config = config
        self.compare_error = compare_error
        self.updates = []
        self.closed = False

    def compare(self, owner, repo, base, head):
        if self.compare_error is not None:
            raise self.compare_error
        return self.files

    def get_file_content(self, owner, repo, path, ref):
        return self.config

    def update_pull_request(self, owner, repo, number, title=None, body=None):
        self.updates.append({"number": number, "title": title, "body": body})
        return {}

    def close(self):
        self.closed = True


REPO = RepoRef(owner="octo", name="widgets")
PR = PRInfo(number=12, title="wip", base_sha="a" * 40, head_sha="b" * 40, base_ref="main", head_ref="feature")


def test_run_updates_title_and_body():
    github = StubGithub()
    result = _agent(github_client=github).run(REPO, PR)
    assert github.updates == [{"number": 12, "title": result.title, "body": result.body}]
    assert result.title == "feat(core): update handler go"


def test_run_respects_repo_config_toggles():
    github = StubGithub(config=b"update-title: false\n")
    result = _agent(github_client=github).run(REPO, PR)
    assert github.updates == [{"number": 12, "title": None, "body": result.body}]


def test_run_with_both_toggles_off_does_not_update():
    github = StubGithub(config=b"update-title: false\nupdate-body: false\n")
    _agent(github_client=github).run(REPO, PR)
    assert github.updates == []


def test_dry_run_does_not_update():
    github = StubGithub()
    result = _agent(github_client=github).run(REPO, PR, dry_run=True)
    assert github.updates == []
    assert result.source == "heuristic"


def test_run_propagates_fetch_failure():
    github = StubGithub(compare_error=GithubApiError("gone", status=404))
    with pytest.raises(DiffFetchError) as exc:
        _agent(github_client=github).run(REPO, PR)
    assert exc.value.code == "NOT_FOUND"
    assert github.updates == []


def test_close_closes_client():
    github = StubGithub()
    _agent(github_client=github).close()
    assert github.closed


def test_main_outside_a_workflow_fails_without_outputs(tmp_path, monkeypatch, capsys):
    out = tmp_path / "output"
    monkeypatch.setenv("GITHUB_OUTPUT", str(out))
    assert main(["run"]) == 1
    assert "::error::" in capsys.readouterr().err
    assert not out.exists()


def test_main_requires_a_token(tmp_path, monkeypatch, capsys):
    event = tmp_path / "event.json"
    event.write_text(json.dumps({"pull_request": PR.model_dump() | {"base": {"sha": "a"}, "head": {"sha": "b"}}}), encoding="utf-8")
    monkeypatch.setenv("GITHUB_EVENT_PATH", str(event))
    monkeypatch.setenv("GITHUB_REPOSITORY", "octo/widgets")
    monkeypatch.setattr(Config, "GITHUB_TOKEN", None)
    for name in ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    assert main([]) == 1
    assert "Missing GITHUB_TOKEN" in capsys.readouterr().err


def test_main_summarize_local_diff(tmp_path, monkeypatch, capsys):
    diff = tmp_path / "change.diff"
    diff.write_text(
        "diff --git a/pkg/api/handler.go b/pkg/api/handler.go\n"
        "--- a/pkg/api/handler.go\n"
        "+++ b/pkg/api/handler.go\n"
        "@@ -1,2 +1,4 @@\n+a\n+b\n+c\n-d\n",
        encoding="utf-8",
    )
    config = tmp_path / "local.yml"
    config.write_text("max-files: 5\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    code = main(["summarize-diff", "--diff-file", str(diff), "--config", str(config), "--no-llm", "--json"])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["title"] == "feat(core): update handler go"
    assert data["source"] == "heuristic"
    assert "Lines: +3 / -1" in data["body"]


def test_unknown_provider_name_is_fatal():
    agent = PRSummaryAgent(
        ActionInputs(use_llm=True, llm=LLMSettings(provider="cohere")),
        environ={"LLM_API_KEY": "k"},
    )
    with pytest.raises(UnsupportedProviderError):
        agent.summarize_files([_go_file()], merge_config(agent.inputs))


def test_unknown_provider_is_ignored_when_llm_is_off():
    agent = PRSummaryAgent(ActionInputs(use_llm=False, llm=LLMSettings(provider="cohere")))
    assert agent.summarize_files([_go_file()], merge_config(agent.inputs)).source == "heuristic"


def test_main_fails_on_unknown_provider(tmp_path, monkeypatch, capsys):
    diff = tmp_path / "change.diff"
    diff.write_text("diff --git a/a.py b/a.py\n@@ -1 +1 @@\n-x\n+y\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    code = main(["summarize-diff", "--diff-file", str(diff), "--use-llm", "--provider", "cohere"])
    assert code == 1
    captured = capsys.readouterr()
    assert "::error::Invalid LLM configuration" in captured.err
    assert captured.out == ""


def test_ignore_list_from_repo_config_filters_files():
    files = [ChangedFile(path="src/app.py", patch="@@\n+x"), ChangedFile(path="docs/a/b.md"), ChangedFile(path="poetry.lock")]
    agent = _agent()
    config = merge_config(agent.inputs, {"ignore": ["*.lock", "docs/**"]})
    assert config.ignore_patterns == ["*.lock", "docs/**"]
    result = agent.summarize_files(files, config)
    assert "Files changed: 1" in result.body
    assert "poetry.lock" not in result.body
    assert "docs/a/b.md" not in result.body
