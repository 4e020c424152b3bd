#!/usr/bin/env python3
"""Repository-level configuration and its merge with caller settings.

The repository file (YAML, `.github/pr-summarizer.yml` by default) may
override the ignore list, file cap, update toggles and redaction settings.
Keys may be written with hyphens or underscores. A missing or unreadable file
means "no overrides".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, conint

from clients.github_client import GithubApiError, GithubAuthError, GithubClient
from utils.path_filter import parse_ignore_csv
from utils.summary_models import ActionInputs

logger = logging.getLogger(__name__)


class EffectiveConfig(BaseModel):
    """Settings in force for one run, produced once by merge_config."""

    ignore: str = ""
    max_files: conint(ge=1) = 60
    update_title: bool = True
    update_body: bool = True
    redaction_enabled: bool = True
    extra_redaction_patterns: Tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @property
    def ignore_patterns(self) -> list:
        return parse_ignore_csv(self.ignore)


def _lookup(file_config: Mapping[str, Any], *names: str) -> Any:
    """Return the first non-null value among hyphen/underscore spellings."""
    for name in names:
        for key in (name, name.replace("-", "_"), name.replace("_", "-")):
            if key in file_config and file_config[key] is not None:
                return file_config[key]
    return None


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        low = value.strip().lower()
        if low in ("true", "yes", "on", "1"):
            return True
        if low in ("false", "no", "off", "0"):
            return False
    if isinstance(value, int):
        return bool(value)
    logger.warning(f"Ignoring non-boolean config value {value!r}")
    return default


def _as_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-integer config value {value!r}")
        return default
    if parsed < 1:
        logger.warning(f"Ignoring non-positive config value {value!r}")
        return default
    return parsed


def normalize_ignore(value: Any) -> str:
    """Canonical comma-separated form of a string or list ignore value."""
    if value is None:
        return ""
    if isinstance(value, str):
        return ",".join(parse_ignore_csv(value))
    if isinstance(value, Iterable):
        return ",".join(parse_ignore_csv([str(v) for v in value if v is not None]))
    return ",".join(parse_ignore_csv(str(value)))


def merge_config(defaults: ActionInputs, file_config: Optional[Mapping[str, Any]] = None) -> EffectiveConfig:
    """Merge caller settings with repository-file overrides (file wins when non-null)."""
    fc: Mapping[str, Any] = file_config if isinstance(file_config, Mapping) else {}

    ignore = _lookup(fc, "ignore")
    max_files = _lookup(fc, "max-files")
    update_title = _lookup(fc, "update-title")
    update_body = _lookup(fc, "update-body")
    redaction = _lookup(fc, "redaction", "redact")
    patterns = _lookup(fc, "redaction-patterns", "redact-patterns")

    extra: Tuple[str, ...] = ()
    if isinstance(patterns, (list, tuple)):
        extra = tuple(str(p) for p in patterns if p)

    return EffectiveConfig(
        ignore=normalize_ignore(ignore if ignore is not None else defaults.ignore),
        max_files=_as_int(max_files, defaults.max_files) if max_files is not None else defaults.max_files,
        update_title=_as_bool(update_title, defaults.update_title) if update_title is not None else defaults.update_title,
        update_body=_as_bool(update_body, defaults.update_body) if update_body is not None else defaults.update_body,
        redaction_enabled=_as_bool(redaction, True) if redaction is not None else True,
        extra_redaction_patterns=extra,
    )


def parse_repo_config(raw: bytes) -> Optional[Dict[str, Any]]:
    """Decode a YAML config document; None if it is empty or not a mapping."""
    data = yaml.safe_load(raw.decode("utf-8"))
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.info(f"Repository config is a {type(data).__name__}, not a mapping; ignoring")
        return None
    return data


def load_local_config(path: str) -> Optional[Dict[str, Any]]:
    """Read a YAML config from disk with the same non-fatal semantics as the repository file."""
    try:
        with open(path, "rb") as f:
            return parse_repo_config(f.read())
    except (OSError, yaml.YAMLError, UnicodeDecodeError) as e:
        logger.info(f"Config file {path} ignored: {e}")
        return None


class RepoConfigLoader:
    def __init__(self, client: GithubClient) -> None:
        self.client = client

    def load(self, owner: str, repo: str, path: str, ref: str) -> Optional[Dict[str, Any]]:
        """Fetch and decode the repository config file.

        Any failure is logged and treated as "no overrides".
        """
        try:
            raw = self.client.get_file_content(owner, repo, path, ref)
        except (GithubApiError, GithubAuthError) as e:
            logger.info(f"Repository config unavailable ({path}@{ref[:12]}): {e}")
            return None
        if raw is None:
            logger.info(f"No repository config at {path}; using action inputs")
            return None
        try:
            data = parse_repo_config(raw)
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            logger.info(f"Repository config {path} could not be parsed: {e}")
            return None
        if data is not None:
            logger.info(f"Loaded repository config {path} (keys: {', '.join(sorted(map(str, data)))})")
        return data
