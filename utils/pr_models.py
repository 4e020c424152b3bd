#!/usr/bin/env python3
"""Pull request and repository identity models.

Built from the `pull_request` object of the workflow event payload.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class PRInfo(BaseModel):
    """The pull request being summarized."""

    number: int = Field(..., ge=1)
    title: str = ""
    body: Optional[str] = None
    base_sha: str = Field(..., description="Commit the diff is computed from")
    head_sha: str = Field(..., description="Commit the diff is computed to")
    base_ref: Optional[str] = None
    head_ref: Optional[str] = None
    html_url: Optional[str] = None

    model_config = {"extra": "ignore"}

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PRInfo":
        """Build from a webhook or REST `pull_request` object."""
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body"),
            base_sha=safe_extract(data, "base", "sha", default=""),
            head_sha=safe_extract(data, "head", "sha", default=""),
            base_ref=safe_extract(data, "base", "ref"),
            head_ref=safe_extract(data, "head", "ref"),
            html_url=data.get("html_url"),
        )


class RepoRef(BaseModel):
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, full_name: str) -> "RepoRef":
        owner, sep, name = (full_name or "").partition("/")
        if not sep or not owner or not name:
            raise ValueError(f"Repository must be in 'owner/repo' format, got '{full_name}'")
        return cls(owner=owner, name=name)


def safe_extract(data: Dict, *keys, default=None):
    """Walk nested mappings by key; `default` if any step is missing.

    safe_extract(pr, "head", "sha") is pr["head"]["sha"] when both exist.
    """
    node = data
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node
