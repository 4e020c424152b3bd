#!/usr/bin/env python3
"""GitHub Actions workflow I/O: event payload, step outputs, annotations."""

from __future__ import annotations

import json
import os
import sys
import uuid
from typing import Any, Dict, Mapping, Optional


class EventContextError(Exception):
    """Raised when the run was not triggered by a pull_request event."""


def load_event(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    path = env.get("GITHUB_EVENT_PATH")
    if not path or not os.path.isfile(path):
        raise EventContextError("GITHUB_EVENT_PATH is not set; this action must run inside a workflow.")
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def pull_request_from_event(event: Mapping[str, Any]) -> Dict[str, Any]:
    pr = event.get("pull_request") if isinstance(event, Mapping) else None
    if not pr:
        raise EventContextError("This action must run on pull_request events.")
    return pr


def set_output(name: str, value: str, environ: Optional[Mapping[str, str]] = None) -> None:
    """Write a step output; multi-line values use the heredoc form."""
    env = os.environ if environ is None else environ
    out_path = env.get("GITHUB_OUTPUT")
    if not out_path:
        print(f"{name}={json.dumps(value)}")
        return
    delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
    with open(out_path, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def set_failed(message: str) -> None:
    # Annotation text must stay on one line
    flat = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    print(f"::error::{flat}", file=sys.stderr)
