#!/usr/bin/env python3
"""GitHub REST API client for the PR summarizer.

Covers the three calls the summarizer needs: comparing two revisions,
reading the repository-level config file, and patching the pull request.
"""

import base64
import json
import logging
from typing import Dict, List, Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)


class GithubAuthError(Exception):
    """Raised when GitHub API authentication fails."""
    pass


class GithubApiError(Exception):
    """Raised when GitHub API operations fail."""
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class GithubClient:
    """Thin client for the GitHub REST API."""

    def __init__(self, token: Optional[str] = None, timeout_s: Optional[int] = None,
                 base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        """Initialize GitHub client.

        Args:
            token: GitHub token (defaults to Config.GITHUB_TOKEN)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            base_url: API root (defaults to Config.GITHUB_API_URL)
            session: Pre-built requests session, mainly for tests

        Raises:
            GithubAuthError: If no valid token is provided
        """
        github_config = Config.get_github_config()
        self.token = token or github_config["token"]
        self.timeout_s = timeout_s or github_config["timeout_s"]
        self.base_url = (base_url or github_config["base_url"]).rstrip('/')

        if not self.token:
            raise GithubAuthError("Missing GitHub token (set GITHUB_TOKEN, GH_TOKEN or GITHUB_PAT)")

        if session is None:
            session = requests.Session()
            # Configure retries for transient failures on reads only
            retry_strategy = Retry(
                total=3,
                status_forcelist=[429, 500, 502, 503, 504],
                backoff_factor=1,
                allowed_methods=["HEAD", "GET", "OPTIONS"]
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("https://", adapter)
        self.session = session
        self.session.headers.update({
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': github_config["api_version"],
            'User-Agent': 'pr-summarizer/1.0'
        })

        logger.debug("GitHub client initialized")

    def _check(self, response: requests.Response, what: str) -> None:
        if response.status_code == 401:
            raise GithubAuthError("Invalid GitHub token or insufficient permissions")
        if response.status_code == 404:
            raise GithubApiError(f"{what} not found", status=404)
        if response.status_code >= 300:
            raise GithubApiError(f"GitHub API error for {what}: HTTP {response.status_code}",
                                 status=response.status_code)

    def compare(self, owner: str, repo: str, base: str, head: str) -> List[Dict[str, Any]]:
        """Fetch changed files between two revisions.

        Note: GitHub lists at most 300 files and omits `patch` for binary or
        very large files.

        Args:
            owner: Repository owner
            repo: Repository name
            base: Base revision (sha or ref)
            head: Head revision (sha or ref)

        Returns:
            List of file change dictionaries

        Raises:
            GithubApiError: If API request fails
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/compare/{base}...{head}"

        try:
            logger.info(f"Fetching compare: {owner}/{repo} {base[:12]}...{head[:12]}")
            response = self.session.get(url, timeout=self.timeout_s)
            self._check(response, f"Comparison {base}...{head}")
            data = response.json()
            files = data.get("files") or []
            logger.debug(f"✓ Retrieved {len(files)} changed files")
            return files

        except requests.RequestException as e:
            raise GithubApiError(f"Failed to compare {owner}/{repo} {base}...{head}: {e}")

    def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> Optional[bytes]:
        """Fetch raw file bytes at a revision.

        Returns:
            Decoded file bytes, or None if the file does not exist at ref

        Raises:
            GithubApiError: If API request fails for another reason
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/contents/{path}"

        try:
            logger.debug(f"Fetching file content: {owner}/{repo}/{path} @ {ref}")
            response = self.session.get(url, params={'ref': ref}, timeout=self.timeout_s)
            if response.status_code == 404:
                return None
            self._check(response, f"File {path}")
            data = response.json()
            if not isinstance(data, dict) or data.get("type") != "file":
                return None
            content = data.get("content") or ""
            if data.get("encoding") == "base64":
                return base64.b64decode(content)
            return content.encode("utf-8")

        except requests.RequestException as e:
            raise GithubApiError(f"Failed to fetch file {owner}/{repo}/{path}: {e}")

    def update_pull_request(self, owner: str, repo: str, number: int,
                            title: Optional[str] = None, body: Optional[str] = None) -> Dict[str, Any]:
        """Patch a pull request's title and/or body.

        Fields left as None are not sent.

        Raises:
            GithubApiError: If API request fails
        """
        payload: Dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        if not payload:
            return {}

        url = f"{self.base_url}/repos/{owner}/{repo}/pulls/{number}"
        try:
            logger.info(f"Updating PR {owner}/{repo}#{number}: fields={sorted(payload)}")
            response = self.session.patch(
                url,
                data=json.dumps(payload),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
            self._check(response, f"Pull request {owner}/{repo}#{number}")
            return response.json()

        except requests.RequestException as e:
            raise GithubApiError(f"Failed to update PR {owner}/{repo}#{number}: {e}")

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub client session closed")
