"""
GitHub API integration module
"""

import requests
import time
import logging
import os
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse, parse_qs

from .context import RunContext
from .errors import CancelledError

GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"
REQUEST_TIMEOUT = 10.0
TAGS_PER_PAGE = 100


class GitHubAPI:
    """GitHub API client for resolving action versions."""

    def __init__(self, token: Optional[str] = None, base_url: str = "https://api.github.com",
                 context: Optional[RunContext] = None):
        self.token = token or os.getenv(GITHUB_TOKEN_ENV_VAR)
        self.base_url = base_url
        self.context = context or RunContext()
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

        self.session.headers.update({"Accept": "application/vnd.github.v3+json"})

        # Set up authentication
        if self.token:
            self.session.headers.update({"Authorization": f"token {self.token}"})
        else:
            self.logger.warning("No GitHub token provided. API rate limits will be lower.")

        # Rate limiting
        self.rate_limit_remaining: Optional[int] = None
        self.rate_limit_reset: Optional[int] = None

    def _make_request(self, endpoint: str, method: str = "GET", **kwargs) -> requests.Response:
        """Make a request to the GitHub API with rate limiting."""
        url = urljoin(self.base_url + "/", endpoint.lstrip('/'))

        self.context.check()
        self._check_rate_limit()

        timeout = REQUEST_TIMEOUT
        remaining = self.context.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)

        try:
            self.logger.debug(f"{method} {url}")
            response = self.session.request(method, url, timeout=timeout, **kwargs)

            # Update rate limit info
            if 'X-RateLimit-Remaining' in response.headers:
                self.rate_limit_remaining = int(response.headers['X-RateLimit-Remaining'])
                self.rate_limit_reset = int(response.headers.get('X-RateLimit-Reset', 0))

            response.raise_for_status()
            return response

        except requests.exceptions.Timeout as e:
            if self.context.expired():
                raise CancelledError(f"run deadline exceeded during request to {url}") from e
            self.logger.debug(f"GitHub API request timed out: {e}")
            raise
        except requests.exceptions.RequestException as e:
            self.logger.debug(f"GitHub API request failed: {e}")
            raise

    def _check_rate_limit(self) -> None:
        """Check and handle rate limiting."""
        if self.rate_limit_remaining is not None and self.rate_limit_remaining < 10:
            if self.rate_limit_reset:
                wait_time = max(0, self.rate_limit_reset - int(time.time()) + 1)
                if wait_time > 0:
                    remaining = self.context.remaining()
                    if remaining is not None and wait_time > remaining:
                        raise CancelledError(
                            f"rate limit resets in {wait_time}s, after the run deadline"
                        )
                    self.logger.warning(f"Rate limit approaching. Waiting {wait_time} seconds...")
                    time.sleep(wait_time)

    def list_tags(self, owner: str, repo: str, page: int = 1,
                  per_page: int = TAGS_PER_PAGE) -> Tuple[List[Dict[str, Any]], int]:
        """List one page of repository tags.

        Returns the tags and the next page number (0 when this is the last page).
        """
        endpoint = f"/repos/{owner}/{repo}/tags"
        response = self._make_request(endpoint, params={"per_page": per_page, "page": page})
        return response.json(), self._next_page(response)

    @staticmethod
    def _next_page(response: requests.Response) -> int:
        """Extract the next page number from the Link header."""
        next_link = response.links.get("next")
        if not next_link:
            return 0
        query = parse_qs(urlparse(next_link.get("url", "")).query)
        try:
            return int(query.get("page", ["0"])[0])
        except ValueError:
            return 0

    def get_ref(self, owner: str, repo: str, ref: str) -> str:
        """Resolve a qualified reference ("tags/v1", "heads/main") to a commit SHA."""
        endpoint = f"/repos/{owner}/{repo}/git/ref/{ref}"
        response = self._make_request(endpoint)
        obj = response.json().get('object') or {}

        sha = obj.get('sha')
        if not sha:
            raise ValueError(f"reference {ref} has no object")

        # Annotated tags point to a tag object, not to the commit itself
        if obj.get('type') == 'tag':
            sha = self._get_tag_commit(owner, repo, sha)

        self.logger.debug(f"Resolved {owner}/{repo}@{ref} to SHA: {sha}")
        return sha

    def _get_tag_commit(self, owner: str, repo: str, tag_sha: str) -> str:
        """Get the commit SHA an annotated tag object points to."""
        endpoint = f"/repos/{owner}/{repo}/git/tags/{tag_sha}"
        response = self._make_request(endpoint)
        return response.json()['object']['sha']

    def get_latest_release(self, owner: str, repo: str) -> Optional[str]:
        """Get the tag name of the latest release, if any."""
        endpoint = f"/repos/{owner}/{repo}/releases/latest"
        response = self._make_request(endpoint)
        return response.json().get('tag_name')

