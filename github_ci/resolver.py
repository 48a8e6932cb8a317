"""
Action version resolution against the GitHub API
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import requests

from . import version
from .version import matches_version_pattern
from .cache import Cache, CacheStats, VersionKey, VersionResult
from .context import RunContext
from .errors import ResolutionError
from .github_api import GitHubAPI
from .models import is_commit_hash, is_major_version_only

TagCallback = Callable[[Dict[str, Any]], bool]


class Resolver(Protocol):
    """Lookups the linters and the upgrader need from GitHub."""

    def resolve_commit_hash(self, owner: str, repo: str, ref: str) -> str: ...

    def resolve_latest_constrained(self, owner: str, repo: str, current_ref: str,
                                   pattern: str) -> Tuple[str, str]: ...

    def resolve_latest_unconstrained(self, owner: str, repo: str) -> Tuple[str, str]: ...

    def resolve_tag_for_commit(self, owner: str, repo: str, commit_hash: str) -> Optional[str]: ...

    def resolve_latest_minor_in_major(self, owner: str, repo: str, major_version: str) -> Tuple[str, str]: ...

    def cache_stats(self) -> CacheStats: ...


def _tag_name(tag: Dict[str, Any]) -> str:
    return tag.get('name') or ""


def _tag_sha(tag: Dict[str, Any]) -> str:
    return (tag.get('commit') or {}).get('sha') or ""


class ActionsClient:
    """Resolver backed by the GitHub REST API with a shared lookup cache."""

    def __init__(self, context: Optional[RunContext] = None, cache: Optional[Cache] = None,
                 token: Optional[str] = None, api_factory: Optional[Callable[[], GitHubAPI]] = None):
        self.context = context or RunContext()
        self.cache = cache if cache is not None else Cache()
        self.token = token
        self._api_factory = api_factory
        self._api: Optional[GitHubAPI] = None
        self._api_lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    @property
    def api(self) -> GitHubAPI:
        """The GitHub API client, created on first use."""
        if self._api is None:
            with self._api_lock:
                if self._api is None:
                    if self._api_factory is not None:
                        self._api = self._api_factory()
                    else:
                        self._api = GitHubAPI(token=self.token, context=self.context)
        return self._api

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def paginate_tags(self, owner: str, repo: str, fn: TagCallback) -> None:
        """Call fn for every repository tag until it returns False."""
        page = 1
        while True:
            try:
                tags, next_page = self.api.list_tags(owner, repo, page=page)
            except (requests.exceptions.RequestException, ValueError, KeyError) as e:
                raise ResolutionError(f"failed to fetch tags for {owner}/{repo}: {e}") from e

            for tag in tags:
                if not fn(tag):
                    return

            if not next_page:
                return
            page = next_page

    def resolve_commit_hash(self, owner: str, repo: str, ref: str) -> str:
        """Resolve a tag, branch or major version to a commit hash."""
        if is_commit_hash(ref):
            return ref

        if ref.startswith("refs/"):
            ref = ref[len("refs/"):]

        if ref.startswith(("tags/", "heads/")):
            try:
                return self.api.get_ref(owner, repo, ref)
            except (requests.exceptions.RequestException, ValueError, KeyError) as e:
                raise ResolutionError(f"failed to fetch ref {ref} for {owner}/{repo}: {e}") from e

        # Major version only (e.g. "v3"): prefer the latest release in that series
        if is_major_version_only(ref):
            try:
                _, sha = self.resolve_latest_minor_in_major(owner, repo, ref)
                return sha
            except ResolutionError as e:
                self.logger.debug(f"{owner}/{repo}: {e}; trying {ref} as a tag or branch")

        # Try as a tag first, then as a branch
        try:
            return self.api.get_ref(owner, repo, f"tags/{ref}")
        except (requests.exceptions.RequestException, ValueError, KeyError) as e:
            self.logger.debug(f"{owner}/{repo}: {ref} is not a tag: {e}")

        try:
            return self.api.get_ref(owner, repo, f"heads/{ref}")
        except (requests.exceptions.RequestException, ValueError, KeyError) as e:
            raise ResolutionError(f"failed to fetch ref {ref} for {owner}/{repo}: {e}") from e

    def resolve_latest_constrained(self, owner: str, repo: str, current_ref: str,
                                   pattern: str) -> Tuple[str, str]:
        """Find the latest tag matching a version pattern. Results are cached."""
        key = VersionKey.constrained(owner, repo, current_ref, pattern)

        cached = self.cache.get_constrained(key)
        if cached is not None:
            self.logger.debug(f"{key}: cache hit")
            return cached.unwrap()

        result = self._lookup(lambda: self._latest_matching(owner, repo, pattern))
        self.cache.set_constrained(key, result)
        return result.unwrap()

    def _latest_matching(self, owner: str, repo: str, pattern: str) -> Tuple[str, str]:
        matching: List[Tuple[str, str]] = []

        def collect(tag: Dict[str, Any]) -> bool:
            if matches_version_pattern(_tag_name(tag), pattern):
                matching.append((_tag_name(tag), _tag_sha(tag)))
            return True

        self.paginate_tags(owner, repo, collect)

        if not matching:
            raise ResolutionError(f"no compatible tags found for {owner}/{repo} with pattern {pattern}")

        latest = matching[0]
        for candidate in matching[1:]:
            if version.compare(candidate[0], latest[0]) > 0:
                latest = candidate
        return latest

    def resolve_latest_unconstrained(self, owner: str, repo: str) -> Tuple[str, str]:
        """Find the absolute latest version. Results are cached.

        Tries the latest release first (one request) and falls back to
        paginating all tags for repositories without releases.
        """
        key = VersionKey.unconstrained(owner, repo)

        cached = self.cache.get_unconstrained(key)
        if cached is not None:
            self.logger.debug(f"{key}: cache hit")
            return cached.unwrap()

        release = self._try_latest_release(owner, repo)
        if release is not None:
            result = VersionResult(tag=release[0], hash=release[1])
        else:
            result = self._lookup(lambda: self._latest_tag(owner, repo))

        self.cache.set_unconstrained(key, result)
        return result.unwrap()

    def _try_latest_release(self, owner: str, repo: str) -> Optional[Tuple[str, str]]:
        try:
            tag = self.api.get_latest_release(owner, repo)
        except (requests.exceptions.RequestException, ValueError, KeyError) as e:
            self.logger.debug(f"{owner}/{repo}: no latest release ({e})")
            return None
        if not tag:
            return None

        try:
            sha = self.resolve_commit_hash(owner, repo, tag)
        except ResolutionError as e:
            self.logger.debug(f"{owner}/{repo}: cannot resolve release {tag}: {e}")
            return None
        return tag, sha

    def _latest_tag(self, owner: str, repo: str) -> Tuple[str, str]:
        latest: List[Tuple[str, str]] = []

        def keep_latest(tag: Dict[str, Any]) -> bool:
            name = _tag_name(tag)
            if not latest or version.compare(name, latest[0][0]) > 0:
                latest[:] = [(name, _tag_sha(tag))]
            return True

        self.paginate_tags(owner, repo, keep_latest)

        if not latest:
            raise ResolutionError(f"no tags found for {owner}/{repo}")
        return latest[0]

    def resolve_tag_for_commit(self, owner: str, repo: str, commit_hash: str) -> Optional[str]:
        """Find a tag pointing at the given commit, or None."""
        found: List[str] = []

        def match(tag: Dict[str, Any]) -> bool:
            if _tag_sha(tag) == commit_hash:
                found.append(_tag_name(tag))
                return False
            return True

        self.paginate_tags(owner, repo, match)
        return found[0] if found else None

    def resolve_latest_minor_in_major(self, owner: str, repo: str, major_version: str) -> Tuple[str, str]:
        """Find the latest release within a major version (v3 -> v3.5.2)."""
        major = version.normalize(major_version)
        key = VersionKey.latest_minor(owner, repo, f"v{major}")

        cached = self.cache.get_latest_minor(key)
        if cached is not None:
            self.logger.debug(f"{key}: cache hit")
            return cached.unwrap()

        result = self._lookup(lambda: self._latest_in_major(owner, repo, major))
        self.cache.set_latest_minor(key, result)
        return result.unwrap()

    def _latest_in_major(self, owner: str, repo: str, major: str) -> Tuple[str, str]:
        prefix = f"v{major}."
        exact = f"v{major}"
        latest: List[Tuple[str, str]] = []

        def keep_latest(tag: Dict[str, Any]) -> bool:
            name = _tag_name(tag)
            if name.startswith(prefix) or name == exact:
                if not latest or version.compare(name, latest[0][0]) > 0:
                    latest[:] = [(name, _tag_sha(tag))]
            return True

        self.paginate_tags(owner, repo, keep_latest)

        if not latest:
            raise ResolutionError(f"no tags found for {owner}/{repo} major version v{major}")
        return latest[0]

    @staticmethod
    def _lookup(fn: Callable[[], Tuple[str, str]]) -> VersionResult:
        """Run a lookup, capturing resolution failures so they can be cached."""
        try:
            tag, sha = fn()
        except ResolutionError as e:
            return VersionResult(error=e)
        return VersionResult(tag=tag, hash=sha)
