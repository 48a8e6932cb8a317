from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from github_ci.cache import CacheStats
from github_ci.errors import ResolutionError
from github_ci.workflow import Workflow, load_workflow


class MockResolver:
    """In-memory resolver recording every lookup it serves."""

    def __init__(self):
        self.commit_hashes: Dict[Tuple[str, str, str], str] = {}
        self.latest_minor: Dict[Tuple[str, str, str], Tuple[str, str]] = {}
        self.constrained: Dict[Tuple[str, str, str], Tuple[str, str]] = {}
        self.unconstrained: Dict[Tuple[str, str], Tuple[str, str]] = {}
        self.tags_for_commit: Dict[Tuple[str, str, str], str] = {}
        self.calls: List[tuple] = []
        self.stats = CacheStats()

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    def resolve_commit_hash(self, owner: str, repo: str, ref: str) -> str:
        self.calls.append(("resolve_commit_hash", owner, repo, ref))
        try:
            return self.commit_hashes[(owner, repo, ref)]
        except KeyError:
            raise ResolutionError(f"failed to fetch ref {ref} for {owner}/{repo}") from None

    def resolve_latest_constrained(self, owner: str, repo: str, current_ref: str,
                                   pattern: str) -> Tuple[str, str]:
        self.calls.append(("resolve_latest_constrained", owner, repo, current_ref, pattern))
        try:
            return self.constrained[(owner, repo, pattern)]
        except KeyError:
            raise ResolutionError(f"no compatible tags found for {owner}/{repo} with pattern {pattern}") from None

    def resolve_latest_unconstrained(self, owner: str, repo: str) -> Tuple[str, str]:
        self.calls.append(("resolve_latest_unconstrained", owner, repo))
        try:
            return self.unconstrained[(owner, repo)]
        except KeyError:
            raise ResolutionError(f"no tags found for {owner}/{repo}") from None

    def resolve_tag_for_commit(self, owner: str, repo: str, commit_hash: str) -> Optional[str]:
        self.calls.append(("resolve_tag_for_commit", owner, repo, commit_hash))
        return self.tags_for_commit.get((owner, repo, commit_hash))

    def resolve_latest_minor_in_major(self, owner: str, repo: str, major_version: str) -> Tuple[str, str]:
        self.calls.append(("resolve_latest_minor_in_major", owner, repo, major_version))
        try:
            return self.latest_minor[(owner, repo, major_version)]
        except KeyError:
            raise ResolutionError(f"no tags found for {owner}/{repo} major version {major_version}") from None

    def cache_stats(self) -> CacheStats:
        return self.stats


@pytest.fixture
def resolver() -> MockResolver:
    return MockResolver()


@pytest.fixture
def workflows_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "workflows"
    directory.mkdir()
    return directory


@pytest.fixture
def make_workflow(workflows_dir: Path):
    """Write a workflow file and load it."""

    def _make(text: str, name: str = "ci.yml") -> Workflow:
        path = workflows_dir / name
        path.write_text(text, encoding="utf-8")
        return load_workflow(path)

    return _make
