"""
Versions linter

Reports actions referenced by tag or branch instead of a commit hash, and
pins them to the resolved commit with the tag kept as a trailing comment:

    uses: actions/checkout@v3
    uses: actions/checkout@b4ffde65f46336ab88eb53be808477a3936bae11 # v3.5.0
"""

import logging
from typing import List, Set, Tuple

from ..cache import CacheStats
from ..errors import ResolutionError
from ..models import ActionReference, Issue, is_major_version_only
from ..resolver import Resolver
from ..workflow import Workflow
from .base import Linter


class VersionsLinter(Linter):
    """Checks that every remote action is pinned to a commit hash."""

    def __init__(self, resolver: Resolver):
        self.resolver = resolver
        self.logger = logging.getLogger(__name__)

    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        issues = []
        for action in wf.find_actions():
            try:
                ref = ActionReference.parse(action.uses)
            except ValueError:
                # Local actions and docker images have nothing to pin
                continue

            if not ref.is_pinned():
                message = f"Action {action.uses} uses version tag '{ref.ref}' instead of commit hash"
                issues.append(Issue(file=wf.base_name, line=action.line, message=message))

        return issues

    def fix_workflow(self, wf: Workflow) -> None:
        done: Set[str] = set()
        for action in wf.find_actions():
            if action.uses in done:
                continue
            try:
                ref = ActionReference.parse(action.uses)
            except ValueError:
                continue
            if ref.is_pinned():
                continue

            self._pin_action(wf, action.uses, ref)
            done.add(action.uses)

    def _pin_action(self, wf: Workflow, uses: str, ref: ActionReference) -> None:
        """Resolve an action reference and rewrite it to the commit hash."""
        current = ref.ref
        if current.startswith("tags/"):
            current = current[len("tags/"):]

        try:
            tag, sha = self._resolve(ref.owner, ref.repo, current)
        except ResolutionError as e:
            raise ResolutionError(f"failed to get commit hash for {uses}: {e}") from e

        self.logger.info(f"{wf.base_name}: pinning {uses} to {sha} ({tag})")
        wf.update_reference(uses, ref.with_ref(sha), tag)

    def _resolve(self, owner: str, repo: str, ref: str) -> Tuple[str, str]:
        """Resolve a reference to its tag name and commit hash."""
        # A major version (v3) is pinned to the latest release in that series
        if is_major_version_only(ref):
            try:
                return self.resolver.resolve_latest_minor_in_major(owner, repo, ref)
            except ResolutionError as e:
                self.logger.debug(f"{owner}/{repo}@{ref}: {e}; resolving as a plain reference")

        return ref, self.resolver.resolve_commit_hash(owner, repo, ref)

    def cache_stats(self) -> CacheStats:
        return self.resolver.cache_stats()
