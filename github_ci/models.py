"""
Data models for github-ci
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import re

from . import version

COMMIT_HASH_PATTERN = re.compile(r'[0-9a-fA-F]{40}')


def is_commit_hash(ref: str) -> bool:
    """Check if a reference is a full 40-character commit hash."""
    return bool(COMMIT_HASH_PATTERN.fullmatch(ref))


def is_major_version_only(ref: str) -> bool:
    """Check if a reference is only a major version (e.g. "v3" or "3")."""
    normalized = version.normalize(ref)
    return normalized.isdigit() and normalized.isascii()


@dataclass
class ActionReference:
    """Represents a remote GitHub Action reference (owner/repo[/path]@ref)."""

    owner: str
    repo: str
    path: str
    ref: str

    @classmethod
    def parse(cls, uses: str) -> "ActionReference":
        """Parse a 'uses' value into its components."""
        # Handle the remote action formats:
        # - actions/checkout@v3
        # - actions/checkout@main
        # - github/codeql-action/upload-sarif@v2
        # Local (./action) and docker:// references are not remote actions
        if uses.startswith('./') or uses.startswith('docker://'):
            raise ValueError(f"not a remote action: {uses}")

        action_path, sep, ref = uses.rpartition('@')
        if not sep:
            raise ValueError(f"invalid action format: {uses}")

        owner, slash, rest = action_path.partition('/')
        if not slash:
            raise ValueError(f"invalid action path: {action_path}")

        repo, _, path = rest.partition('/')
        if not owner or not repo or not ref:
            raise ValueError(f"invalid action format: {uses}")

        return cls(owner=owner, repo=repo, path=path, ref=ref)

    @property
    def name(self) -> str:
        """Action name without the reference (owner/repo[/path])."""
        if self.path:
            return f"{self.owner}/{self.repo}/{self.path}"
        return f"{self.owner}/{self.repo}"

    def is_pinned(self) -> bool:
        """Check if this action is already pinned to a commit hash."""
        return is_commit_hash(self.ref)

    def with_ref(self, ref: str) -> str:
        """Get the uses string for this action at a different reference."""
        return f"{self.name}@{ref}"

    def __str__(self) -> str:
        return self.with_ref(self.ref)


@dataclass
class Issue:
    """A linting problem found in a workflow file.

    ``line`` is 0 for file-level issues. ``linter`` is filled in by the
    orchestrator, not by the linter that reports the issue.
    """

    file: str
    line: int
    message: str
    linter: str = ""

    def key(self) -> Tuple[str, int, str, str]:
        """Identity of the issue across lint passes."""
        return (self.file, self.line, self.linter, self.message)

    def __str__(self) -> str:
        if self.line > 0:
            return f"{self.file}:{self.line}: ({self.linter}) {self.message}"
        return f"{self.file}: ({self.linter}) {self.message}"


def new_issue(file: str, line: int, message: str) -> Optional[Issue]:
    """Create an Issue if the message is non-empty."""
    if not message:
        return None
    return Issue(file=file, line=line, message=message)
