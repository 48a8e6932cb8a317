"""
Action upgrades

Moves every remote action to the newest version its update pattern allows
and rewrites the reference in the configured format:

    tag:   actions/checkout@v4.1.1
    hash:  actions/checkout@b4ffde65f46336ab88eb53be808477a3936bae11 # v4.1.1
    major: actions/checkout@v4
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from . import version
from .config import Config, should_update
from .errors import ReferenceNotFoundError, ResolutionError
from .models import ActionReference
from .resolver import Resolver
from .workflow import ActionUsage, Workflow

# Version noted in a trailing comment: "uses: owner/repo@<sha> # v1.2.3"
_COMMENT_VERSION = re.compile(r'\s#\s*([vV]?\d[\w.\-+]*)')


@dataclass
class ActionUpgrade:
    """A reference that was (or, in a dry run, would be) rewritten."""

    file: str
    line: int
    action: str
    old_ref: str
    new_ref: str
    tag: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}: {self.action} {self.old_ref} -> {self.new_ref}"


@dataclass
class UpgradeFailure:
    """An action that could not be upgraded."""

    file: str
    action: str
    error: str

    def __str__(self) -> str:
        return f"{self.file}: {self.action}: {self.error}"


@dataclass
class UpgradeResults:
    upgrades: List[ActionUpgrade] = field(default_factory=list)
    errors: List[UpgradeFailure] = field(default_factory=list)

    def extend(self, other: "UpgradeResults") -> None:
        self.upgrades.extend(other.upgrades)
        self.errors.extend(other.errors)


def format_reference(fmt: str, tag: str, sha: str) -> Tuple[str, str]:
    """Get the new reference and its trailing comment for a version format."""
    if fmt == "hash":
        return sha, tag
    if fmt == "major":
        return f"v{version.extract_major(tag)}", ""
    return tag, ""


def comment_version(line: str) -> Optional[str]:
    """Get the version noted in the trailing comment of a line, if any."""
    match = _COMMENT_VERSION.search(line)
    return match.group(1) if match else None


class Upgrader:
    """Upgrades the actions of workflows according to the configuration."""

    def __init__(self, config: Config, resolver: Resolver, dry_run: bool = False):
        self.config = config
        self.resolver = resolver
        self.dry_run = dry_run
        self.logger = logging.getLogger(__name__)

    def upgrade(self, workflows: List[Workflow]) -> UpgradeResults:
        """Upgrade every workflow, collecting upgrades and failures."""
        results = UpgradeResults()
        for wf in workflows:
            self.logger.info(f"Processing workflow file: {wf.file}")
            results.extend(self.upgrade_workflow(wf))
        return results

    def upgrade_workflow(self, wf: Workflow) -> UpgradeResults:
        results = UpgradeResults()
        done: Set[str] = set()

        for action in wf.find_actions():
            if action.uses in done:
                continue
            done.add(action.uses)

            try:
                ref = ActionReference.parse(action.uses)
            except ValueError:
                continue

            try:
                upgrade = self._upgrade_action(wf, action, ref)
            except (ResolutionError, ReferenceNotFoundError) as e:
                self.logger.warning(f"Failed to upgrade {ref.name} in {wf.base_name}: {e}")
                results.errors.append(UpgradeFailure(file=wf.base_name, action=ref.name, error=str(e)))
                continue

            if upgrade is not None:
                results.upgrades.append(upgrade)

        return results

    def _upgrade_action(self, wf: Workflow, action: ActionUsage, ref: ActionReference) -> Optional[ActionUpgrade]:
        current = self._current_version(wf, action, ref)
        tag, sha = self._latest(ref, current)

        pattern = self.config.get_action_config(ref.name).version
        if not should_update(current, tag, pattern):
            self.logger.debug(f"{ref.name}: {current or ref.ref} is up to date (latest {tag}, pattern {pattern!r})")
            return None

        new_ref, comment = format_reference(self.config.version_format, tag, sha)
        if new_ref == ref.ref:
            return None

        upgrade = ActionUpgrade(file=wf.base_name, line=action.line, action=ref.name,
                                old_ref=ref.ref, new_ref=new_ref, tag=tag)
        if self.dry_run:
            self.logger.info(f"Would upgrade {upgrade}")
        else:
            wf.update_reference(action.uses, ref.with_ref(new_ref), comment)
            self.logger.info(f"Upgraded {upgrade}")
        return upgrade

    def _current_version(self, wf: Workflow, action: ActionUsage, ref: ActionReference) -> str:
        """Work out the version an action is currently on."""
        if not ref.is_pinned():
            current = ref.ref
            if current.startswith("tags/"):
                current = current[len("tags/"):]
            return current

        lines = wf.lines()
        if 0 < action.line <= len(lines):
            noted = comment_version(lines[action.line - 1])
            if noted:
                return noted

        tag = self.resolver.resolve_tag_for_commit(ref.owner, ref.repo, ref.ref)
        if tag is None:
            self.logger.debug(f"{ref.name}: no tag points to {ref.ref}")
            return ""
        return tag

    def _latest(self, ref: ActionReference, current: str) -> Tuple[str, str]:
        """Find the newest candidate version for an action."""
        if self.config.has_action_config(ref.name):
            pattern = self.config.get_action_config(ref.name).version
            return self.resolver.resolve_latest_constrained(ref.owner, ref.repo, current, pattern)
        return self.resolver.resolve_latest_unconstrained(ref.owner, ref.repo)


def discover_actions(workflows: List[Workflow]) -> List[str]:
    """Names of the remote actions used by the workflows, sorted."""
    names: Set[str] = set()
    for wf in workflows:
        for action in wf.find_actions():
            try:
                names.add(ActionReference.parse(action.uses).name)
            except ValueError:
                continue
    return sorted(names)

