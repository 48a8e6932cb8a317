"""
Workflow linter orchestrating the enabled linter plugins
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .cache import Cache, CacheStats
from .config import LINTER_VERSIONS, Config, load_config
from .context import RunContext
from .errors import GithubCIError, LinterError
from .linters import LINTER_FACTORIES, Linter, VersionsLinter
from .models import Issue
from .resolver import ActionsClient, Resolver
from .workflow import Workflow


class WorkflowLinter:
    """Runs the enabled linters over a set of workflows.

    Without an explicit config the configuration file is loaded on the
    first lint() or fix() call. Unless a context is given, the run deadline
    comes from run.timeout. One resolver, and so one cache, is shared by
    every linter that talks to GitHub.
    """

    def __init__(self, workflows: Sequence[Workflow], config: Optional[Config] = None,
                 config_file: Optional[Union[str, Path]] = None, context: Optional[RunContext] = None,
                 resolver: Optional[Resolver] = None):
        self.workflows = list(workflows)
        self.config_file = config_file
        self.context: Optional[RunContext] = context
        self.resolver = resolver
        self.logger = logging.getLogger(__name__)

        self.config: Optional[Config] = None
        self.linters: Dict[str, Linter] = {}
        if config is not None:
            self._configure(config)

    def _configure(self, config: Config) -> None:
        """Build the linters enabled by the configuration."""
        self.config = config
        if self.context is None:
            self.context = RunContext(timeout=config.timeout)
        if self.resolver is None:
            self.resolver = ActionsClient(context=self.context, cache=Cache())

        self.linters = {
            name: factory(config, self.resolver)
            for name, factory in LINTER_FACTORIES.items()
            if config.is_linter_enabled(name)
        }
        self.logger.debug(f"Enabled linters: {', '.join(self.linters) or 'none'}")

    def _ensure_configured(self) -> Config:
        if self.config is None:
            self._configure(load_config(self.config_file))
        return self.config

    def lint(self) -> List[Issue]:
        """Run every enabled linter on every workflow and collect the issues."""
        config = self._ensure_configured()
        issues: List[Issue] = []

        for wf in self.workflows:
            for name, linter in self.linters.items():
                if not config.is_linter_enabled(name):
                    continue
                try:
                    found = linter.lint_workflow(wf)
                except (GithubCIError, ValueError, OSError) as e:
                    raise LinterError(name, wf.file, f"linter {name} failed on {wf.file}: {e}") from e

                for issue in found:
                    issue.linter = name
                issues.extend(found)

        self.logger.info(f"Found {len(issues)} issue(s) in {len(self.workflows)} workflow(s)")
        return issues

    def fix(self) -> None:
        """Run the fix of every enabled linter on every workflow."""
        config = self._ensure_configured()

        for wf in self.workflows:
            for name, linter in self.linters.items():
                if not config.is_linter_enabled(name):
                    continue
                try:
                    linter.fix_workflow(wf)
                except (GithubCIError, ValueError, OSError) as e:
                    raise LinterError(name, wf.file, f"linter {name} fix failed on {wf.file}: {e}") from e

    def cache_stats(self) -> CacheStats:
        """Cache statistics of the versions linter (zero when it is not enabled)."""
        linter = self.linters.get(LINTER_VERSIONS)
        if isinstance(linter, VersionsLinter):
            return linter.cache_stats()
        return CacheStats()


def classify_issues(original: Sequence[Issue], remaining: Sequence[Issue]) -> Tuple[List[Issue], List[Issue]]:
    """Split the issues of a first pass into fixed and unfixed ones.

    An issue is unfixed when an issue with the same identity is still
    reported after fixing.
    """
    remaining_keys = {issue.key() for issue in remaining}

    fixed: List[Issue] = []
    unfixed: List[Issue] = []
    for issue in original:
        if issue.key() in remaining_keys:
            unfixed.append(issue)
        else:
            fixed.append(issue)
    return fixed, unfixed
