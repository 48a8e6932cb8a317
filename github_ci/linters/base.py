"""
Linter plugin contract and registry
"""

from abc import ABC, abstractmethod
from typing import Callable, List

from ..config import LINTER_FORMAT, LINTER_VERSIONS, Config
from ..models import Issue
from ..resolver import Resolver
from ..workflow import Workflow


class Linter(ABC):
    """A check run against each workflow file."""

    @abstractmethod
    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        """Check a workflow and return the issues found, in line order."""

    @abstractmethod
    def fix_workflow(self, wf: Workflow) -> None:
        """Fix the issues this linter can fix, persisting the workflow."""


class NoOpFixer:
    """Mixin for linters without automatic fixing."""

    def fix_workflow(self, wf: Workflow) -> None:
        return None


LinterFactory = Callable[[Config, Resolver], Linter]

# Linters whose fix_workflow can resolve their issues
AUTO_FIX_LINTERS = frozenset([LINTER_VERSIONS, LINTER_FORMAT])


def supports_auto_fix(name: str) -> bool:
    """Check if the named linter can fix its issues automatically."""
    return name in AUTO_FIX_LINTERS
