"""
Permissions linter
"""

from typing import List

from ..models import Issue
from ..workflow import Workflow
from .base import Linter, NoOpFixer


class PermissionsLinter(NoOpFixer, Linter):
    """Reports workflows without a permissions configuration."""

    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        if wf.has_permissions():
            return []
        return [Issue(file=wf.base_name, line=0, message="Workflow is missing permissions configuration")]
