"""
Style linter

Naming and layout conventions: workflow, job and step names, cryptic job
IDs, step field order, run script length and env shadowing.
"""

from typing import Any, Dict, List, Optional

from ..config import StyleSettings
from ..models import Issue, new_issue
from ..utils import count_leading_spaces, is_cryptic_name
from ..workflow import Workflow
from .base import Linter, NoOpFixer

CONTEXT_WORKFLOW = "Workflow"
CONTEXT_JOB = "Job"
CONTEXT_STEP = "Step"

# How far to look below a step start for its 'name:' field
NAME_LOOKAHEAD = 10


def _string_field(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


class StyleLinter(NoOpFixer, Linter):
    """Checks style and naming conventions of workflows."""

    def __init__(self, settings: Optional[StyleSettings] = None):
        self.settings = settings or StyleSettings()

    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        file = wf.base_name
        issues: List[Optional[Issue]] = []
        issues.extend(self._check_workflow_name(wf, file))
        issues.extend(self._check_jobs(wf, file))
        issues.extend(self._check_env_shadowing(wf, file))
        return [issue for issue in issues if issue is not None]

    def _check_workflow_name(self, wf: Workflow, file: str) -> List[Optional[Issue]]:
        name = wf.content.name
        if not name:
            return [Issue(file=file, line=1, message="Workflow is missing a name")]
        return [
            self._check_name_length(name, file, 1, CONTEXT_WORKFLOW),
            self._check_naming_convention(name, file, 1, CONTEXT_WORKFLOW),
        ]

    def _check_jobs(self, wf: Workflow, file: str) -> List[Optional[Issue]]:
        issues: List[Optional[Issue]] = []

        for job_id, job in wf.content.jobs.items():
            if not isinstance(job, dict):
                continue
            job_id = str(job_id)
            job_line = wf.find_job_line(job_id)
            job_name = _string_field(job, 'name')

            if not job_name:
                if is_cryptic_name(job_id):
                    issues.append(Issue(file=file, line=job_line,
                                        message=f"Job '{job_id}' has cryptic ID and is missing a name"))
            else:
                issues.append(self._check_name_length(job_name, file, job_line, CONTEXT_JOB))
                issues.append(self._check_naming_convention(job_name, file, job_line, CONTEXT_JOB))

            issues.extend(self._check_steps(wf, job, file, job_id))

        return issues

    def _check_steps(self, wf: Workflow, job: Dict[str, Any], file: str, job_id: str) -> List[Optional[Issue]]:
        steps = job.get('steps')
        if not isinstance(steps, list):
            return []

        issues: List[Optional[Issue]] = []
        lines = wf.lines()
        checkout_found = False

        for i, step in enumerate(steps):
            if not isinstance(step, dict):
                continue

            step_line = wf.find_step_line(job_id, i)
            step_name = _string_field(step, 'name')

            if not step_name:
                if self.settings.require_step_names:
                    issues.append(Issue(file=file, line=step_line, message="Step is missing a name"))
            else:
                issues.append(self._check_name_length(step_name, file, step_line, CONTEXT_STEP))
                issues.append(self._check_naming_convention(step_name, file, step_line, CONTEXT_STEP))

            if self.settings.checkout_first:
                is_checkout = 'actions/checkout' in _string_field(step, 'uses')
                if is_checkout and not checkout_found and i > 0:
                    issues.append(Issue(file=file, line=step_line,
                                        message="Checkout action should typically be the first step"))
                if is_checkout:
                    checkout_found = True

            issues.append(self._check_name_first(lines, step_line, file))
            issues.append(self._check_run_length(step, file, step_line))

        return issues

    def _check_env_shadowing(self, wf: Workflow, file: str) -> List[Optional[Issue]]:
        workflow_env = wf.extract_workflow_env()
        issues: List[Optional[Issue]] = []

        for job_id, job in wf.content.jobs.items():
            if not isinstance(job, dict):
                continue
            env = job.get('env')
            if not isinstance(env, dict):
                continue

            job_line = wf.find_job_line(str(job_id))
            for var_name in env:
                if str(var_name) in workflow_env:
                    issues.append(Issue(file=file, line=job_line,
                                        message=f"Job env var '{var_name}' shadows workflow-level env var"))

        return issues

    def _check_name_length(self, name: str, file: str, line: int, context: str) -> Optional[Issue]:
        min_length = self.settings.min_name_length
        max_length = self.settings.max_name_length

        message = ""
        if min_length > 0 and len(name) < min_length:
            message = f"{context} name '{name}' is too short (min {min_length} chars)"
        elif max_length > 0 and len(name) > max_length:
            message = f"{context} name exceeds maximum length of {max_length} characters"
        return new_issue(file, line, message)

    def _check_naming_convention(self, name: str, file: str, line: int, context: str) -> Optional[Issue]:
        words = name.split()
        if not words:
            return None

        message = ""
        if self.settings.naming_convention == "title":
            if any(not word[0].isupper() for word in words):
                message = f"{context} name should use Title Case"
        elif self.settings.naming_convention == "sentence":
            if not words[0][0].isupper():
                message = f"{context} name should start with uppercase (sentence case)"
        return new_issue(file, line, message)

    @staticmethod
    def _check_name_first(lines: List[str], step_line: int, file: str) -> Optional[Issue]:
        """Report a step whose 'name' is not its first field."""
        if step_line <= 0 or step_line > len(lines):
            return None

        idx = step_line - 1
        start = lines[idx]
        stripped = start.strip()
        if not stripped.startswith('- ') or stripped.startswith('- name:'):
            return None

        indent = count_leading_spaces(start)
        for next_line in lines[idx + 1:idx + NAME_LOOKAHEAD]:
            next_stripped = next_line.strip()
            if next_stripped.startswith('- ') or count_leading_spaces(next_line) <= indent:
                break
            if next_stripped.startswith('name:'):
                return Issue(file=file, line=step_line, message="Step 'name' should come first before other fields")

        return None

    def _check_run_length(self, step: Dict[str, Any], file: str, line: int) -> Optional[Issue]:
        max_lines = self.settings.max_run_lines
        if max_lines <= 0:
            return None

        script = _string_field(step, 'run')
        if not script:
            return None

        line_count = script.strip().count('\n') + 1
        if line_count <= max_lines:
            return None
        return Issue(file=file, line=line,
                     message=f"Run script has {line_count} lines (max {max_lines}); "
                             f"consider extracting to a script file")
