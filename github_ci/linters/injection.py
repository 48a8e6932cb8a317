"""
Injection linter

Untrusted event data expanded directly inside a run script becomes part of
the shell command:

    run: echo "${{ github.event.issue.title }}"

Such values have to be passed through an environment variable instead.
This linter has no automatic fix.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from ..models import Issue
from ..utils import count_leading_spaces, is_blank_or_comment
from ..workflow import Workflow
from .base import Linter, NoOpFixer

# Contexts an attacker can control; '*' matches any path segment(s)
DANGEROUS_CONTEXTS = [
    "github.event.issue.title",
    "github.event.issue.body",
    "github.event.pull_request.title",
    "github.event.pull_request.body",
    "github.event.pull_request.head.ref",
    "github.event.pull_request.head.label",
    "github.event.pull_request.head.repo.default_branch",
    "github.event.comment.body",
    "github.event.review.body",
    "github.event.review_comment.body",
    "github.event.discussion.title",
    "github.event.discussion.body",
    "github.event.head_commit.message",
    "github.event.head_commit.author.name",
    "github.event.head_commit.author.email",
    "github.event.commits[*].message",
    "github.event.commits[*].author.name",
    "github.event.commits[*].author.email",
    "github.head_ref",
    "github.event.pages[*].source.path",
    "github.event.*.author.name",
    "github.event.*.author.email",
]

STEP_CONFIG_KEYS = (
    "env:", "name:", "with:", "if:", "id:", "uses:",
    "continue-on-error:", "timeout-minutes:", "working-directory:",
    "shell:",
)

STEP_BOUNDARIES = ("- name:", "- uses:", "- run:", "- if:", "- id:")

BLOCK_SCALAR_INDICATORS = {"|", "|-", "|+", ">", ">-", ">+"}


def _compile_context(context: str):
    pattern = re.escape(context).replace(r'\*', r'[^}]+')
    return re.compile(r'\$\{\{\s*' + pattern + r'\s*\}\}')


DANGEROUS_PATTERNS = [_compile_context(context) for context in DANGEROUS_CONTEXTS]


@dataclass
class _ScanState:
    """Where the scanner is while walking the lines of a workflow."""

    in_run_block: bool = False
    in_env_block: bool = False
    run_block_indent: int = 0
    env_block_indent: int = 0


def is_run_command(stripped: str) -> bool:
    return stripped.startswith(("run:", "run :", "- run:", "- run :"))


def extract_run_content(stripped: str) -> str:
    """Get an inline run command ("" for block scalars)."""
    idx = stripped.find("run:")
    offset = 4
    if idx == -1:
        idx = stripped.find("run :")
        offset = 5
    if idx == -1:
        return ""

    content = stripped[idx + offset:].strip()
    if content in BLOCK_SCALAR_INDICATORS:
        return ""
    return content


def find_dangerous_expression(text: str) -> Optional[str]:
    """Return the first attacker-controlled expression in the text, if any."""
    if '${{' not in text:
        return None
    for pattern in DANGEROUS_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


class InjectionLinter(NoOpFixer, Linter):
    """Detects shell injection through GitHub context expressions in run scripts."""

    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        issues = []
        state = _ScanState()

        for i, line in enumerate(wf.lines()):
            expression = self._scan_line(line, state)
            if expression:
                message = (f"Potential shell injection: {expression} in run command. "
                           f"Use an environment variable instead")
                issues.append(Issue(file=wf.base_name, line=i + 1, message=message))

        return issues

    def _scan_line(self, line: str, state: _ScanState) -> Optional[str]:
        if is_blank_or_comment(line):
            return None

        stripped = line.strip()
        indent = count_leading_spaces(line)
        self._update_state(stripped, indent, state)

        if is_run_command(stripped):
            state.in_run_block = True
            state.in_env_block = False
            state.run_block_indent = indent
            return find_dangerous_expression(extract_run_content(stripped))

        if state.in_run_block and not state.in_env_block and not stripped.startswith(STEP_CONFIG_KEYS):
            return find_dangerous_expression(line)

        return None

    @staticmethod
    def _update_state(stripped: str, indent: int, state: _ScanState) -> None:
        if state.in_env_block and indent <= state.env_block_indent:
            state.in_env_block = False

        if stripped.startswith("env:"):
            state.in_env_block = True
            state.env_block_indent = indent
            return

        # A new step at the same level ends the run script
        if state.in_run_block and indent <= state.run_block_indent and stripped.startswith(STEP_BOUNDARIES):
            state.in_run_block = False
            state.in_env_block = False
