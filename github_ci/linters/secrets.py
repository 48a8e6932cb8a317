"""
Secrets linter

Flags values that look like hardcoded credentials. Lines that reference
${{ secrets.* }} or ${{ env.* }} are left alone.
"""

import re
from typing import List, Optional

from ..models import Issue
from ..utils import is_blank_or_comment
from ..workflow import Workflow
from .base import Linter, NoOpFixer

SECRET_PATTERNS = [
    (re.compile(r'(?i)(api[_-]?key|apikey)\s*[:=]\s*[\'"]?[a-zA-Z0-9]{20,}[\'"]?'), "API key"),
    (re.compile(r'(?i)(token|access[_-]?token)\s*[:=]\s*[\'"]?[a-zA-Z0-9]{20,}[\'"]?'), "Token"),
    (re.compile(r'(?i)(secret|secret[_-]?key)\s*[:=]\s*[\'"]?[a-zA-Z0-9]{20,}[\'"]?'), "Secret"),
    (re.compile(r'(?i)(password|passwd|pwd)\s*[:=]\s*[\'"]?.{8,}[\'"]?'), "Password"),
    (re.compile(r'(?i)aws[_-]?(access[_-]?key[_-]?id|secret[_-]?access[_-]?key)'
                r'\s*[:=]\s*[\'"]?[A-Z0-9]{20,}[\'"]?'), "AWS key"),
    (re.compile(r'(?i)ghp_[a-zA-Z0-9]{36}'), "GitHub personal access token"),
    (re.compile(r'(?i)github[_-]?token\s*[:=]\s*[\'"]?[a-zA-Z0-9]{20,}[\'"]?'), "GitHub token"),
    (re.compile(r'-----BEGIN\s+(RSA\s+)?PRIVATE\s+KEY-----'), "Private key"),
    (re.compile(r'(?i)(key|credential|auth)\s*[:=]\s*[\'"]?[a-zA-Z0-9+/=]{32,}[\'"]?'), "Potential credential"),
]


def is_secret_reference(line: str) -> bool:
    """Check if a line takes its value from a secrets or env expression."""
    if '${{' not in line:
        return False
    return 'secrets.' in line or 'env.' in line


class SecretsLinter(NoOpFixer, Linter):
    """Detects hardcoded secrets in workflow files."""

    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        issues = []
        for i, line in enumerate(wf.lines()):
            name = self._detect(line)
            if name:
                issues.append(Issue(file=wf.base_name, line=i + 1,
                                    message=f"Potential hardcoded {name} detected"))
        return issues

    @staticmethod
    def _detect(line: str) -> Optional[str]:
        """Name the first kind of secret found on a line, if any."""
        if is_blank_or_comment(line) or is_secret_reference(line):
            return None
        for pattern, name in SECRET_PATTERNS:
            if pattern.search(line):
                return name
        return None
