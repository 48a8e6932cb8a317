"""
Format linter

Line-oriented YAML formatting checks: indentation, blank lines, trailing
whitespace and line length. The fix rewrites the file in one pass.
"""

import logging
from typing import List, Optional

from ..config import FormatSettings
from ..models import Issue
from ..utils import count_leading_spaces, has_trailing_whitespace, is_blank_or_comment
from ..workflow import Workflow
from .base import Linter


class FormatLinter(Linter):
    """Checks YAML formatting of workflow files."""

    def __init__(self, settings: Optional[FormatSettings] = None):
        self.settings = settings or FormatSettings()
        self.logger = logging.getLogger(__name__)

    @property
    def indent_width(self) -> int:
        return self.settings.indent_width

    def lint_workflow(self, wf: Workflow) -> List[Issue]:
        file = wf.base_name
        lines = wf.lines()
        min_indent = find_min_indentation(lines)

        issues = []
        prev_indent = 0
        prev_was_blank = False

        for i, line in enumerate(lines):
            line_num = i + 1
            stripped = line.strip()
            is_blank = not stripped

            if is_blank and prev_was_blank:
                issues.append(Issue(file=file, line=line_num, message="Multiple consecutive blank lines found"))

            if has_trailing_whitespace(line):
                issues.append(Issue(file=file, line=line_num, message="Line has trailing whitespace"))

            message = self._check_line_length(line)
            if message:
                issues.append(Issue(file=file, line=line_num, message=message))

            # Indentation rules skip blank lines and comments
            if not is_blank and not stripped.startswith('#'):
                leading_spaces = count_leading_spaces(line)
                message = self._check_indentation(line, leading_spaces, min_indent, prev_indent)
                if message:
                    issues.append(Issue(file=file, line=line_num, message=message))
                prev_indent = leading_spaces

            prev_was_blank = is_blank

        return issues

    def _check_line_length(self, line: str) -> str:
        max_length = self.settings.max_line_length
        if max_length <= 0 or len(line) <= max_length:
            return ""
        return f"Line exceeds maximum length of {max_length} characters (found {len(line)})"

    def _check_indentation(self, line: str, leading_spaces: int, min_indent: int, prev_indent: int) -> str:
        """Return the indentation problem of a line, or an empty string."""
        width = self.indent_width
        if width <= 0:
            return ""

        if line.startswith('\t'):
            return f"Line uses tabs for indentation, expected {width} spaces"

        if leading_spaces > 0 and leading_spaces % width != 0:
            return f"Line indentation is {leading_spaces} spaces, expected multiple of {width}"

        if min_indent > 0 and min_indent != width and leading_spaces == min_indent:
            return f"Line uses {leading_spaces} spaces for base indentation, expected {width} spaces"

        if leading_spaces > prev_indent:
            increase = leading_spaces - prev_indent
            if increase != width:
                return (f"Line indentation increased by {increase} spaces, expected increase of "
                        f"{width} (should be {prev_indent + width} spaces)")

        return ""

    def fix_workflow(self, wf: Workflow) -> None:
        original = wf.text
        wf.normalize_comment_spacing()
        fixed = self.fix_lines(wf.lines())

        # The file ends with exactly one newline
        while fixed and not fixed[-1].strip():
            fixed.pop()
        content = '\n'.join(fixed) + '\n'

        if content == original:
            return
        wf.set_text(content)
        wf.save()

    def fix_lines(self, lines: List[str]) -> List[str]:
        """Apply the formatting fixes to a list of lines."""
        fixed: List[str] = []
        prev_was_blank = False
        prev_indent = 0

        for line in lines:
            line = line.rstrip(' \t')
            line = self._fix_indentation(line, prev_indent)

            if not line.strip():
                # Keep only the first of consecutive blank lines
                if not prev_was_blank:
                    fixed.append(line)
                prev_was_blank = True
                continue

            fixed.append(line)
            prev_was_blank = False
            prev_indent = count_leading_spaces(line)

        return fixed

    def _fix_indentation(self, line: str, prev_indent: int) -> str:
        """Reduce an indentation jump larger than one step to exactly one step."""
        width = self.indent_width
        if width <= 0 or is_blank_or_comment(line):
            return line

        leading_spaces = count_leading_spaces(line)
        if leading_spaces - prev_indent <= width:
            return line

        return ' ' * (prev_indent + width) + line.lstrip(' \t')


def find_min_indentation(lines: List[str]) -> int:
    """Find the smallest non-zero indentation of the content lines (-1 if none)."""
    min_indent = -1
    for line in lines:
        if is_blank_or_comment(line):
            continue
        spaces = count_leading_spaces(line)
        if spaces > 0 and (min_indent == -1 or spaces < min_indent):
            min_indent = spaces
    return min_indent
