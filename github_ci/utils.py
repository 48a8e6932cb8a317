"""
Utility functions for github-ci
"""

import logging
import re
import sys
from pathlib import Path
from typing import List

WORKFLOW_EXTENSIONS = ('.yml', '.yaml')

# Names like job1, j1, abc
_CRYPTIC_ENDS_WITH_NUMBER = re.compile(r'[a-z]+\d+')
_CRYPTIC_SHORT_LOWERCASE = re.compile(r'[a-z]{1,4}')


def setup_logging(verbosity: int) -> None:
    """Set up logging based on verbosity level."""
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    # Configure logging format
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if verbosity >= 2:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )

    # Reduce noise from external libraries
    if verbosity < 3:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)


def is_workflow_file(path: Path) -> bool:
    """Check if a path has a workflow file extension."""
    return path.suffix.lower() in WORKFLOW_EXTENSIONS


def find_workflow_files(directory: Path) -> List[Path]:
    """Find the workflow files directly inside a directory, sorted by name."""
    workflow_files = [
        path for path in directory.iterdir()
        if path.is_file() and is_workflow_file(path)
    ]
    workflow_files.sort()
    return workflow_files


def is_blank_or_comment(line: str) -> bool:
    """Check if a line is blank or a YAML comment."""
    stripped = line.strip()
    return not stripped or stripped.startswith('#')


def count_leading_spaces(line: str) -> int:
    """Count the leading spaces of a line."""
    return len(line) - len(line.lstrip(' '))


def has_trailing_whitespace(line: str) -> bool:
    """Check if a line ends with spaces or tabs."""
    return line.endswith((' ', '\t'))


def is_cryptic_name(name: str) -> bool:
    """Check if an identifier looks cryptic (e.g. job1, j1, abc)."""
    if len(name) < 3:
        return True
    if _CRYPTIC_ENDS_WITH_NUMBER.fullmatch(name):
        return True
    if _CRYPTIC_SHORT_LOWERCASE.fullmatch(name):
        return True
    return False
