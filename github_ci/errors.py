"""
Exceptions raised by github-ci
"""


class GithubCIError(Exception):
    """Base class for all github-ci errors."""


class WorkflowParseError(GithubCIError, ValueError):
    """A workflow file could not be read or parsed."""


class ReferenceNotFoundError(GithubCIError, LookupError):
    """An action reference to replace was not found in the workflow."""


class ConfigError(GithubCIError, ValueError):
    """The configuration file is unreadable or invalid."""


class ResolutionError(GithubCIError):
    """A version or commit lookup against GitHub failed."""


class CancelledError(GithubCIError):
    """The run deadline expired or the run was cancelled."""


class LinterError(GithubCIError):
    """A linter failed while linting or fixing a workflow."""

    def __init__(self, linter: str, file: str, message: str):
        super().__init__(message)
        self.linter = linter
        self.file = file
