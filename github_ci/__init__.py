"""
github-ci (GitHub Actions workflow linter and upgrader)

A Python tool that lints GitHub Actions workflows, pins actions to
commit hashes, and upgrades action versions through the GitHub API.
"""

__version__ = "1.0.0"
