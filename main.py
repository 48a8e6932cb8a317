#!/usr/bin/env python3
"""
github-ci (GitHub Actions workflow linter and upgrader) - Main Entry Point
"""

import sys
from github_ci.cli import main

if __name__ == "__main__":
    sys.exit(main())
