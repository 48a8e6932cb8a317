import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import __version__
from .cache import Cache
from .config import DEFAULT_CONFIG_FILE_NAME, ActionConfig, Config, load_config, save_config
from .context import RunContext
from .errors import ConfigError, GithubCIError, WorkflowParseError
from .linter import WorkflowLinter, classify_issues
from .linters import supports_auto_fix
from .models import Issue
from .resolver import ActionsClient
from .upgrade import Upgrader, discover_actions
from .utils import setup_logging
from .workflow import Workflow, load_workflow, load_workflows

DEFAULT_WORKFLOWS_PATH = ".github/workflows"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="github-ci",
        description="github-ci (GitHub Actions workflow linter and upgrader)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s lint
  %(prog)s lint .github/workflows/ci.yml --fix
  %(prog)s upgrade --dry-run
  %(prog)s init --config .github-ci.yaml
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase verbosity (use -v, -vv, or -vvv)"
    )

    # GitHub API options
    parser.add_argument(
        "--github-token",
        help="GitHub API token (or set GITHUB_TOKEN environment variable)"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    lint_parser = subparsers.add_parser(
        "lint",
        help="Lint GitHub Actions workflows",
        description="""Analyze workflows using the configured linters:
  versions     actions using version tags instead of commit hashes
  permissions  missing permissions configuration
  format       indentation, blank lines, trailing whitespace, line length
  secrets      hardcoded secrets
  injection    shell injection through untrusted event data
  style        naming and layout conventions""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_common_arguments(lint_parser)
    lint_parser.add_argument(
        "--fix",
        action="store_true",
        help="Automatically fix issues where possible"
    )
    lint_parser.set_defaults(func=run_lint)

    upgrade_parser = subparsers.add_parser(
        "upgrade",
        help="Upgrade actions to their latest allowed versions"
    )
    _add_common_arguments(upgrade_parser)
    upgrade_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes"
    )
    upgrade_parser.set_defaults(func=run_upgrade)

    init_parser = subparsers.add_parser(
        "init",
        help="Create a configuration file for the workflows"
    )
    _add_common_arguments(init_parser)
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing configuration file"
    )
    init_parser.set_defaults(func=run_init)

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path(DEFAULT_WORKFLOWS_PATH),
        help=f"Workflow file or directory (default: {DEFAULT_WORKFLOWS_PATH})"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help=f"Configuration file (default: {DEFAULT_CONFIG_FILE_NAME})"
    )


def load_workflows_from_path(path: Path) -> List[Workflow]:
    """Load a single workflow file or every workflow in a directory."""
    if path.is_file():
        return [load_workflow(path)]
    if path.is_dir():
        return load_workflows(path)
    raise WorkflowParseError(f"Workflow path not found: {path}")


def _create_resolver(args: argparse.Namespace, config: Config) -> ActionsClient:
    context = RunContext(timeout=config.timeout)
    return ActionsClient(context=context, cache=Cache(), token=args.github_token)


def print_issues(header: str, issues: Sequence[Issue]) -> None:
    """Print a labeled section of issues."""
    if not issues:
        return
    print(header)
    for issue in issues:
        print(f"  {issue}")


def print_issue_summary(count: int) -> None:
    print(f"\n{count} issue(s).")


def run_lint(args: argparse.Namespace) -> int:
    """Lint workflows, optionally fixing what can be fixed."""
    config = load_config(args.config)
    workflows = load_workflows_from_path(args.path)
    logging.info(f"Found {len(workflows)} workflow file(s) to lint")

    resolver = _create_resolver(args, config)
    linter = WorkflowLinter(workflows, config=config, context=resolver.context, resolver=resolver)

    try:
        issues = linter.lint()
    except GithubCIError as e:
        print(f"failed to lint workflows: {e}", file=sys.stderr)
        return 1

    if not issues:
        print("0 issues.")
        return 0

    if args.fix:
        return _lint_with_fix(linter, issues, config.issues_exit_code)

    print_issues("Issues:", issues)

    # Only suggest --fix when at least one issue can be fixed
    if any(supports_auto_fix(issue.linter) for issue in issues):
        print("\nRun with --fix to automatically fix some issues")

    print_issue_summary(len(issues))
    return config.issues_exit_code


def _lint_with_fix(linter: WorkflowLinter, issues: List[Issue], issues_exit_code: int) -> int:
    """Fix, re-lint and report fixed and remaining issues separately."""
    try:
        linter.fix()
    except GithubCIError as e:
        print(f"failed to fix workflows: {e}", file=sys.stderr)
        return 1

    try:
        remaining = linter.lint()
    except GithubCIError as e:
        print(f"failed to re-lint workflows: {e}", file=sys.stderr)
        return 1

    fixed, unfixed = classify_issues(issues, remaining)

    print_issues("Fixed:", fixed)
    if fixed and unfixed:
        print()
    print_issues("Issues:", unfixed)

    stats = linter.cache_stats()
    if stats.hits or stats.misses:
        print(f"\nCache: {stats.hits} hit(s), {stats.misses} miss(es)")

    print_issue_summary(len(unfixed))
    return issues_exit_code if unfixed else 0


def run_upgrade(args: argparse.Namespace) -> int:
    """Upgrade actions to the newest versions their patterns allow."""
    config = load_config(args.config)
    workflows = load_workflows_from_path(args.path)
    logging.info(f"Found {len(workflows)} workflow file(s) to upgrade")

    upgrader = Upgrader(config, _create_resolver(args, config), dry_run=args.dry_run)
    results = upgrader.upgrade(workflows)

    if results.upgrades:
        print("Available upgrades:" if args.dry_run else "Upgraded:")
        for upgrade in results.upgrades:
            print(f"  {upgrade}")
    elif not results.errors:
        print("All actions are up to date.")

    if results.errors:
        print("Errors:")
        for error in results.errors:
            print(f"  {error}")

    # Print summary
    print(f"\nSummary:")
    print(f"  Processed files: {len(workflows)}")
    print(f"  Actions {'to upgrade' if args.dry_run else 'upgraded'}: {len(results.upgrades)}")
    if results.errors:
        print(f"  Errors: {len(results.errors)}")

    return 0 if not results.errors else 1


def run_init(args: argparse.Namespace) -> int:
    """Write a configuration file listing every action the workflows use."""
    config_path = args.config or Path(DEFAULT_CONFIG_FILE_NAME)
    if config_path.exists() and not args.force:
        raise ConfigError(f"{config_path} already exists (use --force to overwrite)")

    workflows = load_workflows_from_path(args.path)

    config = Config.full_default()
    actions = discover_actions(workflows)
    for name in actions:
        config.set_action_config(name, ActionConfig())

    save_config(config, config_path)
    print(f"Created {config_path} with {len(actions)} action(s)")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    try:
        return args.func(args)
    except GithubCIError as e:
        logging.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
