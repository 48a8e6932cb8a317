import pytest

from github_ci import __version__, cli
from github_ci.config import load_config

SHA = "b4ffde65f46336ab88eb53be808477a3936bae11"

CLEAN_WORKFLOW = """\
name: Build Pipeline
on: push
permissions:
  contents: read
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - run: make
"""


@pytest.fixture(autouse=True)
def in_tmp_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


def write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


def test_lint_clean(workflows_dir, capsys):
    write(workflows_dir / "ci.yml", CLEAN_WORKFLOW)

    assert cli.main(["lint", str(workflows_dir)]) == 0
    assert capsys.readouterr().out == "0 issues.\n"


def test_lint_reports_issues(workflows_dir, tmp_path, capsys):
    write(workflows_dir / "ci.yml", CLEAN_WORKFLOW.replace("permissions:\n  contents: read\n", ""))
    config = write(tmp_path / "cfg.yaml", "linters:\n  default: none\n  enable: [permissions]\n")

    assert cli.main(["lint", str(workflows_dir), "--config", str(config)]) == 1

    out = capsys.readouterr().out
    assert out == (
        "Issues:\n"
        "  ci.yml: (permissions) Workflow is missing permissions configuration\n"
        "\n1 issue(s).\n"
    )


def test_lint_suggests_fix_for_fixable_issues(workflows_dir, capsys):
    write(workflows_dir / "ci.yml", CLEAN_WORKFLOW.replace("- run: make", "- uses: actions/checkout@v4"))

    assert cli.main(["lint", str(workflows_dir / "ci.yml")]) == 1

    out = capsys.readouterr().out
    assert "ci.yml:9: (versions) Action actions/checkout@v4 uses version tag 'v4' instead of commit hash" in out
    assert "\nRun with --fix to automatically fix some issues\n" in out


def test_lint_uses_configured_exit_code(workflows_dir, tmp_path):
    write(workflows_dir / "ci.yml", "on: push\n")
    config = write(tmp_path / "cfg.yaml", "run:\n  issues-exit-code: 3\n")

    assert cli.main(["lint", str(workflows_dir), "-c", str(config)]) == 3


def test_lint_fix(workflows_dir, tmp_path, capsys):
    path = write(workflows_dir / "ci.yml", CLEAN_WORKFLOW.replace("on: push", "on: push   "))
    config = write(tmp_path / "cfg.yaml", "linters:\n  default: none\n  enable: [format]\n")

    assert cli.main(["lint", str(workflows_dir), "--fix", "--config", str(config)]) == 0

    out = capsys.readouterr().out
    assert out == (
        "Fixed:\n"
        "  ci.yml:2: (format) Line has trailing whitespace\n"
        "\n0 issue(s).\n"
    )
    assert path.read_text(encoding="utf-8") == CLEAN_WORKFLOW


def test_lint_fix_reports_remaining(workflows_dir, tmp_path, capsys):
    write(workflows_dir / "ci.yml", "on: push   \njobs: {}\n")
    config = write(tmp_path / "cfg.yaml", "linters:\n  default: none\n  enable: [format, permissions]\n")

    assert cli.main(["lint", str(workflows_dir), "--fix", "--config", str(config)]) == 1

    out = capsys.readouterr().out
    assert "Fixed:\n  ci.yml:1: (format) Line has trailing whitespace\n\nIssues:\n" in out
    assert out.endswith("\n1 issue(s).\n")


def test_lint_missing_path(tmp_path, capsys):
    assert cli.main(["lint", str(tmp_path / "nowhere")]) == 1
    assert "Error: Workflow path not found" in capsys.readouterr().err


def test_invalid_config(workflows_dir, tmp_path, capsys):
    write(workflows_dir / "ci.yml", CLEAN_WORKFLOW)
    config = write(tmp_path / "cfg.yaml", "linters:\n  enable: [nonsense]\n")

    assert cli.main(["lint", str(workflows_dir), "--config", str(config)]) == 1
    assert "unknown linter 'nonsense'" in capsys.readouterr().err


def test_init_writes_config(workflows_dir, tmp_path, capsys):
    write(workflows_dir / "ci.yml", "steps:\n  - uses: actions/checkout@v4\n  - uses: ./local\n")
    config = tmp_path / ".github-ci.yaml"

    assert cli.main(["init", str(workflows_dir)]) == 0

    cfg = load_config(config)
    assert list(cfg.upgrade.actions) == ["actions/checkout"]
    assert cfg.get_action_config("actions/checkout").version == "^1.0.0"
    assert cfg.style_settings.max_name_length == 50
    assert "with 1 action(s)" in capsys.readouterr().out

    assert cli.main(["init", str(workflows_dir)]) == 1
    assert "already exists" in capsys.readouterr().err
    assert cli.main(["init", str(workflows_dir), "--force"]) == 0


def test_upgrade_dry_run(workflows_dir, resolver, monkeypatch, capsys):
    path = write(workflows_dir / "ci.yml", "steps:\n  - uses: actions/checkout@v3\n")
    resolver.unconstrained[("actions", "checkout")] = ("v4.1.1", SHA)
    monkeypatch.setattr(cli, "_create_resolver", lambda args, config: resolver)

    assert cli.main(["upgrade", str(workflows_dir), "--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "Available upgrades:\n  ci.yml:2: actions/checkout v3 -> v4.1.1\n" in out
    assert "Actions to upgrade: 1" in out
    assert path.read_text(encoding="utf-8") == "steps:\n  - uses: actions/checkout@v3\n"


def test_upgrade_counts_failures(workflows_dir, resolver, monkeypatch, capsys):
    write(workflows_dir / "ci.yml", "steps:\n  - uses: actions/checkout@v3\n")
    monkeypatch.setattr(cli, "_create_resolver", lambda args, config: resolver)

    assert cli.main(["upgrade", str(workflows_dir)]) == 1

    out = capsys.readouterr().out
    assert "Errors:\n  ci.yml: actions/checkout: no tags found for actions/checkout\n" in out
    assert "Errors: 1" in out


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out
