import stat

import pytest

from github_ci.config import (
    ALL_LINTERS,
    ActionConfig,
    Config,
    FormatSettings,
    load_config,
    normalize_action_name,
    parse_duration,
    save_config,
    should_update,
)
from github_ci.errors import ConfigError


def write_config(tmp_path, text):
    path = tmp_path / ".github-ci.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "missing.yaml")

    assert all(cfg.is_linter_enabled(name) for name in ALL_LINTERS)
    assert cfg.timeout == 300.0
    assert cfg.issues_exit_code == 1
    assert cfg.format_settings == FormatSettings(indent_width=2, max_line_length=120)
    assert cfg.version_format == "tag"
    assert cfg.get_action_config("actions/checkout").version == "^1.0.0"


def test_empty_file_gives_defaults(tmp_path):
    cfg = load_config(write_config(tmp_path, ""))
    assert cfg == Config()


def test_linter_selection(tmp_path):
    cfg = load_config(write_config(tmp_path, """\
linters:
  default: none
  enable: [versions, format]
  disable: [format]
"""))

    assert cfg.is_linter_enabled("versions")
    assert not cfg.is_linter_enabled("format")
    assert not cfg.is_linter_enabled("style")


def test_disable_wins_with_default_all(tmp_path):
    cfg = load_config(write_config(tmp_path, "linters:\n  disable: [secrets]\n"))
    assert not cfg.is_linter_enabled("secrets")
    assert cfg.is_linter_enabled("injection")


def test_settings_and_run_section(tmp_path):
    cfg = load_config(write_config(tmp_path, """\
run:
  timeout: 1m30s
  issues-exit-code: 3
linters:
  settings:
    format:
      indent-width: 4
    style:
      naming-convention: title
      max-run-lines: 10
upgrade:
  version: hash
  actions:
    actions/checkout:
      version: ^3.0.0
    actions/setup-go:
"""))

    assert cfg.timeout == 90.0
    assert cfg.issues_exit_code == 3
    assert cfg.format_settings.indent_width == 4
    assert cfg.format_settings.max_line_length == 120
    assert cfg.style_settings.naming_convention == "title"
    assert cfg.style_settings.max_run_lines == 10
    assert cfg.style_settings.min_name_length == 3
    assert cfg.version_format == "hash"
    assert cfg.get_action_config("actions/checkout").version == "^3.0.0"
    assert cfg.get_action_config("actions/setup-go").version == "^1.0.0"
    assert cfg.get_action_config("actions/checkout@v3").version == "^3.0.0"
    assert cfg.has_action_config("actions/setup-go")
    assert not cfg.has_action_config("actions/cache")


@pytest.mark.parametrize("text", [
    "linters:\n  enable: [bogus]\n",
    "linters:\n  default: some\n",
    "linters:\n  settings:\n    format:\n      indent-width: 0\n",
    "linters:\n  settings:\n    style:\n      naming-convention: camel\n",
    "linters:\n  settings:\n    style:\n      min-name-length: 10\n      max-name-length: 5\n",
    "run:\n  timeout: soon\n",
    "run:\n  issues-exit-code: 300\n",
    "upgrade:\n  version: latest\n",
    "upgrade: [tag]\n",
    "- not\n- a mapping\n",
    "linters: [unclosed\n",
])
def test_invalid_config(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, text))


def test_parse_duration():
    assert parse_duration("30s") == 30.0
    assert parse_duration("2m") == 120.0
    assert parse_duration("1h30m") == 5400.0
    assert parse_duration("500ms") == 0.5
    with pytest.raises(ValueError):
        parse_duration("5x")
    with pytest.raises(ValueError):
        parse_duration("")


def test_save_and_load(tmp_path):
    cfg = Config.full_default()
    cfg.set_action_config("actions/checkout", ActionConfig())
    path = tmp_path / "config.yaml"

    save_config(cfg, path)
    loaded = load_config(path)

    assert loaded == cfg
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert path.read_text(encoding="utf-8").startswith("run:\n")


@pytest.mark.parametrize("current, new, pattern, expected", [
    ("v1.0.0", "v1.1.0", "^1.0.0", True),
    ("v1.0.0", "v3.0.0", "^1.0.0", True),
    ("v2.0.0", "v1.9.0", "", False),
    ("v2.0.0", "v3.0.0", "^2.0.0", False),
    ("v2.1.0", "v2.1.5", "~2.1.0", True),
    ("v2.1.0", "v2.2.0", "~2.1.0", False),
    ("v1.0.0", "v1.0.0", "", False),
])
def test_should_update(current, new, pattern, expected):
    assert should_update(current, new, pattern) is expected


def test_normalize_action_name():
    assert normalize_action_name("actions/checkout@v3") == "actions/checkout"
    assert normalize_action_name("actions/checkout") == "actions/checkout"
