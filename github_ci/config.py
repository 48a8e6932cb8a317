"""
Configuration file handling for github-ci

The configuration lives in a YAML file (".github-ci.yaml" by default):

    run:
      timeout: 5m
      issues-exit-code: 1
    linters:
      default: all
      enable: []
      disable: []
      settings:
        format:
          indent-width: 2
          max-line-length: 120
        style:
          min-name-length: 3
          max-name-length: 50
    upgrade:
      version: tag
      actions:
        actions/checkout:
          version: ^1.0.0
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from . import version
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_NAME = ".github-ci.yaml"

# Linter names
LINTER_VERSIONS = "versions"
LINTER_PERMISSIONS = "permissions"
LINTER_FORMAT = "format"
LINTER_SECRETS = "secrets"
LINTER_INJECTION = "injection"
LINTER_STYLE = "style"

ALL_LINTERS = [
    LINTER_VERSIONS,
    LINTER_PERMISSIONS,
    LINTER_FORMAT,
    LINTER_SECRETS,
    LINTER_INJECTION,
    LINTER_STYLE,
]

DEFAULT_TIMEOUT = 5 * 60.0
DEFAULT_ISSUES_EXIT_CODE = 1
DEFAULT_LINTER_DEFAULT = "all"
DEFAULT_VERSION_PATTERN = "^1.0.0"
DEFAULT_UPGRADE_VERSION = "tag"

VALID_LINTER_DEFAULTS = ["all", "none"]
VALID_VERSION_FORMATS = ["tag", "hash", "major"]
VALID_NAMING_CONVENTIONS = ["", "title", "sentence"]

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

PathLike = Union[str, Path]


def parse_duration(value: str) -> float:
    """Parse a duration string such as "30s", "2m" or "1h30m" into seconds."""
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return total


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Get a nested mapping, treating a missing or null section as empty."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be a mapping")
    return value


def _int_setting(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return value


def _bool_setting(data: Dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _list_setting(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{key} must be a list")
    return [str(item) for item in value]


@dataclass
class RunConfig:
    """General runtime settings."""

    timeout: str = ""
    issues_exit_code: int = 0

    def validate(self) -> None:
        if self.timeout:
            try:
                parse_duration(self.timeout)
            except ValueError as e:
                raise ConfigError(f"invalid timeout {self.timeout!r}: {e}") from e
        if self.issues_exit_code != 0 and not 1 <= self.issues_exit_code <= 255:
            raise ConfigError(f"issues-exit-code must be between 1 and 255, got {self.issues_exit_code}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfig":
        timeout = data.get('timeout')
        return cls(
            timeout="" if timeout is None else str(timeout),
            issues_exit_code=_int_setting(data, 'issues-exit-code', 0),
        )

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {}
        if self.timeout:
            result['timeout'] = self.timeout
        if self.issues_exit_code:
            result['issues-exit-code'] = self.issues_exit_code
        return result


@dataclass
class FormatSettings:
    """Settings for the format linter."""

    indent_width: int = 2
    max_line_length: int = 120

    def validate(self) -> None:
        if self.indent_width <= 0:
            raise ConfigError(f"format.indent-width must be positive, got {self.indent_width}")
        if self.max_line_length < 0:
            raise ConfigError(f"format.max-line-length must not be negative, got {self.max_line_length}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormatSettings":
        defaults = cls()
        return cls(
            indent_width=_int_setting(data, 'indent-width', defaults.indent_width),
            max_line_length=_int_setting(data, 'max-line-length', defaults.max_line_length),
        )

    def to_dict(self) -> dict:
        return {
            'indent-width': self.indent_width,
            'max-line-length': self.max_line_length,
        }


@dataclass
class StyleSettings:
    """Settings for the style linter.

    naming_convention is "title" (Every Word Capitalized), "sentence"
    (First word capitalized) or "" for no enforcement. max_run_lines of 0
    disables the run script length check.
    """

    min_name_length: int = 3
    max_name_length: int = 50
    naming_convention: str = ""
    checkout_first: bool = False
    require_step_names: bool = False
    max_run_lines: int = 0

    def validate(self) -> None:
        if self.min_name_length < 0 or self.max_name_length < 0:
            raise ConfigError("style name length bounds must not be negative")
        if self.max_name_length and self.min_name_length > self.max_name_length:
            raise ConfigError(
                f"style.min-name-length ({self.min_name_length}) exceeds "
                f"style.max-name-length ({self.max_name_length})"
            )
        if self.naming_convention not in VALID_NAMING_CONVENTIONS:
            raise ConfigError(
                f"style.naming-convention must be \"title\" or \"sentence\", got {self.naming_convention!r}"
            )
        if self.max_run_lines < 0:
            raise ConfigError(f"style.max-run-lines must not be negative, got {self.max_run_lines}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StyleSettings":
        defaults = cls()
        convention = data.get('naming-convention')
        return cls(
            min_name_length=_int_setting(data, 'min-name-length', defaults.min_name_length),
            max_name_length=_int_setting(data, 'max-name-length', defaults.max_name_length),
            naming_convention="" if convention is None else str(convention),
            checkout_first=_bool_setting(data, 'checkout-first', defaults.checkout_first),
            require_step_names=_bool_setting(data, 'require-step-names', defaults.require_step_names),
            max_run_lines=_int_setting(data, 'max-run-lines', defaults.max_run_lines),
        )

    def to_dict(self) -> dict:
        return {
            'min-name-length': self.min_name_length,
            'max-name-length': self.max_name_length,
            'naming-convention': self.naming_convention,
            'checkout-first': self.checkout_first,
            'require-step-names': self.require_step_names,
            'max-run-lines': self.max_run_lines,
        }


@dataclass
class LinterConfig:
    """Which linters run, and their settings. Disable wins over enable."""

    default: str = DEFAULT_LINTER_DEFAULT
    enable: List[str] = field(default_factory=list)
    disable: List[str] = field(default_factory=list)
    format: Optional[FormatSettings] = None
    style: Optional[StyleSettings] = None

    def validate(self) -> None:
        if self.default and self.default not in VALID_LINTER_DEFAULTS:
            raise ConfigError(f"linters.default must be \"all\" or \"none\", got {self.default!r}")
        for name in self.enable:
            if name not in ALL_LINTERS:
                raise ConfigError(f"unknown linter {name!r} in linters.enable")
        for name in self.disable:
            if name not in ALL_LINTERS:
                raise ConfigError(f"unknown linter {name!r} in linters.disable")
        if self.format is not None:
            self.format.validate()
        if self.style is not None:
            self.style.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinterConfig":
        settings = _section(data, 'settings')
        default = data.get('default')
        return cls(
            default=DEFAULT_LINTER_DEFAULT if default is None else str(default),
            enable=_list_setting(data, 'enable'),
            disable=_list_setting(data, 'disable'),
            format=FormatSettings.from_dict(_section(settings, 'format')) if 'format' in settings else None,
            style=StyleSettings.from_dict(_section(settings, 'style')) if 'style' in settings else None,
        )

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {
            'default': self.default,
            'enable': list(self.enable),
            'disable': list(self.disable),
        }
        settings: Dict[str, Any] = {}
        if self.format is not None:
            settings['format'] = self.format.to_dict()
        if self.style is not None:
            settings['style'] = self.style.to_dict()
        if settings:
            result['settings'] = settings
        return result


@dataclass
class ActionConfig:
    """Version update pattern for one action."""

    version: str = DEFAULT_VERSION_PATTERN


@dataclass
class UpgradeConfig:
    """Settings for the upgrade command."""

    version: str = DEFAULT_UPGRADE_VERSION
    actions: Dict[str, ActionConfig] = field(default_factory=dict)

    def validate(self) -> None:
        if self.version and self.version not in VALID_VERSION_FORMATS:
            raise ConfigError(f"upgrade.version must be one of {VALID_VERSION_FORMATS}, got {self.version!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpgradeConfig":
        actions = {}
        for name, action_data in _section(data, 'actions').items():
            if action_data is None:
                action_data = {}
            if not isinstance(action_data, dict):
                raise ConfigError(f"upgrade.actions.{name} must be a mapping")
            pattern = action_data.get('version')
            actions[str(name)] = ActionConfig(
                version=DEFAULT_VERSION_PATTERN if pattern is None else str(pattern)
            )

        fmt = data.get('version')
        return cls(
            version=DEFAULT_UPGRADE_VERSION if not fmt else str(fmt),
            actions=actions,
        )

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'actions': {name: {'version': cfg.version} for name, cfg in sorted(self.actions.items())},
        }


@dataclass
class Config:
    """The github-ci configuration."""

    run: RunConfig = field(default_factory=RunConfig)
    linters: LinterConfig = field(default_factory=LinterConfig)
    upgrade: UpgradeConfig = field(default_factory=UpgradeConfig)

    @classmethod
    def full_default(cls) -> "Config":
        """A configuration with every setting spelled out, for `init`."""
        return cls(
            run=RunConfig(timeout="5m", issues_exit_code=DEFAULT_ISSUES_EXIT_CODE),
            linters=LinterConfig(
                enable=list(ALL_LINTERS),
                format=FormatSettings(),
                style=StyleSettings(),
            ),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        return cls(
            run=RunConfig.from_dict(_section(data, 'run')),
            linters=LinterConfig.from_dict(_section(data, 'linters')),
            upgrade=UpgradeConfig.from_dict(_section(data, 'upgrade')),
        )

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {}
        run = self.run.to_dict()
        if run:
            result['run'] = run
        result['linters'] = self.linters.to_dict()
        result['upgrade'] = self.upgrade.to_dict()
        return result

    def validate(self) -> None:
        self.run.validate()
        self.linters.validate()
        self.upgrade.validate()

    @property
    def timeout(self) -> float:
        """Timeout in seconds for all network operations of a run."""
        if not self.run.timeout:
            return DEFAULT_TIMEOUT
        try:
            return parse_duration(self.run.timeout)
        except ValueError:
            return DEFAULT_TIMEOUT

    @property
    def issues_exit_code(self) -> int:
        """Exit code used when issues are found."""
        if not 1 <= self.run.issues_exit_code <= 255:
            return DEFAULT_ISSUES_EXIT_CODE
        return self.run.issues_exit_code

    @property
    def format_settings(self) -> FormatSettings:
        return self.linters.format or FormatSettings()

    @property
    def style_settings(self) -> StyleSettings:
        return self.linters.style or StyleSettings()

    @property
    def version_format(self) -> str:
        return self.upgrade.version or DEFAULT_UPGRADE_VERSION

    def is_linter_enabled(self, name: str) -> bool:
        """Check if a linter is enabled. Disable always wins over enable."""
        if name in self.linters.disable:
            return False
        if (self.linters.default or DEFAULT_LINTER_DEFAULT) == "all":
            return True
        return name in self.linters.enable

    def get_action_config(self, action_name: str) -> ActionConfig:
        """Get the configuration for an action, or the default pattern."""
        return self.upgrade.actions.get(normalize_action_name(action_name), ActionConfig())

    def has_action_config(self, action_name: str) -> bool:
        return action_name in self.upgrade.actions

    def set_action_config(self, action_name: str, action_config: ActionConfig) -> None:
        self.upgrade.actions[action_name] = action_config


def load_config(filename: Optional[PathLike] = None) -> Config:
    """Load the configuration, returning defaults when the file does not exist."""
    path = Path(filename or DEFAULT_CONFIG_FILE_NAME)
    if not path.exists():
        logger.debug(f"No configuration file at {path}, using defaults")
        return Config()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    cfg = Config.from_dict(data)
    try:
        cfg.validate()
    except ConfigError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e

    logger.debug(f"Loaded configuration from {path}")
    return cfg


def save_config(cfg: Config, filename: Optional[PathLike] = None) -> None:
    """Write the configuration to a YAML file."""
    path = Path(filename or DEFAULT_CONFIG_FILE_NAME)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(cfg.to_dict(), f, sort_keys=False, default_flow_style=False)
    os.chmod(path, 0o600)
    logger.info(f"Configuration saved to {path}")


def normalize_action_name(uses: str) -> str:
    """Get the action name from a uses string (drop '@ref')."""
    return uses.split('@', 1)[0]


def should_update(current_version: str, new_version: str, pattern: str) -> bool:
    """Check if a newer version is an allowed update under a pattern.

    "" allows any newer version, "^X.0.0" the same major version ("^1.0.0"
    any version >= 1), "~X.Y.0" the same major.minor version.
    """
    if version.compare(new_version, current_version) <= 0:
        return False
    return version.matches_version_pattern(new_version, pattern)
