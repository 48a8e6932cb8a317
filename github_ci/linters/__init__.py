"""
Linter plugins for github-ci
"""

from typing import Dict

from ..config import (
    LINTER_FORMAT,
    LINTER_INJECTION,
    LINTER_PERMISSIONS,
    LINTER_SECRETS,
    LINTER_STYLE,
    LINTER_VERSIONS,
)
from .base import AUTO_FIX_LINTERS, Linter, LinterFactory, NoOpFixer, supports_auto_fix
from .format import FormatLinter
from .injection import InjectionLinter
from .permissions import PermissionsLinter
from .secrets import SecretsLinter
from .style import StyleLinter
from .versions import VersionsLinter

LINTER_FACTORIES: Dict[str, LinterFactory] = {
    LINTER_VERSIONS: lambda cfg, resolver: VersionsLinter(resolver),
    LINTER_PERMISSIONS: lambda cfg, resolver: PermissionsLinter(),
    LINTER_FORMAT: lambda cfg, resolver: FormatLinter(cfg.format_settings),
    LINTER_SECRETS: lambda cfg, resolver: SecretsLinter(),
    LINTER_INJECTION: lambda cfg, resolver: InjectionLinter(),
    LINTER_STYLE: lambda cfg, resolver: StyleLinter(cfg.style_settings),
}

__all__ = [
    "AUTO_FIX_LINTERS",
    "LINTER_FACTORIES",
    "FormatLinter",
    "InjectionLinter",
    "Linter",
    "LinterFactory",
    "NoOpFixer",
    "PermissionsLinter",
    "SecretsLinter",
    "StyleLinter",
    "VersionsLinter",
    "supports_auto_fix",
]
