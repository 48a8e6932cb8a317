"""
Version string helpers for comparing and filtering action tags
"""

import re
from typing import List, Tuple

_LEADING_DIGITS = re.compile(r'^(\d+)')
_PLAIN_VERSION = re.compile(r'\d+(\.\d+)*')


def normalize(version: str) -> str:
    """Strip surrounding whitespace and a single leading 'v' or 'V'."""
    version = version.strip()
    if version[:1] in ('v', 'V'):
        version = version[1:]
    return version


def _components(version: str) -> List[int]:
    """Split a version into its numeric components."""
    normalized = normalize(version)
    if not normalized:
        return []

    components = []
    for part in normalized.split('.'):
        match = _LEADING_DIGITS.match(part)
        components.append(int(match.group(1)) if match else 0)
    return components


def compare(a: str, b: str) -> int:
    """Compare two version strings, returning -1, 0 or 1.

    Components are compared numerically; a missing component is lower than
    any present one, so "v1.2" < "v1.2.0". Numerically equal strings are
    ordered lexically to keep the order total.
    """
    left = _components(a)
    right = _components(b)

    for x, y in zip(left, right):
        if x != y:
            return 1 if x > y else -1

    if len(left) != len(right):
        return 1 if len(left) > len(right) else -1

    if a == b:
        return 0

    # A plain release outranks a suffixed tag with the same numbers (v1.0.0 > v1.0.0-rc1)
    a_plain = _PLAIN_VERSION.fullmatch(normalize(a)) is not None
    b_plain = _PLAIN_VERSION.fullmatch(normalize(b)) is not None
    if a_plain != b_plain:
        return 1 if a_plain else -1

    return 1 if a > b else -1


def extract_major(version: str) -> int:
    """Get the major component of a version (0 if missing)."""
    components = _components(version)
    return components[0] if components else 0


def extract_major_minor(version: str) -> Tuple[int, int]:
    """Get the major and minor components of a version (0 if missing)."""
    components = _components(version) + [0, 0]
    return components[0], components[1]


def matches_version_pattern(tag: str, pattern: str) -> bool:
    """Check if a tag satisfies a version pattern.

    "" matches everything, "^X" the same major version and "~X.Y" the same
    major.minor version. "^1" (and "^1.0.0") accepts any major >= 1.
    """
    if pattern == "":
        return True

    if pattern.startswith("^"):
        pattern_major = extract_major(pattern[1:])
        tag_major = extract_major(tag)
        if pattern_major == 1:
            return tag_major >= 1
        return tag_major == pattern_major

    if pattern.startswith("~"):
        return extract_major_minor(tag) == extract_major_minor(pattern[1:])

    return False
