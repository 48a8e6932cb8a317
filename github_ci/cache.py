"""
In-memory cache for version lookups

The same action usually appears in many workflow files. Results are kept
for the lifetime of one invocation so each lookup hits GitHub at most once.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class VersionKey:
    """Cache key for version lookups.

    Constrained keys carry the current reference and a version pattern;
    unconstrained keys (absolute latest) carry neither. Latest-minor keys
    carry the major version as their reference.
    """

    owner: str
    repo: str
    ref: str = ""
    pattern: str = ""

    @classmethod
    def constrained(cls, owner: str, repo: str, ref: str, pattern: str) -> "VersionKey":
        return cls(owner, repo, ref, pattern)

    @classmethod
    def unconstrained(cls, owner: str, repo: str) -> "VersionKey":
        return cls(owner, repo)

    @classmethod
    def latest_minor(cls, owner: str, repo: str, major: str) -> "VersionKey":
        return cls(owner, repo, ref=major)

    @property
    def is_constrained(self) -> bool:
        return bool(self.ref or self.pattern)

    def __str__(self) -> str:
        if not self.is_constrained:
            return f"{self.owner}/{self.repo}"
        return f"{self.owner}/{self.repo}:{self.ref}:{self.pattern}"


@dataclass(frozen=True)
class VersionResult:
    """Outcome of a version lookup: tag and hash, or the error that occurred."""

    tag: str = ""
    hash: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Tuple[str, str]:
        """Return (tag, hash), raising the cached error for failed lookups."""
        if self.error is not None:
            raise self.error
        return self.tag, self.hash


@dataclass(frozen=True)
class CacheStats:
    """Cache usage statistics."""

    hits: int = 0
    misses: int = 0


class Cache:
    """Thread-safe store of lookup results.

    Constrained, unconstrained and latest-minor lookups are kept in separate
    stores so a result of one kind is never served for another.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._constrained: Dict[VersionKey, VersionResult] = {}
        self._unconstrained: Dict[VersionKey, VersionResult] = {}
        self._latest_minor: Dict[VersionKey, VersionResult] = {}
        self._hits = 0
        self._misses = 0

    def get_constrained(self, key: VersionKey) -> Optional[VersionResult]:
        """Get a cached constrained result, or None if not cached."""
        return self._get(self._constrained, key)

    def set_constrained(self, key: VersionKey, result: VersionResult) -> None:
        """Store a constrained result."""
        self._set(self._constrained, key, result)

    def get_unconstrained(self, key: VersionKey) -> Optional[VersionResult]:
        """Get a cached unconstrained result, or None if not cached."""
        return self._get(self._unconstrained, key)

    def set_unconstrained(self, key: VersionKey, result: VersionResult) -> None:
        """Store an unconstrained result."""
        self._set(self._unconstrained, key, result)

    def get_latest_minor(self, key: VersionKey) -> Optional[VersionResult]:
        """Get a cached latest-minor-in-major result, or None if not cached."""
        return self._get(self._latest_minor, key)

    def set_latest_minor(self, key: VersionKey, result: VersionResult) -> None:
        self._set(self._latest_minor, key, result)

    def _get(self, store: Dict[VersionKey, VersionResult], key: VersionKey) -> Optional[VersionResult]:
        with self._lock:
            result = store.get(key)
            if result is not None:
                self._hits += 1
            return result

    def _set(self, store: Dict[VersionKey, VersionResult], key: VersionKey, result: VersionResult) -> None:
        with self._lock:
            store[key] = result
            # A set follows an actual lookup
            self._misses += 1

    def clear(self) -> None:
        """Drop all cached results and reset the statistics."""
        with self._lock:
            self._constrained.clear()
            self._unconstrained.clear()
            self._latest_minor.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        """Get the current cache statistics."""
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        with self._lock:
            return len(self._constrained) + len(self._unconstrained) + len(self._latest_minor)
