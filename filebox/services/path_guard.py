"""Path sanitization and sandbox checks for user-supplied relative paths.

Every filesystem access driven by request input goes through
:meth:`PathGuard.is_safe` first. The guard itself never touches the
filesystem except to canonicalize paths and list mounted volume roots.
"""
from __future__ import annotations

import logging
import posixpath
from pathlib import Path, PurePath
from typing import Callable, Iterable, Optional

import psutil

logger = logging.getLogger(__name__)

RESERVED_DEVICE_NAMES = frozenset(
    ['CON', 'PRN', 'AUX', 'NUL']
    + [f'COM{i}' for i in range(1, 10)]
    + [f'LPT{i}' for i in range(1, 10)]
)


def sanitize_path(path: Optional[str]) -> str:
    """Normalize separators and drop ``..`` and empty segments.

    ``a\\b`` -> ``a/b``, ``/a//b/`` -> ``a/b``, ``../../etc`` -> ``etc``.
    ``.`` segments are kept; canonicalization resolves them later.
    """
    if not path:
        return ''

    normalized = path.replace('\\', '/')
    if normalized.startswith('/'):
        normalized = normalized[1:]
    return '/'.join(part for part in normalized.split('/') if part and part != '..')


def mounted_volume_roots() -> list[str]:
    return [part.mountpoint for part in psutil.disk_partitions(all=True)]


class PathGuard:
    def __init__(
        self,
        protected_dirs: Iterable[str] = (),
        case_insensitive: bool = False,
        check_reserved_names: bool = False,
        volume_roots: Callable[[], Iterable[str]] = mounted_volume_roots,
    ):
        self.protected_dirs = [d for d in protected_dirs if d]
        self.case_insensitive = case_insensitive
        self.check_reserved_names = check_reserved_names
        self._volume_roots = volume_roots

    sanitize = staticmethod(sanitize_path)

    def to_canonical_path(self, root: str | Path, relative_path: Optional[str]) -> Path:
        return (Path(root) / self.sanitize(relative_path)).resolve(strict=False)

    def is_safe(self, root: str | Path, relative_path: Optional[str]) -> bool:
        if not relative_path:
            return True

        try:
            return self._check(root, relative_path)
        except Exception as exc:
            logger.debug('Rejecting %r: %s', relative_path, exc)
            return False

    def display_path(self, path: Optional[str]) -> str:
        """Sanitized path without ``.`` segments, for navigation metadata."""
        return '/'.join(part for part in self.sanitize(path).split('/') if part and part != '.')

    def get_parent_path(self, path: Optional[str]) -> str:
        return posixpath.dirname(self.display_path(path))

    def is_within(self, path: str | PurePath, parent: str | PurePath) -> bool:
        """True when *path* equals *parent* or sits somewhere beneath it."""
        path_parts = self._parts(path)
        parent_parts = self._parts(parent)
        return path_parts[: len(parent_parts)] == parent_parts

    def same_path(self, a: str | PurePath, b: str | PurePath) -> bool:
        return self._parts(a) == self._parts(b)

    def same_name(self, a: str, b: str) -> bool:
        return a.casefold() == b.casefold()

    def _check(self, root: str | Path, relative_path: str) -> bool:
        root_path = Path(root).resolve(strict=False)
        candidate = self.to_canonical_path(root_path, relative_path)

        if not self.is_within(candidate, root_path):
            logger.debug('Rejecting %r: resolves outside the root', relative_path)
            return False

        for protected in self.protected_dirs:
            protected_path = Path(protected).resolve(strict=False)
            if self.is_within(candidate, protected_path) or self.is_within(protected_path, candidate):
                logger.debug('Rejecting %r: overlaps protected directory %s', relative_path, protected)
                return False

        for volume_root in self._volume_roots():
            if self.same_path(candidate, Path(volume_root)):
                logger.debug('Rejecting %r: is a volume root', relative_path)
                return False

        if self.check_reserved_names and self._is_reserved_name(candidate.name):
            logger.debug('Rejecting %r: reserved device name', relative_path)
            return False

        return True

    def _parts(self, path: str | PurePath) -> tuple[str, ...]:
        parts = PurePath(path).parts
        if self.case_insensitive:
            return tuple(part.casefold() for part in parts)
        return parts

    @staticmethod
    def _is_reserved_name(name: str) -> bool:
        if not name:
            return False
        base = name.split('.', 1)[0].rstrip(' ')
        return base.upper() in RESERVED_DEVICE_NAMES
