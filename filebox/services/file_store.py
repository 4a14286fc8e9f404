from __future__ import annotations

import logging
import os
import posixpath
import shutil
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Optional

from ..schemas import DirectoryListing, FileEntry, OperationResult
from .content_types import FOLDER_CONTENT_TYPE, guess_content_type
from .path_guard import PathGuard

logger = logging.getLogger(__name__)

ACCESS_DENIED = 'Access to the path is denied.'


def _join(relative_path: str, name: str) -> str:
    return posixpath.join(relative_path, name) if relative_path else name


def _mtime(st: os.stat_result) -> datetime:
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


class SandboxedFileStore:
    """File operations confined to a single root directory.

    Read-style operations raise ``PermissionError`` for rejected paths and
    ``FileNotFoundError`` for missing targets. Mutating operations never raise
    for expected failures; they return an unsuccessful ``OperationResult``.
    """

    def __init__(self, root: str | Path, executable_path: str | Path, guard: Optional[PathGuard] = None):
        self.guard = guard or PathGuard()
        self.root = Path(root).resolve()
        self.executable_path = Path(executable_path).resolve(strict=False)

    def is_safe(self, relative_path: Optional[str]) -> bool:
        return self.guard.is_safe(self.root, relative_path)

    def to_canonical_path(self, relative_path: Optional[str]) -> Path:
        return self.guard.to_canonical_path(self.root, relative_path)

    def _require_safe(self, relative_path: Optional[str]) -> Path:
        if not self.is_safe(relative_path):
            raise PermissionError(ACCESS_DENIED)
        return self.to_canonical_path(relative_path)

    def list_directory(self, relative_path: str = '') -> DirectoryListing:
        target = self._require_safe(relative_path)
        if not target.is_dir():
            raise FileNotFoundError(f'Directory not found: {relative_path}')

        current = self.guard.display_path(relative_path)
        dirs: list[FileEntry] = []
        files: list[FileEntry] = []
        for child in target.iterdir():
            if not self._resolves_inside_root(child):
                logger.debug('Hiding %s while listing %r: resolves outside the root', child.name, current)
                continue
            try:
                if child.is_dir():
                    dirs.append(self._dir_entry(child, _join(current, child.name)))
                else:
                    files.append(self._file_entry(child, _join(current, child.name)))
            except OSError as exc:
                # vanished or unreadable between iterdir() and stat()
                logger.warning('Skipping %s while listing %r: %s', child.name, current, exc)

        dirs.sort(key=lambda e: e.name)
        files.sort(key=lambda e: e.name)
        return DirectoryListing(
            current_path=current,
            parent_path=self.guard.get_parent_path(current),
            items=dirs + files,
        )

    def read_file(self, relative_path: str) -> tuple[bytes, str, str]:
        target = self._require_safe(relative_path)
        if not target.is_file():
            raise FileNotFoundError(f'File not found: {relative_path}')
        return target.read_bytes(), guess_content_type(target.name), target.name

    def upload(self, relative_path: str, file_name: Optional[str], content: Optional[bytes]) -> OperationResult:
        if not self.is_safe(relative_path):
            return OperationResult(success=False, message=ACCESS_DENIED)

        if not content:
            return OperationResult(success=False, message='No file was uploaded.')

        name = PurePosixPath((file_name or '').replace('\\', '/')).name
        if not name or name in {'.', '..'}:
            return OperationResult(success=False, message='Invalid file name.')

        stored = _join(self.guard.display_path(relative_path), name)
        if not self.is_safe(stored):
            return OperationResult(success=False, message=ACCESS_DENIED)

        try:
            directory = self.to_canonical_path(relative_path)
            directory.mkdir(parents=True, exist_ok=True)
            target = self.to_canonical_path(stored)
            with target.open('wb') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            logger.warning('Upload of %r failed: %s', stored, exc)
            return OperationResult(success=False, message=f'Error uploading file: {exc}')

        logger.info('Uploaded %s (%d bytes)', stored, len(content))
        return OperationResult(success=True, message=f'File {name} uploaded successfully.', path=stored)

    def create_directory(self, relative_path: str) -> OperationResult:
        if not self.is_safe(relative_path):
            return OperationResult(success=False, message=ACCESS_DENIED)

        try:
            target = self.to_canonical_path(relative_path)
            if target.is_dir():
                return OperationResult(success=False, message='Directory already exists.')
            target.mkdir(parents=True)
        except OSError as exc:
            logger.warning('Creating directory %r failed: %s', relative_path, exc)
            return OperationResult(success=False, message=f'Error creating directory: {exc}')

        return OperationResult(
            success=True,
            message='Directory created successfully.',
            path=self.guard.display_path(relative_path),
        )

    def delete(self, relative_path: str) -> OperationResult:
        if not self.is_safe(relative_path):
            return OperationResult(success=False, message=ACCESS_DENIED)

        if not relative_path:
            return OperationResult(success=False, message='Cannot delete the root directory.')

        current = self.guard.display_path(relative_path)
        try:
            target = self.to_canonical_path(current)
            if self.guard.same_path(target, self.root):
                return OperationResult(success=False, message='Cannot delete the root directory.')

            if target.is_file():
                if self.guard.same_name(target.name, self.executable_path.name) or self.guard.same_path(
                    target, self.executable_path
                ):
                    return OperationResult(success=False, message='Cannot delete the application executable.')
                target.unlink()
                logger.info('Deleted file %s', target)
                return OperationResult(success=True, message='File deleted successfully.', path=current)

            if target.is_dir():
                if self.guard.is_within(self.executable_path, target):
                    return OperationResult(
                        success=False,
                        message='Cannot delete a directory containing the application executable.',
                    )
                shutil.rmtree(target)
                logger.info('Deleted directory %s', target)
                return OperationResult(success=True, message='Directory deleted successfully.', path=current)
        except OSError as exc:
            logger.warning('Deleting %r failed: %s', relative_path, exc)
            return OperationResult(success=False, message=f'Error deleting item: {exc}')

        return OperationResult(success=False, message='Item not found.')

    def search(self, query: str) -> list[FileEntry]:
        if not (query or '').strip():
            return []
        needle = query.casefold()

        dirs: list[FileEntry] = []
        files: list[FileEntry] = []

        def _on_error(exc: OSError):
            logger.warning('Search skipped %s: %s', exc.filename, exc.strerror or exc)

        try:
            for current, dirnames, filenames in os.walk(self.root, onerror=_on_error):
                base = Path(current)
                for name in dirnames:
                    if needle in name.casefold():
                        self._collect(dirs, base / name, is_directory=True)
                for name in filenames:
                    if needle in name.casefold():
                        self._collect(files, base / name, is_directory=False)
        except OSError as exc:
            logger.warning('Search for %r stopped early: %s', query, exc)

        return dirs + files

    def stat(self, relative_path: str) -> Optional[FileEntry]:
        target = self._require_safe(relative_path)
        current = self.guard.display_path(relative_path)
        try:
            if target.is_dir():
                return self._dir_entry(target, current)
            if target.is_file():
                return self._file_entry(target, current)
        except FileNotFoundError:
            pass
        return None

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _resolves_inside_root(self, path: Path) -> bool:
        try:
            return self.guard.is_within(path.resolve(strict=False), self.root)
        except (OSError, RuntimeError):
            return False

    def _collect(self, out: list[FileEntry], path: Path, is_directory: bool):
        rel = self._relative(path)
        if not self._resolves_inside_root(path):
            logger.debug('Search hid %s: resolves outside the root', rel)
            return
        try:
            entry = self._dir_entry(path, rel) if is_directory else self._file_entry(path, rel)
        except OSError as exc:
            logger.warning('Search skipped %s: %s', rel, exc)
            return
        out.append(entry)

    def _dir_entry(self, path: Path, rel: str) -> FileEntry:
        st = path.stat()
        return FileEntry(
            name=path.name,
            path=rel,
            is_directory=True,
            size=0,
            last_modified=_mtime(st),
            content_type=FOLDER_CONTENT_TYPE,
        )

    def _file_entry(self, path: Path, rel: str) -> FileEntry:
        st = path.stat()
        return FileEntry(
            name=path.name,
            path=rel,
            is_directory=False,
            size=st.st_size,
            last_modified=_mtime(st),
            content_type=guess_content_type(path.name),
        )
