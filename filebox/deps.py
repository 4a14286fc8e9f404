from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, Request, status

from .config import Settings
from .services.file_store import SandboxedFileStore
from .services.path_guard import PathGuard


def detect_executable_path(configured: Optional[str] = None) -> Path:
    if configured:
        return Path(configured).resolve(strict=False)

    entry = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if entry is not None and entry.is_file():
        return entry.resolve()
    return Path(sys.executable).resolve(strict=False)


def build_store(cfg: Settings) -> SandboxedFileStore:
    root = Path(cfg.root_dir).expanduser()
    root.mkdir(parents=True, exist_ok=True)
    guard = PathGuard(
        protected_dirs=cfg.protected_dirs,
        case_insensitive=cfg.case_insensitive_paths,
        check_reserved_names=cfg.check_reserved_names,
    )
    return SandboxedFileStore(root, detect_executable_path(cfg.executable_path), guard=guard)


def get_store(request: Request) -> SandboxedFileStore:
    store = getattr(request.app.state, 'store', None)
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail='File store not initialised')
    return store
