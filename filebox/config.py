from __future__ import annotations

import os
import sys
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_POSIX_PROTECTED_DIRS = ['/bin', '/boot', '/dev', '/etc', '/lib', '/lib64', '/proc', '/sbin', '/sys', '/usr']


def default_protected_dirs() -> list[str]:
    if os.name != 'nt':
        return list(_POSIX_PROTECTED_DIRS)

    dirs = []
    for var in ('SystemRoot', 'ProgramFiles', 'ProgramFiles(x86)', 'ProgramData'):
        value = os.environ.get(var)
        if value:
            dirs.append(value)
    return dirs


def default_case_insensitive() -> bool:
    return os.name == 'nt' or sys.platform == 'darwin'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', env_prefix='FILEBOX_')

    app_name: str = 'Filebox'
    app_host: str = '127.0.0.1'
    app_port: int = Field(default=8080, ge=1, le=65535)
    root_dir: str = '.'
    executable_path: Optional[str] = None
    protected_dirs: list[str] = Field(default_factory=default_protected_dirs)
    case_insensitive_paths: bool = Field(default_factory=default_case_insensitive)
    check_reserved_names: bool = Field(default_factory=lambda: os.name == 'nt')
    log_level: str = 'info'
    cors_origins: str = ''
    static_dir: Optional[str] = None


settings = Settings()
