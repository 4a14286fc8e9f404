from __future__ import annotations

import pytest

from filebox.services.file_store import SandboxedFileStore
from filebox.services.path_guard import PathGuard


def make_guard(**overrides) -> PathGuard:
    options = {
        'protected_dirs': [],
        'case_insensitive': False,
        'check_reserved_names': False,
        'volume_roots': lambda: [],
    }
    options.update(overrides)
    return PathGuard(**options)


@pytest.fixture
def root(tmp_path):
    sandbox = tmp_path / 'sandbox'
    sandbox.mkdir()
    return sandbox.resolve()


@pytest.fixture
def executable(root):
    bin_dir = root / 'bin'
    bin_dir.mkdir()
    exe = bin_dir / 'filebox-server'
    exe.write_bytes(b'#!/bin/sh\n')
    return exe


@pytest.fixture
def store(root, executable):
    return SandboxedFileStore(root, executable, guard=make_guard())
