from __future__ import annotations

from types import SimpleNamespace

import pytest

from filebox.services import path_guard
from filebox.services.path_guard import PathGuard, sanitize_path

from conftest import make_guard


@pytest.mark.parametrize(
    'raw, expected',
    [
        ('', ''),
        (None, ''),
        ('docs/report.txt', 'docs/report.txt'),
        ('\\docs\\report.txt', 'docs/report.txt'),
        ('../../etc/passwd', 'etc/passwd'),
        ('..\\..\\windows\\system32', 'windows/system32'),
        ('a/../b', 'a/b'),
        ('/a//b/', 'a/b'),
        ('//a', 'a'),
        ('./a', './a'),
        ('..', ''),
        ('...', '...'),
    ],
)
def test_sanitize_path(raw, expected):
    assert sanitize_path(raw) == expected


def test_is_safe_allows_empty_path(tmp_path):
    guard = make_guard(volume_roots=lambda: [str(tmp_path)])
    assert guard.is_safe(tmp_path, '') is True
    assert guard.is_safe(tmp_path, None) is True


@pytest.mark.parametrize(
    'hostile',
    ['../../etc/passwd', '..\\..\\..\\', '/../../', 'a/../../..', '....//....//etc', './../x'],
)
def test_accepted_paths_never_resolve_outside_root(root, hostile):
    guard = make_guard()
    if guard.is_safe(root, hostile):
        candidate = guard.to_canonical_path(root, hostile)
        assert candidate == root or root in candidate.parents


def test_symlink_escaping_root_is_rejected(root, tmp_path):
    outside = tmp_path / 'outside'
    outside.mkdir()
    (root / 'escape').symlink_to(outside, target_is_directory=True)

    guard = make_guard()
    assert guard.is_safe(root, 'escape') is False
    assert guard.is_safe(root, 'escape/secret.txt') is False


def test_symlink_inside_root_is_allowed(root):
    (root / 'real').mkdir()
    (root / 'alias').symlink_to(root / 'real', target_is_directory=True)

    assert make_guard().is_safe(root, 'alias') is True


def test_protected_directory_and_its_ancestors_are_rejected(root):
    guard = make_guard(protected_dirs=[str(root / 'system' / 'core')])

    assert guard.is_safe(root, 'system/core') is False
    assert guard.is_safe(root, 'system/core/drivers') is False
    assert guard.is_safe(root, 'system') is False
    assert guard.is_safe(root, 'systemd') is True


def test_volume_root_is_rejected(root):
    guard = make_guard(volume_roots=lambda: [str(root / 'mnt' / 'usb')])

    assert guard.is_safe(root, 'mnt/usb') is False
    assert guard.is_safe(root, 'mnt/usb/photos') is True


def test_volume_roots_come_from_psutil(monkeypatch, root):
    partitions = [SimpleNamespace(mountpoint=str(root / 'disk'))]
    monkeypatch.setattr(path_guard.psutil, 'disk_partitions', lambda all=False: partitions)

    guard = PathGuard()
    assert guard.is_safe(root, 'disk') is False
    assert guard.is_safe(root, 'other') is True


def test_probe_failure_is_treated_as_unsafe(root):
    def _boom():
        raise OSError('cannot enumerate volumes')

    assert make_guard(volume_roots=_boom).is_safe(root, 'docs') is False


@pytest.mark.parametrize('name', ['CON', 'con', 'Nul', 'docs/LPT1', 'aux.txt', 'COM3.tar.gz'])
def test_reserved_device_names_rejected_when_enabled(root, name):
    assert make_guard(check_reserved_names=True).is_safe(root, name) is False


@pytest.mark.parametrize('name', ['CONSOLE', 'docs/com10', 'lpt.txt', 'auxiliary'])
def test_names_resembling_devices_are_allowed(root, name):
    assert make_guard(check_reserved_names=True).is_safe(root, name) is True


def test_reserved_names_ignored_when_disabled(root):
    assert make_guard(check_reserved_names=False).is_safe(root, 'CON') is True


def test_is_within_compares_whole_segments():
    guard = make_guard()
    assert guard.is_within('/srv/data/x', '/srv/data') is True
    assert guard.is_within('/srv/data', '/srv/data') is True
    assert guard.is_within('/srv/database', '/srv/data') is False


def test_case_policy_controls_containment():
    assert make_guard(case_insensitive=True).is_within('/SRV/Data/x', '/srv/data') is True
    assert make_guard(case_insensitive=False).is_within('/SRV/Data/x', '/srv/data') is False


@pytest.mark.parametrize(
    'raw, parent',
    [('', ''), ('docs', ''), ('docs/2024/report.txt', 'docs/2024'), ('docs\\a', 'docs'), ('../docs/a', 'docs')],
)
def test_get_parent_path(raw, parent):
    assert make_guard().get_parent_path(raw) == parent


@pytest.mark.parametrize('raw, shown', [('./a', 'a'), ('a/./b/.', 'a/b'), ('.', ''), ('\\.\\docs', 'docs')])
def test_display_path_drops_dot_segments(raw, shown):
    assert make_guard().display_path(raw) == shown


def test_get_parent_path_ignores_dot_segments():
    assert make_guard().get_parent_path('./a') == ''
    assert make_guard().get_parent_path('./a/./b') == 'a'
