from __future__ import annotations

import mimetypes

DEFAULT_CONTENT_TYPE = 'application/octet-stream'
FOLDER_CONTENT_TYPE = 'folder'

# Built from the interpreter's defaults only, so results don't depend on the host's mime.types.
_registry = mimetypes.MimeTypes()

_OVERRIDES = {
    '.md': 'text/markdown',
    '.gz': 'application/gzip',
    '.webp': 'image/webp',
    '.woff2': 'font/woff2',
    '.7z': 'application/x-7z-compressed',
    '.mkv': 'video/x-matroska',
    '.flac': 'audio/flac',
    '.log': 'text/plain',
    '.yaml': 'application/yaml',
    '.yml': 'application/yaml',
}


def extension_of(file_name: str) -> str:
    stem, dot, ext = file_name.rpartition('.')
    if not dot or not stem:
        return ''
    return f'.{ext.lower()}'


def guess_content_type(file_name: str) -> str:
    ext = extension_of(file_name)
    if not ext:
        return DEFAULT_CONTENT_TYPE
    if ext in _OVERRIDES:
        return _OVERRIDES[ext]
    strict_map = _registry.types_map[True]
    loose_map = _registry.types_map[False]
    return strict_map.get(ext) or loose_map.get(ext) or DEFAULT_CONTENT_TYPE
