from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileEntry(_CamelModel):
    name: str
    path: str
    is_directory: bool
    size: int = 0
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None


class DirectoryListing(_CamelModel):
    current_path: str
    parent_path: str
    items: list[FileEntry]


class OperationResult(_CamelModel):
    success: bool
    message: str
    path: Optional[str] = None


class RootInfo(_CamelModel):
    absolute_path: str
    content: DirectoryListing
