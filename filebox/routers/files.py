from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..deps import get_store
from ..schemas import DirectoryListing, FileEntry, OperationResult, RootInfo
from ..services.file_store import SandboxedFileStore

router = APIRouter(prefix='/api/files', tags=['files'])


def _result_response(result: OperationResult):
    if result.success:
        return result
    return JSONResponse(result.model_dump(by_alias=True), status_code=400)


def _content_disposition(file_name: str) -> str:
    fallback = file_name.encode('ascii', 'replace').decode('ascii').replace('"', '_')
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(file_name)}'


@router.get('/rootInfo', response_model=RootInfo)
def root_info(store: SandboxedFileStore = Depends(get_store)):
    try:
        content = store.list_directory('')
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return RootInfo(absolute_path=str(store.root), content=content)


@router.get('/directory', response_model=DirectoryListing)
def list_directory(path: str = Query(default=''), store: SandboxedFileStore = Depends(get_store)):
    if not store.is_safe(path):
        raise HTTPException(status_code=400, detail='Invalid path')
    try:
        return store.list_directory(path)
    except PermissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get('/download')
def download(path: str = Query(default=''), store: SandboxedFileStore = Depends(get_store)):
    if not path or not store.is_safe(path):
        raise HTTPException(status_code=400, detail='Invalid file path')
    try:
        content, content_type, file_name = store.read_file(path)
    except PermissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    headers = {'Content-Disposition': _content_disposition(file_name)}
    return Response(content=content, media_type=content_type, headers=headers)


@router.post('/upload', response_model=OperationResult)
async def upload(
    path: str = Query(default=''),
    file: Optional[UploadFile] = File(default=None),
    store: SandboxedFileStore = Depends(get_store),
):
    if file is None or not path or not store.is_safe(path):
        raise HTTPException(status_code=400, detail='Invalid upload request')

    content = await file.read()
    result = await run_in_threadpool(store.upload, path, file.filename, content)
    return _result_response(result)


@router.post('/upload-root', response_model=OperationResult)
async def upload_root(file: Optional[UploadFile] = File(default=None), store: SandboxedFileStore = Depends(get_store)):
    if file is None:
        raise HTTPException(status_code=400, detail='Invalid upload request')

    content = await file.read()
    result = await run_in_threadpool(store.upload, '', file.filename, content)
    return _result_response(result)


@router.post('/directory', response_model=OperationResult)
def create_directory(path: str = Query(default=''), store: SandboxedFileStore = Depends(get_store)):
    if not path or not store.is_safe(path):
        raise HTTPException(status_code=400, detail='Invalid directory path')
    return _result_response(store.create_directory(path))


@router.delete('', response_model=OperationResult)
def delete_item(path: str = Query(default=''), store: SandboxedFileStore = Depends(get_store)):
    if not path or not store.is_safe(path):
        raise HTTPException(status_code=400, detail='Invalid deletion request')
    return _result_response(store.delete(path))


@router.get('/search', response_model=list[FileEntry])
def search(query: str = Query(default=''), store: SandboxedFileStore = Depends(get_store)):
    if not query.strip():
        raise HTTPException(status_code=400, detail='Search query cannot be empty.')
    return store.search(query)


@router.get('/info', response_model=FileEntry)
def info(path: str = Query(default=''), store: SandboxedFileStore = Depends(get_store)):
    if not path or not store.is_safe(path):
        raise HTTPException(status_code=400, detail='Invalid path')
    try:
        item = store.stat(path)
    except PermissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if item is None:
        raise HTTPException(status_code=404, detail='File or folder not found.')
    return item
