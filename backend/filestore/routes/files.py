"""Files API routes.

These endpoints read and write arbitrary server-side paths on behalf of a
local desktop client. Bind the server to loopback only; do not expose it on a
shared network.
"""
import base64
import binascii
import logging
import os
from typing import Optional

import aiofiles.os
from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File as FastAPIFile

from filestore.schemas.file import (
    Base64Image,
    FileRecord,
    SelectFileRequest,
    TempPathRequest,
    TempPathResponse,
    TextContentResponse,
    UploadRequest,
    WriteFileRequest,
)
from filestore.services.file_picker import StaticFilePicker
from filestore.services.file_storage import FileStorageService, get_file_storage
from filestore.services.storage_errors import (
    FileStorageError,
    StorageIOError,
    StoredFileNotFoundError,
    UnsupportedFileTypeError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


def _to_http(exc: FileStorageError) -> HTTPException:
    """Map storage errors to HTTP errors."""
    if isinstance(exc, StoredFileNotFoundError):
        return HTTPException(status_code=404, detail="File not found")
    if isinstance(exc, UnsupportedFileTypeError):
        return HTTPException(status_code=415, detail=str(exc))
    if isinstance(exc, StorageIOError):
        logger.error(f"Storage I/O failure: {exc}")
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@router.post("/upload", response_model=FileRecord, status_code=201)
async def upload_file(
    body: UploadRequest,
    storage: FileStorageService = Depends(get_file_storage),
):
    """Ingest a file from a local path. Duplicates resolve to the stored copy."""
    try:
        return await storage.upload(body.path)
    except FileStorageError as e:
        raise _to_http(e) from e


@router.post("/upload-bytes", response_model=FileRecord, status_code=201)
async def upload_file_bytes(
    file: UploadFile = FastAPIFile(...),
    storage: FileStorageService = Depends(get_file_storage),
):
    """Upload file contents directly; they are staged in the temp dir first."""
    contents = await file.read()
    origin_name = os.path.basename(file.filename or "unnamed")
    try:
        temp_path = await storage.create_temp_path(origin_name)
    except FileStorageError as e:
        raise _to_http(e) from e
    try:
        await storage.write_file(temp_path, contents)
        return await storage.upload(temp_path, origin_name=origin_name)
    except FileStorageError as e:
        raise _to_http(e) from e
    finally:
        try:
            await aiofiles.os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning(f"Could not remove staged upload {temp_path}: {exc}")


@router.post("/select", response_model=Optional[list[FileRecord]])
async def select_files(
    body: SelectFileRequest,
    storage: FileStorageService = Depends(get_file_storage),
):
    """Describe files chosen in a client-side dialog. Nothing is copied."""
    try:
        return await storage.select_file(body.options, picker=StaticFilePicker(body.paths))
    except FileStorageError as e:
        raise _to_http(e) from e


@router.get("/duplicate", response_model=Optional[FileRecord])
async def find_duplicate(
    path: str = Query(...),
    storage: FileStorageService = Depends(get_file_storage),
):
    """Return the stored file with the same content as ``path``, if any."""
    try:
        return await storage.find_duplicate(path)
    except FileStorageError as e:
        raise _to_http(e) from e


@router.get("/info", response_model=Optional[FileRecord])
async def get_file_info(
    path: str = Query(...),
    storage: FileStorageService = Depends(get_file_storage),
):
    """Stat an arbitrary path. Returns null when it does not exist."""
    try:
        return await storage.get_file(path)
    except FileStorageError as e:
        raise _to_http(e) from e


@router.post("/temp", response_model=TempPathResponse)
async def create_temp_path(
    body: TempPathRequest,
    storage: FileStorageService = Depends(get_file_storage),
):
    try:
        return {"path": await storage.create_temp_path(body.name)}
    except FileStorageError as e:
        raise _to_http(e) from e


@router.post("/write")
async def write_file(
    body: WriteFileRequest,
    storage: FileStorageService = Depends(get_file_storage),
):
    """Write text or base64-encoded bytes to a path."""
    if body.encoding == "base64":
        try:
            data = base64.b64decode(body.content, validate=True)
        except binascii.Error:
            raise HTTPException(status_code=422, detail="Invalid base64 content")
    else:
        data = body.content
    try:
        await storage.write_file(body.path, data)
    except FileStorageError as e:
        raise _to_http(e) from e
    return {"written": True, "path": body.path}


@router.delete("")
async def clear_storage(storage: FileStorageService = Depends(get_file_storage)):
    """Delete every stored file."""
    try:
        await storage.clear()
    except FileStorageError as e:
        raise _to_http(e) from e
    return {"cleared": True}


@router.get("/{file_id}/text", response_model=TextContentResponse)
async def read_file_text(
    file_id: str,
    storage: FileStorageService = Depends(get_file_storage),
):
    try:
        content = await storage.read_text(file_id)
    except FileStorageError as e:
        raise _to_http(e) from e
    return {"id": file_id, "content": content}


@router.get("/{file_id}/base64", response_model=Base64Image)
async def read_file_base64(
    file_id: str,
    storage: FileStorageService = Depends(get_file_storage),
):
    """Base64 and data URI for a stored image."""
    try:
        return await storage.base64_image(file_id)
    except FileStorageError as e:
        raise _to_http(e) from e


@router.delete("/{file_id}")
async def delete_file(
    file_id: str,
    storage: FileStorageService = Depends(get_file_storage),
):
    """Delete a stored file."""
    try:
        await storage.delete_file(file_id)
    except FileStorageError as e:
        raise _to_http(e) from e
    return {"deleted": True, "id": file_id}
