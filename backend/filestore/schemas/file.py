"""File request/response schemas."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from filestore.services.file_picker import PickerOptions
from filestore.services.file_types import FileType


class FileRecord(BaseModel):
    """Snapshot of a file's identity and stat data at construction time.

    For managed entries ``name == id + ext`` and ``path`` is inside the
    storage root. ``count`` is 2 when an upload resolved to an existing file.
    """
    id: str
    origin_name: str
    name: str
    path: str
    created_at: datetime
    size: int
    ext: str
    type: FileType
    count: int = 1

    model_config = {"frozen": True}


class Base64Image(BaseModel):
    mime: str
    base64: str
    data_uri: str


class UploadRequest(BaseModel):
    path: str


class SelectFileRequest(BaseModel):
    paths: Optional[list[str]] = None  # None means the dialog was cancelled
    options: Optional[PickerOptions] = None


class TempPathRequest(BaseModel):
    name: str


class TempPathResponse(BaseModel):
    path: str


class WriteFileRequest(BaseModel):
    path: str
    content: str
    encoding: Literal["text", "base64"] = "text"


class TextContentResponse(BaseModel):
    id: str
    content: str
