"""File storage services: dedup store, hashing, classification."""
from filestore.services.file_storage import FileStorageService, get_file_storage
from filestore.services.file_hasher import hash_file
from filestore.services.file_types import FileType, get_file_type
from filestore.services.storage_errors import (
    FileStorageError,
    StorageIOError,
    StoredFileNotFoundError,
    UnsupportedFileTypeError,
)

__all__ = [
    "FileStorageService", "get_file_storage", "hash_file",
    "FileType", "get_file_type",
    "FileStorageError", "StorageIOError", "StoredFileNotFoundError", "UnsupportedFileTypeError",
]
