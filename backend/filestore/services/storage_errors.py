"""Errors raised by the file storage services.

Read-type lookups (``get_file``, ``find_duplicate``) report absence as ``None``;
everything here is for operations that require a backing file or hit a
filesystem failure.
"""


class FileStorageError(Exception):
    """Base class for file storage failures."""
    pass


class StoredFileNotFoundError(FileStorageError):
    """Raised when a managed id has no backing file in the storage root."""

    def __init__(self, file_id: str):
        super().__init__(f"Stored file not found: {file_id}")
        self.file_id = file_id


class StorageIOError(FileStorageError):
    """Raised when an open/read/write/copy/remove fails on the filesystem.

    The original ``OSError`` is chained as ``__cause__``.
    """

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class UnsupportedFileTypeError(FileStorageError):
    """Raised when an operation needs a specific file category (e.g. image)."""

    def __init__(self, file_id: str, file_type: str, expected: str):
        super().__init__(f"File {file_id} is '{file_type}', expected '{expected}'")
        self.file_id = file_id
        self.file_type = file_type
        self.expected = expected
