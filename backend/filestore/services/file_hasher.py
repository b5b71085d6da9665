"""Streaming content digests for deduplication."""
import hashlib
import logging
from pathlib import Path

import aiofiles

from filestore.services.storage_errors import StorageIOError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


async def hash_file(
    path: str | Path,
    *,
    algorithm: str = "md5",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Compute the hex digest of a file, reading it in ``chunk_size`` pieces.

    Identical bytes give identical digests regardless of name or mtime.
    Raises StorageIOError if the path can't be opened (including directories)
    or a read fails; a partial digest is never returned.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    h = hashlib.new(algorithm)
    try:
        async with aiofiles.open(path, "rb") as f:
            while True:
                chunk = await f.read(chunk_size)
                if not chunk:
                    break
                h.update(chunk)
    except OSError as exc:
        logger.debug(f"Hashing failed for {path}: {exc}")
        raise StorageIOError(f"Cannot hash {path}: {exc}", path) from exc
    return h.hexdigest()
