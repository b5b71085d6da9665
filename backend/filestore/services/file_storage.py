"""Content-addressed local file storage.

Managed files live in one flat directory (the storage root), each named
``<uuid><ext>``. No metadata is persisted beside them: every FileRecord field
other than id/name/path is recomputed from ``stat`` and the extension.

Uploads are deduplicated by content. Before copying, the root is scanned for
an entry of the same size and digest; a hit returns that entry (count=2)
without copying, so the first ingested copy's identity persists.
"""
import asyncio
import base64
import logging
import mimetypes
import os
import shutil
import stat
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os

from filestore.config import Settings, settings
from filestore.schemas.file import Base64Image, FileRecord
from filestore.services.file_hasher import DEFAULT_CHUNK_SIZE, hash_file
from filestore.services.file_picker import DEFAULT_PICKER_OPTIONS, FilePicker, PickerOptions
from filestore.services.file_types import FileType, get_file_type
from filestore.services.root_gate import RootGate
from filestore.services.storage_errors import (
    FileStorageError,
    StorageIOError,
    StoredFileNotFoundError,
    UnsupportedFileTypeError,
)

logger = logging.getLogger(__name__)

STAGING_SUFFIX = ".part"
TEMP_FILE_PREFIX = "temp_file_"

PathLike = Union[str, os.PathLike]


def file_ext(name: str) -> str:
    """Extension with its leading dot, '' for none. Dotfiles have no extension."""
    return os.path.splitext(name)[1]


def _created_at(st: os.stat_result) -> datetime:
    # st_birthtime is missing on most Linux filesystems; ctime is the closest we get
    ts = getattr(st, "st_birthtime", None)
    if ts is None:
        ts = st.st_ctime
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _is_staging(name: str) -> bool:
    return name.startswith(".") and name.endswith(STAGING_SUFFIX)


class FileStorageService:
    """Stores, deduplicates and serves files under a single storage root."""

    def __init__(
        self,
        storage_root: PathLike,
        temp_root: PathLike,
        *,
        picker: Optional[FilePicker] = None,
        hash_algorithm: str = "md5",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        serialize_uploads: bool = False,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.storage_root = Path(storage_root)
        self.temp_root = Path(temp_root)
        self.picker = picker
        self.hash_algorithm = hash_algorithm
        self.chunk_size = chunk_size
        self._gate = RootGate()
        self._upload_lock = asyncio.Lock() if serialize_uploads else None
        self.ensure_root_sync()

    @classmethod
    def from_settings(cls, cfg: Settings, **kwargs) -> "FileStorageService":
        return cls(
            cfg.storage_root,
            cfg.temp_root,
            hash_algorithm=cfg.HASH_ALGORITHM,
            chunk_size=cfg.HASH_CHUNK_SIZE,
            serialize_uploads=cfg.SERIALIZE_UPLOADS,
            **kwargs,
        )

    # ── Storage root lifecycle ───────────────────────────────────

    def ensure_root_sync(self) -> None:
        """Create the storage root and missing ancestors. Idempotent."""
        try:
            self.storage_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Cannot create storage root: {exc}", self.storage_root) from exc

    async def ensure_root(self) -> None:
        """Async variant of ensure_root_sync()."""
        try:
            await aiofiles.os.makedirs(self.storage_root, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Cannot create storage root: {exc}", self.storage_root) from exc

    async def clear(self) -> None:
        """Remove the storage root with everything in it, then recreate it.

        Waits for in-flight operations and blocks new ones until done. Every
        managed path issued before this call is dangling afterwards.
        """
        async with self._gate.exclusive():
            try:
                await asyncio.to_thread(shutil.rmtree, self.storage_root)
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.error(f"Failed to clear storage root {self.storage_root}: {exc}")
                raise StorageIOError(f"Cannot clear storage root: {exc}", self.storage_root) from exc
            await self.ensure_root()
            logger.info(f"Cleared storage root {self.storage_root}")

    # ── Duplicate resolution ─────────────────────────────────────

    async def find_duplicate(self, candidate: PathLike) -> Optional[FileRecord]:
        """Return the stored entry byte-identical to ``candidate``, or None."""
        async with self._gate.shared():
            return await self._find_duplicate(Path(candidate))

    async def _find_duplicate(self, candidate: Path) -> Optional[FileRecord]:
        src_stat = await self._stat(candidate)
        if not stat.S_ISREG(src_stat.st_mode):
            raise StorageIOError(f"Not a regular file: {candidate}", candidate)
        size = src_stat.st_size

        candidate_digest: Optional[str] = None
        for name in await self._list_names():
            stored_path = self.storage_root / name
            try:
                stored_stat = await aiofiles.os.stat(stored_path)
            except FileNotFoundError:
                continue  # removed since listing
            except OSError as exc:
                raise StorageIOError(f"Cannot stat {stored_path}: {exc}", stored_path) from exc
            if not stat.S_ISREG(stored_stat.st_mode) or stored_stat.st_size != size:
                continue

            try:
                if candidate_digest is None:
                    candidate_digest, stored_digest = await asyncio.gather(
                        self._hash(candidate), self._hash(stored_path)
                    )
                else:
                    stored_digest = await self._hash(stored_path)
            except StorageIOError as exc:
                if isinstance(exc.__cause__, FileNotFoundError) and exc.path == str(stored_path):
                    continue
                raise

            if candidate_digest == stored_digest:
                return self._managed_record(name, stored_path, stored_stat, count=2)
        return None

    # ── Ingestion ────────────────────────────────────────────────

    async def select_file(
        self,
        options: Optional[PickerOptions] = None,
        picker: Optional[FilePicker] = None,
    ) -> Optional[list[FileRecord]]:
        """Ask the picker for files and describe them. Nothing is copied.

        Cancellation and an empty selection both return None.
        """
        picker = picker or self.picker
        if picker is None:
            raise FileStorageError("No file picker configured")
        paths = await picker.pick(DEFAULT_PICKER_OPTIONS.merged(options))
        if not paths:
            return None
        return list(await asyncio.gather(*(self._transient_record(Path(p)) for p in paths)))

    async def upload(
        self,
        source: Union[FileRecord, PathLike],
        origin_name: Optional[str] = None,
    ) -> FileRecord:
        """Ingest a file into the storage root, or resolve it to an existing copy.

        ``origin_name`` overrides the user-facing name (and extension) when the
        bytes were staged under another name, e.g. an HTTP upload in the temp dir.
        """
        source_path = Path(source.path if isinstance(source, FileRecord) else source)
        if not origin_name:
            origin_name = source.origin_name if isinstance(source, FileRecord) else source_path.name
        async with self._gate.shared():
            if self._upload_lock is None:
                return await self._upload(source_path, origin_name)
            async with self._upload_lock:
                return await self._upload(source_path, origin_name)

    async def _upload(self, source_path: Path, origin_name: str) -> FileRecord:
        duplicate = await self._find_duplicate(source_path)
        if duplicate:
            logger.info(f"Upload of {origin_name} resolved to existing file {duplicate.id}")
            return duplicate

        file_id = str(uuid.uuid4())
        ext = file_ext(origin_name)
        name = f"{file_id}{ext}"
        dest_path = self.storage_root / name
        staging_path = self.storage_root / f".{name}{STAGING_SUFFIX}"

        try:
            await self._copy_verified(source_path, staging_path)
            await aiofiles.os.rename(staging_path, dest_path)
        except BaseException as exc:
            await self._discard(staging_path)
            if isinstance(exc, OSError):
                raise StorageIOError(f"Failed to store {source_path}: {exc}", source_path) from exc
            raise

        dest_stat = await self._stat(dest_path)
        logger.info(f"Stored {origin_name} as {name} ({dest_stat.st_size} bytes)")
        return FileRecord(
            id=file_id,
            origin_name=origin_name,
            name=name,
            path=str(dest_path),
            created_at=_created_at(dest_stat),
            size=dest_stat.st_size,
            ext=ext,
            type=get_file_type(ext),
            count=1,
        )

    async def _copy_verified(self, source: Path, staging: Path) -> None:
        expected = (await aiofiles.os.stat(source)).st_size
        written = 0
        async with aiofiles.open(source, "rb") as src, aiofiles.open(staging, "xb") as dst:
            while True:
                chunk = await src.read(self.chunk_size)
                if not chunk:
                    break
                await dst.write(chunk)
                written += len(chunk)
            await dst.flush()
        staged_size = (await aiofiles.os.stat(staging)).st_size
        if written != expected or staged_size != expected:
            raise StorageIOError(
                f"Size mismatch copying {source}: expected {expected}, wrote {written}, on disk {staged_size}",
                source,
            )

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
            logger.warning(f"Removed staging file {path} after failed upload")
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error(f"Could not remove staging file {path}: {exc}")

    # ── Retrieval & encoding ─────────────────────────────────────

    async def get_file(self, path: PathLike) -> Optional[FileRecord]:
        """Describe an arbitrary path. Returns None if it does not exist."""
        try:
            return await self._transient_record(Path(path))
        except StorageIOError as exc:
            if isinstance(exc.__cause__, (FileNotFoundError, NotADirectoryError)):
                return None
            raise

    async def read_text(self, file_id: str, encoding: str = "utf-8") -> str:
        async with self._gate.shared():
            path = await self._resolve_managed(file_id)
            try:
                async with aiofiles.open(path, "r", encoding=encoding, newline="") as f:
                    return await f.read()
            except FileNotFoundError as exc:
                raise StoredFileNotFoundError(file_id) from exc
            except (OSError, UnicodeDecodeError) as exc:
                raise StorageIOError(f"Cannot read {path}: {exc}", path) from exc

    async def delete_file(self, file_id: str) -> None:
        async with self._gate.shared():
            path = await self._resolve_managed(file_id)
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError as exc:
                raise StoredFileNotFoundError(file_id) from exc
            except OSError as exc:
                raise StorageIOError(f"Cannot delete {path}: {exc}", path) from exc
        logger.info(f"Deleted stored file {path.name}")

    async def base64_image(self, file_id: str) -> Base64Image:
        """Encode a stored image as base64 and a data URI.

        Only valid for entries whose extension classifies as an image; the
        MIME type is derived from the extension, not sniffed from content.
        """
        async with self._gate.shared():
            path = await self._resolve_managed(file_id)
            ext = file_ext(path.name)
            file_type = get_file_type(ext)
            if file_type != FileType.IMAGE:
                raise UnsupportedFileTypeError(file_id, file_type.value, FileType.IMAGE.value)
            try:
                async with aiofiles.open(path, "rb") as f:
                    data = await f.read()
            except FileNotFoundError as exc:
                raise StoredFileNotFoundError(file_id) from exc
            except OSError as exc:
                raise StorageIOError(f"Cannot read {path}: {exc}", path) from exc

        mime = mimetypes.guess_type(path.name)[0] or f"image/{ext[1:].lower()}"
        encoded = base64.b64encode(data).decode("ascii")
        return Base64Image(mime=mime, base64=encoded, data_uri=f"data:{mime};base64,{encoded}")

    async def create_temp_path(self, name: str) -> str:
        """Reserve a collision-free path in the temp dir. The file is not created."""
        try:
            await aiofiles.os.makedirs(self.temp_root, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Cannot create temp dir: {exc}", self.temp_root) from exc
        safe_name = os.path.basename(name)
        return str(self.temp_root / f"{TEMP_FILE_PREFIX}{uuid.uuid4()}_{safe_name}")

    async def write_file(self, path: PathLike, data: Union[bytes, str]) -> None:
        """Create or overwrite ``path`` with raw bytes or UTF-8 text."""
        try:
            if isinstance(data, str):
                async with aiofiles.open(path, "w", encoding="utf-8", newline="") as f:
                    await f.write(data)
            else:
                async with aiofiles.open(path, "wb") as f:
                    await f.write(data)
        except OSError as exc:
            raise StorageIOError(f"Cannot write {path}: {exc}", path) from exc

    # ── Helpers ──────────────────────────────────────────────────

    async def _hash(self, path: Path) -> str:
        return await hash_file(path, algorithm=self.hash_algorithm, chunk_size=self.chunk_size)

    async def _stat(self, path: Path) -> os.stat_result:
        try:
            return await aiofiles.os.stat(path)
        except OSError as exc:
            raise StorageIOError(f"Cannot stat {path}: {exc}", path) from exc

    async def _list_names(self) -> list[str]:
        """Flat, sorted listing of the root, without in-progress staging files."""
        try:
            names = await aiofiles.os.listdir(self.storage_root)
        except OSError as exc:
            raise StorageIOError(f"Cannot list storage root: {exc}", self.storage_root) from exc
        return sorted(n for n in names if not _is_staging(n))

    async def _resolve_managed(self, file_id: str) -> Path:
        """Find the backing file for a bare id or a stored name (id + ext)."""
        if not file_id or file_id.startswith(".") or "/" in file_id or os.sep in file_id:
            raise StoredFileNotFoundError(file_id)

        direct = self.storage_root / file_id
        if await aiofiles.os.path.isfile(direct):
            return direct
        for name in await self._list_names():
            if os.path.splitext(name)[0] == file_id:
                path = self.storage_root / name
                if await aiofiles.os.path.isfile(path):
                    return path
        raise StoredFileNotFoundError(file_id)

    def _managed_record(self, name: str, path: Path, st: os.stat_result, count: int) -> FileRecord:
        ext = file_ext(name)
        return FileRecord(
            id=name[: len(name) - len(ext)],
            origin_name=name,
            name=name,
            path=str(path),
            created_at=_created_at(st),
            size=st.st_size,
            ext=ext,
            type=get_file_type(ext),
            count=count,
        )

    async def _transient_record(self, path: Path) -> FileRecord:
        st = await self._stat(path)
        ext = file_ext(path.name)
        return FileRecord(
            id=str(uuid.uuid4()),
            origin_name=path.name,
            name=path.name,
            path=os.path.abspath(path),
            created_at=_created_at(st),
            size=st.st_size,
            ext=ext,
            type=get_file_type(ext),
            count=1,
        )


@lru_cache
def get_file_storage() -> FileStorageService:
    """FastAPI dependency: the service for the configured storage root."""
    return FileStorageService.from_settings(settings)
