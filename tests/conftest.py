"""Shared fixtures: an isolated storage root per test and an API client bound to it."""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filestore.main import app
from filestore.services.file_storage import FileStorageService, get_file_storage


@pytest.fixture()
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "userData" / "Data" / "Files"


@pytest.fixture()
def temp_root(tmp_path: Path) -> Path:
    return tmp_path / "temp" / "FileStore"


@pytest.fixture()
def storage(storage_root: Path, temp_root: Path) -> FileStorageService:
    return FileStorageService(storage_root, temp_root)


@pytest.fixture()
def source_dir(tmp_path: Path) -> Path:
    """Directory holding user files that get uploaded."""
    path = tmp_path / "incoming"
    path.mkdir()
    return path


@pytest.fixture()
def make_file(source_dir: Path):
    def _make(name: str, data: bytes) -> Path:
        path = source_dir / name
        path.write_bytes(data)
        return path
    return _make


@pytest.fixture()
def client(storage: FileStorageService):
    """TestClient with the files API pointed at the test storage root."""
    app.dependency_overrides[get_file_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
