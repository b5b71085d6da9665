"""Tests for the streaming content hasher."""
import hashlib

import pytest

from filestore.services.file_hasher import hash_file
from filestore.services.storage_errors import StorageIOError


@pytest.mark.asyncio
async def test_same_bytes_same_digest_regardless_of_name(make_file):
    a = make_file("a.txt", b"identical content")
    b = make_file("b.bin", b"identical content")
    assert await hash_file(a) == await hash_file(b)


@pytest.mark.asyncio
async def test_different_bytes_different_digest(make_file):
    a = make_file("a.txt", b"aaaa")
    b = make_file("b.txt", b"aaab")
    assert await hash_file(a) != await hash_file(b)


@pytest.mark.asyncio
async def test_small_chunks_match_whole_file_digest(make_file):
    data = bytes(range(256)) * 40
    path = make_file("blob.bin", data)

    digest = await hash_file(path, chunk_size=7)

    assert digest == hashlib.md5(data).hexdigest()


@pytest.mark.asyncio
async def test_algorithm_is_configurable(make_file):
    path = make_file("blob.bin", b"payload")
    assert await hash_file(path, algorithm="sha256") == hashlib.sha256(b"payload").hexdigest()


@pytest.mark.asyncio
async def test_empty_file(make_file):
    path = make_file("empty", b"")
    assert await hash_file(path) == hashlib.md5(b"").hexdigest()


@pytest.mark.asyncio
async def test_missing_path_raises_io_error(tmp_path):
    with pytest.raises(StorageIOError):
        await hash_file(tmp_path / "nope.txt")


@pytest.mark.asyncio
async def test_directory_raises_io_error(tmp_path):
    with pytest.raises(StorageIOError):
        await hash_file(tmp_path)


@pytest.mark.asyncio
async def test_rejects_non_positive_chunk_size(make_file):
    path = make_file("a.txt", b"x")
    with pytest.raises(ValueError):
        await hash_file(path, chunk_size=0)
