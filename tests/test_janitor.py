from __future__ import annotations

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from jagacall.errors import FileTooLarge
from jagacall.storage.janitor import TransientFile, read_text_excerpt, store_upload, transient_file


def _upload(data: bytes, content_type: str = "application/pdf", filename: str = "doc.pdf"):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.asyncio
async def test_file_removed_after_normal_exit(tmp_path):
    async with transient_file(str(tmp_path)) as handle:
        size = await store_upload(_upload(b"hello"), handle, 1024)
        assert size == 5
        assert handle.exists()
    assert not handle.exists()
    assert handle.released
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_file_removed_when_block_raises(tmp_path):
    with pytest.raises(RuntimeError):
        async with transient_file(str(tmp_path)) as handle:
            await store_upload(_upload(b"payload"), handle, 1024)
            raise RuntimeError("upstream exploded")
    assert not handle.exists()


@pytest.mark.asyncio
async def test_oversized_upload_raises_and_is_cleaned(tmp_path):
    with pytest.raises(FileTooLarge) as excinfo:
        async with transient_file(str(tmp_path)) as handle:
            await store_upload(_upload(b"x" * 2048), handle, 1024)
    assert excinfo.value.code == "FILE_TOO_LARGE"
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_double_release_and_never_created_are_noops(tmp_path):
    handle = TransientFile(tmp_path / "never-written")
    await handle.release()
    await handle.release()
    assert handle.released

    async with transient_file(str(tmp_path)) as handle:
        await store_upload(_upload(b"abc"), handle, 1024)
        await handle.release()
        assert not handle.exists()
    assert not handle.exists()


@pytest.mark.asyncio
async def test_text_excerpt_for_readable_pdf(tmp_path):
    async with transient_file(str(tmp_path)) as handle:
        await store_upload(_upload(b"Please verify your account today"), handle, 1024)
        assert await read_text_excerpt(handle, "application/pdf") == "Please verify your account today"


@pytest.mark.asyncio
async def test_no_excerpt_for_binary_content(tmp_path):
    async with transient_file(str(tmp_path)) as handle:
        await store_upload(_upload(b"%PDF-1.7\n\x00\xff\xfe\x01\x02binary"), handle, 1024)
        assert await read_text_excerpt(handle, "application/pdf") is None


@pytest.mark.asyncio
async def test_no_excerpt_for_non_text_types(tmp_path):
    async with transient_file(str(tmp_path)) as handle:
        await store_upload(_upload(b"plain words", "audio/mpeg", "a.mp3"), handle, 1024)
        assert await read_text_excerpt(handle, "audio/mpeg") is None
