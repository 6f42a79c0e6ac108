# jagacall/storage/janitor.py

"""
Transient upload storage with guaranteed cleanup.

    async with transient_file(settings.upload_dir) as handle:
        await store_upload(upload, handle, settings.max_upload_bytes)
        ...

The file behind `handle` is deleted when the block exits, however it exits
(normal return, exception, request cancellation). Releasing twice, or
releasing a path that was never written, does nothing.
"""

from __future__ import annotations

import codecs
import json
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import anyio
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from jagacall.errors import FileTooLarge

logger = logging.getLogger("jagacall")

CHUNK_SIZE = 64 * 1024
TEXT_EXCERPT_BYTES = 8000
_PRINTABLE_RATIO = 0.95


class TransientFile:
    def __init__(self, path: Path):
        self.path = path
        self.size = 0
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def exists(self) -> bool:
        return self.path.exists()

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        await run_in_threadpool(_unlink_quietly, self.path)


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        # never allowed to change the response
        logger.warning(
            json.dumps({"event": "cleanup_failed", "path": str(path), "error": str(exc)})
        )


@asynccontextmanager
async def transient_file(upload_dir: str) -> AsyncIterator[TransientFile]:
    directory = Path(upload_dir)
    await run_in_threadpool(directory.mkdir, parents=True, exist_ok=True)
    handle = TransientFile(directory / uuid.uuid4().hex)
    try:
        yield handle
    finally:
        # shielded so a cancelled request still deletes its file
        with anyio.CancelScope(shield=True):
            await handle.release()


async def store_upload(upload: UploadFile, handle: TransientFile, max_bytes: int) -> int:
    """Stream `upload` into `handle`; raise FileTooLarge as soon as it exceeds `max_bytes`."""
    declared = getattr(upload, "size", None)
    if declared is not None and declared > max_bytes:
        raise FileTooLarge(max_bytes)

    written = 0
    out = await run_in_threadpool(open, handle.path, "wb")
    try:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise FileTooLarge(max_bytes)
            await run_in_threadpool(out.write, chunk)
    finally:
        await run_in_threadpool(out.close)

    handle.size = written
    return written


def _is_readable_mime(mime: str) -> bool:
    return mime.startswith("text/") or "pdf" in mime


def _looks_like_text(text: str) -> bool:
    if not text.strip():
        return False
    printable = sum(1 for ch in text if ch.isprintable() or ch in "\n\r\t")
    return printable / len(text) >= _PRINTABLE_RATIO


def _read_head(path: Path, limit: int) -> bytes:
    with open(path, "rb") as fh:
        return fh.read(limit)


async def read_text_excerpt(handle: TransientFile, mime: str) -> Optional[str]:
    """
    Human-readable text from the start of the file, or None.

    Only text and PDF uploads are considered; anything that does not decode
    as mostly-printable UTF-8 is treated as binary. OSError propagates so the
    caller can describe the file instead.
    """
    if not _is_readable_mime(mime):
        return None
    head = await run_in_threadpool(_read_head, handle.path, TEXT_EXCERPT_BYTES)
    try:
        # final=False tolerates a multi-byte character cut off at the limit
        text = codecs.getincrementaldecoder("utf-8")().decode(head, final=False)
    except UnicodeDecodeError:
        return None
    return text if _looks_like_text(text) else None
